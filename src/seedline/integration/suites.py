"""Built-in smoke suites, one pair of tests per entity type.

For every entity type of a phase:
- "<type>: list seed records" reads the collection back and checks the
  seeded records are visible through the API.
- "<type>: create, read and update" creates a seed-tagged entity that
  references existing seed records, reads it back, updates it and checks
  the store grew by exactly one record.
"""

from __future__ import annotations

from collections.abc import Iterable

from seedline.entities import SEED_FLAG, EntityCatalog, EntityTypeSpec
from seedline.factories import FactorySet
from seedline.integration.runner import IntegrationTest, TestSession, items_of


def _list_test(spec: EntityTypeSpec) -> IntegrationTest:
    def body(session: TestSession) -> None:
        expected = session.seed_count(spec.name)
        response = session.expect_status(
            session.request("GET", f"{spec.path}?{SEED_FLAG}=true"), 200
        )
        items = items_of(response)
        session.check(items is not None, "collection response is not a list")
        session.check(
            len(items or []) >= min(expected, 1),
            f"expected seeded {spec.name} records to be listed",
        )

    return IntegrationTest(name=f"{spec.name}: list seed records", phase=spec.phase, body=body)


def _crud_test(spec: EntityTypeSpec, factories: FactorySet) -> IntegrationTest:
    def body(session: TestSession) -> None:
        references: dict[str, str] = {}
        for field, ref in spec.references.items():
            target = session.seed_id(ref.target)
            if target is not None:
                references[field] = target
            elif ref.required:
                session.skip(f"no seeded {ref.target} available for {field}")

        payload = factories.build(spec.name, references)
        before = session.seed_count(spec.name)

        created = session.expect_status(session.request("POST", spec.path, payload), 200, 201)
        entity_id = created.entity_id
        session.check(entity_id is not None, "create response carried no id")

        fetched = session.expect_status(session.request("GET", f"{spec.path}/{entity_id}"), 200)
        session.check(fetched.entity_id == entity_id, "read returned a different entity")

        generated = factories.get(spec.name).field_generators()
        update_field = next((f for f in generated if f not in spec.unique_fields), None)
        if update_field is not None:
            changes = {update_field: factories.regenerate(spec.name, payload, update_field)}
            session.expect_status(
                session.request("PUT", f"{spec.path}/{entity_id}", changes), 200
            )

        session.check(
            session.seed_count(spec.name) == before + 1,
            f"expected {before + 1} seed {spec.name} records after create",
        )

    return IntegrationTest(
        name=f"{spec.name}: create, read and update", phase=spec.phase, body=body
    )


def phase_suite(
    phase: str, catalog: EntityCatalog, factories: FactorySet
) -> list[IntegrationTest]:
    """Tests for every entity type owned by a phase."""
    tests: list[IntegrationTest] = []
    for spec in catalog.for_phase(phase):
        tests.append(_list_test(spec))
        tests.append(_crud_test(spec, factories))
    return tests


def build_suites(
    phases: Iterable[str], catalog: EntityCatalog, factories: FactorySet
) -> list[IntegrationTest]:
    """Tests for the given phases, phase by phase."""
    return [test for phase in phases for test in phase_suite(phase, catalog, factories)]
