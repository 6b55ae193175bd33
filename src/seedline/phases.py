"""Phase declarations and dependency-ordered traversal.

Phases are nodes of a directed graph whose edges are declared dependencies.
Ordering is a topological sort (Kahn's algorithm) with ties broken by
declaration order; cycles are reported as CyclicDependencyError.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog
from pydantic import BaseModel, ConfigDict, Field

from seedline.errors import CyclicDependencyError, UnknownPhaseError

logger = structlog.get_logger(__name__)

ALL_PHASES = "all"


class Phase(BaseModel):
    """A named feature domain.

    Attributes:
        name: Phase name (e.g., "payroll")
        requires: Phases that must be seeded first for referential integrity
        optional: Phases whose entities are referenced when already present,
            but which are never pulled into a plan on their own
        description: Human-readable summary
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Phase name")
    requires: tuple[str, ...] = Field(default=(), description="Required dependency phases")
    optional: tuple[str, ...] = Field(default=(), description="Optional dependency phases")
    description: str = Field(default="", description="Phase description")


DEFAULT_PHASES: tuple[Phase, ...] = (
    Phase(
        name="financial-intelligence",
        requires=("client-portal",),
        description="Invoices, payments and revenue tracking",
    ),
    Phase(
        name="care-intelligence",
        requires=("client-portal",),
        optional=("scheduling",),
        description="Care plans, medications and incident reporting",
    ),
    Phase(
        name="workforce-optimization",
        requires=("scheduling",),
        description="Worker availability and roster optimisation",
    ),
    Phase(
        name="realtime-portal",
        requires=("scheduling",),
        description="Live shift timers and presence",
    ),
    Phase(
        name="client-portal",
        description="Organizations, users and clients",
    ),
    Phase(
        name="payroll",
        requires=("scheduling",),
        description="Timesheets derived from worked shifts",
    ),
    Phase(
        name="offline-sync",
        requires=("scheduling",),
        description="Queued device sync records",
    ),
    Phase(
        name="compliance",
        requires=("scheduling",),
        description="Worker certifications and screening records",
    ),
    Phase(
        name="expenses",
        requires=("scheduling",),
        description="Worker expense claims",
    ),
    Phase(
        name="scheduling",
        requires=("client-portal",),
        description="Workers and shifts",
    ),
    Phase(
        name="analytics",
        requires=("financial-intelligence",),
        optional=("care-intelligence",),
        description="Aggregated reports over financial and care data",
    ),
)


class PhaseDependencyGraph:
    """Directed graph of phases and their required dependencies.

    Args:
        phases: Phase declarations, in declaration order.

    Example:
        >>> graph = PhaseDependencyGraph(DEFAULT_PHASES)
        >>> graph.order(["payroll"])
        ['client-portal', 'scheduling', 'payroll']
    """

    def __init__(self, phases: Sequence[Phase] = DEFAULT_PHASES) -> None:
        self._phases: dict[str, Phase] = {}
        for phase in phases:
            if phase.name in self._phases:
                raise ValueError(f"Duplicate phase declaration: {phase.name}")
            self._phases[phase.name] = phase
        self._position = {name: index for index, name in enumerate(self._phases)}

        for phase in self._phases.values():
            for dep in (*phase.requires, *phase.optional):
                if dep not in self._phases:
                    raise UnknownPhaseError(dep, self.names())

    def names(self) -> list[str]:
        """Phase names in declaration order."""
        return list(self._phases)

    def get(self, name: str) -> Phase:
        """Look up a phase by name.

        Raises:
            UnknownPhaseError: If the phase is not declared.
        """
        try:
            return self._phases[name]
        except KeyError:
            raise UnknownPhaseError(name, self.names()) from None

    def expand(self, requested: Iterable[str]) -> list[str]:
        """Validate requested phase names and expand "all".

        Returns:
            Requested phase names, deduplicated, in request order.
        """
        names: list[str] = []
        for name in requested:
            if name == ALL_PHASES:
                return self.names()
            self.get(name)
            if name not in names:
                names.append(name)
        return names

    def closure(self, requested: Iterable[str]) -> set[str]:
        """Requested phases plus their transitive required dependencies."""
        selected: set[str] = set()
        stack = list(self.expand(requested))
        while stack:
            name = stack.pop()
            if name in selected:
                continue
            selected.add(name)
            stack.extend(self._phases[name].requires)
        return selected

    def order(self, requested: Iterable[str]) -> list[str]:
        """Order requested phases and their required dependencies.

        Args:
            requested: Phase names, or ["all"].

        Returns:
            Every requested phase exactly once, plus the transitive required
            dependencies, each placed after all of its dependencies. Optional
            dependencies that are also in the plan come first as well.

        Raises:
            UnknownPhaseError: If a requested phase is not declared.
            CyclicDependencyError: If the dependency graph has a cycle.
        """
        self.validate()
        selected = self.closure(requested)

        edges = {name: self._edges(name) & selected for name in selected}
        indegree = {name: len(deps) for name, deps in edges.items()}
        ready = sorted((n for n, d in indegree.items() if d == 0), key=self._position.__getitem__)
        ordered: list[str] = []

        while ready:
            current = ready.pop(0)
            ordered.append(current)
            for name in selected:
                if current in edges[name]:
                    indegree[name] -= 1
                    if indegree[name] == 0:
                        ready.append(name)
            ready.sort(key=self._position.__getitem__)

        logger.debug("phases_ordered", requested=sorted(selected), order=ordered)
        return ordered

    def _edges(self, name: str) -> set[str]:
        """Required and optional dependencies of a phase.

        Optional dependencies only constrain ordering when they are part of
        the plan; closure never pulls them in.
        """
        phase = self._phases[name]
        return {*phase.requires, *phase.optional}

    def validate(self) -> None:
        """Check the whole graph for cycles.

        Raises:
            CyclicDependencyError: Naming the phases along the first cycle found.
        """
        visiting: list[str] = []
        done: set[str] = set()

        def _visit(name: str) -> None:
            if name in done:
                return
            if name in visiting:
                start = visiting.index(name)
                raise CyclicDependencyError([*visiting[start:], name])
            visiting.append(name)
            for dep in (*self._phases[name].requires, *self._phases[name].optional):
                _visit(dep)
            visiting.pop()
            done.add(name)

        for name in self._phases:
            _visit(name)

    def dependents(self, name: str) -> list[str]:
        """Phases that require the given phase, directly or transitively."""
        return [
            other
            for other in self._phases
            if other != name and name in self.closure([other])
        ]
