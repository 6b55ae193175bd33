"""Per-run state.

Everything that lives for exactly one invocation (identity registry,
reference tracker, coverage map) hangs off a RunContext that is created at
run start and passed explicitly to every component. Nothing is module-global,
so repeated or concurrent runs in one process stay isolated.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from seedline.config import EnvironmentConfig
from seedline.integration.coverage import CoverageTracker
from seedline.integration.endpoints import EndpointRegistry
from seedline.references import ReferentialIntegrityTracker
from seedline.registry import EntityIdentityRegistry


@dataclass
class RunContext:
    """State scoped to one generate, test or cleanup invocation.

    ``mutating`` is set once the run may have written to the backend; until
    then a failure leaves the environment untouched.
    """

    environment: EnvironmentConfig
    registry: EntityIdentityRegistry = field(default_factory=EntityIdentityRegistry)
    tracker: ReferentialIntegrityTracker = field(init=False)
    coverage: CoverageTracker = field(default_factory=lambda: CoverageTracker(EndpointRegistry()))
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    mutating: bool = False

    def __post_init__(self) -> None:
        self.tracker = ReferentialIntegrityTracker(self.registry)
