"""Report models for generation, cleanup, testing and operation outcomes."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OperationOutcome(str, Enum):
    """How an operation ended, as seen by the invoking surface.

    Attributes:
        SUCCESS: Everything succeeded
        COMPLETED_WITH_FAILURES: Finished, with recorded per-item failures
        ABORTED: Stopped before any mutation (connectivity, confirmation, config)
    """

    SUCCESS = "success"
    COMPLETED_WITH_FAILURES = "completed_with_failures"
    ABORTED = "aborted"

    @property
    def exit_code(self) -> int:
        return {
            OperationOutcome.SUCCESS: 0,
            OperationOutcome.COMPLETED_WITH_FAILURES: 1,
            OperationOutcome.ABORTED: 2,
        }[self]


def _now() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class CheckStatus(str, Enum):
    """Status of a connectivity check.

    Attributes:
        PASSED: Target reachable
        FAILED: Target unreachable
        ERROR: Check itself raised an unexpected error
    """

    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


class CheckResult(BaseModel):
    """Result of a single connectivity check.

    Example:
        >>> result = CheckResult(
        ...     name="api",
        ...     status=CheckStatus.PASSED,
        ...     message="API reachable at http://localhost:8080/api",
        ...     duration_ms=42,
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Check name")
    status: CheckStatus = Field(..., description="Check status")
    message: str = Field(default="", description="Result message")
    details: dict[str, Any] = Field(default_factory=dict, description="Additional details")
    duration_ms: int = Field(default=0, ge=0, description="Duration in milliseconds")
    timestamp: datetime = Field(default_factory=_now, description="Check timestamp")

    @property
    def passed(self) -> bool:
        return self.status is CheckStatus.PASSED


class ConnectivityResult(BaseModel):
    """Reachability of both sides of an environment.

    Attributes:
        environment: Target environment
        api_reachable: API health probe succeeded
        db_reachable: Database accepted a TCP connection
        checks: Individual check results
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    environment: str = Field(..., description="Target environment")
    api_reachable: bool = Field(..., description="API reachable")
    db_reachable: bool = Field(..., description="Database reachable")
    checks: list[CheckResult] = Field(default_factory=list, description="Check results")

    @property
    def passed(self) -> bool:
        return self.api_reachable and self.db_reachable


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class GenerationError(BaseModel):
    """A fatal failure to create one entity (or to reach a type's target count)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    entity_type: str = Field(..., description="Entity type that failed")
    phase: str = Field(..., description="Owning phase")
    message: str = Field(..., description="Error message naming type and field")
    fields: list[str] = Field(default_factory=list, description="Implicated fields")
    attempts: int = Field(default=0, ge=0, description="Submissions made")


class GenerationReport(BaseModel):
    """Result of a generation run.

    Attributes:
        environment: Target environment
        phases: Phases processed, in dependency order
        incremental: Whether existing seed data was kept and referenced
        requested: Target count per entity type
        created: Created count per phase and entity type
        errors: Fatal per-entity errors
        seed_count_before: Seed-tagged records before the run
        seed_count_after: Seed-tagged records after the run
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    environment: str = Field(..., description="Target environment")
    phases: list[str] = Field(default_factory=list, description="Phases in order")
    incremental: bool = Field(default=False, description="Incremental mode")
    requested: dict[str, int] = Field(default_factory=dict, description="Target counts")
    created: dict[str, dict[str, int]] = Field(
        default_factory=dict, description="Created counts by phase and type"
    )
    entities: list[str] = Field(default_factory=list, description="Created entity ids")
    errors: list[GenerationError] = Field(default_factory=list, description="Errors")
    seed_count_before: int = Field(default=0, ge=0, description="Seed count before")
    seed_count_after: int = Field(default=0, ge=0, description="Seed count after")
    started_at: datetime = Field(default_factory=_now, description="Start time")
    finished_at: datetime | None = Field(default=None, description="End time")

    @property
    def created_by_type(self) -> dict[str, int]:
        return {t: n for per_type in self.created.values() for t, n in per_type.items()}

    @property
    def created_total(self) -> int:
        return sum(self.created_by_type.values())

    @property
    def failed(self) -> bool:
        return bool(self.errors)


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------


class CleanupFailure(BaseModel):
    """Removal of one entity type failed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    entity_type: str = Field(..., description="Entity type")
    message: str = Field(..., description="Failure message")


class CleanupReport(BaseModel):
    """Result of a cleanup or reset.

    ``removed`` holds one entry per successfully processed type and
    ``failures`` one per failed type; together they cover every targeted type.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    environment: str = Field(..., description="Target environment")
    mode: str = Field(..., description="reset or cleanup")
    phase: str | None = Field(default=None, description="Phase scope")
    entity_type: str | None = Field(default=None, description="Entity type scope")
    dry_run: bool = Field(default=False, description="Counted without deleting")
    removed: dict[str, int] = Field(default_factory=dict, description="Removed per type")
    failures: list[CleanupFailure] = Field(default_factory=list, description="Failed types")
    remaining_seed_count: int | None = Field(
        default=None, description="Seed records left after a reset"
    )

    @property
    def total_removed(self) -> int:
        return sum(self.removed.values())

    @property
    def failed(self) -> bool:
        return bool(self.failures)


class TypeStatus(BaseModel):
    """Seed vs non-seed record counts for one entity type."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    entity_type: str = Field(..., description="Entity type")
    phase: str = Field(..., description="Owning phase")
    seed: int = Field(default=0, ge=0, description="Seed-tagged records")
    production: int = Field(default=0, ge=0, description="Records not tagged as seed")


class StatusReport(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    environment: str = Field(..., description="Target environment")
    types: list[TypeStatus] = Field(default_factory=list, description="Per-type counts")

    @property
    def seed_total(self) -> int:
        return sum(t.seed for t in self.types)

    @property
    def production_total(self) -> int:
        return sum(t.production for t in self.types)


# ---------------------------------------------------------------------------
# Integrity audit
# ---------------------------------------------------------------------------


class IntegrityViolation(BaseModel):
    """A stored seed record whose reference field does not resolve.

    Attributes:
        entity_type: Type of the offending record
        entity_id: Id of the offending record
        field: Reference field
        target: Referenced entity type
        value: Stored reference value, None when a required reference is missing
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    entity_type: str = Field(..., description="Entity type")
    entity_id: str = Field(..., description="Record id")
    field: str = Field(..., description="Reference field")
    target: str = Field(..., description="Referenced entity type")
    value: str | None = Field(default=None, description="Stored reference value")

    @property
    def message(self) -> str:
        if self.value is None:
            return f"{self.entity_type} {self.entity_id}: required {self.field} is missing"
        return (
            f"{self.entity_type} {self.entity_id}: {self.field}={self.value} "
            f"has no matching {self.target}"
        )


class IntegrityReport(BaseModel):
    """Result of reading seed data back and resolving every reference."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    environment: str = Field(..., description="Target environment")
    phases: list[str] = Field(default_factory=list, description="Phases audited")
    checked: dict[str, int] = Field(
        default_factory=dict, description="Seed records checked per type"
    )
    violations: list[IntegrityViolation] = Field(
        default_factory=list, description="Unresolved references"
    )

    @property
    def checked_total(self) -> int:
        return sum(self.checked.values())

    @property
    def failed(self) -> bool:
        return bool(self.violations)


# ---------------------------------------------------------------------------
# Integration testing
# ---------------------------------------------------------------------------


class TestStatus(str, Enum):
    """Status of one integration test."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class RequestLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    method: str = Field(..., description="HTTP method")
    path: str = Field(..., description="Request path")
    payload: Any = Field(default=None, description="Request body")
    timestamp: datetime = Field(default_factory=_now, description="Sent at")


class ResponseLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    method: str = Field(..., description="HTTP method")
    path: str = Field(..., description="Request path")
    status_code: int = Field(..., description="HTTP status")
    body: Any = Field(default=None, description="Response body")
    duration_ms: int = Field(default=0, ge=0, description="Round-trip time")


class TestResult(BaseModel):
    """One record per declared test.

    ``db_snapshot`` is only populated on failure.
    """

    __test__ = False

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Test name")
    phase: str = Field(..., description="Phase under test")
    status: TestStatus = Field(..., description="Outcome")
    message: str = Field(default="", description="Failure or skip reason")
    request_log: list[RequestLogEntry] = Field(default_factory=list, description="Requests")
    response_log: list[ResponseLogEntry] = Field(default_factory=list, description="Responses")
    db_snapshot: dict[str, Any] | None = Field(
        default=None, description="Store state captured at the point of failure"
    )
    checks: int = Field(default=0, ge=0, description="State checks performed")
    duration_ms: int = Field(default=0, ge=0, description="Duration in milliseconds")


class CoverageBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    total: int = Field(default=0, ge=0)
    tested: int = Field(default=0, ge=0)
    untested: int = Field(default=0, ge=0)
    percentage: float = Field(default=0.0, ge=0.0, le=100.0)


class CoverageReport(BaseModel):
    """Endpoint coverage for a run.

    Invariants: ``tested + untested == total`` and ``0 <= percentage <= 100``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    total: int = Field(default=0, ge=0, description="Declared endpoints")
    tested: int = Field(default=0, ge=0, description="Endpoints hit at least once")
    untested: int = Field(default=0, ge=0, description="Endpoints never hit")
    percentage: float = Field(default=0.0, ge=0.0, le=100.0, description="Tested share")
    hits: dict[str, int] = Field(default_factory=dict, description="Hit count per endpoint")
    untested_endpoints: list[str] = Field(default_factory=list, description="Never hit")
    unmatched_requests: list[str] = Field(
        default_factory=list, description="Requests matching no declared endpoint"
    )
    by_phase: dict[str, CoverageBreakdown] = Field(default_factory=dict, description="Per phase")
    critical: CoverageBreakdown = Field(
        default_factory=CoverageBreakdown, description="Critical endpoints"
    )


class TestRunReport(BaseModel):
    __test__ = False

    model_config = ConfigDict(frozen=True, extra="forbid")

    environment: str = Field(..., description="Target environment")
    phases: list[str] = Field(default_factory=list, description="Phases tested")
    results: list[TestResult] = Field(default_factory=list, description="Ordered results")
    coverage: CoverageReport = Field(default_factory=CoverageReport, description="Coverage")

    @property
    def failed(self) -> bool:
        return any(r.status is TestStatus.FAILED for r in self.results)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


class OperationResult(BaseModel):
    """Outcome of one engine operation plus its report."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    operation: str = Field(..., description="Operation name")
    environment: str = Field(..., description="Target environment")
    outcome: OperationOutcome = Field(..., description="Outcome")
    report: (
        GenerationReport
        | CleanupReport
        | TestRunReport
        | StatusReport
        | IntegrityReport
        | ConnectivityResult
        | None
    ) = Field(default=None, description="Operation report")
    error: str | None = Field(default=None, description="Abort reason")

    @property
    def exit_code(self) -> int:
        return self.outcome.exit_code
