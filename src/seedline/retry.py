"""Bounded retry-with-correction for backend validation failures.

Each entity submission is an explicit state machine:

    PENDING -> SUBMITTED -> ACCEPTED
                         -> REJECTED_RETRYABLE -> SUBMITTED (corrected candidate)
                                               -> REJECTED_FATAL (bound exceeded)
                         -> REJECTED_FATAL (non-validation failure)

Corrections are pluggable strategies keyed by error kind. A strategy only
touches the fields named in the error; reference fields are never altered.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import structlog

from seedline.backend import BackendResponse, EntityApi, ErrorKind, FieldError
from seedline.errors import SeedlineError, ValidationRejectedError

logger = structlog.get_logger(__name__)

DEFAULT_MAX_RETRIES = 3

Regenerator = Callable[[dict[str, Any], str], Any]


class SubmissionState(str, Enum):
    """Lifecycle state of one entity submission."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    REJECTED_RETRYABLE = "rejected_retryable"
    REJECTED_FATAL = "rejected_fatal"


_TRANSITIONS: dict[SubmissionState, frozenset[SubmissionState]] = {
    SubmissionState.PENDING: frozenset({SubmissionState.SUBMITTED}),
    SubmissionState.SUBMITTED: frozenset(
        {
            SubmissionState.ACCEPTED,
            SubmissionState.REJECTED_RETRYABLE,
            SubmissionState.REJECTED_FATAL,
        }
    ),
    SubmissionState.REJECTED_RETRYABLE: frozenset(
        {SubmissionState.SUBMITTED, SubmissionState.REJECTED_FATAL}
    ),
    SubmissionState.ACCEPTED: frozenset(),
    SubmissionState.REJECTED_FATAL: frozenset(),
}


class CorrectionStrategy(Protocol):
    """Derives a corrected candidate for one field error."""

    def apply(
        self,
        candidate: dict[str, Any],
        error: FieldError,
        regenerate: Regenerator,
    ) -> dict[str, Any]: ...


class RegenerateFieldStrategy:
    """Replace the implicated field with a freshly generated value."""

    def apply(
        self,
        candidate: dict[str, Any],
        error: FieldError,
        regenerate: Regenerator,
    ) -> dict[str, Any]:
        corrected = dict(candidate)
        corrected[error.field] = regenerate(corrected, error.field)
        return corrected


class ResubmitStrategy:
    """Resubmit unchanged; the target may become visible on a later attempt."""

    def apply(
        self,
        candidate: dict[str, Any],
        error: FieldError,
        regenerate: Regenerator,
    ) -> dict[str, Any]:
        return dict(candidate)


def default_strategies() -> dict[ErrorKind, CorrectionStrategy]:
    regenerate = RegenerateFieldStrategy()
    return {
        ErrorKind.REQUIRED: regenerate,
        ErrorKind.FORMAT: regenerate,
        ErrorKind.RANGE: regenerate,
        ErrorKind.UNIQUE: regenerate,
        ErrorKind.REFERENCE: ResubmitStrategy(),
        ErrorKind.OTHER: regenerate,
    }


@dataclass
class Submission:
    """Tracks one entity through the submission state machine."""

    entity_type: str
    candidate: dict[str, Any]
    state: SubmissionState = SubmissionState.PENDING
    attempts: int = 0
    history: list[SubmissionState] = field(default_factory=lambda: [SubmissionState.PENDING])
    response: BackendResponse | None = None
    error: SeedlineError | None = None

    def transition(self, target: SubmissionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal submission transition {self.state.value} -> {target.value}"
            )
        self.state = target
        self.history.append(target)

    @property
    def accepted(self) -> bool:
        return self.state is SubmissionState.ACCEPTED

    @property
    def entity_id(self) -> str | None:
        return self.response.entity_id if self.response is not None else None


class ValidationRetryEngine:
    """Submits entities and recovers from validation rejections.

    Args:
        api: Backend API used for submissions.
        max_retries: Resubmissions allowed after the first rejection.
        strategies: Correction strategy per error kind.

    Example:
        >>> engine = ValidationRetryEngine(api, max_retries=3)
        >>> submission = engine.submit("client", payload, regenerate=factory.regenerate)
        >>> submission.accepted
        True
    """

    def __init__(
        self,
        api: EntityApi,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        strategies: Mapping[ErrorKind, CorrectionStrategy] | None = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        self.api = api
        self.max_retries = max_retries
        self.strategies = dict(strategies) if strategies is not None else default_strategies()

    def submit(
        self,
        entity_type: str,
        payload: Mapping[str, Any],
        *,
        regenerate: Regenerator,
        protected_fields: frozenset[str] = frozenset(),
    ) -> Submission:
        """Submit one entity, correcting and resubmitting on validation errors.

        Args:
            entity_type: Entity type name.
            payload: Initial candidate.
            regenerate: Produces a new value for one field of a candidate.
            protected_fields: Fields that corrections must never change
                (reference fields).

        Returns:
            The finished Submission, either ACCEPTED or REJECTED_FATAL.
        """
        submission = Submission(entity_type=entity_type, candidate=dict(payload))
        log = logger.bind(entity_type=entity_type)

        while True:
            submission.transition(SubmissionState.SUBMITTED)
            submission.attempts += 1
            try:
                response = self.api.create(entity_type, submission.candidate)
            except SeedlineError as exc:
                submission.error = exc
                submission.transition(SubmissionState.REJECTED_FATAL)
                log.warning("entity_submission_failed", error=str(exc))
                return submission

            submission.response = response

            if response.ok and response.entity_id is not None:
                submission.transition(SubmissionState.ACCEPTED)
                return submission

            if not response.is_validation_error:
                submission.error = SeedlineError(
                    f"Failed to create {entity_type}: backend returned "
                    f"HTTP {response.status_code}"
                    + ("" if not response.ok else " without an entity id")
                )
                submission.transition(SubmissionState.REJECTED_FATAL)
                log.warning("entity_rejected_fatal", status_code=response.status_code)
                return submission

            submission.transition(SubmissionState.REJECTED_RETRYABLE)
            fields = [e.field for e in response.errors]
            log.info(
                "entity_rejected",
                attempt=submission.attempts,
                status_code=response.status_code,
                fields=fields,
            )

            if submission.attempts > self.max_retries:
                submission.error = ValidationRejectedError(
                    entity_type,
                    fields,
                    submission.attempts,
                    "; ".join(e.message for e in response.errors if e.message),
                )
                submission.transition(SubmissionState.REJECTED_FATAL)
                log.warning("entity_rejected_fatal", error=str(submission.error))
                return submission

            submission.candidate = self.correct(
                submission.candidate, response.errors, regenerate, protected_fields
            )

    def correct(
        self,
        candidate: dict[str, Any],
        errors: tuple[FieldError, ...],
        regenerate: Regenerator,
        protected_fields: frozenset[str] = frozenset(),
    ) -> dict[str, Any]:
        """Apply the strategy for each error's kind, one field at a time."""
        corrected = dict(candidate)
        for error in errors:
            if error.field in protected_fields:
                continue
            strategy = self.strategies.get(error.kind)
            if strategy is None:
                continue
            corrected = strategy.apply(corrected, error, regenerate)
        return corrected
