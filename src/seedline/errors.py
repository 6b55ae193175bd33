"""Exception hierarchy for seedline.

This module defines the exception classes used throughout seedline:
- SeedlineError: Base exception for all seedline errors
- OperationAbortedError: Raised before any mutation when an operation cannot start
- Per-item errors (validation, cleanup, test execution) that are recorded in
  reports instead of aborting the whole operation

User-facing messages are safe to display. Technical details are logged
internally via structlog and never shown to the user.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

logger = structlog.get_logger(__name__)


class SeedlineError(Exception):
    """Base exception for seedline.

    Args:
        user_message: Safe message to display to the user.
        internal_details: Optional technical details for logging only.

    Example:
        >>> raise SeedlineError(
        ...     "Backend rejected request",
        ...     internal_details="POST /shifts returned 500: stack trace ...",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message

        if internal_details:
            logger.error(
                "seedline_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class ConfigurationError(SeedlineError):
    """Raised when configuration values cannot be resolved or are invalid."""


# ---------------------------------------------------------------------------
# Pre-mutation aborts
# ---------------------------------------------------------------------------


class OperationAbortedError(SeedlineError):
    """Raised when an operation is aborted before any state change.

    The invoking surface maps every subclass to the "aborted" outcome.
    """


class UnknownEnvironmentError(OperationAbortedError):
    """Raised when an environment name is not registered.

    Example:
        >>> raise UnknownEnvironmentError("qa", ["development", "staging"])
        # User sees: "Unknown environment 'qa'. Available: development, staging"
    """

    def __init__(
        self,
        name: str,
        available: Sequence[str],
        *,
        internal_details: str | None = None,
    ) -> None:
        available_str = ", ".join(available) if available else "none"
        super().__init__(
            f"Unknown environment '{name}'. Available: {available_str}",
            internal_details=internal_details,
        )
        self.name = name
        self.available = list(available)


class UnknownPhaseError(OperationAbortedError):
    """Raised when a phase name is not part of the declared phase list."""

    def __init__(self, name: str, available: Sequence[str]) -> None:
        available_str = ", ".join(available) if available else "none"
        super().__init__(f"Unknown phase '{name}'. Available: {available_str}, all")
        self.name = name
        self.available = list(available)


class UnknownEntityTypeError(OperationAbortedError):
    """Raised when an entity type is not part of the catalog."""

    def __init__(self, name: str, available: Sequence[str]) -> None:
        available_str = ", ".join(available) if available else "none"
        super().__init__(f"Unknown entity type '{name}'. Available: {available_str}")
        self.name = name
        self.available = list(available)


class InvalidVolumeError(OperationAbortedError):
    """Raised when a volume configuration cannot be resolved."""


class ConnectivityError(OperationAbortedError):
    """Raised when the API or database is unreachable.

    Attributes:
        api_reachable: Whether the API health probe succeeded.
        db_reachable: Whether the database accepted a connection.

    Example:
        >>> raise ConnectivityError(api_reachable=True, db_reachable=False)
        # User sees: "Connectivity check failed: database unreachable"
    """

    def __init__(
        self,
        *,
        api_reachable: bool,
        db_reachable: bool,
        details: Sequence[str] = (),
    ) -> None:
        sides: list[str] = []
        if not api_reachable:
            sides.append("API")
        if not db_reachable:
            sides.append("database")
        message = f"Connectivity check failed: {' and '.join(sides) or 'unknown'} unreachable"
        if details:
            message = f"{message} ({'; '.join(details)})"
        super().__init__(message)
        self.api_reachable = api_reachable
        self.db_reachable = db_reachable
        self.details = list(details)


class CyclicDependencyError(OperationAbortedError):
    """Raised when the phase dependency graph contains a cycle."""

    def __init__(self, cycle: Sequence[str]) -> None:
        super().__init__(f"Cyclic phase dependency detected: {' -> '.join(cycle)}")
        self.cycle = list(cycle)


class ConfirmationRequiredError(OperationAbortedError):
    """Raised when a destructive operation on a production-like environment
    is attempted without explicit confirmation."""

    def __init__(self, environment: str, operation: str) -> None:
        super().__init__(
            f"Refusing to {operation} seed data in production-like environment "
            f"'{environment}' without confirmation (pass --confirm)"
        )
        self.environment = environment
        self.operation = operation


# ---------------------------------------------------------------------------
# Per-item errors (recorded, not fatal to the operation)
# ---------------------------------------------------------------------------


class DuplicateConstraintViolation(SeedlineError):
    """Raised when a unique value cannot be claimed.

    Caught internally to trigger regeneration; surfaced only when no
    unclaimed value can be produced.
    """

    def __init__(self, entity_type: str, field: str, value: object) -> None:
        super().__init__(f"Duplicate {entity_type}.{field} value {value!r}")
        self.entity_type = entity_type
        self.field = field
        self.value = value


class ValidationRejectedError(SeedlineError):
    """Raised when the backend keeps rejecting an entity after all retries.

    The message always names the entity type and the rejected fields, e.g.
    "Failed to create shift: clientId rejected after 4 attempts (Client not found)".
    """

    def __init__(
        self,
        entity_type: str,
        fields: Sequence[str],
        attempts: int,
        reason: str = "",
    ) -> None:
        field_str = ", ".join(fields) if fields else "payload"
        message = f"Failed to create {entity_type}: {field_str} rejected after {attempts} attempts"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.entity_type = entity_type
        self.fields = list(fields)
        self.attempts = attempts
        self.reason = reason


class MissingReferenceError(SeedlineError):
    """Raised when a required reference has no created target to point at."""

    def __init__(self, entity_type: str, field: str, target_type: str) -> None:
        super().__init__(
            f"Failed to create {entity_type}: no {target_type} available for required "
            f"reference {field}"
        )
        self.entity_type = entity_type
        self.field = field
        self.target_type = target_type


class BackendUnavailableError(SeedlineError):
    """Raised when the backend cannot be reached after transport retries."""


class BackendRequestError(SeedlineError):
    """Raised when a store read or delete returns an error status."""

    def __init__(
        self,
        operation: str,
        status_code: int,
        *,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(
            f"{operation} failed with HTTP {status_code}", internal_details=internal_details
        )
        self.operation = operation
        self.status_code = status_code


class UnexpectedResponseError(SeedlineError):
    """Raised when a store response body lacks the field the operation reads."""

    def __init__(self, operation: str, status_code: int, field: str) -> None:
        super().__init__(
            f"{operation} returned HTTP {status_code} without an integer '{field}' field"
        )
        self.operation = operation
        self.status_code = status_code
        self.field = field


class CleanupTypeFailure(SeedlineError):
    """Raised when removing seed data of one entity type fails."""

    def __init__(self, entity_type: str, reason: str) -> None:
        super().__init__(f"Cleanup of {entity_type} failed: {reason}")
        self.entity_type = entity_type
        self.reason = reason


class TestExecutionError(SeedlineError):
    """Raised inside an integration test when an expectation is not met."""

    __test__ = False

    def __init__(self, test_name: str, reason: str) -> None:
        super().__init__(f"{test_name}: {reason}")
        self.test_name = test_name
        self.reason = reason
