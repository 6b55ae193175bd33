"""Unit tests for the seedline exception hierarchy."""

from __future__ import annotations

import pytest

from seedline.errors import (
    BackendRequestError,
    CleanupTypeFailure,
    ConfirmationRequiredError,
    ConnectivityError,
    CyclicDependencyError,
    MissingReferenceError,
    OperationAbortedError,
    SeedlineError,
    UnknownEntityTypeError,
    UnknownPhaseError,
    ValidationRejectedError,
)
from seedline.models import OperationOutcome

pytestmark = pytest.mark.unit


class TestAbortErrors:
    """Errors raised before any state change."""

    @pytest.mark.parametrize(
        "exc",
        [
            UnknownPhaseError("billing", ["payroll"]),
            UnknownEntityTypeError("spaceship", ["client"]),
            ConnectivityError(api_reachable=False, db_reachable=True),
            CyclicDependencyError(["a", "b", "a"]),
            ConfirmationRequiredError("production-like", "reset"),
        ],
    )
    def test_are_aborts(self, exc: SeedlineError) -> None:
        assert isinstance(exc, OperationAbortedError)
        assert exc.user_message == str(exc)

    def test_connectivity_names_both_sides(self) -> None:
        exc = ConnectivityError(api_reachable=False, db_reachable=False, details=["refused"])
        assert str(exc) == "Connectivity check failed: API and database unreachable (refused)"

    def test_cycle_message(self) -> None:
        assert "a -> b -> a" in str(CyclicDependencyError(["a", "b", "a"]))

    def test_unknown_phase_lists_all(self) -> None:
        assert str(UnknownPhaseError("x", ["payroll"])).endswith("Available: payroll, all")


class TestItemErrors:
    """Errors recorded per entity or per type."""

    @pytest.mark.parametrize(
        "exc",
        [
            ValidationRejectedError("shift", ["clientId"], 4),
            MissingReferenceError("shift", "clientId", "client"),
            CleanupTypeFailure("shift", "HTTP 500"),
            BackendRequestError("DELETE /shifts", 500),
        ],
    )
    def test_are_not_aborts(self, exc: SeedlineError) -> None:
        assert not isinstance(exc, OperationAbortedError)

    def test_validation_message(self) -> None:
        exc = ValidationRejectedError("shift", ["clientId"], 4, "Client not found")
        assert str(exc) == (
            "Failed to create shift: clientId rejected after 4 attempts (Client not found)"
        )

    def test_validation_message_without_fields(self) -> None:
        assert "payload rejected" in str(ValidationRejectedError("client", [], 1))


class TestOperationOutcome:
    """Tests for outcome exit codes."""

    @pytest.mark.parametrize(
        ("outcome", "code"),
        [
            (OperationOutcome.SUCCESS, 0),
            (OperationOutcome.COMPLETED_WITH_FAILURES, 1),
            (OperationOutcome.ABORTED, 2),
        ],
    )
    def test_exit_codes(self, outcome: OperationOutcome, code: int) -> None:
        assert outcome.exit_code == code
