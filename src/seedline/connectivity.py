"""Connectivity gate for generate, test and cleanup operations.

Two checks run before any operation touches the backend:
- ApiCheck: HTTP GET against the API health endpoint
- DatabaseCheck: TCP connection to the database host

Both must pass; otherwise the operation aborts with ConnectivityError before
any mutating call is issued.
"""

from __future__ import annotations

import socket
import time
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlparse

import httpx
import structlog

from seedline.config import EnvironmentConfig
from seedline.errors import ConnectivityError
from seedline.models import CheckResult, CheckStatus, ConnectivityResult

logger = structlog.get_logger(__name__)

HEALTH_PATH = "/health"

DEFAULT_PORTS: dict[str, int] = {
    "mongodb": 27017,
    "mongodb+srv": 27017,
    "postgresql": 5432,
    "postgres": 5432,
    "mysql": 3306,
    "redis": 6379,
    "http": 80,
    "https": 443,
}


class BaseCheck(ABC):
    """Base class for connectivity checks.

    Provides timing, error handling and logging around ``_execute``.

    Example:
        >>> class AlwaysUp(BaseCheck):
        ...     def _execute(self) -> CheckResult:
        ...         return self._make_result(CheckStatus.PASSED, "up")
    """

    def __init__(self, name: str, timeout_seconds: int = 10) -> None:
        self.name = name
        self.timeout_seconds = timeout_seconds
        self._log = logger.bind(check=name)

    def run(self) -> CheckResult:
        """Run the check with timing and error handling.

        Returns:
            CheckResult with status, message, and duration.
        """
        start_time = time.monotonic()
        timestamp = datetime.now(UTC)
        self._log.debug("check_started", timeout_seconds=self.timeout_seconds)

        try:
            result = self._execute()
        except Exception as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            self._log.error("check_error", error=str(e))
            return CheckResult(
                name=self.name,
                status=CheckStatus.ERROR,
                message=f"Check failed with error: {type(e).__name__}",
                details={"error": str(e), "error_type": type(e).__name__},
                duration_ms=duration_ms,
                timestamp=timestamp,
            )

        duration_ms = int((time.monotonic() - start_time) * 1000)
        final_result = result.model_copy(
            update={"duration_ms": duration_ms, "timestamp": timestamp}
        )
        self._log.info(
            "check_completed", status=final_result.status.value, duration_ms=duration_ms
        )
        return final_result

    @abstractmethod
    def _execute(self) -> CheckResult:
        """Execute the actual check logic.

        Raises:
            Any exception will be caught by run() and converted to ERROR status.
        """

    def _make_result(
        self,
        status: CheckStatus,
        message: str = "",
        details: dict[str, Any] | None = None,
    ) -> CheckResult:
        return CheckResult(name=self.name, status=status, message=message, details=details or {})


class ApiCheck(BaseCheck):
    """Checks that the API answers its health endpoint.

    Any response below 500 counts as reachable: an unauthenticated 401 still
    proves the API is up.

    Args:
        api_url: API base URL.
        health_path: Path probed relative to the base URL.
        timeout_seconds: Request timeout.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_url: str,
        *,
        health_path: str = HEALTH_PATH,
        timeout_seconds: int = 10,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(name="api", timeout_seconds=timeout_seconds)
        self.url = f"{api_url.rstrip('/')}{health_path}"
        self.transport = transport

    def _execute(self) -> CheckResult:
        details: dict[str, Any] = {"url": self.url}
        try:
            with httpx.Client(timeout=self.timeout_seconds, transport=self.transport) as client:
                response = client.get(self.url)
        except httpx.TimeoutException:
            return self._make_result(
                CheckStatus.FAILED, f"API health check timed out at {self.url}", details
            )
        except httpx.TransportError as e:
            return self._make_result(
                CheckStatus.FAILED,
                f"Cannot connect to API at {self.url}",
                {**details, "error": str(e)},
            )

        details["status_code"] = response.status_code
        if response.status_code >= 500:
            return self._make_result(
                CheckStatus.FAILED,
                f"API unhealthy at {self.url} (HTTP {response.status_code})",
                details,
            )
        return self._make_result(CheckStatus.PASSED, f"API reachable at {self.url}", details)


class DatabaseCheck(BaseCheck):
    """Checks that the database host accepts TCP connections.

    Attributes:
        host: Database host parsed from the URL
        port: Database port, or the scheme's default port
    """

    def __init__(self, db_url: str, timeout_seconds: int = 10) -> None:
        super().__init__(name="database", timeout_seconds=timeout_seconds)
        parsed = urlparse(db_url)
        self.scheme = parsed.scheme
        self.host = parsed.hostname or "localhost"
        self.port = parsed.port or DEFAULT_PORTS.get(parsed.scheme, 27017)

    def _execute(self) -> CheckResult:
        details: dict[str, Any] = {"scheme": self.scheme, "host": self.host, "port": self.port}

        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            sock.settimeout(self.timeout_seconds)
            result = sock.connect_ex((self.host, self.port))
            sock.close()

            if result != 0:
                return self._make_result(
                    CheckStatus.FAILED,
                    f"Cannot connect to database at {self.host}:{self.port}",
                    details,
                )

        except socket.gaierror as e:
            return self._make_result(
                CheckStatus.FAILED,
                f"DNS resolution failed for {self.host}",
                {**details, "error": str(e)},
            )
        except TimeoutError:
            return self._make_result(
                CheckStatus.FAILED,
                f"Connection timed out to {self.host}:{self.port}",
                details,
            )

        return self._make_result(
            CheckStatus.PASSED, f"Database reachable at {self.host}:{self.port}", details
        )


class ConnectivityValidator:
    """Runs the API and database checks for an environment.

    Args:
        api_transport: Optional httpx transport for the API check.
        health_path: API health endpoint path.

    Example:
        >>> validator = ConnectivityValidator()
        >>> result = validator.validate(env)
        >>> result.api_reachable, result.db_reachable
        (True, True)
    """

    def __init__(
        self,
        *,
        api_transport: httpx.BaseTransport | None = None,
        health_path: str = HEALTH_PATH,
    ) -> None:
        self.api_transport = api_transport
        self.health_path = health_path

    def checks(self, environment: EnvironmentConfig) -> tuple[BaseCheck, BaseCheck]:
        return (
            ApiCheck(
                environment.api_url,
                health_path=self.health_path,
                timeout_seconds=environment.timeout_seconds,
                transport=self.api_transport,
            ),
            DatabaseCheck(environment.db_url, timeout_seconds=environment.timeout_seconds),
        )

    def validate(self, environment: EnvironmentConfig) -> ConnectivityResult:
        """Check both sides of an environment; never raises."""
        api_check, db_check = self.checks(environment)
        api_result = api_check.run()
        db_result = db_check.run()

        result = ConnectivityResult(
            environment=environment.name,
            api_reachable=api_result.passed,
            db_reachable=db_result.passed,
            checks=[api_result, db_result],
        )
        logger.info(
            "connectivity_validated",
            environment=environment.name,
            api_reachable=result.api_reachable,
            db_reachable=result.db_reachable,
        )
        return result

    def ensure(self, environment: EnvironmentConfig) -> ConnectivityResult:
        """Validate and fail fast when either side is unreachable.

        Raises:
            ConnectivityError: Naming the unreachable side(s).
        """
        result = self.validate(environment)
        if not result.passed:
            raise ConnectivityError(
                api_reachable=result.api_reachable,
                db_reachable=result.db_reachable,
                details=[c.message for c in result.checks if not c.passed],
            )
        return result
