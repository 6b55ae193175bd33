"""Backend interfaces and the HTTP implementation.

The engine talks to the system under test through two narrow interfaces:
- EntityApi: create entities and issue arbitrary API calls
- EntityStore: read, count and delete records by seed marker

HttpBackend implements both over httpx. Transport failures and gateway
errors are retried with tenacity (exponential backoff with jitter and a
fixed attempt ceiling) before surfacing as BackendUnavailableError.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt
from tenacity import wait_exponential_jitter

from seedline.entities import SEED_FLAG, SEED_PHASE, EntityCatalog
from seedline.errors import (
    BackendRequestError,
    BackendUnavailableError,
    UnexpectedResponseError,
)
from seedline.observability import log_retry_attempt

if TYPE_CHECKING:
    from seedline.config import EnvironmentConfig

logger = structlog.get_logger(__name__)

TRANSIENT_STATUS_CODES = frozenset({502, 503, 504})


class ErrorKind(str, Enum):
    """Classification of a backend validation error."""

    REQUIRED = "required"
    FORMAT = "format"
    RANGE = "range"
    UNIQUE = "unique"
    REFERENCE = "reference"
    OTHER = "other"


# Backend error vocabularies (Mongoose validator kinds, JSON-schema keywords)
_KIND_ALIASES: dict[str, ErrorKind] = {
    "required": ErrorKind.REQUIRED,
    "missing": ErrorKind.REQUIRED,
    "format": ErrorKind.FORMAT,
    "regexp": ErrorKind.FORMAT,
    "pattern": ErrorKind.FORMAT,
    "cast": ErrorKind.FORMAT,
    "type": ErrorKind.FORMAT,
    "range": ErrorKind.RANGE,
    "enum": ErrorKind.RANGE,
    "min": ErrorKind.RANGE,
    "max": ErrorKind.RANGE,
    "minlength": ErrorKind.RANGE,
    "maxlength": ErrorKind.RANGE,
    "unique": ErrorKind.UNIQUE,
    "duplicate": ErrorKind.UNIQUE,
    "reference": ErrorKind.REFERENCE,
    "objectid": ErrorKind.REFERENCE,
    "not_found": ErrorKind.REFERENCE,
}


def classify_kind(raw: str | None) -> ErrorKind:
    if not raw:
        return ErrorKind.OTHER
    return _KIND_ALIASES.get(raw.lower().replace("-", "_"), ErrorKind.OTHER)


class FieldError(BaseModel):
    """One field-level error reported by the backend."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    field: str = Field(..., description="Offending field")
    kind: ErrorKind = Field(default=ErrorKind.OTHER, description="Error classification")
    message: str = Field(default="", description="Backend message")


class BackendResponse(BaseModel):
    """Normalized response from the backend.

    Attributes:
        status_code: HTTP status code
        body: Decoded JSON body, if any
        errors: Field-level validation errors (400/409/422 only)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int = Field(..., ge=100, le=599, description="HTTP status")
    body: Any = Field(default=None, description="Decoded body")
    errors: tuple[FieldError, ...] = Field(default=(), description="Field errors")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_validation_error(self) -> bool:
        return self.status_code in (400, 409, 422)

    @property
    def entity_id(self) -> str | None:
        """Id of a created entity, from ``id``/``_id`` or a ``data`` envelope."""
        body = self.body
        if isinstance(body, Mapping) and isinstance(body.get("data"), Mapping):
            body = body["data"]
        if isinstance(body, Mapping):
            for key in ("id", "_id"):
                if body.get(key) is not None:
                    return str(body[key])
        return None


def parse_field_errors(status_code: int, body: Any) -> tuple[FieldError, ...]:
    """Extract field errors from a validation response body.

    Accepts a list form ``{"errors": [{"field", "kind", "message"}]}``, a
    keyed form ``{"errors": {"email": {"kind", "message"}}}`` and a duplicate
    key form ``{"keyValue": {"email": "..."}}``.
    """
    if not isinstance(body, Mapping):
        return ()

    errors: list[FieldError] = []
    raw = body.get("errors")
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, Mapping) and item.get("field"):
                errors.append(
                    FieldError(
                        field=str(item["field"]),
                        kind=classify_kind(item.get("kind")),
                        message=str(item.get("message", "")),
                    )
                )
    elif isinstance(raw, Mapping):
        for field, detail in raw.items():
            detail = detail if isinstance(detail, Mapping) else {"message": str(detail)}
            errors.append(
                FieldError(
                    field=str(field),
                    kind=classify_kind(detail.get("kind")),
                    message=str(detail.get("message", "")),
                )
            )

    if status_code == 409:
        conflict_fields = list(body.get("keyValue", {}) or {})
        if body.get("field"):
            conflict_fields.append(str(body["field"]))
        errors = [e.model_copy(update={"kind": ErrorKind.UNIQUE}) for e in errors]
        known = {e.field for e in errors}
        errors.extend(
            FieldError(field=f, kind=ErrorKind.UNIQUE, message=str(body.get("message", "")))
            for f in conflict_fields
            if f not in known
        )

    return tuple(errors)


@runtime_checkable
class EntityApi(Protocol):
    """Write side of the system under test."""

    def create(self, entity_type: str, payload: Mapping[str, Any]) -> BackendResponse: ...

    def request(
        self, method: str, path: str, payload: Mapping[str, Any] | None = None
    ) -> BackendResponse: ...


@runtime_checkable
class EntityStore(Protocol):
    """Read and seed-cleanup side of the system under test.

    Implementations must only ever delete records flagged ``isSeedData=true``.
    """

    def list_records(
        self, entity_type: str, *, is_seed_data: bool | None = None
    ) -> list[dict[str, Any]]: ...

    def count(
        self,
        entity_type: str,
        *,
        is_seed_data: bool | None = None,
        phase: str | None = None,
    ) -> int: ...

    def delete_seed_records(self, entity_type: str, *, phase: str | None = None) -> int: ...


class TransportRetryConfig(BaseModel):
    """Retry policy for transport-level failures.

    Attributes:
        max_attempts: Attempt ceiling per request (1-10, default 3).
        initial_wait_seconds: Initial backoff wait.
        max_wait_seconds: Backoff cap.
        jitter_seconds: Random jitter range.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_attempts: int = Field(default=3, ge=1, le=10, description="Attempt ceiling")
    initial_wait_seconds: float = Field(default=0.5, ge=0.0, le=30.0, description="Initial wait")
    max_wait_seconds: float = Field(default=5.0, ge=0.0, le=60.0, description="Maximum wait")
    jitter_seconds: float = Field(default=0.5, ge=0.0, le=10.0, description="Jitter range")


class _TransientStatusError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"Transient HTTP status {status_code}")
        self.status_code = status_code


class HttpBackend:
    """EntityApi and EntityStore over the environment's REST API.

    Seed records are listed, counted and removed through the collection
    endpoints using the ``isSeedData`` and ``seedPhase`` query filters.

    Args:
        environment: Resolved environment configuration.
        catalog: Entity catalog mapping types to collections.
        retry: Transport retry policy.
        headers: Extra request headers (e.g., an Authorization token).
        transport: Optional httpx transport (tests use httpx.MockTransport).

    Example:
        >>> with HttpBackend(env, EntityCatalog()) as backend:
        ...     backend.create("client", {"firstName": "Ada"})
    """

    def __init__(
        self,
        environment: EnvironmentConfig,
        catalog: EntityCatalog,
        *,
        retry: TransportRetryConfig | None = None,
        headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.catalog = catalog
        self.retry = retry or TransportRetryConfig()
        self._client = httpx.Client(
            base_url=environment.api_url,
            timeout=environment.timeout_seconds,
            headers=dict(headers or {}),
            transport=transport,
        )
        self._log = logger.bind(environment=environment.name, api_url=environment.api_url)

    def __enter__(self) -> HttpBackend:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # -- EntityApi ---------------------------------------------------------

    def create(self, entity_type: str, payload: Mapping[str, Any]) -> BackendResponse:
        spec = self.catalog.get(entity_type)
        return self.request("POST", spec.path, payload)

    def request(
        self, method: str, path: str, payload: Mapping[str, Any] | None = None
    ) -> BackendResponse:
        response = self._send(method, path, json=dict(payload) if payload is not None else None)
        body = _decode(response)
        errors = parse_field_errors(response.status_code, body) if response.status_code in (
            400,
            409,
            422,
        ) else ()
        return BackendResponse(status_code=response.status_code, body=body, errors=errors)

    # -- EntityStore -------------------------------------------------------

    def list_records(
        self, entity_type: str, *, is_seed_data: bool | None = None
    ) -> list[dict[str, Any]]:
        spec = self.catalog.get(entity_type)
        response = self._checked("GET", spec.path, params=_filters(is_seed_data, None))
        body = _decode(response)
        if isinstance(body, Mapping):
            body = body.get("data", [])
        return [dict(item) for item in body or [] if isinstance(item, Mapping)]

    def count(
        self,
        entity_type: str,
        *,
        is_seed_data: bool | None = None,
        phase: str | None = None,
    ) -> int:
        spec = self.catalog.get(entity_type)
        response = self._checked(
            "GET", f"{spec.path}/count", params=_filters(is_seed_data, phase)
        )
        return _int_field(response, "count", f"GET {spec.path}/count")

    def delete_seed_records(self, entity_type: str, *, phase: str | None = None) -> int:
        spec = self.catalog.get(entity_type)
        response = self._checked("DELETE", spec.path, params=_filters(True, phase))
        return _int_field(response, "deleted", f"DELETE {spec.path}")

    # -- transport ---------------------------------------------------------

    def _checked(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = self._send(method, path, **kwargs)
        if response.is_error:
            raise BackendRequestError(
                f"{method} {path}", response.status_code, internal_details=response.text[:500]
            )
        return response

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        operation = f"{method} {path}"
        attempt = 0
        try:
            for attempt_state in Retrying(
                retry=retry_if_exception_type((httpx.TransportError, _TransientStatusError)),
                stop=stop_after_attempt(self.retry.max_attempts),
                wait=wait_exponential_jitter(
                    initial=self.retry.initial_wait_seconds,
                    max=self.retry.max_wait_seconds,
                    jitter=self.retry.jitter_seconds,
                ),
                reraise=False,
            ):
                with attempt_state:
                    attempt = attempt_state.retry_state.attempt_number
                    try:
                        response = self._client.request(method, path, **kwargs)
                        if response.status_code in TRANSIENT_STATUS_CODES:
                            raise _TransientStatusError(response.status_code)
                        return response
                    except (httpx.TransportError, _TransientStatusError) as exc:
                        if attempt < self.retry.max_attempts:
                            log_retry_attempt(
                                operation=operation,
                                attempt=attempt,
                                max_attempts=self.retry.max_attempts,
                                error=str(exc),
                            )
                        raise
        except RetryError as exc:
            cause = exc.last_attempt.exception()
            raise BackendUnavailableError(
                f"Backend unavailable for {operation} after {attempt} attempts",
                internal_details=repr(cause),
            ) from cause

        raise RuntimeError("Unexpected retry state")  # pragma: no cover


def _filters(is_seed_data: bool | None, phase: str | None) -> dict[str, str]:
    params: dict[str, str] = {}
    if is_seed_data is not None:
        params[SEED_FLAG] = "true" if is_seed_data else "false"
    if phase is not None:
        params[SEED_PHASE] = phase
    return params


def _int_field(response: httpx.Response, field: str, operation: str) -> int:
    body = _decode(response)
    value = body.get(field) if isinstance(body, Mapping) else None
    if isinstance(value, bool) or not isinstance(value, int):
        raise UnexpectedResponseError(operation, response.status_code, field)
    return value


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return {"message": response.text}
