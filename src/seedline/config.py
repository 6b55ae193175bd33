"""Environment and volume configuration.

Resolves a target environment name to its API and database endpoints from a
fixed configuration table, and resolves volume presets or explicit count maps
to per-entity-type target counts.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from seedline.errors import ConfigurationError, InvalidVolumeError, UnknownEnvironmentError

if TYPE_CHECKING:
    from seedline.entities import EntityCatalog

logger = structlog.get_logger(__name__)

ENV_VAR_NAME = "SEEDLINE_ENV"
DEFAULT_ENVIRONMENT = "development"

_PLACEHOLDER = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}")


class EnvironmentConfig(BaseModel):
    """Connection settings for one target environment.

    Attributes:
        name: Environment name (e.g., "development")
        api_url: Base URL of the API under test
        db_url: Database URL used for reachability checks
        production_like: Destructive operations require confirmation
        timeout_seconds: Per-request and per-check timeout
        max_retries: Resubmissions allowed after a validation rejection
        concurrency: Parallel entity-creation calls within one entity type

    Example:
        >>> env = EnvironmentConfig(
        ...     name="staging",
        ...     api_url="https://staging.example.com/api",
        ...     db_url="mongodb://staging-db:27017/app",
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Environment name")
    api_url: str = Field(..., min_length=1, description="API base URL")
    db_url: str = Field(..., min_length=1, description="Database URL")
    production_like: bool = Field(
        default=False, description="Require confirmation for destructive operations"
    )
    timeout_seconds: int = Field(default=10, ge=1, le=300, description="Request timeout")
    max_retries: int = Field(default=3, ge=0, le=10, description="Validation retry bound")
    concurrency: int = Field(default=1, ge=1, le=32, description="Parallel creation calls")


DEFAULT_ENVIRONMENTS: dict[str, EnvironmentConfig] = {
    "development": EnvironmentConfig(
        name="development",
        api_url="${SEEDLINE_API_URL:-http://localhost:8080/api}",
        db_url="${SEEDLINE_DB_URL:-mongodb://localhost:27017/seedline_dev}",
    ),
    "staging": EnvironmentConfig(
        name="staging",
        api_url="${SEEDLINE_STAGING_API_URL:-https://staging.example.com/api}",
        db_url="${SEEDLINE_STAGING_DB_URL:-mongodb://staging-db:27017/seedline}",
        timeout_seconds=20,
        concurrency=4,
    ),
    "production-like": EnvironmentConfig(
        name="production-like",
        api_url="${SEEDLINE_PRODLIKE_API_URL:-https://preprod.example.com/api}",
        db_url="${SEEDLINE_PRODLIKE_DB_URL:-mongodb://preprod-db:27017/seedline}",
        production_like=True,
        timeout_seconds=30,
        concurrency=4,
    ),
}


def substitute_env_vars(value: str, environ: Mapping[str, str]) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` placeholders.

    Raises:
        ConfigurationError: If a variable is unset and has no default.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group("name")
        if name in environ:
            return environ[name]
        default = match.group("default")
        if default is None:
            raise ConfigurationError(f"Environment variable '{name}' is not set")
        return default

    return _PLACEHOLDER.sub(_replace, value)


class ConfigurationManager:
    """Resolves environment names against a fixed configuration table.

    Args:
        environments: Configuration table; defaults to DEFAULT_ENVIRONMENTS.
        environ: Process environment used for placeholder substitution and the
            SEEDLINE_ENV fallback; defaults to os.environ.
    """

    def __init__(
        self,
        environments: Mapping[str, EnvironmentConfig] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        table = environments if environments is not None else DEFAULT_ENVIRONMENTS
        self._environments = dict(table)
        self._environ = environ if environ is not None else os.environ

    def available(self) -> list[str]:
        """List registered environment names."""
        return sorted(self._environments)

    def resolve(self, name: str | None = None) -> EnvironmentConfig:
        """Resolve an environment name to its configuration.

        Args:
            name: Environment name. Falls back to SEEDLINE_ENV, then "development".

        Returns:
            EnvironmentConfig with placeholders substituted.

        Raises:
            UnknownEnvironmentError: If the name is not registered.
            ConfigurationError: If a required environment variable is unset.
        """
        env_name = name or self._environ.get(ENV_VAR_NAME) or DEFAULT_ENVIRONMENT
        config = self._environments.get(env_name)
        if config is None:
            raise UnknownEnvironmentError(env_name, self.available())

        resolved = config.model_copy(
            update={
                "api_url": substitute_env_vars(config.api_url, self._environ).rstrip("/"),
                "db_url": substitute_env_vars(config.db_url, self._environ),
            }
        )
        logger.debug(
            "environment_resolved",
            environment=env_name,
            api_url=resolved.api_url,
            production_like=resolved.production_like,
        )
        return resolved


class VolumePreset(str, Enum):
    """Named volume presets and their multiplier over catalog base counts."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"

    @property
    def multiplier(self) -> int:
        return {"small": 1, "medium": 5, "large": 20}[self.value]


class VolumeConfiguration(BaseModel):
    """Target entity counts, as a preset or an explicit per-type map.

    Example:
        >>> VolumeConfiguration(preset=VolumePreset.MEDIUM)
        >>> VolumeConfiguration(counts={"client": 10, "shift": 40})
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    preset: VolumePreset | None = Field(default=None, description="Named preset")
    counts: dict[str, int] | None = Field(default=None, description="Explicit per-type counts")

    @model_validator(mode="after")
    def _exactly_one_source(self) -> VolumeConfiguration:
        if (self.preset is None) == (self.counts is None):
            raise ValueError("Specify exactly one of 'preset' or 'counts'")
        return self

    @classmethod
    def from_preset(cls, name: str) -> VolumeConfiguration:
        """Build a configuration from a preset name.

        Raises:
            InvalidVolumeError: If the preset name is unknown.
        """
        try:
            return cls(preset=VolumePreset(name))
        except ValueError:
            available = ", ".join(p.value for p in VolumePreset)
            raise InvalidVolumeError(
                f"Unknown volume preset '{name}'. Available: {available}"
            ) from None

    def resolve(self, catalog: EntityCatalog, entity_types: Iterable[str]) -> dict[str, int]:
        """Resolve target counts for the given entity types.

        Args:
            catalog: Entity catalog providing base counts.
            entity_types: Entity types in the planned phases, in creation order.

        Returns:
            Mapping of entity type to target count, in creation order.

        Raises:
            InvalidVolumeError: On unknown entity types or negative counts.
        """
        planned = list(entity_types)

        if self.preset is not None:
            return {t: catalog.get(t).base_count * self.preset.multiplier for t in planned}

        counts = self.counts or {}
        for entity_type, count in counts.items():
            if entity_type not in catalog:
                raise InvalidVolumeError(
                    f"Unknown entity type '{entity_type}' in volume configuration. "
                    f"Available: {', '.join(catalog.names())}"
                )
            if count < 0:
                raise InvalidVolumeError(
                    f"Volume for '{entity_type}' must be non-negative, got {count}"
                )

        ignored = sorted(set(counts) - set(planned))
        if ignored:
            logger.warning("volume_types_outside_plan", entity_types=ignored)

        return {t: counts.get(t, 0) for t in planned}
