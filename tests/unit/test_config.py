"""Unit tests for environment and volume configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from seedline.config import (
    DEFAULT_ENVIRONMENTS,
    ConfigurationManager,
    EnvironmentConfig,
    VolumeConfiguration,
    VolumePreset,
    substitute_env_vars,
)
from seedline.entities import EntityCatalog
from seedline.errors import (
    ConfigurationError,
    InvalidVolumeError,
    OperationAbortedError,
    UnknownEnvironmentError,
)

pytestmark = pytest.mark.unit


class TestSubstituteEnvVars:
    """Tests for ${VAR} placeholder substitution."""

    def test_uses_environment_value(self) -> None:
        assert substitute_env_vars("${HOST}:1", {"HOST": "db"}) == "db:1"

    def test_falls_back_to_default(self) -> None:
        assert substitute_env_vars("${HOST:-localhost}", {}) == "localhost"

    def test_missing_without_default_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="HOST"):
            substitute_env_vars("${HOST}", {})

    def test_plain_string_unchanged(self) -> None:
        assert substitute_env_vars("http://api", {}) == "http://api"


class TestConfigurationManager:
    """Tests for environment resolution."""

    def test_resolves_named_environment(self) -> None:
        manager = ConfigurationManager(environ={})
        env = manager.resolve("staging")
        assert env.name == "staging"
        assert env.api_url == "https://staging.example.com/api"
        assert env.production_like is False

    def test_defaults_to_development(self) -> None:
        env = ConfigurationManager(environ={}).resolve()
        assert env.name == "development"
        assert env.api_url == "http://localhost:8080/api"

    def test_env_var_selects_environment(self) -> None:
        env = ConfigurationManager(environ={"SEEDLINE_ENV": "production-like"}).resolve()
        assert env.name == "production-like"
        assert env.production_like is True

    def test_placeholder_overrides_and_trailing_slash_stripped(self) -> None:
        manager = ConfigurationManager(environ={"SEEDLINE_API_URL": "http://api.test/v1/"})
        assert manager.resolve("development").api_url == "http://api.test/v1"

    def test_unknown_environment_names_available(self) -> None:
        manager = ConfigurationManager(environ={})
        with pytest.raises(UnknownEnvironmentError) as exc_info:
            manager.resolve("qa")
        assert "qa" in str(exc_info.value)
        assert exc_info.value.available == sorted(DEFAULT_ENVIRONMENTS)
        assert isinstance(exc_info.value, OperationAbortedError)

    def test_custom_table(self) -> None:
        custom = EnvironmentConfig(name="local", api_url="http://x", db_url="mongodb://y")
        manager = ConfigurationManager({"local": custom}, environ={})
        assert manager.available() == ["local"]
        assert manager.resolve("local") == custom

    def test_environment_config_is_frozen(self) -> None:
        env = DEFAULT_ENVIRONMENTS["development"]
        with pytest.raises(ValidationError):
            env.name = "other"  # type: ignore[misc]


class TestVolumeConfiguration:
    """Tests for volume presets and explicit counts."""

    def test_presets_scale_base_counts(self) -> None:
        catalog = EntityCatalog()
        small = VolumeConfiguration(preset=VolumePreset.SMALL).resolve(catalog, ["client"])
        large = VolumeConfiguration(preset=VolumePreset.LARGE).resolve(catalog, ["client"])
        assert small == {"client": 10}
        assert large == {"client": 200}

    def test_explicit_counts_default_other_types_to_zero(self) -> None:
        volume = VolumeConfiguration(counts={"client": 3})
        resolved = volume.resolve(EntityCatalog(), ["organization", "user", "client"])
        assert resolved == {"organization": 0, "user": 0, "client": 3}

    def test_explicit_counts_outside_plan_ignored(self) -> None:
        volume = VolumeConfiguration(counts={"shift": 4, "client": 1})
        assert volume.resolve(EntityCatalog(), ["client"]) == {"client": 1}

    def test_unknown_type_rejected(self) -> None:
        volume = VolumeConfiguration(counts={"spaceship": 1})
        with pytest.raises(InvalidVolumeError, match="spaceship"):
            volume.resolve(EntityCatalog(), ["client"])

    def test_negative_count_rejected(self) -> None:
        volume = VolumeConfiguration(counts={"client": -1})
        with pytest.raises(InvalidVolumeError, match="non-negative"):
            volume.resolve(EntityCatalog(), ["client"])

    def test_requires_exactly_one_source(self) -> None:
        with pytest.raises(ValidationError):
            VolumeConfiguration()
        with pytest.raises(ValidationError):
            VolumeConfiguration(preset=VolumePreset.SMALL, counts={"client": 1})

    def test_from_preset_unknown_name(self) -> None:
        with pytest.raises(InvalidVolumeError, match="huge"):
            VolumeConfiguration.from_preset("huge")

    def test_from_preset(self) -> None:
        assert VolumeConfiguration.from_preset("medium").preset is VolumePreset.MEDIUM
