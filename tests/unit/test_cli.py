"""Unit tests for the seedline CLI."""

from __future__ import annotations

import json
from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import click
import pytest
from click.testing import CliRunner
from fakes import InMemoryBackend, StaticValidator

from seedline import __version__
from seedline.cli.commands.generate import parse_counts
from seedline.cli.main import cli
from seedline.config import EnvironmentConfig
from seedline.engine import SeedEngine

pytestmark = pytest.mark.unit


@pytest.fixture
def backend_engine(
    env: EnvironmentConfig, backend: InMemoryBackend
) -> Iterator[tuple[InMemoryBackend, MagicMock]]:
    """Patch SeedEngine.connect to return an engine over the in-memory backend."""
    engine = SeedEngine(
        env, backend, backend, catalog=backend.catalog, validator=StaticValidator(), seed=3
    )
    with patch("seedline.cli.options.SeedEngine.connect", return_value=engine) as connect:
        yield backend, connect


class TestCliGroup:
    """Tests for the top-level group."""

    def test_help_lists_commands(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        commands = ("generate", "test", "cleanup", "reset", "status", "validate", "preflight")
        for command in commands:
            assert command in result.output

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_unknown_environment_aborts(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["status", "--env", "qa"])
        assert result.exit_code == 2
        assert "Unknown environment 'qa'" in result.output


class TestGenerateCommand:
    """Tests for seedline generate."""

    def test_success(
        self, cli_runner: CliRunner, backend_engine: tuple[InMemoryBackend, MagicMock]
    ) -> None:
        backend, connect = backend_engine
        result = cli_runner.invoke(cli, ["generate", "--phase", "client-portal"])

        assert result.exit_code == 0, result.output
        assert "Generate completed" in result.output
        assert len(backend.seed_ids("client")) == 10
        connect.assert_called_once_with(None, seed=None)

    def test_counts_and_json(
        self, cli_runner: CliRunner, backend_engine: tuple[InMemoryBackend, MagicMock]
    ) -> None:
        result = cli_runner.invoke(
            cli,
            [
                "generate",
                "--phase",
                "client-portal",
                "--count",
                "organization=1",
                "--count",
                "client=2",
                "--format",
                "json",
            ],
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["outcome"] == "success"
        assert data["report"]["created"]["client-portal"] == {
            "organization": 1,
            "user": 0,
            "client": 2,
        }

    def test_volume_and_count_conflict(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["generate", "--volume", "small", "--count", "client=1"]
        )
        assert result.exit_code == 2
        assert "either --volume or --count" in result.output

    def test_failures_exit_one(
        self, cli_runner: CliRunner, backend_engine: tuple[InMemoryBackend, MagicMock]
    ) -> None:
        backend, _ = backend_engine
        backend.reject("user", "email", times=None)
        result = cli_runner.invoke(cli, ["generate", "--phase", "client-portal"])

        assert result.exit_code == 1
        assert "completed with failures" in result.output
        assert "Failed to create user" in result.output


class TestParseCounts:
    """Tests for --count parsing."""

    def test_pairs(self) -> None:
        assert parse_counts(("client=3", " shift = 4")) == {"client": 3, "shift": 4}

    @pytest.mark.parametrize("value", ["client", "=3", "client=many"])
    def test_malformed(self, value: str) -> None:
        with pytest.raises(click.BadParameter):
            parse_counts((value,))


class TestCleanupCommands:
    """Tests for seedline cleanup and reset."""

    def test_cleanup_type(
        self, cli_runner: CliRunner, backend_engine: tuple[InMemoryBackend, MagicMock]
    ) -> None:
        backend, _ = backend_engine
        backend.add("shift", {"seedPhase": "scheduling"}, seed=True)
        backend.add("shift", {})

        result = cli_runner.invoke(cli, ["cleanup", "--type", "shift"])

        assert result.exit_code == 0, result.output
        assert "Cleanup completed" in result.output
        assert backend.count("shift") == 1

    def test_reset_production_without_confirm_aborts(
        self,
        cli_runner: CliRunner,
        prod_env: EnvironmentConfig,
        backend: InMemoryBackend,
    ) -> None:
        engine = SeedEngine(prod_env, backend, backend, validator=StaticValidator())
        backend.add("client", {}, seed=True)

        with patch("seedline.cli.options.SeedEngine.connect", return_value=engine):
            result = cli_runner.invoke(cli, ["reset", "--env", "production-like"])

        assert result.exit_code == 2
        assert "--confirm" in result.output
        assert backend.count("client", is_seed_data=True) == 1

    def test_reset_dry_run_json(
        self, cli_runner: CliRunner, backend_engine: tuple[InMemoryBackend, MagicMock]
    ) -> None:
        backend, _ = backend_engine
        backend.add("client", {}, seed=True)

        result = cli_runner.invoke(cli, ["reset", "--dry-run", "--format", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["report"]["dry_run"] is True
        assert data["report"]["removed"]["client"] == 1
        assert backend.count("client", is_seed_data=True) == 1


class TestReportingCommands:
    """Tests for seedline status, test and preflight."""

    def test_status_table(
        self, cli_runner: CliRunner, backend_engine: tuple[InMemoryBackend, MagicMock]
    ) -> None:
        backend, _ = backend_engine
        backend.add("client", {}, seed=True)
        result = cli_runner.invoke(cli, ["status"])

        assert result.exit_code == 0, result.output
        assert "Seed records: 1" in result.output

    def test_test_json(
        self, cli_runner: CliRunner, backend_engine: tuple[InMemoryBackend, MagicMock]
    ) -> None:
        result = cli_runner.invoke(
            cli, ["test", "--phase", "client-portal", "--format", "json"]
        )

        data = json.loads(result.output)
        assert data["operation"] == "test"
        assert set(data["by_phase"]) == {"client-portal"}
        assert data["summary"]["total"] == 6
        assert "coverage" in data

    def test_preflight_failure_exits_one(
        self, cli_runner: CliRunner, env: EnvironmentConfig, backend: InMemoryBackend
    ) -> None:
        engine = SeedEngine(
            env, backend, backend, validator=StaticValidator(db_reachable=False)
        )
        with patch("seedline.cli.options.SeedEngine.connect", return_value=engine):
            result = cli_runner.invoke(cli, ["preflight"])

        assert result.exit_code == 1
        assert "unreachable" in result.output


class TestValidateCommand:
    """Tests for seedline validate."""

    def test_clean(
        self, cli_runner: CliRunner, backend_engine: tuple[InMemoryBackend, MagicMock]
    ) -> None:
        result = cli_runner.invoke(cli, ["validate"])

        assert result.exit_code == 0, result.output
        assert "Unresolved references: 0" in result.output

    def test_dangling_reference_exits_one(
        self, cli_runner: CliRunner, backend_engine: tuple[InMemoryBackend, MagicMock]
    ) -> None:
        backend, _ = backend_engine
        record = backend.add("client", {"organizationId": "gone"}, seed=True)

        result = cli_runner.invoke(
            cli, ["validate", "--phase", "client-portal", "--format", "json"]
        )

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["outcome"] == "completed_with_failures"
        assert data["report"]["violations"][0]["entity_id"] == record
