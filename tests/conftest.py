"""Pytest configuration for seedline tests.

This module provides:
- Structured logging configuration for tests
- Environment, catalog and in-memory backend fixtures
- CLI runner fixture
"""

from __future__ import annotations

import sys
from collections.abc import Generator

import pytest
import structlog
from click.testing import CliRunner
from fakes import InMemoryBackend, StaticValidator

from seedline.config import EnvironmentConfig
from seedline.context import RunContext
from seedline.entities import EntityCatalog
from seedline.phases import PhaseDependencyGraph


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> Generator[None, None, None]:
    """Configure structlog for testing.

    Resets structlog configuration before each test so that a test running
    ``configure_logging`` (for example through ``--log-level``) cannot leak
    its processors into the next one.
    """
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def env() -> EnvironmentConfig:
    """Development-style environment pointing at local services."""
    return EnvironmentConfig(
        name="development",
        api_url="http://localhost:8080/api",
        db_url="mongodb://localhost:27017/seedline_test",
    )


@pytest.fixture
def prod_env() -> EnvironmentConfig:
    """Production-like environment that requires confirmation."""
    return EnvironmentConfig(
        name="production-like",
        api_url="https://preprod.example.com/api",
        db_url="mongodb://preprod-db:27017/seedline",
        production_like=True,
    )


@pytest.fixture
def catalog() -> EntityCatalog:
    return EntityCatalog()


@pytest.fixture
def graph() -> PhaseDependencyGraph:
    return PhaseDependencyGraph()


@pytest.fixture
def backend(catalog: EntityCatalog) -> InMemoryBackend:
    """Empty in-memory backend over the default catalog."""
    return InMemoryBackend(catalog)


@pytest.fixture
def context(env: EnvironmentConfig) -> RunContext:
    return RunContext(env)


@pytest.fixture
def validator() -> StaticValidator:
    """Connectivity validator reporting both sides reachable."""
    return StaticValidator()
