"""seedline: seed data generation and integration-test orchestration.

This package provides:
- SeedEngine: generate, test, cleanup, reset, status, validate and preflight operations
- PhaseDependencyGraph: dependency-ordered phase planning
- SeedDataGenerator: Faker-backed, cross-referenced entity creation
- DataManagementService: seed-only reset and selective cleanup
- IntegrationTestRunner / CoverageTracker / TestReporter: API testing
"""

from __future__ import annotations

__version__ = "0.1.0"

from seedline.config import (
    ConfigurationManager,
    EnvironmentConfig,
    VolumeConfiguration,
    VolumePreset,
)
from seedline.connectivity import ConnectivityValidator
from seedline.context import RunContext
from seedline.engine import SeedEngine
from seedline.entities import EntityCatalog, EntityTypeSpec, ReferenceSpec, SeedEntity
from seedline.errors import (
    CleanupTypeFailure,
    ConfirmationRequiredError,
    ConnectivityError,
    CyclicDependencyError,
    DuplicateConstraintViolation,
    OperationAbortedError,
    SeedlineError,
    TestExecutionError,
    UnknownEnvironmentError,
    UnknownPhaseError,
    ValidationRejectedError,
)
from seedline.generator import SeedDataGenerator
from seedline.integration import CoverageTracker, IntegrationTestRunner, TestReporter
from seedline.management import DataManagementService
from seedline.models import OperationOutcome, OperationResult
from seedline.phases import Phase, PhaseDependencyGraph
from seedline.references import ReferentialIntegrityTracker
from seedline.registry import EntityIdentityRegistry
from seedline.retry import ValidationRetryEngine

__all__ = [
    "__version__",
    # Engine
    "SeedEngine",
    "OperationOutcome",
    "OperationResult",
    "RunContext",
    # Configuration
    "ConfigurationManager",
    "EnvironmentConfig",
    "VolumeConfiguration",
    "VolumePreset",
    # Planning and generation
    "Phase",
    "PhaseDependencyGraph",
    "EntityCatalog",
    "EntityTypeSpec",
    "ReferenceSpec",
    "SeedEntity",
    "EntityIdentityRegistry",
    "ReferentialIntegrityTracker",
    "ValidationRetryEngine",
    "SeedDataGenerator",
    "DataManagementService",
    "ConnectivityValidator",
    # Integration testing
    "CoverageTracker",
    "IntegrationTestRunner",
    "TestReporter",
    # Errors
    "SeedlineError",
    "OperationAbortedError",
    "UnknownEnvironmentError",
    "UnknownPhaseError",
    "ConnectivityError",
    "CyclicDependencyError",
    "ConfirmationRequiredError",
    "DuplicateConstraintViolation",
    "ValidationRejectedError",
    "CleanupTypeFailure",
    "TestExecutionError",
]
