"""Integration testing against the live API.

This package provides:
- EndpointRegistry: declared endpoints per phase
- CoverageTracker: hit counts and coverage reports
- IntegrationTestRunner: test execution with request/response logging
- TestReporter: result filtering and output
"""

from __future__ import annotations

from seedline.integration.coverage import CoverageTracker, normalize_path
from seedline.integration.endpoints import Endpoint, EndpointRegistry, crud_endpoints
from seedline.integration.reporter import TestReporter
from seedline.integration.runner import (
    IntegrationTest,
    IntegrationTestRunner,
    TestSession,
    TestSkipped,
)

__all__ = [
    "CoverageTracker",
    "Endpoint",
    "EndpointRegistry",
    "IntegrationTest",
    "IntegrationTestRunner",
    "TestReporter",
    "TestSession",
    "TestSkipped",
    "crud_endpoints",
    "normalize_path",
]
