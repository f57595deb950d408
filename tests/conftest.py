# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

import os
from collections.abc import Generator
from typing import Any

import pytest

# Actor modules set up the broker at import time
os.environ.setdefault("DRAMATIQ_TEST_MODE", "true")


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "development",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "REDIS_HOST": "localhost",
        "REDIS_PORT": "6379",
        "DRAMATIQ_TEST_MODE": "true",
    }


@pytest.fixture
def clean_settings() -> Generator[None, None, None]:
    """Clear the cached settings before and after a test."""
    from src.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_user_id() -> str:
    """Provide a sample user ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def sample_school_id() -> str:
    """Provide a sample school ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def sample_event_metadata() -> dict[str, Any]:
    """Provide sample event metadata for testing."""
    return {
        "assignmentId": "asg-42",
        "title": "Fractions Worksheet",
        "score": 45,
        "hoursRemaining": 12,
    }
