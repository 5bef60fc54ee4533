"""Shared test fixtures."""

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_logging():
    """CLI invocations configure structlog against the runner's streams."""
    yield
    structlog.reset_defaults()
