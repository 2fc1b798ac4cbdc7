"""
Pytest configuration and fixtures for the test suite.

Defines markers for selective test execution:
    pytest -m unit          # Fast unit tests
    pytest -m integration   # Tests against a real (SQLite) database
    pytest -m resilience    # Cancellation, retry and failure isolation

Fixtures are centralized in tests/fixtures/ for reuse across all test modules.
"""

import pytest
import json
import logging
import sys
import os

# IMPORTANT: Patch tenacity's sleep function BEFORE any other imports
# This must happen before tenacity.Retrying class is defined (which captures defaults)
import tenacity.nap
tenacity.nap.sleep = lambda seconds: None

# Add src to path for imports
src_dir = os.path.join(os.path.dirname(__file__), '..', 'src')
if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

# Add tests directory to path for fixtures import
tests_dir = os.path.dirname(__file__)
if tests_dir not in sys.path:
    # Ensure src directory stays ahead of tests for module resolution
    sys.path.insert(1, tests_dir)

# Import centralized fixtures
from fixtures import (
    MappingQueryExecutor,
    MINIMAL_CONFIG,
    SAMPLE_CONFIG,
    build_test_model,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Integration tests against a real database")
    config.addinivalue_line("markers", "resilience: Cancellation, retry and failure isolation tests")


# =============================================================================
# Model Fixtures
# =============================================================================

@pytest.fixture
def test_model():
    """The company/department/employee metadata model."""
    return build_test_model()


@pytest.fixture
def executor():
    """Query executor answering from canned results; fails on unexpected SQL."""
    return MappingQueryExecutor()


@pytest.fixture
def converter(test_model, executor):
    """Sequential converter over the test model and the mapping executor."""
    from formats.sql import SQLToItemConverter
    return SQLToItemConverter(test_model, executor)


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def sample_config():
    """Sample conversion configuration dictionary."""
    return json.loads(json.dumps(SAMPLE_CONFIG))


@pytest.fixture
def minimal_config():
    """Minimal conversion configuration dictionary."""
    return json.loads(json.dumps(MINIMAL_CONFIG))


@pytest.fixture
def temp_config_file(tmp_path, sample_config):
    """Create a temporary configuration file for testing."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(sample_config, indent=2))
    return str(config_file)


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def restore_logging():
    """Remove handlers installed by setup_logging after the test."""
    root = logging.getLogger()
    level = root.level
    yield
    from core.logging_config import _clear_managed_handlers
    _clear_managed_handlers()
    root.setLevel(level)
