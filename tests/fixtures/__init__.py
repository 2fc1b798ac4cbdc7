"""
Centralized test fixtures for the relational item converter test suite.

This package provides reusable fixtures for testing, including:
- The company/department/employee metadata model
- A query executor answering from canned results
- Configuration samples

Usage:
    from fixtures import build_test_model, MappingQueryExecutor, ids

Or use the pytest fixtures in conftest.py which import from here.
"""

from .model_fixtures import (
    ADDRESS,
    CEO,
    COMPANY,
    CONTRACTOR,
    DEPARTMENT,
    EMPLOYEE,
    MANAGER,
    NAMESPACE,
    PACKAGE,
    TEST_MODEL_DESCRIPTORS,
    build_test_model,
    q,
)

from .executor_fixtures import (
    MappingQueryExecutor,
    UnexpectedQueryError,
    ids,
    rows,
)

from .config_fixtures import (
    MINIMAL_CONFIG,
    SAMPLE_CONFIG,
)

__all__ = [
    # Model
    "ADDRESS",
    "CEO",
    "COMPANY",
    "CONTRACTOR",
    "DEPARTMENT",
    "EMPLOYEE",
    "MANAGER",
    "NAMESPACE",
    "PACKAGE",
    "TEST_MODEL_DESCRIPTORS",
    "build_test_model",
    "q",
    # Executors
    "MappingQueryExecutor",
    "UnexpectedQueryError",
    "ids",
    "rows",
    # Config
    "MINIMAL_CONFIG",
    "SAMPLE_CONFIG",
]
