"""
Core utilities and cross-cutting concerns for the relational item converter.

This module provides shared infrastructure components used by the converter:

- Error hierarchy (ConversionError and its subclasses)
- Cancellation handling (CancellationToken, CancellationTokenSource)
- Query execution over DB-API connections (QueryExecutor, DBAPIQueryExecutor)
- Configuration (ConversionConfig, load_config)
- Logging setup (setup_logging, JSONFormatter)

Usage:
    from core import DBAPIQueryExecutor, CancellationTokenSource, ConversionConfig
    from core.errors import ShapeError
    from core.logging_config import setup_logging
"""

from .errors import (
    AmbiguityError,
    ConfigurationError,
    ConnectivityError,
    ConversionError,
    MetadataError,
    ShapeError,
)

from .cancellation import (
    CancellationToken,
    CancellationTokenSource,
    NeverCancelledToken,
    OperationCancelledException,
)

from .database import (
    DBAPIQueryExecutor,
    QueryExecutor,
    QueryResult,
)

from .config import (
    ConversionConfig,
    DatabaseSettings,
    load_config,
)

from .logging_config import (
    JSONFormatter,
    setup_logging,
)

__all__ = [
    # Errors
    "AmbiguityError",
    "ConfigurationError",
    "ConnectivityError",
    "ConversionError",
    "MetadataError",
    "ShapeError",
    # Cancellation
    "CancellationToken",
    "CancellationTokenSource",
    "NeverCancelledToken",
    "OperationCancelledException",
    # Query execution
    "DBAPIQueryExecutor",
    "QueryExecutor",
    "QueryResult",
    # Configuration
    "ConversionConfig",
    "DatabaseSettings",
    "load_config",
    # Logging
    "JSONFormatter",
    "setup_logging",
]
