"""
Centralized configuration constants for the relational item converter.

This module provides a single source of truth for all configuration constants,
default values, and limits used throughout the application.
"""

from typing import Final


# ============================================================================
# Processing Limits
# ============================================================================

class ProcessingLimits:
    """Processing, concurrency and traversal limits."""

    DEFAULT_MAX_WORKERS: Final[int] = 1
    """Entity types converted concurrently (1 = sequential)."""

    DEFAULT_MAX_IN_FLIGHT_QUERIES: Final[int] = 4
    """Upper bound on queries running against the source database at once."""

    DEFAULT_FETCH_BATCH_SIZE: Final[int] = 500
    """Rows fetched per round trip when streaming an attribute query."""

    MAX_INHERITANCE_DEPTH: Final[int] = 12
    """Maximum superclass chain depth before the model is rejected."""

    PROGRESS_MIN_ENTITY_TYPES: Final[int] = 10
    """Progress bars are suppressed for models smaller than this."""


# ============================================================================
# Naming Conventions
# ============================================================================

class NamingConventions:
    """Column and table naming used by the source schema."""

    ID_SUFFIX: Final[str] = "_id"
    """Suffix of primary key (``<Type>_id``) and foreign key (``<field>_id``) columns."""

    INDIRECTION_SEPARATOR: Final[str] = "_"
    """Separator between type names in a many-to-many indirection table name."""

    OVERRIDE_KEY_SEPARATOR: Final[str] = ","
    """Separator used by ``"Source,Target"`` keys in JSON override maps."""


# ============================================================================
# Database Access
# ============================================================================

class DatabaseDefaults:
    """Connection handling defaults for the DB-API adapter."""

    CONNECT_RETRIES: Final[int] = 3
    """Attempts made to open a connection before giving up."""

    RETRY_WAIT_SECONDS: Final[float] = 1.0
    """Initial wait between connection attempts (exponential backoff)."""

    MAX_RETRY_WAIT_SECONDS: Final[float] = 10.0
    """Cap on the wait between connection attempts."""


# ============================================================================
# Logging
# ============================================================================

class LoggingConfig:
    """Logging configuration."""

    DEFAULT_LOG_LEVEL: Final[str] = "INFO"
    """Default logging level."""

    LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    """Default log format string."""

    DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
    """Default date format for logs."""

    DEFAULT_FORMAT_STYLE: Final[str] = "text"
    """Human-readable formatter style."""

    JSON_DATE_FORMAT: Final[str] = "%Y-%m-%dT%H:%M:%S.%fZ"
    """ISO-8601 timestamp format for structured logs."""

    SUPPORTED_FORMATS: Final[tuple[str, ...]] = ("text", "json")
    """Supported formatter styles."""

    MAX_LOG_FILE_MB: Final[int] = 10
    """Maximum log file size before rotation (MB)."""

    LOG_BACKUP_COUNT: Final[int] = 5
    """Number of backup log files to keep."""


# ============================================================================
# Diagnostic Events
# ============================================================================

class LogEvents:
    """Values of the ``event`` field attached to structured log records."""

    QUERY_ISSUED: Final[str] = "query_issued"
    ENTITY_TYPE_SKIPPED: Final[str] = "entity_type_skipped"
    FIELD_SKIPPED: Final[str] = "field_skipped"
    ROW_SKIPPED: Final[str] = "row_skipped"
    CONVERSION_COMPLETE: Final[str] = "conversion_complete"
