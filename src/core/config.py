"""
Conversion job configuration.

Configuration is read from a JSON document with ``conversion``, ``database``
and ``logging`` sections; every key is optional and falls back to the
defaults in ``constants``.

Usage:
    from core.config import ConversionConfig, load_config

    config = ConversionConfig.from_file("config.json")
    resolver = IndirectionTableResolver(config.indirection_overrides)
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from constants import DatabaseDefaults, NamingConventions, ProcessingLimits
from core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load a JSON configuration file.

    Raises:
        ConfigurationError: If the file is missing or not a JSON object.
    """
    if not config_path:
        raise ConfigurationError("config_path cannot be empty")

    path = Path(config_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in configuration file {config_path}: line {e.lineno}, column {e.colno}: {e.msg}"
        )

    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a JSON object")
    return config


def _positive_int(section: Dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"'{key}' must be a positive integer, got {value!r}")
    return value


def _non_negative_float(section: Dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigurationError(f"'{key}' must be a non-negative number, got {value!r}")
    return float(value)


def parse_indirection_overrides(raw: Dict[str, str]) -> Dict[Tuple[str, str], str]:
    """Turn ``{"Source,Target": "table"}`` into ``{("Source", "Target"): "table"}``."""
    overrides: Dict[Tuple[str, str], str] = {}
    for key, table in raw.items():
        parts = [p.strip() for p in key.split(NamingConventions.OVERRIDE_KEY_SEPARATOR)]
        if len(parts) != 2 or not all(parts) or not table:
            raise ConfigurationError(
                f"Invalid indirection override '{key}': expected 'Source{NamingConventions.OVERRIDE_KEY_SEPARATOR}Target'"
            )
        overrides[(parts[0], parts[1])] = table
    return overrides


@dataclass
class DatabaseSettings:
    """Connection handling settings for the DB-API adapter."""
    connect_retries: int = DatabaseDefaults.CONNECT_RETRIES
    retry_wait_seconds: float = DatabaseDefaults.RETRY_WAIT_SECONDS


@dataclass
class ConversionConfig:
    """
    Settings for one conversion job.

    Attributes:
        namespace: Prefix for item class names.
        max_workers: Entity types converted concurrently.
        max_in_flight_queries: Bound on concurrent source queries.
        fetch_batch_size: Rows fetched per round trip for attribute queries.
        show_progress: Show a progress bar over entity types.
        indirection_overrides: (source, target) -> indirection table name.
        database: Connection handling settings.
        logging: Raw ``logging`` section, passed to ``setup_logging``.
    """
    namespace: str = ""
    max_workers: int = ProcessingLimits.DEFAULT_MAX_WORKERS
    max_in_flight_queries: int = ProcessingLimits.DEFAULT_MAX_IN_FLIGHT_QUERIES
    fetch_batch_size: int = ProcessingLimits.DEFAULT_FETCH_BATCH_SIZE
    show_progress: bool = False
    indirection_overrides: Dict[Tuple[str, str], str] = field(default_factory=dict)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]]) -> "ConversionConfig":
        config = config or {}
        conversion = config.get("conversion") or {}
        database = config.get("database") or {}
        overrides = conversion.get("indirection_overrides") or {}
        if not isinstance(overrides, dict):
            raise ConfigurationError("'indirection_overrides' must be a JSON object")

        return cls(
            namespace=str(conversion.get("namespace", "")),
            max_workers=_positive_int(conversion, "max_workers", ProcessingLimits.DEFAULT_MAX_WORKERS),
            max_in_flight_queries=_positive_int(
                conversion, "max_in_flight_queries", ProcessingLimits.DEFAULT_MAX_IN_FLIGHT_QUERIES
            ),
            fetch_batch_size=_positive_int(
                conversion, "fetch_batch_size", ProcessingLimits.DEFAULT_FETCH_BATCH_SIZE
            ),
            show_progress=bool(conversion.get("show_progress", False)),
            indirection_overrides=parse_indirection_overrides(overrides),
            database=DatabaseSettings(
                connect_retries=_positive_int(
                    database, "connect_retries", DatabaseDefaults.CONNECT_RETRIES
                ),
                retry_wait_seconds=_non_negative_float(
                    database, "retry_wait_seconds", DatabaseDefaults.RETRY_WAIT_SECONDS
                ),
            ),
            logging=dict(config.get("logging") or {}),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "ConversionConfig":
        config = cls.from_dict(load_config(config_path))
        logger.debug(f"Loaded conversion configuration from {config_path}")
        return config
