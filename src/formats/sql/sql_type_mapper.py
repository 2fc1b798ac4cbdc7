"""
SQL Type Mapper.

This module maps SQL column types to item value types, and renders column
values as the strings stored in item fields.

Item value types:
- String, Integer, Float, Decimal, Boolean, Date, DateTime, Time, Binary

Rendering follows the value type where one is declared (so a ``BOOLEAN``
column stored as ``0``/``1`` still renders as ``false``/``true``), and the
Python type of the value otherwise.

Usage:
    from formats.sql.sql_type_mapper import SQLTypeMapper, ItemValueType

    mapper = SQLTypeMapper()
    result = mapper.map_type("VARCHAR(255)")
    print(result.value_type)  # ItemValueType.STRING
    mapper.to_item_value(True)  # 'true'
"""

import base64
import datetime
import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ItemValueType(Enum):
    """Value representations used in item fields."""
    STRING = "String"
    INTEGER = "Integer"
    FLOAT = "Float"
    DECIMAL = "Decimal"
    BOOLEAN = "Boolean"
    DATE = "Date"
    DATETIME = "DateTime"
    TIME = "Time"
    BINARY = "Binary"


# =============================================================================
# SQL Type Mappings
# =============================================================================

SQL_TYPE_MAPPINGS: Dict[str, str] = {
    # String types
    "char": "String",
    "character": "String",
    "varchar": "String",
    "character varying": "String",
    "nchar": "String",
    "nvarchar": "String",
    "text": "String",
    "clob": "String",
    "uuid": "String",
    "json": "String",
    "jsonb": "String",

    # Integer types
    "integer": "Integer",
    "int": "Integer",
    "int2": "Integer",
    "int4": "Integer",
    "int8": "Integer",
    "smallint": "Integer",
    "bigint": "Integer",
    "tinyint": "Integer",
    "serial": "Integer",
    "bigserial": "Integer",

    # Floating point types
    "real": "Float",
    "float": "Float",
    "float4": "Float",
    "float8": "Float",
    "double": "Float",
    "double precision": "Float",

    # Decimal types
    "decimal": "Decimal",
    "numeric": "Decimal",
    "money": "Decimal",

    # Boolean types
    "boolean": "Boolean",
    "bool": "Boolean",
    "bit": "Boolean",

    # Date/time types
    "date": "Date",
    "timestamp": "DateTime",
    "timestamptz": "DateTime",
    "timestamp with time zone": "DateTime",
    "timestamp without time zone": "DateTime",
    "datetime": "DateTime",
    "time": "Time",

    # Binary types (stored as base64 string)
    "blob": "Binary",
    "bytea": "Binary",
    "binary": "Binary",
    "varbinary": "Binary",
}

# Default type when mapping fails
DEFAULT_VALUE_TYPE = "String"

_TYPE_MODIFIERS = re.compile(r"\s*\(.*\)\s*$")


@dataclass
class TypeMappingResult:
    """
    Result of mapping one SQL type.

    Attributes:
        value_type: Item value type chosen.
        original_type: SQL type as declared.
        is_exact_match: False if the type was unknown and defaulted.
        warning: Message explaining a defaulted mapping.
    """
    value_type: ItemValueType
    original_type: Optional[str]
    is_exact_match: bool = True
    warning: Optional[str] = None


class SQLTypeMapper:
    """
    Map SQL column types to item value types and render values.

    Example:
        >>> mapper = SQLTypeMapper()
        >>> mapper.map_type("numeric(10, 2)").value_type
        <ItemValueType.DECIMAL: 'Decimal'>
        >>> mapper.to_item_value(1, "BOOLEAN")
        'true'
    """

    def __init__(self, strict_mode: bool = False):
        """
        Initialize the type mapper.

        Args:
            strict_mode: If True, raise errors for unknown types
                        instead of defaulting to String.
        """
        self.strict_mode = strict_mode
        self._mappings = SQL_TYPE_MAPPINGS.copy()

    @staticmethod
    def _normalize(sql_type: str) -> str:
        return _TYPE_MODIFIERS.sub("", sql_type).strip().lower()

    def is_supported_type(self, sql_type: str) -> bool:
        return self._normalize(sql_type) in self._mappings

    def map_type(self, sql_type: Optional[str]) -> TypeMappingResult:
        """
        Map a SQL type name to an item value type.

        Length and precision modifiers are ignored (``VARCHAR(40)`` -> String).
        A missing type maps to String without a warning.

        Raises:
            ValueError: In strict mode when the type is unknown.
        """
        if not sql_type:
            return TypeMappingResult(ItemValueType(DEFAULT_VALUE_TYPE), sql_type)

        mapped = self._mappings.get(self._normalize(sql_type))
        if mapped:
            return TypeMappingResult(ItemValueType(mapped), sql_type)

        if self.strict_mode:
            raise ValueError(f"Unknown SQL type: {sql_type}")

        return TypeMappingResult(
            value_type=ItemValueType(DEFAULT_VALUE_TYPE),
            original_type=sql_type,
            is_exact_match=False,
            warning=f"Unknown SQL type '{sql_type}' defaulted to {DEFAULT_VALUE_TYPE}",
        )

    def to_item_value(self, value: Any, sql_type: Optional[str] = None) -> Optional[str]:
        """
        Render a column value as an item field string.

        ``None`` stays ``None``; callers decide whether to emit it.
        """
        if value is None:
            return None

        value_type = self.map_type(sql_type).value_type if sql_type else None

        if value_type is ItemValueType.BOOLEAN or isinstance(value, bool):
            if isinstance(value, str):
                return "true" if value.strip().lower() in ("1", "t", "true", "y", "yes") else "false"
            return "true" if value else "false"
        if isinstance(value, (bytes, bytearray, memoryview)):
            return base64.b64encode(bytes(value)).decode("ascii")
        if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return format(value, "f")
        return str(value)
