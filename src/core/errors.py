"""
Conversion error hierarchy.

Every error raised while turning relational rows into items derives from
``ConversionError``. The orchestrator decides the blast radius of each kind:

- ``MetadataError``: a descriptor cannot be used; its entity type is skipped.
- ``ConnectivityError``: a query could not be executed.
- ``ShapeError``: a result set does not have the shape the metadata implies.
- ``AmbiguityError``: a relationship cannot be mapped to a single column.
- ``ConfigurationError``: the job itself is unusable (e.g. an empty model).
"""

from typing import Optional


class ConversionError(Exception):
    """
    Base class for conversion failures.

    Attributes:
        entity_type: Name of the entity type being converted, if known.
        field_name: Name of the field being converted, if known.
    """

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        field_name: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.entity_type = entity_type
        self.field_name = field_name

    @property
    def location(self) -> str:
        """``Type.field`` style location of the failure."""
        if self.entity_type and self.field_name:
            return f"{self.entity_type}.{self.field_name}"
        return self.entity_type or self.field_name or ""


class MetadataError(ConversionError):
    """A descriptor references something the metadata model does not know."""


class ConnectivityError(ConversionError):
    """A query could not be executed against the source database."""

    def __init__(
        self,
        message: str,
        sql: Optional[str] = None,
        entity_type: Optional[str] = None,
        field_name: Optional[str] = None,
    ) -> None:
        super().__init__(message, entity_type=entity_type, field_name=field_name)
        self.sql = sql


class ShapeError(ConversionError):
    """A result set has an unexpected column count or cardinality."""


class AmbiguityError(ConversionError):
    """Several reference fields could back one relationship and none is named."""


class ConfigurationError(ConversionError):
    """The conversion job cannot start (empty model, bad configuration)."""
