"""
Shared data models for the relational item converter.

This module contains the metadata descriptors consumed by the converter, the
items it produces, and the result ledger it returns.

Usage:
    from shared.models import MetadataModel, EntityTypeDescriptor, Item

    # Or import specific modules
    from shared.models.metadata import FieldKind, CollectionDescriptor
    from shared.models.conversion import ConversionResult, SkippedItem
"""

from .metadata import (
    AttributeDescriptor,
    CollectionDescriptor,
    EntityTypeDescriptor,
    FieldKind,
    MetadataModel,
    ReferenceDescriptor,
)
from .items import (
    Item,
    ItemBuilder,
)
from .conversion import (
    ConversionResult,
    SkippedItem,
)

__all__ = [
    # Metadata
    "AttributeDescriptor",
    "CollectionDescriptor",
    "EntityTypeDescriptor",
    "FieldKind",
    "MetadataModel",
    "ReferenceDescriptor",
    # Items
    "Item",
    "ItemBuilder",
    # Conversion results
    "ConversionResult",
    "SkippedItem",
]
