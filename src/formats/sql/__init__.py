"""
Relational Source Module

This module converts the rows of a relational database into items, driven
only by a metadata model describing the entity types, their attributes and
their relationships.

Naming conventions relied on:
- Table per entity type, named by its unqualified type name
- Primary key column ``<Type>_id``
- Foreign key column ``<field>_id`` for every single reference
- Indirection table ``<Source>_<Target>`` for many-to-many collections,
  overridable per (source, target) pair

Key Components:
- sql_naming: Table and column naming, indirection table resolution
- sql_query_builder: Attribute and relationship query text
- sql_item_mapper: Attribute rows plus relationship results to items
- sql_type_mapper: Column values to item string values
- sql_validator: Metadata checks before any query runs
- sql_converter: Conversion orchestration and failure isolation
- sinks: Consumers of converted items

Usage:
    from formats.sql import SQLToItemConverter, CollectingSink

    converter = SQLToItemConverter(model, executor)
    sink = CollectingSink()
    result = converter.convert(sink)
"""

from .sql_naming import (
    IndirectionTableResolver,
    default_reverse_field,
    foreign_key_column,
    primary_key_column,
    table_name,
    unqualified_name,
)

from .sql_type_mapper import (
    DEFAULT_VALUE_TYPE,
    SQL_TYPE_MAPPINGS,
    ItemValueType,
    SQLTypeMapper,
    TypeMappingResult,
)

from .sql_query_builder import (
    RelationshipPlan,
    RelationshipQuery,
    RelationshipQueryBuilder,
    build_attribute_query,
    build_indirection_query,
    build_reverse_lookup_query,
    sql_literal,
)

from .sql_item_mapper import RowToItemMapper, RowView

from .sql_validator import SQLMetadataValidator

from .sinks import CallbackSink, CollectingSink, ItemSink

from .sql_converter import ConversionContext, SQLToItemConverter

__all__ = [
    # Naming
    "IndirectionTableResolver",
    "default_reverse_field",
    "foreign_key_column",
    "primary_key_column",
    "table_name",
    "unqualified_name",
    # Types
    "DEFAULT_VALUE_TYPE",
    "SQL_TYPE_MAPPINGS",
    "ItemValueType",
    "SQLTypeMapper",
    "TypeMappingResult",
    # Queries
    "RelationshipPlan",
    "RelationshipQuery",
    "RelationshipQueryBuilder",
    "build_attribute_query",
    "build_indirection_query",
    "build_reverse_lookup_query",
    "sql_literal",
    # Mapping
    "RowToItemMapper",
    "RowView",
    # Validation
    "SQLMetadataValidator",
    # Sinks
    "CallbackSink",
    "CollectingSink",
    "ItemSink",
    # Conversion
    "ConversionContext",
    "SQLToItemConverter",
]
