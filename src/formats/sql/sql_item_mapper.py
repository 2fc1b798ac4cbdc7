"""
Row-to-item mapping.

Turns one attribute row, plus the identifiers returned by its relationship
queries, into an ``Item``:

1. the ``<Type>_id`` column becomes the identifier;
2. declared attributes with non-NULL values become scalar fields;
3. non-NULL ``<field>_id`` columns become reference fields;
4. relationship results with at least one identifier become references
   (reverse-stored) or collection fields, in result order.

NULL values and empty relationship results are omitted, never emitted empty.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Sequence

from core.errors import ShapeError
from shared.models.items import Item, ItemBuilder
from shared.models.metadata import EntityTypeDescriptor, MetadataModel

from .sql_naming import foreign_key_column, primary_key_column
from .sql_type_mapper import SQLTypeMapper

logger = logging.getLogger(__name__)

_MISSING = object()


class RowView:
    """
    Column lookup over one row: exact name first, then case-insensitive.

    Some databases fold unquoted identifiers to one case, so ``company_id``
    may come back as ``COMPANY_ID``.
    """

    def __init__(self, columns: Sequence[str], values: Sequence[Any]) -> None:
        if len(columns) != len(values):
            raise ShapeError(f"Row has {len(values)} values for {len(columns)} columns")
        self._exact: Dict[str, Any] = dict(zip(columns, values))
        self._folded: Dict[str, Any] = {}
        for column, value in zip(columns, values):
            self._folded.setdefault(column.lower(), value)

    @property
    def columns(self) -> Sequence[str]:
        return list(self._exact)

    def get(self, column: str, default: Any = None) -> Any:
        if column in self._exact:
            return self._exact[column]
        return self._folded.get(column.lower(), default)

    def has(self, column: str) -> bool:
        return self.get(column, _MISSING) is not _MISSING


class RowToItemMapper:
    """
    Map primary rows to items.

    Example:
        >>> mapper = RowToItemMapper(model)
        >>> row = RowView(["Department_id", "name", "company_id", "manager_id"], [12, None, 14, None])
        >>> mapper.map(model.resolve("Department"), row, {}).references
        mappingproxy({'company': '14'})
    """

    def __init__(self, model: MetadataModel, type_mapper: Optional[SQLTypeMapper] = None) -> None:
        self.model = model
        self.type_mapper = type_mapper or SQLTypeMapper()

    def identifier_of(self, descriptor: EntityTypeDescriptor, row: RowView) -> Any:
        """
        Raw primary key value of a row.

        Raises:
            ShapeError: If the key column is missing or NULL.
        """
        pk_column = primary_key_column(descriptor.name)
        value = row.get(pk_column)
        if value is None:
            raise ShapeError(
                f"Row of {descriptor.name} has no value for primary key column {pk_column}",
                entity_type=descriptor.name,
            )
        return value

    def map(
        self,
        descriptor: EntityTypeDescriptor,
        row: RowView,
        relationship_results: Mapping[str, Sequence[str]],
    ) -> Item:
        """
        Build the item for one row.

        Args:
            descriptor: Entity type of the row.
            row: Attribute row.
            relationship_results: Field name -> identifiers returned by that
                field's relationship query. Fields whose query was skipped
                are simply absent.

        Returns:
            The immutable item.
        """
        identifier = str(self.identifier_of(descriptor, row))
        builder = ItemBuilder(self.model.class_name(descriptor), identifier)

        for attribute in self.model.all_attributes(descriptor):
            value = row.get(attribute.name)
            if value is None:
                continue
            builder.add_field(attribute.name, self.type_mapper.to_item_value(value, attribute.sql_type))

        for reference in self.model.all_references(descriptor):
            column = foreign_key_column(reference.name)
            if row.has(column):
                value = row.get(column)
                if value is not None:
                    builder.add_reference(reference.name, str(value))
                continue
            looked_up = relationship_results.get(reference.name)
            if looked_up:
                builder.add_reference(reference.name, looked_up[0])

        for collection in self.model.all_collections(descriptor):
            identifiers = relationship_results.get(collection.name)
            if identifiers:
                builder.add_collection(collection.name, identifiers)

        if logger.isEnabledFor(logging.DEBUG):
            self._log_undeclared_columns(descriptor, row)

        return builder.build()

    def _log_undeclared_columns(self, descriptor: EntityTypeDescriptor, row: RowView) -> None:
        known = {primary_key_column(descriptor.name).lower()}
        known.update(a.name.lower() for a in self.model.all_attributes(descriptor))
        known.update(foreign_key_column(r.name).lower() for r in self.model.all_references(descriptor))
        ignored = [c for c in row.columns if c.lower() not in known]
        if ignored:
            logger.debug(f"Ignoring undeclared columns of {descriptor.name}: {', '.join(ignored)}")
