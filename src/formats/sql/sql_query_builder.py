"""
SQL query construction.

Builds the query text the converter sends to the source database:

- the attribute query of an entity type, returning every primary row;
- the relationship queries of one entity instance, returning the
  identifiers of related rows for each reference stored on the target side,
  each one-to-many collection and each many-to-many collection.

Query text is a pure function of the metadata and the instance identifier,
so identical inputs always give identical SQL.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set

from core.errors import AmbiguityError, ConversionError
from shared.models.metadata import (
    CollectionDescriptor,
    EntityTypeDescriptor,
    FieldKind,
    MetadataModel,
    ReferenceDescriptor,
)

from .sql_naming import (
    IndirectionTableResolver,
    default_reverse_field,
    foreign_key_column,
    primary_key_column,
    table_name,
)

logger = logging.getLogger(__name__)


def sql_literal(value: Any) -> str:
    """
    Render an identifier as a SQL literal.

    Numbers are rendered bare; anything else is single-quoted with embedded
    quotes doubled.
    """
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, Decimal)):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).replace("'", "''")
    return f"'{text}'"


def build_attribute_query(descriptor: EntityTypeDescriptor) -> str:
    """``SELECT * FROM <Type>``: every primary row of the type."""
    return f"SELECT * FROM {table_name(descriptor.name)}"


def build_reverse_lookup_query(target_type: str, reverse_field: str, identifier: Any) -> str:
    """Identifiers of ``target_type`` rows whose ``reverse_field`` points at ``identifier``."""
    return (
        f"SELECT {primary_key_column(target_type)} FROM {table_name(target_type)} "
        f"WHERE {foreign_key_column(reverse_field)} = {sql_literal(identifier)}"
    )


def build_indirection_query(indirection_table: str, source_type: str, target_type: str, identifier: Any) -> str:
    """Identifiers of ``target_type`` rows joined to ``identifier`` through ``indirection_table``."""
    return (
        f"SELECT {primary_key_column(target_type)} FROM {indirection_table} "
        f"WHERE {primary_key_column(source_type)} = {sql_literal(identifier)}"
    )


@dataclass(frozen=True)
class RelationshipQuery:
    """
    One secondary query for one field of one entity instance.

    Attributes:
        field_name: Field populated from the result.
        kind: REFERENCE, ONE_TO_MANY or MANY_TO_MANY.
        sql: Query text; returns a single identifier column.
        target_type: Entity type the identifiers belong to.
    """
    field_name: str
    kind: FieldKind
    sql: str
    target_type: str


@dataclass
class RelationshipPlan:
    """Queries to run for one instance, and fields that cannot be queried."""
    queries: List[RelationshipQuery] = field(default_factory=list)
    errors: List[ConversionError] = field(default_factory=list)


class RelationshipQueryBuilder:
    """
    Build the relationship queries for entity instances.

    Resolves which column backs each relationship:

    - a reference whose ``<field>_id`` column is on the source row needs no
      query; one whose column is absent but whose reverse is a single
      reference on the target (one-to-one) is looked up on the target table;
    - a one-to-many collection reads the target table's foreign key named by
      the collection's reverse reference, or by the only reference on the
      target that points back at the source type;
    - a many-to-many collection reads the indirection table.

    Example:
        >>> builder = RelationshipQueryBuilder(model)
        >>> plan = builder.build(model.resolve("Department"), 12, ["Department_id", "company_id"])
        >>> [q.sql for q in plan.queries][0]
        'SELECT Employee_id FROM Employee WHERE department_id = 12'
    """

    def __init__(
        self,
        model: MetadataModel,
        resolver: Optional[IndirectionTableResolver] = None,
    ) -> None:
        self.model = model
        self.resolver = resolver or IndirectionTableResolver()

    def build(
        self,
        descriptor: EntityTypeDescriptor,
        identifier: Any,
        row_columns: Iterable[str],
    ) -> RelationshipPlan:
        """
        Plan the relationship queries of one instance.

        Args:
            descriptor: Type of the instance.
            identifier: Raw primary key value of the instance.
            row_columns: Columns present on the instance's attribute row.

        Returns:
            RelationshipPlan with queries in field declaration order
            (references first) and an error per field that cannot be mapped.

        Raises:
            MetadataError: If a related type is not in the model.
        """
        plan = RelationshipPlan()
        present = {column.lower() for column in row_columns}

        for reference in self.model.all_references(descriptor):
            if foreign_key_column(reference.name).lower() in present:
                continue
            if not self._is_one_to_one(reference):
                logger.debug(
                    f"No column {foreign_key_column(reference.name)} for "
                    f"{descriptor.name}.{reference.name}; reference left unset"
                )
                continue
            plan.queries.append(RelationshipQuery(
                field_name=reference.name,
                kind=FieldKind.REFERENCE,
                sql=build_reverse_lookup_query(
                    reference.referenced_type, reference.reverse_reference, identifier
                ),
                target_type=reference.referenced_type,
            ))

        indirection_tables: Dict[str, str] = {}
        for collection in self.model.all_collections(descriptor):
            try:
                if collection.kind is FieldKind.ONE_TO_MANY:
                    reverse = self.reverse_field_for(descriptor, collection)
                    sql = build_reverse_lookup_query(collection.referenced_type, reverse, identifier)
                elif collection.kind is FieldKind.MANY_TO_MANY:
                    table = self.resolver.resolve(descriptor.name, collection.referenced_type)
                    claimed_by = indirection_tables.setdefault(table, collection.name)
                    if claimed_by != collection.name:
                        raise AmbiguityError(
                            f"Indirection table '{table}' already backs "
                            f"{descriptor.name}.{claimed_by}; supply an override",
                            entity_type=descriptor.name,
                            field_name=collection.name,
                        )
                    sql = build_indirection_query(
                        table, descriptor.name, collection.referenced_type, identifier
                    )
                else:
                    raise ValueError(f"Unsupported collection kind {collection.kind}")
            except AmbiguityError as e:
                plan.errors.append(e)
                continue

            plan.queries.append(RelationshipQuery(
                field_name=collection.name,
                kind=collection.kind,
                sql=sql,
                target_type=collection.referenced_type,
            ))

        return plan

    def _is_one_to_one(self, reference: ReferenceDescriptor) -> bool:
        """True if the reference's reverse is a single reference on the target."""
        if not reference.reverse_reference:
            return False
        target = self.model.resolve(reference.referenced_type)
        return any(r.name == reference.reverse_reference for r in self.model.all_references(target))

    def reverse_field_for(
        self,
        descriptor: EntityTypeDescriptor,
        collection: CollectionDescriptor,
    ) -> str:
        """
        Name the target-side reference backing a one-to-many collection.

        Raises:
            AmbiguityError: If several target references point back at the
                source type and the collection does not name one.
        """
        if collection.reverse_reference:
            return collection.reverse_reference

        target = self.model.resolve(collection.referenced_type)
        candidates: List[ReferenceDescriptor] = [
            reference
            for reference in self.model.all_references(target)
            if self.model.is_subtype(descriptor, reference.referenced_type)
        ]
        if len(candidates) == 1:
            return candidates[0].name
        if not candidates:
            return default_reverse_field(descriptor.name)

        names: Set[str] = {c.name for c in candidates}
        raise AmbiguityError(
            f"{target.name} has {len(names)} references to {descriptor.name} "
            f"({', '.join(sorted(names))}); collection '{collection.name}' must name its reverse reference",
            entity_type=descriptor.name,
            field_name=collection.name,
        )
