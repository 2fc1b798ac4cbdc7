"""
Entity metadata model.

Describes the entity types stored in the source database: their attributes,
single references, collections and superclasses. The model is built once by
whoever loads the metadata and is shared read-only by every conversion job.

Usage:
    from shared.models.metadata import (
        AttributeDescriptor, CollectionDescriptor, EntityTypeDescriptor,
        FieldKind, MetadataModel, ReferenceDescriptor,
    )

    department = EntityTypeDescriptor(
        name="Department",
        attributes=(AttributeDescriptor("name", "VARCHAR"),),
        references=(ReferenceDescriptor("company", "Company"),),
        collections=(
            CollectionDescriptor("employees", "Employee", FieldKind.ONE_TO_MANY,
                                 reverse_reference="department"),
        ),
    )
    model = MetadataModel("testmodel", [department, ...])
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple, TypeVar

from constants import ProcessingLimits
from core.errors import MetadataError


class FieldKind(Enum):
    """The closed set of ways a field is stored in the source schema."""
    ATTRIBUTE = "attribute"
    REFERENCE = "reference"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_MANY = "many_to_many"


@dataclass(frozen=True)
class AttributeDescriptor:
    """
    A scalar column on the entity's primary table.

    Attributes:
        name: Field name, also the column name.
        sql_type: Declared SQL type, used to choose the value representation.
    """
    name: str
    sql_type: Optional[str] = None

    @property
    def kind(self) -> FieldKind:
        return FieldKind.ATTRIBUTE


@dataclass(frozen=True)
class ReferenceDescriptor:
    """
    A single reference to another entity.

    The field name distinguishes several references to the same target type
    (``department`` vs ``departmentThatRejectedMe``); it also names the
    foreign key column ``<name>_id``.

    Attributes:
        name: Field name.
        referenced_type: Name of the target entity type.
        reverse_reference: Field on the target pointing back, if any.
    """
    name: str
    referenced_type: str
    reverse_reference: Optional[str] = None

    @property
    def kind(self) -> FieldKind:
        return FieldKind.REFERENCE


@dataclass(frozen=True)
class CollectionDescriptor:
    """
    A multi-valued reference to another entity.

    Attributes:
        name: Field name.
        referenced_type: Name of the target entity type.
        kind: ONE_TO_MANY (reverse foreign key on the target table) or
            MANY_TO_MANY (indirection table).
        reverse_reference: Field on the target pointing back. For one-to-many
            collections this names the target's foreign key column.
    """
    name: str
    referenced_type: str
    kind: FieldKind = FieldKind.ONE_TO_MANY
    reverse_reference: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind not in (FieldKind.ONE_TO_MANY, FieldKind.MANY_TO_MANY):
            raise ValueError(
                f"Collection '{self.name}' must be ONE_TO_MANY or MANY_TO_MANY, got {self.kind}"
            )


@dataclass(frozen=True)
class EntityTypeDescriptor:
    """
    Metadata for one mapped entity type.

    Attributes:
        name: Entity type name (may be package-qualified).
        attributes: Scalar fields declared on this type.
        references: Single references declared on this type.
        collections: Collections declared on this type.
        superclasses: Names of types whose fields are inherited.
    """
    name: str
    attributes: Tuple[AttributeDescriptor, ...] = ()
    references: Tuple[ReferenceDescriptor, ...] = ()
    collections: Tuple[CollectionDescriptor, ...] = ()
    superclasses: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Accept lists from callers but store tuples so descriptors stay immutable
        for attr_name in ("attributes", "references", "collections", "superclasses"):
            value = getattr(self, attr_name)
            if not isinstance(value, tuple):
                object.__setattr__(self, attr_name, tuple(value))

    @property
    def unqualified_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]


_F = TypeVar("_F", AttributeDescriptor, ReferenceDescriptor, CollectionDescriptor)


class MetadataModel:
    """
    Read-only collection of entity type descriptors.

    Descriptors are kept in declaration order, which is the order conversion
    jobs enumerate them in.

    Attributes:
        name: Model name.
        namespace: Prefix prepended to type names to form item class names.
    """

    def __init__(
        self,
        name: str,
        descriptors: Iterable[EntityTypeDescriptor],
        namespace: str = "",
    ) -> None:
        self.name = name
        self.namespace = namespace
        ordered: List[EntityTypeDescriptor] = []
        by_name: Dict[str, EntityTypeDescriptor] = {}
        for descriptor in descriptors:
            key = descriptor.unqualified_name
            if key in by_name:
                raise MetadataError(f"Duplicate entity type '{key}' in model '{name}'", entity_type=key)
            by_name[key] = descriptor
            ordered.append(descriptor)
        self._descriptors: Tuple[EntityTypeDescriptor, ...] = tuple(ordered)
        self._by_name = by_name

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[EntityTypeDescriptor]:
        return iter(self._descriptors)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.rsplit(".", 1)[-1] in self._by_name

    def descriptors_by_name(self) -> Tuple[EntityTypeDescriptor, ...]:
        """Return every descriptor in declaration order."""
        return self._descriptors

    def get_entity_names(self) -> List[str]:
        return [d.name for d in self._descriptors]

    def resolve(self, name: str) -> EntityTypeDescriptor:
        """
        Look up a descriptor by (qualified or unqualified) name.

        Raises:
            MetadataError: If no such entity type exists.
        """
        descriptor = self._by_name.get(name.rsplit(".", 1)[-1])
        if descriptor is None:
            raise MetadataError(f"Unknown entity type '{name}' in model '{self.name}'", entity_type=name)
        return descriptor

    def class_name(self, descriptor: EntityTypeDescriptor) -> str:
        """Class name given to items of this type."""
        return f"{self.namespace}{descriptor.unqualified_name}"

    # ------------------------------------------------------------------
    # Inheritance
    # ------------------------------------------------------------------

    def all_attributes(self, descriptor: EntityTypeDescriptor) -> List[AttributeDescriptor]:
        """Attributes declared on the type and its superclasses."""
        return self._collect(descriptor, lambda d: d.attributes)

    def all_references(self, descriptor: EntityTypeDescriptor) -> List[ReferenceDescriptor]:
        """References declared on the type and its superclasses."""
        return self._collect(descriptor, lambda d: d.references)

    def all_collections(self, descriptor: EntityTypeDescriptor) -> List[CollectionDescriptor]:
        """Collections declared on the type and its superclasses."""
        return self._collect(descriptor, lambda d: d.collections)

    def is_subtype(self, descriptor: EntityTypeDescriptor, ancestor_name: str) -> bool:
        """True if ``descriptor`` is ``ancestor_name`` or inherits from it."""
        target = ancestor_name.rsplit(".", 1)[-1]
        return any(d.unqualified_name == target for d in self._lineage(descriptor))

    def _collect(
        self,
        descriptor: EntityTypeDescriptor,
        select: Callable[[EntityTypeDescriptor], Tuple[_F, ...]],
    ) -> List[_F]:
        collected: List[_F] = []
        # Lineage is ancestors first, so a subclass field replaces the inherited one
        for current in self._lineage(descriptor):
            for item in select(current):
                collected = [existing for existing in collected if existing.name != item.name]
                collected.append(item)
        return collected

    def _lineage(
        self,
        descriptor: EntityTypeDescriptor,
        depth: int = 0,
        visiting: Optional[Set[str]] = None,
    ) -> List[EntityTypeDescriptor]:
        """Return the descriptor's ancestors (depth-first, ancestors first) then itself."""
        if depth > ProcessingLimits.MAX_INHERITANCE_DEPTH:
            raise MetadataError(
                f"Inheritance of '{descriptor.name}' exceeds depth "
                f"{ProcessingLimits.MAX_INHERITANCE_DEPTH}",
                entity_type=descriptor.name,
            )
        visiting = set(visiting or ())
        if descriptor.unqualified_name in visiting:
            raise MetadataError(
                f"Cyclic inheritance involving '{descriptor.name}'", entity_type=descriptor.name
            )
        visiting.add(descriptor.unqualified_name)

        lineage: List[EntityTypeDescriptor] = []
        seen: Set[str] = set()
        for superclass in descriptor.superclasses:
            for ancestor in self._lineage(self.resolve(superclass), depth + 1, visiting):
                if ancestor.unqualified_name not in seen:
                    seen.add(ancestor.unqualified_name)
                    lineage.append(ancestor)
        lineage.append(descriptor)
        return lineage
