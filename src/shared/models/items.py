"""
Item data types.

An item is the generic, loosely typed record produced for every converted
source row. It carries a class name, an identifier and three independent
groups of named values:

- fields: scalar values (``None`` is kept distinct from ``""``)
- references: identifier of one related item
- collections: ordered identifiers of related items

Items are immutable once built; use ``ItemBuilder`` to assemble one.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple


@dataclass(frozen=True, eq=False)
class Item:
    """
    A converted entity instance.

    Attributes:
        class_name: Namespace-qualified entity type name.
        identifier: Identifier derived from the source primary key.
        fields: Scalar field name -> value.
        references: Reference field name -> target identifier.
        collections: Collection field name -> ordered target identifiers.

    Example:
        >>> item = Item("Department", "12", fields={"name": "DepartmentA1"})
        >>> item.to_dict()
        {'className': 'Department', 'identifier': '12', 'fields': {'name': 'DepartmentA1'}}
    """
    class_name: str
    identifier: str
    fields: Mapping[str, Optional[str]] = field(default_factory=dict)
    references: Mapping[str, str] = field(default_factory=dict)
    collections: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.class_name:
            raise ValueError("Item class_name must not be empty")
        if self.identifier is None:
            raise ValueError(f"Item of class '{self.class_name}' has no identifier")
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(self, "references", MappingProxyType(dict(self.references)))
        object.__setattr__(
            self,
            "collections",
            MappingProxyType({name: tuple(ids) for name, ids in self.collections.items()}),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return (
            self.class_name == other.class_name
            and self.identifier == other.identifier
            and dict(self.fields) == dict(other.fields)
            and dict(self.references) == dict(other.references)
            and dict(self.collections) == dict(other.collections)
        )

    def __hash__(self) -> int:
        return hash((
            self.class_name,
            self.identifier,
            frozenset(self.fields.items()),
            frozenset(self.references.items()),
            frozenset(self.collections.items()),
        ))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        result: Dict[str, Any] = {
            "className": self.class_name,
            "identifier": self.identifier,
        }
        if self.fields:
            result["fields"] = dict(self.fields)
        if self.references:
            result["references"] = dict(self.references)
        if self.collections:
            result["collections"] = {name: list(ids) for name, ids in self.collections.items()}
        return result


class ItemBuilder:
    """
    Mutable staging area for an ``Item``.

    Rejects a field name that appears twice in the same category.
    """

    def __init__(self, class_name: str, identifier: str) -> None:
        self.class_name = class_name
        self.identifier = identifier
        self._fields: Dict[str, Optional[str]] = {}
        self._references: Dict[str, str] = {}
        self._collections: Dict[str, List[str]] = {}

    def add_field(self, name: str, value: Optional[str]) -> "ItemBuilder":
        self._check_unique(self._fields, name, "field")
        self._fields[name] = value
        return self

    def add_reference(self, name: str, identifier: str) -> "ItemBuilder":
        self._check_unique(self._references, name, "reference")
        self._references[name] = identifier
        return self

    def add_collection(self, name: str, identifiers: Sequence[str]) -> "ItemBuilder":
        self._check_unique(self._collections, name, "collection")
        self._collections[name] = list(identifiers)
        return self

    def build(self) -> Item:
        return Item(
            class_name=self.class_name,
            identifier=self.identifier,
            fields=self._fields,
            references=self._references,
            collections={name: tuple(ids) for name, ids in self._collections.items()},
        )

    def _check_unique(self, group: Mapping[str, Any], name: str, category: str) -> None:
        if name in group:
            raise ValueError(
                f"Duplicate {category} '{name}' on item {self.class_name}:{self.identifier}"
            )
