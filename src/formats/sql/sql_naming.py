"""
Source schema naming conventions.

The source schema derives every table and column name from the metadata:

- table of an entity type:           ``<Type>``                 (``Department``)
- primary key column:                ``<Type>_id``              (``Department_id``)
- foreign key column of a reference: ``<field>_id``             (``company_id``)
- many-to-many indirection table:    ``<Source>_<Target>``      (``Company_Contractor``)

These are pure functions so that query construction never concatenates
names inline.
"""

import logging
from typing import Dict, Mapping, Optional, Tuple

from constants import NamingConventions

logger = logging.getLogger(__name__)


def unqualified_name(type_name: str) -> str:
    """``org.example.model.Department`` -> ``Department``."""
    return type_name.rsplit(".", 1)[-1]


def table_name(type_name: str) -> str:
    return unqualified_name(type_name)


def primary_key_column(type_name: str) -> str:
    return f"{unqualified_name(type_name)}{NamingConventions.ID_SUFFIX}"


def foreign_key_column(field_name: str) -> str:
    return f"{field_name}{NamingConventions.ID_SUFFIX}"


def default_reverse_field(type_name: str) -> str:
    """Name of the reference a target would use for ``type_name`` by default: ``Department`` -> ``department``."""
    name = unqualified_name(type_name)
    return name[:1].lower() + name[1:]


class IndirectionTableResolver:
    """
    Names the join table backing a many-to-many relationship.

    By default the table is ``<Source>_<Target>``; schemas with irregular
    naming supply overrides keyed by ``(source, target)`` type names.

    Example:
        >>> IndirectionTableResolver().resolve("Company", "Contractor")
        'Company_Contractor'
        >>> IndirectionTableResolver({("Company", "Contractor"): "works_for"}).resolve("Company", "Contractor")
        'works_for'
    """

    def __init__(self, overrides: Optional[Mapping[Tuple[str, str], str]] = None) -> None:
        self._overrides: Dict[Tuple[str, str], str] = {
            (unqualified_name(source), unqualified_name(target)): table
            for (source, target), table in (overrides or {}).items()
        }

    @property
    def overrides(self) -> Dict[Tuple[str, str], str]:
        return dict(self._overrides)

    def resolve(self, source_type: str, target_type: str) -> str:
        """
        Return the indirection table for ``source_type`` -> ``target_type``.

        The table is not checked for existence; a missing table surfaces as
        a failed or empty query.
        """
        source = unqualified_name(source_type)
        target = unqualified_name(target_type)
        override = self._overrides.get((source, target))
        if override:
            return override
        return f"{source}{NamingConventions.INDIRECTION_SEPARATOR}{target}"
