"""
Metadata validation for SQL conversion.

Checks, before any query runs, that the metadata model can drive a
conversion:

- the model is not empty (otherwise the job is misconfigured);
- every superclass, reference target and collection target exists;
- declared reverse references exist on the target type, and the reverse of
  a one-to-many collection is a reference back to the declaring type;
- declared SQL types are known (warnings, or errors with a strict type mapper).

Usage:
    validator = SQLMetadataValidator()
    validator.validate_model(model)          # raises ConfigurationError if empty
    errors, warnings = validator.validate_descriptor(model, descriptor)
"""

import logging
from typing import List, Optional, Tuple, Union

from core.errors import ConfigurationError, ConversionError, MetadataError
from shared.models.metadata import (
    CollectionDescriptor,
    EntityTypeDescriptor,
    FieldKind,
    MetadataModel,
    ReferenceDescriptor,
)

from .sql_type_mapper import SQLTypeMapper

logger = logging.getLogger(__name__)


class SQLMetadataValidator:
    """Validate a metadata model for relational conversion."""

    def __init__(self, type_mapper: Optional[SQLTypeMapper] = None) -> None:
        self.type_mapper = type_mapper or SQLTypeMapper()

    def validate_model(self, model: MetadataModel) -> None:
        """
        Raises:
            ConfigurationError: If the model has no entity types.
        """
        if len(model) == 0:
            raise ConfigurationError(f"Metadata model '{model.name}' defines no entity types")

    def validate_descriptor(
        self,
        model: MetadataModel,
        descriptor: EntityTypeDescriptor,
    ) -> Tuple[List[MetadataError], List[str]]:
        """
        Validate one entity type against the model.

        Returns:
            Tuple of (errors, warnings). Any error makes the type unusable.
        """
        errors: List[MetadataError] = []
        warnings: List[str] = []

        for superclass in descriptor.superclasses:
            if superclass not in model:
                errors.append(MetadataError(
                    f"Unknown superclass '{superclass}'", entity_type=descriptor.name
                ))
        if errors:
            return errors, warnings

        try:
            attributes = model.all_attributes(descriptor)
            references = model.all_references(descriptor)
            collections = model.all_collections(descriptor)
        except ConversionError as e:
            return [MetadataError(e.message, entity_type=descriptor.name)], warnings

        for attribute in attributes:
            if attribute.sql_type and not self.type_mapper.is_supported_type(attribute.sql_type):
                if self.type_mapper.strict_mode:
                    errors.append(MetadataError(
                        f"Unknown SQL type '{attribute.sql_type}'",
                        entity_type=descriptor.name,
                        field_name=attribute.name,
                    ))
                else:
                    warnings.append(
                        f"{descriptor.name}.{attribute.name}: unknown SQL type "
                        f"'{attribute.sql_type}', values rendered as strings"
                    )

        for relation in [*references, *collections]:
            if relation.referenced_type not in model:
                errors.append(MetadataError(
                    f"Field '{relation.name}' references unknown type '{relation.referenced_type}'",
                    entity_type=descriptor.name,
                    field_name=relation.name,
                ))
                continue
            if relation.reverse_reference:
                error = self._check_reverse(model, descriptor, relation)
                if error:
                    errors.append(error)

        return errors, warnings

    def _check_reverse(
        self,
        model: MetadataModel,
        descriptor: EntityTypeDescriptor,
        relation: Union[ReferenceDescriptor, CollectionDescriptor],
    ) -> Optional[MetadataError]:
        target = model.resolve(relation.referenced_type)
        target_references = {r.name: r for r in model.all_references(target)}

        if isinstance(relation, CollectionDescriptor) and relation.kind is FieldKind.ONE_TO_MANY:
            # The reverse names the foreign key column on the target table
            reverse = target_references.get(relation.reverse_reference)
            if reverse is None:
                problem = "is not declared as a reference on"
            elif reverse.referenced_type not in model or not model.is_subtype(descriptor, reverse.referenced_type):
                problem = f"points at {reverse.referenced_type}, not {descriptor.name}, on"
            else:
                return None
        else:
            target_fields = set(target_references)
            target_fields.update(c.name for c in model.all_collections(target))
            if relation.reverse_reference in target_fields:
                return None
            problem = "is not declared on"

        return MetadataError(
            f"Reverse reference '{relation.reverse_reference}' of field "
            f"'{relation.name}' {problem} {target.name}",
            entity_type=descriptor.name,
            field_name=relation.name,
        )
