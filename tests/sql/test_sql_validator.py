"""
SQL metadata validator tests.
"""

import pytest

from core.errors import ConfigurationError
from formats.sql.sql_type_mapper import SQLTypeMapper
from formats.sql.sql_validator import SQLMetadataValidator
from shared.models.metadata import (
    AttributeDescriptor,
    CollectionDescriptor,
    EntityTypeDescriptor,
    FieldKind,
    MetadataModel,
    ReferenceDescriptor,
)


@pytest.mark.unit
class TestSQLMetadataValidator:
    """Metadata validation tests."""

    def test_empty_model_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="no entity types"):
            SQLMetadataValidator().validate_model(MetadataModel("empty", []))

    def test_test_model_is_valid(self, test_model):
        validator = SQLMetadataValidator()
        for descriptor in test_model:
            errors, warnings = validator.validate_descriptor(test_model, descriptor)
            assert errors == [], descriptor.name
            assert warnings == [], descriptor.name

    def test_unknown_reference_target(self):
        thing = EntityTypeDescriptor("Thing", references=[ReferenceDescriptor("owner", "Ghost")])
        model = MetadataModel("m", [thing])
        errors, _ = SQLMetadataValidator().validate_descriptor(model, thing)
        assert len(errors) == 1
        assert errors[0].location == "Thing.owner"

    def test_unknown_collection_target(self):
        thing = EntityTypeDescriptor("Thing", collections=[CollectionDescriptor("ghosts", "Ghost")])
        model = MetadataModel("m", [thing])
        errors, _ = SQLMetadataValidator().validate_descriptor(model, thing)
        assert "Ghost" in errors[0].message

    def test_unknown_superclass(self):
        thing = EntityTypeDescriptor("Thing", superclasses=["Ghost"])
        model = MetadataModel("m", [thing])
        errors, _ = SQLMetadataValidator().validate_descriptor(model, thing)
        assert "Unknown superclass" in errors[0].message

    def test_cyclic_inheritance(self):
        a = EntityTypeDescriptor("A", superclasses=["B"])
        b = EntityTypeDescriptor("B", superclasses=["A"])
        model = MetadataModel("m", [a, b])
        errors, _ = SQLMetadataValidator().validate_descriptor(model, a)
        assert "Cyclic" in errors[0].message

    def test_undeclared_reverse_reference(self):
        owner = EntityTypeDescriptor(
            "Owner", collections=[CollectionDescriptor("things", "Thing", reverse_reference="owner")]
        )
        thing = EntityTypeDescriptor("Thing")
        model = MetadataModel("m", [owner, thing])
        errors, _ = SQLMetadataValidator().validate_descriptor(model, owner)
        assert "not declared" in errors[0].message

    def test_unknown_sql_type_is_warning(self):
        shape = EntityTypeDescriptor("Shape", attributes=[AttributeDescriptor("outline", "GEOMETRY")])
        model = MetadataModel("m", [shape])
        errors, warnings = SQLMetadataValidator().validate_descriptor(model, shape)
        assert errors == []
        assert "GEOMETRY" in warnings[0]

    def test_unknown_sql_type_is_error_in_strict_mode(self):
        shape = EntityTypeDescriptor("Shape", attributes=[AttributeDescriptor("outline", "GEOMETRY")])
        model = MetadataModel("m", [shape])
        errors, warnings = SQLMetadataValidator(SQLTypeMapper(strict_mode=True)).validate_descriptor(model, shape)
        assert warnings == []
        assert errors[0].location == "Shape.outline"
        assert "GEOMETRY" in errors[0].message

    def test_one_to_many_reverse_must_be_a_reference(self):
        a = EntityTypeDescriptor(
            "A", collections=[CollectionDescriptor("bs", "B", reverse_reference="as_")]
        )
        b = EntityTypeDescriptor(
            "B", collections=[CollectionDescriptor("as_", "A", FieldKind.MANY_TO_MANY, reverse_reference="bs")]
        )
        model = MetadataModel("m", [a, b])
        errors, _ = SQLMetadataValidator().validate_descriptor(model, a)
        assert len(errors) == 1
        assert errors[0].location == "A.bs"
        assert "as a reference" in errors[0].message

    def test_one_to_many_reverse_must_point_back(self):
        owner = EntityTypeDescriptor(
            "Owner", collections=[CollectionDescriptor("things", "Thing", reverse_reference="shelf")]
        )
        shelf = EntityTypeDescriptor("Shelf")
        thing = EntityTypeDescriptor("Thing", references=[ReferenceDescriptor("shelf", "Shelf")])
        model = MetadataModel("m", [owner, shelf, thing])
        errors, _ = SQLMetadataValidator().validate_descriptor(model, owner)
        assert "points at Shelf" in errors[0].message

    def test_one_to_many_reverse_to_ancestor_is_valid(self):
        party = EntityTypeDescriptor("Party")
        owner = EntityTypeDescriptor(
            "Owner",
            superclasses=["Party"],
            collections=[CollectionDescriptor("things", "Thing", reverse_reference="party")],
        )
        thing = EntityTypeDescriptor("Thing", references=[ReferenceDescriptor("party", "Party")])
        model = MetadataModel("m", [party, owner, thing])
        errors, _ = SQLMetadataValidator().validate_descriptor(model, owner)
        assert errors == []

    def test_many_to_many_reverse_may_be_a_collection(self, test_model):
        contractor = test_model.resolve("Contractor")
        errors, _ = SQLMetadataValidator().validate_descriptor(test_model, contractor)
        assert errors == []
