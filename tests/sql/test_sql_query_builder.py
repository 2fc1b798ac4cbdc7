"""
SQL naming and query construction tests.

Query strings are compared exactly: the converter's contract with the source
database is the literal SQL text.
"""

import pytest
import sys
import os
from decimal import Decimal

# Add src to path
src_dir = os.path.join(os.path.dirname(__file__), '..', '..', 'src')
if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

from core.errors import AmbiguityError
from formats.sql.sql_naming import (
    IndirectionTableResolver,
    default_reverse_field,
    foreign_key_column,
    primary_key_column,
    table_name,
    unqualified_name,
)
from formats.sql.sql_query_builder import (
    RelationshipQueryBuilder,
    build_attribute_query,
    build_indirection_query,
    build_reverse_lookup_query,
    sql_literal,
)
from shared.models.metadata import (
    CollectionDescriptor,
    EntityTypeDescriptor,
    FieldKind,
    MetadataModel,
    ReferenceDescriptor,
)

from fixtures import q


DEPARTMENT_COLUMNS = ["Department_id", "name", "company_id", "manager_id"]
COMPANY_COLUMNS = ["Company_id", "name", "vatNumber", "cEO_id"]


@pytest.mark.unit
class TestNaming:
    """Table and column naming tests."""

    def test_unqualified_name(self):
        assert unqualified_name(q("Department")) == "Department"
        assert unqualified_name("Department") == "Department"

    def test_table_and_key_columns(self):
        assert table_name(q("Department")) == "Department"
        assert primary_key_column(q("Department")) == "Department_id"
        assert foreign_key_column("departmentThatRejectedMe") == "departmentThatRejectedMe_id"

    def test_default_reverse_field(self):
        assert default_reverse_field(q("Department")) == "department"
        assert default_reverse_field("CEO") == "cEO"


@pytest.mark.unit
class TestIndirectionTableResolver:
    """Indirection table resolution tests."""

    def test_default_policy(self):
        assert IndirectionTableResolver().resolve(q("Company"), q("Contractor")) == "Company_Contractor"

    def test_direction_matters(self):
        resolver = IndirectionTableResolver()
        assert resolver.resolve("Contractor", "Company") == "Contractor_Company"

    def test_override_by_unqualified_names(self):
        resolver = IndirectionTableResolver({("Company", "Contractor"): "works_for"})
        assert resolver.resolve(q("Company"), q("Contractor")) == "works_for"
        assert resolver.resolve("Contractor", "Company") == "Contractor_Company"

    def test_override_by_qualified_names(self):
        resolver = IndirectionTableResolver({(q("Company"), q("Contractor")): "works_for"})
        assert resolver.resolve("Company", "Contractor") == "works_for"
        assert resolver.overrides == {("Company", "Contractor"): "works_for"}

    def test_deterministic(self):
        resolver = IndirectionTableResolver()
        assert resolver.resolve("A", "B") == resolver.resolve("A", "B")


@pytest.mark.unit
class TestQueryText:
    """Literal query text tests."""

    def test_attribute_query(self, test_model):
        assert build_attribute_query(test_model.resolve("Department")) == "SELECT * FROM Department"

    def test_reverse_lookup_query(self):
        assert (
            build_reverse_lookup_query(q("Employee"), "department", 12)
            == "SELECT Employee_id FROM Employee WHERE department_id = 12"
        )

    def test_indirection_query(self):
        assert (
            build_indirection_query("Company_Contractor", q("Company"), q("Contractor"), 12)
            == "SELECT Contractor_id FROM Company_Contractor WHERE Company_id = 12"
        )

    @pytest.mark.parametrize("value,expected", [
        (12, "12"),
        (12.0, "12"),
        (Decimal("12"), "12"),
        (True, "1"),
        ("abc", "'abc'"),
        ("O'Brien", "'O''Brien'"),
        (1.5, "'1.5'"),
    ])
    def test_sql_literal(self, value, expected):
        assert sql_literal(value) == expected

    def test_string_identifier_quoted_in_query(self):
        assert (
            build_reverse_lookup_query("Employee", "department", "D-12")
            == "SELECT Employee_id FROM Employee WHERE department_id = 'D-12'"
        )


@pytest.mark.unit
class TestRelationshipQueryBuilder:
    """Relationship query planning tests."""

    def test_department_one_to_many(self, test_model):
        builder = RelationshipQueryBuilder(test_model)
        plan = builder.build(test_model.resolve("Department"), 12, DEPARTMENT_COLUMNS)

        assert plan.errors == []
        assert [(p.field_name, p.kind, p.sql) for p in plan.queries] == [
            ("employees", FieldKind.ONE_TO_MANY,
             "SELECT Employee_id FROM Employee WHERE department_id = 12"),
            ("rejectedEmployees", FieldKind.ONE_TO_MANY,
             "SELECT Employee_id FROM Employee WHERE departmentThatRejectedMe_id = 12"),
        ]

    def test_company_many_to_many(self, test_model):
        builder = RelationshipQueryBuilder(test_model)
        plan = builder.build(test_model.resolve("Company"), 12, COMPANY_COLUMNS)

        assert [p.sql for p in plan.queries] == [
            "SELECT Department_id FROM Department WHERE company_id = 12",
            "SELECT Contractor_id FROM Company_Contractor WHERE Company_id = 12",
        ]

    def test_unidirectional_many_to_many(self, test_model):
        builder = RelationshipQueryBuilder(test_model)
        plan = builder.build(
            test_model.resolve("Contractor"), 12,
            ["Contractor_id", "personalAddress_id", "businessAddress_id"],
        )
        assert [p.sql for p in plan.queries] == [
            "SELECT Company_id FROM Contractor_Company WHERE Contractor_id = 12",
        ]

    def test_override_changes_indirection_table(self, test_model):
        resolver = IndirectionTableResolver({("Company", "Contractor"): "company_contractor"})
        plan = RelationshipQueryBuilder(test_model, resolver).build(
            test_model.resolve("Company"), 12, COMPANY_COLUMNS
        )
        assert plan.queries[1].sql == "SELECT Contractor_id FROM company_contractor WHERE Company_id = 12"

    def test_reference_on_row_needs_no_query(self, test_model):
        plan = RelationshipQueryBuilder(test_model).build(
            test_model.resolve("Address"), 3, ["Address_id", "address"]
        )
        assert plan.queries == []

    def test_reference_column_match_is_case_insensitive(self, test_model):
        plan = RelationshipQueryBuilder(test_model).build(
            test_model.resolve("Company"), 12, ["COMPANY_ID", "NAME", "VATNUMBER", "CEO_ID"]
        )
        assert all(p.kind is not FieldKind.REFERENCE for p in plan.queries)

    def test_reference_stored_on_target_is_looked_up(self, test_model):
        plan = RelationshipQueryBuilder(test_model).build(
            test_model.resolve("Company"), 12, ["Company_id", "name", "vatNumber"]
        )
        assert plan.queries[0].field_name == "cEO"
        assert plan.queries[0].kind is FieldKind.REFERENCE
        assert plan.queries[0].sql == "SELECT CEO_id FROM CEO WHERE company_id = 12"

    def test_missing_reference_column_without_reverse_is_left_unset(self, test_model):
        plan = RelationshipQueryBuilder(test_model).build(
            test_model.resolve("Department"), 12, ["Department_id", "name", "company_id"]
        )
        assert "manager" not in [p.field_name for p in plan.queries]

    def test_missing_column_with_collection_reverse_is_left_unset(self, test_model):
        """Employee.department's reverse is a collection, so there is nothing to look up."""
        plan = RelationshipQueryBuilder(test_model).build(
            test_model.resolve("Employee"), 3, ["Employee_id", "name"]
        )
        assert plan.queries == []

    def test_inherited_collections_use_subclass_identifier(self):
        base = EntityTypeDescriptor(
            "Holder", collections=[CollectionDescriptor("things", "Thing", reverse_reference="holder")]
        )
        child = EntityTypeDescriptor("SpecialHolder", superclasses=["Holder"])
        thing = EntityTypeDescriptor("Thing", references=[ReferenceDescriptor("holder", "Holder")])
        model = MetadataModel("m", [base, child, thing])
        plan = RelationshipQueryBuilder(model).build(child, 5, ["SpecialHolder_id"])
        assert plan.queries[0].sql == "SELECT Thing_id FROM Thing WHERE holder_id = 5"

    def test_same_input_same_sql(self, test_model):
        builder = RelationshipQueryBuilder(test_model)
        department = test_model.resolve("Department")
        first = builder.build(department, 12, DEPARTMENT_COLUMNS)
        second = builder.build(department, 12, DEPARTMENT_COLUMNS)
        assert first.queries == second.queries


@pytest.mark.unit
class TestReverseFieldResolution:
    """One-to-many reverse field selection tests."""

    def _model(self, *employee_refs, collection_reverse=None):
        department = EntityTypeDescriptor(
            "Department",
            collections=[CollectionDescriptor("employees", "Employee", reverse_reference=collection_reverse)],
        )
        employee = EntityTypeDescriptor("Employee", references=list(employee_refs))
        return MetadataModel("m", [department, employee])

    def test_declared_reverse_wins(self):
        model = self._model(
            ReferenceDescriptor("department", "Department"),
            ReferenceDescriptor("departmentThatRejectedMe", "Department"),
            collection_reverse="departmentThatRejectedMe",
        )
        department = model.resolve("Department")
        builder = RelationshipQueryBuilder(model)
        assert builder.reverse_field_for(department, department.collections[0]) == "departmentThatRejectedMe"

    def test_single_back_reference_inferred(self):
        model = self._model(ReferenceDescriptor("dept", "Department"))
        department = model.resolve("Department")
        assert RelationshipQueryBuilder(model).reverse_field_for(department, department.collections[0]) == "dept"

    def test_no_back_reference_uses_default_name(self):
        model = self._model()
        department = model.resolve("Department")
        assert RelationshipQueryBuilder(model).reverse_field_for(department, department.collections[0]) == "department"

    def test_two_back_references_ambiguous(self):
        model = self._model(
            ReferenceDescriptor("department", "Department"),
            ReferenceDescriptor("departmentThatRejectedMe", "Department"),
        )
        department = model.resolve("Department")
        with pytest.raises(AmbiguityError) as exc_info:
            RelationshipQueryBuilder(model).reverse_field_for(department, department.collections[0])
        assert exc_info.value.location == "Department.employees"

    def test_ambiguity_reported_in_plan(self):
        model = self._model(
            ReferenceDescriptor("department", "Department"),
            ReferenceDescriptor("departmentThatRejectedMe", "Department"),
        )
        plan = RelationshipQueryBuilder(model).build(model.resolve("Department"), 1, ["Department_id"])
        assert plan.queries == []
        assert len(plan.errors) == 1
        assert isinstance(plan.errors[0], AmbiguityError)

    def test_two_collections_sharing_indirection_table(self):
        company = EntityTypeDescriptor(
            "Company",
            collections=[
                CollectionDescriptor("contractors", "Contractor", FieldKind.MANY_TO_MANY),
                CollectionDescriptor("oldContracts", "Contractor", FieldKind.MANY_TO_MANY),
            ],
        )
        contractor = EntityTypeDescriptor("Contractor")
        model = MetadataModel("m", [company, contractor])
        plan = RelationshipQueryBuilder(model).build(company, 12, ["Company_id"])

        assert [p.field_name for p in plan.queries] == ["contractors"]
        assert [e.field_name for e in plan.errors] == ["oldContracts"]
        assert isinstance(plan.errors[0], AmbiguityError)
