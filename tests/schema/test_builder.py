"""Tests for schema synthesis."""

import pytest
from graphql import GraphQLField, GraphQLNonNull, GraphQLObjectType, GraphQLString, get_named_type

from resourcegraph.core.defs import ResourceDef
from resourcegraph.core.errors import UnknownResourceReference
from resourcegraph.core.graph import ResourceGraph
from resourcegraph.core.registry import ResourceRegistry
from resourcegraph.schema.builder import QueryField, SchemaBuilder


def _graph(*resources: ResourceDef) -> ResourceGraph:
    return ResourceRegistry(resources).graph()


class TestEntryPoints:
    def test_list_and_show_fields(self, generated):
        query = generated.schema.query_type
        assert "employees" in query.fields
        assert "employee" in query.fields
        assert generated.query_field("employees") == QueryField("EmployeeResource", "list")
        assert generated.query_field("employee") == QueryField("EmployeeResource", "show")

    def test_list_field_returns_top_level_connection(self, generated):
        field = generated.schema.query_type.fields["employees"]
        assert isinstance(field.type, GraphQLNonNull)
        assert get_named_type(field.type).name == "EmployeeTopLevelConnection"
        assert set(field.args) == {"filter", "sort", "page"}

    def test_show_field_takes_only_id(self, generated):
        field = generated.schema.query_type.fields["employee"]
        assert set(field.args) == {"id"}
        assert str(field.args["id"].type) == "String!"

    def test_selected_entrypoints(self, graph):
        generated = SchemaBuilder(graph).generate(["EmployeeResource"])
        assert set(generated.query_fields) == {"employees", "employee"}
        # Related resources still get types
        assert generated.schema.get_type("Position") is not None

    def test_unknown_entrypoint(self, graph):
        with pytest.raises(UnknownResourceReference):
            SchemaBuilder(graph).generate(["MissingResource"])

    def test_graphql_entrypoint_override(self):
        staff = ResourceDef(name="EmployeeResource", type="employees", graphql_entrypoint="staff_members")
        generated = SchemaBuilder(_graph(staff)).generate()
        assert set(generated.query_fields) == {"staffMembers", "staffMember"}

    def test_singular_plural_collision_keeps_list_only(self, caplog):
        equipment = ResourceDef(name="EquipmentResource", type="equipment")
        generated = SchemaBuilder(_graph(equipment)).generate()
        assert set(generated.query_fields) == {"equipment"}
        assert generated.query_field("equipment").kind == "list"
        assert "same singular and plural form" in caplog.text

    def test_remote_resources_are_skipped(self):
        local = ResourceDef(name="EmployeeResource", type="employees")
        local.has_many("positions", resource="PositionResource")
        remote = ResourceDef(name="PositionResource", type="positions", remote="http://positions:8002")
        generated = SchemaBuilder(_graph(local, remote)).generate()
        assert "positions" not in generated.query_fields
        assert "positions" not in generated.schema.get_type("Employee").fields


class TestObjectTypes:
    def test_attribute_fields(self, generated):
        employee = generated.schema.get_type("Employee")
        assert str(employee.fields["id"].type) == "String!"
        assert str(employee.fields["_type"].type) == "String!"
        assert str(employee.fields["firstName"].type) == "String"
        assert str(employee.fields["age"].type) == "Int"
        assert str(employee.fields["worth"].type) == "Int"

    def test_unreadable_attributes_are_hidden(self, generated):
        assert "salary" not in generated.schema.get_type("Employee").fields

    def test_non_nullable_attribute(self):
        employees = ResourceDef(name="EmployeeResource", type="employees")
        employees.attribute("first_name", "string", nullable=False)
        generated = SchemaBuilder(_graph(employees)).generate()
        assert str(generated.schema.get_type("Employee").fields["firstName"].type) == "String!"

    def test_schema_false_attributes_are_hidden(self):
        employees = ResourceDef(name="EmployeeResource", type="employees")
        employees.attribute("team_id", "integer", schema=False)
        generated = SchemaBuilder(_graph(employees)).generate()
        assert "teamId" not in generated.schema.get_type("Employee").fields
        assert "teamId" not in generated.schema.get_type("EmployeeFilter").fields

    @pytest.mark.parametrize("attribute_type,expected", [
        ("uuid", "String"),
        ("big_decimal", "Float"),
        ("boolean", "Boolean"),
        ("date", "Date"),
        ("datetime", "DateTime"),
        ("hash", "JSON"),
        ("array", "[JSON]"),
        ("array_of_strings", "[String]"),
        ("array_of_integers", "[Int]"),
    ])
    def test_scalar_map(self, attribute_type, expected):
        resource = ResourceDef(name="ThingResource", type="things")
        resource.attribute("value", attribute_type, filterable=False)
        generated = SchemaBuilder(_graph(resource)).generate()
        assert str(generated.schema.get_type("Thing").fields["value"].type) == expected


class TestRelationships:
    def test_to_many_returns_connection(self, generated):
        field = generated.schema.get_type("Employee").fields["positions"]
        assert str(field.type) == "PositionConnection!"
        assert set(field.args) == {"filter", "sort", "page"}
        connection = generated.schema.get_type("PositionConnection")
        assert str(connection.fields["nodes"].type) == "[Position!]!"
        assert "stats" not in connection.fields

    def test_belongs_to_takes_no_arguments(self, generated):
        field = generated.schema.get_type("Position").fields["department"]
        assert str(field.type) == "Department"
        assert field.args == {}

    def test_many_to_many(self, generated):
        field = generated.schema.get_type("Employee").fields["teams"]
        assert str(field.type) == "TeamConnection!"

    def test_polymorphic_belongs_to_interface(self, generated):
        field = generated.schema.get_type("Note").fields["notable"]
        assert str(field.type) == "Note__notable"
        assert field.args == {}
        implementations = generated.schema.get_implementations(generated.schema.get_type("Note__notable"))
        assert {t.name for t in implementations.objects} == {"Employee", "Team"}


class TestPolymorphism:
    def test_interface_and_concrete_types(self, generated):
        interface = generated.schema.get_type("ICreditCard")
        implementations = generated.schema.get_implementations(interface)
        assert {t.name for t in implementations.objects} == {"CreditCard", "Visa", "Mastercard"}

    def test_each_implementer_has_one_generated_interface(self, generated):
        for name in ("CreditCard", "Visa", "Mastercard"):
            assert [i.name for i in generated.schema.get_type(name).interfaces] == ["ICreditCard"]

    def test_children_keep_their_own_fields(self, generated):
        assert "visaPoints" in generated.schema.get_type("Visa").fields
        assert "tier" in generated.schema.get_type("Mastercard").fields
        assert "number" in generated.schema.get_type("Visa").fields

    def test_relationship_points_at_interface(self, generated):
        connection = generated.schema.get_type("CreditCardConnection")
        assert str(connection.fields["nodes"].type) == "[ICreditCard!]!"


class TestArguments:
    def test_filter_types(self, generated):
        filter_type = generated.schema.get_type("EmployeeFilter")
        assert "firstName" in filter_type.fields
        assert filter_type.fields["firstName"].out_name == "first_name"
        operators = generated.schema.get_type("EmployeeFilterFilterFirstName")
        assert {"eq", "notEq", "prefix", "match"} <= set(operators.fields)
        assert operators.fields["notEq"].out_name == "not_eq"

    def test_allow_list_becomes_enum(self, generated):
        allow = generated.schema.get_type("DepartmentFilterNameAllow")
        assert set(allow.values) == {"Engineering", "Safety"}
        eq = generated.schema.get_type("DepartmentFilterFilterName").fields["eq"]
        assert get_named_type(eq.type) is allow

    def test_colliding_allow_values_stay_distinct(self):
        departments = ResourceDef(name="DepartmentResource", type="departments")
        departments.attribute("code", "string")
        departments.filter("code", allow=["a-b", "a b", "a-b", "1x"])
        generated = SchemaBuilder(_graph(departments)).generate()
        allow = generated.schema.get_type("DepartmentFilterCodeAllow")
        assert {name: value.value for name, value in allow.values.items()} == {
            "a_b": "a-b",
            "a_b_2": "a b",
            "_1x": "1x",
        }

    def test_sort_types(self, generated):
        att = generated.schema.get_type("EmployeeSortAtt")
        assert att.values["firstName"].value == "first_name"
        sort = generated.schema.get_type("EmployeeSort")
        assert str(sort.fields["dir"].type) == "SortDir!"
        assert sort.fields["dir"].default_value == "asc"

    def test_page_type(self, generated):
        page = generated.schema.get_type("Page")
        assert set(page.fields) == {"size", "number"}

    def test_no_filters_or_sorts(self):
        plain = ResourceDef(name="PlainResource", type="plains")
        plain.attributes["id"].filterable = False
        plain.attributes["id"].sortable = False
        plain.attribute("label", "string", filterable=False, sortable=False)
        generated = SchemaBuilder(_graph(plain)).generate()
        field = generated.schema.query_type.fields["plains"]
        assert set(field.args) == {"page"}
        assert generated.schema.get_type("PlainFilter") is None
        assert generated.schema.get_type("PlainSort") is None
        assert generated.schema.get_type("PlainSortAtt") is None

    def test_required_filter(self):
        employees = ResourceDef(name="EmployeeResource", type="employees")
        employees.attribute("first_name", "string")
        employees.filter("first_name", required=True)
        generated = SchemaBuilder(_graph(employees)).generate()
        field = generated.schema.query_type.fields["employees"]
        assert str(field.args["filter"].type) == "EmployeeFilter!"
        operators = generated.schema.get_type("EmployeeFilterFilterFirstName")
        assert str(operators.fields["eq"].type) == "String!"


class TestStats:
    def test_stats_on_top_level_connection(self, generated):
        connection = generated.schema.get_type("EmployeeTopLevelConnection")
        assert str(connection.fields["stats"].type) == "EmployeeStats"
        stat = generated.schema.get_type("EmployeeAgeStat")
        assert set(stat.fields) == {"count", "sum", "average"}
        assert str(stat.fields["sum"].type) == "Float"

    def test_no_stats_without_declarations(self, generated):
        assert "stats" not in generated.schema.get_type("PositionTopLevelConnection").fields


class TestExtraQueryFields:
    def test_hand_written_fields_are_merged(self, graph):
        version = GraphQLField(GraphQLString, resolve=lambda *_: "1.0")
        status = GraphQLObjectType("Status", {"ok": GraphQLField(GraphQLString)})
        generated = SchemaBuilder(graph, {"version": version}, extra_types=[status]).generate()
        assert generated.schema.query_type.fields["version"] is version
        assert generated.schema.get_type("Status") is status
        assert "version" not in generated.query_fields


class TestSdl:
    def test_sdl_round_trips_through_printer(self, generated):
        sdl = generated.sdl()
        assert "type Employee implements Note__notable" in sdl
        assert "interface ICreditCard" in sdl
        assert "employees(filter: EmployeeFilter, sort: [EmployeeSort!], page: Page): EmployeeTopLevelConnection!" in sdl
