"""Tests for naming, inflection and path helpers."""

import pytest

from resourcegraph.core.utils import (
    enum_value_name,
    fragment_segment,
    graphql_type_name,
    is_fragment_scoped,
    join_path,
    parse_fragment_segment,
    parse_sort,
    pluralize,
    singularize,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
)


class TestCaseConversion:
    @pytest.mark.parametrize("name,expected", [
        ("firstName", "first_name"),
        ("HTTPResponse", "http_response"),
        ("_type", "_type"),
        ("id", "id"),
    ])
    def test_to_snake_case(self, name, expected):
        assert to_snake_case(name) == expected

    def test_to_camel_case(self):
        assert to_camel_case("first_name") == "firstName"
        assert to_camel_case("_type") == "_type"
        assert to_camel_case("not_eq") == "notEq"

    def test_to_pascal_case(self):
        assert to_pascal_case("credit_card") == "CreditCard"
        assert to_pascal_case("notable") == "Notable"


class TestInflection:
    @pytest.mark.parametrize("word,expected", [
        ("employee", "employees"),
        ("employees", "employees"),
        ("credit_card", "credit_cards"),
        ("address", "addresses"),
        ("category", "categories"),
        ("person", "people"),
    ])
    def test_pluralize(self, word, expected):
        assert pluralize(word) == expected

    @pytest.mark.parametrize("word,expected", [
        ("employees", "employee"),
        ("employee", "employee"),
        ("credit_cards", "credit_card"),
        ("addresses", "address"),
        ("categories", "category"),
        ("people", "person"),
    ])
    def test_singularize(self, word, expected):
        assert singularize(word) == expected

    def test_uncountable(self):
        assert pluralize("equipment") == "equipment"
        assert singularize("equipment") == "equipment"


class TestGraphQLNames:
    def test_resource_suffix_is_dropped(self):
        assert graphql_type_name("EmployeeResource") == "Employee"

    def test_namespaces_are_joined(self):
        assert graphql_type_name("PORO::EmployeeResource") == "POROEmployee"

    def test_snake_names_are_pascalized(self):
        assert graphql_type_name("credit_cards") == "CreditCards"

    def test_enum_value_name(self):
        assert enum_value_name("Engineering") == "Engineering"
        assert enum_value_name("in progress") == "in_progress"
        assert enum_value_name(1) == "_1"


class TestPaths:
    def test_join_path(self):
        assert join_path(None, "positions") == "positions"
        assert join_path("positions", "department") == "positions.department"
        assert join_path(None, None) is None

    def test_fragment_segments(self):
        assert fragment_segment("visas") == "on__visas"
        assert fragment_segment("visas", "transactions") == "on__visas--transactions"
        assert parse_fragment_segment("on__visas--transactions") == ("visas", "transactions")
        assert parse_fragment_segment("on__visas") == ("visas", "")
        assert parse_fragment_segment("positions") == (None, "positions")

    def test_is_fragment_scoped(self):
        assert is_fragment_scoped("credit_cards.on__visas--transactions")
        assert not is_fragment_scoped("positions.department")
        assert not is_fragment_scoped(None)

    def test_parse_sort(self):
        assert parse_sort("-positions.title,age") == [("positions.title", "desc"), ("age", "asc")]
        assert parse_sort(None) == []
