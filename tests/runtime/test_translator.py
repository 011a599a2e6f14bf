"""Tests for selection translation into parameter trees."""

import pytest
from graphql import ExecutionContext, parse

from resourcegraph.core.errors import UnsupportedSelection
from resourcegraph.runtime.translator import SelectionTranslator


def translate(generated, query, variables=None):
    document = parse(query)
    context = ExecutionContext.build(generated.schema, document, raw_variable_values=variables)
    assert not isinstance(context, list), context
    translator = SelectionTranslator(generated, context.fragments, context.variable_values)
    field_node = context.operation.selection_set.selections[0]
    return translator.translate(generated.query_field(field_node.name.value), field_node)


class TestFields:
    def test_root_fields_keyed_by_wire_type(self, generated):
        params = translate(generated, "{ employees { nodes { firstName age } } }")
        assert params.fields == {"employees": ["first_name", "age"]}
        assert params.include == []
        assert params.filter == {}

    def test_extra_fields(self, generated):
        params = translate(generated, "{ employees { nodes { firstName worth } } }")
        assert params.fields == {"employees": ["first_name"]}
        assert params.extra_fields == {"employees": ["worth"]}

    def test_typename_and_aliases(self, generated):
        params = translate(generated, "{ staff: employees { nodes { __typename name: firstName } } }")
        assert params.fields == {"employees": ["first_name"]}

    def test_directives(self, generated):
        params = translate(
            generated,
            "query($withAge: Boolean!) { employees { nodes { firstName age @include(if: $withAge) lastName @skip(if: true) } } }",
            {"withAge": False},
        )
        assert params.fields == {"employees": ["first_name"]}

    def test_fragment_on_own_type_is_flattened(self, generated):
        params = translate(generated, """
            { employees { nodes { ...EmployeeFields } } }
            fragment EmployeeFields on Employee { firstName age }
        """)
        assert params.fields == {"employees": ["first_name", "age"]}


class TestShow:
    def test_id_filter(self, generated):
        params = translate(generated, '{ employee(id: "2") { firstName } }')
        assert params.filter == {"id": {"eq": "2"}}
        assert params.fields == {"employees": ["first_name"]}
        assert params.page == {}


class TestArguments:
    def test_filter(self, generated):
        params = translate(generated, '{ employees(filter: {firstName: {eq: "Agatha"}}) { nodes { firstName } } }')
        assert params.filter == {"first_name": {"eq": "Agatha"}}

    def test_filter_from_variables(self, generated):
        params = translate(
            generated,
            "query($name: String) { employees(filter: {firstName: {notEq: $name}}) { nodes { id } } }",
            {"name": "Agatha"},
        )
        assert params.filter == {"first_name": {"not_eq": "Agatha"}}

    def test_sort(self, generated):
        params = translate(generated, "{ employees(sort: [{att: age, dir: desc}, {att: firstName}]) { nodes { id } } }")
        assert params.sort == "-age,first_name"

    def test_page(self, generated):
        params = translate(generated, "{ employees(page: {size: 1, number: 2}) { nodes { id } } }")
        assert params.page == {"size": 1, "number": 2}

    def test_nested_arguments_are_path_qualified(self, generated):
        params = translate(generated, """
            {
              employees {
                nodes {
                  positions(
                    sort: [{att: title, dir: desc}]
                    filter: {rank: {gte: 1}}
                    page: {size: 5}
                  ) { nodes { title } }
                }
              }
            }
        """)
        assert params.sort == "-positions.title"
        assert params.filter == {"positions.rank": {"gte": 1}}
        assert params.page == {"positions.size": 5}
        assert params.include == ["positions"]
        assert params.fields == {"employees": [], "positions": ["title"]}

    def test_aliased_relationship_with_same_arguments(self, generated):
        params = translate(generated, """
            {
              employees {
                nodes {
                  a: positions(sort: [{att: title}]) { nodes { title } }
                  b: positions(sort: [{att: title}]) { nodes { rank } }
                }
              }
            }
        """)
        assert params.sort == "positions.title"
        assert params.include == ["positions"]
        assert params.fields["positions"] == ["title", "rank"]

    def test_aliased_relationship_with_different_arguments(self, generated):
        with pytest.raises(UnsupportedSelection, match="different arguments"):
            translate(generated, """
                {
                  employees {
                    nodes {
                      a: positions(sort: [{att: title}]) { nodes { title } }
                      b: positions(sort: [{att: title, dir: desc}]) { nodes { title } }
                    }
                  }
                }
            """)


class TestRelationships:
    def test_nested_includes(self, generated):
        params = translate(generated, """
            { employees { nodes { firstName positions { nodes { title department { name } } } } } }
        """)
        assert params.include == ["positions", "positions.department"]
        assert params.fields == {
            "employees": ["first_name"],
            "positions": ["title"],
            "positions.department": ["name"],
        }

    def test_every_include_has_a_field_set(self, generated):
        params = translate(generated, "{ employees { nodes { positions { nodes { department { id } } } } } }")
        for path in params.include:
            assert path in params.fields


class TestStats:
    def test_stats_only_requests_no_records(self, generated):
        params = translate(generated, "{ employees { stats { age { sum average } } } }")
        assert params.stats == {"age": ["sum", "average"]}
        assert params.page == {"size": 0}

    def test_stats_with_nodes_keeps_paging(self, generated):
        params = translate(generated, "{ employees { nodes { id } stats { age { count } } } }")
        assert params.stats == {"age": ["count"]}
        assert params.page == {}

    def test_no_stats_selection(self, generated):
        params = translate(generated, "{ employees { nodes { id } } }")
        assert params.stats == {}


class TestFragments:
    def test_polymorphic_fragment_gets_scoped_field_set(self, generated):
        params = translate(generated, """
            { employees { nodes { creditCards { nodes { number ... on Visa { visaPoints } } } } } }
        """)
        assert params.include == ["credit_cards"]
        assert params.fields["credit_cards"] == ["number"]
        assert params.fields["credit_cards.on__visas"] == ["number"]
        assert params.extra_fields["credit_cards.on__visas"] == ["visa_points"]

    def test_root_polymorphic_fragment(self, generated):
        params = translate(generated, "{ creditCards { nodes { id ... on Mastercard { tier } } } }")
        assert params.fields == {"credit_cards": ["id"], "on__mastercards": ["id", "tier"]}

    def test_polymorphic_belongs_to(self, generated):
        params = translate(generated, """
            {
              notes {
                nodes {
                  body
                  notable {
                    id
                    ... on Employee { firstName }
                    ... on Team { name }
                  }
                }
              }
            }
        """)
        assert params.include == ["notable"]
        assert params.fields == {
            "notes": ["body"],
            "notable": ["id"],
            "notable.on__employees": ["id", "first_name"],
            "notable.on__teams": ["id", "name"],
        }

    def test_relationship_only_inside_fragment(self, generated):
        params = translate(generated, """
            { notes { nodes { notable { ... on Employee { positions { nodes { title } } } } } } }
        """)
        assert params.include == ["notable", "notable.on__employees--positions"]
        assert params.fields["notable.on__employees--positions"] == ["title"]

    def test_fragment_inside_fragment_scope_is_rejected(self, generated):
        with pytest.raises(UnsupportedSelection):
            translate(generated, """
                {
                  notes {
                    nodes {
                      notable {
                        ... on Employee { creditCards { nodes { ... on Visa { visaPoints } } } }
                      }
                    }
                  }
                }
            """)


class TestIdempotence:
    def test_same_query_same_tree(self, generated):
        query = """
            { employees(filter: {age: {gt: 10}}) { nodes { firstName positions(sort: [{att: rank}]) { nodes { title } } } } }
        """
        assert translate(generated, query) == translate(generated, query)
