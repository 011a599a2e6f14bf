"""Shared fixtures for tests."""

import pytest

from resourcegraph.core.defs import ResourceDef, ThroughDef
from resourcegraph.core.registry import ResourceRegistry
from resourcegraph.runtime.engine import MemoryEngine
from resourcegraph.runtime.runner import Runner
from resourcegraph.schema.builder import SchemaBuilder


def build_resources() -> list[ResourceDef]:
    """Employees with positions, departments, teams, credit cards and notes."""
    employees = ResourceDef(name="EmployeeResource", type="employees", description="A person on payroll")
    employees.attribute("first_name", "string")
    employees.attribute("last_name", "string")
    employees.attribute("age", "integer")
    employees.attribute("salary", "integer", readable=False, filterable=False, sortable=False)
    employees.extra_attribute("worth", "integer")
    employees.stat("age", "count", "sum", "average")
    employees.has_many("positions", resource="PositionResource")
    employees.has_many("credit_cards", resource="CreditCardResource")
    employees.many_to_many(
        "teams",
        resource="TeamResource",
        through=ThroughDef(table="team_memberships", foreign_key="employee_id", target_key="team_id"),
    )

    positions = ResourceDef(name="PositionResource", type="positions")
    positions.attribute("title", "string")
    positions.attribute("rank", "integer")
    positions.attribute("employee_id", "integer", sortable=False)
    positions.attribute("department_id", "integer", sortable=False)
    positions.belongs_to("department", resource="DepartmentResource")
    positions.belongs_to("employee", resource="EmployeeResource")

    departments = ResourceDef(name="DepartmentResource", type="departments")
    departments.attribute("name", "string")
    departments.filter("name", allow=["Engineering", "Safety"])

    teams = ResourceDef(name="TeamResource", type="teams")
    teams.attribute("name", "string")

    credit_cards = ResourceDef(name="CreditCardResource", type="credit_cards")
    credit_cards.attribute("number", "string")
    credit_cards.attribute("employee_id", "integer", sortable=False)

    visas = ResourceDef(name="VisaResource", type="visas", parent="CreditCardResource")
    visas.extra_attribute("visa_points", "integer")

    mastercards = ResourceDef(name="MastercardResource", type="mastercards", parent="CreditCardResource")
    mastercards.attribute("tier", "string")

    notes = ResourceDef(name="NoteResource", type="notes")
    notes.attribute("body", "string")
    notes.attribute("notable_id", "integer", sortable=False)
    notes.attribute("notable_type", "string", sortable=False)
    notes.polymorphic_belongs_to("notable", types={"employees": "EmployeeResource", "teams": "TeamResource"})

    return [employees, positions, departments, teams, credit_cards, visas, mastercards, notes]


@pytest.fixture
def registry() -> ResourceRegistry:
    return ResourceRegistry(build_resources())


@pytest.fixture
def graph(registry):
    return registry.graph()


@pytest.fixture
def data() -> dict:
    return {
        "EmployeeResource": [
            {"id": 1, "first_name": "Stephen", "last_name": "King", "age": 60, "salary": 100, "worth": 500},
            {"id": 2, "first_name": "Agatha", "last_name": "Christie", "age": 70, "salary": 200, "worth": 900},
        ],
        "PositionResource": [
            {"id": 1, "employee_id": 1, "department_id": 1, "title": "Author", "rank": 1},
            {"id": 2, "employee_id": 1, "department_id": 2, "title": "Screenwriter", "rank": 2},
            {"id": 3, "employee_id": 2, "department_id": 1, "title": "Novelist", "rank": 1},
        ],
        "DepartmentResource": [
            {"id": 1, "name": "Engineering"},
            {"id": 2, "name": "Safety"},
        ],
        "TeamResource": [
            {"id": 1, "name": "Horror"},
            {"id": 2, "name": "Mystery"},
        ],
        "team_memberships": [
            {"employee_id": 1, "team_id": 1},
            {"employee_id": 2, "team_id": 2},
        ],
        "VisaResource": [
            {"id": 1, "employee_id": 1, "number": "4111", "visa_points": 30},
        ],
        "MastercardResource": [
            {"id": 2, "employee_id": 1, "number": "5500", "tier": "gold"},
        ],
        "NoteResource": [
            {"id": 1, "body": "Prolific", "notable_id": 1, "notable_type": "employees"},
            {"id": 2, "body": "Whodunit", "notable_id": 2, "notable_type": "teams"},
        ],
    }


@pytest.fixture
def engine(graph, data) -> MemoryEngine:
    return MemoryEngine(graph, data)


@pytest.fixture
def generated(graph):
    return SchemaBuilder(graph).generate()


@pytest.fixture
def runner(generated, engine) -> Runner:
    return Runner(generated, engine)
