"""Fixtures for a positions service that federates with an external Employee and Team."""

import pytest

from resourcegraph.core.defs import ResourceDef
from resourcegraph.core.registry import ResourceRegistry
from resourcegraph.federation.decorator import decorate
from resourcegraph.runtime.engine import MemoryEngine
from resourcegraph.runtime.runner import Runner
from resourcegraph.schema.builder import SchemaBuilder


def build_federated_resources() -> list[ResourceDef]:
    positions = ResourceDef(name="PositionResource", type="positions")
    positions.attribute("title", "string")
    positions.attribute("employee_id", "integer", sortable=False)
    positions.federated_type("Employee").has_many("positions", foreign_key="employee_id")
    positions.federated_belongs_to("employee", type="Employee")

    notes = ResourceDef(name="NoteResource", type="notes")
    notes.attribute("body", "string")
    notes.federated_belongs_to("notable", type={"employees": "Employee", "teams": "Team"})

    return [positions, notes]


@pytest.fixture
def federated_graph():
    return ResourceRegistry(build_federated_resources()).graph()


@pytest.fixture
def federated_data() -> dict:
    return {
        "PositionResource": [
            {"id": 1, "employee_id": 1, "title": "Author"},
            {"id": 2, "employee_id": 1, "title": "Screenwriter"},
            {"id": 3, "employee_id": 2, "title": "Novelist"},
        ],
        "NoteResource": [
            {"id": 1, "body": "Prolific", "notable_id": 1, "notable_type": "employees"},
            {"id": 2, "body": "Whodunit", "notable_id": 2, "notable_type": "teams"},
            {"id": 3, "body": "Orphan", "notable_id": None, "notable_type": None},
        ],
    }


@pytest.fixture
def federated_engine(federated_graph, federated_data) -> MemoryEngine:
    return MemoryEngine(federated_graph, federated_data)


@pytest.fixture
def federated(federated_graph):
    return decorate(SchemaBuilder(federated_graph).generate())


@pytest.fixture
def federated_runner(federated, federated_engine) -> Runner:
    return Runner(federated, federated_engine)
