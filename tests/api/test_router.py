"""Tests for the FastAPI GraphQL router."""

import pytest
from fastapi.testclient import TestClient

from resourcegraph.api.router import create_graphql_app
from resourcegraph.core.errors import InvalidFilterValue
from resourcegraph.runtime.engine import MemoryEngine
from resourcegraph.schema.proxy import SchemaProxy


class ClosingEngine(MemoryEngine):
    closed = False

    async def close(self):
        self.closed = True


class RejectingEngine(MemoryEngine):
    async def query(self, resource, params):
        raise InvalidFilterValue(resource.name, "first_name", "nobody")


@pytest.fixture
def proxy(graph) -> SchemaProxy:
    return SchemaProxy(graph)


@pytest.fixture
def client(proxy, engine):
    return TestClient(create_graphql_app(proxy, engine))


class TestGraphQLEndpoint:
    def test_query(self, client):
        response = client.post("/graphql", json={"query": '{ employee(id: "1") { firstName } }'})
        assert response.status_code == 200
        assert response.json() == {"data": {"employee": {"firstName": "Stephen"}}}

    def test_variables_and_operation_name(self, client):
        response = client.post("/graphql", json={
            "query": "query Find($id: String!) { employee(id: $id) { lastName } }",
            "variables": {"id": "2"},
            "operationName": "Find",
        })
        assert response.json() == {"data": {"employee": {"lastName": "Christie"}}}

    def test_validation_errors(self, client):
        response = client.post("/graphql", json={"query": "{ employees { nodes { bogus } } }"})
        assert response.status_code == 200
        assert response.json()["errors"][0]["extensions"]["code"] == "GRAPHQL_VALIDATION_FAILED"

    def test_engine_errors(self, proxy, graph, data):
        client = TestClient(create_graphql_app(proxy, RejectingEngine(graph, data)))
        response = client.post("/graphql", json={"query": "{ employees { nodes { id } } }"})
        assert response.status_code == 400
        assert response.json()["errors"][0]["extensions"]["code"] == "InvalidFilterValue"

    def test_missing_query(self, client):
        assert client.post("/graphql", json={}).status_code == 422

    def test_max_depth(self, proxy, engine):
        client = TestClient(create_graphql_app(proxy, engine, max_depth=1))
        response = client.post("/graphql", json={"query": "{ employees { nodes { id } } }"})
        assert response.json()["errors"][0]["message"] == "Query has depth of 3, which exceeds max depth of 1"


class TestSchemaEndpoints:
    def test_sdl(self, client):
        response = client.get("/graphql/schema.graphql")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "type Department {" in response.text
        assert "@key" not in response.text

    def test_federated_sdl(self, graph, engine):
        client = TestClient(create_graphql_app(SchemaProxy(graph, federation=True), engine))
        assert 'type Department @key(fields: "id") {' in client.get("/graphql/schema.graphql").text

    def test_refresh(self, graph, engine):
        calls = []

        def load():
            calls.append(1)
            return graph

        proxy = SchemaProxy(loader=load)
        client = TestClient(create_graphql_app(proxy, engine))
        client.get("/graphql/schema.graphql")
        response = client.post("/graphql/__refresh")
        assert response.json() == {
            "status": "ok",
            "query_fields": len(proxy.current().query_fields),
            "federated": False,
        }
        assert len(calls) == 2

    def test_schema_reloading(self, graph, engine):
        calls = []

        def load():
            calls.append(1)
            return graph

        client = TestClient(create_graphql_app(SchemaProxy(loader=load), engine, schema_reloading=True))
        for _ in range(2):
            client.post("/graphql", json={"query": "{ teams { nodes { name } } }"})
        assert len(calls) == 2


class TestLifecycle:
    def test_engine_closed_on_shutdown(self, proxy, graph, data):
        engine = ClosingEngine(graph, data)
        with TestClient(create_graphql_app(proxy, engine)) as client:
            client.get("/graphql/schema.graphql")
        assert engine.closed is True
