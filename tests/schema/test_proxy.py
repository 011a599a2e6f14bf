"""Tests for SchemaProxy caching and regeneration."""

import pytest

from resourcegraph.schema.proxy import SchemaProxy


class TestSchemaProxy:
    def test_requires_graph_or_loader(self):
        with pytest.raises(ValueError):
            SchemaProxy()

    def test_generates_once(self, graph):
        proxy = SchemaProxy(graph)
        assert proxy.current() is proxy.current()

    def test_invalidate_regenerates(self, graph):
        proxy = SchemaProxy(graph)
        first = proxy.current()
        proxy.invalidate()
        second = proxy.current()
        assert second is not first
        assert second.sdl() == first.sdl()

    def test_loader_called_per_generation(self, graph):
        calls = []
        proxy = SchemaProxy(loader=lambda: calls.append(1) or graph)
        proxy.current()
        proxy.current()
        proxy.invalidate()
        proxy.current()
        assert len(calls) == 2

    def test_entrypoints(self, graph):
        generated = SchemaProxy(graph, entrypoints=["TeamResource"]).current()
        assert set(generated.query_fields) == {"teams", "team"}

    def test_federation(self, graph):
        generated = SchemaProxy(graph, federation=True).current()
        assert generated.federated is True
        assert "_entities" in generated.schema.query_type.fields
