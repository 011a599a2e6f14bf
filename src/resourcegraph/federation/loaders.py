"""
Batched loaders for federated relationships.

Within one execution, every load() issued during the same synchronous
resolver pass joins one batch. The batch is dispatched from a loop
callback scheduled on the first load, so the engine sees one query per
(operation, parameter shape) and resolver pass.

Batch states: collecting -> dispatched -> fulfilled. Once dispatched, a
batch accepts no more keys; later loads start a new batch.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Hashable, Optional

from ..core.errors import UnsupportedPagination
from ..core.graph import ResourceNode
from ..core.query_types import ParameterTree
from ..core.utils import FRAGMENT_PREFIX
from ..runtime.engine import ResourceEngine
from .dsl import FederatedRelationship

logger = logging.getLogger(__name__)

DEFAULT_FANOUT_PAGE_SIZE = 999


class BatchState(str, Enum):
    COLLECTING = "collecting"
    DISPATCHED = "dispatched"
    FULFILLED = "fulfilled"


class Batch:
    """Pending keys for one dispatch, one future per distinct key."""

    def __init__(self):
        self.state = BatchState.COLLECTING
        self.futures: dict[str, asyncio.Future] = {}
        self.task: Optional[asyncio.Task] = None

    @property
    def keys(self) -> list[str]:
        return list(self.futures)


class BatchLoader:
    """
    Base loader. Subclasses implement perform(keys) -> {key: value}.

    Usage:
        future = loader.load("1")   # call synchronously from a resolver
        value = await future
    """

    def __init__(self):
        self._batch: Optional[Batch] = None
        self._dispatching: set[Batch] = set()
        self.dispatch_count = 0

    async def perform(self, keys: list[str]) -> dict[str, Any]:
        raise NotImplementedError

    def missing(self) -> Any:
        """Value for keys perform() returned nothing for."""
        return None

    @property
    def pending(self) -> int:
        """Batches dispatched but not yet fulfilled."""
        return len(self._dispatching)

    def load(self, key: Any) -> asyncio.Future:
        key = str(key)
        loop = asyncio.get_running_loop()
        batch = self._batch
        if batch is None or batch.state is not BatchState.COLLECTING:
            batch = self._batch = Batch()
            loop.call_soon(self._dispatch_soon, batch)
        future = batch.futures.get(key)
        if future is None:
            future = loop.create_future()
            batch.futures[key] = future
        return future

    def _dispatch_soon(self, batch: Batch) -> None:
        batch.state = BatchState.DISPATCHED
        if self._batch is batch:
            self._batch = None
        # The loop keeps only a weak reference to tasks
        self._dispatching.add(batch)
        batch.task = asyncio.get_running_loop().create_task(self._dispatch(batch))

    async def _dispatch(self, batch: Batch) -> None:
        self.dispatch_count += 1
        logger.debug(f"{type(self).__name__} dispatching {len(batch.futures)} keys")
        try:
            try:
                results = await self.perform(batch.keys)
            except Exception as error:
                for future in batch.futures.values():
                    if not future.done():
                        future.set_exception(error)
                return

            for key, future in batch.futures.items():
                if not future.done():
                    future.set_result(results[key] if key in results else self.missing())
        finally:
            batch.state = BatchState.FULFILLED
            batch.task = None
            self._dispatching.discard(batch)


def _root_field_keys(params: ParameterTree, resource: ResourceNode) -> list[str]:
    keys = [key for key in params.fields if key == resource.type or key.startswith(FRAGMENT_PREFIX)]
    return keys or [resource.type]


class HasManyLoader(BatchLoader):
    """
    Loads local records belonging to external parents, grouped by foreign key.

    The relationship's params hook runs once per batch; runtime sort then
    overrides its sort, runtime filters are added where the hook set none.
    """

    def __init__(
        self,
        engine: ResourceEngine,
        resource: ResourceNode,
        relationship: FederatedRelationship,
        params: ParameterTree,
        fanout_page_size: int = DEFAULT_FANOUT_PAGE_SIZE,
    ):
        super().__init__()
        self.engine = engine
        self.resource = resource
        self.relationship = relationship
        self.params = params
        self.fanout_page_size = fanout_page_size

    def missing(self) -> Any:
        return []

    def build_params(self, ids: list[str]) -> ParameterTree:
        runtime = self.params
        foreign_key = self.relationship.foreign_key
        params = ParameterTree(
            fields={key: list(names) for key, names in runtime.fields.items()},
            extra_fields={key: list(names) for key, names in runtime.extra_fields.items()},
            include=list(runtime.include),
            filter={foreign_key: {"eq": list(ids)}},
        )
        params = self.relationship.apply_params(params)

        if runtime.sort:
            params.sort = runtime.sort
        for key, value in runtime.filter.items():
            params.filter.setdefault(key, value)
        params.page.update(runtime.page)

        for key in _root_field_keys(params, self.resource):
            params.add_fields(key, [foreign_key])

        if len(ids) > 1 and ("size" in params.page or "number" in params.page):
            raise UnsupportedPagination(
                f"{self.resource.name}: cannot paginate '{self.relationship.name}' across {len(ids)} parents"
            )
        params.page.setdefault("size", self.fanout_page_size)
        return params

    async def perform(self, ids: list[str]) -> dict[str, Any]:
        params = self.build_params(ids)
        response = await self.engine.query(self.resource, params)
        grouped: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for item in response.items:
            grouped[str(item.get(self.relationship.foreign_key))].append(item)
        return dict(grouped)


class BelongsToLoader(BatchLoader):
    """Loads local records by id with exactly the requested field set."""

    def __init__(
        self,
        engine: ResourceEngine,
        resource: ResourceNode,
        params: ParameterTree,
        fanout_page_size: int = DEFAULT_FANOUT_PAGE_SIZE,
    ):
        super().__init__()
        self.engine = engine
        self.resource = resource
        self.params = params
        self.fanout_page_size = fanout_page_size

    async def perform(self, ids: list[str]) -> dict[str, Any]:
        params = self.params.model_copy(deep=True)
        params.filter["id"] = {"eq": list(ids)}
        params.page.setdefault("size", max(len(ids), self.fanout_page_size))
        response = await self.engine.query(self.resource, params)
        return {str(item.get("id")): item for item in response.items}


class LoaderRegistry:
    """Loaders for one execution, keyed by operation and parameter shape."""

    def __init__(self, engine: ResourceEngine, fanout_page_size: int = DEFAULT_FANOUT_PAGE_SIZE):
        self.engine = engine
        self.fanout_page_size = fanout_page_size
        self._loaders: dict[Hashable, BatchLoader] = {}

    def __len__(self) -> int:
        return len(self._loaders)

    def has_many(
        self,
        resource: ResourceNode,
        relationship: FederatedRelationship,
        params: ParameterTree,
    ) -> HasManyLoader:
        key = ("has_many", relationship.local_resource, relationship.name, params.shape())
        loader = self._loaders.get(key)
        if loader is None:
            loader = HasManyLoader(self.engine, resource, relationship, params, self.fanout_page_size)
            self._loaders[key] = loader
        return loader

    def belongs_to(self, resource: ResourceNode, params: ParameterTree) -> BelongsToLoader:
        key = ("belongs_to", resource.name, params.shape())
        loader = self._loaders.get(key)
        if loader is None:
            loader = BelongsToLoader(self.engine, resource, params, self.fanout_page_size)
            self._loaders[key] = loader
        return loader
