"""Shared fixtures: isolated buses, adapter catalogs and plugin registries."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from relmap_core import AdapterCatalog, Configuration, EventBus, Gateway, PluginRegistry
from relmap_core.errors import DatasetNotFoundError
from relmap_core.events import CONFIGURATION_EVENTS


class StubGateway(Gateway):
    """Gateway over a fixed ``users``/``tasks`` layout, counting instances."""

    instances = 0

    def __init__(self, name: str, settings: dict[str, Any] | None = None) -> None:
        super().__init__(name, settings)
        type(self).instances += 1
        self.tables = {"users": [{"id": 1, "name": "Jane"}], "tasks": []}

    @property
    def connection(self) -> dict[str, list[dict[str, Any]]]:
        return self.tables

    @property
    def schema(self) -> dict[str, tuple[str, ...]]:
        return {"users": ("id", "name"), "tasks": ()}

    def dataset(self, name: str) -> list[dict[str, Any]]:
        if name not in self.tables:
            raise DatasetNotFoundError(name, self.name)
        return self.tables[name]

    def allocate(self, name: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(name, [])


class StubAdapter:
    Gateway = StubGateway


@pytest.fixture
def events() -> EventBus:
    return EventBus("configuration", events=CONFIGURATION_EVENTS)


@pytest.fixture
def adapters() -> AdapterCatalog:
    catalog = AdapterCatalog()
    catalog.register("stub", StubAdapter)
    return catalog


@pytest.fixture
def plugins() -> PluginRegistry:
    return PluginRegistry()


@pytest.fixture
def make_configuration(
    events: EventBus, adapters: AdapterCatalog, plugins: PluginRegistry
) -> Callable[..., Configuration]:
    def factory(*args: Any, **kwargs: Any) -> Configuration:
        kwargs.setdefault("events", events)
        kwargs.setdefault("adapters", adapters)
        kwargs.setdefault("plugin_registry", plugins)
        return Configuration(*args, **kwargs)

    return factory
