"""In-memory adapter: gateway, datasets and a relation with a few views."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping

from relmap_core.api import Relation, view
from relmap_core.errors import DatasetNotFoundError
from relmap_core.gateway import Gateway as BaseGateway
from relmap_core.plugin.registry import PluginRegistry

if TYPE_CHECKING:
    from relmap_core.configuration import Configuration

ADAPTER_TAG = "memory"
SEED_PLUGIN = "memory_seed"

logger = logging.getLogger(__name__)


class MemoryDataset:
    """List of row mappings."""

    def __init__(self, rows: Iterable[Mapping[str, Any]] = ()) -> None:
        self.rows = [dict(row) for row in rows]

    @property
    def attributes(self) -> tuple[str, ...]:
        if not self.rows:
            return ()
        return tuple(self.rows[0])

    def insert(self, row: Mapping[str, Any]) -> None:
        self.rows.append(dict(row))

    def restrict(self, **conditions: Any) -> "MemoryDataset":
        return MemoryDataset(
            row for row in self.rows
            if all(row.get(key) == value for key, value in conditions.items())
        )

    def order(self, *keys: str) -> "MemoryDataset":
        return MemoryDataset(sorted(self.rows, key=lambda row: tuple(row.get(key) for key in keys)))

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __repr__(self) -> str:
        return f"<MemoryDataset rows={len(self.rows)}>"


class MemoryGateway(BaseGateway):
    """Gateway over datasets given in the ``datasets`` setting."""

    adapter = ADAPTER_TAG

    def __init__(self, name: str, settings: Mapping[str, Any] | None = None) -> None:
        super().__init__(name, settings)
        datasets = self.settings.get("datasets") or {}
        self._datasets: dict[str, MemoryDataset] = {
            str(dataset): MemoryDataset(rows) for dataset, rows in datasets.items()
        }

    @property
    def connection(self) -> dict[str, MemoryDataset]:
        return self._datasets

    @property
    def schema(self) -> dict[str, tuple[str, ...]]:
        return {name: dataset.attributes for name, dataset in self._datasets.items()}

    def dataset_exists(self, name: str) -> bool:
        return name in self._datasets

    def dataset(self, name: str) -> MemoryDataset:
        dataset = self._datasets.get(name)
        if dataset is None:
            raise DatasetNotFoundError(name, self.name)
        return dataset

    def allocate(self, name: str) -> MemoryDataset:
        """Return ``name``, creating an empty dataset if it is missing."""
        if name not in self._datasets:
            logger.debug("gateway %s: allocating empty dataset %s", self.name, name)
            self._datasets[name] = MemoryDataset()
        return self._datasets[name]

    def disconnect(self) -> None:
        self._datasets.clear()


class MemoryRelation(Relation):
    @view
    def restrict(self, **conditions: Any) -> "MemoryRelation":
        return self.new(self.dataset.restrict(**conditions))

    @view
    def order(self, *keys: str) -> "MemoryRelation":
        return self.new(self.dataset.order(*keys))

    @view
    def count(self) -> int:
        return len(self.dataset)

    def insert(self, row: Mapping[str, Any]) -> None:
        self.dataset.insert(row)


class SeedPlugin:
    """``memory_seed`` plugin: merge ``datasets`` into a gateway's settings before freeze."""

    @staticmethod
    def apply(configuration: "Configuration", options: Mapping[str, Any]) -> None:
        settings = configuration.config["gateways"][options.get("gateway", "default")]
        current = settings.get("datasets")
        merged = current.to_dict() if current is not None else {}
        merged.update(options.get("datasets") or {})
        settings["datasets"] = merged


Gateway = MemoryGateway


def register_plugins(registry: PluginRegistry) -> None:
    """Called once by the adapter catalog when this adapter is loaded."""
    if SEED_PLUGIN not in registry.names("configuration"):
        registry.register(SEED_PLUGIN, SeedPlugin, defaults={"gateway": "default"})
