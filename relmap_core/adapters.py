"""Ordered catalog of storage adapters keyed by type tag."""

from __future__ import annotations

import logging
from typing import Any, Iterator

from .errors import AdapterNotFoundError
from .plugin.loader import iter_entry_points, load_entrypoint
from .plugin.registry import PluginRegistry

__all__ = ["AdapterCatalog", "ADAPTERS", "register_adapter"]

logger = logging.getLogger(__name__)


class AdapterCatalog:
    """Adapters in registration order.

    An adapter is any object exposing a ``Gateway`` type; it may also define
    ``register_plugins(plugin_registry)``, which runs once when the adapter is
    first loaded. String entries are entrypoints imported on load.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}
        self._loaded: set[str] = set()
        self._discovered = False

    def register(self, tag: str, adapter: Any) -> None:
        if not tag:
            raise ValueError("adapter tag cannot be empty.")
        if tag in self._entries:
            raise ValueError(f"adapter {tag!r} already registered")
        self._entries[tag] = adapter

    def keys(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def __contains__(self, tag: object) -> bool:
        return tag in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def is_loaded(self, tag: str) -> bool:
        return tag in self._loaded

    def load(self, tag: str, plugins: PluginRegistry | None = None) -> Any:
        """Return the adapter for ``tag``, importing it and registering its plugins once.

        Unknown tags trigger one lookup of the ``relmap.adapters`` entry points.
        """

        if tag not in self._entries and not self._discovered:
            self.discover()
        if tag not in self._entries:
            raise AdapterNotFoundError(f"adapter {tag!r} is not registered; known: {', '.join(self._entries) or 'none'}")
        adapter = self._entries[tag]
        if isinstance(adapter, str):
            adapter = self._entries[tag] = load_entrypoint(adapter)
        if tag not in self._loaded:
            self._loaded.add(tag)
            register_plugins = getattr(adapter, "register_plugins", None)
            if plugins is not None and callable(register_plugins):
                register_plugins(plugins)
            logger.debug("adapter %s loaded", tag)
        return adapter

    def gateway_class(self, tag: str, plugins: PluginRegistry | None = None) -> type:
        adapter = self.load(tag, plugins)
        gateway_cls = getattr(adapter, "Gateway", None)
        if not isinstance(gateway_cls, type):
            raise AdapterNotFoundError(f"adapter {tag!r} does not declare a Gateway type")
        return gateway_cls

    def match(self, gateway: Any) -> str | None:
        """Return the first tag, in registration order, whose ``Gateway`` type ``gateway`` is an instance of.

        Only adapters that are already loaded (or registered as objects) are inspected.
        """

        for tag, adapter in self._entries.items():
            if isinstance(adapter, str):
                continue
            gateway_cls = getattr(adapter, "Gateway", None)
            if isinstance(gateway_cls, type) and isinstance(gateway, gateway_cls):
                return tag
        return None

    def discover(self, group: str = "relmap.adapters") -> tuple[str, ...]:
        self._discovered = True
        found: list[str] = []
        for tag, adapter in iter_entry_points(group):
            if tag in self._entries:
                continue
            self.register(tag, adapter)
            found.append(tag)
        return tuple(found)


ADAPTERS = AdapterCatalog()


def register_adapter(tag: str, adapter: Any) -> None:
    """Register an adapter on the process-wide catalog."""
    ADAPTERS.register(tag, adapter)
