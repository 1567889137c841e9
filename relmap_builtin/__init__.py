"""Built-in adapter and plugins for relmap."""

from __future__ import annotations

from relmap_core.adapters import ADAPTERS, AdapterCatalog
from relmap_core.events import EventBus, event_bus
from relmap_core.plugin.registry import PLUGINS, PluginRegistry

from . import memory
from .memory import MemoryDataset, MemoryGateway, MemoryRelation
from .plugins import INSTRUMENTATION, Instrumentation

__all__ = [
    "register_builtins",
    "MemoryDataset",
    "MemoryGateway",
    "MemoryRelation",
    "Instrumentation",
]


def register_builtins(
    adapters: AdapterCatalog | None = None,
    plugins: PluginRegistry | None = None,
    events: EventBus | None = None,
) -> Instrumentation | None:
    """Register the memory adapter and the instrumentation plugin.

    Already-registered entries are left alone, so calling this twice is safe.
    Returns the instrumentation instance when it was registered by this call.
    """

    adapters = adapters if adapters is not None else ADAPTERS
    plugins = plugins if plugins is not None else PLUGINS
    events = events if events is not None else event_bus("configuration")

    if memory.ADAPTER_TAG not in adapters:
        adapters.register(memory.ADAPTER_TAG, memory)

    if INSTRUMENTATION in plugins.names("configuration"):
        return None
    instrumentation = Instrumentation()
    plugins.register(INSTRUMENTATION, instrumentation)
    instrumentation.subscribe(events)
    return instrumentation
