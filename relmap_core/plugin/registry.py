"""Plugin records and the registry of available plugins per extension point."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

from .errors import PluginCollisionError, UnknownPluginError
from .loader import iter_entry_points, load_entrypoint

if TYPE_CHECKING:
    from relmap_core.configuration import Configuration

__all__ = ["Plugin", "PluginRegistry", "PLUGIN_TYPES", "PLUGINS", "register_plugin"]

logger = logging.getLogger(__name__)

PLUGIN_TYPES = ("configuration", "relation", "command", "mapper")


@dataclass
class Plugin:
    """A named behavior that can be enabled on a configuration.

    ``mod`` is any object; when it defines ``apply(configuration, options)``
    that hook runs after the plugin is marked as enabled. A string ``mod`` is
    treated as an entrypoint and imported on first use.
    """

    name: str
    mod: Any
    type: str = "configuration"
    defaults: dict[str, Any] = field(default_factory=dict)

    def resolve(self) -> Any:
        if isinstance(self.mod, str):
            self.mod = load_entrypoint(self.mod)
        return self.mod

    def apply_to(self, configuration: "Configuration", options: Mapping[str, Any] | None = None) -> None:
        merged = {**self.defaults, **dict(options or {})}
        mod = self.resolve()
        logger.debug("applying %s plugin %s with %r", self.type, self.name, merged)
        configuration.enable_plugin(self, merged)
        apply = getattr(mod, "apply", None)
        if callable(apply):
            apply(configuration, merged)


class PluginRegistry:
    """Plugins available per extension point, in registration order."""

    def __init__(self) -> None:
        self._plugins: dict[str, dict[str, Plugin]] = {kind: {} for kind in PLUGIN_TYPES}
        self._discovered = False

    def register(
        self,
        name: str,
        mod: Any,
        *,
        type: str = "configuration",
        defaults: Mapping[str, Any] | None = None,
    ) -> Plugin:
        """Register a plugin, raising on name collisions within one type."""

        if type not in self._plugins:
            raise ValueError(f"unknown plugin type {type!r}; expected one of {PLUGIN_TYPES}")
        if not name:
            raise ValueError("plugin name cannot be empty.")
        if name in self._plugins[type]:
            raise PluginCollisionError(f"{type} plugin {name!r} is already registered.")
        plugin = Plugin(name=name, mod=mod, type=type, defaults=dict(defaults or {}))
        self._plugins[type][name] = plugin
        return plugin

    def fetch(self, name: str, type: str = "configuration") -> Plugin:
        """Return a registered plugin; unknown configuration plugins trigger one entry-point lookup."""

        plugin = self._plugins.get(type, {}).get(name)
        if plugin is None and type == "configuration" and not self._discovered:
            self.discover()
            plugin = self._plugins["configuration"].get(name)
        if plugin is None:
            raise UnknownPluginError(name, type)
        return plugin

    def names(self, type: str | None = None) -> tuple[str, ...]:
        if type is not None:
            return tuple(self._plugins.get(type, ()))
        seen: dict[str, None] = {}
        for plugins in self._plugins.values():
            seen.update(dict.fromkeys(plugins))
        return tuple(seen)

    def plugins(self, type: str = "configuration") -> tuple[Plugin, ...]:
        return tuple(self._plugins.get(type, {}).values())

    def discover(self, group: str = "relmap.plugins") -> tuple[str, ...]:
        """Register configuration plugins advertised through package entry points."""

        self._discovered = True
        found: list[str] = []
        for name, mod in iter_entry_points(group):
            if name in self._plugins["configuration"]:
                logger.debug("plugin %s already registered, skipping entry point", name)
                continue
            self.register(name, mod)
            found.append(name)
        return tuple(found)

    def __contains__(self, name: object) -> bool:
        return any(name in plugins for plugins in self._plugins.values())


PLUGINS = PluginRegistry()


def register_plugin(name: str, mod: Any, **options: Any) -> Plugin:
    """Register a plugin on the process-wide registry."""
    return PLUGINS.register(name, mod, **options)
