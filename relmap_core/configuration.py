"""Configuration facade driving the declare -> configure -> freeze -> finalize lifecycle."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

from .adapters import AdapterCatalog
from .commands import CommandCompiler
from .components import ComponentDescriptor
from .config import Config, load_gateway_settings
from .errors import (
    AlreadyFinalizedError,
    ConfigurationError,
    InvalidGatewayNameError,
    InvalidStateError,
    NoDefaultAdapterError,
)
from .events import CONFIGURATION_EVENTS, EventBus, event_bus
from .gateway import Gateway, validate_gateway_name
from .plugin.registry import Plugin, PluginRegistry
from .registry import ComponentRegistry, Container
from .setup import Setup

__all__ = ["Configuration", "ConfigurationState", "container"]

ConfigureBlock = Callable[["Configuration"], Any]

_notifications = event_bus("configuration")
for _event_name in CONFIGURATION_EVENTS:
    _notifications.register_event(_event_name)


class ConfigurationState(Enum):
    """Lifecycle states for a configuration."""

    DECLARING = "declaring"
    CONFIGURED = "configured"
    FROZEN = "frozen"
    FINALIZED = "finalized"


class Configuration:
    """Collects gateway settings, plugins and component declarations.

    Constructing a configuration runs :meth:`configure` immediately, so the
    object is frozen (gateways built) by the time the constructor returns;
    components may still be registered until :meth:`finalize`.
    """

    def __init__(
        self,
        *args: Any,
        block: ConfigureBlock | None = None,
        events: EventBus | None = None,
        adapters: AdapterCatalog | None = None,
        plugin_registry: PluginRegistry | None = None,
        inflector: Any | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.logger = logger or logging.getLogger("relmap_core.configuration")
        self.events = events if events is not None else _notifications
        self.notifications = EventBus(self.events.name, events=self.events.events)
        self.config = Config()
        self.setup = Setup(
            self.config["gateways"],
            inflector=inflector,
            adapters=adapters,
            plugin_registry=plugin_registry,
        )
        self.config.inflector = self.setup.inflector
        self.state = ConfigurationState.DECLARING
        self.container: Container | None = None
        self._listeners_attached = False
        self._command_compiler: CommandCompiler | None = None

        self.configure(*args, block=block)

    @classmethod
    def from_file(
        cls,
        path: Path | str | None = None,
        *,
        block: ConfigureBlock | None = None,
        **kwargs: Any,
    ) -> "Configuration":
        """Configure gateways from a YAML settings file (see ``load_gateway_settings``)."""
        settings = load_gateway_settings(path)
        if settings:
            return cls(settings, block=block, **kwargs)
        return cls(block=block, **kwargs)

    # ---------- Lifecycle ----------

    def configure(self, *args: Any, block: ConfigureBlock | None = None) -> "Configuration":
        """Normalize gateway shorthand, load adapters, run ``block``, freeze and build gateways."""

        self._ensure_state("configure", ConfigurationState.DECLARING)
        if args:
            self._infer_config(*args)

        # adapters first so plugins they register are available to ``block``
        self.setup.load_adapters()
        self.state = ConfigurationState.CONFIGURED

        if block is not None:
            block(self)

        self.config.freeze()
        self.state = ConfigurationState.FROZEN
        self.logger.debug("config frozen with gateways %s", ", ".join(self.setup.gateway_names()) or "none")

        # gateways observe the complete, frozen settings
        self.setup.load_gateways()
        return self

    def finalize(self) -> "Configuration":
        """Attach scoped listeners and build the live registries; valid exactly once."""

        self._ensure_state("finalize", ConfigurationState.FROZEN)
        self.attach_listeners()
        self.container = self.setup.finalize(self.notifications, self.command_compiler)
        self.state = ConfigurationState.FINALIZED
        return self

    @property
    def finalized(self) -> bool:
        return self.state is ConfigurationState.FINALIZED

    def _ensure_state(self, operation: str, expected: ConfigurationState) -> None:
        if self.state is expected:
            return
        if self.state is ConfigurationState.FINALIZED:
            raise AlreadyFinalizedError(f"cannot {operation}: configuration is already finalized")
        raise InvalidStateError(operation, self.state, expected)

    def _ensure_not_finalized(self, operation: str) -> None:
        if self.finalized:
            raise AlreadyFinalizedError(f"cannot {operation}: configuration is already finalized")

    # ---------- Listeners and plugins ----------

    def attach_listeners(self) -> None:
        """Copy source-bus listeners that apply to this configuration.

        Listeners owned by a registered plugin are kept only when that plugin is
        enabled here; every other listener is global. Runs once.
        """

        if self._listeners_attached:
            return
        plugin_names = set(self.plugin_registry.names())
        enabled = {plugin.name for plugin in self.plugins}
        selected = [
            listener
            for listener in self.events.listeners()
            if listener.source is None
            or listener.source not in plugin_names
            or listener.source in enabled
        ]
        self.notifications.attach(selected)
        self._listeners_attached = True
        self.logger.debug(
            "attached %d listener(s); enabled plugins: %s",
            len(selected),
            ", ".join(sorted(enabled)) or "none",
        )

    @property
    def listeners(self) -> tuple[Any, ...]:
        return self.notifications.listeners()

    def use(self, plugin: Any, options: Mapping[str, Any] | None = None) -> "Configuration":
        """Apply a plugin name, a sequence of names, or a mapping of name to options."""

        self._ensure_not_finalized("use plugins")
        if isinstance(plugin, (list, tuple)):
            for item in plugin:
                self.use(item)
        elif isinstance(plugin, Mapping):
            for name, plugin_options in plugin.items():
                self.use(name, plugin_options)
        else:
            self.plugin_registry.fetch(plugin, "configuration").apply_to(self, options or {})
        return self

    def enable_plugin(self, plugin: Plugin, options: Mapping[str, Any] | None = None) -> None:
        self._ensure_not_finalized("enable plugins")
        self.setup.register_plugin(plugin, options)

    @property
    def plugins(self) -> tuple[Plugin, ...]:
        return tuple(self.setup.plugins)

    @property
    def plugin_registry(self) -> PluginRegistry:
        return self.setup.plugin_registry

    @property
    def adapters(self) -> AdapterCatalog:
        return self.setup.adapters

    # ---------- Components ----------

    def register_relation(self, *constants: type, **options: Any) -> tuple[ComponentDescriptor, ...]:
        return self.setup.register_relation(*constants, **options)

    def register_command(self, *constants: type, **options: Any) -> tuple[ComponentDescriptor, ...]:
        return self.setup.register_command(*constants, **options)

    def register_mapper(self, *constants: type, **options: Any) -> tuple[ComponentDescriptor, ...]:
        return self.setup.register_mapper(*constants, **options)

    def auto_register(self, *modules: str) -> tuple[ComponentDescriptor, ...]:
        return self.setup.auto_register(*modules)

    @property
    def components(self) -> dict[str, list[ComponentDescriptor]]:
        return self.setup.components

    @property
    def relations(self) -> ComponentRegistry:
        return self._live().relations

    @property
    def commands(self) -> ComponentRegistry:
        return self._live().commands

    @property
    def mappers(self) -> ComponentRegistry:
        return self._live().mappers

    def _live(self) -> Container:
        if self.container is None:
            raise InvalidStateError("read registries", self.state, ConfigurationState.FINALIZED)
        return self.container

    def relation_classes(self, gateway: str | Gateway | None = None) -> list[type]:
        """Declared relation classes, optionally only those bound to ``gateway``."""
        descriptors = self.setup.relations
        if gateway is None:
            return [descriptor.constant for descriptor in descriptors]
        gateway_name = gateway if isinstance(gateway, str) else self.gateways_map.get(gateway)
        return [descriptor.constant for descriptor in descriptors if descriptor.gateway == gateway_name]

    @property
    def command_compiler(self) -> CommandCompiler:
        if self._command_compiler is None:
            self._command_compiler = CommandCompiler(self.notifications)
        return self._command_compiler

    @property
    def inflector(self) -> Any:
        return self.setup.inflector

    @inflector.setter
    def inflector(self, inflector: Any) -> None:
        self.config.inflector = inflector
        self.setup.inflector = inflector

    # ---------- Gateways ----------

    def gateway(self, name: str) -> Gateway:
        """Return the gateway called ``name`` or raise ``GatewayNotFoundError``."""
        return self.setup.gateway(name)

    def __getitem__(self, name: str) -> Gateway:
        return self.gateway(name)

    @property
    def gateways(self) -> Mapping[str, Gateway]:
        return MappingProxyType(self.setup.gateways)

    environment = gateways

    @property
    def gateways_map(self) -> dict[Gateway, str]:
        return {gateway: name for name, gateway in self.setup.gateways.items()}

    @property
    def default_gateway(self) -> Gateway | None:
        return self.setup.gateways.get("default")

    @property
    def default_adapter(self) -> str:
        tag = self.adapter_for_gateway(self.default_gateway) if self.default_gateway is not None else None
        if tag:
            return tag
        keys = self.adapters.keys()
        if not keys:
            raise NoDefaultAdapterError("no adapter is registered in the catalog")
        return keys[0]

    def adapter_for_gateway(self, gateway: Gateway) -> str | None:
        """First adapter, in catalog order, whose ``Gateway`` type matches ``gateway``."""
        return self.adapters.match(gateway)

    # ---------- Settings ----------

    def _infer_config(self, *args: Any) -> None:
        if isinstance(args[0], Mapping):
            if len(args) > 1:
                raise ConfigurationError("a gateway mapping must be the only positional argument")
            gateways_config = args[0]
        else:
            gateways_config = {"default": args}

        gateways = self.config["gateways"]
        for name, value in gateways_config.items():
            validate_gateway_name(name)
            if name in gateways:
                raise InvalidGatewayNameError(f"gateway {name!r} is declared more than once")
            gateways[name].update(_gateway_settings(name, value))


def _gateway_settings(name: str, value: Any) -> dict[str, Any]:
    if isinstance(value, Mapping):
        if "adapter" not in value:
            raise ConfigurationError(f"gateway {name!r} settings must name an adapter")
        return dict(value)

    values = list(value) if isinstance(value, (list, tuple)) else [value]
    if not values:
        raise ConfigurationError(f"gateway {name!r} needs at least an adapter")
    adapter, *rest = values

    if len(rest) > 1 and isinstance(rest[-1], Mapping):
        return {"adapter": adapter, "args": list(rest[:-1]), **rest[-1]}
    if rest and isinstance(rest[0], Mapping):
        return {"adapter": adapter, **rest[0]}
    return {"adapter": adapter, "args": _flatten_once(rest)}


def _flatten_once(values: Iterable[Any]) -> list[Any]:
    flat: list[Any] = []
    for value in values:
        if isinstance(value, (list, tuple)):
            flat.extend(value)
        else:
            flat.append(value)
    return flat


def container(*args: Any, block: ConfigureBlock | None = None, **kwargs: Any) -> Container:
    """Configure and finalize in one step, returning the live container."""
    return Configuration(*args, block=block, **kwargs).finalize()._live()
