"""Bootstrap and lifecycle engine for relmap components."""

from .adapters import ADAPTERS, AdapterCatalog, register_adapter
from .api import (
    Command,
    Mapper,
    Name,
    Relation,
    Schema,
    command_class,
    mapper_class,
    relation_class,
    view,
)
from .commands import CommandCompiler, ViewTable
from .config import Config, default_config_path, load_gateway_settings
from .configuration import Configuration, ConfigurationState, container
from .events import CONFIGURATION_EVENTS, Event, EventBus, event_bus
from .gateway import Gateway
from .plugin import PLUGINS, Plugin, PluginRegistry, register_plugin
from .registry import ComponentRegistry, Container
from .setup import Setup

__all__ = [
    "Configuration",
    "ConfigurationState",
    "container",
    "Setup",
    "Config",
    "default_config_path",
    "load_gateway_settings",
    "Event",
    "EventBus",
    "event_bus",
    "CONFIGURATION_EVENTS",
    "Gateway",
    "AdapterCatalog",
    "ADAPTERS",
    "register_adapter",
    "Plugin",
    "PluginRegistry",
    "PLUGINS",
    "register_plugin",
    "CommandCompiler",
    "ViewTable",
    "ComponentRegistry",
    "Container",
    "Relation",
    "Command",
    "Mapper",
    "Name",
    "Schema",
    "view",
    "relation_class",
    "command_class",
    "mapper_class",
]
