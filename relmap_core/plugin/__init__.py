"""Plugin registry, application and loading helpers."""

from .errors import (
    PluginCollisionError,
    PluginError,
    PluginLoadError,
    UnknownPluginError,
)
from .registry import PLUGIN_TYPES, PLUGINS, Plugin, PluginRegistry, register_plugin

__all__ = [
    "Plugin",
    "PluginRegistry",
    "PLUGIN_TYPES",
    "PLUGINS",
    "register_plugin",
    "PluginError",
    "UnknownPluginError",
    "PluginCollisionError",
    "PluginLoadError",
]
