"""Plugin-specific error types."""

from relmap_core.errors import RelmapError


class PluginError(RelmapError):
    """Base type for plugin-related failures."""


class UnknownPluginError(PluginError):
    """Raised when ``use`` names a plugin that is not registered."""

    def __init__(self, name: str, type: str) -> None:
        self.name = name
        self.type = type
        super().__init__(f"no {type} plugin registered as {name!r}")


class PluginCollisionError(PluginError):
    """Raised when a plugin name is registered twice for one extension point."""


class PluginLoadError(PluginError):
    """Raised when a plugin or adapter entrypoint cannot be imported."""
