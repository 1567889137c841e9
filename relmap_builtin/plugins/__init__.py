"""Configuration plugins shipped with relmap."""

from .instrumentation import PLUGIN_NAME as INSTRUMENTATION, Instrumentation

__all__ = ["Instrumentation", "INSTRUMENTATION"]
