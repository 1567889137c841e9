"""Convenience exports for the component registries."""

from .registry import ComponentRegistry, Container, GatewayRegistry

__all__ = [
    "ComponentRegistry",
    "GatewayRegistry",
    "Container",
]
