"""Convenience imports for declaring relmap components."""

from .abc import Command, Mapper, Name, Relation, Schema, view
from .decorators import command_class, component_metadata, mapper_class, relation_class

__all__ = [
    "Relation",
    "Command",
    "Mapper",
    "Name",
    "Schema",
    "view",
    "relation_class",
    "command_class",
    "mapper_class",
    "component_metadata",
]
