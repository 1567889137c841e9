"""Component descriptors and the identity chain used to register them."""

from __future__ import annotations

from functools import cached_property
from typing import Any, ClassVar, Mapping

from .api import Command, Mapper, Name, Relation
from .api.decorators import component_metadata
from .inflector import Inflector

__all__ = [
    "ComponentDescriptor",
    "RelationDescriptor",
    "CommandDescriptor",
    "MapperDescriptor",
    "DESCRIPTOR_TYPES",
]


class ComponentDescriptor:
    """Declared class plus registration options.

    Identity is resolved lazily and cached: explicit ``id`` option first, then a
    class-level accessor, then the inflected registered name.
    """

    kind: ClassVar[str]
    base: ClassVar[type]

    def __init__(
        self,
        constant: type,
        options: Mapping[str, Any] | None = None,
        *,
        inflector: Any | None = None,
    ) -> None:
        if not isinstance(constant, type) or not issubclass(constant, self.base):
            raise TypeError(f"{constant!r} must subclass {self.base.__name__} to register as {self.kind}.")
        metadata = component_metadata(constant)
        if metadata is None or metadata.get("kind") != self.kind:
            raise TypeError(
                f"{constant.__qualname__} must be declared with @{self.kind}_class before registration."
            )
        self.constant = constant
        self.options = dict(options or {})
        self.inflector = inflector or Inflector()
        self.registered_name: str = metadata["name"]

    @cached_property
    def id(self) -> str:
        explicit = self.options.get("id")
        if explicit:
            return str(explicit)
        declared = self.declared_id()
        if declared:
            return str(declared)
        return self.inflector.underscore(self.registered_name)

    def declared_id(self) -> Any:
        """Identifier exposed by the declared class, or ``None``."""
        return None

    @property
    def relation_id(self) -> str | None:
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.constant.__qualname__} id={self.id!r}>"


class RelationDescriptor(ComponentDescriptor):
    kind = "relation"
    base = Relation

    @cached_property
    def default_name(self) -> Name:
        declared = self.constant.default_name()
        if declared is not None:
            return Name.coerce(declared)
        return Name(self.inflector.underscore(self.registered_name))

    @cached_property
    def name(self) -> Name:
        explicit = self.options.get("id")
        if explicit:
            return Name(str(explicit), self.default_name.dataset)
        return self.default_name

    @cached_property
    def id(self) -> str:
        return self.name.relation

    @property
    def gateway(self) -> str:
        return str(self.options.get("gateway") or self.constant.gateway_name)


class CommandDescriptor(ComponentDescriptor):
    kind = "command"
    base = Command

    def declared_id(self) -> Any:
        return self.constant.register_as or self.constant.default_name()

    @cached_property
    def relation_id(self) -> str | None:
        explicit = self.options.get("relation")
        if explicit:
            return str(explicit)
        return self.constant.relation_id


class MapperDescriptor(ComponentDescriptor):
    kind = "mapper"
    base = Mapper

    def declared_id(self) -> Any:
        return self.constant.id

    @cached_property
    def relation_id(self) -> str | None:
        explicit = self.options.get("base_relation")
        if explicit:
            return str(explicit)
        return self.constant.base_relation


DESCRIPTOR_TYPES: dict[str, type[ComponentDescriptor]] = {
    descriptor.kind: descriptor
    for descriptor in (RelationDescriptor, CommandDescriptor, MapperDescriptor)
}
