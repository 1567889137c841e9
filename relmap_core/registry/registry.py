"""Read-only registries holding finalized components."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from relmap_core.errors import (
    AlreadyFinalizedError,
    ComponentNotFoundError,
    DuplicateIdentityError,
    GatewayNotFoundError,
)


class ComponentRegistry(Mapping):
    """Components of one kind keyed by resolved id.

    Writable only until :meth:`freeze`; afterwards it is a plain read-only mapping.
    """

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._elements: dict[str, Any] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, key: str, element: Any) -> None:
        """Register ``element`` under ``key``, raising on collisions."""

        if self._frozen:
            raise AlreadyFinalizedError(f"{self.kind} registry is frozen, cannot add {key!r}")
        existing = self._elements.get(key)
        if existing is not None:
            raise DuplicateIdentityError(
                kind=self.kind,
                id=key,
                constants=(_constant_of(existing), _constant_of(element)),
            )
        self._elements[key] = element

    def freeze(self) -> "ComponentRegistry":
        self._frozen = True
        return self

    def filter(self, predicate: Callable[[Any], bool]) -> dict[str, Any]:
        return {key: value for key, value in self._elements.items() if predicate(value)}

    def __getitem__(self, key: str) -> Any:
        try:
            return self._elements[key]
        except KeyError:
            raise ComponentNotFoundError(key, self.kind) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.kind} {list(self._elements)!r}>"


class GatewayRegistry(ComponentRegistry):
    def __init__(self) -> None:
        super().__init__("gateway")

    def __getitem__(self, key: str) -> Any:
        try:
            return self._elements[key]
        except KeyError:
            raise GatewayNotFoundError(key) from None


def _constant_of(element: Any) -> type:
    return element if isinstance(element, type) else type(element)


@dataclass(frozen=True)
class Container:
    """The finalized object graph produced by ``Configuration.finalize``."""

    gateways: Mapping[str, Any]
    relations: ComponentRegistry
    commands: ComponentRegistry
    mappers: ComponentRegistry

    def __getitem__(self, key: str) -> Any:
        return self.relations[key]
