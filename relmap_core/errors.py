"""Error types raised while configuring and finalizing relmap components."""

from __future__ import annotations

from typing import Any, Sequence


class RelmapError(Exception):
    """Base class for every relmap failure."""


class ConfigurationError(RelmapError):
    """Raised when gateway or adapter settings are invalid."""


class NoDefaultAdapterError(ConfigurationError):
    """Raised when no adapter can be inferred for a gateway."""


class FrozenConfigError(ConfigurationError):
    """Raised when a key is assigned on a frozen config tree."""

    def __init__(self, path: Sequence[str]) -> None:
        self.path = tuple(path)
        super().__init__(f"config is frozen, cannot set {'.'.join(self.path)!r}")


class InvalidGatewayNameError(ConfigurationError):
    """Raised when a gateway name is malformed or declared twice."""


class AdapterNotFoundError(ConfigurationError):
    """Raised when an adapter tag is missing from the catalog."""


class LifecycleError(RelmapError):
    """Raised when an operation does not fit the current lifecycle state."""


class AlreadyFinalizedError(LifecycleError):
    """Raised when a finalized configuration is asked to change."""


class InvalidStateError(LifecycleError):
    def __init__(self, operation: str, current: Any, expected: Any) -> None:
        self.operation = operation
        self.current = current
        self.expected = expected
        super().__init__(
            f"cannot {operation} while {getattr(current, 'value', current)}, "
            f"expected {getattr(expected, 'value', expected)}"
        )


class IdentityError(RelmapError):
    """Raised when component identities cannot be resolved consistently."""

    def __init__(self, message: str, *, kind: str, id: Any, phase: str = "finalize") -> None:
        self.kind = kind
        self.id = id
        self.phase = phase
        super().__init__(f"[{phase}] {kind} {id!r}: {message}")


class DuplicateIdentityError(IdentityError):
    """Raised when two descriptors of the same kind resolve to one id."""

    def __init__(self, *, kind: str, id: Any, constants: Sequence[type], phase: str = "finalize") -> None:
        self.constants = tuple(constants)
        names = ", ".join(constant.__qualname__ for constant in self.constants)
        super().__init__(f"declared more than once ({names})", kind=kind, id=id, phase=phase)


class MissingRelationError(IdentityError):
    """Raised when a dependent component points at an unknown relation."""

    def __init__(self, *, kind: str, id: Any, relation_id: Any, phase: str = "finalize") -> None:
        self.relation_id = relation_id
        if relation_id is None:
            message = "requires a relation but none was declared"
        else:
            message = f"refers to unknown relation {relation_id!r}"
        super().__init__(message, kind=kind, id=id, phase=phase)


class NotFoundError(RelmapError, KeyError):
    """Raised when a named gateway, dataset or component does not exist."""

    def __init__(self, name: Any, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or f"{name!r} not found")

    def __str__(self) -> str:
        return str(self.args[0])


class GatewayNotFoundError(NotFoundError):
    def __init__(self, name: Any) -> None:
        super().__init__(name, f"gateway {name!r} is not registered")


class DatasetNotFoundError(NotFoundError):
    def __init__(self, name: Any, gateway: str | None = None) -> None:
        self.gateway = gateway
        where = f" in gateway {gateway!r}" if gateway else ""
        super().__init__(name, f"dataset {name!r} does not exist{where}")


class ComponentNotFoundError(NotFoundError):
    def __init__(self, name: Any, kind: str) -> None:
        self.kind = kind
        super().__init__(name, f"{kind} {name!r} is not registered")


class UnknownEventError(RelmapError):
    """Raised when publishing or subscribing to an undeclared event."""

    def __init__(self, event_name: str, bus: str) -> None:
        self.event_name = event_name
        self.bus = bus
        super().__init__(f"event {event_name!r} is not registered on bus {bus!r}")
