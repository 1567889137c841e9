"""Gateway contract and the per-setup gateway cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Set

from .errors import DatasetNotFoundError, GatewayNotFoundError, InvalidGatewayNameError

__all__ = ["Gateway", "GatewayCache", "validate_gateway_name"]

logger = logging.getLogger(__name__)

GatewayProvider = Callable[[str], "Gateway"]


def validate_gateway_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidGatewayNameError(f"gateway name must be a non-empty string, got {name!r}")
    if "." in name:
        raise InvalidGatewayNameError(f"gateway name {name!r} may not contain '.'")
    return name


class Gateway:
    """Named, adapter-backed connection handle.

    Adapters subclass this and provide ``connection``, ``schema`` and
    ``dataset``; relations sharing a gateway name share one instance.
    """

    adapter: str | None = None

    def __init__(self, name: str, settings: Mapping[str, Any] | None = None) -> None:
        self.name = name
        self.settings = dict(settings or {})

    @property
    def connection(self) -> Any:
        raise NotImplementedError

    @property
    def schema(self) -> Mapping[str, tuple[str, ...]]:
        return {}

    def datasets(self) -> tuple[str, ...]:
        return tuple(self.schema)

    def dataset_exists(self, name: str) -> bool:
        return name in self.datasets()

    def dataset(self, name: str) -> Any:
        raise DatasetNotFoundError(name, self.name)

    def allocate(self, name: str) -> Any:
        """Return ``name``, creating it when the adapter supports that.

        Called during finalize for relations whose dataset does not exist yet;
        the base gateway cannot create datasets.
        """
        return self.dataset(name)

    def __getitem__(self, name: str) -> Any:
        return self.dataset(name)

    def disconnect(self) -> None:
        """Release the connection; adapters override when they hold resources."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} adapter={self.adapter!r}>"


@dataclass(frozen=True)
class _GatewayRegistration:
    provider: GatewayProvider


class GatewayCache:
    """Lazily builds gateways by name, at most once per name."""

    def __init__(self) -> None:
        self._registrations: Dict[str, _GatewayRegistration] = {}
        self._gateways: Dict[str, Gateway] = {}
        self._initializing: Set[str] = set()

    def declare(self, name: str, provider: GatewayProvider) -> None:
        """Declare a gateway whose provider runs on first request."""
        validate_gateway_name(name)
        if name in self._registrations:
            raise InvalidGatewayNameError(f"gateway {name!r} already declared")
        self._registrations[name] = _GatewayRegistration(provider=provider)

    def declared(self) -> tuple[str, ...]:
        return tuple(self._registrations)

    def built(self) -> dict[str, Gateway]:
        return dict(self._gateways)

    def __contains__(self, name: object) -> bool:
        return name in self._registrations

    def get(self, name: str) -> Gateway:
        """Resolve ``name``, building it only when first requested."""
        registration = self._registrations.get(name)
        if registration is None:
            raise GatewayNotFoundError(name)

        if name in self._gateways:
            logger.debug("gateway %s served from cache", name)
            return self._gateways[name]

        if name in self._initializing:
            raise RuntimeError(f"re-entrant initialization detected for gateway {name!r}")

        self._initializing.add(name)
        try:
            gateway = registration.provider(name)
        finally:
            self._initializing.remove(name)

        self._gateways[name] = gateway
        logger.debug("gateway %s built as %r", name, gateway)
        return gateway
