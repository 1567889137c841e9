"""Unit tests for the finalized component registries."""

from __future__ import annotations

import pytest

from relmap_core.errors import (
    AlreadyFinalizedError,
    ComponentNotFoundError,
    DuplicateIdentityError,
    GatewayNotFoundError,
)
from relmap_core.registry import ComponentRegistry, Container, GatewayRegistry


class _Users:
    pass


class _Accounts:
    pass


def test_registry_is_read_only_after_freeze() -> None:
    registry = ComponentRegistry("relation")
    users = _Users()
    registry.register("users", users)
    assert registry.freeze() is registry

    assert registry["users"] is users
    assert dict(registry) == {"users": users}
    with pytest.raises(AlreadyFinalizedError):
        registry.register("accounts", _Accounts())


def test_duplicate_keys_name_both_classes() -> None:
    registry = ComponentRegistry("relation")
    registry.register("users", _Users())

    with pytest.raises(DuplicateIdentityError) as excinfo:
        registry.register("users", _Accounts())

    error = excinfo.value
    assert error.kind == "relation"
    assert error.id == "users"
    assert error.constants == (_Users, _Accounts)
    assert "_Users" in str(error) and "_Accounts" in str(error)


def test_missing_keys_raise_key_errors() -> None:
    registry = ComponentRegistry("command")
    with pytest.raises(ComponentNotFoundError) as excinfo:
        registry["create_user"]
    assert isinstance(excinfo.value, KeyError)
    assert excinfo.value.kind == "command"
    assert registry.get("create_user") is None

    gateways = GatewayRegistry()
    with pytest.raises(GatewayNotFoundError):
        gateways["archive"]


def test_filter_and_container_lookup() -> None:
    relations = ComponentRegistry("relation")
    relations.register("users", _Users())
    relations.register("accounts", _Accounts())

    assert list(relations.filter(lambda value: isinstance(value, _Users))) == ["users"]

    container = Container(
        gateways=GatewayRegistry().freeze(),
        relations=relations.freeze(),
        commands=ComponentRegistry("command").freeze(),
        mappers=ComponentRegistry("mapper").freeze(),
    )
    assert container["accounts"] is relations["accounts"]
