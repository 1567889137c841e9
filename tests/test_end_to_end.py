"""End-to-end configuration flows over the in-memory adapter."""

from __future__ import annotations

import logging

import pytest

import relmap_builtin.memory
import relmap_core.adapters
from relmap_builtin import MemoryGateway, MemoryRelation, register_builtins
from relmap_core import AdapterCatalog, PluginRegistry, container
from relmap_core.api import Command, Mapper, command_class, mapper_class, relation_class
from relmap_core.errors import (
    DatasetNotFoundError,
    DuplicateIdentityError,
    GatewayNotFoundError,
    InvalidStateError,
    MissingRelationError,
)
from relmap_core.events import CONFIGURATION_EVENTS
from relmap_core.plugin import UnknownPluginError

USERS = [
    {"id": 1, "name": "Jane", "active": True},
    {"id": 2, "name": "Joe", "active": False},
    {"id": 3, "name": "Ann", "active": True},
]


@relation_class
class Users(MemoryRelation):
    pass


@relation_class(name="Users")
class LegacyUsers(MemoryRelation):
    pass


@relation_class
class Accounts(MemoryRelation):
    gateway_name = "archive"


@command_class
class UpdateUsers(Command):
    relation_id = "users"
    restrictable = True

    def call(self, **changes):
        for row in self.relation.dataset.rows:
            row.update(changes)
        return self.relation.to_list()


@command_class
class CreateAccount(Command):
    relation_id = "accounts"

    def call(self, **attributes):
        return attributes


@mapper_class
class AccountJson(Mapper):
    base_relation = "accounts"


@pytest.fixture
def builtins(adapters, plugins, events):
    return register_builtins(adapters, plugins, events)


def _memory(**datasets):
    return ("memory", {"datasets": datasets})


def test_users_relation_over_memory_gateway(make_configuration, builtins) -> None:
    configuration = make_configuration(*_memory(users=USERS))
    configuration.register_relation(Users)
    configuration.register_command(UpdateUsers)
    configuration.finalize()

    gateway = configuration["default"]
    assert isinstance(gateway, MemoryGateway)
    assert gateway.adapter == "memory"

    users = configuration.relations["users"]
    assert users.gateway is gateway
    assert users.schema.attributes == ("id", "name", "active")
    assert users.order("name").to_list()[0]["name"] == "Ann"
    assert users.restrict(active=True).count() == 2

    update = configuration.commands["update_users"]
    updated = update.restrict(name="Joe").call(active=True)
    assert updated == [{"id": 2, "name": "Joe", "active": True}]
    assert update.count() == 3


def test_duplicate_relation_ids_fail_without_registering(make_configuration, builtins) -> None:
    configuration = make_configuration(*_memory(users=USERS))
    configuration.register_relation(Users)
    configuration.register_relation(LegacyUsers)

    with pytest.raises(DuplicateIdentityError) as excinfo:
        configuration.finalize()

    assert excinfo.value.id == "users"
    assert excinfo.value.constants == (Users, LegacyUsers)
    assert not configuration.finalized
    with pytest.raises(InvalidStateError):
        configuration.relations


def test_unknown_plugin_is_reported(make_configuration, builtins) -> None:
    with pytest.raises(UnknownPluginError):
        make_configuration("memory", block=lambda configuration: configuration.use("auditing"))


def test_missing_gateway_and_relations_fail_finalize(make_configuration, builtins) -> None:
    configuration = make_configuration("memory")
    configuration.register_relation(Accounts)
    with pytest.raises(GatewayNotFoundError):
        configuration.finalize()

    configuration = make_configuration({"default": "memory", "archive": "memory"})
    configuration.register_command(CreateAccount)
    with pytest.raises(MissingRelationError) as excinfo:
        configuration.finalize()
    assert excinfo.value.relation_id == "accounts"

    configuration = make_configuration({"default": "memory", "archive": "memory"})
    configuration.register_mapper(AccountJson)
    with pytest.raises(MissingRelationError):
        configuration.finalize()


def test_relations_use_their_own_gateway(make_configuration, builtins) -> None:
    configuration = make_configuration(
        {
            "default": _memory(users=USERS),
            "archive": _memory(accounts=[{"id": 9}]),
        }
    )
    configuration.register_relation(Users, Accounts)
    configuration.register_command(CreateAccount)
    configuration.register_mapper(AccountJson)
    configuration.finalize()

    assert configuration.relations["accounts"].gateway is configuration["archive"]
    assert configuration.mappers["account_json"]() == [{"id": 9}]
    assert configuration.commands["create_account"](id=10) == {"id": 10}


def test_instrumentation_counts_only_where_enabled(make_configuration, builtins, caplog) -> None:
    assert builtins is not None

    make_configuration("memory").finalize()
    assert sum(builtins.counts.values()) == 0

    with caplog.at_level(logging.INFO, logger="relmap_builtin.plugins.instrumentation"):
        configuration = make_configuration(
            *_memory(users=USERS),
            block=lambda configuration: configuration.use({"instrumentation": {"level": "info"}}),
        )
        configuration.register_relation(Users)
        configuration.register_command(UpdateUsers)
        configuration.finalize()

    assert configuration.instrumentation is builtins
    assert dict(builtins.counts) == {event_name: 1 for event_name in CONFIGURATION_EVENTS}
    assert any("configuration.relations.class.ready" in message for message in caplog.messages)


def test_register_builtins_is_idempotent(adapters, plugins, events, builtins) -> None:
    assert register_builtins(adapters, plugins, events) is None
    assert adapters.keys() == ("stub", "memory")
    assert plugins.names("configuration") == ("instrumentation",)


def test_seed_plugin_merges_datasets_before_freeze(make_configuration, builtins) -> None:
    configuration = make_configuration(
        *_memory(users=USERS),
        block=lambda configuration: configuration.use({"memory_seed": {"datasets": {"tasks": [{"id": 1}]}}}),
    )

    assert configuration["default"].datasets() == ("users", "tasks")
    assert len(configuration["default"]["tasks"]) == 1


def test_auto_register_discovers_package_components(make_configuration, builtins) -> None:
    configuration = make_configuration(*_memory(users=USERS))
    descriptors = configuration.auto_register("sample_app")

    assert sorted(descriptor.id for descriptor in descriptors) == [
        "delete_users",
        "tasks",
        "user_names",
        "users",
    ]
    configuration.finalize()

    assert configuration.mappers["user_names"]() == ["Jane", "Joe", "Ann"]
    deleted = configuration.commands["delete_users"].restrict(active=False)()
    assert deleted == [{"id": 2, "name": "Joe", "active": False}]
    assert configuration.relations["users"].count() == 2
    assert configuration.relations["tasks"].count() == 0
    assert configuration["default"].dataset_exists("tasks")


def test_container_helper_finalizes_in_one_step(events, adapters, plugins, builtins) -> None:
    def block(configuration) -> None:
        configuration.register_relation(Users)

    live = container(
        *_memory(users=USERS),
        block=block,
        events=events,
        adapters=adapters,
        plugin_registry=plugins,
    )

    assert live["users"].count() == 3
    assert list(live.gateways) == ["default"]


def test_unknown_dataset_lookup_raises(make_configuration, builtins) -> None:
    configuration = make_configuration(*_memory(users=[]))
    gateway = configuration["default"]

    with pytest.raises(DatasetNotFoundError) as excinfo:
        gateway["nope"]
    assert excinfo.value.gateway == "default"
    assert isinstance(excinfo.value, KeyError)
    assert not gateway.dataset_exists("nope")
    assert gateway.datasets() == ("users",)


def test_adapters_are_found_through_entry_points(events, monkeypatch) -> None:
    def entry_points(group):
        assert group == "relmap.adapters"
        yield "memory", relmap_builtin.memory

    monkeypatch.setattr(relmap_core.adapters, "iter_entry_points", entry_points)

    def block(configuration) -> None:
        configuration.register_relation(Users)

    live = container(
        *_memory(users=USERS),
        block=block,
        events=events,
        adapters=AdapterCatalog(),
        plugin_registry=PluginRegistry(),
    )

    assert isinstance(live.gateways["default"], MemoryGateway)
    assert live["users"].count() == 3
