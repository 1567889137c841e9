"""Lifecycle, gateway shorthand and lookups on ``Configuration``."""

from __future__ import annotations

from pathlib import Path

import pytest

from relmap_core import AdapterCatalog, Configuration, ConfigurationState
from relmap_core.api import Command, Mapper, Relation, command_class, mapper_class, relation_class
from relmap_core.errors import (
    AlreadyFinalizedError,
    ConfigurationError,
    DuplicateIdentityError,
    FrozenConfigError,
    GatewayNotFoundError,
    InvalidGatewayNameError,
    InvalidStateError,
    NoDefaultAdapterError,
)
from relmap_core.events import (
    COMMANDS_CLASS_BEFORE_BUILD,
    CONFIGURATION_EVENTS,
    RELATIONS_CLASS_READY,
)


@relation_class
class Users(Relation):
    pass


@relation_class
class ArchivedUsers(Relation):
    gateway_name = "archive"
    dataset_name = "users"


@command_class
class CreateUser(Command):
    relation_id = "users"

    def call(self, **attributes):
        self.relation.dataset.append(attributes)
        return attributes


@command_class
class RenameUser(Command):
    relation_id = "users"

    def call(self, **attributes):
        return attributes


@mapper_class
class UserRow(Mapper):
    base_relation = "users"


@mapper_class
class UserSummary(Mapper):
    id = "user_row"
    base_relation = "users"


def _gateway_settings(configuration: Configuration) -> dict:
    return configuration.config["gateways"].to_dict()


@pytest.mark.parametrize(
    ("args", "expected"),
    [
        (("stub",), {"default": {"adapter": "stub", "args": []}}),
        (("stub", "db://one"), {"default": {"adapter": "stub", "args": ["db://one"]}}),
        (("stub", ["a", "b"]), {"default": {"adapter": "stub", "args": ["a", "b"]}}),
        (("stub", {"pool": 5}), {"default": {"adapter": "stub", "pool": 5}}),
        (
            ("stub", "db://one", {"pool": 5}),
            {"default": {"adapter": "stub", "args": ["db://one"], "pool": 5}},
        ),
        (
            ({"default": "stub", "archive": ["stub", "db://two"]},),
            {
                "default": {"adapter": "stub", "args": []},
                "archive": {"adapter": "stub", "args": ["db://two"]},
            },
        ),
        (
            ({"default": {"adapter": "stub", "pool": 1}},),
            {"default": {"adapter": "stub", "pool": 1}},
        ),
    ],
)
def test_gateway_shorthand_is_normalized(make_configuration, args, expected) -> None:
    configuration = make_configuration(*args)
    assert _gateway_settings(configuration) == expected


def test_bad_gateway_settings_are_rejected(make_configuration) -> None:
    with pytest.raises(ConfigurationError):
        make_configuration({"default": {"pool": 1}})
    with pytest.raises(ConfigurationError):
        make_configuration({"default": "stub"}, "extra")
    with pytest.raises(InvalidGatewayNameError):
        make_configuration({"db.primary": "stub"})


def test_gateways_are_built_once_per_name(make_configuration) -> None:
    configuration = make_configuration({"default": "stub", "archive": "stub"})

    default = configuration["default"]
    assert configuration.gateway("default") is default
    assert configuration["archive"] is not default
    assert configuration.default_gateway is default
    assert set(configuration.gateways) == {"default", "archive"}
    assert configuration.environment is not None
    assert configuration.gateways_map[default] == "default"
    assert default.adapter == "stub"


def test_missing_gateway_is_distinct_from_attribute_errors(make_configuration) -> None:
    configuration = make_configuration("stub")

    with pytest.raises(GatewayNotFoundError) as excinfo:
        configuration["archive"]
    assert isinstance(excinfo.value, KeyError)
    assert not isinstance(excinfo.value, AttributeError)

    with pytest.raises(AttributeError):
        configuration.archive


def test_block_sees_mutable_settings_and_gateways_see_frozen_ones(make_configuration) -> None:
    def block(configuration: Configuration) -> None:
        configuration.config["gateways"]["default"]["pool"] = 10

    configuration = make_configuration("stub", block=block)

    assert configuration.state is ConfigurationState.FROZEN
    assert configuration["default"].settings["pool"] == 10
    with pytest.raises(FrozenConfigError):
        configuration.config["gateways"]["default"]["pool"] = 20


def test_finalize_builds_registries_once(make_configuration) -> None:
    configuration = make_configuration("stub")
    configuration.register_relation(Users)
    configuration.register_command(CreateUser)

    with pytest.raises(InvalidStateError):
        configuration.relations

    assert configuration.finalize() is configuration
    assert configuration.finalized
    assert configuration.relations["users"].dataset == [{"id": 1, "name": "Jane"}]
    assert configuration.commands["create_user"](id=2) == {"id": 2}
    assert len(configuration.mappers) == 0

    with pytest.raises(AlreadyFinalizedError):
        configuration.finalize()
    with pytest.raises(AlreadyFinalizedError):
        configuration.register_relation(ArchivedUsers)
    with pytest.raises(AlreadyFinalizedError):
        configuration.configure("stub")


def test_configure_runs_only_while_declaring(make_configuration) -> None:
    configuration = make_configuration("stub")
    with pytest.raises(InvalidStateError) as excinfo:
        configuration.configure()
    assert excinfo.value.current is ConfigurationState.FROZEN


def test_lifecycle_events_fire_in_order(make_configuration, events) -> None:
    seen: list[str] = []
    for event_name in CONFIGURATION_EVENTS:
        events.subscribe(event_name, lambda event: seen.append(event.name))

    configuration = make_configuration("stub")
    configuration.register_relation(Users)
    configuration.register_command(CreateUser)
    configuration.finalize()

    assert seen == list(CONFIGURATION_EVENTS)


def test_local_listeners_run_before_attached_ones(make_configuration, events) -> None:
    order: list[str] = []
    events.subscribe(RELATIONS_CLASS_READY, lambda event: order.append("source"))

    configuration = make_configuration("stub")
    configuration.notifications.subscribe(RELATIONS_CLASS_READY, lambda event: order.append("local"))
    configuration.register_relation(Users)
    configuration.finalize()

    assert order == ["local", "source"]
    assert len(configuration.listeners) == 2


def test_before_build_payload_carries_gateway_and_adapter(make_configuration) -> None:
    captured: dict = {}
    configuration = make_configuration("stub")
    configuration.notifications.subscribe(COMMANDS_CLASS_BEFORE_BUILD, lambda event: captured.update(event.payload))
    configuration.register_relation(Users)
    configuration.register_command(CreateUser)
    configuration.finalize()

    assert captured["command"] is CreateUser
    assert captured["gateway"] is configuration["default"]
    assert captured["adapter"] == "stub"
    assert captured["relation"] is configuration.relations["users"]


def test_relation_classes_filter_by_gateway(make_configuration) -> None:
    configuration = make_configuration({"default": "stub", "archive": "stub"})
    configuration.register_relation(Users)
    configuration.register_relation(ArchivedUsers)

    assert configuration.relation_classes() == [Users, ArchivedUsers]
    assert configuration.relation_classes("archive") == [ArchivedUsers]
    assert configuration.relation_classes(configuration["default"]) == [Users]


def test_default_adapter_resolution(make_configuration) -> None:
    configuration = make_configuration("stub")
    assert configuration.default_adapter == "stub"
    assert configuration.adapter_for_gateway(configuration["default"]) == "stub"

    empty = make_configuration(adapters=AdapterCatalog())
    with pytest.raises(NoDefaultAdapterError):
        empty.default_adapter


def test_inflector_can_be_replaced_until_frozen(make_configuration) -> None:
    class ShoutingInflector:
        def underscore(self, name: str) -> str:
            return name.upper()

    inflector = ShoutingInflector()

    def block(configuration: Configuration) -> None:
        configuration.inflector = inflector

    configuration = make_configuration("stub", block=block)
    configuration.register_relation(Users)
    configuration.finalize()

    assert configuration.inflector is inflector
    assert list(configuration.relations) == ["USERS"]
    with pytest.raises(FrozenConfigError):
        configuration.inflector = ShoutingInflector()


def test_from_file_reads_gateway_settings(make_configuration, events, adapters, plugins, tmp_path: Path) -> None:
    settings_file = tmp_path / "gateways.yml"
    settings_file.write_text("gateways:\n  default:\n    adapter: stub\n    pool: 3\n", encoding="utf-8")

    configuration = Configuration.from_file(
        settings_file,
        events=events,
        adapters=adapters,
        plugin_registry=plugins,
    )

    assert configuration["default"].settings == {"pool": 3, "args": []}


def test_explicit_relation_ids_must_be_unique(make_configuration) -> None:
    configuration = make_configuration("stub")
    configuration.register_relation(Users, id="people")
    configuration.register_relation(ArchivedUsers, id="people", gateway="default")

    with pytest.raises(DuplicateIdentityError) as excinfo:
        configuration.finalize()

    assert (excinfo.value.kind, excinfo.value.id) == ("relation", "people")
    assert excinfo.value.constants == (Users, ArchivedUsers)
    assert configuration.container is None


def test_command_ids_must_be_unique(make_configuration) -> None:
    configuration = make_configuration("stub")
    configuration.register_relation(Users)
    configuration.register_command(CreateUser)
    configuration.register_command(RenameUser, id="create_user")

    with pytest.raises(DuplicateIdentityError) as excinfo:
        configuration.finalize()

    assert (excinfo.value.kind, excinfo.value.id) == ("command", "create_user")
    assert not configuration.finalized


def test_mapper_ids_must_be_unique(make_configuration) -> None:
    configuration = make_configuration("stub")
    configuration.register_relation(Users)
    configuration.register_mapper(UserRow, UserSummary)

    with pytest.raises(DuplicateIdentityError) as excinfo:
        configuration.finalize()

    assert (excinfo.value.kind, excinfo.value.id) == ("mapper", "user_row")


def test_registration_options_reach_commands(make_configuration) -> None:
    configuration = make_configuration("stub")
    configuration.register_relation(Users)
    configuration.register_command(CreateUser, dry_run=True)
    configuration.register_command(RenameUser, id="rename", relation="users", audit="log")
    configuration.finalize()

    assert configuration.commands["create_user"].options == {"dry_run": True}
    assert configuration.commands["rename"].options == {"audit": "log"}
    # new() keeps the registration options
    assert configuration.commands["create_user"].new(configuration.relations["users"]).options == {"dry_run": True}
