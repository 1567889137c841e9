"""Setup keeps declared components and gateways and turns them into live registries."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from .adapters import ADAPTERS, AdapterCatalog
from .api import Relation, Schema
from .api.decorators import component_metadata
from .commands import CommandCompiler
from .components import (
    DESCRIPTOR_TYPES,
    CommandDescriptor,
    ComponentDescriptor,
    MapperDescriptor,
    RelationDescriptor,
)
from .config import Config
from .errors import (
    AlreadyFinalizedError,
    DuplicateIdentityError,
    GatewayNotFoundError,
    MissingRelationError,
    NoDefaultAdapterError,
)
from .events import (
    RELATIONS_CLASS_READY,
    RELATIONS_DATASET_ALLOCATED,
    RELATIONS_OBJECT_REGISTERED,
    RELATIONS_REGISTRY_CREATED,
    RELATIONS_SCHEMA_ALLOCATED,
    RELATIONS_SCHEMA_SET,
    EventBus,
)
from .gateway import Gateway, GatewayCache
from .inflector import Inflector
from .plugin.loader import scan_components
from .plugin.registry import PLUGINS, Plugin, PluginRegistry
from .registry import ComponentRegistry, Container, GatewayRegistry

__all__ = ["Setup"]

logger = logging.getLogger(__name__)

_RESERVED_GATEWAY_KEYS = ("adapter", "args")
# identity options consumed by the descriptor; the rest reach the command
_RESERVED_COMMAND_OPTIONS = ("id", "relation")


class Setup:
    """Mutable set of component descriptors plus the gateway cache."""

    def __init__(
        self,
        config: Config | None = None,
        *,
        inflector: Any | None = None,
        adapters: AdapterCatalog | None = None,
        plugin_registry: PluginRegistry | None = None,
    ) -> None:
        self.config = config if config is not None else Config()
        self.inflector = inflector or Inflector()
        self.adapters = adapters if adapters is not None else ADAPTERS
        self.plugin_registry = plugin_registry if plugin_registry is not None else PLUGINS
        self.components: dict[str, list[ComponentDescriptor]] = {kind: [] for kind in DESCRIPTOR_TYPES}
        self.plugins: list[Plugin] = []
        self.plugin_options: dict[str, dict[str, Any]] = {}
        self.gateway_cache = GatewayCache()
        self.container: Container | None = None

    @property
    def finalized(self) -> bool:
        return self.container is not None

    @property
    def relations(self) -> tuple[RelationDescriptor, ...]:
        return tuple(self.components["relation"])  # type: ignore[arg-type]

    @property
    def commands(self) -> tuple[CommandDescriptor, ...]:
        return tuple(self.components["command"])  # type: ignore[arg-type]

    @property
    def mappers(self) -> tuple[MapperDescriptor, ...]:
        return tuple(self.components["mapper"])  # type: ignore[arg-type]

    # ---------- Registration ----------

    def register_relation(self, *constants: type, **options: Any) -> tuple[ComponentDescriptor, ...]:
        return self._register("relation", constants, options)

    def register_command(self, *constants: type, **options: Any) -> tuple[ComponentDescriptor, ...]:
        return self._register("command", constants, options)

    def register_mapper(self, *constants: type, **options: Any) -> tuple[ComponentDescriptor, ...]:
        return self._register("mapper", constants, options)

    def register_plugin(self, plugin: Plugin, options: Mapping[str, Any] | None = None) -> None:
        """Mark ``plugin`` as enabled; enabling twice keeps the first position."""
        self._ensure_open("enable plugin")
        if plugin not in self.plugins:
            self.plugins.append(plugin)
        self.plugin_options[plugin.name] = dict(options or {})

    def auto_register(self, *modules: str) -> tuple[ComponentDescriptor, ...]:
        """Register every declared component class found in ``modules``."""
        self._ensure_open("auto-register components")
        registered: list[ComponentDescriptor] = []
        for constant in scan_components(modules):
            kind = component_metadata(constant)["kind"]
            registered.extend(self._register(kind, (constant,), {}))
        logger.debug("auto-registered %d component(s) from %s", len(registered), ", ".join(modules))
        return tuple(registered)

    def _register(
        self,
        kind: str,
        constants: Iterable[type],
        options: Mapping[str, Any],
    ) -> tuple[ComponentDescriptor, ...]:
        self._ensure_open(f"register {kind}")
        descriptor_type = DESCRIPTOR_TYPES[kind]
        descriptors = tuple(
            descriptor_type(constant, options, inflector=self.inflector) for constant in constants
        )
        self.components[kind].extend(descriptors)
        return descriptors

    def _ensure_open(self, operation: str) -> None:
        if self.finalized:
            raise AlreadyFinalizedError(f"cannot {operation} after finalize")

    # ---------- Adapters and gateways ----------

    def gateway_names(self) -> tuple[str, ...]:
        return tuple(self.config.keys())

    def load_adapters(self) -> tuple[str, ...]:
        """Load every adapter named in the gateway config, in declaration order."""
        loaded: list[str] = []
        for name in self.gateway_names():
            tag = self.config[name].get("adapter")
            if tag and tag not in loaded:
                self.adapters.load(tag, self.plugin_registry)
                loaded.append(tag)
        return tuple(loaded)

    def default_adapter(self) -> str:
        """Adapter of the ``default`` gateway, else the first catalog entry."""
        if "default" in self.config:
            tag = self.config["default"].get("adapter")
            if tag:
                return tag
        keys = self.adapters.keys()
        if keys:
            return keys[0]
        raise NoDefaultAdapterError("no adapter configured for the default gateway and the adapter catalog is empty")

    def adapter_for(self, name: str) -> str:
        settings = self.config[name] if name in self.config else None
        tag = settings.get("adapter") if settings is not None else None
        return tag or self.default_adapter()

    def load_gateways(self) -> dict[str, Gateway]:
        """Build every configured gateway once; later calls reuse the cache."""
        for name in self.gateway_names():
            if name not in self.gateway_cache:
                self.gateway_cache.declare(name, self._build_gateway)
            self.gateway_cache.get(name)
        return self.gateway_cache.built()

    def gateway(self, name: str) -> Gateway:
        return self.gateway_cache.get(name)

    @property
    def gateways(self) -> dict[str, Gateway]:
        return self.gateway_cache.built()

    def _build_gateway(self, name: str) -> Gateway:
        settings = self.config[name]
        tag = self.adapter_for(name)
        gateway_cls = self.adapters.gateway_class(tag, self.plugin_registry)
        options = {
            key: value
            for key, value in settings.to_dict().items()
            if key not in _RESERVED_GATEWAY_KEYS
        }
        options["args"] = list(settings.get("args") or ())
        gateway = gateway_cls(name, options)
        if gateway.adapter is None:
            gateway.adapter = tag
        logger.debug("built gateway %s with adapter %s", name, tag)
        return gateway

    # ---------- Finalization ----------

    def finalize(self, notifications: EventBus, compiler: CommandCompiler | None = None) -> Container:
        """Validate identities, then build relations, commands and mappers.

        Nothing is kept when a step fails; the setup stays non-finalized.
        """
        self._ensure_open("finalize")
        self._validate()

        gateways = GatewayRegistry()
        for name, gateway in self.gateway_cache.built().items():
            gateways.register(name, gateway)
        gateways.freeze()

        relations = self._finalize_relations(notifications)
        commands = self._finalize_commands(compiler or CommandCompiler(notifications), relations)
        mappers = self._finalize_mappers(relations)

        self.container = Container(
            gateways=gateways,
            relations=relations,
            commands=commands,
            mappers=mappers,
        )
        logger.info(
            "finalized %d relation(s), %d command(s), %d mapper(s) over %d gateway(s)",
            len(relations),
            len(commands),
            len(mappers),
            len(gateways),
        )
        return self.container

    def _validate(self) -> None:
        for kind, descriptors in self.components.items():
            seen: dict[str, ComponentDescriptor] = {}
            for descriptor in descriptors:
                other = seen.get(descriptor.id)
                if other is not None:
                    raise DuplicateIdentityError(
                        kind=kind,
                        id=descriptor.id,
                        constants=(other.constant, descriptor.constant),
                    )
                seen[descriptor.id] = descriptor

        relation_ids = {descriptor.id for descriptor in self.relations}
        for descriptor in self.relations:
            if descriptor.gateway not in self.gateway_cache:
                raise GatewayNotFoundError(descriptor.gateway)
        for descriptor in self.commands:
            if descriptor.relation_id is None or descriptor.relation_id not in relation_ids:
                raise MissingRelationError(kind="command", id=descriptor.id, relation_id=descriptor.relation_id)
        for descriptor in self.mappers:
            if descriptor.relation_id is not None and descriptor.relation_id not in relation_ids:
                raise MissingRelationError(kind="mapper", id=descriptor.id, relation_id=descriptor.relation_id)

    def _finalize_relations(self, notifications: EventBus) -> ComponentRegistry:
        registry = ComponentRegistry("relation")
        for descriptor in self.relations:
            relation = self._build_relation(descriptor, notifications, registry)
            registry.register(descriptor.id, relation)
            notifications.publish(
                RELATIONS_OBJECT_REGISTERED,
                {"relation": relation, "registry": registry},
            )
        registry.freeze()
        notifications.publish(RELATIONS_REGISTRY_CREATED, {"registry": registry})
        return registry

    def _build_relation(
        self,
        descriptor: RelationDescriptor,
        notifications: EventBus,
        registry: ComponentRegistry,
    ) -> Relation:
        gateway = self.gateway(descriptor.gateway)
        name = descriptor.name

        ready = notifications.publish(
            RELATIONS_CLASS_READY,
            {"relation": descriptor.constant, "adapter": gateway.adapter, "gateway": gateway},
        )
        relation_class = ready.payload["relation"]

        attributes = relation_class.schema_attributes or gateway.schema.get(name.dataset, ())
        allocated = notifications.publish(
            RELATIONS_SCHEMA_ALLOCATED,
            {"schema": Schema(name, tuple(attributes)), "relation": relation_class, "gateway": gateway},
        )
        schema = allocated.payload["schema"]
        notifications.publish(RELATIONS_SCHEMA_SET, {"schema": schema, "relation": relation_class})

        if gateway.dataset_exists(name.dataset):
            dataset = gateway.dataset(name.dataset)
        else:
            dataset = gateway.allocate(name.dataset)
        dataset_event = notifications.publish(
            RELATIONS_DATASET_ALLOCATED,
            {"dataset": dataset, "relation": relation_class},
        )
        return relation_class(
            dataset_event.payload["dataset"],
            name=name,
            schema=schema,
            gateway=gateway,
        )

    def _finalize_commands(self, compiler: CommandCompiler, relations: ComponentRegistry) -> ComponentRegistry:
        registry = ComponentRegistry("command")
        for descriptor in self.commands:
            relation = relations[descriptor.relation_id]
            options = {
                key: value
                for key, value in descriptor.options.items()
                if key not in _RESERVED_COMMAND_OPTIONS
            }
            command = compiler.compile(
                descriptor.constant,
                relation,
                adapter=getattr(relation.gateway, "adapter", None),
                **options,
            )
            registry.register(descriptor.id, command)
        return registry.freeze()

    def _finalize_mappers(self, relations: ComponentRegistry) -> ComponentRegistry:
        registry = ComponentRegistry("mapper")
        for descriptor in self.mappers:
            relation = relations[descriptor.relation_id] if descriptor.relation_id else None
            registry.register(descriptor.id, descriptor.constant(relation))
        return registry.freeze()
