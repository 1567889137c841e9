"""Named-event notification bus shared by the configuration lifecycle and plugins."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict, Iterable

from .errors import UnknownEventError

__all__ = [
    "Event",
    "EventHandler",
    "EventBus",
    "Listener",
    "event_bus",
    "CONFIGURATION_EVENTS",
]

logger = logging.getLogger(__name__)

RELATIONS_CLASS_READY = "configuration.relations.class.ready"
RELATIONS_SCHEMA_ALLOCATED = "configuration.relations.schema.allocated"
RELATIONS_SCHEMA_SET = "configuration.relations.schema.set"
RELATIONS_DATASET_ALLOCATED = "configuration.relations.dataset.allocated"
RELATIONS_OBJECT_REGISTERED = "configuration.relations.object.registered"
RELATIONS_REGISTRY_CREATED = "configuration.relations.registry.created"
COMMANDS_CLASS_BEFORE_BUILD = "configuration.commands.class.before_build"

CONFIGURATION_EVENTS = (
    RELATIONS_CLASS_READY,
    RELATIONS_SCHEMA_ALLOCATED,
    RELATIONS_SCHEMA_SET,
    RELATIONS_DATASET_ALLOCATED,
    RELATIONS_OBJECT_REGISTERED,
    RELATIONS_REGISTRY_CREATED,
    COMMANDS_CLASS_BEFORE_BUILD,
)


@dataclass(frozen=True)
class Event:
    """Event descriptor handed to listeners.

    The payload is shared with the publisher, so listeners can replace values
    (for instance a command class) that later listeners and the caller observe.
    """

    name: str
    payload: dict[str, Any]

    def __getitem__(self, key: str) -> Any:
        return self.payload[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.payload[key] = value


EventHandler = Callable[[Event], None]


@dataclass(frozen=True)
class Listener:
    """A handler subscribed to one event, optionally owned by a plugin."""

    event_name: str
    handler: EventHandler
    source: str | None = None
    priority: int = 0
    order: int = 0


class EventBus:
    """Synchronous event bus with deterministic delivery."""

    def __init__(self, name: str = "default", events: Iterable[str] = ()) -> None:
        self.name = name
        self._events: list[str] = []
        self._handlers: DefaultDict[str, list[Listener]] = defaultdict(list)
        self._sequence = 0
        for event_name in events:
            self.register_event(event_name)

    @property
    def events(self) -> tuple[str, ...]:
        return tuple(self._events)

    def register_event(self, event_name: str) -> None:
        """Declare ``event_name`` as a valid channel; repeated calls are ignored."""
        if event_name not in self._events:
            self._events.append(event_name)

    def subscribe(
        self,
        event_name: str,
        handler: EventHandler | None = None,
        *,
        source: str | None = None,
        priority: int = 0,
    ) -> Any:
        """Register a handler for ``event_name``.

        Without ``handler`` this returns a decorator. ``source`` names the plugin
        owning the listener; unowned listeners are global.
        """
        if handler is None:

            def decorator(func: EventHandler) -> EventHandler:
                self.subscribe(event_name, func, source=source, priority=priority)
                return func

            return decorator

        self._ensure_registered(event_name)
        self._add(
            Listener(
                event_name=event_name,
                handler=handler,
                source=source,
                priority=priority,
            )
        )
        return handler

    # kept for parity with the handler-first naming used by plugins
    def on(self, event_name: str, handler: EventHandler, priority: int = 0) -> None:
        self.subscribe(event_name, handler, priority=priority)

    def publish(self, event_name: str, payload: dict[str, Any] | None = None) -> Event:
        """Run every listener of ``event_name`` and return the (possibly mutated) event."""
        self._ensure_registered(event_name)
        event = Event(event_name, payload if payload is not None else {})
        subscriptions = sorted(
            self._handlers[event_name],
            key=lambda item: (-item.priority, item.order),
        )
        logger.debug("%s: publishing %s to %d listener(s)", self.name, event_name, len(subscriptions))
        for subscription in subscriptions:
            subscription.handler(event)
        return event

    emit = publish

    def listeners(self, event_name: str | None = None) -> tuple[Listener, ...]:
        """Return subscriptions in registration order."""
        if event_name is not None:
            return tuple(self._handlers.get(event_name, ()))
        everything = [item for items in self._handlers.values() for item in items]
        return tuple(sorted(everything, key=lambda item: item.order))

    def attach(self, listeners: Iterable[Listener]) -> None:
        """Copy ``listeners`` from another bus, preserving their relative order."""
        for listener in listeners:
            self._ensure_registered(listener.event_name)
            self._add(listener)

    def _add(self, listener: Listener) -> None:
        order = self._sequence
        self._sequence += 1
        self._handlers[listener.event_name].append(
            Listener(
                event_name=listener.event_name,
                handler=listener.handler,
                source=listener.source,
                priority=listener.priority,
                order=order,
            )
        )

    def _ensure_registered(self, event_name: str) -> None:
        if event_name not in self._events:
            raise UnknownEventError(event_name, self.name)


_BUSES: dict[str, EventBus] = {}


def event_bus(name: str) -> EventBus:
    """Return the process-wide bus called ``name``, creating it on first use."""
    bus = _BUSES.get(name)
    if bus is None:
        bus = _BUSES[name] = EventBus(name)
    return bus
