"""``instrumentation`` plugin: log and count lifecycle events."""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING, Any, Mapping

from relmap_core.events import CONFIGURATION_EVENTS, Event, EventBus

if TYPE_CHECKING:
    from relmap_core.configuration import Configuration

PLUGIN_NAME = "instrumentation"

logger = logging.getLogger(__name__)


class Instrumentation:
    """Counts every configuration event seen by configurations that enable it.

    Listeners are subscribed on the source bus with ``source="instrumentation"``,
    so they only run for configurations that ``use("instrumentation")``.
    """

    def __init__(self) -> None:
        self.counts: Counter[str] = Counter()
        self.level = logging.DEBUG

    def subscribe(self, events: EventBus) -> None:
        for event_name in CONFIGURATION_EVENTS:
            events.subscribe(event_name, self.record, source=PLUGIN_NAME)

    def apply(self, configuration: "Configuration", options: Mapping[str, Any]) -> None:
        level = options.get("level")
        if level is not None:
            self.level = logging.getLevelNamesMapping()[level.upper()] if isinstance(level, str) else int(level)
        configuration.instrumentation = self

    def record(self, event: Event) -> None:
        self.counts[event.name] += 1
        logger.log(self.level, "%s %s", event.name, _describe(event.payload))

    def reset(self) -> None:
        self.counts.clear()


def _describe(payload: Mapping[str, Any]) -> str:
    parts = []
    for key, value in payload.items():
        label = value.__qualname__ if isinstance(value, type) else type(value).__name__
        parts.append(f"{key}={label}")
    return " ".join(parts)
