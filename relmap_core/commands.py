"""Command building, including view tables for restrictable commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from .api import Command, Relation
from .events import COMMANDS_CLASS_BEFORE_BUILD, EventBus

__all__ = ["ViewTable", "CommandCompiler"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewTable:
    """View-method names of one relation class, resolvable on a command.

    Calling a view forwards to the command's relation; a result that is an
    instance of ``relation_class`` is wrapped in a new command, anything else
    is returned unchanged.
    """

    relation_class: type
    names: tuple[str, ...]

    @classmethod
    def for_relation(cls, relation_class: type[Relation]) -> "ViewTable":
        return cls(relation_class=relation_class, names=tuple(relation_class.view_methods()))

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def bind(self, command: Command, name: str) -> Callable[..., Any]:
        if name not in self.names:
            raise AttributeError(f"{name!r} is not a view of {self.relation_class.__name__}")

        def forward(*args: Any, **kwargs: Any) -> Any:
            response = getattr(command.relation, name)(*args, **kwargs)
            if isinstance(response, self.relation_class):
                return command.new(response)
            return response

        forward.__name__ = name
        return forward


class CommandCompiler:
    """Builds command objects for relations.

    Every build publishes ``configuration.commands.class.before_build`` so
    listeners can swap the command class, then runs ``extend_for_relation``.
    """

    def __init__(self, notifications: EventBus) -> None:
        self.notifications = notifications
        self._extended: dict[tuple[type, type], type] = {}

    def compile(
        self,
        command_class: type[Command],
        relation: Relation,
        *,
        adapter: str | None = None,
        **options: Any,
    ) -> Command:
        event = self.notifications.publish(
            COMMANDS_CLASS_BEFORE_BUILD,
            {
                "command": command_class,
                "relation": relation,
                "gateway": relation.gateway,
                "adapter": adapter,
            },
        )
        klass = event.payload["command"].create_class(relation=relation)
        klass = self.extend_for_relation(klass, relation)
        return klass(relation, **options)

    def extend_for_relation(self, command_class: type[Command], relation: Relation) -> type[Command]:
        """Return ``command_class`` with the view table of ``relation``'s class, once per pair."""

        if not command_class.restrictable:
            return command_class

        relation_class = type(relation)
        current = command_class.views
        if current is not None and current.relation_class is relation_class:
            return command_class

        key = (command_class, relation_class)
        extended = self._extended.get(key)
        if extended is None:
            table = ViewTable.for_relation(relation_class)
            extended = type(command_class)(
                command_class.__name__,
                (command_class,),
                {
                    "views": table,
                    "__module__": command_class.__module__,
                    "__qualname__": command_class.__qualname__,
                },
            )
            self._extended[key] = extended
            logger.debug(
                "extended %s with views %s of %s",
                command_class.__qualname__,
                ", ".join(table.names) or "(none)",
                relation_class.__qualname__,
            )
        return extended
