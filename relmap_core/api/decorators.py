"""Decorators that stamp declarable classes with their registered name."""

from __future__ import annotations

from typing import Any, Callable, Type

from .abc import Command, Mapper, Relation

COMPONENT_ATTRIBUTE = "__relmap_component__"

_ComponentCandidate = Type[Any]


def component_metadata(cls: type) -> dict[str, str] | None:
    """Return metadata declared on ``cls`` itself, ignoring inherited stamps."""
    return vars(cls).get(COMPONENT_ATTRIBUTE)


def _attach_component_metadata(cls: type, kind: str, *, name: str | None) -> type:
    if not isinstance(cls, type):
        raise TypeError("Decorated object must be a class.")
    registered = name or cls.__name__
    if not registered.strip():
        raise ValueError("component name cannot be empty.")
    setattr(cls, COMPONENT_ATTRIBUTE, {"kind": kind, "name": registered})
    return cls


def _component_decorator(
    base: type, kind: str
) -> Callable[..., Any]:
    def decorator(
        cls: _ComponentCandidate | None = None,
        *,
        name: str | None = None,
    ) -> Callable[[_ComponentCandidate], _ComponentCandidate] | _ComponentCandidate:
        def wrap(target: _ComponentCandidate) -> _ComponentCandidate:
            if not issubclass(target, base):
                raise TypeError(
                    f"{target.__name__} must subclass {base.__name__} to be declared as {kind}."
                )
            return _attach_component_metadata(target, kind, name=name)

        if cls is None:
            return wrap
        return wrap(cls)

    return decorator


relation_class = _component_decorator(Relation, "relation")
command_class = _component_decorator(Command, "command")
mapper_class = _component_decorator(Mapper, "mapper")
