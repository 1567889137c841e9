"""Base classes for declarable relations, commands and mappers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Iterable, Iterator, TypeVar

_F = TypeVar("_F", bound=Callable[..., Any])


@dataclass(frozen=True)
class Name:
    """Relation identity: the registered relation role plus its dataset."""

    relation: str
    dataset: str | None = None

    def __post_init__(self) -> None:
        if not self.relation:
            raise ValueError("relation name cannot be empty.")
        if self.dataset is None:
            object.__setattr__(self, "dataset", self.relation)

    @classmethod
    def coerce(cls, value: "Name | str") -> "Name":
        if isinstance(value, Name):
            return value
        if isinstance(value, str):
            return cls(value)
        raise TypeError(f"cannot build a relation name from {value!r}")

    def __str__(self) -> str:
        return self.relation


@dataclass(frozen=True)
class Schema:
    """Attributes allocated for one relation."""

    name: Name
    attributes: tuple[str, ...] = ()

    def __iter__(self) -> Iterator[str]:
        return iter(self.attributes)

    def __contains__(self, attribute: object) -> bool:
        return attribute in self.attributes


def view(func: _F) -> _F:
    """Mark a relation method as a view usable by restrictable commands."""
    setattr(func, "__relmap_view__", True)
    return func


class Relation:
    """Base class for relations bound to a gateway dataset."""

    gateway_name: ClassVar[str] = "default"
    register_as: ClassVar[str | None] = None
    dataset_name: ClassVar[str | None] = None
    schema_attributes: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        dataset: Any,
        *,
        name: Name,
        schema: Schema | None = None,
        gateway: Any = None,
    ) -> None:
        self.dataset = dataset
        self.name = name
        self.schema = schema if schema is not None else Schema(name)
        self.gateway = gateway

    @classmethod
    def default_name(cls) -> Name | None:
        if cls.register_as is None and cls.dataset_name is None:
            return None
        relation = cls.register_as or cls.dataset_name
        return Name(relation, cls.dataset_name or relation)

    @classmethod
    def view_methods(cls) -> tuple[str, ...]:
        names: list[str] = []
        for klass in reversed(cls.__mro__):
            for attribute, value in vars(klass).items():
                if getattr(value, "__relmap_view__", False) and attribute not in names:
                    names.append(attribute)
        return tuple(names)

    @property
    def id(self) -> str:
        return self.name.relation

    def new(self, dataset: Any) -> "Relation":
        """Return a relation of the same class over ``dataset``."""
        return type(self)(dataset, name=self.name, schema=self.schema, gateway=self.gateway)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.dataset)

    def to_list(self) -> list[Any]:
        return list(self)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name.relation!r} dataset={self.name.dataset!r}>"


class Command(ABC):
    """Base class for commands operating on one relation."""

    register_as: ClassVar[str | None] = None
    relation_id: ClassVar[str | None] = None
    restrictable: ClassVar[bool] = False
    # set by CommandCompiler.extend_for_relation on restrictable subclasses
    views: ClassVar[Any] = None

    def __init__(self, relation: Relation, **options: Any) -> None:
        self.relation = relation
        self.options = dict(options)

    @classmethod
    def default_name(cls) -> str | None:
        return None

    @classmethod
    def create_class(cls, relation: Relation | None = None) -> type["Command"]:
        """Hook returning the class to build for ``relation``."""
        return cls

    def new(self, relation: Relation) -> "Command":
        return type(self)(relation, **self.options)

    @abstractmethod
    def call(self, *args: Any, **kwargs: Any) -> Any:
        """Execute the command."""

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.call(*args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        views = type(self).views
        if views is not None and not name.startswith("_") and name in views:
            return views.bind(self, name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")


class Mapper:
    """Base class for mappers transforming relation rows."""

    id: ClassVar[str | None] = None
    base_relation: ClassVar[str | None] = None

    def __init__(self, relation: Relation | None = None) -> None:
        self.relation = relation

    def map(self, row: Any) -> Any:
        return row

    def call(self, rows: Iterable[Any] | None = None) -> list[Any]:
        if rows is None:
            if self.relation is None:
                raise ValueError(f"{type(self).__name__} has no relation to read from")
            rows = self.relation
        return [self.map(row) for row in rows]

    def __call__(self, rows: Iterable[Any] | None = None) -> list[Any]:
        return self.call(rows)
