"""Nested, freezable settings tree used for gateway configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, Mapping

import yaml
from platformdirs import user_config_dir

from .errors import ConfigurationError, FrozenConfigError

DEFAULT_APP_NAME = "relmap"
CONFIG_FILE_NAME = "gateways.yml"


def default_config_path() -> Path:
    """Return the platform-specific default gateway settings file."""

    base_dir = Path(user_config_dir(DEFAULT_APP_NAME, appauthor=False))
    return base_dir / CONFIG_FILE_NAME


class Config:
    """Settings node supporting attribute and item access.

    Missing keys auto-vivify as nested nodes until :meth:`freeze` is called;
    afterwards every assignment raises :class:`FrozenConfigError`.
    """

    def __init__(self, data: Mapping[str, Any] | None = None, *, path: tuple[str, ...] = ()) -> None:
        object.__setattr__(self, "_data", {})
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_path", path)
        if data:
            self.update(data)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def path(self) -> tuple[str, ...]:
        return self._path

    def freeze(self) -> "Config":
        for value in self._data.values():
            if isinstance(value, Config):
                value.freeze()
        object.__setattr__(self, "_frozen", True)
        return self

    def update(self, values: Mapping[str, Any]) -> "Config":
        """Merge ``values`` recursively, turning nested mappings into nodes."""
        for key, value in values.items():
            if isinstance(value, Mapping):
                self[key].update(value)
            else:
                self[key] = value
        return self

    def get(self, key: str, default: Any | None = None) -> Any | None:
        return self._data.get(key, default)

    def keys(self) -> tuple[str, ...]:
        return tuple(self._data)

    def items(self) -> tuple[tuple[str, Any], ...]:
        return tuple(self._data.items())

    def to_dict(self) -> dict[str, Any]:
        return {
            key: value.to_dict() if isinstance(value, Config) else value
            for key, value in self._data.items()
        }

    def __getitem__(self, key: str) -> Any:
        key = str(key)
        if key in self._data:
            return self._data[key]
        if self._frozen:
            raise KeyError(".".join(self._path + (key,)))
        node = Config(path=self._path + (key,))
        self._data[key] = node
        return node

    def __setitem__(self, key: str, value: Any) -> None:
        key = str(key)
        if self._frozen:
            raise FrozenConfigError(self._path + (key,))
        if isinstance(value, Mapping) and not isinstance(value, Config):
            value = Config(value, path=self._path + (key,))
        self._data[key] = value

    def __getattr__(self, key: str) -> Any:
        if key.startswith("_"):
            raise AttributeError(key)
        try:
            return self[key]
        except KeyError:
            raise AttributeError(f"config has no key {'.'.join(self._path + (key,))!r}") from None

    def __setattr__(self, key: str, value: Any) -> None:
        self[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        state = "frozen " if self._frozen else ""
        return f"<Config {state}{self.to_dict()!r}>"


def load_gateway_settings(path: Path | str | None = None) -> dict[str, Any]:
    """Read gateway settings from a YAML document.

    The document is either ``{"gateways": {...}}`` or a bare mapping of gateway
    name to settings. A missing default file yields an empty mapping.
    """

    explicit = path is not None
    target = Path(path) if explicit else default_config_path()
    if not target.exists():
        if explicit:
            raise ConfigurationError(f"gateway settings file {target} does not exist")
        return {}
    try:
        document = yaml.safe_load(target.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"unable to read gateway settings at {target}") from exc

    if document is None:
        return {}
    if not isinstance(document, Mapping):
        raise ConfigurationError(f"expected a mapping in {target}")
    gateways = document.get("gateways", document)
    if not isinstance(gateways, Mapping):
        raise ConfigurationError(f"'gateways' in {target} must be a mapping")
    return {str(name): value for name, value in gateways.items()}
