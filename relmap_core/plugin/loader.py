"""Import entrypoints and scan modules for declared component classes."""

from __future__ import annotations

import importlib
import sys
from importlib.metadata import entry_points
from typing import Any, Iterable, Iterator

from relmap_core.api.decorators import component_metadata

from .errors import PluginLoadError


def split_entrypoint(entrypoint: str) -> tuple[str, str]:
    if ":" in entrypoint:
        module_path, attribute = entrypoint.split(":", 1)
    elif "." in entrypoint:
        module_path, attribute = entrypoint.rsplit(".", 1)
    else:
        raise PluginLoadError(f"entrypoint {entrypoint!r} is not a module path")

    if not module_path or not attribute:
        raise PluginLoadError(f"entrypoint {entrypoint!r} is incomplete")
    return module_path, attribute


def load_entrypoint(entrypoint: str) -> Any:
    """Import ``package.module:attribute`` and return the attribute."""

    module_path, attribute = split_entrypoint(entrypoint)
    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise PluginLoadError(f"unable to import module {module_path} for {entrypoint!r}") from exc

    try:
        return getattr(module, attribute)
    except AttributeError as exc:
        raise PluginLoadError(f"module {module_path} does not expose {attribute}") from exc


def iter_entry_points(group: str) -> Iterator[tuple[str, Any]]:
    """Yield ``(name, loaded object)`` for installed distributions' entry points."""

    for entry in entry_points(group=group):
        try:
            yield entry.name, entry.load()
        except Exception as exc:
            raise PluginLoadError(f"entry point {entry.name} in {group} failed to load: {exc}") from exc


def _matches_module(module_name: str, prefixes: tuple[str, ...]) -> bool:
    return any(
        module_name == prefix or module_name.startswith(f"{prefix}.")
        for prefix in prefixes
    )


def scan_components(modules: Iterable[str]) -> tuple[type, ...]:
    """Import ``modules`` and return every declared component class found.

    Already-imported submodules of each named module are scanned too. Classes
    are returned in discovery order, each at most once.
    """

    prefixes: list[str] = []
    for module_name in modules:
        try:
            importlib.import_module(module_name)
        except ImportError as exc:
            raise PluginLoadError(f"unable to import module {module_name} for auto-registration") from exc
        prefixes.append(module_name)

    results: list[type] = []
    seen_targets: set[int] = set()
    frozen_prefixes = tuple(prefixes)

    for module_name, module in list(sys.modules.items()):
        if module is None or not _matches_module(module_name, frozen_prefixes):
            continue
        for candidate in vars(module).values():
            if not isinstance(candidate, type):
                continue
            if component_metadata(candidate) is None:
                continue
            if candidate.__module__ != module_name:
                continue
            target_id = id(candidate)
            if target_id in seen_targets:
                continue
            seen_targets.add(target_id)
            results.append(candidate)

    return tuple(results)
