"""String transforms used to derive component identifiers from registered names."""

from __future__ import annotations

import re

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")


def demodulize(name: str) -> str:
    """Strip any module or namespace prefix: ``app.relations.Users`` -> ``Users``."""
    for separator in ("::", ".", ":"):
        if separator in name:
            name = name.rsplit(separator, 1)[1]
    return name


def underscore(name: str) -> str:
    """``UserTasks`` -> ``user_tasks``; ``HTTPLogs`` -> ``http_logs``."""
    word = demodulize(name)
    word = _ACRONYM_BOUNDARY.sub(r"\1_\2", word)
    word = _WORD_BOUNDARY.sub(r"\1_\2", word)
    return word.replace("-", "_").lower()


class Inflector:
    """Default inflector; swap in another object exposing ``underscore``."""

    def underscore(self, name: str) -> str:
        return underscore(name)
