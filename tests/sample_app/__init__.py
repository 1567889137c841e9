"""Small application package used to exercise auto-registration."""

from . import commands, relations  # noqa: F401
