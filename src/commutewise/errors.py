"""Exceptions raised by the route builder, its providers and persistence."""

from __future__ import annotations

from typing import Sequence


class RouteValidationError(ValueError):
    """The builder state cannot be committed; every violation is listed."""

    def __init__(self, messages: Sequence[str]) -> None:
        self.messages = list(messages)
        super().__init__("\n".join(self.messages))


class SaveInProgressError(RuntimeError):
    """A save was requested while another one is still running."""


class ConfigurationError(RuntimeError):
    """An external collaborator is missing operator-provided configuration."""


class DirectionsNotConfiguredError(ConfigurationError):
    pass


class PersistenceNotConfiguredError(ConfigurationError):
    pass


class DirectionsError(RuntimeError):
    """The directions provider failed (network, HTTP or malformed response)."""


class PathUnavailableError(RuntimeError):
    """The directions provider could not connect the requested waypoints."""


class PersistenceError(RuntimeError):
    """A read or write against the record store failed."""


class PartialSaveError(PersistenceError):
    """The route row was written but its stop attachments were not.

    The route is not rolled back; ``route`` identifies what was left behind.
    """

    def __init__(self, message: str, route) -> None:
        self.route = route
        super().__init__(message)
