"""Exceptions raised by the MPD protocol client."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .messages import ErrorInfo, Response


class MPDError(Exception):
    """Base class for all client errors."""


class NotConnectedError(MPDError):
    """A command was issued without a live connection."""

    def __init__(self, message: str = "No active connection to write to."):
        super().__init__(message)


class ConnectionFailedError(MPDError):
    """The transport could not be opened."""


class ConnectionLostError(MPDError):
    """The connection went away while a request was in flight."""


class ProtocolError(MPDError):
    """The daemon sent something the client cannot make sense of."""

    def __init__(self, message: str, response: Response | None = None):
        super().__init__(message)
        self.response = response


class CommandError(MPDError):
    """The daemon rejected a command with an ACK status."""

    def __init__(self, response: Response):
        self.response = response
        self.error: ErrorInfo | None = response.error
        super().__init__(self.error.message if self.error else response.status)
