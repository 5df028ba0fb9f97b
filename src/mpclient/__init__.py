"""mpclient - asyncio client engine for the MPD protocol."""

from .protocol import (
    CommandError,
    Event,
    EventType,
    MPDClient,
    MPDError,
    NotConnectedError,
    Response,
)

__version__ = "0.1.0"

__all__ = [
    "MPDClient",
    "Response",
    "Event",
    "EventType",
    "MPDError",
    "NotConnectedError",
    "CommandError",
    "__version__",
]
