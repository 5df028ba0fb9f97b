"""MPD protocol engine - framing, parsing, correlation and idle handling."""

from .client import ConnectionState, MPDClient
from .correlator import PendingRequest, ResponseCorrelator
from .errors import (
    CommandError,
    ConnectionFailedError,
    ConnectionLostError,
    MPDError,
    NotConnectedError,
    ProtocolError,
)
from .framing import FrameAssembler, LineReader
from .idle import IdleAction, IdleState, IdleStateMachine
from .messages import (
    ErrorCode,
    ErrorInfo,
    Event,
    EventType,
    Response,
    format_command,
    parse_ack,
    parse_response,
    quote_argument,
)

__all__ = [
    "MPDClient",
    "ConnectionState",
    "PendingRequest",
    "ResponseCorrelator",
    "LineReader",
    "FrameAssembler",
    "IdleAction",
    "IdleState",
    "IdleStateMachine",
    "Response",
    "Event",
    "EventType",
    "ErrorCode",
    "ErrorInfo",
    "parse_response",
    "parse_ack",
    "quote_argument",
    "format_command",
    "MPDError",
    "NotConnectedError",
    "ConnectionFailedError",
    "ConnectionLostError",
    "ProtocolError",
    "CommandError",
]
