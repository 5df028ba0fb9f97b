"""Response records, status classification and events for the MPD protocol."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


FIELD_SEPARATOR = ": "

OK_PREFIX = "OK"
ACK_PREFIX = "ACK"
BANNER_TOKEN = "MPD"

IDLE = "idle"
NOIDLE = "noidle"
COMMAND_LIST_BEGIN = "command_list_begin"
COMMAND_LIST_OK_BEGIN = "command_list_ok_begin"
COMMAND_LIST_END = "command_list_end"
LIST_OK = "list_OK"

# ACK [error@command_listNum] {current_command} message_text
_ACK_RE = re.compile(r"^ACK \[(\d+)@(\d+)\] \{([^}]*)\}\s?(.*)$")


class ErrorCode(int, Enum):
    """Numeric error codes carried in ACK status lines."""

    NOT_LIST = 1
    ARG = 2
    PASSWORD = 3
    PERMISSION = 4
    UNKNOWN = 5

    NO_EXIST = 50
    PLAYLIST_MAX = 51
    SYSTEM = 52
    PLAYLIST_LOAD = 53
    UPDATE_ALREADY = 54
    PLAYER_SYNC = 55
    EXIST = 56


class EventType(str, Enum):
    """Kinds of events published on the client's event channel."""

    READY = "ready"
    DATA = "data"
    CHANGED = "changed"
    ERROR = "error"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class ErrorInfo:
    """Decoded ACK status line."""

    code: ErrorCode | int
    command_list_num: int
    command: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": int(self.code),
            "command_list_num": self.command_list_num,
            "command": self.command,
            "message": self.message,
        }


def parse_ack(status: str) -> ErrorInfo | None:
    """Decode an ACK status line, or return None if it has no details."""
    match = _ACK_RE.match(status.rstrip("\n"))
    if not match:
        return None

    raw_code = int(match.group(1))
    try:
        code: ErrorCode | int = ErrorCode(raw_code)
    except ValueError:
        code = raw_code

    return ErrorInfo(
        code=code,
        command_list_num=int(match.group(2)),
        command=match.group(3),
        message=match.group(4),
    )


@dataclass(frozen=True)
class Response:
    """One parsed response frame.

    Attributes:
        fields: Parsed ``key: value`` pairs. A repeated key maps to a list
            of its values in arrival order. Treat as read-only; use
            ``to_dict()`` for a copy that may be changed.
        status: The terminating status line without its newline.
        raw: The body and status line exactly as received.
    """

    fields: dict[str, str | list[str]]
    status: str
    raw: str

    @property
    def ok(self) -> bool:
        return is_ok_status(self.status)

    @property
    def error(self) -> ErrorInfo | None:
        if self.ok:
            return None
        return parse_ack(self.status)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fields": {
                key: list(value) if isinstance(value, list) else value
                for key, value in self.fields.items()
            },
            "status": self.status,
            "raw": self.raw,
        }


@dataclass(frozen=True)
class Event:
    """Notification published to event subscribers."""

    type: EventType
    response: Response | None = None
    subsystems: tuple[str, ...] = field(default_factory=tuple)
    error: BaseException | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"event": self.type.value}
        if self.response is not None:
            data["response"] = self.response.to_dict()
        if self.subsystems:
            data["subsystems"] = list(self.subsystems)
        if self.error is not None:
            data["error"] = str(self.error)
        return data


def is_ok_status(line: str) -> bool:
    return line.startswith(OK_PREFIX)


def is_ack_status(line: str) -> bool:
    return line.startswith(ACK_PREFIX)


def is_status_line(line: str) -> bool:
    """Check whether a line terminates a response frame."""
    return is_ok_status(line) or is_ack_status(line)


def is_banner(line: str, token: str = BANNER_TOKEN) -> bool:
    """Check whether a line is the greeting sent when a connection opens."""
    return line.startswith(f"{OK_PREFIX} {token}")


def banner_version(line: str, token: str = BANNER_TOKEN) -> str:
    """Extract the protocol version from a banner line."""
    return line[len(f"{OK_PREFIX} {token}") :].strip()


def parse_response(body: str, status_line: str) -> Response:
    """Parse an accumulated body and its status line into a Response.

    A body containing any non-empty line without the ``": "`` separator
    yields an empty field map; ``raw`` still holds the full text.
    """
    fields: dict[str, str | list[str]] = {}

    for line in body.split("\n"):
        if not line:
            continue

        key, sep, value = line.partition(FIELD_SEPARATOR)
        if not sep:
            fields = {}
            break

        current = fields.get(key)
        if current is None:
            fields[key] = value
        elif isinstance(current, list):
            current.append(value)
        else:
            fields[key] = [current, value]

    return Response(
        fields=fields,
        status=status_line.rstrip("\n"),
        raw=body + status_line,
    )


def changed_subsystems(response: Response) -> tuple[str, ...]:
    """Return the subsystems named by ``changed`` fields, if any."""
    value = response.fields.get("changed")
    if value is None:
        return ()
    if isinstance(value, list):
        return tuple(value)
    return (value,)


def command_verb(command: str) -> str:
    """Return the first word of a command line."""
    parts = command.split(None, 1)
    return parts[0] if parts else ""


def quote_argument(arg: object) -> str:
    """Quote a command argument, escaping backslashes and double quotes."""
    text = str(arg).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def format_command(name: str, *args: object) -> str:
    """Build a command line from a command name and quoted arguments."""
    return " ".join([name, *(quote_argument(arg) for arg in args)])
