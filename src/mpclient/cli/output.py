"""Output formatting for CLI."""

from __future__ import annotations

import json
import sys

from ..protocol.messages import Event, EventType, Response


def trim(text: str) -> str:
    """Drop a single trailing newline."""
    return text[:-1] if text.endswith("\n") else text


def format_response(response: Response) -> str:
    """Format a response the way the server sent it."""
    return trim(response.raw)


def format_error(response: Response) -> str:
    """Format an ACK response for display."""
    error = response.error
    if error is None:
        return f"Error: {response.status}"

    command = f" {{{error.command}}}" if error.command else ""
    return f"Error [{int(error.code)}]{command}: {error.message}"


def format_event(event: Event) -> str:
    """Format event for display."""
    if event.type is EventType.CHANGED:
        return f"[changed] {', '.join(event.subsystems)}"
    elif event.type is EventType.DATA and event.response is not None:
        return format_response(event.response)
    elif event.type is EventType.ERROR:
        return f"[error] {event.error}"
    elif event.type is EventType.DISCONNECTED:
        return "[disconnected]"
    else:
        return f"[{event.type.value}]"


def print_response(response: Response, json_output: bool = False) -> None:
    """Print response to stdout."""
    if json_output:
        print(json.dumps(response.to_dict(), indent=2))
    else:
        print(format_response(response))


def print_error(response: Response, json_output: bool = False) -> None:
    """Print a rejected command's response to stderr."""
    if json_output:
        print(json.dumps(response.to_dict(), indent=2), file=sys.stderr)
    else:
        print(format_error(response), file=sys.stderr)


def print_event(event: Event, json_output: bool = False) -> None:
    """Print event to stdout."""
    if json_output:
        print(json.dumps(event.to_dict()))
    else:
        print(format_event(event))
    sys.stdout.flush()
