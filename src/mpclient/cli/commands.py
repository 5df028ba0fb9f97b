"""CLI command implementations."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, nullcontext
from typing import AsyncIterator, Awaitable, Callable, Iterable

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.patch_stdout import patch_stdout

from ..config import ConnectionConfig
from ..protocol.client import MPDClient
from ..protocol.errors import CommandError, ConnectionLostError, MPDError
from ..protocol.messages import Event, EventType, Response
from .history import get_history
from .output import print_error, print_event, print_response

_logger = logging.getLogger("mpclient.cli")

SHELL_COMMANDS = ["/help", "/exit", "/connect", "/disconnect"]

SHELL_HELP = "\n".join(
    [
        "General:",
        "  /help       - Shows this message.",
        "  /exit       - Exits.",
        "",
        "Connection:",
        "  /connect    - Connect to the MPD server.",
        "  /disconnect - Disconnect from the MPD server.",
        "",
        "Anything else is sent to the server as a command. See",
        "https://mpd.readthedocs.io/en/latest/protocol.html",
        "for the full MPD command reference.",
    ]
)


@asynccontextmanager
async def open_client(connection: ConnectionConfig) -> AsyncIterator[MPDClient]:
    """Connect for the duration of a block."""
    client = MPDClient.from_config(connection)
    await client.connect(timeout=connection.timeout or None)
    try:
        yield client
    finally:
        await client.disconnect()


async def send_command(connection: ConnectionConfig, command: str) -> Response | None:
    """Send one command and return its response."""
    async with open_client(connection) as client:
        return await client.command(command)


async def send_command_list(
    connection: ConnectionConfig, commands: Iterable[str], list_ok: bool = True
) -> Response:
    """Send a command list and return its response."""
    async with open_client(connection) as client:
        return await client.command_list(commands, list_ok)


async def _next_change(queue: asyncio.Queue[Event]) -> Event:
    while True:
        event = await queue.get()
        if event.type is EventType.CHANGED:
            return event
        if event.type is EventType.DISCONNECTED:
            raise ConnectionLostError(str(event.error or "Connection closed"))


async def watch(
    connection: ConnectionConfig,
    subsystems: Iterable[str],
    on_change: Callable[[Event], None],
    count: int | None = None,
) -> int:
    """Idle repeatedly and report each change; return how many were seen."""
    subsystems = tuple(subsystems)
    seen = 0

    async with open_client(connection) as client:
        queue = client.subscribe()
        while count is None or seen < count:
            await client.idle(*subsystems)
            on_change(await _next_change(queue))
            seen += 1

    return seen


async def _shell_connect(client: MPDClient, connection: ConnectionConfig) -> None:
    try:
        banner = await client.connect(timeout=connection.timeout or None)
    except (MPDError, asyncio.TimeoutError) as e:
        print(f"Error: {str(e) or 'connection timed out'}")
    else:
        print(banner)


def shell_completer() -> WordCompleter:
    """Tab completion for the shell's slash commands."""
    return WordCompleter(SHELL_COMMANDS, sentence=True)


def create_session() -> PromptSession:
    """Prompt session with persistent history and slash-command completion."""
    return PromptSession(history=get_history(), completer=shell_completer())


async def _shell_command(client: MPDClient, line: str, json_output: bool) -> None:
    try:
        response = await client.command(line)
    except CommandError as e:
        print_error(e.response, json_output)
    except MPDError as e:
        print(f"Error: {e}")
    else:
        if response is not None:
            print_response(response, json_output)


async def run_shell(
    connection: ConnectionConfig,
    json_output: bool = False,
    read_line: Callable[[str], Awaitable[str]] | None = None,
) -> None:
    """Interactive prompt sending each line as a command.

    Lines are read from a prompt_toolkit session unless ``read_line`` is
    given. With the session, output goes through ``patch_stdout`` so idle
    notifications are printed above the prompt and the prompt is redrawn.
    """
    if read_line is None:
        read_line = create_session().prompt_async
        redirect = patch_stdout()
    else:
        redirect = nullcontext()

    def show_unsolicited(event: Event) -> None:
        if event.type in (EventType.DATA, EventType.ERROR):
            print_event(event, json_output)

    client = MPDClient.from_config(connection)
    client.add_event_handler(show_unsolicited)

    with redirect:
        print('mpclient prompt\nType "/help" for help.\n')
        await _shell_connect(client, connection)

        try:
            while True:
                try:
                    line = await read_line("> ")
                except EOFError:
                    break
                except KeyboardInterrupt:
                    continue

                line = line.strip()
                if not line:
                    continue

                if line.startswith("/") or line == "?":
                    if line == "/exit":
                        break
                    elif line in ("/help", "?"):
                        print(SHELL_HELP)
                    elif line == "/connect":
                        await _shell_connect(client, connection)
                    elif line == "/disconnect":
                        await client.disconnect()
                    else:
                        print(f'Unknown command: "{line}"')
                    continue

                await _shell_command(client, line, json_output)
        finally:
            await client.disconnect()
            _logger.debug("Shell closed")
