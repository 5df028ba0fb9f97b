"""mpclient CLI main entry point."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Awaitable

import click

from ..config import Config, LoggingConfig, load_config
from ..protocol.errors import CommandError, MPDError
from ..protocol.messages import Response, format_command
from . import commands
from .output import print_error, print_event, print_response

LOG_LEVELS = ["debug", "info", "warning", "error"]


def setup_logging(config: LoggingConfig) -> None:
    """Set up logging to stderr and, if configured, to a file."""
    level = getattr(logging, config.log_level.upper(), logging.WARNING)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    root_logger = logging.getLogger("mpclient")
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler
    if config.log_file:
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def run_request(ctx: click.Context, request: Awaitable[Response | None]) -> None:
    """Run a request coroutine and print its outcome."""
    json_output = ctx.obj["json"]

    try:
        response = asyncio.run(request)
    except CommandError as e:
        print_error(e.response, json_output)
        ctx.exit(1)
    except (MPDError, asyncio.TimeoutError) as e:
        print(f"Error: {str(e) or 'connection timed out'}", file=sys.stderr)
        ctx.exit(1)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    if response is not None:
        print_response(response, json_output)


@click.group(invoke_without_command=True)
@click.option("--host", help="Host the server listens on")
@click.option("--port", type=int, help="Port the server listens on")
@click.option("--socket", "socket_path", type=click.Path(), help="Unix socket path")
@click.option("--json", "json_output", is_flag=True, help="Output responses as JSON")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), help="Logging level")
@click.pass_context
def cli(ctx, host, port, socket_path, json_output: bool, log_level):
    """mpclient - talk to an MPD server.

    Without a subcommand, starts the interactive shell.
    """
    if host and socket_path:
        raise click.UsageError("--host and --socket are mutually exclusive")

    try:
        config: Config = load_config()
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    if host:
        config.connection.host = host
        config.connection.socket_path = ""
    if port is not None:
        config.connection.port = port
    if socket_path:
        config.connection.socket_path = socket_path
    if log_level:
        config.logging.log_level = log_level

    setup_logging(config.logging)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["json"] = json_output

    if ctx.invoked_subcommand is None:
        ctx.invoke(shell)


@cli.command("send")
@click.argument("command", nargs=-1, required=True)
@click.pass_context
def send(ctx, command: tuple[str, ...]):
    """Send one command, e.g. `mpclient send add "My Song.flac"`.

    Arguments after the command name are quoted before sending.
    """
    config = ctx.obj["config"]
    line = format_command(command[0], *command[1:])
    run_request(ctx, commands.send_command(config.connection, line))


@cli.command("list")
@click.argument("command_lines", nargs=-1, required=True)
@click.option(
    "--list-ok/--no-list-ok",
    default=True,
    help="Acknowledge every command with list_OK",
)
@click.pass_context
def command_list(ctx, command_lines: tuple[str, ...], list_ok: bool):
    """Send several commands as one command list.

    Each argument is one command: `mpclient list "play" "status"`.
    """
    config = ctx.obj["config"]
    run_request(
        ctx, commands.send_command_list(config.connection, command_lines, list_ok)
    )


@cli.command("watch")
@click.argument("subsystems", nargs=-1)
@click.option("--count", "-n", type=int, help="Stop after this many changes")
@click.pass_context
def watch(ctx, subsystems: tuple[str, ...], count: int | None):
    """Print subsystem changes as they happen."""
    config = ctx.obj["config"]
    json_output = ctx.obj["json"]

    try:
        asyncio.run(
            commands.watch(
                config.connection,
                subsystems,
                lambda event: print_event(event, json_output),
                count,
            )
        )
    except KeyboardInterrupt:
        pass
    except (MPDError, asyncio.TimeoutError) as e:
        print(f"Error: {str(e) or 'connection timed out'}", file=sys.stderr)
        ctx.exit(1)


@cli.command("shell")
@click.pass_context
def shell(ctx):
    """Interactive prompt."""
    config = ctx.obj["config"]

    try:
        asyncio.run(commands.run_shell(config.connection, ctx.obj["json"]))
    except KeyboardInterrupt:
        pass


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
