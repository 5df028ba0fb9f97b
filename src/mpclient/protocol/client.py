"""Asyncio client for the MPD text protocol."""

from __future__ import annotations

import asyncio
import codecs
import logging
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Callable, Iterable, cast

from ..config import DEFAULT_HOST, DEFAULT_PORT, ConnectionConfig
from .correlator import PendingRequest, ResponseCorrelator
from .errors import (
    ConnectionFailedError,
    ConnectionLostError,
    NotConnectedError,
    ProtocolError,
)
from .framing import FrameAssembler, LineReader
from .idle import IdleAction, IdleStateMachine
from .messages import (
    BANNER_TOKEN,
    COMMAND_LIST_BEGIN,
    COMMAND_LIST_END,
    COMMAND_LIST_OK_BEGIN,
    IDLE,
    NOIDLE,
    Event,
    EventType,
    Response,
    banner_version,
    changed_subsystems,
    is_banner,
    is_status_line,
    parse_response,
)

MAX_RECV = 4096

_logger = logging.getLogger("mpclient.client")


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"


def _terminate(command: str) -> str:
    """Return a command with exactly one trailing newline."""
    text = command[:-1] if command.endswith("\n") else command
    if "\n" in text:
        raise ValueError(f"Command must be a single line: {command!r}")
    return text + "\n"


class MPDClient:
    """Client for one connection to an MPD server.

    Commands are answered strictly in the order they were written, so every
    write pushes a continuation onto a FIFO queue that inbound frames are
    matched against. Frames arriving with nothing pending (idle
    notifications) are published on the event channel instead.

    Example:
        async with MPDClient("localhost", 6600) as client:
            status = await client.command("status")
            print(status.fields["state"])
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        socket_path: str | Path | None = None,
        banner_token: str = BANNER_TOKEN,
    ):
        if socket_path is not None and (host is not None or port is not None):
            raise ValueError("Pass either host/port or socket_path, not both")

        self.socket_path = Path(socket_path) if socket_path is not None else None
        self.host = host if host is not None or socket_path is not None else DEFAULT_HOST
        self.port = port if port is not None or socket_path is not None else DEFAULT_PORT
        self.banner_token = banner_token
        self.protocol_version: str | None = None

        self._state = ConnectionState.DISCONNECTED
        self._reader_task: asyncio.Task | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._ready: asyncio.Future[str] | None = None
        self._drain_lock = asyncio.Lock()

        self._lines = LineReader()
        self._frames = FrameAssembler()
        self._correlator = ResponseCorrelator(self._on_unsolicited)
        self._idle = IdleStateMachine()

        self._event_handlers: list[Callable[[Event], None]] = []
        self._subscribers: list[asyncio.Queue[Event]] = []

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> MPDClient:
        """Create a client for the target named in the configuration."""
        if config.socket_path:
            return cls(socket_path=config.socket_path)
        return cls(host=config.host, port=config.port)

    @property
    def address(self) -> str:
        if self.socket_path is not None:
            return str(self.socket_path)
        return f"{self.host}:{self.port}"

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return self._idle.is_idle

    @property
    def pending_count(self) -> int:
        """Number of commands written but not yet answered."""
        return len(self._correlator)

    def is_connected(self) -> bool:
        return self._state is ConnectionState.READY

    async def __aenter__(self) -> MPDClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    # Events

    def add_event_handler(self, handler: Callable[[Event], None]) -> None:
        """Add handler for events."""
        self._event_handlers.append(handler)

    def remove_event_handler(self, handler: Callable[[Event], None]) -> None:
        if handler in self._event_handlers:
            self._event_handlers.remove(handler)

    def subscribe(self) -> asyncio.Queue[Event]:
        """Add a new event subscriber and return its queue."""
        queue: asyncio.Queue[Event] = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[Event]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    async def events(self) -> AsyncIterator[Event]:
        """Yield events until the consumer stops iterating."""
        queue = self.subscribe()
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(queue)

    def _emit(self, event: Event) -> None:
        for handler in list(self._event_handlers):
            try:
                handler(event)
            except Exception:
                _logger.exception("Event handler failed for %s event", event.type.value)

        for queue in self._subscribers:
            queue.put_nowait(event)

    # Connection lifecycle

    async def connect(self, timeout: float | None = None) -> str:
        """Connect and wait for the server's greeting.

        An existing connection is closed first. Returns the greeting line.
        """
        if self._state is not ConnectionState.DISCONNECTED:
            await self.disconnect()

        self._state = ConnectionState.CONNECTING
        try:
            return await asyncio.wait_for(self._open(), timeout)
        except BaseException:
            self._teardown(ConnectionLostError("Connection attempt aborted"))
            raise

    async def _open(self) -> str:
        try:
            if self.socket_path is not None:
                reader, writer = await asyncio.open_unix_connection(str(self.socket_path))
            else:
                reader, writer = await asyncio.open_connection(self.host, self.port)
        except OSError as e:
            raise ConnectionFailedError(f"Cannot connect to {self.address}: {e}") from e

        self._writer = writer
        self._lines.reset()
        self._frames.reset()
        self._idle.reset()
        self._correlator = ResponseCorrelator(self._on_unsolicited)
        self._ready = asyncio.get_running_loop().create_future()
        self._reader_task = asyncio.create_task(self._read_loop(reader))

        banner = await self._ready
        _logger.info("Connected to %s (protocol %s)", self.address, self.protocol_version)
        self._emit(Event(EventType.READY))
        return banner

    async def disconnect(self) -> None:
        """Close the connection. Does nothing if already disconnected."""
        if self._state is ConnectionState.DISCONNECTED and self._writer is None:
            return

        task = self._reader_task
        writer = self._writer
        self._teardown(ConnectionLostError("Disconnected"))

        if task is not None and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass

        if writer is not None:
            try:
                await writer.wait_closed()
            except OSError as e:
                _logger.debug("Error while closing connection: %s", e)

        _logger.info("Disconnected from %s", self.address)

    def _teardown(self, reason: BaseException) -> None:
        """Drop the transport and fail everything still waiting on it."""
        was_ready = self._state is ConnectionState.READY

        task, self._reader_task = self._reader_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        writer, self._writer = self._writer, None
        if writer is not None:
            writer.close()

        self._state = ConnectionState.DISCONNECTED
        self._idle.reset()
        self._lines.reset()
        self._frames.reset()

        ready, self._ready = self._ready, None
        if ready is not None and not ready.done():
            ready.set_exception(reason)

        aborted = self._correlator.abort_all(reason)
        if aborted:
            _logger.warning("Aborted %d pending request(s): %s", aborted, reason)

        if was_ready:
            self._emit(Event(EventType.DISCONNECTED, error=reason))

    def _connection_failed(self, exc: OSError) -> None:
        _logger.warning("Connection to %s failed: %s", self.address, exc)
        self._emit(Event(EventType.ERROR, error=exc))
        lost = ConnectionLostError(f"Connection to {self.address} lost: {exc}")
        lost.__cause__ = exc
        self._teardown(lost)

    # Inbound

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        """Read chunks until the server closes the connection."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

        try:
            while True:
                chunk = await reader.read(MAX_RECV)
                if not chunk:
                    break
                self._on_data(decoder.decode(chunk))
        except OSError as e:
            self._connection_failed(e)
            return

        _logger.info("Connection to %s closed by server", self.address)
        self._teardown(ConnectionLostError(f"Connection to {self.address} closed"))

    def _on_data(self, text: str) -> None:
        self._idle.wake()

        for line in self._lines.feed(text):
            if self._state is ConnectionState.CONNECTING:
                self._on_greeting(line)
                continue

            response = self._frames.push(line)
            if response is not None:
                self._correlator.dispatch(response)

    def _on_greeting(self, line: str) -> None:
        """Handle the first line of a session, which must be the banner."""
        ready = self._ready
        if ready is None or ready.done():
            return

        if is_banner(line, self.banner_token):
            self.protocol_version = banner_version(line, self.banner_token)
            self._state = ConnectionState.READY
            ready.set_result(line.rstrip("\n"))
            return

        response = parse_response("", line) if is_status_line(line) else None
        ready.set_exception(ProtocolError(f"Unexpected greeting: {line.rstrip()!r}", response))

    def _on_unsolicited(self, response: Response) -> None:
        _logger.debug("Unsolicited response: %r", response.raw)
        self._emit(Event(EventType.DATA, response=response))

        subsystems = changed_subsystems(response)
        if subsystems:
            self._emit(Event(EventType.CHANGED, response=response, subsystems=subsystems))

    # Outbound

    def _require_writer(self) -> asyncio.StreamWriter:
        if self._state is not ConnectionState.READY or self._writer is None:
            raise NotConnectedError()
        return self._writer

    def _write(self, writer: asyncio.StreamWriter, block: str) -> None:
        _logger.debug("Sending %r", block)
        writer.write(block.encode("utf-8"))

    def _submit(self, block: str) -> asyncio.Future[Response | None]:
        """Write a command and queue its continuation.

        Runs without yielding to the event loop, so the idle decision, the
        writes and the queue pushes of one call never interleave with
        another call or with inbound dispatch.
        """
        writer = self._require_writer()
        future: asyncio.Future[Response | None] = asyncio.get_running_loop().create_future()
        action = self._idle.decide(block)

        if action is IdleAction.SKIP:
            future.set_result(None)
            return future

        if action is IdleAction.ENTER:
            # The reply comes only when something changes and is
            # published as an event, so nothing is queued.
            self._write(writer, block)
            self._idle.enter()
            future.set_result(None)
            return future

        if action is IdleAction.CANCEL_FIRST:
            self._write(writer, f"{NOIDLE}\n")
            self._correlator.enqueue(PendingRequest.discard(NOIDLE))

        self._write(writer, block)
        self._idle.leave()
        self._correlator.enqueue(PendingRequest.for_future(future, block))
        return future

    async def _flush(self) -> None:
        async with self._drain_lock:
            writer = self._writer
            if writer is None:
                return
            try:
                await writer.drain()
            except OSError as e:
                if self._writer is writer:
                    self._connection_failed(e)

    async def _send(self, block: str) -> Response | None:
        future = self._submit(block)
        await self._flush()
        return await future

    async def command(self, command: str) -> Response | None:
        """Send one command and wait for its response.

        Returns None for ``idle`` (resolved once written) and for commands
        that need no write in the current idle state. Raises CommandError
        when the server answers with ACK.
        """
        self._require_writer()
        return await self._send(_terminate(command))

    async def command_list(self, commands: Iterable[str], list_ok: bool = True) -> Response:
        """Send commands as one command list and wait for the single response.

        With ``list_ok`` the server acknowledges each command with a
        ``list_OK`` line, which ends up in the body of the response.
        """
        self._require_writer()
        begin = COMMAND_LIST_OK_BEGIN if list_ok else COMMAND_LIST_BEGIN
        lines = [begin, *(_terminate(command)[:-1] for command in commands), COMMAND_LIST_END]

        response = await self._send("".join(f"{line}\n" for line in lines))
        return cast(Response, response)

    async def idle(self, *subsystems: str) -> None:
        """Put the server into idle mode; changes arrive as events."""
        await self.command(" ".join((IDLE, *subsystems)))
