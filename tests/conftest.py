"""Pytest configuration and fixtures for mpclient tests."""

from __future__ import annotations

import asyncio
import socket
import struct
from pathlib import Path
from typing import AsyncIterator

import pytest
import pytest_asyncio

from mpclient.protocol.client import MPDClient


STATUS_LINES = [
    "foo000: bar",
    "foo001: bar",
    "foo002: bar",
    "foo003: bar",
    "foo004: bar",
]

MALFORMED_LINES = [
    "foo000: bar",
    "",
    "foo001:bar",
    "foo002: bar",
]


class MockMPDServer:
    """In-process stand-in for an MPD server.

    Answers from a fixed reply table, unknown commands get ``ACK``. Idle
    clients are answered only when ``notify`` is called or they send
    ``noidle``; ``close`` drops the connection without a reply and
    ``reset`` aborts it with a TCP reset.
    """

    def __init__(self, banner: str = "OK MPD 0.23.5\n"):
        self.banner = banner
        self.replies: dict[str, str] = {
            "play": "OK\n",
            "status": "\n".join(STATUS_LINES) + "\nOK\n",
            "statusfail": "\n".join(MALFORMED_LINES) + "\nOK\n",
            "repeated": "foo: bar\nfoo: baz\nfoo: qux\nOK\n",
        }
        self.received: list[str] = []
        self.connections = 0
        self.host = "127.0.0.1"
        self.port = 0
        self._server: asyncio.AbstractServer | None = None
        self._writers: set[asyncio.StreamWriter] = set()
        self._idlers: set[asyncio.StreamWriter] = set()

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle, self.host, 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def start_unix(self, path: Path) -> None:
        self._server = await asyncio.start_unix_server(self._handle, str(path))

    async def stop(self) -> None:
        for writer in list(self._writers):
            writer.close()
        if self._server:
            self._server.close()
            await self._server.wait_closed()

    async def wait_for_idle(self, timeout: float = 1.0) -> None:
        """Wait until a client has entered idle mode."""
        async def poll() -> None:
            while not self._idlers:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(poll(), timeout)

    async def wait_for_lines(self, count: int, timeout: float = 1.0) -> None:
        async def poll() -> None:
            while len(self.received) < count:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(poll(), timeout)

    async def notify(self, *subsystems: str) -> None:
        """Report changed subsystems to every idle client."""
        reply = "".join(f"changed: {name}\n" for name in subsystems) + "OK\n"
        for writer in list(self._idlers):
            writer.write(reply.encode())
            await writer.drain()
        self._idlers.clear()

    def _list_reply(self, commands: list[str], list_ok: bool) -> str:
        reply = ""
        for index, command in enumerate(commands):
            if command not in self.replies:
                return reply + f'ACK [5@{index}] {{{command}}} unknown command "{command}"\n'
            if list_ok:
                reply += "list_OK\n"
        return reply + "OK\n"

    def _reset(self, writer: asyncio.StreamWriter) -> None:
        sock = writer.get_extra_info("socket")
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
        writer.transport.abort()

    async def _handle(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self.connections += 1
        self._writers.add(writer)
        writer.write(self.banner.encode())
        await writer.drain()

        command_list: list[str] | None = None
        list_ok = False

        try:
            while True:
                raw = await reader.readline()
                if not raw:
                    break

                line = raw.decode()
                self.received.append(line)
                command = line.rstrip("\n")
                verb = command.split(" ", 1)[0]

                if command_list is not None:
                    if command == "command_list_end":
                        writer.write(self._list_reply(command_list, list_ok).encode())
                        command_list = None
                    else:
                        command_list.append(command)
                elif command in ("command_list_begin", "command_list_ok_begin"):
                    command_list = []
                    list_ok = command == "command_list_ok_begin"
                elif verb == "idle":
                    self._idlers.add(writer)
                elif command == "noidle":
                    if writer in self._idlers:
                        self._idlers.discard(writer)
                        writer.write(b"OK\n")
                elif command == "close":
                    break
                elif command == "reset":
                    self._reset(writer)
                    break
                else:
                    writer.write(self.replies.get(command, "ACK\n").encode())

                await writer.drain()
        except ConnectionError:
            pass
        finally:
            self._idlers.discard(writer)
            self._writers.discard(writer)
            writer.close()


@pytest_asyncio.fixture
async def mpd_server() -> AsyncIterator[MockMPDServer]:
    """A running mock server on a free TCP port."""
    server = MockMPDServer()
    await server.start()
    yield server
    await server.stop()


@pytest_asyncio.fixture
async def client(mpd_server: MockMPDServer) -> AsyncIterator[MPDClient]:
    """A client connected to the mock server."""
    mpc = MPDClient(host=mpd_server.host, port=mpd_server.port)
    await mpc.connect()
    yield mpc
    await mpc.disconnect()


@pytest.fixture
def socket_path(tmp_path: Path) -> Path:
    return tmp_path / "mpd.sock"
