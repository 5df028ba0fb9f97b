"""Line extraction and frame assembly for the inbound stream."""

from __future__ import annotations

from typing import Iterator

from .messages import Response, is_status_line, parse_response


class LineReader:
    """Splits a text stream into newline-terminated lines.

    A trailing partial line is kept until a later chunk completes it.
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last complete line."""
        return self._buffer

    def reset(self) -> None:
        self._buffer = ""

    def feed(self, chunk: str) -> Iterator[str]:
        """Add a chunk and iterate over every line it completes.

        The chunk is consumed in full before this returns, so the carry-over
        buffer is correct even if the caller stops iterating early.
        """
        data = self._buffer + chunk
        lines: list[str] = []

        start = 0
        end = data.find("\n", start)
        while end != -1:
            lines.append(data[start : end + 1])
            start = end + 1
            end = data.find("\n", start)

        self._buffer = data[start:]
        return iter(lines)


class FrameAssembler:
    """Collects body lines until a status line completes a response."""

    def __init__(self) -> None:
        self._body: list[str] = []

    @property
    def in_progress(self) -> bool:
        return bool(self._body)

    def reset(self) -> None:
        self._body = []

    def push(self, line: str) -> Response | None:
        """Add one line; return the parsed response once it is complete."""
        if not is_status_line(line):
            self._body.append(line)
            return None

        body = "".join(self._body)
        self._body = []
        return parse_response(body, line)
