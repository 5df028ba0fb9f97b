"""FIFO matching of response frames to the requests that caused them."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable

from .errors import CommandError
from .messages import Response

_logger = logging.getLogger("mpclient.client")


def _ignore(_: object) -> None:
    pass


@dataclass(frozen=True)
class PendingRequest:
    """Continuations for one command awaiting its response."""

    on_success: Callable[[Response], None]
    on_failure: Callable[[Response], None]
    on_abort: Callable[[BaseException], None]
    command: str = ""

    @classmethod
    def for_future(
        cls, future: asyncio.Future[Response | None], command: str = ""
    ) -> PendingRequest:
        """Settle ``future`` with the response, or with CommandError on ACK."""

        def succeed(response: Response) -> None:
            if not future.done():
                future.set_result(response)

        def fail(response: Response) -> None:
            if not future.done():
                future.set_exception(CommandError(response))

        def abort(exc: BaseException) -> None:
            if not future.done():
                future.set_exception(exc)

        return cls(on_success=succeed, on_failure=fail, on_abort=abort, command=command)

    @classmethod
    def discard(cls, command: str = "") -> PendingRequest:
        """A request whose response is read and thrown away."""
        return cls(on_success=_ignore, on_failure=_ignore, on_abort=_ignore, command=command)


class ResponseCorrelator:
    """Queue of pending requests, answered strictly in write order.

    Responses that arrive with nothing pending are handed to
    ``on_unsolicited``.
    """

    def __init__(self, on_unsolicited: Callable[[Response], None]):
        self._queue: deque[PendingRequest] = deque()
        self._on_unsolicited = on_unsolicited

    def __len__(self) -> int:
        return len(self._queue)

    def enqueue(self, pending: PendingRequest) -> None:
        self._queue.append(pending)

    def dispatch(self, response: Response) -> bool:
        """Resolve the oldest pending request; return False if none was pending."""
        if not self._queue:
            self._on_unsolicited(response)
            return False

        pending = self._queue.popleft()
        if response.ok:
            pending.on_success(response)
        else:
            _logger.debug("Command %r failed: %s", pending.command, response.status)
            pending.on_failure(response)
        return True

    def abort_all(self, exc: BaseException) -> int:
        """Fail every pending request with ``exc``; return how many there were."""
        count = 0
        while self._queue:
            self._queue.popleft().on_abort(exc)
            count += 1
        return count
