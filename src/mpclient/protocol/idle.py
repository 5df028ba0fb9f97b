"""Tracking of the daemon's idle mode."""

from __future__ import annotations

import logging
from enum import Enum

from .messages import IDLE, NOIDLE, command_verb

_logger = logging.getLogger("mpclient.client")


class IdleState(str, Enum):
    ACTIVE = "active"
    IDLE = "idle"


class IdleAction(str, Enum):
    """What the client must do to send a command in the current state."""

    SEND = "send"
    ENTER = "enter"
    SKIP = "skip"
    CANCEL_FIRST = "cancel_first"


class IdleStateMachine:
    """Decides how commands are written while the daemon may be idling.

    While idle, the daemon answers nothing until a subsystem changes or it
    receives ``noidle``. Any other command must be preceded by ``noidle``.
    """

    def __init__(self) -> None:
        self.state = IdleState.ACTIVE

    @property
    def is_idle(self) -> bool:
        return self.state is IdleState.IDLE

    def decide(self, command: str) -> IdleAction:
        verb = command_verb(command)

        if verb == IDLE:
            return IdleAction.SKIP if self.is_idle else IdleAction.ENTER

        if verb == NOIDLE:
            # noidle outside idle mode gets no reply at all
            return IdleAction.SEND if self.is_idle else IdleAction.SKIP

        return IdleAction.CANCEL_FIRST if self.is_idle else IdleAction.SEND

    def enter(self) -> None:
        if not self.is_idle:
            _logger.debug("Entering idle mode")
        self.state = IdleState.IDLE

    def leave(self) -> None:
        if self.is_idle:
            _logger.debug("Leaving idle mode")
        self.state = IdleState.ACTIVE

    def wake(self) -> None:
        """Inbound data arrived, so the daemon is no longer blocked in idle."""
        self.state = IdleState.ACTIVE

    def reset(self) -> None:
        self.state = IdleState.ACTIVE
