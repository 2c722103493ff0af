"""
Error Hierarchy

Every failure the move orchestration core can raise derives from ConnectFourError,
so the game session can catch them in one place.

- IllegalMove: a full (or out of range) column reached the board. Internal defect.
- ProtocolViolation: a solver message that cannot belong to the current ply. Discarded.
- ChannelFailure: the solver channel is unusable. Fatal to the session, reset required.
- SelectorPrecondition: a computer move was requested with no evaluation. Internal defect.
- VisualFailure: the visual layer failed while showing solver output. Fatal to the session.
"""

from typing import Any, Dict, Optional


class ConnectFourError(Exception):
    """Base exception for the orchestration core."""
    code: str = "CONNECT_FOUR_ERROR"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            details = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({details})"
        return f"[{self.code}] {self.message}"


class IllegalMove(ConnectFourError):
    code = "ILLEGAL_MOVE"


class ProtocolViolation(ConnectFourError):
    code = "PROTOCOL_VIOLATION"


class ChannelFailure(ConnectFourError):
    code = "CHANNEL_FAILURE"


class SelectorPrecondition(ConnectFourError):
    code = "SELECTOR_PRECONDITION"


class VisualFailure(ConnectFourError):
    code = "VISUAL_FAILURE"
