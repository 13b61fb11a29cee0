"""Data models for the screenrecorder service."""

from .session import SessionState, SessionStatus, AppendResult
from .events import SessionEvent

__all__ = [
    "SessionState",
    "SessionStatus",
    "AppendResult",
    "SessionEvent",
]
