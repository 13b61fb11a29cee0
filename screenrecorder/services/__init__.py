"""Services layer: session registry, state machine and lifetime timers."""

from .recording_session import RecordingSession
from .session_manager import SessionManager
from .timeout_supervisor import TimeoutSupervisor

__all__ = [
    "RecordingSession",
    "SessionManager",
    "TimeoutSupervisor"
]
