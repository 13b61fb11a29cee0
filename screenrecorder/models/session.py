"""Session-related data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Any


class SessionState(Enum):
    """Lifecycle state of a recording session."""
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


class AppendResult(Enum):
    """Outcome of a successful append.

    DROPPED is still a success for the producer: the chunk queue was full and
    the chunk was discarded instead of blocking the caller.
    """
    QUEUED = "queued"
    DROPPED = "dropped"
    IGNORED = "ignored"  # source is not persisted


@dataclass(frozen=True)
class SessionStatus:
    """Point-in-time snapshot of a recording session."""
    session_id: str
    state: SessionState
    start_time: datetime
    output_path: str
    chunks_written: int = 0
    bytes_written: int = 0
    dropped_chunks: int = 0
    has_connection: bool = False

    @property
    def is_recording(self) -> bool:
        return self.state is SessionState.RECORDING

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the snapshot for JSON responses."""
        return {
            "session_key": self.session_id,
            "state": self.state.value,
            "is_recording": self.is_recording,
            "start_time": self.start_time.isoformat(),
            "output_path": self.output_path,
            "chunks_written": self.chunks_written,
            "bytes_written": self.bytes_written,
            "dropped_chunks": self.dropped_chunks,
            "has_connection": self.has_connection,
        }
