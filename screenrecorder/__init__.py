"""Chunked media recording server: session registry, writers and HTTP API."""

from .errors import (
    RecorderError,
    CapacityExceeded,
    SessionNotFound,
    AlreadyRecording,
    NotRecording,
    StorageUnavailable,
    InvalidChunk,
)
from .models import SessionState, SessionStatus, AppendResult
from .services import SessionManager, RecordingSession

__all__ = [
    "RecorderError",
    "CapacityExceeded",
    "SessionNotFound",
    "AlreadyRecording",
    "NotRecording",
    "StorageUnavailable",
    "InvalidChunk",
    "SessionState",
    "SessionStatus",
    "AppendResult",
    "SessionManager",
    "RecordingSession",
]
