"""Errors raised by the session manager.

All of them derive from RecorderError so the HTTP layer (or any other caller)
can translate them into a response in one place.
"""


class RecorderError(Exception):
    """Base class for session manager errors."""


class CapacityExceeded(RecorderError):
    """The registry already holds the maximum number of sessions."""


class SessionNotFound(RecorderError, KeyError):
    """No session is registered under the given identifier."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0]) if self.args else "session not found"


class AlreadyRecording(RecorderError):
    """The session has already been started."""


class NotRecording(RecorderError):
    """The session is not currently recording."""


class StorageUnavailable(RecorderError):
    """The output directory or file could not be created or written."""


class InvalidChunk(RecorderError, ValueError):
    """The chunk payload was empty."""
