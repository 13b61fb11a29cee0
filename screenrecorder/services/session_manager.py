"""Session manager: the registry of live recording sessions."""

import uuid
import logging
from typing import Any, Dict, Iterable, Optional

from ..config import ScreenRecorderConfig
from ..errors import CapacityExceeded, SessionNotFound, StorageUnavailable
from ..events.publisher import SessionEventPublisher
from ..models.session import AppendResult, SessionStatus
from ..storage.file_manager import FileManager
from ..storage.output_writer import DEFAULT_QUEUE_SIZE, DEFAULT_WRITE_BUFFER_BYTES
from ..utils.rwlock import ReadWriteLock
from .recording_session import RecordingSession, DEFAULT_PERSISTED_SOURCES
from .timeout_supervisor import TimeoutSupervisor

logger = logging.getLogger(__name__)


class SessionManager:
    """Creates, looks up and tears down recording sessions.

    The session map is guarded by a reader/writer lock: lookups share it,
    create/remove take it exclusively. Per-session state lives behind each
    session's own lock, and the registry lock is never held while a writer
    drains, so one slow session cannot stall the others.
    """

    def __init__(self,
                 output_dir: str,
                 max_sessions: int = 10,
                 session_timeout: float = 30 * 60,
                 queue_size: int = DEFAULT_QUEUE_SIZE,
                 write_buffer_bytes: int = DEFAULT_WRITE_BUFFER_BYTES,
                 persisted_sources: Iterable[str] = DEFAULT_PERSISTED_SOURCES,
                 publisher: Optional[SessionEventPublisher] = None):
        """Initialize session manager.

        Args:
            output_dir: Directory that receives the recording files
            max_sessions: Maximum number of concurrent sessions
            session_timeout: Maximum session lifetime in seconds
            queue_size: Per-session chunk queue bound
            write_buffer_bytes: Per-session file buffer size
            persisted_sources: Chunk sources written to disk; others are accepted and ignored
            publisher: Lifecycle event publisher, a default one if omitted
        """
        if max_sessions <= 0:
            raise ValueError("max_sessions must be > 0")

        self.max_sessions = max_sessions
        self.session_timeout = session_timeout
        self.queue_size = queue_size
        self.write_buffer_bytes = write_buffer_bytes
        self.persisted_sources = tuple(persisted_sources)
        self.file_manager = FileManager(output_dir)
        self.publisher = publisher or SessionEventPublisher()

        self._sessions: Dict[str, RecordingSession] = {}
        self._lock = ReadWriteLock()
        self.timeouts = TimeoutSupervisor(session_timeout, self.evict)
        self._closed = False

        logger.info(f"SessionManager initialized: output_dir={output_dir}, "
                    f"max_sessions={max_sessions}, session_timeout={session_timeout}s")

    @classmethod
    def from_config(cls,
                    config: ScreenRecorderConfig,
                    publisher: Optional[SessionEventPublisher] = None) -> "SessionManager":
        """Build a manager from application configuration."""
        return cls(
            output_dir=config.get_upload_folder(),
            max_sessions=config.get_max_sessions(),
            session_timeout=config.get_session_timeout_seconds(),
            queue_size=config.get_queue_size(),
            write_buffer_bytes=config.get_write_buffer_bytes(),
            persisted_sources=config.get_persisted_sources(),
            publisher=publisher,
        )

    def create(self) -> str:
        """Register a new IDLE session and arm its lifetime timer.

        Returns:
            New session ID

        Raises:
            CapacityExceeded: If max_sessions sessions already exist
            StorageUnavailable: If the output directory cannot be created
        """
        with self._lock.write_locked():
            if self._closed:
                raise RuntimeError("SessionManager has been shut down")
            if len(self._sessions) >= self.max_sessions:
                logger.warning(f"Rejecting new session: {len(self._sessions)}/{self.max_sessions} in use")
                raise CapacityExceeded("maximum number of sessions reached")

            session_id = str(uuid.uuid4())
            output_path = self.file_manager.get_recording_path(session_id)
            self.file_manager.ensure_directory(output_path)

            self._sessions[session_id] = RecordingSession(
                session_id=session_id,
                output_path=str(output_path),
                queue_size=self.queue_size,
                write_buffer_bytes=self.write_buffer_bytes,
                persisted_sources=self.persisted_sources,
            )
            self.timeouts.arm(session_id)
            active = len(self._sessions)

        logger.info(f"Created new session: {session_id} ({active}/{self.max_sessions} active)")
        self.publisher.publish("created", session_id, output_path=str(output_path))
        return session_id

    def get(self, session_id: str) -> RecordingSession:
        """Look up a session.

        Raises:
            SessionNotFound: If the session does not exist
        """
        with self._lock.read_locked():
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(f"session not found: {session_id}")
        return session

    def status(self, session_id: str) -> SessionStatus:
        """Snapshot of a session's state and counters."""
        return self.get(session_id).status()

    def path(self, session_id: str) -> str:
        """Get the output file path of a session."""
        return self.get(session_id).output_path

    def attach_connection(self, session_id: str, handle: Any) -> None:
        """Store the transport connection handle on a session."""
        self.get(session_id).attach_connection(handle)

    def start(self, session_id: str) -> None:
        """Start recording a session (IDLE -> RECORDING)."""
        session = self.get(session_id)
        session.start()
        self.publisher.publish("started", session_id, output_path=session.output_path)

    def append(self, session_id: str, payload: bytes, source: str = "screen") -> AppendResult:
        """Append a chunk to a recording session. Never blocks on the writer."""
        return self.get(session_id).append(payload, source)

    def stop(self, session_id: str) -> None:
        """Stop recording and block until the output file is final."""
        session = self.get(session_id)
        if session.stop():
            self._publish_stopped(session)

    def remove(self, session_id: str) -> None:
        """Stop a session if needed, close its connection and unregister it.

        The entry leaves the registry before the writer barrier runs, so
        lookups report SessionNotFound and its capacity slot is reusable
        while the output file is still being flushed. The call itself
        returns only after the file is final and the connection closed.

        Raises:
            SessionNotFound: If the session does not exist (e.g. already removed)
        """
        self._remove(session_id, reason="removed")

    delete = remove

    def evict(self, session_id: str) -> bool:
        """Forcibly remove a session whose lifetime expired.

        Returns:
            False if the session was already gone
        """
        try:
            self._remove(session_id, reason="evicted")
        except SessionNotFound:
            logger.debug(f"Session {session_id} already removed before its timeout fired")
            return False
        return True

    def _remove(self, session_id: str, reason: str) -> None:
        with self._lock.write_locked():
            session = self._sessions.pop(session_id, None)
            if session is None:
                raise SessionNotFound(f"session not found: {session_id}")
            self.timeouts.cancel(session_id)

        try:
            if session.retire():
                self._publish_stopped(session)
        except StorageUnavailable as e:
            logger.error(f"Session {session_id} output incomplete: {e}")

        connection = session.detach_connection()
        if connection is not None:
            try:
                connection.close()
            except Exception as e:
                logger.warning(f"Error closing connection for session {session_id}: {e}")

        logger.info(f"Session {session_id} {reason}")
        self.publisher.publish(reason, session_id, output_path=session.output_path)

    def _publish_stopped(self, session: RecordingSession) -> None:
        status = session.status()
        self.publisher.publish(
            "stopped",
            session.session_id,
            output_path=status.output_path,
            chunks_written=status.chunks_written,
            bytes_written=status.bytes_written,
            dropped_chunks=status.dropped_chunks,
        )

    def active_count(self) -> int:
        with self._lock.read_locked():
            return len(self._sessions)

    def shutdown(self) -> None:
        """Cancel all timers and remove every session, finalizing their files."""
        with self._lock.write_locked():
            already_closed = self._closed
            self._closed = True
            session_ids = list(self._sessions)
        if already_closed:
            return

        self.timeouts.shutdown()
        for session_id in session_ids:
            try:
                self._remove(session_id, reason="removed")
            except SessionNotFound:
                pass
        logger.info(f"SessionManager shut down, removed {len(session_ids)} sessions")
