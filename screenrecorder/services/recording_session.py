"""Per-session recording state machine."""

import queue
import logging
import threading
from datetime import datetime
from typing import Any, Callable, FrozenSet, Iterable, Optional

from ..errors import AlreadyRecording, NotRecording, InvalidChunk, StorageUnavailable
from ..models.session import SessionState, SessionStatus, AppendResult
from ..storage.output_writer import OutputWriter, DEFAULT_QUEUE_SIZE, DEFAULT_WRITE_BUFFER_BYTES

logger = logging.getLogger(__name__)

DEFAULT_PERSISTED_SOURCES = ("screen",)


class RecordingSession:
    """One recording lifecycle bound to one output file.

    IDLE -> RECORDING -> STOPPED. All mutable fields are guarded by the
    session's own lock; the registry lock is never needed to touch them.
    """

    def __init__(self,
                 session_id: str,
                 output_path: str,
                 queue_size: int = DEFAULT_QUEUE_SIZE,
                 write_buffer_bytes: int = DEFAULT_WRITE_BUFFER_BYTES,
                 persisted_sources: Iterable[str] = DEFAULT_PERSISTED_SOURCES,
                 writer_factory: Callable[..., OutputWriter] = OutputWriter):
        self.session_id = session_id
        self.output_path = str(output_path)
        self.start_time = datetime.now()
        self.queue_size = queue_size
        self.write_buffer_bytes = write_buffer_bytes
        self.persisted_sources: FrozenSet[str] = frozenset(persisted_sources)

        self.lock = threading.Lock()
        self._state = SessionState.IDLE
        self._writer: Optional[OutputWriter] = None
        self._writer_factory = writer_factory
        self._connection: Optional[Any] = None

    @property
    def state(self) -> SessionState:
        with self.lock:
            return self._state

    @property
    def is_recording(self) -> bool:
        return self.state is SessionState.RECORDING

    @property
    def chunk_queue(self) -> Optional["queue.Queue[Optional[bytes]]"]:
        """Chunk queue, None until the session has entered RECORDING."""
        with self.lock:
            return self._writer.chunk_queue if self._writer else None

    @property
    def writer_done(self) -> Optional[threading.Event]:
        """Writer completion signal, None until the session has entered RECORDING."""
        with self.lock:
            return self._writer.done if self._writer else None

    @property
    def connection(self) -> Optional[Any]:
        with self.lock:
            return self._connection

    def attach_connection(self, handle: Any) -> None:
        """Store a non-owning reference to the transport connection."""
        with self.lock:
            self._connection = handle
        logger.debug(f"Attached connection to session {self.session_id}")

    def detach_connection(self) -> Optional[Any]:
        with self.lock:
            handle, self._connection = self._connection, None
        return handle

    def start(self) -> None:
        """Truncate the output file and launch the writer.

        Raises:
            AlreadyRecording: If the session has been started before
            StorageUnavailable: If the output file cannot be created; the
                session stays IDLE so the caller may retry
        """
        with self.lock:
            if self._state is SessionState.RECORDING:
                raise AlreadyRecording("recording already in progress")
            if self._state is SessionState.STOPPED:
                raise AlreadyRecording("session already recorded; create a new session")

            writer = self._writer_factory(
                self.output_path,
                queue_size=self.queue_size,
                write_buffer_bytes=self.write_buffer_bytes,
                name=f"writer_{self.session_id[:8]}",
            )
            writer.open()
            self._writer = writer
            self._state = SessionState.RECORDING

        logger.info(f"Started recording for session {self.session_id} -> {self.output_path}")

    def append(self, payload: bytes, source: str = "screen") -> AppendResult:
        """Offer a chunk to the writer without blocking.

        A full queue drops the chunk and still reports success (as
        ``AppendResult.DROPPED``): producers must never wait on a slow disk.

        Raises:
            InvalidChunk: If the payload is empty
            NotRecording: If the session is not RECORDING
        """
        if not payload:
            raise InvalidChunk("empty chunk")

        with self.lock:
            if self._state is not SessionState.RECORDING:
                raise NotRecording("session not recording")
            if source not in self.persisted_sources:
                return AppendResult.IGNORED
            # enqueue under the lock so it cannot land after stop() closes the queue
            queued = self._writer.offer(bytes(payload))

        return AppendResult.QUEUED if queued else AppendResult.DROPPED

    def stop(self) -> bool:
        """Close the chunk queue and wait until the file is durably complete.

        Calling stop on an already stopped session waits on the same barrier.

        Returns:
            True if this call moved the session out of RECORDING

        Raises:
            NotRecording: If the session was never started
            StorageUnavailable: If the writer failed to persist the chunks
        """
        with self.lock:
            if self._state is SessionState.IDLE:
                raise NotRecording("session not recording")
            was_recording = self._state is SessionState.RECORDING
            self._state = SessionState.STOPPED
            writer = self._writer

        if writer is None:
            # retired while idle, nothing was ever written
            return False

        if was_recording:
            logger.info(f"Stopping recording for session {self.session_id}")
            writer.close()

        writer.wait()

        if was_recording:
            logger.info(f"Session {self.session_id} finalized: {writer.chunks_written} chunks, "
                        f"{writer.bytes_written} bytes, {writer.dropped_chunks} dropped")
        if writer.error is not None:
            raise StorageUnavailable(f"failed to persist recording: {writer.error}") from writer.error
        return was_recording

    def retire(self) -> bool:
        """Finish the session for removal.

        A recording session goes through the full stop barrier; an idle one
        is marked STOPPED so a stale reference can no longer start it.

        Returns:
            True if this call stopped an active recording
        """
        with self.lock:
            if self._state is SessionState.IDLE:
                self._state = SessionState.STOPPED
                return False
        return self.stop()

    def status(self) -> SessionStatus:
        """Take a consistent snapshot of the session."""
        with self.lock:
            writer = self._writer
            return SessionStatus(
                session_id=self.session_id,
                state=self._state,
                start_time=self.start_time,
                output_path=self.output_path,
                chunks_written=writer.chunks_written if writer else 0,
                bytes_written=writer.bytes_written if writer else 0,
                dropped_chunks=writer.dropped_chunks if writer else 0,
                has_connection=self._connection is not None,
            )
