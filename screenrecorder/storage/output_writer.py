"""Single-consumer writer that persists a session's chunks to disk."""

import os
import queue
import logging
import threading
from pathlib import Path
from typing import Optional, BinaryIO

from ..errors import StorageUnavailable

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 256
DEFAULT_WRITE_BUFFER_BYTES = 1 * 1024 * 1024

# Queue sentinel that tells the writer no more chunks will arrive
_CLOSE = None


class OutputWriter:
    """Drains a bounded chunk queue into one output file on a dedicated thread.

    Producers call ``offer()`` which never blocks: a full queue drops the chunk
    and counts it. ``close()`` enqueues the close sentinel. Everything queued
    before it is still written, then the file is flushed, fsynced and closed
    and ``done`` is set.
    """

    def __init__(self,
                 output_path: str,
                 queue_size: int = DEFAULT_QUEUE_SIZE,
                 write_buffer_bytes: int = DEFAULT_WRITE_BUFFER_BYTES,
                 name: Optional[str] = None):
        """Initialize output writer.

        Args:
            output_path: File that receives the chunks (truncated on open)
            queue_size: Maximum number of chunks waiting to be written
            write_buffer_bytes: Size of the buffered file sink
            name: Thread name, defaults to one derived from the file name
        """
        if queue_size <= 0:
            raise ValueError("queue_size must be > 0")

        self.output_path = Path(output_path)
        self.write_buffer_bytes = write_buffer_bytes
        self.name = name or f"writer_{self.output_path.stem}"

        self.chunk_queue: "queue.Queue[Optional[bytes]]" = queue.Queue(maxsize=queue_size)
        self.done = threading.Event()

        self._file: Optional[BinaryIO] = None
        self._thread: Optional[threading.Thread] = None
        self._closed = False
        self._stats_lock = threading.Lock()

        # Statistics tracking
        self.chunks_written = 0
        self.bytes_written = 0
        self.dropped_chunks = 0
        self.error: Optional[OSError] = None

    def open(self) -> None:
        """Create or truncate the output file and start the writer thread.

        Raises:
            StorageUnavailable: If the file cannot be created
        """
        if self._thread is not None:
            raise RuntimeError(f"{self.name} already started")

        try:
            self._file = open(self.output_path, "wb", buffering=self.write_buffer_bytes)
        except OSError as e:
            logger.error(f"Failed to create output file {self.output_path}: {e}")
            raise StorageUnavailable(f"failed to create output: {e}") from e

        self._thread = threading.Thread(target=self._write_loop, daemon=True)
        self._thread.name = self.name
        self._thread.start()
        logger.debug(f"Writer {self.name} started for {self.output_path}")

    def offer(self, chunk: bytes) -> bool:
        """Enqueue a chunk without blocking.

        Returns:
            True if queued, False if the queue was full and the chunk dropped
        """
        try:
            self.chunk_queue.put_nowait(chunk)
            return True
        except queue.Full:
            with self._stats_lock:
                self.dropped_chunks += 1
                dropped = self.dropped_chunks
            logger.debug(f"Writer {self.name} queue full, dropped chunk "
                         f"({len(chunk)} bytes, {dropped} dropped so far)")
            return False

    def close(self) -> None:
        """Stop accepting chunks. Already queued chunks are still written."""
        if self._closed or self._thread is None:
            return
        self._closed = True
        # Blocks only while the queue is full; the writer is draining it.
        self.chunk_queue.put(_CLOSE)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the file has been flushed, synced and closed."""
        return self.done.wait(timeout)

    def _write_loop(self) -> None:
        """Writer thread main loop: FIFO drain until the close sentinel."""
        try:
            while True:
                chunk = self.chunk_queue.get()
                if chunk is _CLOSE:
                    break
                if self.error is not None:
                    continue
                try:
                    self._file.write(chunk)
                except OSError as e:
                    self.error = e
                    logger.error(f"Writer {self.name} failed writing to {self.output_path}: {e}")
                    continue
                with self._stats_lock:
                    self.chunks_written += 1
                    self.bytes_written += len(chunk)
        finally:
            self._finalize()

    def _finalize(self) -> None:
        try:
            self._file.flush()
            os.fsync(self._file.fileno())
        except OSError as e:
            if self.error is None:
                self.error = e
            logger.error(f"Writer {self.name} failed to sync {self.output_path}: {e}")
        finally:
            try:
                self._file.close()
            except OSError as e:
                if self.error is None:
                    self.error = e
                logger.error(f"Writer {self.name} failed to close {self.output_path}: {e}")
            self.done.set()
            logger.info(f"Writer {self.name} finished: {self.chunks_written} chunks, "
                        f"{self.bytes_written} bytes, {self.dropped_chunks} dropped")
