"""Maximum-lifetime timers for recording sessions."""

import logging
import threading
from typing import Callable, Dict

logger = logging.getLogger(__name__)


class TimeoutSupervisor:
    """Arms one eviction timer per session.

    The timer is not renewed by activity: a session is evicted
    ``timeout_seconds`` after it was armed whatever its state.
    """

    def __init__(self, timeout_seconds: float, on_expire: Callable[[str], None]):
        """Initialize timeout supervisor.

        Args:
            timeout_seconds: Maximum session lifetime
            on_expire: Called with the session id from the timer thread
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self.timeout_seconds = timeout_seconds
        self.on_expire = on_expire
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()
        self._shutdown = False

    def arm(self, session_id: str) -> None:
        """Start the lifetime timer for a session."""
        timer = threading.Timer(self.timeout_seconds, self._expire, args=(session_id,))
        timer.daemon = True
        timer.name = f"timeout_{session_id[:8]}"
        with self._lock:
            if self._shutdown:
                logger.debug(f"Supervisor shut down, not arming timer for {session_id}")
                return
            previous = self._timers.pop(session_id, None)
            self._timers[session_id] = timer
        if previous is not None:
            previous.cancel()
        timer.start()
        logger.debug(f"Armed {self.timeout_seconds}s timeout for session {session_id}")

    def cancel(self, session_id: str) -> bool:
        """Cancel a session's timer.

        Returns:
            True if a pending timer was cancelled
        """
        with self._lock:
            timer = self._timers.pop(session_id, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def is_armed(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._timers

    def pending_count(self) -> int:
        with self._lock:
            return len(self._timers)

    def shutdown(self) -> None:
        """Cancel every pending timer and refuse new ones."""
        with self._lock:
            self._shutdown = True
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        logger.info(f"TimeoutSupervisor shut down, cancelled {len(timers)} timers")

    def _expire(self, session_id: str) -> None:
        with self._lock:
            timer = self._timers.get(session_id)
            if timer is None or timer is not threading.current_thread():
                # cancelled or re-armed after this timer fired
                return
            del self._timers[session_id]

        logger.info(f"Session {session_id} reached its {self.timeout_seconds}s lifetime")
        try:
            self.on_expire(session_id)
        except Exception as e:
            logger.error(f"Error evicting session {session_id}: {e}", exc_info=True)
