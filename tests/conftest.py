"""Pytest configuration and fixtures for screenrecorder tests."""

import pytest
import tempfile
import threading
import time
import uuid
import logging
from pathlib import Path

from screenrecorder.events.publisher import SessionEventPublisher
from screenrecorder.services.session_manager import SessionManager
from screenrecorder.storage.output_writer import OutputWriter


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: multi-component tests")


class GatedWriter(OutputWriter):
    """OutputWriter whose thread waits for ``gate`` before draining the queue."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gate = threading.Event()

    def _write_loop(self) -> None:
        self.gate.wait()
        super()._write_loop()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def recordings_dir(temp_data_dir):
    """Output directory that does not exist yet."""
    return Path(temp_data_dir) / "recordings"


@pytest.fixture
def publisher():
    """Publisher on a topic prefix private to the test."""
    return SessionEventPublisher(topic_prefix=f"test_{uuid.uuid4().hex}")


@pytest.fixture
def manager(recordings_dir, publisher):
    """Session manager with a long lifetime so timers never fire mid-test."""
    mgr = SessionManager(
        output_dir=str(recordings_dir),
        max_sessions=3,
        session_timeout=60.0,
        publisher=publisher,
    )
    yield mgr
    mgr.shutdown()


@pytest.fixture
def gated_writer_factory():
    """Factory for RecordingSession that records every GatedWriter it builds."""
    created = []

    def factory(*args, **kwargs):
        writer = GatedWriter(*args, **kwargs)
        created.append(writer)
        return writer

    factory.created = created
    return factory


@pytest.fixture
def wait_until():
    """Poll a predicate until it is true or the timeout expires."""
    def _wait(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait
