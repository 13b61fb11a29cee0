"""Integration tests for concurrent recording workflows."""

import threading
import pytest
from pathlib import Path
from unittest.mock import Mock

from screenrecorder.errors import CapacityExceeded, NotRecording, SessionNotFound
from screenrecorder.models.session import AppendResult
from screenrecorder.services.session_manager import SessionManager


CHUNK_LEN = 8


def _chunk(producer: int, seq: int) -> bytes:
    chunk = f"{producer:02d}-{seq:04d};".encode()
    assert len(chunk) == CHUNK_LEN
    return chunk


@pytest.mark.integration
class TestRecordingWorkflow:
    """Integration tests for the session manager under concurrent load."""

    def test_concurrent_producers_single_session(self, recordings_dir, publisher):
        """Every queued chunk is written whole, once, in each producer's order."""
        producers, per_producer = 8, 200
        mgr = SessionManager(str(recordings_dir), queue_size=producers * per_producer,
                             publisher=publisher)
        try:
            s1 = mgr.create()
            mgr.start(s1)
            start = threading.Barrier(producers, timeout=5.0)
            results = {}

            def produce(producer):
                start.wait()
                results[producer] = [mgr.append(s1, _chunk(producer, seq))
                                     for seq in range(per_producer)]

            threads = [threading.Thread(target=produce, args=(p,)) for p in range(producers)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=10.0)

            mgr.stop(s1)
            data = Path(mgr.path(s1)).read_bytes()
        finally:
            mgr.shutdown()

        assert all(r is AppendResult.QUEUED for rs in results.values() for r in rs)
        assert len(data) == producers * per_producer * CHUNK_LEN

        chunks = [data[i:i + CHUNK_LEN] for i in range(0, len(data), CHUNK_LEN)]
        for producer in range(producers):
            own = [c for c in chunks if c.startswith(f"{producer:02d}-".encode())]
            assert own == [_chunk(producer, seq) for seq in range(per_producer)]

    def test_sessions_are_isolated(self, recordings_dir, publisher):
        mgr = SessionManager(str(recordings_dir), max_sessions=4, publisher=publisher)
        try:
            ids = [mgr.create() for _ in range(4)]
            for session_id in ids:
                mgr.start(session_id)

            def produce(index, session_id):
                for seq in range(50):
                    mgr.append(session_id, _chunk(index, seq))

            threads = [threading.Thread(target=produce, args=(i, s)) for i, s in enumerate(ids)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=10.0)

            for index, session_id in enumerate(ids):
                mgr.stop(session_id)
                expected = b"".join(_chunk(index, seq) for seq in range(50))
                assert Path(mgr.path(session_id)).read_bytes() == expected
        finally:
            mgr.shutdown()

    def test_concurrent_create_respects_capacity(self, recordings_dir, publisher):
        mgr = SessionManager(str(recordings_dir), max_sessions=5, publisher=publisher)
        created, rejected = [], []
        lock = threading.Lock()
        start = threading.Barrier(20, timeout=5.0)

        def create():
            start.wait()
            try:
                session_id = mgr.create()
            except CapacityExceeded:
                with lock:
                    rejected.append(1)
            else:
                with lock:
                    created.append(session_id)

        threads = [threading.Thread(target=create) for _ in range(20)]
        try:
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=10.0)

            assert len(created) == 5
            assert len(rejected) == 15
            assert mgr.active_count() == 5
        finally:
            mgr.shutdown()

    def test_producers_racing_stop(self, recordings_dir, publisher):
        """Chunks accepted before stop are all persisted; later ones are rejected."""
        mgr = SessionManager(str(recordings_dir), queue_size=10_000, publisher=publisher)
        try:
            s1 = mgr.create()
            mgr.start(s1)
            accepted = []
            accepted_lock = threading.Lock()
            stop_now = threading.Event()

            def produce(producer):
                seq = 0
                while True:
                    chunk = _chunk(producer, seq)
                    try:
                        result = mgr.append(s1, chunk)
                    except NotRecording:
                        return
                    if result is AppendResult.QUEUED:
                        with accepted_lock:
                            accepted.append(chunk)
                    seq += 1
                    if seq >= 9999:
                        stop_now.wait()
                        return

            threads = [threading.Thread(target=produce, args=(p,)) for p in range(4)]
            for t in threads:
                t.start()
            threading.Event().wait(0.05)
            mgr.stop(s1)
            stop_now.set()
            for t in threads:
                t.join(timeout=10.0)

            data = Path(mgr.path(s1)).read_bytes()
        finally:
            mgr.shutdown()

        assert len(data) == len(accepted) * CHUNK_LEN
        written = {data[i:i + CHUNK_LEN] for i in range(0, len(data), CHUNK_LEN)}
        assert written == set(accepted)

    def test_eviction_while_status_polling(self, recordings_dir, publisher, wait_until):
        """Readers see the session or SessionNotFound, never a half-removed entry."""
        mgr = SessionManager(str(recordings_dir), session_timeout=0.2, publisher=publisher)
        errors = []
        try:
            s1 = mgr.create()
            mgr.start(s1)
            connection = Mock()
            mgr.attach_connection(s1, connection)
            done = threading.Event()

            def poll():
                while not done.is_set():
                    try:
                        mgr.status(s1)
                    except SessionNotFound:
                        return
                    except Exception as e:
                        errors.append(e)
                        return

            poller = threading.Thread(target=poll)
            poller.start()
            assert wait_until(lambda: connection.close.called)
            done.set()
            poller.join(timeout=5.0)
        finally:
            mgr.shutdown()

        assert errors == []
