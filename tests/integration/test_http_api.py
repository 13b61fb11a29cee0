"""Integration tests for the HTTP API."""

import asyncio
import threading
import pytest
from pathlib import Path

from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from screenrecorder.api.http_api import build_app
from screenrecorder.services.session_manager import SessionManager


async def _start_client(app: web.Application) -> tuple[TestClient, TestServer]:
    server = TestServer(app)
    client = TestClient(server)
    await client.start_server()
    return client, server


def _run_with_client(manager: SessionManager, scenario) -> None:
    async def runner():
        client, server = await _start_client(build_app(manager))
        try:
            await scenario(client)
        finally:
            await client.close()
            await server.close()

    asyncio.run(runner())


@pytest.fixture
def http_manager(recordings_dir, publisher):
    return SessionManager(str(recordings_dir), max_sessions=2, publisher=publisher)


@pytest.mark.integration
class TestHttpApi:
    """Integration tests for the aiohttp application."""

    def test_health(self, http_manager):
        async def scenario(client):
            resp = await client.get("/health")
            assert resp.status == 200
            payload = await resp.json()
            assert payload["status"] == "healthy"
            assert payload["service"] == "screenrecorder"
            assert payload["active_sessions"] == 0
            assert payload["max_sessions"] == 2
            assert payload["storage"]["recording_files"] == 0
            assert payload["storage"]["total_size_bytes"] == 0

        _run_with_client(http_manager, scenario)

    def test_upload_stop_download(self, http_manager):
        async def scenario(client):
            resp = await client.post("/start-recording")
            assert resp.status == 200
            session_key = (await resp.json())["session_key"]

            for chunk in (b"AAA", b"BBB"):
                resp = await client.post(f"/upload-chunk/{session_key}/screen", data=chunk)
                assert resp.status == 200
                assert (await resp.json()) == {"status": "ok"}

            # webcam chunks are accepted but not persisted
            resp = await client.post(f"/upload-chunk/{session_key}/webcam", data=b"CAM")
            assert resp.status == 200

            resp = await client.post("/stop-recording", json={"session_key": session_key})
            assert resp.status == 200
            assert (await resp.json())["session_key"] == session_key

            resp = await client.get(f"/session/{session_key}/status")
            assert resp.status == 200
            status = await resp.json()
            assert status["state"] == "stopped"
            assert status["is_recording"] is False
            assert status["chunks_written"] == 2

            resp = await client.get(f"/download/{session_key}")
            assert resp.status == 200
            assert resp.headers["Content-Type"] == "video/webm"
            assert f"recording_{session_key}.webm" in resp.headers["Content-Disposition"]
            assert await resp.read() == b"AAABBB"

            resp = await client.get("/health")
            storage = (await resp.json())["storage"]
            assert storage["recording_files"] == 1
            assert storage["total_size_bytes"] == 6

        _run_with_client(http_manager, scenario)

    def test_upload_errors(self, http_manager):
        async def scenario(client):
            resp = await client.post("/upload-chunk/unknown/screen", data=b"x")
            assert resp.status == 404

            session_key = (await (await client.post("/start-recording")).json())["session_key"]

            resp = await client.post(f"/upload-chunk/{session_key}/microphone", data=b"x")
            assert resp.status == 400
            assert (await resp.json())["error"] == "invalid source"

            resp = await client.post(f"/upload-chunk/{session_key}/screen", data=b"")
            assert resp.status == 400

            await client.post("/stop-recording", json={"session_key": session_key})
            resp = await client.post(f"/upload-chunk/{session_key}/screen", data=b"late")
            assert resp.status == 409

        _run_with_client(http_manager, scenario)

    def test_stop_recording_validation(self, http_manager):
        async def scenario(client):
            resp = await client.post("/stop-recording", data=b"not json")
            assert resp.status == 400

            resp = await client.post("/stop-recording", json={})
            assert resp.status == 400

            resp = await client.post("/stop-recording", json={"session_key": "unknown"})
            assert resp.status == 404
            payload = await resp.json()
            assert payload["error"] == "Failed to stop recording"

        _run_with_client(http_manager, scenario)

    def test_capacity_and_delete(self, http_manager):
        async def scenario(client):
            keys = []
            for _ in range(2):
                resp = await client.post("/start-recording")
                assert resp.status == 200
                keys.append((await resp.json())["session_key"])

            resp = await client.post("/start-recording")
            assert resp.status == 503

            resp = await client.delete(f"/session/{keys[0]}")
            assert resp.status == 200

            resp = await client.delete(f"/session/{keys[0]}")
            assert resp.status == 404

            resp = await client.get(f"/session/{keys[0]}/status")
            assert resp.status == 404

            resp = await client.post("/start-recording")
            assert resp.status == 200

        _run_with_client(http_manager, scenario)

    def test_download_missing(self, http_manager):
        async def scenario(client):
            resp = await client.get("/download/unknown")
            assert resp.status == 404

        _run_with_client(http_manager, scenario)

    def test_download_before_start_has_no_file(self, http_manager):
        session_key = http_manager.create()

        async def scenario(client):
            resp = await client.get(f"/download/{session_key}")
            assert resp.status == 404
            assert (await resp.json())["error"] == "Recording file not found"

        _run_with_client(http_manager, scenario)

    def test_start_failure_releases_slot(self, temp_data_dir, publisher):
        upload_dir = Path(temp_data_dir) / "uploads"
        manager = SessionManager(str(upload_dir), max_sessions=1, publisher=publisher)
        upload_dir.mkdir()

        original_create = manager.create

        def create_with_blocked_output():
            session_id = original_create()
            Path(manager.path(session_id)).mkdir()
            return session_id

        manager.create = create_with_blocked_output

        async def scenario(client):
            resp = await client.post("/start-recording")
            assert resp.status == 500
            assert (await resp.json())["error"] == "Failed to start recording"
            assert manager.active_count() == 0

        _run_with_client(manager, scenario)

    def test_start_recording_runs_off_the_event_loop(self, http_manager):
        callers = {}
        original_create, original_start = http_manager.create, http_manager.start

        def create():
            callers["create"] = threading.current_thread()
            return original_create()

        def start(session_id):
            callers["start"] = threading.current_thread()
            original_start(session_id)

        http_manager.create = create
        http_manager.start = start

        async def scenario(client):
            resp = await client.post("/start-recording")
            assert resp.status == 200

        loop_thread = threading.current_thread()
        _run_with_client(http_manager, scenario)

        assert callers["create"] is not loop_thread
        assert callers["start"] is not loop_thread

    def test_cors_preflight(self, http_manager):
        async def scenario(client):
            resp = await client.options("/start-recording")
            assert resp.status == 204
            assert resp.headers["Access-Control-Allow-Origin"] == "*"

        _run_with_client(http_manager, scenario)

    def test_cleanup_shuts_down_manager(self, http_manager):
        paths = []

        async def scenario(client):
            resp = await client.post("/start-recording")
            session_key = (await resp.json())["session_key"]
            paths.append(Path(http_manager.path(session_key)))
            await client.post(f"/upload-chunk/{session_key}/screen", data=b"final")

        _run_with_client(http_manager, scenario)

        assert http_manager.active_count() == 0
        assert paths[0].read_bytes() == b"final"
