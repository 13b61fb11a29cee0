"""HTTP endpoints that feed the session manager."""

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Any, Callable

from aiohttp import web

from ..errors import (
    RecorderError,
    CapacityExceeded,
    SessionNotFound,
    AlreadyRecording,
    NotRecording,
    InvalidChunk,
    StorageUnavailable,
)
from ..services.session_manager import SessionManager

logger = logging.getLogger(__name__)

SESSION_MANAGER_KEY: web.AppKey[SessionManager] = web.AppKey("session_manager", SessionManager)

UPLOAD_SOURCES = ("screen", "webcam")

ERROR_STATUS = {
    SessionNotFound: 404,
    CapacityExceeded: 503,
    AlreadyRecording: 409,
    NotRecording: 409,
    InvalidChunk: 400,
    StorageUnavailable: 500,
}


def _error_response(message: str, error: RecorderError) -> web.Response:
    status = 500
    for error_type, error_status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            status = error_status
            break
    return web.json_response({"error": message, "details": str(error)}, status=status)


async def _run_blocking(func: Callable[..., Any], *args: Any) -> Any:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func, *args)


@web.middleware
async def _cors_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        response = web.Response(status=204)
    else:
        response = await handler(request)

    response.headers.setdefault("Access-Control-Allow-Origin", "*")
    response.headers.setdefault("Access-Control-Allow-Methods", "GET, POST, PUT, DELETE, OPTIONS")
    response.headers.setdefault("Access-Control-Allow-Headers", "Content-Type, Authorization")
    return response


async def health(request: web.Request) -> web.Response:
    manager = request.app[SESSION_MANAGER_KEY]
    storage = await _run_blocking(manager.file_manager.get_storage_stats)
    return web.json_response({
        "status": "healthy",
        "service": "screenrecorder",
        "active_sessions": manager.active_count(),
        "max_sessions": manager.max_sessions,
        "storage": storage,
    })


async def start_recording(request: web.Request) -> web.Response:
    """Create a session and start recording it in one call."""
    manager = request.app[SESSION_MANAGER_KEY]
    try:
        session_id = await _run_blocking(manager.create)
    except RecorderError as e:
        return _error_response("Failed to create recording session", e)

    try:
        await _run_blocking(manager.start, session_id)
    except RecorderError as e:
        # don't leave an idle session holding a slot
        with contextlib.suppress(SessionNotFound):
            await _run_blocking(manager.remove, session_id)
        return _error_response("Failed to start recording", e)

    return web.json_response({
        "session_key": session_id,
        "message": "Recording session created and started successfully",
    })


async def stop_recording(request: web.Request) -> web.Response:
    manager = request.app[SESSION_MANAGER_KEY]
    try:
        payload = await request.json()
    except ValueError as e:
        return web.json_response({"error": "Invalid request format", "details": str(e)}, status=400)

    session_id = payload.get("session_key") if isinstance(payload, dict) else None
    if not session_id:
        return web.json_response({"error": "Invalid request format",
                                  "details": "session_key is required"}, status=400)

    try:
        await _run_blocking(manager.stop, session_id)
    except RecorderError as e:
        return _error_response("Failed to stop recording", e)

    return web.json_response({
        "message": "Recording stopped successfully",
        "session_key": session_id,
    })


async def upload_chunk(request: web.Request) -> web.Response:
    manager = request.app[SESSION_MANAGER_KEY]
    session_id = request.match_info["session_key"]
    source = request.match_info["source"]
    if source not in UPLOAD_SOURCES:
        return web.json_response({"error": "invalid source"}, status=400)

    data = await request.read()
    if not data:
        return web.json_response({"error": "invalid chunk"}, status=400)

    try:
        manager.append(session_id, data, source)
    except RecorderError as e:
        return _error_response(str(e), e)

    return web.json_response({"status": "ok"})


async def session_status(request: web.Request) -> web.Response:
    manager = request.app[SESSION_MANAGER_KEY]
    try:
        status = manager.status(request.match_info["session_key"])
    except SessionNotFound as e:
        return _error_response("Session not found", e)
    return web.json_response(status.to_dict())


async def delete_session(request: web.Request) -> web.Response:
    manager = request.app[SESSION_MANAGER_KEY]
    session_id = request.match_info["session_key"]
    try:
        await _run_blocking(manager.delete, session_id)
    except SessionNotFound as e:
        return _error_response("Session not found", e)
    return web.json_response({"message": "Session deleted", "session_key": session_id})


async def download_recording(request: web.Request) -> web.StreamResponse:
    manager = request.app[SESSION_MANAGER_KEY]
    try:
        recording_path = Path(manager.path(request.match_info["session_key"]))
    except SessionNotFound as e:
        return _error_response("Recording not found", e)

    if not recording_path.is_file():
        return web.json_response({"error": "Recording file not found"}, status=404)

    return web.FileResponse(recording_path, headers={
        "Content-Description": "File Transfer",
        "Content-Type": "video/webm",
        "Content-Disposition": f"inline; filename={recording_path.name}",
    })


def build_app(manager: SessionManager, shutdown_manager: bool = True) -> web.Application:
    """Build the HTTP application around a session manager.

    Args:
        manager: Session manager that backs every endpoint
        shutdown_manager: Shut the manager down when the app is cleaned up
    """
    app = web.Application(middlewares=[_cors_middleware])
    app[SESSION_MANAGER_KEY] = manager

    app.router.add_get("/health", health)
    app.router.add_post("/start-recording", start_recording)
    app.router.add_post("/stop-recording", stop_recording)
    app.router.add_post("/upload-chunk/{session_key}/{source}", upload_chunk)
    app.router.add_get("/download/{session_key}", download_recording)
    app.router.add_get("/session/{session_key}/status", session_status)
    app.router.add_delete("/session/{session_key}", delete_session)

    if shutdown_manager:
        async def _shutdown_manager(app: web.Application) -> None:
            await _run_blocking(app[SESSION_MANAGER_KEY].shutdown)

        app.on_cleanup.append(_shutdown_manager)

    return app
