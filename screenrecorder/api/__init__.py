"""HTTP layer for chunk uploads and session control."""

from .http_api import build_app, SESSION_MANAGER_KEY

__all__ = ["build_app", "SESSION_MANAGER_KEY"]
