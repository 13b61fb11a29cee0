"""Pub/sub publishing of session lifecycle events."""

from .publisher import SessionEventPublisher

__all__ = ["SessionEventPublisher"]
