"""Shared concurrency helpers."""

from .rwlock import ReadWriteLock

__all__ = ["ReadWriteLock"]
