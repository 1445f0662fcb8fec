"""HTTP API exposing queue operations."""

from dbq.api.queue_api import queue_api_bp

__all__ = ["queue_api_bp"]
