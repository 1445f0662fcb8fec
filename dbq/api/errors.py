"""Map queue errors to HTTP responses."""

from __future__ import annotations

import logging

from flask import jsonify

from dbq.core.errors import (
    ConflictError,
    DbqError,
    InvalidArgumentError,
    NotFoundError,
    StorageError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (InvalidArgumentError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StorageError, 503),
)


def status_for(exc: DbqError) -> int:
    for cls, status in STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 500


def error_response(exc: DbqError):
    status = status_for(exc)
    if status >= 500:
        logger.error("Queue operation failed: %s", exc, exc_info=exc.__cause__ or exc)
    return jsonify({"ok": False, "error": exc.code, "message": str(exc)}), status
