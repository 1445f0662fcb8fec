"""Reusable decorators for API controllers."""

from __future__ import annotations

from functools import wraps
from typing import Callable, TypeVar

from flask import current_app, jsonify
from flask_jwt_extended import verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException

F = TypeVar("F", bound=Callable)


def auth_required(fn: F) -> F:
    """Require a valid bearer JWT when AUTH_REQUIRED is enabled."""

    @wraps(fn)
    def wrapper(*args, **kwargs):  # type: ignore[misc]
        if not current_app.config.get("AUTH_REQUIRED", False):
            return fn(*args, **kwargs)
        try:
            verify_jwt_in_request()
        except JWTExtendedException:
            return jsonify({"ok": False, "error": "unauthorized"}), 401
        return fn(*args, **kwargs)

    return wrapper  # type: ignore[return-value]
