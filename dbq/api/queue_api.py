"""Queue JSON API controllers (thin, schema-validated)."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from dbq.api.decorators import auth_required
from dbq.api.schemas import MessageUpdateRequest, PushParams, serialize_message
from dbq.core import Message, MessageStore, QueueManager


queue_api_bp = Blueprint("queue_api", __name__)


def _queues() -> QueueManager:
    return current_app.extensions["dbq.queues"]


def _messages() -> MessageStore:
    return current_app.extensions["dbq.messages"]


def _jsonable_errors(exc: ValidationError) -> list[dict]:
    errors = exc.errors()
    for err in errors:
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
    return errors


def _validation_error(exc: ValidationError):
    return jsonify({"ok": False, "error": "validation_error", "details": _jsonable_errors(exc)}), 400


def _pull_limit() -> int:
    default = current_app.config["PULL_DEFAULT_LIMIT"]
    try:
        limit = int(request.args.get("limit", default))
    except (TypeError, ValueError):
        limit = default
    if limit < 1:
        limit = default
    return min(limit, current_app.config["PULL_MAX_LIMIT"])


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").lower() in ("1", "true", "yes")


@queue_api_bp.post("/<name>")
@auth_required
def create_queue(name: str):
    _queues().create(name)
    return jsonify({"ok": True, "queue": name}), 201


@queue_api_bp.get("/<name>")
@auth_required
def queue_exists(name: str):
    return jsonify({"ok": True, "queue": name, "exists": _queues().exists(name)})


@queue_api_bp.delete("/<name>")
@auth_required
def drop_queue(name: str):
    _queues().drop(name)
    return jsonify({"ok": True})


@queue_api_bp.delete("/<name>/truncate")
@auth_required
def clear_queue(name: str):
    _queues().clear(name)
    return jsonify({"ok": True})


@queue_api_bp.post("/<name>/push")
@auth_required
def push_message(name: str):
    try:
        params = PushParams.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return _validation_error(exc)
    message = Message(
        id=current_app.extensions["dbq.ids"].generate(),
        data=request.get_data(),
        schedule_at=params.resolve_schedule_at(),
    )
    _messages().push(name, [message])
    return jsonify({"ok": True, "id": message.id}), 201


@queue_api_bp.get("/<name>/pull")
@auth_required
def pull_messages(name: str):
    messages = _messages().pull(name, _pull_limit(), dry_run=_flag("dry_run"))
    return jsonify({"ok": True, "messages": [serialize_message(m) for m in messages]})


@queue_api_bp.get("/<name>/msg/<int:message_id>")
@auth_required
def get_message(name: str, message_id: int):
    message = _messages().get(name, message_id)
    return jsonify({"ok": True, "message": serialize_message(message)})


@queue_api_bp.put("/<name>/msg/<int:message_id>")
@auth_required
def update_message(name: str, message_id: int):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"ok": False, "error": "validation_error", "details": "expected a JSON object"}), 400
    try:
        data = MessageUpdateRequest.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    _messages().update(name, data.to_update(message_id))
    return jsonify({"ok": True, "id": message_id})
