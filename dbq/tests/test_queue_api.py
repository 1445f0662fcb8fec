"""Queue HTTP API tests.

Covers every route under /q:
- POST /q/<name> - create_queue
- GET /q/<name> - queue_exists
- DELETE /q/<name> - drop_queue
- DELETE /q/<name>/truncate - clear_queue
- POST /q/<name>/push - push_message
- GET /q/<name>/pull - pull_messages
- GET /q/<name>/msg/<id> - get_message
- PUT /q/<name>/msg/<id> - update_message
"""

from __future__ import annotations

import base64
from datetime import datetime

import pytest

pytestmark = pytest.mark.integration


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _push(client, queue, body=b"payload", **params):
    resp = client.post(f"/q/{queue}/push", data=body, query_string=params)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["id"]


# ==================== Queue Lifecycle ====================


def test_create_exists_drop_roundtrip(client):
    resp = client.post("/q/orders")
    assert resp.status_code == 201
    assert resp.get_json() == {"ok": True, "queue": "orders"}

    resp = client.get("/q/orders")
    assert resp.get_json()["exists"] is True

    resp = client.delete("/q/orders")
    assert resp.status_code == 200
    assert client.get("/q/orders").get_json()["exists"] is False


def test_create_is_idempotent(client, api_queue):
    msg_id = _push(client, api_queue)

    assert client.post(f"/q/{api_queue}").status_code == 201
    assert client.get(f"/q/{api_queue}/msg/{msg_id}").status_code == 200


def test_drop_missing_queue_succeeds(client):
    assert client.delete("/q/never_made").status_code == 200


def test_truncate_empties_queue(client, api_queue):
    _push(client, api_queue)
    _push(client, api_queue)

    resp = client.delete(f"/q/{api_queue}/truncate")

    assert resp.status_code == 200
    pulled = client.get(f"/q/{api_queue}/pull", query_string={"dry_run": "1"}).get_json()
    assert pulled["messages"] == []


def test_invalid_queue_name_is_bad_request(client):
    resp = client.post("/q/bad.name")
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["ok"] is False
    assert body["error"] == "invalid_argument"


# ==================== Push ====================


def test_push_returns_generated_id(client, api_queue):
    first = _push(client, api_queue, b"one")
    second = _push(client, api_queue, b"two")

    assert first > 0
    assert second > first


def test_push_stores_raw_body(client, api_queue):
    raw = b"\x00\x01binary\xff"
    msg_id = _push(client, api_queue, raw)

    message = client.get(f"/q/{api_queue}/msg/{msg_id}").get_json()["message"]

    assert base64.b64decode(message["data"]) == raw
    assert message["status"] == 1
    assert message["status_name"] == "pending"
    assert message["terminal"] is False


def test_push_with_delay_is_not_due(client, api_queue):
    _push(client, api_queue, delay="3600")

    resp = client.get(f"/q/{api_queue}/pull")

    assert resp.get_json()["messages"] == []


def test_push_with_schedule_at(client, api_queue):
    msg_id = _push(client, api_queue, schedule_at="2031-05-01T12:00:00+02:00")

    message = client.get(f"/q/{api_queue}/msg/{msg_id}").get_json()["message"]

    assert datetime.fromisoformat(message["schedule_at"]) == datetime(2031, 5, 1, 10, 0)


@pytest.mark.parametrize(
    "params",
    [
        {"delay": "-5"},
        {"delay": "soon"},
        {"delay": "10", "schedule_at": "2031-01-01T00:00:00Z"},
    ],
)
def test_push_rejects_bad_schedule(client, api_queue, params):
    resp = client.post(f"/q/{api_queue}/push", data=b"x", query_string=params)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"


def test_push_to_missing_queue_is_not_found(client):
    resp = client.post("/q/missing/push", data=b"x")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"


# ==================== Pull ====================


def test_pull_dispatches_messages(client, api_queue):
    ids = [_push(client, api_queue, f"m{i}".encode()) for i in range(3)]

    resp = client.get(f"/q/{api_queue}/pull", query_string={"limit": 2})

    assert resp.status_code == 200
    messages = resp.get_json()["messages"]
    assert [m["id"] for m in messages] == ids[:2]
    assert {m["status_name"] for m in messages} == {"dispatched"}
    remaining = client.get(f"/q/{api_queue}/msg/{ids[2]}").get_json()["message"]
    assert remaining["status_name"] == "pending"


def test_pull_dry_run_leaves_messages_pending(client, api_queue):
    msg_id = _push(client, api_queue)

    for _ in range(2):
        messages = client.get(f"/q/{api_queue}/pull", query_string={"dry_run": "true"}).get_json()["messages"]
        assert [m["id"] for m in messages] == [msg_id]
        assert messages[0]["status"] == 1

    assert client.get(f"/q/{api_queue}/msg/{msg_id}").get_json()["message"]["status"] == 1


@pytest.mark.parametrize("limit", ["abc", "0", "-3"])
def test_pull_falls_back_to_default_limit(client, api_queue, limit):
    for _ in range(3):
        _push(client, api_queue)

    resp = client.get(f"/q/{api_queue}/pull", query_string={"limit": limit})

    assert resp.status_code == 200
    assert len(resp.get_json()["messages"]) == 3


def test_pull_limit_is_capped(app, client, api_queue):
    app.config["PULL_MAX_LIMIT"] = 2
    for _ in range(4):
        _push(client, api_queue)

    resp = client.get(f"/q/{api_queue}/pull", query_string={"limit": 50})

    assert len(resp.get_json()["messages"]) == 2


def test_pull_missing_queue_is_not_found(client):
    resp = client.get("/q/missing/pull")
    assert resp.status_code == 404


# ==================== Get / Update ====================


def test_update_then_get(client, api_queue):
    msg_id = _push(client, api_queue)
    client.get(f"/q/{api_queue}/pull")

    resp = client.put(
        f"/q/{api_queue}/msg/{msg_id}",
        json={"status": "finished", "ret_code": 0, "result": _b64(b"done")},
    )

    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True, "id": msg_id}
    message = client.get(f"/q/{api_queue}/msg/{msg_id}").get_json()["message"]
    assert message["status"] == 5
    assert message["terminal"] is True
    assert message["ret_code"] == 0
    assert base64.b64decode(message["result"]) == b"done"
    assert message["progress"] is None


def test_update_accepts_numeric_status_and_ret_alias(client, api_queue):
    msg_id = _push(client, api_queue)

    resp = client.put(f"/q/{api_queue}/msg/{msg_id}", json={"status": 6, "ret": _b64(b"boom")})

    assert resp.status_code == 200
    message = client.get(f"/q/{api_queue}/msg/{msg_id}").get_json()["message"]
    assert message["status_name"] == "failed"
    assert base64.b64decode(message["result"]) == b"boom"


@pytest.mark.parametrize("unchanged", [0, "0"])
def test_update_zero_status_leaves_status(client, api_queue, unchanged):
    msg_id = _push(client, api_queue)

    resp = client.put(f"/q/{api_queue}/msg/{msg_id}", json={"status": unchanged, "progress": _b64(b"1/3")})

    assert resp.status_code == 200
    message = client.get(f"/q/{api_queue}/msg/{msg_id}").get_json()["message"]
    assert message["status_name"] == "pending"
    assert base64.b64decode(message["progress"]) == b"1/3"


@pytest.mark.parametrize(
    "payload",
    [
        {"status": "done"},
        {"status": 42},
        {"status": True},
        {"status": False},
        {"result": "not base64!!"},
        {"ret_code": "many"},
    ],
)
def test_update_validation_errors(client, api_queue, payload):
    msg_id = _push(client, api_queue)

    resp = client.put(f"/q/{api_queue}/msg/{msg_id}", json=payload)

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["ok"] is False
    assert body["error"] == "validation_error"


def test_update_requires_json_object(client, api_queue):
    msg_id = _push(client, api_queue)

    resp = client.put(f"/q/{api_queue}/msg/{msg_id}", json=[1, 2])

    assert resp.status_code == 400


def test_update_missing_message_is_not_found(client, api_queue):
    resp = client.put(f"/q/{api_queue}/msg/987654", json={"status": "running"})
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"


def test_get_missing_message_is_not_found(client, api_queue):
    resp = client.get(f"/q/{api_queue}/msg/987654")
    assert resp.status_code == 404


def test_non_numeric_message_id_is_not_found(client, api_queue):
    resp = client.get(f"/q/{api_queue}/msg/abc")
    assert resp.status_code == 404
    assert resp.get_json()["ok"] is False


# ==================== Misc ====================


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True}
