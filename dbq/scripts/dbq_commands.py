"""Management commands for queues.

Usage:
    flask dbq create orders
    flask dbq push orders '{"sku": 1}' --delay 30
    flask dbq pull orders --limit 10 --dry-run
    flask dbq get orders 1742321
    flask dbq clear orders
    flask dbq drop orders
    flask dbq issue-token worker-1 --expires-hours 720
"""

from __future__ import annotations

import json
from datetime import timedelta
from functools import wraps

import click
from flask import current_app
from flask.cli import with_appcontext
from flask_jwt_extended import create_access_token

from dbq.core import DbqError, Message
from dbq.core.messages import utcnow


def _queue_command(fn):
    """Report queue errors on stderr with a non-zero exit status."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except DbqError as exc:
            raise click.ClickException(f"{exc.code}: {exc}") from exc

    return wrapper


def _message_json(msg: Message) -> str:
    return json.dumps(
        {
            "id": msg.id,
            "data": msg.data.decode("utf-8", errors="replace"),
            "status": str(msg.status),
            "terminal": msg.status.is_terminal,
            "ret_code": msg.ret_code,
            "schedule_at": msg.schedule_at.isoformat() if msg.schedule_at else None,
            "updated_at": msg.updated_at.isoformat() if msg.updated_at else None,
        },
        ensure_ascii=False,
    )


@click.group("dbq")
def dbq_cli():
    """Manage dbq queues."""


@dbq_cli.command("create")
@click.argument("name")
@with_appcontext
@_queue_command
def create_command(name: str):
    """Create a queue (no-op if it exists)."""
    current_app.extensions["dbq.queues"].create(name)
    click.echo(f"Queue {name} created")


@dbq_cli.command("drop")
@click.argument("name")
@click.confirmation_option(prompt="Drop the queue and every message in it?")
@with_appcontext
@_queue_command
def drop_command(name: str):
    """Drop a queue and all of its messages."""
    current_app.extensions["dbq.queues"].drop(name)
    click.echo(f"Queue {name} dropped")


@dbq_cli.command("clear")
@click.argument("name")
@click.confirmation_option(prompt="Delete every message in the queue?")
@with_appcontext
@_queue_command
def clear_command(name: str):
    """Reset a queue to empty."""
    current_app.extensions["dbq.queues"].clear(name)
    click.echo(f"Queue {name} cleared")


@dbq_cli.command("exists")
@click.argument("name")
@with_appcontext
@_queue_command
def exists_command(name: str):
    """Exit 0 if the queue exists, 1 otherwise."""
    found = current_app.extensions["dbq.queues"].exists(name)
    click.echo("yes" if found else "no")
    if not found:
        raise SystemExit(1)


@dbq_cli.command("push")
@click.argument("name")
@click.argument("data")
@click.option("--delay", type=float, default=None, help="Seconds before the message becomes due")
@with_appcontext
@_queue_command
def push_command(name: str, data: str, delay: float | None):
    """Push one message with a generated id."""
    message = Message(
        id=current_app.extensions["dbq.ids"].generate(),
        data=data.encode("utf-8"),
        schedule_at=utcnow() + timedelta(seconds=delay) if delay else None,
    )
    current_app.extensions["dbq.messages"].push(name, [message])
    click.echo(message.id)


@dbq_cli.command("pull")
@click.argument("name")
@click.option("--limit", "-n", type=click.IntRange(min=1), default=1, show_default=True)
@click.option("--dry-run", is_flag=True, help="Peek without dispatching")
@with_appcontext
@_queue_command
def pull_command(name: str, limit: int, dry_run: bool):
    """Pull due messages, one JSON document per line."""
    for message in current_app.extensions["dbq.messages"].pull(name, limit, dry_run=dry_run):
        click.echo(_message_json(message))


@dbq_cli.command("get")
@click.argument("name")
@click.argument("message_id", type=int)
@with_appcontext
@_queue_command
def get_command(name: str, message_id: int):
    """Show one message."""
    click.echo(_message_json(current_app.extensions["dbq.messages"].get(name, message_id)))


@dbq_cli.command("issue-token")
@click.argument("subject")
@click.option("--expires-hours", type=int, default=None, help="Defaults to JWT_ACCESS_TOKEN_EXPIRES")
@with_appcontext
def issue_token_command(subject: str, expires_hours: int | None):
    """Mint a bearer token for API clients."""
    expires = timedelta(hours=expires_hours) if expires_hours else None
    click.echo(create_access_token(identity=subject, expires_delta=expires))


def register_commands(app):
    """Register CLI commands with the app."""
    app.cli.add_command(dbq_cli)
