"""dbq application factory and bootstrap."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from flask import Flask

from dbq.config import config_by_name, engine_options_from_uri
from dbq.core import MessageStore, QueueManager, configure_engine
from dbq.extensions import db, init_extensions
from dbq.ids import SnowflakeGenerator


def create_app(config_name: Optional[str] = None, overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """Create and configure the dbq Flask application."""
    env_name = (config_name or os.environ.get("APP_ENV") or "development").lower()
    project_root = Path(__file__).resolve().parent.parent
    instance_root = project_root / "instance"

    app = Flask(__name__, instance_path=str(instance_root), instance_relative_config=True)
    config_cls = config_by_name.get(env_name, config_by_name["development"])
    app.config.from_object(config_cls)
    if overrides:
        app.config.update(overrides)
        if "SQLALCHEMY_DATABASE_URI" in overrides and "SQLALCHEMY_ENGINE_OPTIONS" not in overrides:
            app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options_from_uri(overrides["SQLALCHEMY_DATABASE_URI"])

    # Normalize sqlite path to absolute to avoid "unable to open database file"
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if db_uri.startswith("sqlite:///") and db_uri != "sqlite:///:memory:":
        db_path = Path(db_uri.replace("sqlite:///", "", 1))
        if not db_path.is_absolute():
            db_path = project_root / db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{db_path}"

    _configure_logging(app)
    init_extensions(app)
    _attach_queue_engine(app)
    _register_blueprints(app)
    _register_error_handlers(app)

    @app.get("/health")
    def health():
        return {"ok": True}, 200

    from dbq.scripts.dbq_commands import register_commands

    register_commands(app)

    return app


def _configure_logging(app: Flask) -> None:
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    logging.getLogger("dbq").setLevel(level)


def _attach_queue_engine(app: Flask) -> None:
    """Build the queue components on top of the app's engine."""
    with app.app_context():
        engine = configure_engine(db.engine)
    app.extensions["dbq.queues"] = QueueManager(engine)
    app.extensions["dbq.messages"] = MessageStore(engine)
    app.extensions["dbq.ids"] = SnowflakeGenerator(app.config["NODE_ID"])


def _register_blueprints(app: Flask) -> None:
    from dbq.api.queue_api import queue_api_bp  # local import to avoid circulars

    app.register_blueprint(queue_api_bp, url_prefix="/q")


def _register_error_handlers(app: Flask) -> None:
    """JSON error responses."""
    from werkzeug.exceptions import HTTPException

    from dbq.api.errors import error_response
    from dbq.core.errors import DbqError

    @app.errorhandler(DbqError)
    def _queue_error(exc: DbqError):
        return error_response(exc)

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return {"ok": False, "error": exc.name.lower().replace(" ", "_"), "message": exc.description}, exc.code

    @app.errorhandler(Exception)
    def _generic_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        # In debug/testing, surface the exception message to speed up diagnosis
        if app.debug or app.testing:
            return {"ok": False, "error": "unexpected_error", "message": str(exc)}, 500
        return {"ok": False, "error": "unexpected_error"}, 500
