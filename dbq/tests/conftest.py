import os
import uuid

import pytest

from dbq import create_app
from dbq.core import MessageStore, QueueManager, create_queue_engine
from dbq.extensions import db


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API)")
    config.addinivalue_line("markers", "slow: Slow running tests")


def _database_url(tmp_path) -> str:
    """Per-test SQLite file unless TEST_DATABASE_URL points at a shared server."""
    return os.environ.get("TEST_DATABASE_URL") or f"sqlite:///{tmp_path / 'dbq-test.db'}"


@pytest.fixture()
def engine(tmp_path):
    engine = create_queue_engine(_database_url(tmp_path))
    yield engine
    engine.dispose()


@pytest.fixture()
def queues(engine):
    return QueueManager(engine)


@pytest.fixture()
def store(engine):
    return MessageStore(engine)


@pytest.fixture()
def queue_name(queues):
    """A freshly created queue, dropped again after the test."""
    name = f"t_{uuid.uuid4().hex[:12]}"
    queues.create(name)
    yield name
    queues.drop(name)


@pytest.fixture()
def app(tmp_path):
    app = create_app("testing", overrides={"SQLALCHEMY_DATABASE_URI": _database_url(tmp_path)})
    yield app
    with app.app_context():
        db.engine.dispose()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def api_queue(app):
    name = f"api_{uuid.uuid4().hex[:12]}"
    app.extensions["dbq.queues"].create(name)
    yield name
    app.extensions["dbq.queues"].drop(name)
