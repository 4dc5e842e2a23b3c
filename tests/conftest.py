# tests/conftest.py
# -*- coding: utf-8 -*-
import os
import uuid
import tempfile

import pytest


def _set_sqlite_pragmas(dbapi_conn, _conn_record):
    # sqlite3 only
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=30000")
    cursor.close()


# =====================================================================================
# Unit test environment (no external services)
# =====================================================================================
@pytest.fixture(autouse=True, scope="session")
def _testing_env():
    os.environ["APP_ENV"] = "testing"
    os.environ["FLASK_ENV"] = "testing"
    os.environ.setdefault("SECRET_KEY", "testing-secret")
    yield


# =====================================================================================
# Flask app on a temporary SQLite file, schema created once per session
# =====================================================================================
@pytest.fixture(scope="session")
def app(_testing_env):
    from sqlalchemy import event
    from config import TestingConfig
    from datavista_app import create_app
    from datavista_app.extensions import db

    fd, db_path = tempfile.mkstemp(prefix="datavista_test_", suffix=".sqlite")
    os.close(fd)

    app = create_app(TestingConfig, overrides={
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}?check_same_thread=0&timeout=30",
        "SECRET_KEY": "testing-secret",
    })

    with app.app_context():
        event.listen(db.engine, "connect", _set_sqlite_pragmas)
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.engine.dispose()
    try:
        os.remove(db_path)
    except OSError:
        pass


# =====================================================================================
# Client and per-test DB session, no manual transaction
# =====================================================================================
@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    from datavista_app.extensions import db
    with app.app_context():
        try:
            yield db.session
        finally:
            db.session.rollback()
            db.session.close()


# =====================================================================================
# External services mocked: Gemini SDK and Google token verification (no network)
# =====================================================================================
class OfflineGenaiClient:
    def __init__(self, *a, **k):
        self.models = self

    def generate_content(self, **kwargs):
        raise ConnectionError("network disabled in tests")


def _offline_verifier(*a, **k):
    raise ValueError("network disabled in tests")


@pytest.fixture(autouse=True)
def _mock_externals(monkeypatch, app):
    from datavista_app.services import ai_client
    monkeypatch.setattr(ai_client.genai, "Client", OfflineGenaiClient)
    monkeypatch.setattr(app.extensions["identity"], "verifier", _offline_verifier)
    yield


# =====================================================================================
# AI client stand-in: records every call, answers from a queue
# =====================================================================================
VALID_DASHBOARD_JSON = """{
  "summary": "Sales grew steadily across the quarter.",
  "insights": ["March was the best month", "Returns stayed flat"],
  "charts": [
    {"type": "bar", "title": "Sales by month",
     "data": [{"name": "Jan", "value": 10}, {"name": "Feb", "value": 12}, {"name": "Mar", "value": 18}]},
    {"type": "pie", "title": "Share by region",
     "data": [{"name": "North", "value": 60}, {"name": "South", "value": 40}]}
  ],
  "metrics": [
    {"name": "Total sales", "value": "40", "change": "+12%"},
    {"name": "Returns", "value": "3", "change": "-1%"}
  ]
}"""


class FakeAIClient:
    def __init__(self, responses=None, default=VALID_DASHBOARD_JSON):
        self.responses = list(responses or [])
        self.default = default
        self.calls = []

    def _next(self):
        item = self.responses.pop(0) if self.responses else self.default
        if isinstance(item, Exception):
            raise item
        return item

    def generate_dashboard(self, encoded_content, file_name, file_type):
        self.calls.append(("dashboard", file_name, file_type, encoded_content))
        return self._next()

    def generate_blog_summary(self, content):
        self.calls.append(("blog", content))
        return self._next()


@pytest.fixture
def fake_ai(app):
    fake = FakeAIClient()
    previous = app.extensions.get("ai_client")
    app.extensions["ai_client"] = fake
    yield fake
    app.extensions["ai_client"] = previous


# =====================================================================================
# Users and logged-in clients
# =====================================================================================
@pytest.fixture
def user_admin(db_session):
    from datavista_app.models.user import User
    email = f"admin+{uuid.uuid4().hex[:6]}@test.com"
    u = User(name="Admin", email=email, is_admin=True)
    u.set_password("secret123")
    db_session.add(u); db_session.commit()
    return u


@pytest.fixture
def user_normal(db_session):
    from datavista_app.models.user import User
    email = f"user+{uuid.uuid4().hex[:6]}@test.com"
    u = User(name="User", email=email)
    u.set_password("secret123")
    db_session.add(u); db_session.commit()
    return u


@pytest.fixture
def logged_client_admin(client, user_admin):
    with client.session_transaction() as sess:
        sess["user"] = {"id": user_admin.id, "email": user_admin.email, "is_admin": True}
    return client


@pytest.fixture
def logged_client_user(client, user_normal):
    with client.session_transaction() as sess:
        sess["user"] = {"id": user_normal.id, "email": user_normal.email, "is_admin": False}
    return client
