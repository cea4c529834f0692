import os
import sys
from pathlib import Path
from urllib.parse import urlsplit

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# The app module builds its engine and limiter at import time.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATELIMIT_ENABLED"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from app import User, app as flask_app, db, login_attempts  # noqa: E402
from session_monitor import ApiResult  # noqa: E402

ADMIN_PASSWORD = "Str0ng!Pass"


@pytest.fixture()
def app(tmp_path):
    flask_app.config.update(
        TESTING=True,
        WTF_CSRF_ENABLED=False,
        UPLOAD_FOLDER=str(tmp_path / "uploads"),
    )
    with flask_app.app_context():
        db.create_all()
    login_attempts.reset()
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    """Create a user and return its id."""

    def _make_user(username="officer", role="admin", password=ADMIN_PASSWORD, is_active=True):
        with app.app_context():
            user = User(username=username, email=f"{username}@cid.example.gov", role=role, is_active=is_active)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make_user


@pytest.fixture()
def admin_user(make_user):
    return make_user("admin", role="admin")


@pytest.fixture()
def admin_client(app, admin_user):
    client = app.test_client()
    response = client.post("/api/login", json={"username": "admin", "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client


class ManualScheduler:
    """Deterministic stand-in for ThreadingScheduler driven by advance()."""

    def __init__(self):
        self.now = 0.0
        self._seq = 0
        self._tasks = []

    def call_later(self, delay, callback):
        self._seq += 1
        task = {"due": self.now + delay, "seq": self._seq, "callback": callback, "cancelled": False}
        self._tasks.append(task)
        return task

    def cancel(self, handle):
        handle["cancelled"] = True

    def pending(self):
        return [task for task in self._tasks if not task["cancelled"]]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [task for task in self.pending() if task["due"] <= target]
            if not due:
                break
            task = min(due, key=lambda t: (t["due"], t["seq"]))
            self._tasks.remove(task)
            self.now = task["due"]
            task["callback"]()
        self.now = target


class FakeSessionClient:
    """Scripted session client; unscripted polls report a healthy session."""

    def __init__(self):
        self.status_results = []
        self.extend_result = ApiResult(ok=True, status=200, data={"success": True, "message": "Session extended"})
        self.logout_result = ApiResult(ok=True, status=200, data={"sessionDestroyed": True})
        self.during_status = None
        self.calls = []

    def get_status(self):
        self.calls.append("status")
        if self.during_status is not None:
            hook, self.during_status = self.during_status, None
            hook()
        if self.status_results:
            return self.status_results.pop(0)
        return ApiResult(ok=True, status=200, data={"valid": True, "timeRemaining": 1200, "isWarning": False})

    def extend(self):
        self.calls.append("extend")
        return self.extend_result

    def logout(self):
        self.calls.append("logout")
        return self.logout_result


class _TransportResponse:
    def __init__(self, response):
        self.status_code = response.status_code
        self._payload = response.get_json(silent=True)

    def json(self):
        if self._payload is None:
            raise ValueError("response has no JSON body")
        return self._payload


class FlaskTransport:
    """Minimal requests.Session look-alike that routes through a Flask test client."""

    def __init__(self, client):
        self.client = client

    def request(self, method, url, timeout=None, headers=None):
        return _TransportResponse(self.client.open(urlsplit(url).path, method=method, headers=headers))

    def post(self, url, files=None, timeout=None):
        data = {name: (stream, filename) for name, (filename, stream) in (files or {}).items()}
        response = self.client.post(urlsplit(url).path, data=data, content_type="multipart/form-data")
        return _TransportResponse(response)


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def session_client():
    return FakeSessionClient()


@pytest.fixture()
def admin_transport(admin_client):
    return FlaskTransport(admin_client)
