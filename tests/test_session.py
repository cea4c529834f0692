"""Tests for the server-side inactivity timeout and session endpoints."""

from __future__ import annotations

from conftest import ADMIN_PASSWORD


def _age_session(client, seconds):
    with client.session_transaction() as sess:
        sess["last_activity"] -= seconds * 1000


def test_session_status_reports_remaining_time(admin_client):
    """A fresh session reports the full timeout and no warning."""
    response = admin_client.get("/api/auth/session-status")

    assert response.status_code == 200
    body = response.get_json()
    assert body["valid"] is True
    assert 1195 <= body["timeRemaining"] <= 1200
    assert body["isWarning"] is False
    assert isinstance(body["lastActivity"], int)
    assert body["sessionId"]


def test_session_status_flags_warning_window(admin_client):
    """Inside the last five minutes isWarning turns true."""
    _age_session(admin_client, 1200 - 290)

    body = admin_client.get("/api/auth/session-status").get_json()

    assert body["isWarning"] is True
    assert 280 <= body["timeRemaining"] <= 290


def test_status_poll_does_not_count_as_activity(admin_client):
    """Polling must not push last_activity forward."""
    _age_session(admin_client, 100)
    first = admin_client.get("/api/auth/session-status").get_json()
    second = admin_client.get("/api/auth/session-status").get_json()

    assert first["lastActivity"] == second["lastActivity"]
    assert second["timeRemaining"] <= 1100


def test_expired_session_status_is_401_and_destroys_session(admin_client):
    """An idle session reports SESSION_TIMEOUT and is gone afterwards."""
    _age_session(admin_client, 1201)

    response = admin_client.get("/api/auth/session-status")

    assert response.status_code == 401
    body = response.get_json()
    assert body["valid"] is False
    assert body["code"] == "SESSION_TIMEOUT"
    assert admin_client.get("/api/auth/user").status_code == 401


def test_session_status_without_login(client):
    """Anonymous callers are told there is no session."""
    response = client.get("/api/auth/session-status")
    assert response.status_code == 401
    assert response.get_json()["valid"] is False


def test_extend_session_resets_timer(admin_client):
    """Extending puts the full timeout back."""
    _age_session(admin_client, 1000)

    response = admin_client.post("/api/auth/extend-session")

    assert response.status_code == 200
    body = response.get_json()
    assert body == {"success": True, "message": "Session extended", "timeRemaining": 1200}
    status = admin_client.get("/api/auth/session-status").get_json()
    assert status["timeRemaining"] >= 1195
    assert status["isWarning"] is False


def test_extend_session_requires_login(client):
    """Extending without a session is a 401."""
    assert client.post("/api/auth/extend-session").status_code == 401


def test_extend_after_timeout_is_refused(admin_client):
    """An already expired session cannot be revived by extending it."""
    _age_session(admin_client, 1300)

    response = admin_client.post("/api/auth/extend-session")

    assert response.status_code == 401
    assert response.get_json()["code"] == "SESSION_TIMEOUT"


def test_api_request_after_inactivity_gets_session_timeout(admin_client):
    """Any authenticated API call after the timeout is refused with SESSION_TIMEOUT."""
    _age_session(admin_client, 1201)

    response = admin_client.get("/api/admin/pages")

    assert response.status_code == 401
    assert response.get_json() == {"message": "Session expired due to inactivity", "code": "SESSION_TIMEOUT"}


def test_html_request_after_inactivity_redirects_to_login(admin_client):
    """Admin screens send a timed-out user back to the login page."""
    _age_session(admin_client, 1201)

    response = admin_client.get("/admin/dashboard")

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/admin/login")


def test_activity_refreshes_last_activity(admin_client):
    """A normal authenticated request counts as activity."""
    _age_session(admin_client, 600)

    admin_client.get("/api/admin/pages")

    body = admin_client.get("/api/auth/session-status").get_json()
    assert body["timeRemaining"] >= 1195


def test_login_starts_new_session_id(client, admin_user):
    """Each login gets a fresh session id."""
    client.post("/api/login", json={"username": "admin", "password": ADMIN_PASSWORD})
    first = client.get("/api/auth/session-status").get_json()["sessionId"]
    client.post("/api/logout")
    client.post("/api/login", json={"username": "admin", "password": ADMIN_PASSWORD})
    second = client.get("/api/auth/session-status").get_json()["sessionId"]

    assert first != second
