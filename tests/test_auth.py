"""Tests for login, logout, lockout and the admin role gate."""

from __future__ import annotations

from urllib.parse import urlsplit

from app import LoginAttemptTracker, validate_password
from conftest import ADMIN_PASSWORD


def test_api_login_returns_public_user_and_sets_session_cookie(client, admin_user):
    """A good login returns the user without secrets and sets the cid.session.id cookie."""
    response = client.post("/api/login", json={"username": "admin", "password": ADMIN_PASSWORD})

    assert response.status_code == 200
    body = response.get_json()
    assert body["username"] == "admin"
    assert body["role"] == "admin"
    assert "passwordHash" not in body and "password_hash" not in body
    assert client.get_cookie("cid.session.id") is not None


def test_auth_login_alias_works(client, admin_user):
    """/api/auth/login is accepted as an alias of /api/login."""
    response = client.post("/api/auth/login", json={"username": "admin", "password": ADMIN_PASSWORD})
    assert response.status_code == 200


def test_login_requires_both_fields(client):
    """Missing credentials are a 400, not an authentication failure."""
    response = client.post("/api/login", json={"username": "admin"})
    assert response.status_code == 400
    assert "required" in response.get_json()["message"]


def test_login_rejects_bad_password(client, admin_user):
    """A wrong password gives a generic 401."""
    response = client.post("/api/login", json={"username": "admin", "password": "wrong"})
    assert response.status_code == 401
    assert response.get_json()["message"] == "Invalid username or password"


def test_inactive_user_cannot_log_in(client, make_user):
    """Deactivated accounts are refused even with the right password."""
    make_user("retired", is_active=False)
    response = client.post("/api/login", json={"username": "retired", "password": ADMIN_PASSWORD})
    assert response.status_code == 401


def test_account_locks_after_repeated_failures(client, admin_user):
    """Five failures lock the username so even the right password gets 429."""
    for _ in range(5):
        assert client.post("/api/login", json={"username": "admin", "password": "nope"}).status_code == 401

    response = client.post("/api/login", json={"username": "admin", "password": ADMIN_PASSWORD})

    assert response.status_code == 429
    assert "locked" in response.get_json()["message"]


def test_lockout_expires_after_lockout_window():
    """The tracker unlocks a name once the lockout window has passed."""
    now = [1000.0]
    tracker = LoginAttemptTracker(max_attempts=2, lockout_seconds=60, clock=lambda: now[0])
    tracker.record_failure("alice")
    assert tracker.is_locked("alice") is False
    tracker.record_failure("alice")
    assert tracker.is_locked("alice") is True

    now[0] += 61

    assert tracker.is_locked("alice") is False
    assert tracker.record_failure("alice") == 1


def test_old_failures_are_forgotten():
    """Failures older than the window neither count toward a lockout nor linger in memory."""
    now = [0.0]
    tracker = LoginAttemptTracker(max_attempts=3, lockout_seconds=60, clock=lambda: now[0])
    tracker.record_failure("carol")
    tracker.record_failure("carol")
    tracker.record_failure("dave")

    now[0] += 60

    assert tracker.record_failure("carol") == 1
    assert tracker.is_locked("carol") is False
    assert set(tracker._attempts) == {"carol"}


def test_successful_login_clears_failure_count():
    """A success resets the counter for that username."""
    tracker = LoginAttemptTracker(max_attempts=3, lockout_seconds=60)
    tracker.record_failure("bob")
    tracker.record_failure("bob")
    tracker.record_success("bob")
    assert tracker.record_failure("bob") == 1


def test_current_user_endpoint(admin_client, client):
    """/api/auth/user answers for a logged-in user and 401s otherwise."""
    assert admin_client.get("/api/auth/user").get_json()["username"] == "admin"
    assert client.get("/api/auth/user").status_code == 401


def test_post_logout_destroys_session(admin_client):
    """POST /api/logout reports success and the session no longer authenticates."""
    response = admin_client.post("/api/logout")

    assert response.status_code == 200
    body = response.get_json()
    assert body["message"] == "Logged out successfully"
    assert body["sessionDestroyed"] is True
    assert admin_client.get("/api/auth/user").status_code == 401


def test_get_logout_redirects_browsers(admin_client):
    """A plain GET logout from a browser lands on the home page."""
    response = admin_client.get("/api/logout", headers={"Accept": "text/html"})
    assert response.status_code == 302
    assert urlsplit(response.headers["Location"]).path == "/"


def test_get_logout_answers_json_clients(admin_client):
    """A GET that only accepts JSON gets the JSON body."""
    response = admin_client.get("/api/logout", headers={"Accept": "application/json"})
    assert response.status_code == 200
    assert response.get_json()["sessionDestroyed"] is True


def test_non_admin_gets_403_from_admin_api(client, make_user):
    """Authenticated users without an admin role are refused."""
    make_user("clerk", role="user")
    client.post("/api/login", json={"username": "clerk", "password": ADMIN_PASSWORD})

    response = client.get("/api/admin/pages")

    assert response.status_code == 403


def test_super_admin_passes_role_gate(client, make_user):
    """super_admin is accepted alongside admin."""
    make_user("chief", role="super_admin")
    client.post("/api/login", json={"username": "chief", "password": ADMIN_PASSWORD})
    assert client.get("/api/admin/pages").status_code == 200


def test_anonymous_admin_api_gets_401(client):
    """Admin JSON endpoints answer 401 instead of redirecting."""
    response = client.get("/api/admin/complaints")
    assert response.status_code == 401
    assert response.get_json()["message"] == "Authentication required"


def test_anonymous_admin_screen_redirects_to_login(client):
    """Admin HTML screens redirect to the login page and remember the target."""
    response = client.get("/admin/pages")
    assert response.status_code == 302
    assert "/admin/login" in response.headers["Location"]
    assert "next=" in response.headers["Location"]


def test_admin_html_login_redirects_to_next(client, admin_user):
    """The login form honours a local next parameter."""
    response = client.post("/admin/login?next=/admin/news", data={"username": "admin", "password": ADMIN_PASSWORD})
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/admin/news")


def test_admin_html_login_ignores_external_next(client, admin_user):
    """Off-site next targets fall back to the dashboard."""
    response = client.post(
        "/admin/login?next=//evil.example.com/", data={"username": "admin", "password": ADMIN_PASSWORD}
    )
    assert response.headers["Location"].endswith("/admin/dashboard")


def test_admin_html_login_failure_rerenders_form(client, admin_user):
    """A failed form login stays on the page with an error."""
    response = client.post("/admin/login", data={"username": "admin", "password": "wrong"})
    assert response.status_code == 200
    assert b"Invalid username or password" in response.data


def test_non_admin_html_screen_redirects_home(client, make_user):
    """A logged-in non-admin is sent away from admin screens."""
    make_user("clerk", role="user")
    client.post("/api/login", json={"username": "clerk", "password": ADMIN_PASSWORD})
    response = client.get("/admin/dashboard")
    assert response.status_code == 302
    assert "/admin" not in response.headers["Location"]


def test_password_policy():
    """Weak passwords list every rule they break; strong ones pass."""
    assert validate_password(ADMIN_PASSWORD) == []
    errors = validate_password("short")
    assert any("8 characters" in error for error in errors)
    assert any("uppercase" in error for error in errors)
    assert any("number" in error for error in errors)
    assert any("special" in error for error in errors)
