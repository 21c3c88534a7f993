from datetime import timedelta

import pytest

from api import create_app
from utils.tokens import TokenIssuer

PREFIX = "/api/v1/auth"
PASSWORD = "SecurePass123!"


def _register(client, email="alice@example.com", password=PASSWORD):
    return client.post(
        f"{PREFIX}/register",
        json={"email": email, "password": password, "first_name": "Alice", "last_name": "Smith"},
    )


def _login(client, email="alice@example.com", password=PASSWORD):
    return client.post(f"{PREFIX}/login", json={"email": email, "password": password})


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    res = client.get("/api/v1/health")
    assert res.status_code == 200
    assert res.get_json() == {"status": "ok", "storage": "memory"}


def test_register_created(client):
    res = _register(client)
    assert res.status_code == 201
    user = res.get_json()["data"]
    assert user["email"] == "alice@example.com"
    assert "password" not in user and "password_hash" not in user


def test_register_conflict(client):
    _register(client)
    res = _register(client)
    assert res.status_code == 409
    assert res.get_json()["error"] == "CONFLICT"


def test_register_weak_password(client):
    res = _register(client, password="securepass123!")
    body = res.get_json()
    assert res.status_code == 422
    assert body["error"] == "VALIDATION_ERROR"
    assert any("uppercase" in reason for reason in body["details"]["reasons"])


def test_register_missing_fields(client):
    res = client.post(f"{PREFIX}/register", json={"email": "not-an-email"})
    body = res.get_json()
    assert res.status_code == 422
    assert body["error"] == "VALIDATION_ERROR"
    assert "email" in body["details"]
    assert "password" in body["details"]


def test_login_refresh_profile_logout_flow(client):
    _register(client)
    res = _login(client)
    assert res.status_code == 200
    session = res.get_json()["data"]
    assert session["token_type"] == "bearer"

    res = client.get(f"{PREFIX}/profile", headers=_bearer(session["access_token"]))
    assert res.status_code == 200
    assert res.get_json()["data"]["email"] == "alice@example.com"

    res = client.post(f"{PREFIX}/refresh", json={"refresh_token": session["refresh_token"]})
    assert res.status_code == 200
    rotated = res.get_json()["data"]
    assert rotated["refresh_token"] != session["refresh_token"]

    # the old refresh token is spent
    res = client.post(f"{PREFIX}/refresh", json={"refresh_token": session["refresh_token"]})
    assert res.status_code == 401
    assert res.get_json()["error"] == "INVALID_CREDENTIALS"

    res = client.post(f"{PREFIX}/logout", json={"refresh_token": rotated["refresh_token"]})
    assert res.status_code == 204
    res = client.post(f"{PREFIX}/logout", json={"refresh_token": rotated["refresh_token"]})
    assert res.status_code == 204

    res = client.post(f"{PREFIX}/refresh", json={"refresh_token": rotated["refresh_token"]})
    assert res.status_code == 401


def test_login_failures_look_identical(client):
    _register(client)
    wrong_password = _login(client, password="WrongPass123!")
    unknown_email = _login(client, email="nobody@example.com")
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.get_json() == unknown_email.get_json()


def test_profile_requires_bearer(client):
    res = client.get(f"{PREFIX}/profile")
    assert res.status_code == 401
    assert res.get_json()["error"] == "UNAUTHORIZED"


def test_profile_with_expired_token(client):
    res = _register(client)
    user_id = res.get_json()["data"]["id"]
    past = TokenIssuer(
        "test-access-secret",
        "test-refresh-secret",
        access_ttl=timedelta(seconds=-60),
    )
    res = client.get(f"{PREFIX}/profile", headers=_bearer(past.issue_access({"sub": user_id})))
    assert res.status_code == 401
    assert res.get_json()["error"] == "UNAUTHORIZED"


def test_update_profile(client):
    _register(client)
    access = _login(client).get_json()["data"]["access_token"]
    res = client.put(f"{PREFIX}/profile", json={"first_name": "Alicia"}, headers=_bearer(access))
    assert res.status_code == 200
    assert res.get_json()["data"]["first_name"] == "Alicia"

    res = client.patch(f"{PREFIX}/profile", json={"last_name": "Jones"}, headers=_bearer(access))
    assert res.status_code == 200
    assert res.get_json()["data"]["last_name"] == "Jones"


def test_update_profile_requires_a_field(client):
    _register(client)
    access = _login(client).get_json()["data"]["access_token"]
    res = client.put(f"{PREFIX}/profile", json={}, headers=_bearer(access))
    assert res.status_code == 422


def test_verify(client):
    _register(client)
    access = _login(client).get_json()["data"]["access_token"]
    res = client.get(f"{PREFIX}/verify", headers=_bearer(access))
    assert res.status_code == 200
    assert res.get_json()["data"]["is_authenticated"] is True


def test_refresh_requires_body(client):
    res = client.post(f"{PREFIX}/refresh", json={})
    assert res.status_code == 422


def test_login_rate_limited():
    app = create_app("testing", overrides={"RATE_LIMIT_ENABLED": True, "LOGIN_RATE_LIMIT": 2})
    client = app.test_client()
    statuses = [_login(client).status_code for _ in range(3)]
    assert statuses == [401, 401, 429]
    res = _login(client)
    assert res.get_json()["error"] == "RATE_LIMIT_EXCEEDED"
    assert int(res.headers["Retry-After"]) >= 1


def test_sql_backend_flow(tmp_path):
    app = create_app("testing", overrides={"DB_BACKEND": "sql", "DATABASE_URL": f"sqlite:///{tmp_path}/auth.db"})
    client = app.test_client()
    assert _register(client).status_code == 201
    session = _login(client).get_json()["data"]
    res = client.post(f"{PREFIX}/refresh", json={"refresh_token": session["refresh_token"]})
    assert res.status_code == 200
    res = client.post(f"{PREFIX}/refresh", json={"refresh_token": session["refresh_token"]})
    assert res.status_code == 401


def test_sweep_tokens_command(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["sweep-tokens"])
    assert result.exit_code == 0
    assert "Removed 0 expired refresh token(s)" in result.output


@pytest.mark.parametrize("method,path", [("get", "/nope"), ("delete", f"{PREFIX}/login")])
def test_error_envelope(client, method, path):
    res = getattr(client, method)(path)
    body = res.get_json()
    assert set(body) >= {"error", "message", "status"}
    assert body["status"] == res.status_code


def test_auth_routes_are_mounted_under_auth_prefix(app):
    rules = {rule.rule for rule in app.url_map.iter_rules()}
    for op in ("register", "login", "refresh", "logout", "profile", "verify"):
        assert f"{PREFIX}/{op}" in rules
        assert f"/api/v1/{op}" not in rules
