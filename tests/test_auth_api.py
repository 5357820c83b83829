"""HTTP-level tests for /api/v1/auth/*."""

from datetime import timedelta

import pytest

from models.user import Status
from utils.security import ACCESS, TokenCodec
from tests.conftest import bearer

LOGIN = "/api/v1/auth/login"
REFRESH = "/api/v1/auth/refresh"
LOGOUT = "/api/v1/auth/logout"
ME = "/api/v1/auth/me"


def refresh_cookie(response, name="refresh_token"):
    """Return (value, raw Set-Cookie header) of the refresh cookie."""
    for header in response.headers.getlist("Set-Cookie"):
        if header.startswith(f"{name}="):
            return header.split(";", 1)[0].split("=", 1)[1], header
    return None, None


def login(client, identifier="alice", password="correct"):
    return client.post(LOGIN, json={"identifier": identifier, "password": password})


class TestLogin:

    def test_success(self, client, alice):
        resp = login(client)

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 15 * 60
        assert data["access_token"]
        assert data["user"] == {
            "id": alice.id,
            "username": "alice",
            "email": "alice@example.com",
            "name": "Alice",
            "role": "USER",
        }

    def test_response_never_contains_credentials(self, client, alice):
        body = login(client).get_data(as_text=True)
        assert "password" not in body
        assert "refresh_token_hash" not in body
        assert "$argon2" not in body

    def test_refresh_token_cookie_attributes(self, client, alice):
        token, header = refresh_cookie(login(client))

        assert token
        lower = header.lower()
        assert "httponly" in lower
        assert "path=/api/v1/auth" in lower
        assert "samesite=lax" in lower
        assert "max-age=604800" in lower
        # testing config is not production
        assert "secure" not in lower

    def test_refresh_token_not_in_body(self, client, alice):
        resp = login(client)
        token, _ = refresh_cookie(resp)
        assert token not in resp.get_data(as_text=True)

    def test_username_alias(self, client, alice):
        assert client.post(LOGIN, json={"username": "alice", "password": "correct"}).status_code == 200

    def test_wrong_password_and_unknown_user_look_the_same(self, client, alice):
        wrong = login(client, "alice", "wrong")
        unknown = login(client, "bob", "anything")

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json() == {
            "error": "INVALID_CREDENTIALS",
            "message": "Invalid credentials",
            "status": 401,
        }
        assert refresh_cookie(wrong) == (None, None)

    def test_inactive_account(self, client, make_user):
        make_user("dave", "correct", status=Status.INACTIVE)
        resp = login(client, "dave", "correct")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "ACCOUNT_NOT_ACTIVE"

    def test_deleted_account(self, client, make_user):
        make_user("carol", "correct", status=Status.DELETED)
        assert login(client, "carol", "correct").get_json()["error"] == "INVALID_CREDENTIALS"

    @pytest.mark.parametrize("payload", [{}, {"identifier": "alice"}, {"identifier": "al", "password": "x"}])
    def test_validation(self, client, payload):
        resp = client.post(LOGIN, json=payload)
        assert resp.status_code == 422
        assert resp.get_json()["error"] == "VALIDATION_ERROR"


class TestRefresh:

    def test_refresh_with_body_token(self, client, ctx, alice):
        token, _ = refresh_cookie(login(client))

        resp = client.post(REFRESH, json={"refresh_token": token})

        assert resp.status_code == 200
        access = resp.get_json()["data"]["access_token"]
        assert ctx.access_codec.decode(access).ok
        assert client.get(ME, headers=bearer(access)).status_code == 200

    def test_refresh_with_cookie(self, client, alice):
        login(client)
        resp = client.post(REFRESH)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["access_token"]

    def test_no_token(self, app, alice):
        resp = app.test_client().post(REFRESH)
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "INVALID_REFRESH_TOKEN"

    def test_bad_token(self, client, alice):
        resp = client.post(REFRESH, json={"refresh_token": "nope"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "INVALID_REFRESH_TOKEN"


class TestLogout:

    def test_logout_then_refresh_fails(self, client, alice):
        resp = login(client)
        access = resp.get_json()["data"]["access_token"]
        token, _ = refresh_cookie(resp)

        out = client.post(LOGOUT, headers=bearer(access))
        assert out.status_code == 200
        cleared, header = refresh_cookie(out)
        assert cleared == ""
        assert "max-age=0" in header.lower()

        again = client.post(REFRESH, json={"refresh_token": token})
        assert again.status_code == 401
        assert again.get_json()["error"] == "INVALID_REFRESH_TOKEN"

    def test_logout_twice(self, client, ctx, alice):
        access = login(client).get_json()["data"]["access_token"]
        assert client.post(LOGOUT, headers=bearer(access)).status_code == 200
        assert client.post(LOGOUT, headers=bearer(access)).status_code == 200
        assert ctx.accounts.get(alice.id).refresh_token_hash is None

    def test_logout_requires_token(self, client, alice):
        resp = client.post(LOGOUT)
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "MISSING_TOKEN"


class TestProtectedRequests:

    def test_me(self, client, alice):
        access = login(client).get_json()["data"]["access_token"]
        resp = client.get(ME, headers=bearer(access))
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["id"] == alice.id
        assert data["status"] == "ACTIVE"
        assert data["last_login_at"]
        assert "password_hash" not in data

    def test_expired_and_corrupted_tokens_get_distinct_codes(self, client, ctx, alice):
        expired = TokenCodec(ctx.access_codec.secret, ACCESS, timedelta(seconds=-5)).encode(
            alice.id, role="USER", username="alice", ver=0
        )
        good = login(client).get_json()["data"]["access_token"]
        head, body, sig = good.split(".")
        corrupted = ".".join([head, body, ("B" if sig[0] == "A" else "A") + sig[1:]])

        r1 = client.get(ME, headers=bearer(expired))
        r2 = client.get(ME, headers=bearer(corrupted))

        assert r1.status_code == r2.status_code == 401
        assert r1.get_json()["error"] == "TOKEN_EXPIRED"
        assert r2.get_json()["error"] == "INVALID_TOKEN"

    def test_forced_logout_rejects_next_request(self, client, ctx, alice):
        access = login(client).get_json()["data"]["access_token"]
        assert client.get(ME, headers=bearer(access)).status_code == 200

        ctx.sessions.revoke_all_sessions(alice.id)

        resp = client.get(ME, headers=bearer(access))
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "SESSION_SUPERSEDED"


def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok", "database": "ok"}
