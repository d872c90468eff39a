from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.responses import Response
from supabase_auth.errors import AuthApiError, AuthRetryableError

from spinbook import auth
from spinbook.auth import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    AuthError,
    RequestStorage,
    apply_refreshed_session,
    get_access_token,
    get_optional_user,
    sync_local_user,
)
from spinbook.models import User

REFRESHED = {
    "access_token": "access-new",
    "refresh_token": "refresh-new",
    "expires_in": 3600,
    "user": {"id": "auth-1", "email": "Nova@Example.com"},
}


def _request(cookies=None, headers=None):
    request = MagicMock()
    request.cookies = cookies or {}
    request.headers = headers or {}
    request.state = SimpleNamespace()
    return request


def _fake_sdk(monkeypatch, client):
    monkeypatch.setattr(auth, "_auth_client", lambda storage=None: client)


def test_access_token_from_cookie_then_bearer():
    assert get_access_token(_request(cookies={ACCESS_TOKEN_COOKIE: "c"})) == "c"
    assert get_access_token(_request(headers={"Authorization": "Bearer h"})) == "h"
    assert get_access_token(_request()) is None


async def test_unconfigured_provider(monkeypatch):
    monkeypatch.setattr(auth, "AUTH_URL", "")
    with pytest.raises(AuthError) as exc:
        await auth.fetch_user("token")
    assert exc.value.status_code == 500


class TestRequestStorage:
    def test_code_verifier_kept_apart(self):
        storage = RequestStorage()
        storage.set_item("sb-project-auth-token-code-verifier", "verifier-1")
        storage.set_item("sb-project-auth-token", "{}")

        assert storage.code_verifier == "verifier-1"
        assert storage.get_item("sb-project-auth-token-code-verifier") == "verifier-1"
        assert storage.items == {"sb-project-auth-token": "{}"}

    def test_seeded_verifier_is_readable(self):
        storage = RequestStorage("verifier-2")
        assert storage.get_item("supabase.auth.token-code-verifier") == "verifier-2"
        storage.remove_item("supabase.auth.token-code-verifier")
        assert storage.code_verifier is None


class TestProviderCalls:
    async def test_sign_in_returns_session_dict(self, monkeypatch):
        user = SimpleNamespace(id="auth-1", email="nova@example.com")
        session = SimpleNamespace(
            access_token="access-abc", refresh_token="refresh-abc", expires_in=3600, user=user
        )
        client = MagicMock()
        client.sign_in_with_password.return_value = SimpleNamespace(session=session, user=user)
        _fake_sdk(monkeypatch, client)

        result = await auth.sign_in_with_password("nova@example.com", "pw")

        assert result == {
            "user": {"id": "auth-1", "email": "nova@example.com"},
            "access_token": "access-abc",
            "refresh_token": "refresh-abc",
            "expires_in": 3600,
        }
        client.sign_in_with_password.assert_called_once_with(
            {"email": "nova@example.com", "password": "pw"}
        )

    async def test_sign_up_returns_verifier_written_by_sdk(self, monkeypatch):
        def factory(storage=None):
            client = MagicMock()
            client.sign_up.side_effect = lambda params: storage.set_item(
                "sb-project-auth-token-code-verifier", "verifier-xyz"
            )
            return client

        monkeypatch.setattr(auth, "_auth_client", factory)

        verifier = await auth.sign_up("new@example.com", "pw", "https://site/auth/callback")

        assert verifier == "verifier-xyz"

    async def test_code_exchange_passes_verifier(self, monkeypatch):
        client = MagicMock()
        client.exchange_code_for_session.return_value = SimpleNamespace(session=None, user=None)
        _fake_sdk(monkeypatch, client)

        await auth.exchange_code_for_session("code-1", "verifier-1")

        client.exchange_code_for_session.assert_called_once_with(
            {"auth_code": "code-1", "code_verifier": "verifier-1"}
        )

    async def test_api_error_keeps_provider_message(self, monkeypatch):
        client = MagicMock()
        client.sign_in_with_password.side_effect = AuthApiError(
            "Invalid login credentials", 400, "invalid_credentials"
        )
        _fake_sdk(monkeypatch, client)

        with pytest.raises(AuthError) as exc:
            await auth.sign_in_with_password("nova@example.com", "wrong")

        assert exc.value.message == "Invalid login credentials"
        assert exc.value.status_code == 400

    async def test_unreachable_provider_is_503(self, monkeypatch):
        client = MagicMock()
        client.get_user.side_effect = AuthRetryableError("connection reset", 0)
        _fake_sdk(monkeypatch, client)

        with pytest.raises(AuthError) as exc:
            await auth.fetch_user("token")
        assert exc.value.status_code == 503

    async def test_missing_user_is_401(self, monkeypatch):
        client = MagicMock()
        client.get_user.return_value = None
        _fake_sdk(monkeypatch, client)

        with pytest.raises(AuthError) as exc:
            await auth.fetch_user("token")
        assert exc.value.status_code == 401


class TestSessionRefresh:
    async def test_rejected_access_token_uses_refresh_cookie(self, db, monkeypatch):
        monkeypatch.setattr(auth, "fetch_user", AsyncMock(side_effect=AuthError("expired", 401)))
        refresh = AsyncMock(return_value=REFRESHED)
        monkeypatch.setattr(auth, "refresh_session", refresh)
        request = _request(cookies={ACCESS_TOKEN_COOKIE: "old", REFRESH_TOKEN_COOKIE: "refresh-old"})

        user = await get_optional_user(request, db)

        assert user.email == "nova@example.com"
        assert request.state.refreshed_session == REFRESHED
        refresh.assert_awaited_once_with("refresh-old")

    async def test_expired_cookie_gone_refresh_cookie_left(self, db, monkeypatch):
        fetch = AsyncMock()
        monkeypatch.setattr(auth, "fetch_user", fetch)
        monkeypatch.setattr(auth, "refresh_session", AsyncMock(return_value=REFRESHED))

        user = await get_optional_user(_request(cookies={REFRESH_TOKEN_COOKIE: "r"}), db)

        assert user.auth_uid == "auth-1"
        fetch.assert_not_awaited()

    async def test_valid_access_token_skips_refresh(self, db, monkeypatch):
        monkeypatch.setattr(
            auth, "fetch_user", AsyncMock(return_value={"id": "auth-1", "email": "a@b.co"})
        )
        refresh = AsyncMock()
        monkeypatch.setattr(auth, "refresh_session", refresh)
        request = _request(cookies={ACCESS_TOKEN_COOKIE: "ok", REFRESH_TOKEN_COOKIE: "r"})

        assert await get_optional_user(request, db) is not None
        refresh.assert_not_awaited()
        assert not hasattr(request.state, "refreshed_session")

    async def test_failed_refresh_is_signed_out(self, db, monkeypatch):
        monkeypatch.setattr(
            auth, "refresh_session", AsyncMock(side_effect=AuthError("Invalid Refresh Token", 400))
        )
        request = _request(cookies={REFRESH_TOKEN_COOKIE: "revoked"})

        assert await get_optional_user(request, db) is None
        assert not hasattr(request.state, "refreshed_session")

    async def test_provider_outage_does_not_refresh(self, db, monkeypatch):
        monkeypatch.setattr(auth, "fetch_user", AsyncMock(side_effect=AuthError("down", 503)))
        refresh = AsyncMock()
        monkeypatch.setattr(auth, "refresh_session", refresh)
        request = _request(cookies={ACCESS_TOKEN_COOKIE: "a", REFRESH_TOKEN_COOKIE: "r"})

        assert await get_optional_user(request, db) is None
        refresh.assert_not_awaited()

    def test_apply_refreshed_session_sets_cookies(self):
        request = _request()
        request.state.refreshed_session = REFRESHED
        response = Response()

        apply_refreshed_session(request, response)

        cookies = response.headers.getlist("set-cookie")
        assert any(c.startswith(f"{ACCESS_TOKEN_COOKIE}=access-new") for c in cookies)
        assert any(c.startswith(f"{REFRESH_TOKEN_COOKIE}=refresh-new") for c in cookies)


class TestSyncLocalUser:
    def test_creates_user(self, db):
        user = sync_local_user(db, "auth-1", "nova@example.com")
        assert user.id is not None
        assert user.is_dj is True

    def test_returns_existing_by_auth_uid(self, db, make_user):
        existing = make_user(email="nova@example.com", auth_uid="auth-1")
        assert sync_local_user(db, "auth-1", "nova@example.com").id == existing.id

    def test_relinks_on_email_match(self, db, make_user):
        existing = make_user(email="nova@example.com", auth_uid="old-uid")
        user = sync_local_user(db, "new-uid", "nova@example.com")
        assert user.id == existing.id
        assert user.auth_uid == "new-uid"
        assert db.query(User).count() == 1
