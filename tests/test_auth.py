"""
Tests for the OAuth endpoints, the identity provider client and the
authentication dependencies.
"""
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
import requests
from fastapi.testclient import TestClient

from conftest import auth_header

from bento_api.core.security import ACCESS_TOKEN_COOKIE, CODE_VERIFIER_COOKIE, REFRESH_TOKEN_COOKIE
from bento_api.main import app
from bento_api.models.user_profile import UserProfile
from bento_api.services.identity import (
    IdentityProviderClient,
    IdentityProviderError,
    ProviderSession,
    get_identity_client,
    get_site_url,
    safe_next_path,
)


class FakeIdentityClient(IdentityProviderClient):
    """Identity client that never touches the network."""

    def __init__(self, session: ProviderSession = None, error: Exception = None):
        super().__init__(base_url="https://auth.example.com/auth/v1", api_key="anon-key", http=MagicMock())
        self.session = session
        self.error = error
        self.calls = []

    def exchange_code_for_session(self, auth_code, code_verifier):
        self.calls.append(("pkce", auth_code, code_verifier))
        if self.error:
            raise self.error
        return self.session

    def refresh_session(self, refresh_token):
        self.calls.append(("refresh_token", refresh_token))
        if self.error:
            raise self.error
        return self.session

    def sign_out(self, access_token):
        self.calls.append(("logout", access_token))
        if self.error:
            raise self.error


@pytest.fixture
def provider_session() -> ProviderSession:
    return ProviderSession(
        access_token="new-access-token",
        refresh_token="new-refresh-token",
        expires_in=3600,
        user={
            "id": "oauth-user",
            "email": "carol@example.com",
            "user_metadata": {"full_name": "Carol", "avatar_url": "https://img/c.png"},
        },
    )


@pytest.fixture
def identity(provider_session) -> FakeIdentityClient:
    fake = FakeIdentityClient(session=provider_session)
    app.dependency_overrides[get_identity_client] = lambda: fake
    return fake


class TestSiteUrl:
    def test_configured_host_gets_trailing_slash(self):
        assert get_site_url() == "https://bento.example.com/"

    @pytest.mark.parametrize("next_path,expected", [
        ("/orders/20250131", "/orders/20250131"),
        (None, "/"),
        ("", "/"),
        ("https://evil.example.com", "/"),
        ("//evil.example.com", "/"),
    ])
    def test_safe_next_path(self, next_path, expected):
        assert safe_next_path(next_path) == expected


class TestLogin:
    """Tests for GET /api/auth/login."""

    def test_redirects_to_provider_with_pkce(self, client: TestClient, identity):
        response = client.get(
            "/api/auth/login",
            params={"provider": "google", "next": "/orders"},
            follow_redirects=False,
        )

        assert response.status_code == 307
        location = urlparse(response.headers["location"])
        assert location.netloc == "auth.example.com"
        assert location.path == "/auth/v1/authorize"

        query = parse_qs(location.query)
        assert query["provider"] == ["google"]
        assert query["code_challenge_method"] == ["s256"]
        assert query["redirect_to"] == ["https://bento.example.com/api/auth/callback?next=%2Forders"]
        assert CODE_VERIFIER_COOKIE in response.cookies


class TestCallback:
    """Tests for GET /api/auth/callback."""

    def test_exchanges_code_and_sets_cookies(self, client: TestClient, identity, db):
        client.cookies.set(CODE_VERIFIER_COOKIE, "verifier-123")

        response = client.get(
            "/api/auth/callback",
            params={"code": "auth-code", "next": "/menus"},
            follow_redirects=False,
        )

        assert response.status_code == 307
        assert response.headers["location"] == "https://bento.example.com/menus"
        assert identity.calls == [("pkce", "auth-code", "verifier-123")]
        assert response.cookies[ACCESS_TOKEN_COOKIE] == "new-access-token"
        assert response.cookies[REFRESH_TOKEN_COOKIE] == "new-refresh-token"

        profile = db.get(UserProfile, "oauth-user")
        assert profile is not None
        assert profile.name == "Carol"
        assert profile.email == "carol@example.com"
        assert profile.is_admin is False

    def test_unsafe_next_falls_back_to_root(self, client: TestClient, identity):
        client.cookies.set(CODE_VERIFIER_COOKIE, "verifier-123")

        response = client.get(
            "/api/auth/callback",
            params={"code": "auth-code", "next": "//evil.example.com"},
            follow_redirects=False,
        )

        assert response.headers["location"] == "https://bento.example.com/"

    def test_failed_exchange_still_redirects(self, client: TestClient, identity):
        identity.error = IdentityProviderError("bad code")
        client.cookies.set(CODE_VERIFIER_COOKIE, "verifier-123")

        response = client.get(
            "/api/auth/callback",
            params={"code": "auth-code"},
            follow_redirects=False,
        )

        assert response.status_code == 307
        assert ACCESS_TOKEN_COOKIE not in response.cookies

    def test_missing_verifier_skips_exchange(self, client: TestClient, identity):
        response = client.get(
            "/api/auth/callback",
            params={"code": "auth-code"},
            follow_redirects=False,
        )

        assert response.status_code == 307
        assert identity.calls == []


class TestRefresh:
    """Tests for POST /api/auth/refresh."""

    def test_refresh_from_body(self, client: TestClient, identity):
        response = client.post("/api/auth/refresh", json={"refresh_token": "old-refresh"})

        assert response.status_code == 200
        data = response.json()
        assert data["access_token"] == "new-access-token"
        assert data["refresh_token"] == "new-refresh-token"
        assert data["token_type"] == "bearer"
        assert identity.calls == [("refresh_token", "old-refresh")]

    def test_refresh_from_cookie(self, client: TestClient, identity):
        client.cookies.set(REFRESH_TOKEN_COOKIE, "cookie-refresh")

        response = client.post("/api/auth/refresh")

        assert response.status_code == 200
        assert identity.calls == [("refresh_token", "cookie-refresh")]

    def test_refresh_missing_token(self, client: TestClient, identity):
        response = client.post("/api/auth/refresh")

        assert response.status_code == 401

    def test_refresh_rejected(self, client: TestClient, identity):
        identity.error = IdentityProviderError("expired")

        response = client.post("/api/auth/refresh", json={"refresh_token": "old-refresh"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired refresh token"


class TestLogout:
    """Tests for POST /api/auth/logout."""

    def test_logout_signs_out_at_provider(self, client: TestClient, identity):
        response = client.post("/api/auth/logout", headers={"Authorization": "Bearer some-token"})

        assert response.status_code == 200
        assert identity.calls == [("logout", "some-token")]

    def test_logout_ignores_provider_errors(self, client: TestClient, identity):
        identity.error = IdentityProviderError("down")

        response = client.post("/api/auth/logout", headers={"Authorization": "Bearer some-token"})

        assert response.status_code == 200


class TestCurrentUser:
    """Tests for GET /api/me and the auth dependencies."""

    def test_me_creates_profile(self, client: TestClient, user_headers, db):
        response = client.get("/api/me", headers=user_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "user-1"
        assert data["name"] == "Alice"
        assert data["is_admin"] is False
        assert "email" not in data
        assert db.get(UserProfile, "user-1").email == "alice@example.com"

    def test_me_from_cookie(self, client: TestClient):
        client.cookies.set(ACCESS_TOKEN_COOKIE, auth_header("user-9")["Authorization"][7:])

        response = client.get("/api/me")

        assert response.status_code == 200
        assert response.json()["id"] == "user-9"

    def test_admin_email_promoted(self, client: TestClient, admin_headers):
        response = client.get("/api/me", headers=admin_headers)

        assert response.json()["is_admin"] is True

    def test_me_unauthenticated(self, client: TestClient):
        response = client.get("/api/me")

        assert response.status_code == 401
        assert response.json()["detail"] == "Not authenticated"

    def test_me_invalid_token(self, client: TestClient):
        response = client.get("/api/me", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired access token"

    def test_profile_updated_when_claims_change(self, client: TestClient, db):
        client.get("/api/me", headers=auth_header("user-5", name="Old Name"))
        client.get("/api/me", headers=auth_header("user-5", name="New Name"))

        db.expire_all()
        assert db.get(UserProfile, "user-5").name == "New Name"


class TestIdentityProviderClient:
    """Tests for the HTTP calls made to the identity provider."""

    def _client(self, response=None, error=None):
        http = MagicMock()
        if error:
            http.post.side_effect = error
        else:
            http.post.return_value = response
        return IdentityProviderClient(
            base_url="https://auth.example.com/auth/v1/",
            api_key="anon-key",
            timeout=3,
            http=http,
        ), http

    def test_exchange_code(self):
        response = MagicMock(status_code=200)
        response.json.return_value = {
            "access_token": "at", "refresh_token": "rt", "expires_in": 3600, "user": {"id": "u1"},
        }
        identity, http = self._client(response)

        session = identity.exchange_code_for_session("code", "verifier")

        assert session.access_token == "at"
        assert session.user == {"id": "u1"}
        args, kwargs = http.post.call_args
        assert args[0] == "https://auth.example.com/auth/v1/token"
        assert kwargs["params"] == {"grant_type": "pkce"}
        assert kwargs["json"] == {"auth_code": "code", "code_verifier": "verifier"}
        assert kwargs["headers"]["apikey"] == "anon-key"
        assert kwargs["timeout"] == 3

    def test_rejected_grant(self):
        response = MagicMock(status_code=400, text="invalid grant")
        identity, _ = self._client(response)

        with pytest.raises(IdentityProviderError):
            identity.refresh_session("rt")

    def test_unreachable_provider(self):
        identity, _ = self._client(error=requests.ConnectionError("refused"))

        with pytest.raises(IdentityProviderError):
            identity.refresh_session("rt")

    def test_sign_out_sends_bearer(self):
        identity, http = self._client(MagicMock(status_code=204))

        identity.sign_out("at")

        args, kwargs = http.post.call_args
        assert args[0] == "https://auth.example.com/auth/v1/logout"
        assert kwargs["headers"]["Authorization"] == "Bearer at"
