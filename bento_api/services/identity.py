"""
Identity provider client.

Handles the server side of the OAuth authorization-code + PKCE flow against a
GoTrue-compatible auth API: building the authorize URL, exchanging the code
for a session, refreshing sessions and signing out.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from bento_api.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class IdentityProviderError(Exception):
    """Raised when the identity provider rejects a request or is unreachable."""


@dataclass
class ProviderSession:
    """Session issued by the identity provider."""
    access_token: str
    refresh_token: Optional[str]
    expires_in: Optional[int]
    user: Dict[str, Any]


def get_site_url() -> str:
    """
    Public base URL of the site, always with a scheme and a trailing slash.

    Hosts without a scheme are assumed to be served over https.
    """
    url = settings.SITE_URL or "http://localhost:3000/"
    url = url if url.startswith("http") else f"https://{url}"
    return url if url.endswith("/") else f"{url}/"


def safe_next_path(next_path: Optional[str]) -> str:
    """Only allow site-relative redirect targets."""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//"):
        return "/"
    return next_path


class IdentityProviderClient:
    """Thin HTTP client for the identity provider's auth endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.AUTH_PROVIDER_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.AUTH_PROVIDER_API_KEY
        self.timeout = timeout or settings.AUTH_PROVIDER_TIMEOUT_SECONDS
        self.http = http or requests.Session()

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def authorize_url(self, provider: str, redirect_to: str, code_challenge: str) -> str:
        """URL the browser is sent to in order to sign in with `provider`."""
        query = urlencode({
            "provider": provider,
            "redirect_to": redirect_to,
            "code_challenge": code_challenge,
            "code_challenge_method": "s256",
        })
        return f"{self.base_url}/authorize?{query}"

    def _post_token(self, grant_type: str, body: Dict[str, Any]) -> ProviderSession:
        try:
            response = self.http.post(
                f"{self.base_url}/token",
                params={"grant_type": grant_type},
                json=body,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise IdentityProviderError(f"Identity provider unreachable: {e}") from e

        if response.status_code != 200:
            raise IdentityProviderError(
                f"Identity provider rejected {grant_type} grant ({response.status_code}): {response.text[:200]}"
            )

        data = response.json()
        if not data.get("access_token"):
            raise IdentityProviderError("Identity provider response has no access token")

        return ProviderSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
            user=data.get("user") or {},
        )

    def exchange_code_for_session(self, auth_code: str, code_verifier: str) -> ProviderSession:
        """Exchange an authorization code (plus PKCE verifier) for a session."""
        return self._post_token("pkce", {"auth_code": auth_code, "code_verifier": code_verifier})

    def refresh_session(self, refresh_token: str) -> ProviderSession:
        """Trade a refresh token for a new session."""
        return self._post_token("refresh_token", {"refresh_token": refresh_token})

    def sign_out(self, access_token: str) -> None:
        """Revoke the session behind `access_token`."""
        try:
            response = self.http.post(
                f"{self.base_url}/logout",
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise IdentityProviderError(f"Identity provider unreachable: {e}") from e

        if response.status_code >= 400:
            raise IdentityProviderError(f"Sign-out failed ({response.status_code})")


def get_identity_client() -> IdentityProviderClient:
    """Dependency that provides the identity provider client."""
    return IdentityProviderClient()
