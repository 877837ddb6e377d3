"""
Security utilities for provider-issued JWTs and the OAuth PKCE handshake.

Tokens are minted by the identity provider; this service only verifies them.
"""
import base64
import hashlib
import secrets
from dataclasses import dataclass, field
from typing import Any, Optional

from jose import jwt, JWTError

from bento_api.core.config import get_settings

settings = get_settings()

ACCESS_TOKEN_COOKIE = "bento-access-token"
REFRESH_TOKEN_COOKIE = "bento-refresh-token"
CODE_VERIFIER_COOKIE = "bento-code-verifier"


@dataclass
class TokenUser:
    """Identity extracted from a verified access token."""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    claims: dict = field(default_factory=dict)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a provider access token. Returns payload or None if invalid."""
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
        )
    except JWTError:
        return None

    if not payload.get("sub"):
        return None
    return payload


def token_user_from_claims(claims: dict[str, Any]) -> TokenUser:
    """
    Build a TokenUser from JWT claims or a provider user object.

    Both shapes carry `user_metadata`; the subject is `sub` in claims and `id`
    in user objects.
    """
    metadata = claims.get("user_metadata") or {}
    name = metadata.get("full_name") or metadata.get("name")
    return TokenUser(
        id=str(claims.get("sub") or claims.get("id")),
        email=claims.get("email") or None,
        name=name or None,
        avatar_url=metadata.get("avatar_url") or metadata.get("picture") or None,
        claims=claims,
    )


def generate_code_verifier() -> str:
    """Random PKCE code verifier (RFC 7636: 43-128 unreserved characters)."""
    return secrets.token_urlsafe(64)[:128]


def code_challenge_for(verifier: str) -> str:
    """S256 code challenge: base64url(sha256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
