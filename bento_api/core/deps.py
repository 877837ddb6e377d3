"""
FastAPI dependencies for authentication and authorization.
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from bento_api.core.security import ACCESS_TOKEN_COOKIE, decode_access_token, token_user_from_claims
from bento_api.db.session import get_db
from bento_api.models.user_profile import UserProfile
from bento_api.services.profiles import upsert_profile

bearer_scheme = HTTPBearer(auto_error=False)


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[UserProfile]:
    """Return the caller's profile, or None for anonymous or invalid tokens."""
    token = _extract_token(request, credentials)
    if not token:
        return None

    payload = decode_access_token(token)
    if payload is None:
        return None

    return upsert_profile(db, token_user_from_claims(payload))


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> UserProfile:
    """Require an authenticated caller."""
    token = _extract_token(request, credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired access token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return upsert_profile(db, token_user_from_claims(payload))


def require_admin(current_user: UserProfile = Depends(get_current_user)) -> UserProfile:
    """Require an authenticated admin."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: admin access required",
        )
    return current_user
