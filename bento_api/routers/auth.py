"""
Authentication router: OAuth login/callback with PKCE, session refresh and logout.

Accounts and credentials live in the identity provider; this router only runs
the redirect dance and keeps the provider's tokens in HttpOnly cookies.
"""
import logging
from typing import Optional
from urllib.parse import urlencode, urljoin

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from bento_api.core.config import get_settings
from bento_api.core.security import (
    ACCESS_TOKEN_COOKIE,
    CODE_VERIFIER_COOKIE,
    REFRESH_TOKEN_COOKIE,
    code_challenge_for,
    generate_code_verifier,
    token_user_from_claims,
)
from bento_api.db.session import get_db
from bento_api.schemas.auth import Session as SessionResponse, TokenRefresh
from bento_api.services.identity import (
    IdentityProviderClient,
    IdentityProviderError,
    ProviderSession,
    get_identity_client,
    get_site_url,
    safe_next_path,
)
from bento_api.services.profiles import upsert_profile

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/auth", tags=["auth"])

CODE_VERIFIER_MAX_AGE = 600
REFRESH_TOKEN_MAX_AGE = 60 * 60 * 24 * 30


def _set_session_cookies(response: Response, session: ProviderSession) -> None:
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        session.access_token,
        max_age=session.expires_in,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="lax",
    )
    if session.refresh_token:
        response.set_cookie(
            REFRESH_TOKEN_COOKIE,
            session.refresh_token,
            max_age=REFRESH_TOKEN_MAX_AGE,
            httponly=True,
            secure=settings.AUTH_COOKIE_SECURE,
            samesite="lax",
        )


def _clear_session_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE)


@router.get("/login")
def login(
    provider: str = Query("google", min_length=1, description="Identity provider connection, e.g. google"),
    next_path: Optional[str] = Query("/", alias="next", description="Path to return to after signing in"),
    identity: IdentityProviderClient = Depends(get_identity_client),
) -> RedirectResponse:
    """
    Start the OAuth flow.

    Stores a PKCE verifier in a short-lived cookie and redirects to the
    provider's authorize endpoint.
    """
    verifier = generate_code_verifier()
    callback_url = urljoin(get_site_url(), "api/auth/callback") + "?" + urlencode({"next": safe_next_path(next_path)})

    redirect = RedirectResponse(
        identity.authorize_url(provider, callback_url, code_challenge_for(verifier)),
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )
    redirect.set_cookie(
        CODE_VERIFIER_COOKIE,
        verifier,
        max_age=CODE_VERIFIER_MAX_AGE,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="lax",
    )
    return redirect


@router.get("/callback")
def callback(
    request: Request,
    code: Optional[str] = None,
    next_path: Optional[str] = Query("/", alias="next"),
    db: Session = Depends(get_db),
    identity: IdentityProviderClient = Depends(get_identity_client),
) -> RedirectResponse:
    """
    Finish the OAuth flow.

    Exchanges the authorization code for a session, mirrors the user's
    profile, stores the tokens in cookies and returns to `next`.
    """
    redirect = RedirectResponse(
        urljoin(get_site_url(), safe_next_path(next_path)),
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )

    if code:
        verifier = request.cookies.get(CODE_VERIFIER_COOKIE)
        if not verifier:
            logger.warning("Auth callback without a PKCE verifier cookie; ignoring code")
        else:
            try:
                session = identity.exchange_code_for_session(code, verifier)
            except IdentityProviderError as e:
                logger.warning(f"Code exchange failed: {e}")
            else:
                if session.user:
                    upsert_profile(db, token_user_from_claims(session.user))
                _set_session_cookies(redirect, session)
        redirect.delete_cookie(CODE_VERIFIER_COOKIE)

    return redirect


@router.post("/refresh", response_model=SessionResponse)
def refresh(
    request: Request,
    response: Response,
    token_data: Optional[TokenRefresh] = None,
    identity: IdentityProviderClient = Depends(get_identity_client),
) -> SessionResponse:
    """
    Exchange a refresh token for a new session.

    The token comes from the request body or, failing that, the refresh cookie.
    """
    refresh_token = (token_data.refresh_token if token_data else None) or request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing refresh token",
        )

    try:
        session = identity.refresh_session(refresh_token)
    except IdentityProviderError as e:
        logger.warning(f"Session refresh failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    _set_session_cookies(response, session)
    return SessionResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
    )


@router.post("/logout", status_code=status.HTTP_200_OK)
def logout(
    request: Request,
    response: Response,
    identity: IdentityProviderClient = Depends(get_identity_client),
) -> dict:
    """
    Sign out at the provider (best effort) and drop the session cookies.
    """
    authorization = request.headers.get("Authorization", "")
    access_token = authorization[7:] if authorization.lower().startswith("bearer ") else None
    access_token = access_token or request.cookies.get(ACCESS_TOKEN_COOKIE)

    if access_token:
        try:
            identity.sign_out(access_token)
        except IdentityProviderError as e:
            logger.warning(f"Provider sign-out failed: {e}")

    _clear_session_cookies(response)
    return {"message": "Successfully logged out"}
