"""
Auth-related Pydantic schemas for request/response validation.
"""
from typing import Optional

from pydantic import BaseModel


class TokenRefresh(BaseModel):
    """Schema for token refresh request. Falls back to the refresh cookie when omitted."""
    refresh_token: Optional[str] = None


class Session(BaseModel):
    """Schema for a provider session returned to API clients."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """Schema for the current user's profile."""
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_admin: bool = False
