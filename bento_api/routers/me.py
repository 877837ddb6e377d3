"""
Current-user endpoints: profile and personal ordering stats.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bento_api.core.deps import get_current_user
from bento_api.db.session import get_db
from bento_api.models.user_profile import UserProfile
from bento_api.schemas.auth import UserResponse
from bento_api.schemas.stats import UserStatsResponse
from bento_api.services.stats import StatsService

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=UserResponse)
def get_me(current_user: UserProfile = Depends(get_current_user)) -> UserResponse:
    """
    Get the current authenticated user's profile.
    """
    return UserResponse(
        id=current_user.id,
        name=current_user.name,
        avatar_url=current_user.avatar_url,
        is_admin=current_user.is_admin,
    )


@router.get("/stats", response_model=UserStatsResponse)
def get_my_stats(
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    """Orders joined, total spent and the five most ordered dishes of the current user."""
    return UserStatsResponse(**StatsService(db).user_stats(current_user.id))
