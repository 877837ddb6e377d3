"""
Leaderboard router.
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from bento_api.core.caching import RANK_MAX_AGE, set_cache_control
from bento_api.db.session import get_db
from bento_api.schemas.stats import RankResponse
from bento_api.services.stats import StatsService

router = APIRouter(prefix="/rank", tags=["rank"])


@router.get("", response_model=RankResponse)
def get_rank(response: Response, db: Session = Depends(get_db)):
    """
    Top five spenders, top five by dish variety and top five by attendance.

    Users tied on a value are grouped together.
    """
    set_cache_control(response, RANK_MAX_AGE)
    return RankResponse(**StatsService(db).leaderboard())
