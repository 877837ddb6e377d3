"""
Per-user statistics and leaderboard schemas.
"""
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class TopRestaurantItem(BaseModel):
    name: str  # "<restaurant> <menu item>"
    count: int


class UserStatsResponse(BaseModel):
    """Ordering history of the current user."""
    order_count: int
    total_spending: Decimal
    top_restaurant_items: List[TopRestaurantItem]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RankUser(_CamelModel):
    user_id: str
    user_name: str
    avatar_url: Optional[str] = None


class RankGroup(_CamelModel):
    """All users sharing one leaderboard value."""
    value: Union[int, float]
    users: List[RankUser]


class RankResponse(_CamelModel):
    top_spenders: List[RankGroup]
    top_variety: List[RankGroup]
    top_participants: List[RankGroup]
