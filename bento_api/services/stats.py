"""
Ordering statistics: per-order summaries, per-user history, per-restaurant
popularity and the leaderboard.
"""
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Set, Tuple, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from bento_api.models.menu import MenuItem
from bento_api.models.order import Order, OrderItem
from bento_api.models.restaurant import Restaurant
from bento_api.models.user_profile import UserProfile
from bento_api.services.profiles import get_profile_names

UNKNOWN_USER_NAME = "Unknown"
TOP_N = 5

Number = Union[int, Decimal]


@dataclass
class UserTotals:
    """Running totals for one user across all orders."""
    user_id: str
    total_spending: Decimal = Decimal("0")
    menu_item_ids: Set[UUID] = field(default_factory=set)
    order_ids: Set[str] = field(default_factory=set)


def summarize_order(order: Order) -> dict:
    """
    Aggregate an order's items.

    Dishes are sorted by count, most ordered first; ties keep the order in
    which each dish first appears. Each dish is also broken down by option
    combination (`no_sauce` and `additional`), sorted the same way.
    """
    items = order.order_items or []
    counts: Dict[str, int] = {}
    combinations: Dict[str, Dict[Tuple[bool, Optional[int]], int]] = defaultdict(dict)
    total_price = Decimal("0")

    for item in items:
        menu_item = item.menu_item
        if menu_item is None:
            continue
        counts[menu_item.name] = counts.get(menu_item.name, 0) + 1
        key = (bool(item.no_sauce), item.additional)
        combinations[menu_item.name][key] = combinations[menu_item.name].get(key, 0) + 1
        total_price += Decimal(menu_item.price or 0)

    options = (order.restaurant.additional if order.restaurant else None) or []

    def option_label(index: Optional[int]) -> Optional[str]:
        if index is None or not 0 <= index < len(options):
            return None
        return options[index]

    # sorted() is stable, so equal counts stay in first-appearance order
    ranked = sorted(counts.items(), key=lambda entry: -entry[1])
    menu_items = [
        {
            "name": name,
            "count": count,
            "combinations": [
                {
                    "no_sauce": no_sauce,
                    "additional": additional,
                    "additional_label": option_label(additional),
                    "count": combo_count,
                }
                for (no_sauce, additional), combo_count in sorted(
                    combinations[name].items(), key=lambda entry: -entry[1]
                )
            ],
        }
        for name, count in ranked
    ]

    return {
        "user_count": len({item.user_id for item in items}),
        "menu_item_names": list(counts.keys()),
        "menu_items": menu_items,
        "total_items": len(items),
        "total_price": total_price,
    }


def group_top_values(
    values: Dict[str, Number],
    profiles: Dict[str, UserProfile],
    limit: int = TOP_N,
) -> List[dict]:
    """
    Group users by value and keep the `limit` highest values.

    Users sharing a value share a rank. Within a rank users keep the order
    they were first seen in.
    """
    groups: Dict[Number, List[dict]] = defaultdict(list)
    for user_id, value in values.items():
        profile = profiles.get(user_id)
        groups[value].append({
            "user_id": user_id,
            "user_name": (profile.name if profile else None) or UNKNOWN_USER_NAME,
            "avatar_url": profile.avatar_url if profile else None,
        })

    ranked = sorted(groups.items(), key=lambda entry: entry[0], reverse=True)[:limit]
    return [
        {"value": float(value) if isinstance(value, Decimal) else value, "users": users}
        for value, users in ranked
    ]


class StatsService:
    """Service for read-only aggregations over orders."""

    def __init__(self, db: Session):
        self.db = db

    def user_stats(self, user_id: str) -> dict:
        """
        Orders joined, money spent and favourite dishes of one user.

        Favourites are "<restaurant> <item>" combinations, top five by count.
        """
        rows = self.db.execute(
            select(
                OrderItem.order_id,
                OrderItem.menu_item_id,
                MenuItem.name.label("menu_item_name"),
                MenuItem.price,
                Restaurant.name.label("restaurant_name"),
            )
            .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
            .join(Restaurant, MenuItem.restaurant_id == Restaurant.id)
            .where(OrderItem.user_id == user_id)
            .order_by(OrderItem.created_at)
        ).all()

        order_ids: Set[str] = set()
        total_spending = Decimal("0")
        combo_counts: Counter = Counter()
        combo_names: Dict[UUID, str] = {}

        for row in rows:
            order_ids.add(row.order_id)
            total_spending += Decimal(row.price or 0)
            if row.restaurant_name and row.menu_item_name:
                combo_names[row.menu_item_id] = f"{row.restaurant_name} {row.menu_item_name}"
                combo_counts[row.menu_item_id] += 1

        top_items = [
            {"name": combo_names[menu_item_id], "count": count}
            for menu_item_id, count in combo_counts.most_common(TOP_N)
        ]

        return {
            "order_count": len(order_ids),
            "total_spending": total_spending,
            "top_restaurant_items": top_items,
        }

    def restaurant_stats(self, restaurant_id: UUID) -> dict:
        """Popularity of each dish of a restaurant."""
        menu_items = self.db.execute(
            select(MenuItem).where(MenuItem.restaurant_id == restaurant_id)
        ).scalars().all()

        rows = self.db.execute(
            select(OrderItem.order_id, OrderItem.menu_item_id, MenuItem.price)
            .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
            .where(MenuItem.restaurant_id == restaurant_id)
        ).all()

        order_ids: Set[str] = set()
        counts: Counter = Counter()
        revenue: Dict[UUID, Decimal] = defaultdict(lambda: Decimal("0"))
        for row in rows:
            order_ids.add(row.order_id)
            counts[row.menu_item_id] += 1
            revenue[row.menu_item_id] += Decimal(row.price or 0)

        items = [
            {
                "id": item.id,
                "name": item.name,
                "order_count": counts[item.id],
                "total_revenue": revenue[item.id],
            }
            for item in menu_items
        ]
        items.sort(key=lambda entry: (-entry["order_count"], entry["name"]))

        return {
            "order_count": len(order_ids),
            "total_spending": sum(revenue.values(), Decimal("0")),
            "items": items,
        }

    def _user_totals(self) -> Dict[str, UserTotals]:
        rows = self.db.execute(
            select(OrderItem.user_id, OrderItem.menu_item_id, OrderItem.order_id, MenuItem.price)
            .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
            .order_by(OrderItem.created_at)
        ).all()

        totals: Dict[str, UserTotals] = {}
        for row in rows:
            if not row.user_id:
                continue
            user = totals.setdefault(row.user_id, UserTotals(user_id=row.user_id))
            user.total_spending += Decimal(row.price or 0)
            user.menu_item_ids.add(row.menu_item_id)
            user.order_ids.add(row.order_id)
        return totals

    def leaderboard(self) -> dict:
        """Top five spenders, most adventurous eaters and most regular attendees."""
        totals = self._user_totals()
        profiles = get_profile_names(self.db, totals.keys())

        def rank(metric: Callable[[UserTotals], Number]) -> List[dict]:
            return group_top_values(
                {user_id: metric(user) for user_id, user in totals.items()},
                profiles,
            )

        return {
            "top_spenders": rank(lambda user: user.total_spending),
            "top_variety": rank(lambda user: len(user.menu_item_ids)),
            "top_participants": rank(lambda user: len(user.order_ids)),
        }
