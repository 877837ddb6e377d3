"""
Restaurant and menu maintenance.

Creating a restaurant inserts its initial menu; updating it with a menu list
reconciles the stored items against that list.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from bento_api.models.menu import MenuItem
from bento_api.models.order import Order, OrderItem, OrderStatus
from bento_api.models.restaurant import Restaurant
from bento_api.schemas.menu import MenuItemInput, RestaurantCreate, RestaurantUpdate

logger = logging.getLogger(__name__)


class RestaurantInUseError(Exception):
    """Raised when deleting a restaurant that still has an active order."""


@dataclass
class MenuSyncResult:
    """What a menu reconciliation did."""
    updated: int = 0
    inserted: int = 0
    deleted: int = 0
    kept_ordered: List[UUID] = field(default_factory=list)


class MenuSyncService:
    """Service for creating, updating and deleting restaurants with their menus."""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _is_orderable(item: MenuItemInput) -> bool:
        return bool(item.name) and item.price != Decimal("0")

    def create_restaurant(self, data: RestaurantCreate) -> Restaurant:
        """
        Create a restaurant and its initial menu.

        Items without a name or with a zero price are skipped.
        """
        restaurant = Restaurant(
            name=data.name,
            phone=data.phone,
            additional=data.additional or None,
        )
        self.db.add(restaurant)
        self.db.flush()

        for item in data.menu_items:
            if not self._is_orderable(item):
                continue
            self.db.add(MenuItem(
                restaurant_id=restaurant.id,
                name=item.name,
                price=item.price,
                type=item.type,
            ))

        self.db.commit()
        self.db.refresh(restaurant)
        return restaurant

    def update_restaurant(self, restaurant: Restaurant, data: RestaurantUpdate) -> Optional[MenuSyncResult]:
        """
        Apply a partial update. Returns the sync result when a menu was given.
        """
        update_dict = data.model_dump(exclude_unset=True, exclude={"menu_items"})
        for field_name, value in update_dict.items():
            if field_name in ("name", "phone") and value is None:
                continue
            setattr(restaurant, field_name, value)
        restaurant.updated_at = datetime.now(timezone.utc)

        result = None
        if data.menu_items is not None:
            result = self.sync_menu_items(restaurant, data.menu_items)

        self.db.commit()
        self.db.refresh(restaurant)
        return result

    def sync_menu_items(self, restaurant: Restaurant, items: List[MenuItemInput]) -> MenuSyncResult:
        """
        Make the stored menu match `items`.

        Entries whose id belongs to this restaurant are updated; everything
        else is inserted. Stored items absent from the list are deleted unless
        they have been ordered, in which case they are kept so order history
        still resolves.
        """
        result = MenuSyncResult()
        existing = {
            item.id: item
            for item in self.db.execute(
                select(MenuItem).where(MenuItem.restaurant_id == restaurant.id)
            ).scalars().all()
        }
        provided_ids: Set[UUID] = set()

        for item in items:
            if item.id is not None and item.id in existing:
                provided_ids.add(item.id)
                menu_item = existing[item.id]
                # Fields left out of the entry keep their stored values
                if item.name:
                    menu_item.name = item.name
                if "price" in item.model_fields_set:
                    menu_item.price = item.price
                if "type" in item.model_fields_set:
                    menu_item.type = item.type
                result.updated += 1
            elif not item.name:
                continue
            else:
                self.db.add(MenuItem(
                    restaurant_id=restaurant.id,
                    name=item.name,
                    price=item.price,
                    type=item.type,
                ))
                result.inserted += 1

        ids_to_delete = [item_id for item_id in existing if item_id not in provided_ids]
        if ids_to_delete:
            ordered_ids = set(self.db.execute(
                select(OrderItem.menu_item_id)
                .where(OrderItem.menu_item_id.in_(ids_to_delete))
                .distinct()
            ).scalars().all())

            for item_id in ids_to_delete:
                if item_id in ordered_ids:
                    result.kept_ordered.append(item_id)
                    continue
                self.db.delete(existing[item_id])
                result.deleted += 1

        self.db.flush()
        if result.kept_ordered:
            logger.info(
                "Kept %d ordered menu items of restaurant %s that were removed from the menu",
                len(result.kept_ordered), restaurant.id,
            )
        return result

    def delete_restaurant(self, restaurant: Restaurant) -> None:
        """Delete a restaurant with its menu and order history."""
        active_order = self.db.execute(
            select(Order.id)
            .where(Order.restaurant_id == restaurant.id, Order.status == OrderStatus.ACTIVE)
            .limit(1)
        ).first()
        if active_order:
            raise RestaurantInUseError("Cannot delete restaurant: it still has an active order")

        self.db.delete(restaurant)
        self.db.commit()
        logger.info("Deleted restaurant %s", restaurant.id)
