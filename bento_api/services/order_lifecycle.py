"""
Order lifecycle: open, close, reopen, delete, and scheduled auto-close.
"""
import logging
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from bento_api.models.order import Order, OrderItem, OrderStatus

logger = logging.getLogger(__name__)


class OrderConflictError(Exception):
    """Raised when a lifecycle change violates an order rule."""


def order_id_for(order_date: date) -> str:
    """Orders are keyed by their date: 2025-01-31 -> "20250131"."""
    return order_date.strftime("%Y%m%d")


class OrderLifecycleService:
    """Service for state changes of the daily order."""

    def __init__(self, db: Session):
        self.db = db

    def create_order(
        self,
        restaurant_id: UUID,
        order_date: date,
        created_by: str,
        auto_close_at: Optional[datetime] = None,
    ) -> Order:
        """Open the order for `order_date`. There is at most one order per day."""
        order_id = order_id_for(order_date)

        if self.db.get(Order, order_id) is not None:
            raise OrderConflictError(f"An order for {order_id} already exists, use the existing order")

        order = Order(
            id=order_id,
            restaurant_id=restaurant_id,
            status=OrderStatus.ACTIVE,
            created_by=created_by,
            auto_close_at=auto_close_at,
        )
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)

        logger.info("Opened order %s for restaurant %s", order.id, restaurant_id)
        return order

    def close_order(self, order: Order) -> Order:
        """Close an order. Closing a closed order changes nothing."""
        if order.status == OrderStatus.CLOSED:
            return order

        order.status = OrderStatus.CLOSED
        order.closed_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(order)

        logger.info("Closed order %s", order.id)
        return order

    def reopen_order(self, order: Order) -> Order:
        """Reopen a closed order and drop any pending auto-close."""
        if order.status == OrderStatus.ACTIVE:
            return order

        order.status = OrderStatus.ACTIVE
        order.closed_at = None
        order.auto_close_at = None
        self.db.commit()
        self.db.refresh(order)

        logger.info("Reopened order %s", order.id)
        return order

    def delete_order(self, order: Order) -> None:
        """Delete an order. Only empty orders can be deleted."""
        has_items = self.db.execute(
            select(OrderItem.id).where(OrderItem.order_id == order.id).limit(1)
        ).first()
        if has_items:
            raise OrderConflictError("Cannot delete order: it still has items, delete them first")

        self.db.delete(order)
        self.db.commit()
        logger.info("Deleted order %s", order.id)

    def close_expired_orders(self, now: Optional[datetime] = None) -> int:
        """
        Close active orders whose auto_close_at has passed.

        Returns:
            Number of orders closed
        """
        now = now or datetime.now(timezone.utc)
        result = self.db.execute(
            update(Order)
            .where(
                Order.status == OrderStatus.ACTIVE,
                Order.auto_close_at.is_not(None),
                Order.auto_close_at <= now,
            )
            .values(status=OrderStatus.CLOSED, closed_at=now)
            .execution_options(synchronize_session=False)
        )
        closed = result.rowcount or 0
        if closed:
            self.db.commit()
            self.db.expire_all()
            logger.info("Auto-closed %d orders", closed)
        return closed
