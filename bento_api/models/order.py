"""
Order models: the shared daily order and its line items.
"""
import enum
import uuid
from sqlalchemy import Column, String, Boolean, Integer, DateTime, Enum, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship

from bento_api.db.base import Base


class OrderStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class Order(Base):
    """
    A single day's shared order for one restaurant.

    The primary key is the order date formatted as YYYYMMDD, so there is at
    most one order per day.
    """
    __tablename__ = "orders"

    id = Column(String(8), primary_key=True)
    restaurant_id = Column(Uuid, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=OrderStatus.ACTIVE,
    )
    created_by = Column(String(64), ForeignKey("user_profiles.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    auto_close_at = Column(DateTime(timezone=True), nullable=True)

    restaurant = relationship("Restaurant", back_populates="orders")
    order_items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.created_at",
    )


class OrderItem(Base):
    """One user's selection within an order."""
    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(String(8), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(Uuid, ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("user_profiles.id"), nullable=False, index=True)
    no_sauce = Column(Boolean, nullable=False, default=False)
    additional = Column(Integer, nullable=True)  # Index into Restaurant.additional
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="order_items")
    menu_item = relationship("MenuItem", back_populates="order_items")
