"""
Menu item model.
"""
import uuid
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship

from bento_api.db.base import Base


class MenuItem(Base):
    """A dish offered by a restaurant."""
    __tablename__ = "menu_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    type = Column(String(100), nullable=True)  # Category label, e.g. "Noodles"
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    restaurant = relationship("Restaurant", back_populates="menu_items")
    order_items = relationship("OrderItem", back_populates="menu_item", cascade="all, delete-orphan")
