import uuid
from sqlalchemy import Column, String, DateTime, JSON, Uuid, func
from sqlalchemy.orm import relationship
from bento_api.db.base import Base


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    # Custom option labels (e.g. "rice +10", "extra egg"); order items pick one by index
    additional = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    menu_items = relationship(
        "MenuItem",
        back_populates="restaurant",
        cascade="all, delete-orphan",
        order_by="MenuItem.created_at",
    )
    orders = relationship("Order", back_populates="restaurant", cascade="all, delete-orphan")
