"""
Order and order item Pydantic schemas.

Nested relation keys (`restaurants`, `menu_items`) keep the names the web
client reads; Python code uses the singular field names.
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bento_api.models.order import OrderStatus
from bento_api.schemas.menu import MenuItemResponse, RestaurantResponse


class OrderCreate(BaseModel):
    """Request model for opening the order of a given day."""
    restaurant_id: UUID
    order_date: date
    auto_close_at: Optional[datetime] = None

    @field_validator("order_date", mode="before")
    @classmethod
    def accept_datetime_strings(cls, v):
        # Forms post either "2025-01-31" or a full ISO timestamp
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    @field_validator("auto_close_at")
    @classmethod
    def normalize_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return None
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class OrderItemCreate(BaseModel):
    """Request model for joining an order with one menu item."""
    order_id: str
    menu_item_id: UUID
    no_sauce: bool = False
    additional: Optional[int] = None


class MenuItemBrief(BaseModel):
    name: str
    price: Decimal


class RestaurantBrief(BaseModel):
    id: UUID
    name: str
    additional: Optional[List[str]] = None


class OrderUser(BaseModel):
    """Public view of the user behind an order item. Email is never exposed."""
    name: Optional[str] = None


class OrderItemResponse(BaseModel):
    """Response model for a created order item."""
    id: UUID
    order_id: str
    menu_item_id: UUID
    user_id: str
    no_sauce: bool
    additional: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderItemSummary(OrderItemResponse):
    """Order item as listed in the orders overview."""
    menu_item: Optional[MenuItemBrief] = Field(default=None, alias="menu_items")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class OrderItemDetail(OrderItemResponse):
    """Order item as shown on the order page."""
    menu_item: Optional[MenuItemResponse] = Field(default=None, alias="menu_items")
    user: Optional[OrderUser] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class OrderResponse(BaseModel):
    """Response model for an order row."""
    id: str
    restaurant_id: UUID
    status: OrderStatus
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    auto_close_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MenuItemCombination(BaseModel):
    no_sauce: bool
    additional: Optional[int] = None
    additional_label: Optional[str] = None
    count: int


class MenuItemCount(BaseModel):
    name: str
    count: int
    combinations: List[MenuItemCombination] = Field(default_factory=list)


class OrderStats(BaseModel):
    user_count: int
    menu_item_names: List[str]
    menu_items: List[MenuItemCount]
    total_items: int
    total_price: Decimal


class OrderSummaryResponse(OrderResponse):
    """Order with its restaurant, items and aggregate stats for the overview list."""
    restaurant: Optional[RestaurantBrief] = Field(default=None, alias="restaurants")
    order_items: List[OrderItemSummary] = Field(default_factory=list)
    stats: OrderStats

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class OrderDetailResponse(OrderResponse):
    """Order with the full restaurant and detailed items."""
    restaurant: Optional[RestaurantResponse] = Field(default=None, alias="restaurants")
    order_items: List[OrderItemDetail] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
