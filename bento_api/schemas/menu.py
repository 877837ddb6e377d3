"""
Restaurant and menu item Pydantic schemas for API request/response models.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class MenuItemInput(BaseModel):
    """
    Menu item as submitted by the admin forms or the image parser.

    Prices arrive as numbers or free-form strings; anything unparseable is 0.
    """
    id: Optional[UUID] = None
    name: str = ""
    price: Decimal = Decimal("0")
    type: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("price", mode="before")
    @classmethod
    def parse_price(cls, v: Any) -> Decimal:
        if v is None or v == "":
            return Decimal("0")
        try:
            price = Decimal(str(v).strip())
        except InvalidOperation:
            return Decimal("0")
        return price if price.is_finite() else Decimal("0")

    @field_validator("type", mode="before")
    @classmethod
    def blank_type_to_none(cls, v: Any) -> Optional[str]:
        return _blank_to_none(v)


class RestaurantCreate(BaseModel):
    """Request model for creating a restaurant with its menu."""
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    additional: Optional[List[str]] = None
    menu_items: List[MenuItemInput] = Field(default_factory=list)

    @field_validator("name", "phone", mode="before")
    @classmethod
    def strip_required(cls, v: Any) -> str:
        return str(v or "").strip()


class RestaurantUpdate(BaseModel):
    """
    Request model for updating a restaurant.

    `menu_items`, when present, is the full desired menu.
    """
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, min_length=1)
    additional: Optional[List[str]] = None
    menu_items: Optional[List[MenuItemInput]] = None

    @field_validator("name", "phone", mode="before")
    @classmethod
    def strip_optional(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v).strip()


class MenuItemResponse(BaseModel):
    """Response model for a single menu item."""
    id: UUID
    restaurant_id: UUID
    name: str
    price: Decimal
    type: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RestaurantResponse(BaseModel):
    """Response model for a restaurant without its menu."""
    id: UUID
    name: str
    phone: str
    additional: Optional[List[str]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RestaurantDetailResponse(RestaurantResponse):
    """Restaurant with its menu items."""
    menu_items: List[MenuItemResponse] = Field(default_factory=list)


class ParsedMenuItem(BaseModel):
    name: str
    price: Decimal
    type: Optional[str] = None


class MenuParseResponse(BaseModel):
    """Menu items extracted from an uploaded menu image."""
    menu_items: List[ParsedMenuItem]


class RestaurantItemStats(BaseModel):
    id: UUID
    name: str
    order_count: int
    total_revenue: Decimal


class RestaurantStatsResponse(BaseModel):
    """Aggregate ordering statistics for one restaurant."""
    order_count: int
    total_spending: Decimal
    items: List[RestaurantItemStats]
