"""
Orders router: the daily shared order and its lifecycle.
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from bento_api.core.caching import ORDER_DETAIL_MAX_AGE, ORDERS_MAX_AGE, set_cache_control
from bento_api.core.deps import get_optional_user, require_admin
from bento_api.db.session import get_db
from bento_api.models.order import Order, OrderItem
from bento_api.models.restaurant import Restaurant
from bento_api.models.user_profile import UserProfile
from bento_api.schemas.menu import MenuItemResponse, RestaurantResponse
from bento_api.schemas.order import (
    MenuItemBrief,
    OrderCreate,
    OrderDetailResponse,
    OrderItemDetail,
    OrderItemSummary,
    OrderResponse,
    OrderStats,
    OrderSummaryResponse,
    OrderUser,
    RestaurantBrief,
)
from bento_api.services.order_lifecycle import OrderConflictError, OrderLifecycleService
from bento_api.services.profiles import get_profile_names
from bento_api.services.stats import summarize_order

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_or_404(db: Session, order_id: str, with_items: bool = False) -> Order:
    """Load an order, raise 404 if not found."""
    query = select(Order).where(Order.id == order_id)
    if with_items:
        query = query.options(
            selectinload(Order.restaurant),
            selectinload(Order.order_items).selectinload(OrderItem.menu_item),
        )

    order = db.execute(query).scalar_one_or_none()
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )
    return order


def _order_summary(order: Order) -> OrderSummaryResponse:
    restaurant = order.restaurant
    return OrderSummaryResponse(
        **OrderResponse.model_validate(order).model_dump(),
        restaurant=RestaurantBrief(
            id=restaurant.id,
            name=restaurant.name,
            additional=restaurant.additional,
        ) if restaurant else None,
        order_items=[
            OrderItemSummary(
                **_order_item_fields(item),
                menu_item=MenuItemBrief(name=item.menu_item.name, price=item.menu_item.price)
                if item.menu_item else None,
            )
            for item in order.order_items
        ],
        stats=OrderStats(**summarize_order(order)),
    )


def _order_item_fields(item: OrderItem) -> dict:
    return {
        "id": item.id,
        "order_id": item.order_id,
        "menu_item_id": item.menu_item_id,
        "user_id": item.user_id,
        "no_sauce": item.no_sauce,
        "additional": item.additional,
        "created_at": item.created_at,
    }


def order_detail(order: Order, profiles: Optional[Dict[str, UserProfile]]) -> OrderDetailResponse:
    """
    Shape an order for its detail page.

    `profiles` is None for anonymous callers, in which case no user is
    attached to any item. Only names are exposed, never emails.
    """
    items = []
    for item in order.order_items:
        user = None
        if profiles is not None and item.user_id in profiles:
            user = OrderUser(name=profiles[item.user_id].name)
        items.append(OrderItemDetail(
            **_order_item_fields(item),
            menu_item=MenuItemResponse.model_validate(item.menu_item) if item.menu_item else None,
            user=user,
        ))

    return OrderDetailResponse(
        **OrderResponse.model_validate(order).model_dump(),
        restaurant=RestaurantResponse.model_validate(order.restaurant) if order.restaurant else None,
        order_items=items,
    )


@router.get("", response_model=list[OrderSummaryResponse])
def list_orders(response: Response, db: Session = Depends(get_db)):
    """
    List all orders, newest first, with per-order statistics.
    """
    OrderLifecycleService(db).close_expired_orders()

    orders = db.execute(
        select(Order)
        .options(
            selectinload(Order.restaurant),
            selectinload(Order.order_items).selectinload(OrderItem.menu_item),
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
    ).scalars().all()

    set_cache_control(response, ORDERS_MAX_AGE)
    return [_order_summary(order) for order in orders]


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    order_data: OrderCreate,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(require_admin),
):
    """
    Open the shared order for a date.

    The order id is the date as YYYYMMDD; only one order may exist per day.
    """
    restaurant = db.get(Restaurant, order_data.restaurant_id)
    if not restaurant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Restaurant not found"
        )

    try:
        order = OrderLifecycleService(db).create_order(
            restaurant_id=restaurant.id,
            order_date=order_data.order_date,
            created_by=current_user.id,
            auto_close_at=order_data.auto_close_at,
        )
    except OrderConflictError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return OrderResponse.model_validate(order)


@router.get("/{order_id}", response_model=OrderDetailResponse)
def get_order(
    order_id: str,
    response: Response,
    db: Session = Depends(get_db),
    current_user: Optional[UserProfile] = Depends(get_optional_user),
):
    """
    Get an order with its restaurant and items.

    Signed-in callers also see who ordered each item.
    """
    OrderLifecycleService(db).close_expired_orders()
    order = get_order_or_404(db, order_id, with_items=True)

    profiles = None
    if current_user is not None:
        profiles = get_profile_names(db, (item.user_id for item in order.order_items))

    set_cache_control(response, ORDER_DETAIL_MAX_AGE, private=True)
    return order_detail(order, profiles)


@router.post("/{order_id}/close", response_model=OrderResponse)
def close_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(require_admin),
):
    """Stop accepting items for an order."""
    order = get_order_or_404(db, order_id)
    return OrderResponse.model_validate(OrderLifecycleService(db).close_order(order))


@router.post("/{order_id}/reopen", response_model=OrderResponse)
def reopen_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(require_admin),
):
    """Accept items again for a closed order."""
    order = get_order_or_404(db, order_id)
    return OrderResponse.model_validate(OrderLifecycleService(db).reopen_order(order))


@router.delete("/{order_id}")
def delete_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(require_admin),
):
    """Delete an empty order."""
    order = get_order_or_404(db, order_id)

    try:
        OrderLifecycleService(db).delete_order(order)
    except OrderConflictError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"success": True}
