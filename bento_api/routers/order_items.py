"""
Order items router: users adding and removing their own dishes.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bento_api.core.deps import get_current_user
from bento_api.db.session import get_db
from bento_api.models.menu import MenuItem
from bento_api.models.order import Order, OrderItem, OrderStatus
from bento_api.models.user_profile import UserProfile
from bento_api.schemas.order import OrderItemCreate, OrderItemResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/order-items", tags=["order-items"])


@router.post("", response_model=OrderItemResponse, status_code=status.HTTP_201_CREATED)
def create_order_item(
    item_data: OrderItemCreate,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    """
    Add one dish for the current user to an active order.

    `additional` selects one of the restaurant's custom options by index.
    """
    order = db.get(Order, item_data.order_id)
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )

    if order.status != OrderStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Order is closed"
        )

    menu_item = db.get(MenuItem, item_data.menu_item_id)
    if not menu_item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Menu item not found"
        )

    if menu_item.restaurant_id != order.restaurant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Menu item does not belong to this order's restaurant"
        )

    if item_data.additional is not None:
        options = order.restaurant.additional or []
        if not 0 <= item_data.additional < len(options):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid additional option"
            )

    order_item = OrderItem(
        order_id=order.id,
        menu_item_id=menu_item.id,
        user_id=current_user.id,
        no_sauce=item_data.no_sauce,
        additional=item_data.additional,
    )
    db.add(order_item)
    db.commit()
    db.refresh(order_item)

    return OrderItemResponse.model_validate(order_item)


@router.delete("/{item_id}")
def delete_order_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    """
    Remove an order item.

    Users may remove their own items while the order is active; admins may
    remove any item at any time.
    """
    order_item = db.get(OrderItem, item_id)
    if not order_item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order item not found"
        )

    if order_item.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only remove your own items"
        )

    if order_item.order.status != OrderStatus.ACTIVE and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Order is closed"
        )

    db.delete(order_item)
    db.commit()
    logger.info("User %s removed order item %s", current_user.id, item_id)

    return {"success": True}
