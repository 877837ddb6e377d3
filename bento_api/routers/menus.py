"""
Restaurants ("menus") router.

Anyone can browse restaurants and their menus; admins create, edit and
delete them, and can pre-fill a menu from a photo.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from bento_api.core.caching import MENU_DETAIL_MAX_AGE, MENUS_MAX_AGE, set_cache_control
from bento_api.core.config import get_settings
from bento_api.core.deps import require_admin
from bento_api.db.session import get_db
from bento_api.models.restaurant import Restaurant
from bento_api.models.user_profile import UserProfile
from bento_api.schemas.menu import (
    MenuParseResponse,
    ParsedMenuItem,
    RestaurantCreate,
    RestaurantDetailResponse,
    RestaurantResponse,
    RestaurantStatsResponse,
    RestaurantUpdate,
)
from bento_api.services.menu_parser import (
    MenuParseError,
    MenuParserNotConfigured,
    MenuParserService,
    get_menu_parser,
)
from bento_api.services.menu_sync import MenuSyncService, RestaurantInUseError
from bento_api.services.stats import StatsService

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/menus", tags=["menus"])


def get_restaurant_or_404(db: Session, restaurant_id: UUID, with_menu: bool = False) -> Restaurant:
    """Load a restaurant, raise 404 if not found."""
    query = select(Restaurant).where(Restaurant.id == restaurant_id)
    if with_menu:
        query = query.options(selectinload(Restaurant.menu_items))

    restaurant = db.execute(query).scalar_one_or_none()
    if not restaurant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Menu not found"
        )
    return restaurant


@router.get("", response_model=list[RestaurantResponse])
def list_restaurants(response: Response, db: Session = Depends(get_db)):
    """List all restaurants, newest first."""
    restaurants = db.execute(
        select(Restaurant).order_by(Restaurant.created_at.desc(), Restaurant.name.asc())
    ).scalars().all()

    set_cache_control(response, MENUS_MAX_AGE)
    return [RestaurantResponse.model_validate(restaurant) for restaurant in restaurants]


@router.post("", response_model=RestaurantDetailResponse, status_code=status.HTTP_201_CREATED)
def create_restaurant(
    restaurant_data: RestaurantCreate,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(require_admin),
):
    """
    Create a restaurant with its menu.

    Menu items without a name or price are skipped.
    """
    restaurant = MenuSyncService(db).create_restaurant(restaurant_data)
    logger.info("User %s created restaurant %s", current_user.id, restaurant.id)
    return RestaurantDetailResponse.model_validate(get_restaurant_or_404(db, restaurant.id, with_menu=True))


@router.post("/parse-image", response_model=MenuParseResponse)
async def parse_menu_image(
    file: UploadFile = File(...),
    current_user: UserProfile = Depends(require_admin),
    parser: MenuParserService = Depends(get_menu_parser),
):
    """
    Extract menu items from a photo of a printed menu.

    Accepts image files (JPEG, PNG, ...). The result is meant to pre-fill the
    create/edit forms; nothing is stored.
    """
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File must be an image (JPEG, PNG, etc.)"
        )

    contents = await file.read()
    if len(contents) > settings.MAX_MENU_IMAGE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail=f"File size must be less than {settings.MAX_MENU_IMAGE_BYTES // (1024 * 1024)}MB"
        )

    try:
        items = parser.parse_menu_image(contents, mime_type=file.content_type)
    except MenuParserNotConfigured as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except MenuParseError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return MenuParseResponse(
        menu_items=[ParsedMenuItem(name=item.name, price=item.price, type=item.type) for item in items]
    )


@router.get("/{restaurant_id}", response_model=RestaurantDetailResponse)
def get_restaurant(restaurant_id: UUID, response: Response, db: Session = Depends(get_db)):
    """Get a restaurant with its menu items."""
    restaurant = get_restaurant_or_404(db, restaurant_id, with_menu=True)
    set_cache_control(response, MENU_DETAIL_MAX_AGE)
    return RestaurantDetailResponse.model_validate(restaurant)


@router.put("/{restaurant_id}", response_model=RestaurantDetailResponse)
def update_restaurant(
    restaurant_id: UUID,
    update_data: RestaurantUpdate,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(require_admin),
):
    """
    Update a restaurant's details and, optionally, its whole menu.

    When `menu_items` is given it replaces the menu: known ids are updated,
    new entries inserted, and missing items deleted unless they were ordered.
    """
    restaurant = get_restaurant_or_404(db, restaurant_id)
    MenuSyncService(db).update_restaurant(restaurant, update_data)
    db.expire_all()
    return RestaurantDetailResponse.model_validate(get_restaurant_or_404(db, restaurant_id, with_menu=True))


@router.delete("/{restaurant_id}")
def delete_restaurant(
    restaurant_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(require_admin),
):
    """Delete a restaurant with its menu and past orders. Refused while an order is active."""
    restaurant = get_restaurant_or_404(db, restaurant_id)

    try:
        MenuSyncService(db).delete_restaurant(restaurant)
    except RestaurantInUseError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"success": True}


@router.get("/{restaurant_id}/stats", response_model=RestaurantStatsResponse)
def get_restaurant_stats(restaurant_id: UUID, db: Session = Depends(get_db)):
    """How often each dish of the restaurant has been ordered."""
    restaurant = get_restaurant_or_404(db, restaurant_id)
    return RestaurantStatsResponse(**StatsService(db).restaurant_stats(restaurant.id))
