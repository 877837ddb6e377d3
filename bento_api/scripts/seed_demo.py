"""
Seed a demo admin, restaurant and today's order.

Run with: python -m bento_api.scripts.seed_demo
"""
from datetime import date

from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from bento_api.core.config import get_settings
from bento_api.models.order import Order
from bento_api.models.restaurant import Restaurant
from bento_api.models.user_profile import UserProfile
from bento_api.schemas.menu import MenuItemInput, RestaurantCreate
from bento_api.services.menu_sync import MenuSyncService
from bento_api.services.order_lifecycle import OrderLifecycleService, order_id_for

DEMO_ADMIN_ID = "demo-admin"
DEMO_RESTAURANT_NAME = "Bento Corner"
DEMO_MENU = [
    ("Chicken Leg Bento", "120", "Bento"),
    ("Pork Chop Bento", "110", "Bento"),
    ("Braised Pork Rice", "60", "Rice"),
    ("Beef Noodle Soup", "150", "Noodles"),
    ("Veggie Bento", "95", "Bento"),
]
DEMO_OPTIONS = ["Extra rice +10", "Fried egg +15"]


def seed():
    settings = get_settings()
    engine = create_engine(settings.DATABASE_URL)
    Session = sessionmaker(bind=engine)
    db = Session()

    try:
        print("Checking for demo admin...")
        admin = db.get(UserProfile, DEMO_ADMIN_ID)
        if not admin:
            print("Creating demo admin...")
            admin = UserProfile(
                id=DEMO_ADMIN_ID,
                name="Demo Admin",
                email="admin@bento.local",
                is_admin=True,
            )
            db.add(admin)
            db.commit()
        else:
            print("Demo admin already exists.")

        restaurant = db.execute(
            select(Restaurant).where(Restaurant.name == DEMO_RESTAURANT_NAME)
        ).scalars().first()
        if not restaurant:
            print("Creating demo restaurant...")
            restaurant = MenuSyncService(db).create_restaurant(RestaurantCreate(
                name=DEMO_RESTAURANT_NAME,
                phone="02-1234-5678",
                additional=DEMO_OPTIONS,
                menu_items=[
                    MenuItemInput(name=name, price=price, type=item_type)
                    for name, price, item_type in DEMO_MENU
                ],
            ))

        today = date.today()
        if db.get(Order, order_id_for(today)) is None:
            print("Opening today's order...")
            OrderLifecycleService(db).create_order(
                restaurant_id=restaurant.id,
                order_date=today,
                created_by=admin.id,
            )

        print("Seeding complete!")
        print(f"Today's order: {order_id_for(today)}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
