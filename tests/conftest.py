"""
Test configuration and fixtures.
"""
import os
import pytest
from decimal import Decimal
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from jose import jwt

# Configure the app before importing it
TEST_JWT_SECRET = "test-jwt-secret-that-is-long-enough-for-hs256-signing"
os.environ["AUTH_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_EMAILS"] = "boss@example.com"
os.environ["AUTH_COOKIE_SECURE"] = "false"
os.environ["AUTH_PROVIDER_URL"] = "https://auth.example.com/auth/v1"
os.environ["SITE_URL"] = "https://bento.example.com"
os.environ.pop("OPENAI_API_KEY", None)

from bento_api.main import app
from bento_api.db.base import Base
from bento_api.db.session import get_db
from bento_api.models.menu import MenuItem
from bento_api.models.restaurant import Restaurant
from bento_api.models.user_profile import UserProfile


# In-memory database shared by every connection of the test engine
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_token(
    user_id: str,
    email: str | None = None,
    name: str | None = None,
    avatar_url: str | None = None,
    secret: str = TEST_JWT_SECRET,
    audience: str = "authenticated",
) -> str:
    """Mint an access token shaped like the identity provider's."""
    claims = {
        "sub": user_id,
        "aud": audience,
        "role": "authenticated",
        "user_metadata": {"full_name": name, "avatar_url": avatar_url},
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_header(user_id: str, **kwargs) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, **kwargs)}"}


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh schema and a session for the test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database session override."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    """Admin by way of ADMIN_EMAILS."""
    return auth_header("admin-1", email="boss@example.com", name="Boss")


@pytest.fixture
def user_headers() -> dict:
    return auth_header("user-1", email="alice@example.com", name="Alice")


@pytest.fixture
def other_user_headers() -> dict:
    return auth_header("user-2", email="bob@example.com", name="Bob")


@pytest.fixture
def sample_restaurant(db: Session) -> Restaurant:
    """A restaurant with three dishes and two custom options."""
    restaurant = Restaurant(
        name="Bento Corner",
        phone="02-1234-5678",
        additional=["Extra rice +10", "Fried egg +15"],
    )
    db.add(restaurant)
    db.flush()

    for name, price, item_type in [
        ("Chicken Bento", Decimal("120.00"), "Bento"),
        ("Pork Bento", Decimal("110.00"), "Bento"),
        ("Beef Noodles", Decimal("150.00"), "Noodles"),
    ]:
        db.add(MenuItem(restaurant_id=restaurant.id, name=name, price=price, type=item_type))

    db.commit()
    db.refresh(restaurant)
    return restaurant


@pytest.fixture
def menu_items(sample_restaurant: Restaurant) -> dict:
    """Dishes of the sample restaurant by name."""
    return {item.name: item for item in sample_restaurant.menu_items}


@pytest.fixture
def profile_factory(db: Session):
    def create(user_id: str, name: str | None = None, email: str | None = None,
               avatar_url: str | None = None, is_admin: bool = False) -> UserProfile:
        profile = UserProfile(id=user_id, name=name, email=email, avatar_url=avatar_url, is_admin=is_admin)
        db.add(profile)
        db.commit()
        return profile
    return create
