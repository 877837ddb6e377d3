"""
User profile model.

Accounts live in the identity provider. This table mirrors the fields the
application displays, keyed by the provider's subject id, plus the admin flag.
"""
from sqlalchemy import Column, String, Boolean, DateTime, func

from bento_api.db.base import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=True)
    # Never returned by order, stats or rank responses
    email = Column(String(255), nullable=True, index=True)
    avatar_url = Column(String(1024), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
