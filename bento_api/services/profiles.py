"""
User profile mirroring from identity-provider claims.
"""
import logging
from typing import Dict, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from bento_api.core.config import get_settings
from bento_api.core.security import TokenUser
from bento_api.models.user_profile import UserProfile

logger = logging.getLogger(__name__)
settings = get_settings()


def upsert_profile(db: Session, token_user: TokenUser) -> UserProfile:
    """
    Create or refresh the profile row for an authenticated user.

    Only writes when something changed. Emails listed in ADMIN_EMAILS are
    promoted to admin; nobody is demoted here.
    """
    profile = db.get(UserProfile, token_user.id)
    created = profile is None
    if created:
        profile = UserProfile(id=token_user.id, is_admin=False)
        db.add(profile)

    changed = created
    for field in ("name", "email", "avatar_url"):
        value = getattr(token_user, field)
        if value is not None and getattr(profile, field) != value:
            setattr(profile, field, value)
            changed = True

    if token_user.email and token_user.email.lower() in settings.admin_emails and not profile.is_admin:
        profile.is_admin = True
        changed = True

    if changed:
        db.commit()
        db.refresh(profile)
        if created:
            logger.info("Created profile for user %s", profile.id)

    return profile


def get_profile_names(db: Session, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
    """Map user id -> profile for the given ids (missing ids are simply absent)."""
    ids = {user_id for user_id in user_ids if user_id}
    if not ids:
        return {}

    profiles = db.execute(select(UserProfile).where(UserProfile.id.in_(ids))).scalars().all()
    return {profile.id: profile for profile in profiles}
