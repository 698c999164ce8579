"""
User profile, like and admin operations.
"""

import logging
from typing import Optional

from taskboard.dao.base import NotificationRepository, UserRepository
from taskboard.errors import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from taskboard.schemas.users import UpdateProfileRequest, User

logger = logging.getLogger(__name__)


def fetch_user(user_id: str, users: UserRepository) -> User:
    user = users.find_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def update_profile(user_id: str, request: UpdateProfileRequest, users: UserRepository) -> User:
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationFailedError("No profile fields to update")
    updated = users.update(user_id, changes)
    if updated is None:
        raise NotFoundError("User not found")
    return updated


def like_profile(liker_id: str, profile_id: str, users: UserRepository) -> tuple[User, User]:
    """
    Record that *liker_id* likes *profile_id*.

    Returns ``(liker, liked)`` so the caller can notify the liked user.
    """
    if liker_id == profile_id:
        raise ValidationFailedError("You cannot like your own profile")
    liker = fetch_user(liker_id, users)
    liked = fetch_user(profile_id, users)
    if profile_id in liker.likes:
        raise ConflictError("Profile already liked")
    liker = users.update(liker_id, {"likes": [*liker.likes, profile_id]}) or liker
    logger.info("User '%s' liked '%s'.", liker_id, profile_id)
    return liker, liked


def unlike_profile(liker_id: str, profile_id: str, users: UserRepository) -> User:
    liker = fetch_user(liker_id, users)
    if profile_id not in liker.likes:
        raise ValidationFailedError("Profile not liked yet")
    remaining = [p for p in liker.likes if p != profile_id]
    logger.info("User '%s' unliked '%s'.", liker_id, profile_id)
    return users.update(liker_id, {"likes": remaining}) or liker


def _matches(user: User, term: str) -> bool:
    return term in user.name.casefold() or term in user.email.casefold()


def list_users_page(
    users: UserRepository,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
) -> tuple[list[User], int]:
    """
    Return one page of users (newest first) and the total count.

    *search* keeps users whose name or email contains it, ignoring case;
    the total counts matches only.
    """
    all_users = users.list_all()
    term = (search or "").strip().casefold()
    if term:
        all_users = [u for u in all_users if _matches(u, term)]
    all_users.sort(key=lambda u: u.created_at, reverse=True)
    start = (page - 1) * limit
    return all_users[start:start + limit], len(all_users)


def delete_user_as_admin(
    admin_id: str,
    user_id: str,
    users: UserRepository,
    notifications: NotificationRepository,
) -> User:
    """Delete *user_id* and every notification they sent or received."""
    if admin_id == user_id:
        raise ForbiddenError("You cannot delete your own account")
    deleted = users.delete(user_id)
    if deleted is None:
        raise NotFoundError("User not found")
    removed = notifications.delete_for_user(user_id)
    logger.info("Admin '%s' deleted user '%s' and %d notification(s).", admin_id, user_id, removed)
    return deleted
