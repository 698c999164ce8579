"""
Notification service layer.

Notifications are created after state changes (registration, profile
likes).  Creation is fire-and-forget: routers schedule ``dispatch`` as a
background task and a store failure there is logged rather than failing the
request that triggered it.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from taskboard.dao.base import NotificationRepository
from taskboard.errors import NotFoundError, StoreUnavailable
from taskboard.schemas.notifications import Notification, NotificationData, NotificationType
from taskboard.schemas.users import User

logger = logging.getLogger(__name__)


def build_notification(
    recipient: str,
    sender: str,
    type: NotificationType,
    message: str,
    data: Optional[NotificationData] = None,
) -> Notification:
    return Notification(
        notification_id=uuid.uuid4().hex,
        recipient=recipient,
        sender=sender,
        type=type,
        message=message[:200],
        data=data or NotificationData(),
        created_at=datetime.now(timezone.utc).isoformat(),
    )


def dispatch(notification: Notification, repo: NotificationRepository) -> bool:
    """Persist *notification*; returns ``False`` when the store is unavailable."""
    try:
        repo.save(notification)
    except StoreUnavailable:
        logger.exception(
            "Could not store '%s' notification for '%s'.",
            notification.type,
            notification.recipient,
        )
        return False
    logger.info("Notification '%s' stored for '%s'.", notification.type, notification.recipient)
    return True


def welcome_notification(user: User) -> Notification:
    return build_notification(
        recipient=user.user_id,
        sender=user.user_id,
        type="welcome",
        message=f"Welcome to Taskboard, {user.name}! Complete your profile.",
        data=NotificationData(
            action_url=f"/users/{user.user_id}/profile",
            metadata={
                "completion_tips": [
                    "Complete your bio",
                    "Create your first task",
                ]
            },
        ),
    )


def like_notification(liker: User, profile_id: str, liked: bool = True) -> Notification:
    verb = "liked" if liked else "unliked"
    return build_notification(
        recipient=profile_id,
        sender=liker.user_id,
        type="profile_like" if liked else "profile_unlike",
        message=f"{liker.user_name} {verb} your profile",
        data=NotificationData(
            profile_id=profile_id,
            action_url=f"/users/{liker.user_id}/profile",
            metadata={"liker_name": liker.name, "liker_user_name": liker.user_name},
        ),
    )


def fetch_notifications(
    recipient: str,
    repo: NotificationRepository,
    page: int = 1,
    limit: int = 15,
) -> tuple[list[Notification], int]:
    """Return one page of the recipient's notifications and the total count."""
    notifications = repo.list_for_recipient(recipient)
    start = (page - 1) * limit
    return notifications[start:start + limit], len(notifications)


def mark_notifications_read(
    recipient: str,
    notification_ids: list[str],
    repo: NotificationRepository,
) -> int:
    return repo.mark_read(recipient, notification_ids)


def remove_notification(notification_id: str, repo: NotificationRepository) -> None:
    if not repo.delete(notification_id):
        raise NotFoundError("Notification not found")


def notification_recipient(notification_id: str, repo: NotificationRepository) -> str:
    """Owner resolver for the ownership gate."""
    notification = repo.get(notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    return notification.recipient
