"""
Notifications router — the caller's notifications under /notifications.

Endpoints
─────────
  GET    /notifications                      Paginated, newest first
  PATCH  /notifications/read                 Mark some (or all) as read
  DELETE /notifications/{notification_id}    Delete one (recipient only)
"""

import logging

from fastapi import APIRouter, Depends, Query

from taskboard.dao.base import NotificationRepository
from taskboard.dependencies.api import (
    get_current_user,
    get_notification_owner_resolver,
    require_ownership,
)
from taskboard.dependencies.dao import get_notification_repository
from taskboard.schemas.common import SuccessResponse, paginated_response, success_response
from taskboard.schemas.notifications import MarkReadRequest, MarkReadResult, Notification
from taskboard.schemas.users import CurrentUser
from taskboard.services.notifications import (
    fetch_notifications,
    mark_notifications_read,
    remove_notification,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=SuccessResponse[list[Notification]], summary="List notifications")
def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(15, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    repo: NotificationRepository = Depends(get_notification_repository),
) -> SuccessResponse:
    items, total = fetch_notifications(current_user.id, repo, page=page, limit=limit)
    return paginated_response(items, page, limit, total, "Notifications fetched successfully")


@router.patch("/read", response_model=SuccessResponse[MarkReadResult], summary="Mark as read")
def mark_read(
    body: MarkReadRequest,
    current_user: CurrentUser = Depends(get_current_user),
    repo: NotificationRepository = Depends(get_notification_repository),
) -> SuccessResponse:
    updated = mark_notifications_read(current_user.id, body.notification_ids, repo)
    return success_response(MarkReadResult(updated=updated), "Notifications marked as read")


@router.delete(
    "/{notification_id}",
    response_model=SuccessResponse[None],
    summary="Delete a notification",
)
def delete_notification(
    notification_id: str,
    current_user: CurrentUser = Depends(
        require_ownership(get_notification_owner_resolver, "notification_id", bypass_roles=())
    ),
    repo: NotificationRepository = Depends(get_notification_repository),
) -> SuccessResponse:
    logger.info("DELETE /notifications/%s called by '%s'", notification_id, current_user.id)
    remove_notification(notification_id, repo)
    return success_response(None, "Notification deleted successfully")
