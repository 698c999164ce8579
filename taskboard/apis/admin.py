"""
Admin router — user management under /admin.  Every route requires the
``admin`` role.

Endpoints
─────────
  GET    /admin/users             Paginated list of users (?search=)
  DELETE /admin/users/{user_id}   Delete a user and their notifications
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from taskboard.dao.base import NotificationRepository, UserRepository
from taskboard.dependencies.api import require_roles
from taskboard.dependencies.dao import (
    get_email_service,
    get_notification_repository,
    get_user_repository,
)
from taskboard.schemas.common import SuccessResponse, paginated_response, success_response
from taskboard.schemas.users import CurrentUser, User
from taskboard.services.email import EmailService
from taskboard.services.users import delete_user_as_admin, list_users_page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

require_admin = require_roles("admin")


@router.get("/users", response_model=SuccessResponse[list[User]], summary="List users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100, description="Match on name or email."),
    admin: CurrentUser = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
) -> SuccessResponse:
    logger.info("GET /admin/users called by '%s'", admin.id)
    items, total = list_users_page(users, page=page, limit=limit, search=search)
    return paginated_response(items, page, limit, total, "Users fetched successfully")


@router.delete("/users/{user_id}", response_model=SuccessResponse[User], summary="Delete a user")
def delete_user(
    user_id: str,
    background_tasks: BackgroundTasks,
    admin: CurrentUser = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
    notifications: NotificationRepository = Depends(get_notification_repository),
    email_service: EmailService = Depends(get_email_service),
) -> SuccessResponse:
    logger.info("DELETE /admin/users/%s called by '%s'", user_id, admin.id)
    deleted = delete_user_as_admin(admin.id, user_id, users, notifications)
    background_tasks.add_task(email_service.send_account_deletion, deleted.email, deleted.user_name)
    return success_response(deleted, "User deleted successfully")
