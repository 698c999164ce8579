"""
Tasks router — all endpoints under /tasks.

Every route requires a valid JWT (via ``get_current_user``).  Routes that
address a single task additionally pass the ownership gate: only the task's
owner, or an admin, may read, change or delete it.

Endpoints
─────────
  GET    /tasks             List the caller's tasks
  POST   /tasks             Create a task owned by the caller
  GET    /tasks/{task_id}   Get a single task
  PUT    /tasks/{task_id}   Update a task
  DELETE /tasks/{task_id}   Delete a task
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from taskboard.dao.base import TaskRepository
from taskboard.dependencies.api import get_current_user, get_task_owner_resolver, require_ownership
from taskboard.dependencies.dao import get_task_repository
from taskboard.schemas.common import SuccessResponse, success_response
from taskboard.schemas.tasks import (
    CreateTaskRequest,
    Task,
    TaskListResponse,
    TaskStatus,
    UpdateTaskRequest,
)
from taskboard.schemas.users import CurrentUser
from taskboard.services.tasks import (
    create_task,
    fetch_task,
    fetch_user_tasks,
    remove_task,
    update_task,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])

require_task_owner = require_ownership(get_task_owner_resolver, "task_id")


@router.get("", response_model=SuccessResponse[TaskListResponse], summary="List the caller's tasks")
def list_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    sort_by: Literal["created_at", "status"] = "created_at",
    current_user: CurrentUser = Depends(get_current_user),
    repo: TaskRepository = Depends(get_task_repository),
) -> SuccessResponse:
    logger.info("GET /tasks called by '%s'", current_user.id)
    tasks = fetch_user_tasks(current_user.id, repo, status=status_filter, sort_by=sort_by)
    return success_response(TaskListResponse(count=len(tasks), tasks=tasks), "Tasks fetched")


@router.post(
    "",
    response_model=SuccessResponse[Task],
    status_code=status.HTTP_201_CREATED,
    summary="Create a task",
)
def post_task(
    body: CreateTaskRequest,
    current_user: CurrentUser = Depends(get_current_user),
    repo: TaskRepository = Depends(get_task_repository),
) -> SuccessResponse:
    logger.info("POST /tasks called by '%s'", current_user.id)
    return success_response(create_task(body, current_user.id, repo), "Task created successfully")


@router.get("/{task_id}", response_model=SuccessResponse[Task], summary="Get a task")
def get_task(
    task_id: str,
    current_user: CurrentUser = Depends(require_task_owner),
    repo: TaskRepository = Depends(get_task_repository),
) -> SuccessResponse:
    logger.info("GET /tasks/%s called by '%s'", task_id, current_user.id)
    return success_response(fetch_task(task_id, repo), "Task fetched")


@router.put("/{task_id}", response_model=SuccessResponse[Task], summary="Update a task")
def put_task(
    task_id: str,
    body: UpdateTaskRequest,
    current_user: CurrentUser = Depends(require_task_owner),
    repo: TaskRepository = Depends(get_task_repository),
) -> SuccessResponse:
    logger.info("PUT /tasks/%s called by '%s'", task_id, current_user.id)
    return success_response(update_task(task_id, body, repo), "Task updated successfully")


@router.delete("/{task_id}", response_model=SuccessResponse[None], summary="Delete a task")
def delete_task(
    task_id: str,
    current_user: CurrentUser = Depends(require_task_owner),
    repo: TaskRepository = Depends(get_task_repository),
) -> SuccessResponse:
    logger.info("DELETE /tasks/%s called by '%s'", task_id, current_user.id)
    remove_task(task_id, repo)
    return success_response(None, "Task deleted successfully")
