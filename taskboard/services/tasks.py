"""
Task service layer — orchestrates task validation and DAO persistence.

Each function receives a ``TaskRepository`` instance (injected by the router
via FastAPI's dependency system).  Ownership is enforced by the
authorization gate before a handler calls into this module, so the
functions here act on whatever task id they are given.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Literal, Optional

from taskboard.dao.base import TaskRepository
from taskboard.errors import NotFoundError
from taskboard.schemas.tasks import CreateTaskRequest, Task, TaskStatus, UpdateTaskRequest

logger = logging.getLogger(__name__)

_STATUS_ORDER = {"pending": 0, "in-progress": 1, "completed": 2}


def create_task(request: CreateTaskRequest, owner_id: str, repo: TaskRepository) -> Task:
    now = datetime.now(timezone.utc).isoformat()
    task = Task(
        task_id=uuid.uuid4().hex,
        user_id=owner_id,
        title=request.title,
        description=request.description,
        status=request.status,
        created_at=now,
        updated_at=now,
    )
    repo.save(task)
    logger.info("User '%s' created task '%s'.", owner_id, task.task_id)
    return task


def fetch_task(task_id: str, repo: TaskRepository) -> Task:
    task = repo.get(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


def fetch_user_tasks(
    owner_id: str,
    repo: TaskRepository,
    status: Optional[TaskStatus] = None,
    sort_by: Literal["created_at", "status"] = "created_at",
) -> list[Task]:
    """Return the owner's tasks, optionally filtered by status, newest first."""
    tasks = repo.list_by_owner(owner_id)
    if status is not None:
        tasks = [t for t in tasks if t.status == status]
    tasks.sort(key=lambda t: t.created_at, reverse=True)
    if sort_by == "status":
        tasks.sort(key=lambda t: _STATUS_ORDER[t.status])
    return tasks


def update_task(task_id: str, request: UpdateTaskRequest, repo: TaskRepository) -> Task:
    task = fetch_task(task_id, repo)
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    updated = task.model_copy(
        update={**changes, "updated_at": datetime.now(timezone.utc).isoformat()}
    )
    repo.save(updated)
    logger.info("Task '%s' updated (%s).", task_id, ", ".join(sorted(changes)) or "no fields")
    return updated


def remove_task(task_id: str, repo: TaskRepository) -> None:
    if not repo.delete(task_id):
        raise NotFoundError("Task not found")


def task_owner(task_id: str, repo: TaskRepository) -> str:
    """Owner resolver for the ownership gate."""
    return fetch_task(task_id, repo).user_id
