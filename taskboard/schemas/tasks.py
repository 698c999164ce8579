"""
Pydantic schemas for the task endpoints.
"""

from typing import Annotated, Literal, Optional

from pydantic import BaseModel, BeforeValidator, Field

TaskStatus = Literal["pending", "in-progress", "completed"]


def _strip(v):
    return v.strip() if isinstance(v, str) else v


StrippedStr = Annotated[str, BeforeValidator(_strip)]


class Task(BaseModel):
    task_id: str
    user_id: str
    title: str
    description: str
    status: TaskStatus = "pending"
    created_at: str
    updated_at: str


# ── Request models ────────────────────────────────────────────────────────────

class CreateTaskRequest(BaseModel):
    """Request body for POST /tasks."""

    title: StrippedStr = Field(..., min_length=3, max_length=100, examples=["Write report"])
    description: StrippedStr = Field(
        ...,
        min_length=10,
        max_length=500,
        examples=["Quarterly report for the platform team"],
    )
    status: TaskStatus = "pending"


class UpdateTaskRequest(BaseModel):
    """Request body for PUT /tasks/{task_id}; omitted fields are left unchanged."""

    title: Optional[StrippedStr] = Field(None, min_length=3, max_length=100)
    description: Optional[StrippedStr] = Field(None, min_length=10, max_length=500)
    status: Optional[TaskStatus] = None


class TaskListResponse(BaseModel):
    count: int
    tasks: list[Task]
