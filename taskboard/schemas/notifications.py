"""
Pydantic schemas for notifications.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

NotificationType = Literal["welcome", "profile_like", "profile_unlike"]


class NotificationData(BaseModel):
    profile_id: Optional[str] = None
    action_url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class Notification(BaseModel):
    notification_id: str
    recipient: str
    sender: str
    type: NotificationType
    message: str = Field(..., max_length=200)
    is_read: bool = False
    data: NotificationData = Field(default_factory=NotificationData)
    created_at: str


class MarkReadRequest(BaseModel):
    """Ids to mark as read; an empty list marks every notification."""

    notification_ids: list[str] = Field(default_factory=list)


class MarkReadResult(BaseModel):
    updated: int
