"""
Abstract DAOs (Data Access Objects) for users, tasks and notifications.

Each repository defines the persistence contract that the service layer and
the authentication gate depend on.  Concrete implementations (DynamoDB,
in-memory for tests, …) must fulfil these interfaces without the services or
routers knowing which backend is in use.

Conventions shared by every implementation
──────────────────────────────────────────
* "Not found" is ``None`` (or ``False``), never an exception.
* Infrastructure failures are raised as ``StoreUnavailable``.
* Unique-key violations are raised as ``ConflictError``.
"""

from abc import ABC, abstractmethod
from typing import Optional

from taskboard.schemas.notifications import Notification
from taskboard.schemas.tasks import Task
from taskboard.schemas.users import User, UserWithSecret


class UserRepository(ABC):
    """Credential store adapter: persistence interface for principals."""

    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[User]:
        """Return the user with *user_id*, without its password digest."""

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[User]:
        """Case-insensitive lookup by email, without the password digest."""

    @abstractmethod
    def find_by_user_name(self, user_name: str) -> Optional[User]:
        """Case-insensitive lookup by user name."""

    @abstractmethod
    def find_by_email_with_secret(self, email: str) -> Optional[UserWithSecret]:
        """
        Lookup by email including ``password_hash``.

        This is the only read path that exposes the digest; it is reserved
        for login and password-change flows.
        """

    @abstractmethod
    def create(self, user: UserWithSecret) -> User:
        """
        Persist a new user.

        Raises ``ConflictError`` (with ``field`` set to ``"email"`` or
        ``"user_name"``) when a unique key is already taken.  The check is
        atomic, so concurrent duplicates resolve to exactly one winner.
        """

    @abstractmethod
    def update(self, user_id: str, changes: dict) -> Optional[User]:
        """Apply *changes* to non-key fields; ``None`` if the user is gone."""

    @abstractmethod
    def set_password_hash(self, user_id: str, password_hash: str) -> bool:
        """Replace the stored digest; ``False`` if the user is gone."""

    @abstractmethod
    def delete(self, user_id: str) -> Optional[User]:
        """Delete the user and release its unique keys; return the old record."""

    @abstractmethod
    def list_all(self) -> list[User]:
        """Return every stored user."""


class TaskRepository(ABC):
    """Persistence interface for tasks."""

    @abstractmethod
    def save(self, task: Task) -> None:
        """Insert or fully replace *task*."""

    @abstractmethod
    def get(self, task_id: str) -> Optional[Task]:
        """Return the task, or ``None``."""

    @abstractmethod
    def list_by_owner(self, user_id: str) -> list[Task]:
        """Return every task whose ``user_id`` is *user_id*."""

    @abstractmethod
    def delete(self, task_id: str) -> bool:
        """Return ``True`` if the task existed and was removed."""


class NotificationRepository(ABC):
    """Persistence interface for notifications."""

    @abstractmethod
    def save(self, notification: Notification) -> None:
        """Insert or fully replace *notification*."""

    @abstractmethod
    def get(self, notification_id: str) -> Optional[Notification]:
        """Return the notification, or ``None``."""

    @abstractmethod
    def list_for_recipient(self, recipient: str) -> list[Notification]:
        """Return the recipient's notifications, newest first."""

    @abstractmethod
    def mark_read(self, recipient: str, notification_ids: list[str]) -> int:
        """
        Mark the recipient's notifications as read.

        An empty *notification_ids* marks all of them.  Returns the number of
        notifications changed.
        """

    @abstractmethod
    def delete(self, notification_id: str) -> bool:
        """Return ``True`` if the notification existed and was removed."""

    @abstractmethod
    def delete_for_user(self, user_id: str) -> int:
        """Delete notifications sent or received by *user_id*; return the count."""
