import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from taskboard.config import settings
from taskboard.dao.base import NotificationRepository, TaskRepository, UserRepository
from taskboard.dependencies.dao import (
    get_email_service,
    get_notification_repository,
    get_password_hasher,
    get_task_repository,
    get_token_codec,
    get_user_repository,
)
from taskboard.errors import ConflictError
from taskboard.main import app
from taskboard.schemas.notifications import Notification
from taskboard.schemas.tasks import Task
from taskboard.schemas.users import User, UserWithSecret
from taskboard.services.email import EmailService
from taskboard.services.passwords import PasswordHasher
from taskboard.services.tokens import TokenCodec

TEST_SECRET = "test-secret"
STRONG_PASSWORD = "Passw0rd!"


# ── In-memory repositories ────────────────────────────────────────────────────

class InMemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self._users: dict[str, UserWithSecret] = {}
        self._lock = threading.Lock()
        self.lookups = 0

    def _by(self, field: str, value: str) -> Optional[UserWithSecret]:
        value = value.strip().lower()
        return next(
            (u for u in self._users.values() if getattr(u, field).lower() == value), None
        )

    def find_by_id(self, user_id: str) -> Optional[User]:
        self.lookups += 1
        user = self._users.get(user_id)
        return user.public() if user else None

    def find_by_email(self, email: str) -> Optional[User]:
        user = self._by("email", email)
        return user.public() if user else None

    def find_by_user_name(self, user_name: str) -> Optional[User]:
        user = self._by("user_name", user_name)
        return user.public() if user else None

    def find_by_email_with_secret(self, email: str) -> Optional[UserWithSecret]:
        user = self._by("email", email)
        return user.model_copy(deep=True) if user else None

    def create(self, user: UserWithSecret) -> User:
        with self._lock:
            if self._by("email", user.email):
                raise ConflictError("email already exists", field="email")
            if self._by("user_name", user.user_name):
                raise ConflictError("user_name already exists", field="user_name")
            self._users[user.user_id] = user.model_copy(deep=True)
        return user.public()

    def update(self, user_id: str, changes: dict) -> Optional[User]:
        user = self._users.get(user_id)
        if user is None:
            return None
        self._users[user_id] = user.model_copy(update=changes)
        return self._users[user_id].public()

    def set_password_hash(self, user_id: str, password_hash: str) -> bool:
        return self.update(user_id, {"password_hash": password_hash}) is not None

    def delete(self, user_id: str) -> Optional[User]:
        user = self._users.pop(user_id, None)
        return user.public() if user else None

    def list_all(self) -> list[User]:
        return [u.public() for u in self._users.values()]


class InMemoryTaskRepository(TaskRepository):
    def __init__(self) -> None:
        self.store: dict[str, Task] = {}

    def save(self, task: Task) -> None:
        self.store[task.task_id] = task

    def get(self, task_id: str) -> Optional[Task]:
        return self.store.get(task_id)

    def list_by_owner(self, user_id: str) -> list[Task]:
        return [t for t in self.store.values() if t.user_id == user_id]

    def delete(self, task_id: str) -> bool:
        return self.store.pop(task_id, None) is not None


class InMemoryNotificationRepository(NotificationRepository):
    def __init__(self) -> None:
        self.store: dict[str, Notification] = {}

    def save(self, notification: Notification) -> None:
        self.store[notification.notification_id] = notification

    def get(self, notification_id: str) -> Optional[Notification]:
        return self.store.get(notification_id)

    def list_for_recipient(self, recipient: str) -> list[Notification]:
        items = [n for n in self.store.values() if n.recipient == recipient]
        return sorted(items, key=lambda n: n.created_at, reverse=True)

    def mark_read(self, recipient: str, notification_ids: list[str]) -> int:
        updated = 0
        for n in self.list_for_recipient(recipient):
            if n.is_read or (notification_ids and n.notification_id not in notification_ids):
                continue
            self.store[n.notification_id] = n.model_copy(update={"is_read": True})
            updated += 1
        return updated

    def delete(self, notification_id: str) -> bool:
        return self.store.pop(notification_id, None) is not None

    def delete_for_user(self, user_id: str) -> int:
        doomed = [k for k, n in self.store.items() if user_id in (n.recipient, n.sender)]
        for key in doomed:
            del self.store[key]
        return len(doomed)


class RecordingEmailService(EmailService):
    """Captures outgoing emails instead of calling SES."""

    def __init__(self) -> None:
        super().__init__(settings)
        self.sent: list[dict] = []

    def send(self, to, template, context=None) -> bool:
        self.sent.append({"to": to, "template": template, "context": context or {}})
        return True


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture()
def codec() -> TokenCodec:
    return TokenCodec(secret=TEST_SECRET, expires_in=timedelta(hours=1))


@pytest.fixture()
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture()
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def task_repo() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture()
def notification_repo() -> InMemoryNotificationRepository:
    return InMemoryNotificationRepository()


@pytest.fixture()
def email_service() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture()
def make_user(user_repo, hasher):
    """Factory storing a user directly in the repository."""
    counter = {"n": 0}

    def _make(role: str = "user", password: str = STRONG_PASSWORD, **fields) -> User:
        counter["n"] += 1
        n = counter["n"]
        now = (datetime.now(timezone.utc) + timedelta(seconds=n)).isoformat()
        user = UserWithSecret(
            user_id=fields.pop("user_id", f"user-{n}"),
            user_name=fields.pop("user_name", f"member{n}"),
            email=fields.pop("email", f"member{n}@example.com"),
            name=fields.pop("name", f"Member {n}"),
            role=role,
            password_hash=hasher.hash(password),
            created_at=now,
            updated_at=now,
            **fields,
        )
        return user_repo.create(user)

    return _make


@pytest.fixture()
def auth_headers(codec):
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {codec.issue(user.user_id)}"}

    return _headers


@pytest.fixture()
def client(codec, hasher, user_repo, task_repo, notification_repo, email_service):
    app.dependency_overrides[get_token_codec] = lambda: codec
    app.dependency_overrides[get_password_hasher] = lambda: hasher
    app.dependency_overrides[get_user_repository] = lambda: user_repo
    app.dependency_overrides[get_task_repository] = lambda: task_repo
    app.dependency_overrides[get_notification_repository] = lambda: notification_repo
    app.dependency_overrides[get_email_service] = lambda: email_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
