"""
FastAPI dependencies for repository and service injection.

Routes declare e.g. ``repo: TaskRepository = Depends(get_task_repository)``
and receive the concrete DynamoDB implementation held by the service
container at runtime.

Swapping a backend (e.g. for tests) only requires overriding the matching
dependency; no service or route code changes are needed:

    app.dependency_overrides[get_task_repository] = lambda: InMemoryTaskRepository()
"""

from fastapi import Request

from taskboard.container import ServiceContainer
from taskboard.dao.base import NotificationRepository, TaskRepository, UserRepository
from taskboard.services.email import EmailService
from taskboard.services.passwords import PasswordHasher
from taskboard.services.tokens import TokenCodec


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_user_repository(request: Request) -> UserRepository:
    """Return the active UserRepository implementation."""
    return get_container(request).users


def get_task_repository(request: Request) -> TaskRepository:
    """Return the active TaskRepository implementation."""
    return get_container(request).tasks


def get_notification_repository(request: Request) -> NotificationRepository:
    """Return the active NotificationRepository implementation."""
    return get_container(request).notifications


def get_token_codec(request: Request) -> TokenCodec:
    return get_container(request).token_codec


def get_password_hasher(request: Request) -> PasswordHasher:
    return get_container(request).password_hasher


def get_email_service(request: Request) -> EmailService:
    return get_container(request).email
