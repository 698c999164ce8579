"""
FastAPI dependencies that protect routes behind JWT authentication and
layer role and ownership checks on top.

Usage in a route:
    @router.get("/protected")
    def my_route(user: CurrentUser = Depends(get_current_user)):
        ...

    @router.get("/admin-only")
    def admin_route(user: CurrentUser = Depends(require_roles("admin"))):
        ...

    @router.delete("/tasks/{task_id}")
    def delete(user: CurrentUser = Depends(
        require_ownership(get_task_owner_resolver, "task_id"))):
        ...

Per request the gate walks NoCredential → CredentialExtracted →
CredentialVerified → PrincipalResolved → Authenticated, rejecting with 401
at any step.  The resolved user is looked up once per request (FastAPI
caches the dependency within a request) and never across requests.
"""

import logging
from functools import partial
from typing import Callable, Iterable, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from taskboard.config import settings
from taskboard.dao.base import NotificationRepository, TaskRepository, UserRepository
from taskboard.dependencies.dao import (
    get_notification_repository,
    get_task_repository,
    get_token_codec,
    get_user_repository,
)
from taskboard.errors import (
    CredentialError,
    ExpiredCredential,
    MalformedCredential,
    StoreUnavailable,
    UnauthorizedError,
)
from taskboard.schemas.users import CurrentUser
from taskboard.services.authorization import OwnerResolver, check_ownership, check_roles
from taskboard.services.notifications import notification_recipient
from taskboard.services.tasks import task_owner
from taskboard.services.tokens import TokenCodec

logger = logging.getLogger(__name__)

# Tells FastAPI/Swagger where the token endpoint is, enabling the
# "Authorize" button in the interactive docs.  The cookie is checked first,
# so a missing header must not fail here.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/users/token", auto_error=False)


def extract_token(request: Request, bearer: Optional[str]) -> Optional[str]:
    """Cookie first, then the ``Authorization: Bearer`` header."""
    cookie_token = request.cookies.get(settings.auth_cookie_name)
    if cookie_token:
        return cookie_token
    return bearer or None


def authenticate(
    request: Request,
    token: Optional[str],
    codec: TokenCodec,
    users: UserRepository,
) -> CurrentUser:
    if not token:
        raise UnauthorizedError("Unauthorized access")

    try:
        claims = codec.verify(token)
    except ExpiredCredential:
        raise UnauthorizedError("Token has expired")
    except MalformedCredential:
        raise UnauthorizedError("Invalid token")
    except CredentialError:
        raise UnauthorizedError("Authentication failed")

    user = users.find_by_id(claims.subject_id)
    if user is None:
        raise UnauthorizedError("Unauthorized access")

    current_user = CurrentUser.from_user(user)
    request.state.user = current_user
    return current_user


def get_current_user(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    codec: TokenCodec = Depends(get_token_codec),
    users: UserRepository = Depends(get_user_repository),
) -> CurrentUser:
    """
    Resolve the authenticated user or raise HTTP 401.

    Expired and malformed tokens get distinct messages; the status code is
    always 401.
    """
    return authenticate(request, extract_token(request, bearer), codec, users)


def get_optional_user(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    codec: TokenCodec = Depends(get_token_codec),
    users: UserRepository = Depends(get_user_repository),
) -> Optional[CurrentUser]:
    """Like ``get_current_user`` but anonymous on any failure."""
    token = extract_token(request, bearer)
    if not token:
        return None
    try:
        return authenticate(request, token, codec, users)
    except (UnauthorizedError, StoreUnavailable) as exc:
        logger.warning("Optional auth proceeding anonymously: %s", exc.message)
        return None


# ── Authorization ─────────────────────────────────────────────────────────────

def require_roles(*roles: str) -> Callable[..., CurrentUser]:
    """Dependency factory: the user must hold one of *roles* (403 otherwise)."""

    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        return check_roles(user, roles)

    return dependency


def require_ownership(
    resolver_dependency: Callable[..., OwnerResolver],
    param: str = "id",
    bypass_roles: Iterable[str] = ("admin",),
) -> Callable[..., CurrentUser]:
    """
    Dependency factory: the user must own the resource named by the path
    parameter *param*.

    *resolver_dependency* is itself a dependency returning a function that
    maps a resource id to its owner id.
    """
    bypass = tuple(bypass_roles)

    def dependency(
        request: Request,
        user: CurrentUser = Depends(get_current_user),
        resolve_owner: OwnerResolver = Depends(resolver_dependency),
    ) -> CurrentUser:
        return check_ownership(user, request.path_params[param], resolve_owner, bypass)

    return dependency


def get_task_owner_resolver(
    repo: TaskRepository = Depends(get_task_repository),
) -> OwnerResolver:
    return partial(task_owner, repo=repo)


def get_notification_owner_resolver(
    repo: NotificationRepository = Depends(get_notification_repository),
) -> OwnerResolver:
    return partial(notification_recipient, repo=repo)
