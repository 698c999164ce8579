"""
Authorization checks layered on top of an authenticated request.

These are plain functions so they can be exercised without HTTP; the
FastAPI dependencies in ``taskboard.dependencies.api`` wrap them.
"""

import logging
from typing import Callable, Iterable, Optional

from taskboard.errors import ForbiddenError, InternalError, UnauthorizedError
from taskboard.schemas.users import CurrentUser

logger = logging.getLogger(__name__)

OwnerResolver = Callable[[str], str]


def check_roles(user: Optional[CurrentUser], roles: Iterable[str]) -> CurrentUser:
    """Require *user* to hold one of *roles*."""
    if user is None:
        raise UnauthorizedError("Authentication required")
    if not user.role or user.role not in set(roles):
        logger.info("User '%s' with role '%s' denied; requires %s.", user.id, user.role, list(roles))
        raise ForbiddenError("Insufficient permissions")
    return user


def check_ownership(
    user: Optional[CurrentUser],
    resource_id: str,
    resolve_owner: OwnerResolver,
    bypass_roles: Iterable[str] = ("admin",),
) -> CurrentUser:
    """
    Require *user* to own the resource identified by *resource_id*.

    *resolve_owner* returns the owner id and raises when it cannot (missing
    resource, store failure).  Any such failure becomes ``InternalError`` so
    it can never read as a successful check.  Holders of *bypass_roles* pass
    without an owner match.
    """
    if user is None:
        raise UnauthorizedError("Authentication required")

    try:
        owner_id = resolve_owner(resource_id)
    except Exception as exc:
        logger.error("Resource ownership check failed for '%s': %s", resource_id, exc)
        raise InternalError("Error checking resource ownership") from exc

    if str(owner_id) == str(user.id):
        return user
    if user.role in set(bypass_roles):
        logger.info("User '%s' (%s) acting on resource '%s' owned by '%s'.", user.id, user.role, resource_id, owner_id)
        return user
    raise ForbiddenError("Access denied to this resource")
