"""
Authentication service: registration, credential validation and password
changes.

Flow
────
1. Client calls POST /users/register (or /users/login) with its credentials.
2. We hash or verify the password with the PasswordHasher and persist or
   look up the user through the UserRepository.
3. On success the router issues a signed JWT through the TokenCodec and
   returns it in the body and in the ``accessToken`` cookie.
4. Every subsequent request supplies the cookie or
   ``Authorization: Bearer <token>``; the ``get_current_user`` dependency
   verifies the token and resolves the user.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from taskboard.dao.base import UserRepository
from taskboard.errors import ConflictError, NotFoundError, ValidationFailedError
from taskboard.schemas.users import RegisterRequest, User, UserWithSecret
from taskboard.services.passwords import PasswordHasher, validate_password_strength

logger = logging.getLogger(__name__)


def _check_strength(password: str, enforce: bool) -> None:
    if not enforce:
        return
    check = validate_password_strength(password)
    if not check.is_valid:
        raise ValidationFailedError(
            "Password does not meet the strength requirements",
            errors=[{"field": "password", "message": m} for m in check.errors],
        )


def register_user(
    request: RegisterRequest,
    users: UserRepository,
    hasher: PasswordHasher,
    enforce_strength: bool = True,
) -> User:
    """
    Create a new password-based user.

    The lookups below give a friendly early answer; the repository's atomic
    unique-key check is what decides concurrent duplicates.
    """
    _check_strength(request.password, enforce_strength)

    if users.find_by_user_name(request.user_name) is not None:
        raise ConflictError("user_name already exists", field="user_name")
    if users.find_by_email(request.email) is not None:
        raise ConflictError("email already exists", field="email")

    now = datetime.now(timezone.utc).isoformat()
    user = UserWithSecret(
        user_id=uuid.uuid4().hex,
        user_name=request.user_name,
        email=request.email,
        name=request.name or request.user_name,
        password_hash=hasher.hash(request.password),
        created_at=now,
        updated_at=now,
    )
    created = users.create(user)
    logger.info("Registered user '%s' (%s).", created.user_id, created.user_name)
    return created


def authenticate_user(
    email: str,
    password: str,
    users: UserRepository,
    hasher: PasswordHasher,
) -> Optional[User]:
    """
    Check *email* / *password* against the stored digest.

    Returns the user on success and ``None`` otherwise, without revealing
    which half of the credentials was wrong.  Accounts created through an
    external identity provider have no digest and cannot log in here.
    """
    user = users.find_by_email_with_secret(email)
    if user is None or not user.password_hash:
        return None
    if not hasher.verify(password, user.password_hash):
        logger.info("Failed login for '%s'.", user.user_id)
        return None
    return user.public()


def change_password(
    email: str,
    current_password: str,
    new_password: str,
    users: UserRepository,
    hasher: PasswordHasher,
    enforce_strength: bool = True,
) -> None:
    user = users.find_by_email_with_secret(email)
    if user is None:
        raise NotFoundError("User not found")
    if not user.password_hash or not hasher.verify(current_password, user.password_hash):
        raise ValidationFailedError(
            "Current password is incorrect",
            errors=[{"field": "current_password", "message": "Current password is incorrect"}],
        )
    _check_strength(new_password, enforce_strength)
    if not users.set_password_hash(user.user_id, hasher.hash(new_password)):
        raise NotFoundError("User not found")
    logger.info("Password changed for user '%s'.", user.user_id)
