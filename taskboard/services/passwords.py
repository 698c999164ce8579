"""
Password hashing (bcrypt via passlib) and password strength rules.
"""

import logging
import re

from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128

_STRENGTH_RULES = [
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"\d"), "Password must contain at least one number"),
    (re.compile(r"[@$!%*?&]"), "Password must contain at least one special character (@$!%*?&)"),
]


class PasswordHasher:
    """One-way salted password hashing with a tunable bcrypt cost."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, plaintext: str) -> str:
        return self._context.hash(plaintext)

    def verify(self, plaintext: str, digest: str) -> bool:
        """
        Return ``True`` when *plaintext* matches *digest*.

        A missing or unrecognised digest counts as a mismatch.
        """
        if not digest:
            return False
        try:
            return self._context.verify(plaintext, digest)
        except (ValueError, TypeError) as exc:
            logger.warning("Stored password digest could not be checked: %s", exc)
            return False


class PasswordCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: list[str] = Field(default_factory=list)


def validate_password_strength(password: str) -> PasswordCheck:
    errors: list[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password cannot exceed {PASSWORD_MAX_LENGTH} characters")
    for pattern, message in _STRENGTH_RULES:
        if not pattern.search(password):
            errors.append(message)
    return PasswordCheck(is_valid=not errors, errors=errors)
