"""
Pydantic schemas for users: the stored entity, the authenticated
projection, and the request/response bodies of the user endpoints.
"""

from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

Role = Literal["user", "admin"]


# ── Entity ────────────────────────────────────────────────────────────────────

class User(BaseModel):
    """A principal as returned by normal reads (no secret)."""

    user_id: str
    user_name: str
    email: str
    name: str
    role: Role = "user"
    bio: Optional[str] = None
    likes: list[str] = Field(default_factory=list)
    external_id: Optional[str] = None
    created_at: str
    updated_at: str

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return v.strip().lower()


class UserWithSecret(User):
    """A principal including its password digest; only for credential checks."""

    password_hash: Optional[str] = None

    @model_validator(mode="after")
    def check_credential_source(self) -> "UserWithSecret":
        if not self.password_hash and not self.external_id:
            raise ValueError("A user needs either a password hash or an external identity.")
        return self

    def public(self) -> User:
        return User(**self.model_dump(exclude={"password_hash"}))


class CurrentUser(BaseModel):
    """Minimal projection of the authenticated principal for one request."""

    id: str
    name: str
    email: str
    role: Role = "user"

    @classmethod
    def from_user(cls, user: User) -> "CurrentUser":
        return cls(id=user.user_id, name=user.name, email=user.email, role=user.role)


# ── Request models ────────────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    """Request body for POST /users/register."""

    user_name: str = Field(
        ...,
        min_length=3,
        max_length=30,
        pattern=r"^[A-Za-z0-9]+$",
        examples=["jdoe"],
        description="Alphanumeric handle, unique across users.",
    )
    email: EmailStr = Field(..., examples=["jdoe@example.com"])
    password: str = Field(..., min_length=6, max_length=128)
    name: Optional[str] = Field(
        None,
        min_length=1,
        max_length=100,
        examples=["Jane Doe"],
        description="Display name (defaults to the user name).",
    )


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


# ── Response models ───────────────────────────────────────────────────────────

class UserProfile(BaseModel):
    """A user as shown to other callers; ``email`` only for self or admins."""

    user_id: str
    user_name: str
    name: str
    role: Role
    bio: Optional[str] = None
    likes_count: int = 0
    email: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User, include_email: bool = False) -> "UserProfile":
        return cls(
            user_id=user.user_id,
            user_name=user.user_name,
            name=user.name,
            role=user.role,
            bio=user.bio,
            likes_count=len(user.likes),
            email=user.email if include_email else None,
            created_at=user.created_at,
        )


class AuthResult(BaseModel):
    """Returned by registration and JSON login."""

    user: User
    token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
