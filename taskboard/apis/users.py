"""
Users router — registration, login and profile endpoints under /users.

Login comes in two flavours:

  POST /users/login   JSON body {"email", "password"}; sets the
                      ``accessToken`` cookie and returns the token too.
  POST /users/token   OAuth2 "password" grant (RFC 6749 §4.3) used by the
                      interactive docs; ``username`` carries the email.

Endpoints
─────────
  POST   /users/register          Create an account
  POST   /users/login             Log in (JSON)
  POST   /users/token             Log in (OAuth2 form)
  POST   /users/logout            Clear the auth cookie
  GET    /users/profile           Caller's profile
  PATCH  /users/profile           Update name / bio
  PUT    /users/password          Change password
  GET    /users/{user_id}         Public profile (optional auth)
  POST   /users/{user_id}/like    Like a profile
  DELETE /users/{user_id}/like    Unlike a profile
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm

from taskboard.config import settings
from taskboard.dao.base import NotificationRepository, UserRepository
from taskboard.dependencies.api import get_current_user, get_optional_user
from taskboard.dependencies.dao import (
    get_email_service,
    get_notification_repository,
    get_password_hasher,
    get_token_codec,
    get_user_repository,
)
from taskboard.errors import UnauthorizedError
from taskboard.schemas.common import SuccessResponse, success_response
from taskboard.schemas.users import (
    AuthResult,
    ChangePasswordRequest,
    CurrentUser,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UpdateProfileRequest,
    User,
    UserProfile,
)
from taskboard.services import notifications as notification_service
from taskboard.services.auth import authenticate_user, change_password, register_user
from taskboard.services.email import EmailService
from taskboard.services.passwords import PasswordHasher
from taskboard.services.tokens import TokenCodec
from taskboard.services.users import fetch_user, like_profile, unlike_profile, update_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _issue_session(response: Response, user: User, codec: TokenCodec) -> AuthResult:
    """Issue a token for *user* and mirror it into the auth cookie."""
    token = codec.issue(user.user_id)
    max_age = int(codec.expires_in.total_seconds())
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return AuthResult(user=user, token=token, expires_in=max_age)


@router.post(
    "/register",
    response_model=SuccessResponse[AuthResult],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
def register(
    body: RegisterRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    users: UserRepository = Depends(get_user_repository),
    notifications: NotificationRepository = Depends(get_notification_repository),
    hasher: PasswordHasher = Depends(get_password_hasher),
    codec: TokenCodec = Depends(get_token_codec),
    email_service: EmailService = Depends(get_email_service),
) -> SuccessResponse:
    """Create the account, then notify and email the new user in the background."""
    user = register_user(body, users, hasher, enforce_strength=settings.enforce_password_strength)
    result = _issue_session(response, user, codec)

    background_tasks.add_task(
        notification_service.dispatch,
        notification_service.welcome_notification(user),
        notifications,
    )
    background_tasks.add_task(
        email_service.send_welcome, user.email, user.user_name, user.name, user.user_id
    )
    return success_response(result, "User registered successfully")


@router.post(
    "/login",
    response_model=SuccessResponse[AuthResult],
    summary="Log in with email and password",
)
def login(
    body: LoginRequest,
    response: Response,
    users: UserRepository = Depends(get_user_repository),
    hasher: PasswordHasher = Depends(get_password_hasher),
    codec: TokenCodec = Depends(get_token_codec),
) -> SuccessResponse:
    user = authenticate_user(body.email, body.password, users, hasher)
    if user is None:
        raise UnauthorizedError("Invalid email or password")
    logger.info("User '%s' logged in.", user.user_id)
    return success_response(_issue_session(response, user, codec), "Login successful")


@router.post(
    "/token",
    response_model=TokenResponse,
    summary="Obtain a JWT access token",
    description=(
        "Submit valid credentials (email as `username`) to receive a Bearer token. "
        "Pass the token in every subsequent request as "
        "`Authorization: Bearer <token>`."
    ),
)
def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    users: UserRepository = Depends(get_user_repository),
    hasher: PasswordHasher = Depends(get_password_hasher),
    codec: TokenCodec = Depends(get_token_codec),
) -> TokenResponse:
    """Validate credentials and issue a JWT."""
    user = authenticate_user(form_data.username, form_data.password, users, hasher)
    if user is None:
        raise UnauthorizedError("Incorrect username or password")
    return TokenResponse(
        access_token=codec.issue(user.user_id),
        expires_in=int(codec.expires_in.total_seconds()),
    )


@router.post("/logout", response_model=SuccessResponse[None], summary="Clear the auth cookie")
def logout(response: Response) -> SuccessResponse:
    response.delete_cookie(settings.auth_cookie_name)
    return success_response(None, "Logged out")


@router.get("/profile", response_model=SuccessResponse[User], summary="Get the caller's profile")
def get_profile(
    current_user: CurrentUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
) -> SuccessResponse:
    return success_response(fetch_user(current_user.id, users), "User profile fetched")


@router.patch("/profile", response_model=SuccessResponse[User], summary="Update the caller's profile")
def patch_profile(
    body: UpdateProfileRequest,
    current_user: CurrentUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
) -> SuccessResponse:
    user = update_profile(current_user.id, body, users)
    return success_response(user, "User profile updated successfully")


@router.put("/password", response_model=SuccessResponse[None], summary="Change password")
def put_password(
    body: ChangePasswordRequest,
    current_user: CurrentUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> SuccessResponse:
    change_password(
        current_user.email,
        body.current_password,
        body.new_password,
        users,
        hasher,
        enforce_strength=settings.enforce_password_strength,
    )
    return success_response(None, "Password changed successfully")


@router.get(
    "/{user_id}",
    response_model=SuccessResponse[UserProfile],
    summary="Get a user's public profile",
    description="Anonymous callers see public fields; the user themself and admins also see the email.",
)
def get_user(
    user_id: str,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    users: UserRepository = Depends(get_user_repository),
) -> SuccessResponse:
    user = fetch_user(user_id, users)
    include_email = current_user is not None and (
        current_user.id == user.user_id or current_user.role == "admin"
    )
    return success_response(UserProfile.from_user(user, include_email=include_email))


@router.post("/{user_id}/like", response_model=SuccessResponse[None], summary="Like a profile")
def like(
    user_id: str,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
    notifications: NotificationRepository = Depends(get_notification_repository),
    email_service: EmailService = Depends(get_email_service),
) -> SuccessResponse:
    liker, liked = like_profile(current_user.id, user_id, users)
    background_tasks.add_task(
        notification_service.dispatch,
        notification_service.like_notification(liker, user_id),
        notifications,
    )
    background_tasks.add_task(
        email_service.send_profile_liked, liked.email, liker.name, liker.user_name, liker.user_id
    )
    return success_response(None, "Profile liked successfully")


@router.delete("/{user_id}/like", response_model=SuccessResponse[None], summary="Unlike a profile")
def unlike(
    user_id: str,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
    notifications: NotificationRepository = Depends(get_notification_repository),
) -> SuccessResponse:
    liker = unlike_profile(current_user.id, user_id, users)
    background_tasks.add_task(
        notification_service.dispatch,
        notification_service.like_notification(liker, user_id, liked=False),
        notifications,
    )
    return success_response(None, "Profile unliked successfully")
