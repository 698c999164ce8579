"""
Application configuration loaded from environment variables.
Uses pydantic-settings so every value can be overridden via a .env file.
"""

import re
from datetime import timedelta

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([dhms]?)\s*$")
_DURATION_UNITS = {"d": "days", "h": "hours", "m": "minutes", "s": "seconds", "": "seconds"}


def parse_duration(value: str) -> timedelta:
    """
    Parse a short duration string such as ``"7d"``, ``"12h"``, ``"30m"``,
    ``"45s"`` or a plain number of seconds.
    """
    match = _DURATION_RE.match(str(value))
    if match is None:
        raise ValueError(f"'{value}' is not a valid duration (expected e.g. '7d', '12h').")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # ── JWT ──────────────────────────────────────────────────────────────────
    # Secret used to sign/verify JWT tokens.  Change this in production!
    jwt_secret: str = "changeme-super-secret-key"
    jwt_algorithm: str = "HS256"
    # Token lifetime, e.g. "7d", "12h" or seconds
    jwt_expires_in: str = "7d"
    # Optional iss/aud claims; verified when set
    jwt_issuer: str = ""
    jwt_audience: str = ""
    jwt_leeway_seconds: int = 0

    # ── Credential transport ─────────────────────────────────────────────────
    auth_cookie_name: str = "accessToken"
    cookie_secure: bool = False

    # ── Passwords ────────────────────────────────────────────────────────────
    bcrypt_rounds: int = 12
    enforce_password_strength: bool = True

    # ── AWS ──────────────────────────────────────────────────────────────────
    aws_region: str = "us-east-1"
    # Leave blank to use the default credential chain (IAM role, env vars, …)
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""

    # ── DynamoDB ─────────────────────────────────────────────────────────────
    dynamodb_users_table: str = "taskboard_users"
    dynamodb_tasks_table: str = "taskboard_tasks"
    dynamodb_notifications_table: str = "taskboard_notifications"
    # Set to a local DynamoDB endpoint for development (e.g. http://localhost:8000)
    dynamodb_endpoint_url: str = ""

    # ── Email (AWS SES) ──────────────────────────────────────────────────────
    email_enabled: bool = False
    ses_from_email: str = ""
    email_from_name: str = "Taskboard"
    support_email: str = "support@taskboard.local"
    app_base_url: str = "http://localhost:3000"

    log_level: str = "INFO"

    @field_validator("jwt_expires_in")
    @classmethod
    def validate_jwt_expires_in(cls, v: str) -> str:
        parse_duration(v)
        return v

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if not 4 <= v <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31.")
        return v

    # ── Helpers ───────────────────────────────────────────────────────────────
    @property
    def token_ttl(self) -> timedelta:
        """Default lifetime of an issued access token."""
        return parse_duration(self.jwt_expires_in)


settings = Settings()
