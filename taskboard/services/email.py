"""
Email dispatcher backed by AWS SES.

``EmailService`` is constructed once by the service container and has an
explicit lifecycle.  ``initialize()`` builds the SES client and checks it
can reach the account; when email is disabled or the check fails the
service stays unconfigured and every send is skipped with a log line.  The
app keeps working without email.

Sends are fire-and-forget: routers schedule them with FastAPI
``BackgroundTasks`` and a failed send is logged, never raised.
"""

import html
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from taskboard.config import Settings

logger = logging.getLogger(__name__)


# ── Templates ─────────────────────────────────────────────────────────────────

_LAYOUT = """<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
{body}
</body>
</html>
"""

_BUTTON = (
    '<p style="text-align: center; margin: 30px 0;">'
    '<a href="{url}" style="background: {colour}; color: white; padding: 12px 30px; '
    'text-decoration: none; border-radius: 5px; display: inline-block;">{label}</a></p>'
)

TEMPLATES: dict[str, dict[str, str]] = {
    "welcome": {
        "subject": "Welcome to Taskboard!",
        "body": (
            "<h1>Welcome, {name}!</h1>"
            "<p>Your account <strong>@{user_name}</strong> is ready.</p>"
            + _BUTTON.format(url="{action_url}", colour="#4CAF50", label="Complete your profile")
        ),
    },
    "profile_liked": {
        "subject": "Someone liked your profile",
        "body": (
            "<h1>You got a like!</h1>"
            "<p><strong>{liker_name}</strong> (@{liker_user_name}) liked your profile.</p>"
            + _BUTTON.format(url="{profile_url}", colour="#FF6B6B", label="View their profile")
        ),
    },
    "account_deletion": {
        "subject": "Your account has been deleted",
        "body": (
            "<h1>Account deleted</h1>"
            "<p>Hi {user_name}, your account has been deleted by an administrator.</p>"
            "<p>If you believe this was done in error, contact <strong>{support_email}</strong>.</p>"
        ),
    },
}

_DEFAULT_TEMPLATE = {
    "subject": "Notification",
    "body": "<h2>{subject}</h2><p>{message}</p>",
}


class _Context(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render_template(template: str, context: dict[str, Any]) -> tuple[str, str]:
    """Return ``(subject, html_body)`` for *template*; unknown names use the default."""
    tpl = TEMPLATES.get(template, _DEFAULT_TEMPLATE)
    safe = _Context({k: html.escape(str(v)) for k, v in context.items()})
    subject = context.get("subject") or tpl["subject"]
    body = tpl["body"].format_map(safe)
    return subject, _LAYOUT.format(body=body)


class EmailService:
    """Send templated emails via AWS SES."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._client = None
        self.is_configured = False

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def initialize(self) -> None:
        if not (self._settings.email_enabled and self._settings.ses_from_email):
            logger.info("Email service disabled; messages will be skipped.")
            return
        kwargs: dict = {"region_name": self._settings.aws_region}
        if self._settings.aws_access_key_id:
            kwargs["aws_access_key_id"] = self._settings.aws_access_key_id
            kwargs["aws_secret_access_key"] = self._settings.aws_secret_access_key
        try:
            client = boto3.client("ses", **kwargs)
            client.get_send_quota()
        except (ClientError, BotoCoreError) as exc:
            logger.error("Email service initialisation failed: %s", exc)
            self.is_configured = False
            return
        self._client = client
        self.is_configured = True
        logger.info("Email service initialised.")

    def shutdown(self) -> None:
        self._client = None
        self.is_configured = False

    # ── Sending ───────────────────────────────────────────────────────────────

    def send(
        self,
        to: str,
        template: str,
        context: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Render *template* and send it to *to*; return ``True`` on success."""
        if not self.is_configured:
            logger.info("Email service not configured, skipping '%s' email to %s.", template, to)
            return False

        subject, body = render_template(template, context or {})
        source = f"{self._settings.email_from_name} <{self._settings.ses_from_email}>"
        try:
            response = self._client.send_email(
                Source=source,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {"Html": {"Data": body, "Charset": "UTF-8"}},
                },
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error("Failed to send '%s' email to %s: %s", template, to, exc)
            return False

        logger.info("Email '%s' sent to %s (MessageId: %s).", template, to, response["MessageId"])
        return True

    def send_welcome(self, email: str, user_name: str, name: str, user_id: str) -> bool:
        return self.send(
            to=email,
            template="welcome",
            context={
                "name": name,
                "user_name": user_name,
                "action_url": f"{self._settings.app_base_url}/users/{user_id}/profile",
            },
        )

    def send_profile_liked(self, email: str, liker_name: str, liker_user_name: str, liker_id: str) -> bool:
        return self.send(
            to=email,
            template="profile_liked",
            context={
                "liker_name": liker_name,
                "liker_user_name": liker_user_name,
                "profile_url": f"{self._settings.app_base_url}/users/{liker_id}/profile",
            },
        )

    def send_account_deletion(self, email: str, user_name: str) -> bool:
        return self.send(
            to=email,
            template="account_deletion",
            context={"user_name": user_name, "support_email": self._settings.support_email},
        )
