"""
Messaging backends: Slack and SendGrid email.
"""

from typing import Any, Dict, List, Optional
from pydantic import Field

from ..models.base import ToolArguments
from ..models.errors import BackendError, BackendErrorKind
from ..models.tools import BackendOperation
from .base import HTTPBackendClient

# Slack reports failures in the body of HTTP 200 responses
SLACK_AUTH_ERRORS = {"not_authed", "invalid_auth", "account_inactive", "token_revoked", "missing_scope"}
SLACK_RATE_LIMIT_ERRORS = {"ratelimited", "rate_limited"}


class SlackMessageArguments(ToolArguments):
    """Arguments for send_slack_message."""
    channel: str = Field(..., min_length=1, description="Slack channel ID or name")
    message: str = Field(..., min_length=1, description="Message content")


class SendEmailArguments(ToolArguments):
    """Arguments for send_email."""
    to: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+$", description="Recipient email address")
    subject: str = Field(..., min_length=1, description="Email subject")
    body: str = Field(..., description="Email body (plain text)")


class SlackBackend(HTTPBackendClient):
    """Slack Web API."""

    backend_name = "slack"
    default_base_url = "https://slack.com/api"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.operation_map = {
            "send_slack_message": self.send_message,
        }

    @property
    def description(self) -> str:
        return "Post messages to Slack"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def operations(self) -> List[BackendOperation]:
        return [
            BackendOperation(
                name="send_slack_message",
                description="Send a message to Slack",
                input_model=SlackMessageArguments,
            ),
        ]

    async def send_message(self, channel: str, message: str) -> Dict[str, Any]:
        self._require_api_key()
        data = await self._request("POST", "/chat.postMessage", json={"channel": channel, "text": message})

        if not data.get("ok", False):
            raise self._slack_error(data.get("error", "unknown_error"))

        return {
            "channel": data.get("channel", channel),
            "ts": data.get("ts"),
            "sent": True,
        }

    def _slack_error(self, code: str) -> BackendError:
        if code in SLACK_AUTH_ERRORS:
            kind = BackendErrorKind.AUTH
        elif code in SLACK_RATE_LIMIT_ERRORS:
            kind = BackendErrorKind.RATE_LIMIT
        else:
            kind = BackendErrorKind.INVALID_INPUT
        return BackendError(kind, f"Slack API error: {code}", detail=code)


class SendGridBackend(HTTPBackendClient):
    """SendGrid v3 mail API."""

    backend_name = "sendgrid"
    default_base_url = "https://api.sendgrid.com/v3"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.from_email: Optional[str] = self.config.options.get("from_email")
        self.operation_map = {
            "send_email": self.send_email,
        }

    @property
    def description(self) -> str:
        return "Send email through SendGrid"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def operations(self) -> List[BackendOperation]:
        return [
            BackendOperation(
                name="send_email",
                description="Send an email using configured email provider",
                input_model=SendEmailArguments,
            ),
        ]

    async def send_email(self, to: str, subject: str, body: str) -> Dict[str, Any]:
        self._require_api_key()
        if not self.from_email:
            raise BackendError(
                BackendErrorKind.INVALID_INPUT,
                "SendGrid sender address is not configured (options.from_email)",
            )

        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_email},
            "subject": subject,
            "content": [{"type": "text/plain", "value": body}],
        }
        response = await self._send("POST", "/mail/send", json=payload)
        self._raise_for_status(response)

        return {
            "to": to,
            "accepted": response.status_code == 202,
            "message_id": response.headers.get("X-Message-Id"),
        }
