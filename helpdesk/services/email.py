"""
Email service for sending ticket notifications.

WHAT: A unified interface for sending email through a provider (Resend over
HTTP, or a mock provider that only records messages).

WHY: The outbox processor is the only sender. It needs one call that either
hands the message to the provider or raises, so the row can be marked
delivered or retried.

HOW: ResendProvider posts to the Resend REST API with httpx. When no API key
is configured the MockEmailProvider is used, which logs and keeps the
message in memory (tests inspect MockEmailProvider.sent_emails).
"""

import html
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List
from urllib.parse import urlparse

import httpx

from helpdesk.core.config import settings
from helpdesk.core.exceptions import EmailServiceError

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    """
    Represents an email to be sent.

    WHAT: Data container for email content and metadata.
    """

    to_email: str
    subject: str
    html_content: str
    text_content: Optional[str] = None
    from_email: Optional[str] = None
    reply_to: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EmailResult:
    """Result of an email send operation."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    provider: Optional[str] = None


# ============================================================================
# Email Provider Interface
# ============================================================================


class EmailProvider(ABC):
    """
    Abstract base class for email providers.

    WHY: Provider abstraction allows switching providers and testing with
    the mock provider.
    """

    @abstractmethod
    async def send(self, message: EmailMessage) -> EmailResult:
        """Send an email message."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if this provider is properly configured."""


class ResendProvider(EmailProvider):
    """Resend email provider implementation."""

    API_URL = "https://api.resend.com/emails"

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key or settings.RESEND_API_KEY
        self._default_from = settings.EMAIL_FROM or f"Helpdesk <noreply@{self._get_domain()}>"

    def _get_domain(self) -> str:
        """Get domain from FRONTEND_URL for default sender."""
        parsed = urlparse(settings.FRONTEND_URL)
        return parsed.hostname or "localhost"

    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def send(self, message: EmailMessage) -> EmailResult:
        """
        Send email via Resend API.

        HOW: Uses httpx for async HTTP requests. Transport errors are
        reported as a failed EmailResult rather than raised.
        """
        if not self.is_configured():
            return EmailResult(
                success=False,
                error="Resend API key not configured",
                provider="resend",
            )

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.API_URL,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": message.from_email or self._default_from,
                        "to": [message.to_email],
                        "subject": message.subject,
                        "html": message.html_content,
                        "text": message.text_content,
                        "reply_to": message.reply_to,
                    },
                    timeout=30.0,
                )
        except httpx.HTTPError as e:
            logger.error(f"Resend send error: {e}")
            return EmailResult(success=False, error=str(e), provider="resend")

        if response.status_code in (200, 201):
            return EmailResult(
                success=True,
                message_id=response.json().get("id"),
                provider="resend",
            )

        return EmailResult(
            success=False,
            error=f"Resend API error: {response.status_code} - {response.text}",
            provider="resend",
        )


class MockEmailProvider(EmailProvider):
    """
    Mock email provider for testing and development.

    WHY: Allows exercising the outbox without sending real emails.
    """

    sent_emails: List[EmailMessage] = []
    """Class-level list to track sent emails for testing."""

    def is_configured(self) -> bool:
        return True

    async def send(self, message: EmailMessage) -> EmailResult:
        logger.info(f"[MOCK EMAIL] To: {message.to_email}, Subject: {message.subject}")

        MockEmailProvider.sent_emails.append(message)

        return EmailResult(
            success=True,
            message_id=f"mock-{datetime.utcnow().timestamp()}",
            provider="mock",
        )

    @classmethod
    def clear_sent_emails(cls):
        """Clear sent emails list (for test cleanup)."""
        cls.sent_emails = []


# ============================================================================
# Notification rendering
# ============================================================================


_SUBJECTS = {
    "TICKET_CREATED": "New ticket {number}: {title}",
    "TICKET_UPDATED": "Ticket {number} updated: {title}",
    "COMMENT_ADDED": "New comment on {number}: {title}",
}


def render_notification(topic: str, payload: Dict[str, Any]) -> Dict[str, str]:
    """
    Build subject, text and HTML bodies for an outbox notification.

    Payloads carry ids, the ticket number and title, and for updates the
    list of changed fields. Comment bodies are never put in payloads.
    """
    number = payload.get("ticket_number") or f"#{payload.get('ticket_id')}"
    title = payload.get("title") or ""
    subject = _SUBJECTS.get(topic, "Ticket {number}: {title}").format(number=number, title=title)

    link = f"{settings.FRONTEND_URL.rstrip('/')}/tickets/{payload.get('ticket_id')}"
    lines = [subject]
    changes = payload.get("changes")
    if changes:
        lines.append("Changed: " + ", ".join(changes))
    lines.append(f"View the ticket: {link}")

    text = "\n\n".join(lines)
    body = "".join(f"<p>{html.escape(line)}</p>" for line in lines[:-1])
    body += f'<p><a href="{html.escape(link)}">View the ticket</a></p>'

    return {"subject": subject, "text": text, "html": body}


# ============================================================================
# Email Service
# ============================================================================


class EmailService:
    """
    High level email sending.

    WHY: Picks the provider once and turns a failed provider result into
    EmailServiceError so the caller can record the failure.
    """

    def __init__(self, provider: Optional[EmailProvider] = None):
        if provider is not None:
            self._provider = provider
        else:
            resend = ResendProvider()
            self._provider = resend if resend.is_configured() else MockEmailProvider()

    @property
    def provider(self) -> EmailProvider:
        return self._provider

    async def send_email(self, message: EmailMessage) -> EmailResult:
        """
        Send one message.

        Raises:
            EmailServiceError: If the provider reports a failure
        """
        result = await self._provider.send(message)
        if not result.success:
            raise EmailServiceError(
                message=result.error or "Email delivery failed",
                provider=result.provider,
            )
        return result

    async def send_notification_email(
        self, to_email: str, topic: str, payload: Dict[str, Any]
    ) -> EmailResult:
        """Render and send one outbox notification."""
        rendered = render_notification(topic, payload)
        return await self.send_email(
            EmailMessage(
                to_email=to_email,
                subject=rendered["subject"],
                html_content=rendered["html"],
                text_content=rendered["text"],
                metadata={"topic": topic, "ticket_id": payload.get("ticket_id")},
            )
        )


def get_email_service() -> EmailService:
    """
    Build an EmailService for the current settings.

    WHY: Built per call so tests that clear RESEND_API_KEY get the mock
    provider.
    """
    return EmailService()
