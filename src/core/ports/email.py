"""
Email Adapter Interface.

Protocol-based interface for sending transactional emails.
Used by the newsletter sender for double opt-in confirmation emails.

Key requirements:
- Send transactional emails (confirmation)
- Support HTML and plain text body
- Stateless send operation
- Binary outcome: delivered or failed with a reason category

Implementation strategies:
1. DevEmailAdapter: Logs emails to console (dev/test)
2. SMTPEmailAdapter: Sends via SMTP

All strategies implement the same EmailPort interface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    """Email send result status."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # Dev adapter or dry-run


class DeliveryFailure(Enum):
    """Why a send attempt failed."""

    AUTHENTICATION = "authentication"
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    OTHER = "other"


@dataclass(frozen=True)
class EmailAddress:
    """
    Email address with optional display name.

    Examples:
        EmailAddress("user@example.com")
        EmailAddress("user@example.com", "Jane Doe")
    """

    email: str
    name: str | None = None

    def __str__(self) -> str:
        """Format as RFC 5322 address."""
        if self.name:
            # Escape quotes in name
            safe_name = self.name.replace('"', '\\"')
            return f'"{safe_name}" <{self.email}>'
        return self.email


@dataclass(frozen=True)
class EmailMessage:
    """
    Email message to be sent.

    Supports both HTML and plain text body for maximum compatibility.
    """

    recipient: EmailAddress
    subject: str
    body_html: str
    body_text: str
    sender: EmailAddress | None = None  # None = use default sender
    reply_to: EmailAddress | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate email message."""
        if not self.recipient.email:
            raise ValueError("Recipient email is required")
        if not self.subject:
            raise ValueError("Subject is required")
        if not self.body_html and not self.body_text:
            raise ValueError("At least one of body_html or body_text is required")


@dataclass
class EmailResult:
    """Result of an email send attempt."""

    status: EmailStatus
    message_id: str | None = None  # Provider's message ID
    error: str | None = None
    failure_reason: DeliveryFailure | None = None
    sent_at: datetime | None = None
    recipient: str = ""

    @property
    def ok(self) -> bool:
        """True unless the attempt failed."""
        return self.status != EmailStatus.FAILED

    @classmethod
    def success(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        """Create a successful send result."""
        return cls(
            status=EmailStatus.SENT,
            message_id=message_id,
            recipient=recipient,
            sent_at=datetime.now(UTC),
        )

    @classmethod
    def skipped(cls, recipient: str, reason: str = "Dev mode") -> EmailResult:
        """Create a skipped result (dev adapter)."""
        return cls(
            status=EmailStatus.SKIPPED,
            recipient=recipient,
            error=reason,
        )

    @classmethod
    def failed(
        cls,
        recipient: str,
        error: str,
        reason: DeliveryFailure = DeliveryFailure.OTHER,
    ) -> EmailResult:
        """Create a failed result."""
        return cls(
            status=EmailStatus.FAILED,
            recipient=recipient,
            error=error,
            failure_reason=reason,
        )


class EmailPort(Protocol):
    """
    Email sending interface.

    Implementations:
    - DevEmailAdapter: Logs to console (dev/test)
    - SMTPEmailAdapter: Sends via SMTP
    """

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        """
        Send a transactional email.

        Args:
            recipient: Email address of recipient
            subject: Email subject line
            body_html: HTML body content
            body_text: Plain text body (optional, fallback)

        Returns:
            EmailResult with send outcome

        Notes:
            - Must not raise exceptions; return failed status instead
        """
        ...

    def send(self, message: EmailMessage) -> EmailResult:
        """
        Send an email message with full options.

        Args:
            message: Complete email message with all options

        Returns:
            EmailResult with send outcome
        """
        ...


# --- Error Types ---


class EmailError(Exception):
    """Base exception for email-related errors."""

    pass


class EmailSendError(EmailError):
    """Failed to send email."""

    def __init__(
        self,
        recipient: str,
        error: str,
        reason: DeliveryFailure = DeliveryFailure.OTHER,
    ) -> None:
        self.recipient = recipient
        self.error = error
        self.reason = reason
        super().__init__(f"Failed to send email to {recipient}: {error}")
