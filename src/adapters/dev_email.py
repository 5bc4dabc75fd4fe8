"""
Dev Email Adapter.

Logs emails instead of sending them. Used for local development and
testing (EMAIL_PROVIDER=dev).

Key behaviors:
- Logs recipient, subject and a body preview
- Returns SKIPPED status (not SENT)
- Keeps emails in memory for test assertions
- Can simulate a delivery failure of a given category
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from src.core.ports.email import (
    DeliveryFailure,
    EmailMessage,
    EmailResult,
    EmailStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class SentEmail:
    """Record of a logged email for test assertions."""

    id: str
    recipient: str
    subject: str
    body_html: str
    body_text: str
    sender: str | None
    logged_at: datetime


@dataclass
class DevEmailAdapter:
    """
    Dev email adapter that logs instead of sending.

    Implements EmailPort protocol. When ``fail_with`` is set every send
    returns a FAILED result with that reason and nothing is recorded.
    """

    sent_emails: list[SentEmail] = field(default_factory=list)

    log_level: int = logging.INFO
    log_body: bool = True
    body_preview_length: int = 100
    fail_with: DeliveryFailure | None = None

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        return self._record(
            recipient=recipient,
            subject=subject,
            body_html=body_html,
            body_text=body_text or "",
            sender=None,
        )

    def send(self, message: EmailMessage) -> EmailResult:
        return self._record(
            recipient=message.recipient.email,
            subject=message.subject,
            body_html=message.body_html,
            body_text=message.body_text,
            sender=str(message.sender) if message.sender else None,
        )

    def _record(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str,
        sender: str | None,
    ) -> EmailResult:
        if self.fail_with is not None:
            logger.log(
                self.log_level,
                "EMAIL (dev): simulated %s failure for %s",
                self.fail_with.value,
                recipient,
            )
            return EmailResult.failed(
                recipient, f"Simulated {self.fail_with.value} failure", self.fail_with
            )

        message_id = f"dev-{uuid4().hex[:12]}"
        self.sent_emails.append(
            SentEmail(
                id=message_id,
                recipient=recipient,
                subject=subject,
                body_html=body_html,
                body_text=body_text,
                sender=sender,
                logged_at=datetime.now(UTC),
            )
        )

        parts = [f"EMAIL (dev): To={recipient}", f"Subject={subject}"]
        if sender:
            parts.append(f"From={sender}")
        if self.log_body and body_text:
            preview = body_text[: self.body_preview_length]
            if len(body_text) > self.body_preview_length:
                preview += "..."
            parts.append(f"Body={preview}")
        parts.append(f"MessageID={message_id}")
        logger.log(self.log_level, ", ".join(parts))

        return EmailResult(
            status=EmailStatus.SKIPPED,
            message_id=message_id,
            recipient=recipient,
            error="Dev mode - email logged, not sent",
        )

    # --- Test Helper Methods ---

    def get_last_email(self) -> SentEmail | None:
        """Get the most recently logged email."""
        return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_to(self, recipient: str) -> list[SentEmail]:
        """Get all emails logged to a specific recipient."""
        return [e for e in self.sent_emails if e.recipient == recipient]

    def clear(self) -> None:
        """Clear all stored emails (for test isolation)."""
        self.sent_emails.clear()

    @property
    def email_count(self) -> int:
        return len(self.sent_emails)
