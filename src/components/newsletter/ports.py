"""
Newsletter component ports.

Protocol interfaces for newsletter service dependencies.
"""

from __future__ import annotations

from typing import Protocol

from src.components.newsletter.models import (
    ConfirmedSubscriber,
    NewsletterSubscriber,
    UpsertResult,
)
from src.core.ports.email import EmailResult


class NewsletterRepoPort(Protocol):
    """
    Newsletter subscriber repository interface.

    Both write methods must be atomic: the condition and the mutation are
    evaluated as one indivisible operation. Implementations raise
    ``StoreError`` on any storage failure.
    """

    def upsert_pending(self, email: str, token: str) -> UpsertResult:
        """
        Insert a pending subscriber or update an existing one.

        Existing records: ``unsubscribed`` becomes ``pending``, other
        statuses are kept. The token is replaced unless the record is
        already ``confirmed``.
        """
        ...

    def confirm_by_token(self, token: str) -> ConfirmedSubscriber | None:
        """
        Confirm the pending subscriber holding ``token``.

        Sets status to ``confirmed`` and clears the token. Returns None when
        no pending subscriber holds the token.
        """
        ...

    def get_by_email(self, email: str) -> NewsletterSubscriber | None:
        """Get subscriber by email address (exact match)."""
        ...

    def ping(self) -> None:
        """Raise ``StoreError`` if the store is unreachable."""
        ...


class NewsletterEmailSenderPort(Protocol):
    """
    Email sender interface for newsletter operations.

    Sends the double opt-in confirmation email.
    """

    def send_confirmation_email(
        self,
        recipient_email: str,
        token: str,
    ) -> EmailResult:
        """
        Send double opt-in confirmation email.

        Args:
            recipient_email: Email to send to
            token: Confirmation token to embed in the link

        Returns:
            EmailResult; delivery problems are reported as FAILED with a
            failure reason, never raised.
        """
        ...
