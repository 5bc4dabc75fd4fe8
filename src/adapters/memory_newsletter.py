"""
In-memory newsletter repository.

Mutex-guarded map satisfying the atomic upsert / conditional confirm
contract of NewsletterRepoPort. Used for local development and tests
where no SQLite file is wanted.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from threading import Lock
from uuid import uuid4

from src.components.newsletter.models import (
    ConfirmedSubscriber,
    NewsletterSubscriber,
    SubscriberStatus,
    UpsertResult,
    can_transition,
    status_after_subscribe,
)


class InMemoryNewsletterSubscriberRepo:
    """
    Thread-safe in-memory implementation of NewsletterRepoPort.

    A single store-wide lock covers both the email map and the token index,
    so each write is one critical section. Status changes follow
    ``VALID_TRANSITIONS``.
    """

    def __init__(self) -> None:
        self._by_email: dict[str, NewsletterSubscriber] = {}
        self._by_token: dict[str, str] = {}  # token -> email
        self._lock = Lock()

    def upsert_pending(self, email: str, token: str) -> UpsertResult:
        now = datetime.now(UTC)
        with self._lock:
            existing = self._by_email.get(email)
            if existing is None:
                subscriber = NewsletterSubscriber(
                    id=uuid4(),
                    email=email,
                    status=SubscriberStatus.PENDING,
                    confirmation_token=token,
                    created_at=now,
                    updated_at=now,
                )
            else:
                if existing.confirmation_token:
                    self._by_token.pop(existing.confirmation_token, None)
                new_status = status_after_subscribe(existing.status)
                subscriber = replace(
                    existing,
                    status=new_status,
                    confirmation_token=(
                        existing.confirmation_token
                        if existing.status == SubscriberStatus.CONFIRMED
                        else token
                    ),
                    updated_at=now,
                )

            self._by_email[email] = subscriber
            if subscriber.confirmation_token:
                self._by_token[subscriber.confirmation_token] = email

            return UpsertResult(
                id=subscriber.id,
                status=subscriber.status,
                email=subscriber.email,
            )

    def confirm_by_token(self, token: str) -> ConfirmedSubscriber | None:
        with self._lock:
            email = self._by_token.get(token)
            if email is None:
                return None
            subscriber = self._by_email[email]
            if not can_transition(subscriber.status, SubscriberStatus.CONFIRMED):
                return None

            del self._by_token[token]
            self._by_email[email] = replace(
                subscriber,
                status=SubscriberStatus.CONFIRMED,
                confirmation_token=None,
                updated_at=datetime.now(UTC),
            )
            return ConfirmedSubscriber(id=subscriber.id, email=subscriber.email)

    def get_by_email(self, email: str) -> NewsletterSubscriber | None:
        with self._lock:
            return self._by_email.get(email)

    def ping(self) -> None:
        return None

    # --- Test Helper Methods ---

    def put(self, subscriber: NewsletterSubscriber) -> None:
        """Seed a record directly (e.g. an unsubscribed address)."""
        with self._lock:
            old = self._by_email.get(subscriber.email)
            if old is not None and old.confirmation_token:
                self._by_token.pop(old.confirmation_token, None)
            self._by_email[subscriber.email] = subscriber
            if subscriber.confirmation_token:
                self._by_token[subscriber.confirmation_token] = subscriber.email

    @property
    def count(self) -> int:
        """Number of stored subscribers."""
        return len(self._by_email)
