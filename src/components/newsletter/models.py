"""
Newsletter component models.

Data models for the double opt-in subscription flow.

State machine (Subscriber):
- (new) → pending (via subscribe)
- pending → confirmed (via confirmation link)
- unsubscribed → pending (via re-subscribe)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

# --- State Machine ---


class SubscriberStatus(Enum):
    """
    Newsletter subscriber status.

    State transitions:
    - pending → confirmed (via confirmation link)
    - unsubscribed → pending (via re-subscribe)
    - confirmed is sticky under subscribe
    """

    PENDING = "pending"  # Awaiting email confirmation
    CONFIRMED = "confirmed"  # Email confirmed, active subscriber
    UNSUBSCRIBED = "unsubscribed"  # Opted out, may re-subscribe


# Valid state transitions
VALID_TRANSITIONS: dict[SubscriberStatus, set[SubscriberStatus]] = {
    SubscriberStatus.PENDING: {SubscriberStatus.CONFIRMED},
    SubscriberStatus.CONFIRMED: set(),
    SubscriberStatus.UNSUBSCRIBED: {SubscriberStatus.PENDING},
}


def can_transition(from_status: SubscriberStatus, to_status: SubscriberStatus) -> bool:
    """Check if state transition is valid."""
    return to_status in VALID_TRANSITIONS.get(from_status, set())


def status_after_subscribe(current: SubscriberStatus | None) -> SubscriberStatus:
    """Status a record ends up in after a subscribe request."""
    if current is None or can_transition(current, SubscriberStatus.PENDING):
        return SubscriberStatus.PENDING
    return current


# --- Entity ---


@dataclass
class NewsletterSubscriber:
    """
    Newsletter subscriber entity.

    One record per email address. The confirmation token is only set
    while a confirmation is outstanding.
    """

    id: UUID
    email: str
    status: SubscriberStatus = SubscriberStatus.PENDING
    confirmation_token: str | None = None  # One-time confirmation token
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


# --- Store Results ---


@dataclass(frozen=True)
class UpsertResult:
    """Row returned by the atomic subscribe upsert."""

    id: UUID
    status: SubscriberStatus
    email: str


@dataclass(frozen=True)
class ConfirmedSubscriber:
    """Row returned by the atomic confirm update."""

    id: UUID
    email: str


# --- Input Models ---


@dataclass(frozen=True)
class SubscribeInput:
    """Input for new subscription."""

    email: str | None


@dataclass(frozen=True)
class ConfirmInput:
    """Input for confirming subscription."""

    token: str | None


# --- Output Models ---


class ErrorKind(Enum):
    """Broad error category, used by the HTTP shell to pick a status code."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    SERVICE = "service"


@dataclass(frozen=True)
class ValidationError:
    """Error detail carried on component outputs."""

    code: str
    message: str
    field: str | None = None
    kind: ErrorKind = ErrorKind.VALIDATION


@dataclass(frozen=True)
class SubscribeOutput:
    """Output from subscription attempt."""

    success: bool
    subscriber_id: UUID | None = None
    email: str | None = None
    needs_confirmation: bool = True
    already_subscribed: bool = False  # True if email already confirmed
    email_delivered: bool = False
    delivery_error: str | None = None  # Failure reason category
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class ConfirmOutput:
    """Output from confirmation attempt."""

    success: bool
    subscriber_id: UUID | None = None
    email: str | None = None
    errors: list[ValidationError] = field(default_factory=list)


# --- Configuration ---


@dataclass(frozen=True)
class NewsletterConfig:
    """Newsletter service configuration."""

    site_name: str = "Newsletter"
    base_url: str = "http://localhost:5173"
    confirmation_path: str = "/confirm-subscription"
    token_bytes: int = 32
    confirmation_subject: str = "Please Confirm Your Subscription"


# --- Error Types ---


class NewsletterError(Exception):
    """Base newsletter error."""

    pass


class StoreError(NewsletterError):
    """
    Subscriber store operation failed.

    ``retriable`` is set when the store could not be reached or was
    locked, as opposed to a constraint or query failure.
    """

    def __init__(self, operation: str, reason: str, retriable: bool = False) -> None:
        self.operation = operation
        self.reason = reason
        self.retriable = retriable
        super().__init__(f"Store error during {operation}: {reason}")
