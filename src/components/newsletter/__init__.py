"""
Newsletter component.

Double opt-in newsletter subscription: subscribe stores a pending
subscriber and mails a confirmation link, confirm consumes the token.
"""

from src.components.newsletter.component import (
    EMAIL_REGEX,
    build_confirmation_url,
    generate_token,
    run,
    run_confirm,
    run_subscribe,
    validate_email,
)
from src.components.newsletter.models import (
    VALID_TRANSITIONS,
    ConfirmedSubscriber,
    ConfirmInput,
    ConfirmOutput,
    ErrorKind,
    NewsletterConfig,
    NewsletterError,
    NewsletterSubscriber,
    StoreError,
    SubscribeInput,
    SubscribeOutput,
    SubscriberStatus,
    UpsertResult,
    ValidationError,
    can_transition,
    status_after_subscribe,
)
from src.components.newsletter.ports import (
    NewsletterEmailSenderPort,
    NewsletterRepoPort,
)

__all__ = [
    # Component
    "run",
    "run_subscribe",
    "run_confirm",
    # Pure functions
    "validate_email",
    "generate_token",
    "build_confirmation_url",
    # Constants
    "EMAIL_REGEX",
    # Models
    "NewsletterSubscriber",
    "SubscriberStatus",
    "VALID_TRANSITIONS",
    "can_transition",
    "status_after_subscribe",
    "NewsletterConfig",
    "UpsertResult",
    "ConfirmedSubscriber",
    # Input/Output
    "SubscribeInput",
    "SubscribeOutput",
    "ConfirmInput",
    "ConfirmOutput",
    "ValidationError",
    "ErrorKind",
    # Errors
    "NewsletterError",
    "StoreError",
    # Ports
    "NewsletterRepoPort",
    "NewsletterEmailSenderPort",
]
