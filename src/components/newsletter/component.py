"""
NewsletterService component.

Functional core for the newsletter double opt-in flow.

Key behaviors:
- Double opt-in (pending → confirmed via email link)
- Cryptographic tokens (secrets.token_urlsafe)
- Single-use confirmation tokens, cleared on confirm
- Atomic store primitives (upsert, conditional confirm)
- Write first, notify second

Invariants:
- Status starts as pending; confirmed never regresses on re-subscribe
- A token is consumed by at most one successful confirmation
- Validation failures never touch the store

Email validation is a loose local@domain.tld shape check. It accepts
addresses that RFC 5322 would reject and that is accepted behaviour.
"""

from __future__ import annotations

import logging
import re
import secrets

from src.components.newsletter.models import (
    ConfirmInput,
    ConfirmOutput,
    ErrorKind,
    NewsletterConfig,
    StoreError,
    SubscribeInput,
    SubscribeOutput,
    SubscriberStatus,
    ValidationError,
)
from src.components.newsletter.ports import (
    NewsletterEmailSenderPort,
    NewsletterRepoPort,
)
from src.core.ports.email import DeliveryFailure, EmailSendError

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

# --- Messages ---

MSG_CHECK_EMAIL = "Please check your email to confirm your subscription!"
MSG_ALREADY_CONFIRMED = "You are already subscribed and confirmed!"
MSG_CONFIRMED = "Your subscription has been successfully confirmed!"
MSG_EMAIL_REQUIRED = "Email address is required."
MSG_INVALID_FORMAT = "Please enter a valid email address format."
MSG_TOKEN_REQUIRED = "Confirmation token is missing from the link."
MSG_TOKEN_NOT_FOUND = (
    "Invalid or expired confirmation link, or subscription already confirmed."
)
MSG_STORE_UNAVAILABLE = "Database service unavailable. Please try again later."
MSG_SUBSCRIBE_FAILED = "Failed to process subscription request. Please try again."
MSG_CONFIRM_FAILED = "An error occurred during confirmation. Please try again."


# --- Pure Functions (Functional Core) ---


def validate_email(email: str | None) -> ValidationError | None:
    """
    Check an address for presence and local@domain.tld shape.

    Matching is exact: no trimming or case folding is applied.

    Returns:
        None if the address is acceptable, otherwise the error.
    """
    if not email:
        return ValidationError("MISSING_EMAIL", MSG_EMAIL_REQUIRED, "email")
    if not EMAIL_REGEX.fullmatch(email):
        return ValidationError("INVALID_FORMAT", MSG_INVALID_FORMAT, "email")
    return None


def generate_token(length: int = 32) -> str:
    """
    Generate a cryptographically secure URL-safe token.

    Args:
        length: Number of random bytes (will be base64-encoded)

    Returns:
        URL-safe token string
    """
    return secrets.token_urlsafe(length)


def build_confirmation_url(
    base_url: str,
    token: str,
    path: str = "/confirm-subscription",
) -> str:
    """
    Build the confirmation URL for email.

    Args:
        base_url: Site base URL
        token: Confirmation token
        path: URL path for confirmation endpoint

    Returns:
        Full confirmation URL
    """
    base = base_url.rstrip("/")
    return f"{base}{path}?token={token}"


def store_error_output(exc: StoreError, message: str) -> ValidationError:
    """Map a store failure to a generic, non-leaking error."""
    if exc.retriable:
        return ValidationError(
            "STORE_UNAVAILABLE", MSG_STORE_UNAVAILABLE, None, ErrorKind.SERVICE
        )
    return ValidationError("STORE_ERROR", message, None, ErrorKind.SERVICE)


# --- Run Handlers ---


def run_subscribe(
    inp: SubscribeInput,
    repo: NewsletterRepoPort,
    *,
    email_sender: NewsletterEmailSenderPort | None = None,
    config: NewsletterConfig | None = None,
) -> SubscribeOutput:
    """
    Handle subscription request (Atomic Handler).

    A failed confirmation email does not fail the request: the pending
    record is valid, the failure is logged and reported on the output.
    """
    cfg = config or NewsletterConfig()

    error = validate_email(inp.email)
    if error is not None:
        logger.info("Subscription rejected: %s", error.code)
        return SubscribeOutput(success=False, errors=[error])

    email = str(inp.email)
    token = generate_token(cfg.token_bytes)
    logger.info("Processing subscription (token %s...)", token[:8])

    try:
        row = repo.upsert_pending(email, token)
    except StoreError as e:
        logger.error("Store error during subscription: %s", e, exc_info=True)
        return SubscribeOutput(
            success=False,
            errors=[store_error_output(e, MSG_SUBSCRIBE_FAILED)],
        )

    if row.status == SubscriberStatus.CONFIRMED:
        logger.info("Subscriber %s already confirmed", row.id)
        return SubscribeOutput(
            success=True,  # Idempotent success
            subscriber_id=row.id,
            email=row.email,
            needs_confirmation=False,
            already_subscribed=True,
        )

    if email_sender is None:
        logger.warning("No email sender configured; confirmation not sent to %s", row.email)
        return SubscribeOutput(
            success=True,
            subscriber_id=row.id,
            email=row.email,
            delivery_error=DeliveryFailure.OTHER.value,
        )

    try:
        result = email_sender.send_confirmation_email(row.email, token)
    except EmailSendError as e:
        logger.error("Confirmation email to %s raised: %s", row.email, e)
        reason = e.reason
    except Exception:
        # The record is already committed; delivery problems never fail the request
        logger.exception("Unexpected error sending confirmation email to %s", row.email)
        reason = DeliveryFailure.OTHER
    else:
        if result.ok:
            logger.info("Confirmation email sent to %s", row.email)
            return SubscribeOutput(
                success=True,
                subscriber_id=row.id,
                email=row.email,
                email_delivered=True,
            )
        reason = result.failure_reason or DeliveryFailure.OTHER
        logger.error(
            "Failed to send confirmation email to %s (%s): %s",
            row.email,
            reason.value,
            result.error,
        )

    return SubscribeOutput(
        success=True,
        subscriber_id=row.id,
        email=row.email,
        email_delivered=False,
        delivery_error=reason.value,
    )


def run_confirm(
    inp: ConfirmInput,
    repo: NewsletterRepoPort,
) -> ConfirmOutput:
    """
    Handle confirmation request (Atomic Handler).
    """
    if not inp.token:
        logger.warning("Confirmation attempt with missing token")
        return ConfirmOutput(
            success=False,
            errors=[ValidationError("MISSING_TOKEN", MSG_TOKEN_REQUIRED, "token")],
        )

    try:
        confirmed = repo.confirm_by_token(inp.token)
    except StoreError as e:
        logger.error("Store error during confirmation: %s", e, exc_info=True)
        return ConfirmOutput(
            success=False,
            errors=[store_error_output(e, MSG_CONFIRM_FAILED)],
        )

    if confirmed is None:
        logger.warning("Invalid or already used confirmation token %s...", inp.token[:8])
        return ConfirmOutput(
            success=False,
            errors=[
                ValidationError(
                    "TOKEN_NOT_FOUND", MSG_TOKEN_NOT_FOUND, "token", ErrorKind.NOT_FOUND
                )
            ],
        )

    logger.info("Subscription confirmed for %s", confirmed.email)
    return ConfirmOutput(
        success=True,
        subscriber_id=confirmed.id,
        email=confirmed.email,
    )


def run(
    inp: SubscribeInput | ConfirmInput,
    *,
    repo: NewsletterRepoPort,
    email_sender: NewsletterEmailSenderPort | None = None,
    config: NewsletterConfig | None = None,
) -> SubscribeOutput | ConfirmOutput:
    """
    Main component entry point (Atomic Component Pattern).

    Args:
        inp: Input command
        repo: Repository port (Required)
        email_sender: Email sender port (Optional)
        config: Configuration (Optional)

    Returns:
        Operation result
    """
    if isinstance(inp, SubscribeInput):
        return run_subscribe(
            inp,
            repo,
            email_sender=email_sender,
            config=config,
        )
    elif isinstance(inp, ConfirmInput):
        return run_confirm(inp, repo)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
