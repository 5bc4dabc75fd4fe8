"""
Public newsletter endpoints for the double opt-in flow.

Endpoints:
- POST /api/subscribe - Subscribe to newsletter
- GET /confirm-subscription - Confirm subscription via emailed token

Every response body is ``{"message": str}``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.api.deps import (
    get_newsletter_config,
    get_newsletter_email_sender,
    get_newsletter_repo,
)
from src.components.newsletter.component import (
    MSG_ALREADY_CONFIRMED,
    MSG_CHECK_EMAIL,
    MSG_CONFIRMED,
    run,
)
from src.components.newsletter.models import (
    ConfirmInput,
    ErrorKind,
    NewsletterConfig,
    SubscribeInput,
    ValidationError,
)
from src.components.newsletter.ports import NewsletterEmailSenderPort, NewsletterRepoPort

router = APIRouter()


# --- Request/Response Models ---


class SubscribeRequest(BaseModel):
    """Request body for newsletter subscription."""

    # Optional so a missing address is reported by the component, not as a 422
    email: str | None = Field(default=None, description="Email address to subscribe")


class MessageResponse(BaseModel):
    """Response body for all newsletter endpoints."""

    message: str = Field(..., description="Human-readable message")


ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": MessageResponse, "description": "Invalid request"},
    500: {"model": MessageResponse, "description": "Service failure"},
    503: {"model": MessageResponse, "description": "Store unavailable"},
}


# --- Helper Functions ---


def status_for_error(error: ValidationError) -> int:
    """HTTP status for a component error."""
    if error.kind == ErrorKind.VALIDATION:
        return status.HTTP_400_BAD_REQUEST
    if error.kind == ErrorKind.NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    if error.code == "STORE_UNAVAILABLE":
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def message_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=MessageResponse(message=message).model_dump(),
    )


def error_response(errors: list[ValidationError]) -> JSONResponse:
    error = errors[0]
    return message_response(status_for_error(error), error.message)


# --- Subscribe Endpoint ---


@router.post(
    "/api/subscribe",
    response_model=MessageResponse,
    responses=ERROR_RESPONSES,
    summary="Subscribe to newsletter",
    description="Start the double opt-in subscription flow. Sends confirmation email.",
)
def subscribe_to_newsletter(
    request_body: SubscribeRequest,
    repo: NewsletterRepoPort = Depends(get_newsletter_repo),
    email_sender: NewsletterEmailSenderPort = Depends(get_newsletter_email_sender),
    config: NewsletterConfig = Depends(get_newsletter_config),
) -> JSONResponse:
    """
    Subscribe to the newsletter.

    Double opt-in flow:
    1. Validate email presence and format
    2. Upsert pending subscriber with a fresh token
    3. Send confirmation email (unless already confirmed)

    A confirmation email that could not be delivered still yields 200;
    the failure is logged by the component.
    """
    result = run(
        SubscribeInput(email=request_body.email),
        repo=repo,
        email_sender=email_sender,
        config=config,
    )

    if not result.success:
        return error_response(result.errors)

    if getattr(result, "already_subscribed", False):
        return message_response(status.HTTP_200_OK, MSG_ALREADY_CONFIRMED)

    return message_response(status.HTTP_200_OK, MSG_CHECK_EMAIL)


# --- Confirm Endpoint ---


@router.get(
    "/confirm-subscription",
    response_model=MessageResponse,
    responses={
        **ERROR_RESPONSES,
        404: {"model": MessageResponse, "description": "Token not found or already used"},
    },
    summary="Confirm newsletter subscription",
    description="Confirm subscription via token from confirmation email.",
)
def confirm_subscription(
    token: str | None = Query(default=None),
    repo: NewsletterRepoPort = Depends(get_newsletter_repo),
) -> JSONResponse:
    """
    Confirm newsletter subscription.

    Transitions a pending subscriber holding the token to confirmed and
    clears the token. A second visit with the same token returns 404.
    """
    result = run(ConfirmInput(token=token), repo=repo)

    if not result.success:
        return error_response(result.errors)

    return message_response(status.HTTP_200_OK, MSG_CONFIRMED)
