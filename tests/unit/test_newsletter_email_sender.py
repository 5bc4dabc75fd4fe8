"""
Tests for the confirmation email renderer/sender.
"""

import pytest

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.newsletter_email import NewsletterEmailSender
from src.components.newsletter.models import NewsletterConfig
from src.core.ports.email import DeliveryFailure, EmailAddress, EmailStatus


@pytest.fixture
def config() -> NewsletterConfig:
    return NewsletterConfig(
        site_name="Tom & Jerry Weekly",
        base_url="https://news.example.com/",
        confirmation_subject="Confirm please",
    )


@pytest.fixture
def adapter() -> DevEmailAdapter:
    return DevEmailAdapter()


@pytest.fixture
def sender(adapter: DevEmailAdapter, config: NewsletterConfig) -> NewsletterEmailSender:
    return NewsletterEmailSender(adapter, config)


def test_confirmation_email_contains_link(
    sender: NewsletterEmailSender, adapter: DevEmailAdapter
) -> None:
    result = sender.send_confirmation_email("reader@example.com", "tok-abc")

    assert result.status == EmailStatus.SKIPPED
    email = adapter.get_last_email()
    assert email is not None
    assert email.recipient == "reader@example.com"
    assert email.subject == "Confirm please"
    assert "https://news.example.com/confirm-subscription?token=tok-abc" in email.body_text
    assert 'href="https://news.example.com/confirm-subscription?token=tok-abc"' in email.body_html


def test_site_name_is_escaped_in_html(sender: NewsletterEmailSender) -> None:
    body_html, body_text = sender.render_confirmation("t")

    assert "Tom &amp; Jerry Weekly" in body_html
    assert "Tom & Jerry Weekly" in body_text


def test_custom_confirmation_path(adapter: DevEmailAdapter) -> None:
    config = NewsletterConfig(base_url="https://x.example", confirmation_path="/newsletter/ok")
    sender = NewsletterEmailSender(adapter, config)

    _, body_text = sender.render_confirmation("t1")

    assert "https://x.example/newsletter/ok?token=t1" in body_text


def test_sender_address_is_passed_through(adapter: DevEmailAdapter) -> None:
    sender = NewsletterEmailSender(adapter, sender=EmailAddress("from@example.com"))

    sender.send_confirmation_email("reader@example.com", "t")

    email = adapter.get_last_email()
    assert email is not None
    assert email.sender == "from@example.com"


def test_failure_is_returned_not_raised(config: NewsletterConfig) -> None:
    sender = NewsletterEmailSender(DevEmailAdapter(fail_with=DeliveryFailure.TIMEOUT), config)

    result = sender.send_confirmation_email("reader@example.com", "t")

    assert not result.ok
    assert result.failure_reason == DeliveryFailure.TIMEOUT
