"""
Newsletter email sender.

Renders the double opt-in confirmation email and hands it to an
EmailPort (SMTP or dev adapter). Implements NewsletterEmailSenderPort.
"""

from __future__ import annotations

import html

from src.components.newsletter.component import build_confirmation_url
from src.components.newsletter.models import NewsletterConfig
from src.core.ports.email import EmailAddress, EmailMessage, EmailPort, EmailResult

CONFIRMATION_HTML = """\
<p>Hello,</p>
<p>Thank you for subscribing to {site_name}!</p>
<p>Please click the link below to confirm your subscription:</p>
<p><a href="{url}">Confirm My Subscription</a></p>
<p>If you did not sign up for this list, please ignore this email.</p>
<p>Best regards,<br>{site_name}</p>
"""

CONFIRMATION_TEXT = """\
Hello,

Thank you for subscribing to {site_name}!

Please confirm your subscription by visiting:
{url}

If you did not sign up for this list, please ignore this email.
"""


class NewsletterEmailSender:
    """Sends confirmation emails through an EmailPort."""

    def __init__(
        self,
        email_adapter: EmailPort,
        config: NewsletterConfig | None = None,
        sender: EmailAddress | None = None,
    ) -> None:
        self.email_adapter = email_adapter
        self.config = config or NewsletterConfig()
        self.sender = sender

    def render_confirmation(self, token: str) -> tuple[str, str]:
        """Return (html, text) bodies for a confirmation email."""
        url = build_confirmation_url(
            self.config.base_url, token, self.config.confirmation_path
        )
        site_name = self.config.site_name
        body_html = CONFIRMATION_HTML.format(
            site_name=html.escape(site_name), url=html.escape(url, quote=True)
        )
        body_text = CONFIRMATION_TEXT.format(site_name=site_name, url=url)
        return body_html, body_text

    def send_confirmation_email(self, recipient_email: str, token: str) -> EmailResult:
        body_html, body_text = self.render_confirmation(token)
        message = EmailMessage(
            recipient=EmailAddress(recipient_email),
            subject=self.config.confirmation_subject,
            body_html=body_html,
            body_text=body_text,
            sender=self.sender,
        )
        return self.email_adapter.send(message)
