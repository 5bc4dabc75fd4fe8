"""
SMTP Email Adapter.

Sends emails through an SMTP server (EMAIL_PROVIDER=smtp).

Key behaviors:
- multipart/alternative message (plain text + HTML)
- Port 465 uses implicit TLS, other ports STARTTLS when enabled
- Logs in only when a username is configured
- Never raises for delivery problems; returns a FAILED result with the
  failure category (authentication, connection, timeout, other)
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage as MIMEEmailMessage
from email.utils import make_msgid

from src.core.ports.email import (
    DeliveryFailure,
    EmailAddress,
    EmailMessage,
    EmailResult,
)

logger = logging.getLogger(__name__)

SMTP_SSL_PORT = 465


def classify_smtp_error(exc: BaseException) -> DeliveryFailure:
    """Map an smtplib/socket exception to a failure category."""
    # SMTPException and TimeoutError are both OSError subclasses
    if isinstance(exc, smtplib.SMTPAuthenticationError):
        return DeliveryFailure.AUTHENTICATION
    if isinstance(exc, TimeoutError):
        return DeliveryFailure.TIMEOUT
    if isinstance(exc, (smtplib.SMTPConnectError, smtplib.SMTPServerDisconnected)):
        return DeliveryFailure.CONNECTION
    if isinstance(exc, smtplib.SMTPException):
        return DeliveryFailure.OTHER
    if isinstance(exc, OSError):
        return DeliveryFailure.CONNECTION
    return DeliveryFailure.OTHER


@dataclass
class SMTPEmailAdapter:
    """
    SMTP email adapter.

    Implements EmailPort protocol. A new connection is opened per send.
    """

    host: str
    port: int = 587
    username: str | None = None
    password: str | None = None
    sender: EmailAddress | None = None
    use_tls: bool = True
    timeout: float = 30.0

    @property
    def use_ssl(self) -> bool:
        return self.port == SMTP_SSL_PORT

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        return self.send(
            EmailMessage(
                recipient=EmailAddress(recipient),
                subject=subject,
                body_html=body_html,
                body_text=body_text or "",
            )
        )

    def send(self, message: EmailMessage) -> EmailResult:
        recipient = message.recipient.email

        try:
            mime = self._build_mime(message)
            message_id = mime["Message-ID"]
            with self._connect() as server:
                server.send_message(mime)
        except (smtplib.SMTPException, OSError) as e:
            reason = classify_smtp_error(e)
            logger.error(
                "SMTP send to %s failed (%s): %s", recipient, reason.value, e
            )
            return EmailResult.failed(recipient, str(e), reason)
        except Exception as e:
            logger.exception("Unexpected SMTP error sending to %s", recipient)
            return EmailResult.failed(recipient, str(e), DeliveryFailure.OTHER)

        logger.info("SMTP email sent to %s", recipient)
        return EmailResult.success(recipient, message_id=message_id)

    def verify(self) -> bool:
        """
        Check that the server accepts a connection (and login).

        Returns:
            True if the connection succeeded
        """
        try:
            with self._connect() as server:
                server.noop()
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "SMTP verification failed for %s:%s (%s): %s",
                self.host,
                self.port,
                classify_smtp_error(e).value,
                e,
            )
            return False
        logger.info("SMTP server %s:%s is ready to take messages", self.host, self.port)
        return True

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        server: smtplib.SMTP
        if self.use_ssl:
            server = smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=context
            )
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        try:
            if not self.use_ssl and self.use_tls:
                server.starttls(context=context)
            if self.username:
                server.login(self.username, self.password or "")
        except BaseException:
            server.close()
            raise
        return server

    def _build_mime(self, message: EmailMessage) -> MIMEEmailMessage:
        mime = MIMEEmailMessage()
        sender = message.sender or self.sender
        if sender is not None:
            mime["From"] = str(sender)
        mime["To"] = str(message.recipient)
        mime["Subject"] = message.subject
        if message.reply_to is not None:
            mime["Reply-To"] = str(message.reply_to)
        for name, value in message.headers.items():
            mime[name] = value
        mime["Message-ID"] = make_msgid()

        if message.body_text:
            mime.set_content(message.body_text)
            if message.body_html:
                mime.add_alternative(message.body_html, subtype="html")
        else:
            mime.set_content(message.body_html, subtype="html")
        return mime
