from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.newsletter_email import NewsletterEmailSender
from src.adapters.smtp_email import SMTPEmailAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import SQLiteNewsletterSubscriberRepo
from src.components.newsletter.models import NewsletterConfig
from src.components.newsletter.ports import NewsletterEmailSenderPort, NewsletterRepoPort
from src.core.ports.email import EmailAddress, EmailPort
from src.rules.models import Rules

if TYPE_CHECKING:
    from src.api.deps import Settings

logger = logging.getLogger(__name__)


def build_newsletter_config(rules: Rules, public_site_url: str) -> NewsletterConfig:
    return NewsletterConfig(
        site_name=rules.newsletter.site_name,
        base_url=public_site_url,
        confirmation_path=rules.newsletter.confirmation_path,
        token_bytes=rules.newsletter.token_bytes,
        confirmation_subject=rules.newsletter.confirmation_subject,
    )


def build_email_adapter(rules: Rules, settings: Settings) -> EmailPort:
    """Pick the email adapter; EMAIL_PROVIDER overrides rules.yaml."""
    email_rules = rules.email
    provider = (settings.email_provider or email_rules.provider).lower()

    if provider == "dev":
        return DevEmailAdapter()
    if provider != "smtp":
        raise ValueError(f"Unknown email provider: {provider}")

    sender_address = settings.email_user or email_rules.sender_address
    return SMTPEmailAdapter(
        host=settings.smtp_host or email_rules.smtp_host,
        port=settings.smtp_port or email_rules.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        sender=(
            EmailAddress(sender_address, email_rules.sender_name)
            if sender_address
            else None
        ),
        use_tls=email_rules.use_tls,
        timeout=email_rules.timeout_seconds,
    )


@dataclass
class ServiceContext:
    """Process-wide collaborators, built once at startup and injected into routes."""

    rules: Rules
    config: NewsletterConfig
    repo: NewsletterRepoPort
    email_adapter: EmailPort
    email_sender: NewsletterEmailSenderPort

    @classmethod
    def create(cls, settings: Settings, rules: Rules) -> ServiceContext:
        if settings.auto_migrate:
            SQLiteMigrator(settings.db_path, str(settings.migrations_dir)).run_migrations()

        config = build_newsletter_config(rules, settings.public_site_url)
        repo = SQLiteNewsletterSubscriberRepo(settings.db_path)
        email_adapter = build_email_adapter(rules, settings)

        if rules.email.verify_on_startup and isinstance(email_adapter, SMTPEmailAdapter):
            email_adapter.verify()

        email_sender = NewsletterEmailSender(email_adapter, config)
        logger.info("Database path: %s", Path(settings.db_path).absolute())
        return cls(
            rules=rules,
            config=config,
            repo=repo,
            email_adapter=email_adapter,
            email_sender=email_sender,
        )

    def close(self) -> None:
        """Release resources held by the collaborators."""
        # SQLite repo and SMTP adapter open connections per call
        logger.info("Service context closed")
