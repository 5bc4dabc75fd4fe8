import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends, Request

from src.app_shell.context import ServiceContext
from src.components.newsletter.models import NewsletterConfig
from src.components.newsletter.ports import NewsletterEmailSenderPort, NewsletterRepoPort


# --- Settings ---
class Settings:
    """Environment-provided settings. Non-secret defaults live in rules.yaml."""

    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("NEWSLETTER_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "newsletter.db")
        self.rules_path = Path(
            os.environ.get("NEWSLETTER_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.migrations_dir = self.base_dir / "migrations"
        self.auto_migrate = os.environ.get("NEWSLETTER_AUTO_MIGRATE", "1") != "0"

        self.public_site_url = os.environ.get("PUBLIC_SITE_URL", "http://localhost:5173")

        self.email_provider = os.environ.get("EMAIL_PROVIDER")
        self.email_user = os.environ.get("EMAIL_USER")
        self.smtp_host = os.environ.get("SMTP_HOST")
        smtp_port = os.environ.get("SMTP_PORT")
        self.smtp_port = int(smtp_port) if smtp_port else None
        self.smtp_username = os.environ.get("SMTP_USERNAME")
        self.smtp_password = os.environ.get("SMTP_PASSWORD")


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Service Context ---
def get_context(request: Request) -> ServiceContext:
    """The ServiceContext built by the application lifespan."""
    ctx: ServiceContext = request.app.state.ctx
    return ctx


# --- Newsletter ---
def get_newsletter_repo(ctx: ServiceContext = Depends(get_context)) -> NewsletterRepoPort:
    return ctx.repo


def get_newsletter_email_sender(
    ctx: ServiceContext = Depends(get_context),
) -> NewsletterEmailSenderPort:
    return ctx.email_sender


def get_newsletter_config(ctx: ServiceContext = Depends(get_context)) -> NewsletterConfig:
    return ctx.config
