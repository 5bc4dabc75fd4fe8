import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.memory_newsletter import InMemoryNewsletterSubscriberRepo
from src.adapters.newsletter_email import NewsletterEmailSender
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import SQLiteNewsletterSubscriberRepo
from src.api.main import create_app
from src.app_shell.context import ServiceContext, build_newsletter_config
from src.rules.loader import load_rules
from src.rules.models import Rules

PUBLIC_SITE_URL = "https://news.example.com"


@pytest.fixture
def test_data_dir(tmp_path: Path) -> str:
    return str(tmp_path)


@pytest.fixture
def rules() -> Rules:
    # Tests run from project root
    rules_path = Path("rules.yaml").resolve()
    if not rules_path.exists():
        raise FileNotFoundError(f"Rules not found at {rules_path}")
    return load_rules(rules_path)


@pytest.fixture
def db_path(test_data_dir: str) -> str:
    path = os.path.join(test_data_dir, "newsletter.db")
    SQLiteMigrator(path, "migrations").run_migrations()
    return path


@pytest.fixture
def sqlite_repo(db_path: str) -> SQLiteNewsletterSubscriberRepo:
    return SQLiteNewsletterSubscriberRepo(db_path)


@pytest.fixture
def memory_repo() -> InMemoryNewsletterSubscriberRepo:
    return InMemoryNewsletterSubscriberRepo()


@pytest.fixture
def dev_email() -> DevEmailAdapter:
    return DevEmailAdapter()


def make_context(
    rules: Rules,
    repo: SQLiteNewsletterSubscriberRepo | InMemoryNewsletterSubscriberRepo,
    email_adapter: DevEmailAdapter,
) -> ServiceContext:
    config = build_newsletter_config(rules, PUBLIC_SITE_URL)
    return ServiceContext(
        rules=rules,
        config=config,
        repo=repo,
        email_adapter=email_adapter,
        email_sender=NewsletterEmailSender(email_adapter, config),
    )


@pytest.fixture
def test_ctx(
    rules: Rules,
    sqlite_repo: SQLiteNewsletterSubscriberRepo,
    dev_email: DevEmailAdapter,
) -> ServiceContext:
    """
    Full ServiceContext backed by a temporary, migrated SQLite DB and the dev mailer.
    """
    return make_context(rules, sqlite_repo, dev_email)


@pytest.fixture
def client(test_ctx: ServiceContext) -> Iterator[TestClient]:
    """API client over the SQLite-backed context."""
    with TestClient(create_app(test_ctx)) as c:
        yield c
