import sqlite3
from unittest.mock import patch

import pytest

from src.api.deps import Settings
from src.app_shell import cli


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    monkeypatch.setenv("NEWSLETTER_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("EMAIL_PROVIDER", "dev")
    s = Settings()
    monkeypatch.setattr(cli, "get_settings", lambda: s)
    return s


def test_migrate(settings: Settings, capsys) -> None:
    cli.main(["migrate"])

    assert "Applied 1 migration(s)" in capsys.readouterr().out
    conn = sqlite3.connect(settings.db_path)
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE name='newsletter_subscribers'"
    ).fetchone()
    conn.close()
    assert row is not None


def test_migrate_dry_run(settings: Settings, capsys) -> None:
    cli.main(["migrate", "--dry-run"])
    assert "Pending: 0001_newsletter_subscribers.sql" in capsys.readouterr().out

    cli.main(["migrate"])
    cli.main(["migrate", "--dry-run"])
    assert "No pending migrations." in capsys.readouterr().out


def test_check_email_dev(settings: Settings, capsys) -> None:
    cli.main(["check-email"])
    assert "nothing to verify" in capsys.readouterr().out


def test_check_email_smtp_failure(settings: Settings, monkeypatch) -> None:
    monkeypatch.setenv("EMAIL_PROVIDER", "smtp")
    smtp_settings = Settings()
    monkeypatch.setattr(cli, "get_settings", lambda: smtp_settings)

    with patch("src.adapters.smtp_email.smtplib.SMTP", side_effect=OSError("down")):
        with pytest.raises(SystemExit):
            cli.main(["check-email"])


def test_serve_runs_uvicorn(settings: Settings) -> None:
    with patch("uvicorn.run") as run:
        cli.main(["serve", "--port", "9000"])

    run.assert_called_once_with("src.api.main:app", host="127.0.0.1", port=9000, reload=False)
