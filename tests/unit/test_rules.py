from pathlib import Path

import pytest

from src.rules.loader import load_rules

VALID_RULES = """
project:
  slug: test
  rules_version: "1"
newsletter:
  site_name: Test
email:
  provider: dev
ops:
  data_dir_required: false
"""


def write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "rules.yaml"
    path.write_text(content)
    return path


def test_project_rules_file_loads(rules) -> None:
    assert rules.project.slug == "newsletter-optin"
    assert rules.newsletter.confirmation_path == "/confirm-subscription"
    assert rules.newsletter.token_bytes == 32
    assert rules.email.provider == "smtp"


def test_defaults_applied(tmp_path: Path) -> None:
    rules = load_rules(write(tmp_path, VALID_RULES))

    assert rules.newsletter.confirmation_subject == "Please Confirm Your Subscription"
    assert rules.email.smtp_port == 587
    assert rules.email.use_tls is True
    assert rules.ops.required_env == []


def test_yaml_inside_markdown_fence(tmp_path: Path) -> None:
    content = "# Rules\n\nSome notes.\n\n```yaml" + VALID_RULES + "```\n\nTrailing text.\n"
    rules = load_rules(write(tmp_path, content))
    assert rules.project.slug == "test"


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "nope.yaml")


def test_invalid_yaml(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Invalid YAML"):
        load_rules(write(tmp_path, "project: [unclosed"))


def test_schema_violation(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Rules validation failed"):
        load_rules(write(tmp_path, VALID_RULES.replace("provider: dev", "provider: carrier-pigeon")))


def test_token_bytes_bounds(tmp_path: Path) -> None:
    content = VALID_RULES.replace("site_name: Test", "site_name: Test\n  token_bytes: 8")
    with pytest.raises(ValueError):
        load_rules(write(tmp_path, content))
