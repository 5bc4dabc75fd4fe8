import argparse
import logging
import sys

from src.adapters.smtp_email import SMTPEmailAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.api.deps import Settings, get_settings
from src.app_shell.context import build_email_adapter
from src.rules.loader import load_rules
from src.rules.models import Rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")


def get_rules(settings: Settings) -> Rules:
    if not settings.rules_path.exists():
        logger.error(f"Rules file {settings.rules_path} not found.")
        sys.exit(1)
    return load_rules(settings.rules_path)


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    migrator = SQLiteMigrator(settings.db_path, str(settings.migrations_dir))

    if args.dry_run:
        pending = migrator.pending_migrations()
        if not pending:
            print("No pending migrations.")
        for filename in pending:
            print(f"Pending: {filename}")
        return

    applied = migrator.run_migrations()
    print(f"Applied {len(applied)} migration(s) to {settings.db_path}.")


def handle_serve(settings: Settings, args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("src.api.main:app", host=args.host, port=args.port, reload=args.reload)


def handle_check_email(settings: Settings, args: argparse.Namespace) -> None:
    rules = get_rules(settings)
    adapter = build_email_adapter(rules, settings)

    if not isinstance(adapter, SMTPEmailAdapter):
        print("Email provider is 'dev'; nothing to verify.")
        return

    if not adapter.verify():
        logger.error(f"SMTP check failed for {adapter.host}:{adapter.port}.")
        sys.exit(1)
    print(f"SMTP server {adapter.host}:{adapter.port} accepted the connection.")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Newsletter opt-in CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply database migrations")
    migrate_parser.add_argument(
        "--dry-run", action="store_true", help="List pending migrations without applying"
    )

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")

    # check-email
    subparsers.add_parser("check-email", help="Verify SMTP connectivity and credentials")

    args = parser.parse_args(argv)
    settings = get_settings()

    if args.command == "migrate":
        handle_migrate(settings, args)
    elif args.command == "serve":
        handle_serve(settings, args)
    elif args.command == "check-email":
        handle_check_email(settings, args)


if __name__ == "__main__":
    main()
