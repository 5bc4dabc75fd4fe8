"""
SQLite Database Adapter.

Implements the newsletter repository port using SQLite.
Designed to be Postgres-compatible (uses standard SQL patterns:
INSERT ... ON CONFLICT DO UPDATE ... RETURNING, UPDATE ... RETURNING).

Both write primitives are single statements, so the condition and the
mutation are evaluated together inside one write transaction. SQLite
serializes writers; concurrent callers wait up to ``busy_timeout``.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from src.components.newsletter.models import (
    ConfirmedSubscriber,
    NewsletterSubscriber,
    StoreError,
    SubscriberStatus,
    UpsertResult,
)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def wrap_db_error(operation: str, exc: sqlite3.Error) -> StoreError:
    """Translate a driver exception into a StoreError."""
    # OperationalError covers unreachable files, locks and busy timeouts
    retriable = isinstance(exc, sqlite3.OperationalError)
    return StoreError(operation, str(exc), retriable=retriable)


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        busy_timeout: float = 5.0,
    ):
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = dict_factory
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    def ping(self) -> None:
        """Connectivity probe (SELECT 1)."""
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise wrap_db_error("ping", e) from e
        try:
            conn.execute("SELECT 1").fetchone()
        except sqlite3.Error as e:
            raise wrap_db_error("ping", e) from e
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Newsletter Subscriber Repository
# -----------------------------------------------------------------------------


UPSERT_PENDING_SQL = """
    INSERT INTO newsletter_subscribers (
        id, email, status, confirmation_token, created_at, updated_at
    ) VALUES (?, ?, 'pending', ?, ?, ?)
    ON CONFLICT(email) DO UPDATE SET
        confirmation_token = CASE
            WHEN newsletter_subscribers.status = 'confirmed'
                THEN newsletter_subscribers.confirmation_token
            ELSE excluded.confirmation_token
        END,
        status = CASE
            WHEN newsletter_subscribers.status = 'unsubscribed' THEN 'pending'
            ELSE newsletter_subscribers.status
        END,
        updated_at = excluded.updated_at
    RETURNING id, status, email
"""

CONFIRM_BY_TOKEN_SQL = """
    UPDATE newsletter_subscribers
    SET status = 'confirmed', confirmation_token = NULL, updated_at = ?
    WHERE confirmation_token = ? AND status = 'pending'
    RETURNING id, email
"""


class SQLiteNewsletterSubscriberRepo(SQLiteRepoBase):
    """SQLite implementation of NewsletterRepoPort."""

    def upsert_pending(self, email: str, token: str) -> UpsertResult:
        now = datetime.now(UTC).isoformat()
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise wrap_db_error("upsert_pending", e) from e
        try:
            rows = conn.execute(
                UPSERT_PENDING_SQL,
                (str(uuid4()), email, token, now, now),
            ).fetchall()
            if self._should_close():
                conn.commit()
        except sqlite3.Error as e:
            if self._should_close():
                conn.rollback()
            raise wrap_db_error("upsert_pending", e) from e
        finally:
            if self._should_close():
                conn.close()

        if not rows:
            raise StoreError("upsert_pending", "no row returned")
        row = rows[0]
        return UpsertResult(
            id=UUID(row["id"]),
            status=SubscriberStatus(row["status"]),
            email=row["email"],
        )

    def confirm_by_token(self, token: str) -> ConfirmedSubscriber | None:
        now = datetime.now(UTC).isoformat()
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise wrap_db_error("confirm_by_token", e) from e
        try:
            rows = conn.execute(CONFIRM_BY_TOKEN_SQL, (now, token)).fetchall()
            if self._should_close():
                conn.commit()
        except sqlite3.Error as e:
            if self._should_close():
                conn.rollback()
            raise wrap_db_error("confirm_by_token", e) from e
        finally:
            if self._should_close():
                conn.close()

        if not rows:
            return None
        row = rows[0]
        return ConfirmedSubscriber(id=UUID(row["id"]), email=row["email"])

    def get_by_email(self, email: str) -> NewsletterSubscriber | None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise wrap_db_error("get_by_email", e) from e
        try:
            row = conn.execute(
                "SELECT * FROM newsletter_subscribers WHERE email = ?", (email,)
            ).fetchone()
            return self._map_row(row) if row else None
        except sqlite3.Error as e:
            raise wrap_db_error("get_by_email", e) from e
        finally:
            if self._should_close():
                conn.close()

    def count_by_status(self, status: SubscriberStatus) -> int:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise wrap_db_error("count_by_status", e) from e
        try:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM newsletter_subscribers WHERE status = ?",
                (status.value,),
            ).fetchone()
            return int(row["n"])
        except sqlite3.Error as e:
            raise wrap_db_error("count_by_status", e) from e
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> NewsletterSubscriber:
        return NewsletterSubscriber(
            id=UUID(row["id"]),
            email=row["email"],
            status=SubscriberStatus(row["status"]),
            confirmation_token=row["confirmation_token"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
