import sqlite3
import threading
from uuid import uuid4

import pytest

from src.adapters.sqlite_db import SQLiteNewsletterSubscriberRepo
from src.components.newsletter.models import StoreError, SubscriberStatus


def set_status(db_path: str, email: str, status: str) -> None:
    conn = sqlite3.connect(db_path)
    conn.execute(
        "UPDATE newsletter_subscribers SET status = ?, confirmation_token = NULL WHERE email = ?",
        (status, email),
    )
    conn.commit()
    conn.close()


def test_upsert_inserts_pending(sqlite_repo: SQLiteNewsletterSubscriberRepo):
    result = sqlite_repo.upsert_pending("a@example.com", "tok-1")

    assert result.status == SubscriberStatus.PENDING
    assert result.email == "a@example.com"

    stored = sqlite_repo.get_by_email("a@example.com")
    assert stored is not None
    assert stored.id == result.id
    assert stored.confirmation_token == "tok-1"
    assert stored.created_at == stored.updated_at


def test_upsert_pending_replaces_token(sqlite_repo: SQLiteNewsletterSubscriberRepo):
    first = sqlite_repo.upsert_pending("a@example.com", "tok-1")
    second = sqlite_repo.upsert_pending("a@example.com", "tok-2")

    assert second.id == first.id
    assert second.status == SubscriberStatus.PENDING
    stored = sqlite_repo.get_by_email("a@example.com")
    assert stored is not None
    assert stored.confirmation_token == "tok-2"
    assert sqlite_repo.confirm_by_token("tok-1") is None


def test_upsert_unsubscribed_becomes_pending(
    sqlite_repo: SQLiteNewsletterSubscriberRepo, db_path: str
):
    sqlite_repo.upsert_pending("a@example.com", "tok-1")
    set_status(db_path, "a@example.com", "unsubscribed")

    result = sqlite_repo.upsert_pending("a@example.com", "tok-2")

    assert result.status == SubscriberStatus.PENDING
    stored = sqlite_repo.get_by_email("a@example.com")
    assert stored is not None
    assert stored.confirmation_token == "tok-2"


def test_upsert_confirmed_is_sticky(sqlite_repo: SQLiteNewsletterSubscriberRepo):
    sqlite_repo.upsert_pending("a@example.com", "tok-1")
    assert sqlite_repo.confirm_by_token("tok-1") is not None

    result = sqlite_repo.upsert_pending("a@example.com", "tok-2")

    assert result.status == SubscriberStatus.CONFIRMED
    stored = sqlite_repo.get_by_email("a@example.com")
    assert stored is not None
    assert stored.status == SubscriberStatus.CONFIRMED
    assert stored.confirmation_token is None
    assert sqlite_repo.confirm_by_token("tok-2") is None


def test_email_matching_is_exact(sqlite_repo: SQLiteNewsletterSubscriberRepo):
    a = sqlite_repo.upsert_pending("a@example.com", "tok-1")
    b = sqlite_repo.upsert_pending("A@example.com", "tok-2")

    assert a.id != b.id


def test_confirm_by_token(sqlite_repo: SQLiteNewsletterSubscriberRepo):
    created = sqlite_repo.upsert_pending("a@example.com", "tok-1")

    confirmed = sqlite_repo.confirm_by_token("tok-1")

    assert confirmed is not None
    assert confirmed.id == created.id
    assert confirmed.email == "a@example.com"
    stored = sqlite_repo.get_by_email("a@example.com")
    assert stored is not None
    assert stored.status == SubscriberStatus.CONFIRMED
    assert stored.confirmation_token is None
    assert stored.updated_at >= stored.created_at


def test_confirm_is_single_use(sqlite_repo: SQLiteNewsletterSubscriberRepo):
    sqlite_repo.upsert_pending("a@example.com", "tok-1")

    assert sqlite_repo.confirm_by_token("tok-1") is not None
    assert sqlite_repo.confirm_by_token("tok-1") is None


def test_confirm_unknown_token(sqlite_repo: SQLiteNewsletterSubscriberRepo):
    assert sqlite_repo.confirm_by_token("missing") is None


def test_confirm_ignores_non_pending(
    sqlite_repo: SQLiteNewsletterSubscriberRepo, db_path: str
):
    sqlite_repo.upsert_pending("a@example.com", "tok-1")
    conn = sqlite3.connect(db_path)
    conn.execute("UPDATE newsletter_subscribers SET status = 'unsubscribed'")
    conn.commit()
    conn.close()

    assert sqlite_repo.confirm_by_token("tok-1") is None


def test_count_by_status(sqlite_repo: SQLiteNewsletterSubscriberRepo):
    sqlite_repo.upsert_pending("a@example.com", "tok-1")
    sqlite_repo.upsert_pending("b@example.com", "tok-2")
    sqlite_repo.confirm_by_token("tok-2")

    assert sqlite_repo.count_by_status(SubscriberStatus.PENDING) == 1
    assert sqlite_repo.count_by_status(SubscriberStatus.CONFIRMED) == 1
    assert sqlite_repo.count_by_status(SubscriberStatus.UNSUBSCRIBED) == 0


def test_concurrent_confirm_single_winner(sqlite_repo: SQLiteNewsletterSubscriberRepo):
    sqlite_repo.upsert_pending("race@example.com", "tok-race")
    workers = 8
    barrier = threading.Barrier(workers)
    results: list[object] = []
    lock = threading.Lock()

    def confirm() -> None:
        barrier.wait()
        outcome = sqlite_repo.confirm_by_token("tok-race")
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=confirm) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == workers
    assert sum(1 for r in results if r is not None) == 1


def test_concurrent_subscribe_single_row(sqlite_repo: SQLiteNewsletterSubscriberRepo):
    workers = 8
    barrier = threading.Barrier(workers)
    ids: list[object] = []
    lock = threading.Lock()

    def subscribe() -> None:
        barrier.wait()
        result = sqlite_repo.upsert_pending("same@example.com", str(uuid4()))
        with lock:
            ids.append(result.id)

    threads = [threading.Thread(target=subscribe) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(ids)) == 1
    assert sqlite_repo.count_by_status(SubscriberStatus.PENDING) == 1


def test_missing_table_raises_store_error(tmp_path):
    repo = SQLiteNewsletterSubscriberRepo(str(tmp_path / "empty.db"))

    with pytest.raises(StoreError) as exc_info:
        repo.upsert_pending("a@example.com", "tok")

    # "no such table" is an OperationalError
    assert exc_info.value.retriable


def test_unreachable_db_raises_retriable(tmp_path):
    repo = SQLiteNewsletterSubscriberRepo(str(tmp_path / "missing-dir" / "x.db"))

    with pytest.raises(StoreError) as exc_info:
        repo.ping()
    assert exc_info.value.retriable


def test_ping(sqlite_repo: SQLiteNewsletterSubscriberRepo):
    sqlite_repo.ping()
