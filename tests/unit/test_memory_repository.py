"""
Unit tests for the in-memory repository adapters.

Tests verify:
- Protocol behaviour of the user and token repositories
- Idempotent deletes and email-scoped purge
- Reader/writer lock sharing, exclusion and cancellable waits
- NoopTransactionManager runs the unit under a shielded scope
"""

import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from src.adapters.repository.memory import (
    InMemoryUserRepository,
    InMemoryVerificationTokenRepository,
    NoopTransactionManager,
    ReadWriteLock,
)
from src.domain.cancellation import CancelScope
from src.domain.entities import User, VerificationToken
from src.domain.exceptions import (
    ErrorCode,
    NotFound,
    OperationCancelled,
    ValidationFailed,
)
from src.domain.values import Email

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_token(email: str = "a@example.com") -> VerificationToken:
    return VerificationToken.issue(Email(email), "hash", NOW, timedelta(hours=24))


class TestInMemoryUserRepository:
    """Tests for InMemoryUserRepository."""

    def test_create_then_lookup(self, scope: CancelScope) -> None:
        repo = InMemoryUserRepository()
        user = User.create_verified(Email("a@example.com"), "hash", NOW)

        repo.create(scope, user)

        assert repo.exists_by_email(scope, Email("A@example.com"))
        assert repo.get_by_email(scope, Email("a@example.com")) == user

    def test_absent_email(self, scope: CancelScope) -> None:
        repo = InMemoryUserRepository()

        assert not repo.exists_by_email(scope, Email("a@example.com"))
        with pytest.raises(NotFound) as exc_info:
            repo.get_by_email(scope, Email("a@example.com"))
        assert exc_info.value.code == ErrorCode.USER_NOT_FOUND.value

    def test_duplicate_email_rejected(self, scope: CancelScope) -> None:
        """Email uniqueness is enforced at the store."""
        repo = InMemoryUserRepository()
        repo.create(scope, User.create_verified(Email("a@example.com"), "hash", NOW))

        with pytest.raises(ValidationFailed) as exc_info:
            repo.create(scope, User.create_verified(Email("a@example.com"), "other", NOW))

        assert exc_info.value.code == ErrorCode.EMAIL_ALREADY_REGISTERED.value
        assert repo.get_by_email(scope, Email("a@example.com")).password_hash == "hash"

    def test_cancelled_scope_rejected(self) -> None:
        repo = InMemoryUserRepository()
        scope = CancelScope()
        scope.cancel()

        with pytest.raises(OperationCancelled):
            repo.exists_by_email(scope, Email("a@example.com"))


class TestInMemoryVerificationTokenRepository:
    """Tests for InMemoryVerificationTokenRepository."""

    def test_save_and_find(self, scope: CancelScope) -> None:
        repo = InMemoryVerificationTokenRepository()
        token = make_token()

        repo.save(scope, token)

        assert repo.find_by_token(scope, token.secret) == token

    def test_find_unknown(self, scope: CancelScope) -> None:
        with pytest.raises(NotFound) as exc_info:
            InMemoryVerificationTokenRepository().find_by_token(scope, "missing")

        assert exc_info.value.code == ErrorCode.TOKEN_NOT_FOUND.value
        assert exc_info.value.details[0].field == "token"

    def test_find_by_id_is_not_possible(self, scope: CancelScope) -> None:
        """Lookup is by secret only; the storage id is not a credential."""
        repo = InMemoryVerificationTokenRepository()
        token = make_token()
        repo.save(scope, token)

        with pytest.raises(NotFound):
            repo.find_by_token(scope, token.id)

    def test_delete_by_token_idempotent(self, scope: CancelScope) -> None:
        repo = InMemoryVerificationTokenRepository()
        token = make_token()
        repo.save(scope, token)

        repo.delete_by_token(scope, token.secret)
        repo.delete_by_token(scope, token.secret)

        with pytest.raises(NotFound):
            repo.find_by_token(scope, token.secret)
        assert repo.count_for_email(scope, token.email) == 0

    def test_delete_by_email_removes_all_for_email(self, scope: CancelScope) -> None:
        repo = InMemoryVerificationTokenRepository()
        first, second = make_token(), make_token()
        other = make_token("b@example.com")
        for token in (first, second, other):
            repo.save(scope, token)

        repo.delete_by_email(scope, Email("a@example.com"))

        assert repo.count_for_email(scope, Email("a@example.com")) == 0
        assert repo.find_by_token(scope, other.secret) == other

    def test_delete_by_email_without_tokens(self, scope: CancelScope) -> None:
        InMemoryVerificationTokenRepository().delete_by_email(scope, Email("a@example.com"))


class TestReadWriteLock:
    """Tests for ReadWriteLock."""

    def test_readers_share(self) -> None:
        """Two readers hold the lock at the same time."""
        lock = ReadWriteLock()
        barrier = threading.Barrier(2, timeout=2)
        errors: list[Exception] = []

        def reader() -> None:
            try:
                with lock.read(CancelScope.with_timeout(2)):
                    barrier.wait()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert errors == []

    def test_writer_excludes_reader_until_deadline(self) -> None:
        """A reader waiting on a held write lock gives up at its deadline."""
        lock = ReadWriteLock()

        with lock.write(CancelScope()):
            started = time.monotonic()
            with pytest.raises(OperationCancelled, match="deadline"):
                with lock.read(CancelScope.with_timeout(0.2)):
                    pass
            elapsed = time.monotonic() - started

        assert 0.15 <= elapsed < 2.0

    def test_writer_waits_for_reader(self) -> None:
        lock = ReadWriteLock()
        acquired = threading.Event()

        def writer() -> None:
            with lock.write(CancelScope.with_timeout(5)):
                acquired.set()

        with lock.read(CancelScope()):
            thread = threading.Thread(target=writer)
            thread.start()
            assert not acquired.wait(0.2)

        assert acquired.wait(2)
        thread.join(timeout=2)

    def test_waiting_writer_blocks_new_readers(self) -> None:
        """A steady stream of readers cannot starve a waiting writer."""
        lock = ReadWriteLock()
        acquired = threading.Event()

        def writer() -> None:
            with lock.write(CancelScope.with_timeout(5)):
                acquired.set()

        with lock.read(CancelScope()):
            thread = threading.Thread(target=writer)
            thread.start()
            time.sleep(0.1)
            with pytest.raises(OperationCancelled):
                with lock.read(CancelScope.with_timeout(0.2)):
                    pass
            assert not acquired.is_set()

        assert acquired.wait(2)
        thread.join(timeout=2)

    def test_cancelled_writer_releases_queued_readers(self) -> None:
        """Readers proceed once a waiting writer gives up."""
        lock = ReadWriteLock()
        writer_scope = CancelScope()
        read_done = threading.Event()
        outcome: list[BaseException] = []

        def writer() -> None:
            try:
                with lock.write(writer_scope):
                    pass
            except OperationCancelled as e:
                outcome.append(e)

        def reader() -> None:
            with lock.read(CancelScope.with_timeout(5)):
                read_done.set()

        with lock.read(CancelScope()):
            writer_thread = threading.Thread(target=writer)
            writer_thread.start()
            time.sleep(0.1)
            reader_thread = threading.Thread(target=reader)
            reader_thread.start()
            assert not read_done.wait(0.1)
            writer_scope.cancel()
            assert read_done.wait(2)

        writer_thread.join(timeout=2)
        reader_thread.join(timeout=2)
        assert len(outcome) == 1

    def test_cancel_interrupts_wait(self) -> None:
        """Cancelling a waiter's scope releases it promptly."""
        lock = ReadWriteLock()
        waiter_scope = CancelScope()
        outcome: list[BaseException] = []

        def waiter() -> None:
            try:
                with lock.write(waiter_scope):
                    pass
            except OperationCancelled as e:
                outcome.append(e)

        with lock.write(CancelScope()):
            thread = threading.Thread(target=waiter)
            thread.start()
            time.sleep(0.1)
            waiter_scope.cancel()
            thread.join(timeout=2)

        assert not thread.is_alive()
        assert len(outcome) == 1

    def test_lock_released_after_error(self) -> None:
        lock = ReadWriteLock()

        with pytest.raises(RuntimeError):
            with lock.write(CancelScope()):
                raise RuntimeError("boom")

        with lock.write(CancelScope.with_timeout(0.5)):
            pass


class TestNoopTransactionManager:
    """Tests for NoopTransactionManager."""

    def test_runs_work_once(self, scope: CancelScope) -> None:
        calls: list[CancelScope] = []

        NoopTransactionManager().within_transaction(scope, calls.append)

        assert len(calls) == 1

    def test_cancelled_before_start(self) -> None:
        """Nothing runs when the scope is already cancelled."""
        scope = CancelScope()
        scope.cancel()
        calls: list[CancelScope] = []

        with pytest.raises(OperationCancelled):
            NoopTransactionManager().within_transaction(scope, calls.append)

        assert calls == []

    def test_work_shielded_from_cancellation(self) -> None:
        """A cancel arriving mid-unit does not split the writes."""
        scope = CancelScope.with_timeout(10)
        repo = InMemoryVerificationTokenRepository()
        first, second = make_token(), make_token()

        def work(tx: CancelScope) -> None:
            repo.save(tx, first)
            scope.cancel()
            repo.save(tx, second)

        NoopTransactionManager().within_transaction(scope, work)

        assert repo.count_for_email(CancelScope(), Email("a@example.com")) == 2

    def test_errors_propagate(self, scope: CancelScope) -> None:
        def work(tx: CancelScope) -> None:
            raise ValueError("write failed")

        with pytest.raises(ValueError, match="write failed"):
            NoopTransactionManager().within_transaction(scope, work)
