"""
In-memory repository adapters - Implement the repository protocols.

Shared maps are guarded by a reader/writer lock: concurrent reads are
allowed, a write excludes everything else. Waiting for the lock honours
the caller's CancelScope so no operation blocks indefinitely.
"""

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from src.domain.cancellation import CancelScope
from src.domain.entities import User, VerificationToken
from src.domain.exceptions import ErrorCode, ErrorDetail, NotFound
from src.domain.registration import email_already_registered
from src.domain.values import Email

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """
    Reader/writer lock with cancellable acquisition.

    Waiters wake at least every POLL_INTERVAL seconds to re-check their
    scope, so cancellation is observed even while the lock is contended.
    Writers are preferred: new readers queue behind a waiting writer.
    Not reentrant.
    """

    POLL_INTERVAL = 0.05

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self, scope: CancelScope) -> Iterator[None]:
        """Hold the lock shared for the duration of the block."""
        with self._cond:
            self._wait(scope, lambda: not self._writer and self._writers_waiting == 0)
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self, scope: CancelScope) -> Iterator[None]:
        """Hold the lock exclusively for the duration of the block."""
        with self._cond:
            self._writers_waiting += 1
            try:
                self._wait(scope, lambda: not self._writer and self._readers == 0)
            finally:
                self._writers_waiting -= 1
                if self._writers_waiting == 0:
                    # Wake readers held back by this writer, cancelled or not.
                    self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()

    def _wait(self, scope: CancelScope, ready: Callable[[], bool]) -> None:
        scope.check()
        while not ready():
            timeout = self.POLL_INTERVAL
            remaining = scope.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining)
            self._cond.wait(timeout)
            scope.check()


class InMemoryUserRepository:
    """
    Implements UserRepository protocol with a dict keyed by email.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._users: dict[str, User] = {}

    def exists_by_email(self, scope: CancelScope, email: Email) -> bool:
        with self._lock.read(scope):
            return email.value in self._users

    def create(self, scope: CancelScope, user: User) -> None:
        """
        Store a new user.

        Raises:
            ValidationFailed: EMAIL_ALREADY_REGISTERED on duplicate email
        """
        with self._lock.write(scope):
            if user.email.value in self._users:
                raise email_already_registered()
            self._users[user.email.value] = user

    def get_by_email(self, scope: CancelScope, email: Email) -> User:
        with self._lock.read(scope):
            user = self._users.get(email.value)
        if user is None:
            message = "User not found"
            raise NotFound(ErrorCode.USER_NOT_FOUND, message).with_details(
                ErrorDetail(field="email", code=ErrorCode.USER_NOT_FOUND.value, message=message)
            )
        return user


class InMemoryVerificationTokenRepository:
    """
    Implements VerificationTokenRepository protocol.

    Tokens are indexed by secret, with a secondary email -> secrets index
    so purge-by-email does not scan every token.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._by_secret: dict[str, VerificationToken] = {}
        self._by_email: dict[str, set[str]] = {}

    def save(self, scope: CancelScope, token: VerificationToken) -> None:
        with self._lock.write(scope):
            self._by_secret[token.secret] = token
            self._by_email.setdefault(token.email.value, set()).add(token.secret)

    def find_by_token(self, scope: CancelScope, secret: str) -> VerificationToken:
        """
        Raises:
            NotFound: TOKEN_NOT_FOUND if no token has this secret
        """
        with self._lock.read(scope):
            token = self._by_secret.get(secret)
        if token is None:
            message = "Verification token not found"
            raise NotFound(ErrorCode.TOKEN_NOT_FOUND, message).with_details(
                ErrorDetail(field="token", code=ErrorCode.TOKEN_NOT_FOUND.value, message=message)
            )
        return token

    def delete_by_token(self, scope: CancelScope, secret: str) -> None:
        with self._lock.write(scope):
            token = self._by_secret.pop(secret, None)
            if token is None:
                return
            bucket = self._by_email.get(token.email.value)
            if bucket is not None:
                bucket.discard(secret)
                if not bucket:
                    del self._by_email[token.email.value]

    def delete_by_email(self, scope: CancelScope, email: Email) -> None:
        with self._lock.write(scope):
            secrets = self._by_email.pop(email.value, set())
            for secret in secrets:
                self._by_secret.pop(secret, None)
        if secrets:
            logger.debug("Purged %d verification token(s) for %s", len(secrets), email)

    def count_for_email(self, scope: CancelScope, email: Email) -> int:
        """
        Number of stored tokens issued for ``email``.

        Diagnostics accessor, not part of VerificationTokenRepository; used
        to inspect pending tokens when exercising the in-memory store.
        """
        with self._lock.read(scope):
            return len(self._by_email.get(email.value, ()))


class NoopTransactionManager:
    """
    Implements TransactionManager protocol without transactional guarantees.

    The in-memory store has no rollback: the unit's writes run back-to-back
    within one call. Once started, the unit runs under a shielded scope so
    a cancellation arriving between two writes cannot split them. A failing
    write still leaves earlier writes of the unit in place.
    """

    def __init__(self, grace_seconds: float = 5.0) -> None:
        self._grace_seconds = grace_seconds

    def within_transaction(
        self, scope: CancelScope, work: Callable[[CancelScope], None]
    ) -> None:
        scope.check()
        work(scope.shielded(self._grace_seconds))
