"""
PostgreSQL repository adapters - Implement the repository protocols.

This module provides the PostgreSQL implementation of the domain's
repository ports and transaction manager using psycopg3 with raw SQL.

Transactions:
-------------
PostgresTransactionManager checks out one connection, opens a transaction
and hands the unit of work a CancelScope bound to that connection.
Repositories called with a bound scope reuse its connection instead of
checking out their own, so the user insert and token delete of a
verification commit or roll back together.

Deadlines:
----------
Pool checkout waits at most scope.remaining() seconds, and every
statement runs under a transaction-local statement_timeout derived from
the same deadline.
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from psycopg import Connection
from psycopg.errors import UniqueViolation
from psycopg_pool import ConnectionPool

from src.domain.cancellation import CancelScope
from src.domain.entities import User, VerificationToken
from src.domain.exceptions import ErrorCode, ErrorDetail, NotFound
from src.domain.registration import email_already_registered
from src.domain.values import Email

logger = logging.getLogger(__name__)

# Pool checkout bound for scopes without a deadline
_DEFAULT_CHECKOUT_TIMEOUT = 30.0


def _apply_statement_timeout(conn: Connection, scope: CancelScope) -> None:
    remaining = scope.remaining()
    if remaining is None:
        return
    timeout_ms = max(1, int(remaining * 1000))
    conn.execute("SELECT set_config('statement_timeout', %s, true)", (f"{timeout_ms}ms",))


@contextmanager
def _checkout(pool: ConnectionPool, scope: CancelScope) -> Iterator[Connection]:
    scope.check()
    timeout = scope.remaining()
    if timeout is None:
        timeout = _DEFAULT_CHECKOUT_TIMEOUT
    with pool.connection(timeout=timeout) as conn:
        _apply_statement_timeout(conn, scope)
        yield conn


class _PostgresRepository:
    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    @contextmanager
    def _connection(self, scope: CancelScope) -> Iterator[Connection]:
        """Yield the scope's transaction connection, or a pooled one."""
        if scope.transaction is not None:
            scope.check()
            yield scope.transaction
            return
        with _checkout(self._pool, scope) as conn:
            yield conn


class PostgresUserRepository(_PostgresRepository):
    """
    Implements UserRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def exists_by_email(self, scope: CancelScope, email: Email) -> bool:
        sql = "SELECT 1 FROM users WHERE email = %s"
        with self._connection(scope) as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email.value,))
            return cursor.fetchone() is not None

    def create(self, scope: CancelScope, user: User) -> None:
        """
        Insert a new user row.

        The UNIQUE constraint on email is the final arbiter between
        concurrent verifications of the same address.

        Raises:
            ValidationFailed: EMAIL_ALREADY_REGISTERED on unique violation
        """
        sql = """
            INSERT INTO users (
                id, email, password_hash, name, bio, is_active,
                email_verified_at, last_login_at, created_at, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        params = (
            user.id,
            user.email.value,
            user.password_hash,
            user.name,
            user.bio,
            user.is_active,
            user.email_verified_at,
            user.last_login_at,
            user.created_at,
            user.updated_at,
        )
        try:
            with self._connection(scope) as conn, conn.cursor() as cursor:
                cursor.execute(sql, params)
        except UniqueViolation:
            raise email_already_registered() from None

    def get_by_email(self, scope: CancelScope, email: Email) -> User:
        sql = """
            SELECT id, email, password_hash, name, bio, is_active,
                   email_verified_at, last_login_at, created_at, updated_at
            FROM users
            WHERE email = %s
        """
        with self._connection(scope) as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email.value,))
            row = cursor.fetchone()

        if row is None:
            message = "User not found"
            raise NotFound(ErrorCode.USER_NOT_FOUND, message).with_details(
                ErrorDetail(field="email", code=ErrorCode.USER_NOT_FOUND.value, message=message)
            )
        return User(
            id=str(row[0]),
            email=Email(row[1]),
            password_hash=row[2],
            name=row[3],
            bio=row[4],
            is_active=row[5],
            email_verified_at=row[6],
            last_login_at=row[7],
            created_at=row[8],
            updated_at=row[9],
        )


class PostgresVerificationTokenRepository(_PostgresRepository):
    """Implements VerificationTokenRepository protocol via psycopg3."""

    def save(self, scope: CancelScope, token: VerificationToken) -> None:
        sql = """
            INSERT INTO verification_tokens
                (id, email, token, password_hash, created_at, expires_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (token) DO UPDATE
            SET email = EXCLUDED.email,
                password_hash = EXCLUDED.password_hash,
                created_at = EXCLUDED.created_at,
                expires_at = EXCLUDED.expires_at
        """
        params = (
            token.id,
            token.email.value,
            token.secret,
            token.password_hash,
            token.created_at,
            token.expires_at,
        )
        with self._connection(scope) as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)

    def find_by_token(self, scope: CancelScope, secret: str) -> VerificationToken:
        sql = """
            SELECT id, email, token, password_hash, created_at, expires_at
            FROM verification_tokens
            WHERE token = %s
        """
        with self._connection(scope) as conn, conn.cursor() as cursor:
            cursor.execute(sql, (secret,))
            row = cursor.fetchone()

        if row is None:
            message = "Verification token not found"
            raise NotFound(ErrorCode.TOKEN_NOT_FOUND, message).with_details(
                ErrorDetail(field="token", code=ErrorCode.TOKEN_NOT_FOUND.value, message=message)
            )
        return VerificationToken(
            id=str(row[0]),
            email=Email(row[1]),
            secret=row[2],
            password_hash=row[3],
            created_at=row[4],
            expires_at=row[5],
        )

    def delete_by_token(self, scope: CancelScope, secret: str) -> None:
        with self._connection(scope) as conn:
            conn.execute("DELETE FROM verification_tokens WHERE token = %s", (secret,))

    def delete_by_email(self, scope: CancelScope, email: Email) -> None:
        with self._connection(scope) as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM verification_tokens WHERE email = %s", (email.value,))
            if cursor.rowcount:
                logger.debug("Purged %d verification token(s) for %s", cursor.rowcount, email)


class PostgresTransactionManager:
    """
    Implements TransactionManager protocol with a database transaction.

    Both writes of a unit of work share one connection; an exception from
    the unit rolls the transaction back.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def within_transaction(
        self, scope: CancelScope, work: Callable[[CancelScope], None]
    ) -> None:
        with _checkout(self._pool, scope) as conn, conn.transaction():
            work(scope.bind(conn))


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
