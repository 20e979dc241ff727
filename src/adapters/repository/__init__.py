"""Repository adapters - In-memory and database implementations."""

from .memory import (
    InMemoryUserRepository,
    InMemoryVerificationTokenRepository,
    NoopTransactionManager,
    ReadWriteLock,
)
from .postgres import (
    PostgresTransactionManager,
    PostgresUserRepository,
    PostgresVerificationTokenRepository,
    run_migrations,
)

__all__ = [
    "InMemoryUserRepository",
    "InMemoryVerificationTokenRepository",
    "NoopTransactionManager",
    "PostgresTransactionManager",
    "PostgresUserRepository",
    "PostgresVerificationTokenRepository",
    "ReadWriteLock",
    "run_migrations",
]
