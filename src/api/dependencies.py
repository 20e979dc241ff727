"""
FastAPI dependencies - Dependency injection factories.

This module wires adapters into the domain usecases and provides
Depends() factories for injecting them into routes.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from fastapi import Depends, Request
from psycopg_pool import ConnectionPool

from src.adapters.auth.token_issuer import UuidTokenIssuer
from src.adapters.clock.system import SystemClock
from src.adapters.repository.memory import (
    InMemoryUserRepository,
    InMemoryVerificationTokenRepository,
    NoopTransactionManager,
)
from src.adapters.repository.postgres import (
    PostgresTransactionManager,
    PostgresUserRepository,
    PostgresVerificationTokenRepository,
)
from src.adapters.smtp.console import ConsoleMailer
from src.config.settings import Settings, get_settings
from src.domain.cancellation import CancelScope
from src.domain.ports import (
    AuthTokenIssuer,
    Clock,
    Mailer,
    TransactionManager,
    UserRepository,
    VerificationTokenRepository,
)
from src.domain.registration import RegisterConfig, RegisterUsecase
from src.domain.verification import VerifyUsecase


@dataclass
class Components:
    """Process-wide adapters shared by every request."""

    users: UserRepository
    tokens: VerificationTokenRepository
    transactions: TransactionManager
    mailer: Mailer
    clock: Clock
    issuer: AuthTokenIssuer
    pool: ConnectionPool | None = None


def build_components(settings: Settings, pool: ConnectionPool | None = None) -> Components:
    """
    Select adapters for the configured storage backend.

    The PostgreSQL backend requires ``pool``; the in-memory backend
    ignores it.
    """
    if settings.storage_backend == "postgres":
        if pool is None:
            raise ValueError("PostgreSQL storage backend requires a connection pool")
        return Components(
            users=PostgresUserRepository(pool),
            tokens=PostgresVerificationTokenRepository(pool),
            transactions=PostgresTransactionManager(pool),
            mailer=ConsoleMailer(),
            clock=SystemClock(),
            issuer=UuidTokenIssuer(),
            pool=pool,
        )
    return Components(
        users=InMemoryUserRepository(),
        tokens=InMemoryVerificationTokenRepository(),
        transactions=NoopTransactionManager(),
        mailer=ConsoleMailer(),
        clock=SystemClock(),
        issuer=UuidTokenIssuer(),
    )


def get_components(request: Request) -> Components:
    """
    Get shared components from app state.

    Components are created during app lifespan startup and stored in app.state.
    """
    return request.app.state.components


def get_cancel_scope(settings: Settings = Depends(get_settings)) -> Iterator[CancelScope]:
    """Per-request cancel scope, cancelled once the request finishes."""
    scope = CancelScope.with_timeout(settings.request_timeout_seconds)
    try:
        yield scope
    finally:
        scope.cancel()


def get_register_usecase(
    components: Components = Depends(get_components),
    settings: Settings = Depends(get_settings),
) -> RegisterUsecase:
    """Create registration usecase with injected dependencies."""
    config = RegisterConfig(
        verification_url_base=settings.verification_url_base,
        verification_ttl=settings.verification_ttl,
        bcrypt_cost=settings.bcrypt_cost,
    )
    return RegisterUsecase(
        users=components.users,
        tokens=components.tokens,
        mailer=components.mailer,
        clock=components.clock,
        config=config,
    )


def get_verify_usecase(components: Components = Depends(get_components)) -> VerifyUsecase:
    """Create verification usecase with injected dependencies."""
    return VerifyUsecase(
        users=components.users,
        tokens=components.tokens,
        transactions=components.transactions,
        clock=components.clock,
        issuer=components.issuer,
    )
