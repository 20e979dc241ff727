"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A frozen clock and per-test cancel scopes
- In-memory repositories
- Usecases wired with a mock mailer
"""

from collections.abc import Iterator
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from src.adapters.auth.token_issuer import UuidTokenIssuer
from src.adapters.clock.system import SystemClock
from src.adapters.repository.memory import (
    InMemoryUserRepository,
    InMemoryVerificationTokenRepository,
    NoopTransactionManager,
)
from src.adapters.smtp.console import ConsoleMailer
from src.domain.cancellation import CancelScope
from src.domain.registration import RegisterConfig, RegisterUsecase
from src.domain.verification import VerifyUsecase

FIXED_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
VERIFICATION_URL_BASE = "https://app.example.com/auth/verify"
# Minimum bcrypt cost keeps hashing fast in tests
TEST_BCRYPT_COST = 4


@pytest.fixture
def scope() -> Iterator[CancelScope]:
    """Cancel scope with a generous deadline."""
    scope = CancelScope.with_timeout(10)
    yield scope
    scope.cancel()


@pytest.fixture
def clock() -> SystemClock:
    """Clock frozen at FIXED_NOW."""
    clock = SystemClock()
    clock.set(FIXED_NOW)
    return clock


@pytest.fixture
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def tokens() -> InMemoryVerificationTokenRepository:
    return InMemoryVerificationTokenRepository()


@pytest.fixture
def mailer() -> Mock:
    return Mock(spec=ConsoleMailer)


@pytest.fixture
def register_config() -> RegisterConfig:
    return RegisterConfig(
        verification_url_base=VERIFICATION_URL_BASE,
        bcrypt_cost=TEST_BCRYPT_COST,
    )


@pytest.fixture
def register_usecase(
    users: InMemoryUserRepository,
    tokens: InMemoryVerificationTokenRepository,
    mailer: Mock,
    clock: SystemClock,
    register_config: RegisterConfig,
) -> RegisterUsecase:
    return RegisterUsecase(
        users=users, tokens=tokens, mailer=mailer, clock=clock, config=register_config
    )


@pytest.fixture
def verify_usecase(
    users: InMemoryUserRepository,
    tokens: InMemoryVerificationTokenRepository,
    clock: SystemClock,
) -> VerifyUsecase:
    return VerifyUsecase(
        users=users,
        tokens=tokens,
        transactions=NoopTransactionManager(),
        clock=clock,
        issuer=UuidTokenIssuer(),
    )
