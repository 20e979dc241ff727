"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.

Every operation takes the request's CancelScope as its first argument and
must give up promptly once the scope is cancelled or past its deadline.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from .cancellation import CancelScope
from .entities import User, VerificationToken
from .values import Email


class UserRepository(Protocol):
    """Port interface for user persistence."""

    def exists_by_email(self, scope: CancelScope, email: Email) -> bool:
        """Report whether a user with this email exists."""
        ...

    def create(self, scope: CancelScope, user: User) -> None:
        """
        Persist a new user.

        Raises:
            ValidationFailed: EMAIL_ALREADY_REGISTERED if the email is taken
        """
        ...

    def get_by_email(self, scope: CancelScope, email: Email) -> User:
        """
        Load a user by email.

        Raises:
            NotFound: USER_NOT_FOUND if no user has this email
        """
        ...


class VerificationTokenRepository(Protocol):
    """Port interface for verification token persistence."""

    def save(self, scope: CancelScope, token: VerificationToken) -> None:
        """Persist or replace a token."""
        ...

    def find_by_token(self, scope: CancelScope, secret: str) -> VerificationToken:
        """
        Look up a token by its secret.

        Raises:
            NotFound: TOKEN_NOT_FOUND if no token has this secret
        """
        ...

    def delete_by_token(self, scope: CancelScope, secret: str) -> None:
        """Delete the token with this secret. Idempotent."""
        ...

    def delete_by_email(self, scope: CancelScope, email: Email) -> None:
        """Delete every token issued for this email. Idempotent."""
        ...


class Clock(Protocol):
    """Source of the current time, substitutable in tests."""

    def now(self) -> datetime:
        """Current UTC instant with microsecond precision."""
        ...


class Mailer(Protocol):
    """Port interface for verification email delivery."""

    def send_verification_email(
        self, scope: CancelScope, email: Email, verification_url: str, expires_at: datetime
    ) -> None:
        """Deliver the capability link to the guest."""
        ...


class AuthTokenIssuer(Protocol):
    """Issues an authentication credential for a verified user."""

    def issue(self, scope: CancelScope, user: User) -> str:
        ...


class TransactionManager(Protocol):
    """
    Unit-of-work boundary.

    ``work`` receives a child scope carrying the transaction handle; any
    exception it raises aborts the unit and propagates.
    """

    def within_transaction(
        self, scope: CancelScope, work: Callable[[CancelScope], None]
    ) -> None:
        ...
