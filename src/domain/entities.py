"""
Domain entities - VerificationToken and the User aggregate.

Verification Token Lifecycle (Forward-Only Transitions)
=======================================================

States:
- ISSUED:   Token saved by registration, waiting for the guest to follow the link
- CONSUMED: Terminal, verification succeeded and the user was created
- EXPIRED:  Terminal, TTL elapsed (detected lazily on the next verification attempt)
- PURGED:   Terminal, superseded by a newer registration for the same email

Valid Transitions:
    ISSUED -> CONSUMED  (successful verification)
    ISSUED -> EXPIRED   (verification attempted after expires_at)
    ISSUED -> PURGED    (re-registration for the same email)

Every terminal transition deletes the token from its repository, so a
stored token is always ISSUED.

A User only ever exists fully active and verified; there is no
partially-registered user state.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum

from .exceptions import ErrorCode, InternalFailure
from .uuidv7 import new_uuid7
from .values import Email


class TokenState(str, Enum):
    """Verification token lifecycle states."""

    ISSUED = "ISSUED"
    CONSUMED = "CONSUMED"
    EXPIRED = "EXPIRED"
    PURGED = "PURGED"


def as_utc(value: datetime) -> datetime:
    """Normalize a timestamp to UTC (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _generate_id(purpose: str) -> str:
    try:
        return new_uuid7()
    except (ValueError, OSError, NotImplementedError) as e:
        raise InternalFailure(
            ErrorCode.UUID_GENERATION_FAILED, f"Failed to generate {purpose}", cause=e
        ) from e


def _require_password_hash(password_hash: str) -> None:
    if not password_hash:
        raise InternalFailure(ErrorCode.INVALID_PASSWORD_HASH, "Invalid password hash")


@dataclass(frozen=True)
class VerificationToken:
    """Time-bound single-use credential binding an email to a pending password hash."""

    id: str
    email: Email
    secret: str
    password_hash: str
    created_at: datetime
    expires_at: datetime

    @classmethod
    def issue(
        cls, email: Email, password_hash: str, now: datetime, ttl: timedelta
    ) -> "VerificationToken":
        """
        Create a new token expiring ``ttl`` after ``now``.

        The id and the externally visible secret are generated separately.

        Raises:
            InternalFailure: INVALID_PASSWORD_HASH for an empty hash,
                UUID_GENERATION_FAILED if identifier generation fails
        """
        _require_password_hash(password_hash)
        token_id = _generate_id("token id")
        secret = _generate_id("verification secret")
        created_at = as_utc(now)
        return cls(
            id=token_id,
            email=email,
            secret=secret,
            password_hash=password_hash,
            created_at=created_at,
            expires_at=created_at + ttl,
        )

    def is_expired(self, reference: datetime) -> bool:
        """True iff ``reference`` is strictly after expires_at."""
        return as_utc(reference) > self.expires_at


@dataclass(frozen=True)
class User:
    """Aggregate root for a verified account."""

    id: str
    email: Email
    password_hash: str
    is_active: bool
    email_verified_at: datetime
    created_at: datetime
    updated_at: datetime
    name: str | None = None
    bio: str | None = None
    last_login_at: datetime | None = None

    @classmethod
    def create_verified(cls, email: Email, password_hash: str, now: datetime) -> "User":
        """
        Build an active user whose email was verified at ``now``.

        Verification counts as the first login, so last_login_at is ``now``.
        """
        _require_password_hash(password_hash)
        user_id = _generate_id("user id")
        ts = as_utc(now)
        return cls(
            id=user_id,
            email=email,
            password_hash=password_hash,
            is_active=True,
            email_verified_at=ts,
            created_at=ts,
            updated_at=ts,
            last_login_at=ts,
        )

    def with_last_login(self, at: datetime) -> "User":
        """Return a copy with the login and update timestamps moved to ``at``."""
        ts = as_utc(at)
        return replace(self, last_login_at=ts, updated_at=ts)
