"""
Registration usecase - Issue a verification token and mail a capability link.

Registration never creates a User. It validates the guest's input, purges
any pending token for the same email (so at most one token per email is
live and re-registering is always safe), stores a new token holding the
password hash, and emails a link whose ``token`` query parameter is the
token's secret.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .cancellation import CancelScope
from .entities import TokenState, VerificationToken
from .exceptions import (
    ErrorCode,
    ErrorDetail,
    InternalFailure,
    ValidationFailed,
    internal_errors,
)
from .ports import Clock, Mailer, UserRepository, VerificationTokenRepository
from .values import DEFAULT_BCRYPT_COST, Email, Password

logger = logging.getLogger(__name__)

DEFAULT_VERIFICATION_TTL = timedelta(hours=24)

REGISTER_MESSAGE = (
    "Verification email sent. Follow the link in the email to complete registration"
)


@dataclass(frozen=True)
class RegisterConfig:
    """Configuration for the registration process."""

    verification_url_base: str = ""
    verification_ttl: timedelta = DEFAULT_VERIFICATION_TTL
    bcrypt_cost: int = DEFAULT_BCRYPT_COST


@dataclass(frozen=True)
class RegisterInput:
    """Raw data submitted by the guest."""

    email: str
    password: str = field(repr=False)
    password_confirmation: str = field(repr=False)


@dataclass(frozen=True)
class RegisterOutput:
    """Result of a successful registration."""

    message: str
    expires_at: datetime


def email_already_registered() -> ValidationFailed:
    message = "This email address is already registered"
    return ValidationFailed(ErrorCode.EMAIL_ALREADY_REGISTERED, message).with_details(
        ErrorDetail(field="email", code=ErrorCode.EMAIL_ALREADY_REGISTERED.value, message=message)
    )


def build_verification_url(base: str, secret: str) -> str:
    """
    Set the ``token`` query parameter of ``base`` to ``secret``.

    Raises:
        InternalFailure: VERIFICATION_URL_MISSING if no base is configured,
            VERIFICATION_URL_ERROR if the base is not an absolute URL
    """
    if not base:
        raise InternalFailure(
            ErrorCode.VERIFICATION_URL_MISSING, "Verification URL base is not configured"
        )
    try:
        parts = urlsplit(base)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"not an absolute URL: {base!r}")
    except ValueError as e:
        raise InternalFailure(
            ErrorCode.VERIFICATION_URL_ERROR, "Failed to build verification URL", cause=e
        ) from e
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "token"]
    query.append(("token", secret))
    return urlunsplit(parts._replace(query=urlencode(query)))


@dataclass
class RegisterUsecase:
    """
    Domain usecase for starting registration.

    Orchestrates validation, stale token purge, password hashing,
    token persistence and verification mail delivery.
    """

    users: UserRepository
    tokens: VerificationTokenRepository
    mailer: Mailer
    clock: Clock
    config: RegisterConfig = field(default_factory=RegisterConfig)

    def __post_init__(self) -> None:
        if not self.config.verification_ttl:
            self.config = replace(self.config, verification_ttl=DEFAULT_VERIFICATION_TTL)

    def execute(self, scope: CancelScope, data: RegisterInput) -> RegisterOutput:
        """
        Register a guest by issuing and mailing a verification token.

        Args:
            scope: Cancel scope of the current request
            data: Raw email, password and confirmation

        Returns:
            Confirmation message and token expiry

        Raises:
            ValidationFailed: INVALID_EMAIL_FORMAT, INVALID_PASSWORD,
                PASSWORD_MISMATCH, EMAIL_ALREADY_REGISTERED
            InternalFailure: USER_LOOKUP_FAILED, TOKEN_CLEANUP_FAILED,
                PASSWORD_HASH_FAILED, TOKEN_SAVE_FAILED,
                VERIFICATION_URL_MISSING, EMAIL_SEND_FAILED
        """
        email = Email(data.email)
        password = Password(data.password)

        if data.password != data.password_confirmation:
            raise ValidationFailed(
                ErrorCode.PASSWORD_MISMATCH, "Passwords do not match"
            ).with_details(
                ErrorDetail(
                    field="password_confirmation",
                    code=ErrorCode.PASSWORD_MISMATCH.value,
                    message="Password confirmation does not match",
                )
            )

        with internal_errors(ErrorCode.USER_LOOKUP_FAILED, "Failed to look up user"):
            exists = self.users.exists_by_email(scope, email)
        if exists:
            raise email_already_registered()

        # Supersedes any pending token for this email
        with internal_errors(
            ErrorCode.TOKEN_CLEANUP_FAILED, "Failed to reset verification tokens"
        ):
            self.tokens.delete_by_email(scope, email)
        logger.debug("Pending verification tokens for %s: %s", email, TokenState.PURGED.value)

        password_hash = password.hash(self.config.bcrypt_cost)

        token = VerificationToken.issue(
            email, password_hash, self.clock.now(), self.config.verification_ttl
        )
        with internal_errors(ErrorCode.TOKEN_SAVE_FAILED, "Failed to save verification token"):
            self.tokens.save(scope, token)
        logger.info("Verification token %s for %s: %s", token.id, email, TokenState.ISSUED.value)

        verification_url = build_verification_url(self.config.verification_url_base, token.secret)

        with internal_errors(ErrorCode.EMAIL_SEND_FAILED, "Failed to send verification email"):
            self.mailer.send_verification_email(scope, email, verification_url, token.expires_at)

        return RegisterOutput(message=REGISTER_MESSAGE, expires_at=token.expires_at)
