"""
Verification usecase - Exchange a verification secret for an account.

Flow:
1. Reject blank secrets
2. Look up the token (TOKEN_NOT_FOUND if absent)
3. Expired tokens are deleted best-effort and rejected
4. Re-check the email against existing users (a competing verification
   may have won the race)
5. Create the user and delete the token as one unit of work
6. Issue an authentication credential

If credential issuance fails the account still exists. There is no
rollback; the guest recovers through the regular login path.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from .cancellation import CancelScope
from .entities import TokenState, User
from .exceptions import (
    ErrorCode,
    ErrorDetail,
    RegistrationError,
    ValidationFailed,
    internal_errors,
)
from .ports import (
    AuthTokenIssuer,
    Clock,
    TransactionManager,
    UserRepository,
    VerificationTokenRepository,
)
from .registration import email_already_registered

logger = logging.getLogger(__name__)

VERIFY_MESSAGE = "Registration complete"


@dataclass(frozen=True)
class VerifiedUser:
    """Public projection of a freshly verified user."""

    id: str
    email: str
    name: str | None
    bio: str | None
    is_active: bool
    email_verified_at: datetime
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "VerifiedUser":
        return cls(
            id=user.id,
            email=user.email.value,
            name=user.name,
            bio=user.bio,
            is_active=user.is_active,
            email_verified_at=user.email_verified_at,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


@dataclass(frozen=True)
class VerifyOutput:
    """Result of a successful verification."""

    message: str
    auth_token: str
    user: VerifiedUser


@dataclass
class VerifyUsecase:
    """
    Domain usecase for completing registration.

    The user is created only here, inside the transaction boundary that
    also consumes the token.
    """

    users: UserRepository
    tokens: VerificationTokenRepository
    transactions: TransactionManager
    clock: Clock
    issuer: AuthTokenIssuer

    def execute(self, scope: CancelScope, token: str) -> VerifyOutput:
        """
        Verify a token secret and create the account it was issued for.

        Args:
            scope: Cancel scope of the current request
            token: Secret taken from the capability URL

        Returns:
            Confirmation message, auth credential and user projection

        Raises:
            ValidationFailed: INVALID_VERIFICATION_TOKEN,
                VERIFICATION_TOKEN_EXPIRED, EMAIL_ALREADY_REGISTERED
            NotFound: TOKEN_NOT_FOUND
            InternalFailure: TOKEN_LOOKUP_FAILED, USER_LOOKUP_FAILED,
                USER_CREATE_FAILED, TOKEN_DELETE_FAILED, TRANSACTION_FAILED,
                AUTH_TOKEN_ISSUE_FAILED
        """
        secret = (token or "").strip()
        if not secret:
            message = "Verification token is required"
            raise ValidationFailed(ErrorCode.INVALID_VERIFICATION_TOKEN, message).with_details(
                ErrorDetail(
                    field="token",
                    code=ErrorCode.INVALID_VERIFICATION_TOKEN.value,
                    message=message,
                )
            )

        with internal_errors(
            ErrorCode.TOKEN_LOOKUP_FAILED, "Failed to look up verification token"
        ):
            record = self.tokens.find_by_token(scope, secret)

        now = self.clock.now()
        if record.is_expired(now):
            self._discard_expired(scope, secret, record.id)
            raise ValidationFailed(
                ErrorCode.VERIFICATION_TOKEN_EXPIRED,
                "Verification link is invalid or expired. Please register again",
            ).with_details(
                ErrorDetail(
                    field="token",
                    code=ErrorCode.VERIFICATION_TOKEN_EXPIRED.value,
                    message="Verification link is invalid or expired",
                )
            )

        with internal_errors(ErrorCode.USER_LOOKUP_FAILED, "Failed to look up user"):
            exists = self.users.exists_by_email(scope, record.email)
        if exists:
            raise email_already_registered()

        user = User.create_verified(record.email, record.password_hash, now)

        def create_and_consume(tx: CancelScope) -> None:
            with internal_errors(ErrorCode.USER_CREATE_FAILED, "Failed to create user"):
                self.users.create(tx, user)
            with internal_errors(
                ErrorCode.TOKEN_DELETE_FAILED, "Failed to delete verification token"
            ):
                self.tokens.delete_by_token(tx, secret)

        with internal_errors(ErrorCode.TRANSACTION_FAILED, "Failed to complete registration"):
            self.transactions.within_transaction(scope, create_and_consume)
        logger.info(
            "Verification token %s for %s: %s", record.id, record.email, TokenState.CONSUMED.value
        )

        try:
            with internal_errors(ErrorCode.AUTH_TOKEN_ISSUE_FAILED, "Failed to issue auth token"):
                auth_token = self.issuer.issue(scope, user)
        except RegistrationError as e:
            # The account already exists at this point
            logger.error("Auth token issuance failed for verified user %s: %s", user.id, e.code)
            raise

        return VerifyOutput(
            message=VERIFY_MESSAGE,
            auth_token=auth_token,
            user=VerifiedUser.from_user(user),
        )

    def _discard_expired(self, scope: CancelScope, secret: str, token_id: str) -> None:
        """Delete an expired token. Failure is logged and otherwise ignored."""
        try:
            self.tokens.delete_by_token(scope, secret)
        except Exception as e:
            logger.warning("Failed to delete expired verification token %s: %s", token_id, e)
            return
        logger.info("Verification token %s: %s", token_id, TokenState.EXPIRED.value)
