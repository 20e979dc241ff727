"""
Value objects - Email and Password.

Both are constructible only through validation: an Email or Password
instance that exists is known to be valid.
"""

from dataclasses import dataclass

import bcrypt
from email_validator import EmailNotValidError, validate_email

from .exceptions import ErrorCode, ErrorDetail, InternalFailure, ValidationFailed

INVALID_EMAIL_MESSAGE = "Email address format is invalid"
INVALID_PASSWORD_MESSAGE = (
    "Password must be at least 8 characters and contain letters and digits"
)
MIN_PASSWORD_LENGTH = 8
DEFAULT_BCRYPT_COST = 10


def _invalid_email() -> ValidationFailed:
    detail = ErrorDetail(
        field="email",
        code=ErrorCode.INVALID_EMAIL_FORMAT.value,
        message=INVALID_EMAIL_MESSAGE,
    )
    return ValidationFailed(ErrorCode.INVALID_EMAIL_FORMAT, INVALID_EMAIL_MESSAGE).with_details(
        detail
    )


@dataclass(frozen=True)
class Email:
    """
    Normalized mailbox address.

    Applies: strip whitespace, mailbox syntax check, lowercase.

    Syntax only: dotless domains, ``.test`` and quoted local parts are
    accepted. email-validator's reserved names (localhost, .local,
    .invalid, .onion, .arpa) are still rejected.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise _invalid_email()
        trimmed = self.value.strip()
        if not trimmed:
            raise _invalid_email()
        try:
            validate_email(
                trimmed,
                check_deliverability=False,
                globally_deliverable=False,
                test_environment=True,
                allow_quoted_local=True,
            )
        except EmailNotValidError:
            raise _invalid_email() from None
        object.__setattr__(self, "value", trimmed.lower())

    def __str__(self) -> str:
        return self.value


class Password:
    """
    Validated raw password, held only until it is hashed.

    The raw value is never persisted and is dropped once hash() runs.
    Length is measured in UTF-8 bytes; only decimal digits (Nd) count
    as digits.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: str) -> None:
        if not isinstance(raw, str):
            raise ValidationFailed(ErrorCode.INVALID_PASSWORD, INVALID_PASSWORD_MESSAGE)
        if len(raw.encode("utf-8", "surrogatepass")) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(ErrorCode.INVALID_PASSWORD, INVALID_PASSWORD_MESSAGE)
        has_letter = any(ch.isalpha() for ch in raw)
        has_digit = any(ch.isdecimal() for ch in raw)
        if not (has_letter and has_digit):
            raise ValidationFailed(ErrorCode.INVALID_PASSWORD, INVALID_PASSWORD_MESSAGE)
        self._raw: str | None = raw

    def hash(self, cost: int = DEFAULT_BCRYPT_COST) -> str:
        """
        Hash the password with bcrypt and discard the raw value.

        Raises:
            InternalFailure: PASSWORD_HASH_FAILED if hashing fails or the
                password was already consumed
        """
        raw = self._raw
        if raw is None:
            raise InternalFailure(ErrorCode.PASSWORD_HASH_FAILED, "Password was already hashed")
        try:
            hashed = bcrypt.hashpw(raw.encode(), bcrypt.gensalt(rounds=cost)).decode()
        except (ValueError, TypeError) as e:
            raise InternalFailure(
                ErrorCode.PASSWORD_HASH_FAILED, "Failed to hash password", cause=e
            ) from e
        finally:
            self._raw = None
        return hashed

    def __repr__(self) -> str:
        return "Password(***)"
