"""
Domain exceptions - Tagged error taxonomy for registration.

Every failure leaving the domain is a RegistrationError carrying a stable
machine-readable code, a human message, a classification and optional
field-level details. Collaborator failures are wrapped exactly once via
internal_errors(); errors that are already tagged pass through unchanged.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Classification of a registration error."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class ErrorCode(str, Enum):
    """Stable error codes surfaced to callers."""

    INVALID_EMAIL_FORMAT = "INVALID_EMAIL_FORMAT"
    INVALID_PASSWORD = "INVALID_PASSWORD"
    INVALID_PASSWORD_HASH = "INVALID_PASSWORD_HASH"
    PASSWORD_HASH_FAILED = "PASSWORD_HASH_FAILED"
    UUID_GENERATION_FAILED = "UUID_GENERATION_FAILED"
    EMAIL_ALREADY_REGISTERED = "EMAIL_ALREADY_REGISTERED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    INVALID_JSON = "INVALID_JSON"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_VERIFICATION_TOKEN = "INVALID_VERIFICATION_TOKEN"
    TOKEN_LOOKUP_FAILED = "TOKEN_LOOKUP_FAILED"
    VERIFICATION_TOKEN_EXPIRED = "VERIFICATION_TOKEN_EXPIRED"
    USER_LOOKUP_FAILED = "USER_LOOKUP_FAILED"
    USER_CREATE_FAILED = "USER_CREATE_FAILED"
    TOKEN_DELETE_FAILED = "TOKEN_DELETE_FAILED"
    AUTH_TOKEN_ISSUE_FAILED = "AUTH_TOKEN_ISSUE_FAILED"
    PASSWORD_MISMATCH = "PASSWORD_MISMATCH"
    TOKEN_CLEANUP_FAILED = "TOKEN_CLEANUP_FAILED"
    TOKEN_SAVE_FAILED = "TOKEN_SAVE_FAILED"
    VERIFICATION_URL_ERROR = "VERIFICATION_URL_ERROR"
    VERIFICATION_URL_MISSING = "VERIFICATION_URL_MISSING"
    EMAIL_SEND_FAILED = "EMAIL_SEND_FAILED"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    OPERATION_CANCELLED = "OPERATION_CANCELLED"


@dataclass(frozen=True)
class ErrorDetail:
    """Field-level error component."""

    field: str
    code: str
    message: str


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: tuple[ErrorDetail, ...] | list[ErrorDetail] = (),
    ) -> None:
        super().__init__(message)
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details: list[ErrorDetail] = list(details)

    def with_details(self, *details: ErrorDetail) -> "RegistrationError":
        """Attach field-level details and return self for chaining."""
        self.details.extend(details)
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationFailed(RegistrationError):
    """Client-supplied data was rejected."""

    kind = ErrorKind.VALIDATION


class NotFound(RegistrationError):
    """Referenced entity does not exist."""

    kind = ErrorKind.NOT_FOUND


class InternalFailure(RegistrationError):
    """Collaborator or storage failure. The cause is kept for diagnostics only."""

    kind = ErrorKind.INTERNAL

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(code, message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class OperationCancelled(InternalFailure):
    """The operation's cancel scope was cancelled or its deadline passed."""

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(ErrorCode.OPERATION_CANCELLED, message)


@contextmanager
def internal_errors(code: ErrorCode, message: str) -> Iterator[None]:
    """
    Tag foreign exceptions raised in the block as InternalFailure.

    RegistrationError subclasses propagate unchanged, so a failure is
    wrapped exactly once no matter how many layers it crosses.
    """
    try:
        yield
    except RegistrationError:
        raise
    except Exception as e:
        raise InternalFailure(code, message, cause=e) from e
