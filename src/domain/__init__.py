"""
Domain layer - Pure business logic with zero framework imports.

This package contains the registration/verification token lifecycle:
value objects, entities, the error taxonomy, cancel scopes, port
interfaces and the two usecases. Adapters implement the ports, ensuring
true hexagonal architecture decoupling.
"""

from .cancellation import CancelScope
from .entities import TokenState, User, VerificationToken
from .exceptions import (
    ErrorCode,
    ErrorDetail,
    ErrorKind,
    InternalFailure,
    NotFound,
    OperationCancelled,
    RegistrationError,
    ValidationFailed,
)
from .ports import (
    AuthTokenIssuer,
    Clock,
    Mailer,
    TransactionManager,
    UserRepository,
    VerificationTokenRepository,
)
from .registration import RegisterConfig, RegisterInput, RegisterOutput, RegisterUsecase
from .values import Email, Password
from .verification import VerifiedUser, VerifyOutput, VerifyUsecase

__all__ = [
    "AuthTokenIssuer",
    "CancelScope",
    "Clock",
    "Email",
    "ErrorCode",
    "ErrorDetail",
    "ErrorKind",
    "InternalFailure",
    "Mailer",
    "NotFound",
    "OperationCancelled",
    "Password",
    "RegisterConfig",
    "RegisterInput",
    "RegisterOutput",
    "RegisterUsecase",
    "RegistrationError",
    "TokenState",
    "TransactionManager",
    "User",
    "UserRepository",
    "ValidationFailed",
    "VerificationToken",
    "VerificationTokenRepository",
    "VerifiedUser",
    "VerifyOutput",
    "VerifyUsecase",
]
