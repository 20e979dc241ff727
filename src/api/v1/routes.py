"""
API v1 routes.

Defines REST endpoints for the registration/verification API.
"""

from fastapi import APIRouter, Depends, status

from src.api.dependencies import get_cancel_scope, get_register_usecase, get_verify_usecase
from src.api.models import (
    ErrorResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
    VerifyRequest,
    VerifyResponse,
)
from src.domain.cancellation import CancelScope
from src.domain.registration import RegisterInput, RegisterUsecase
from src.domain.verification import VerifyUsecase

router = APIRouter(tags=["v1"])


@router.post(
    "/auth/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input or email already registered"},
        500: {"model": ErrorResponse, "description": "Token storage or mail delivery failed"},
    },
    summary="Register a new user",
    description="Submit email, password and confirmation to begin registration. "
    "A verification link will be sent to the provided email.",
)
def register(
    request_data: RegisterRequest,
    scope: CancelScope = Depends(get_cancel_scope),
    usecase: RegisterUsecase = Depends(get_register_usecase),
) -> RegisterResponse:
    """
    Begin registration and send a verification link.

    - **email**: Email address to register
    - **password**: Password (minimum 8 characters, letters and digits)
    - **password_confirmation**: Must match password

    No account exists until the link is verified.
    """
    out = usecase.execute(
        scope,
        RegisterInput(
            email=request_data.email,
            password=request_data.password,
            password_confirmation=request_data.password_confirmation,
        ),
    )
    return RegisterResponse(message=out.message, expires_at=out.expires_at)


@router.post(
    "/auth/verify",
    response_model=VerifyResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Token blank or expired, email taken"},
        404: {"model": ErrorResponse, "description": "Token not found"},
        500: {"model": ErrorResponse, "description": "Storage or auth token failure"},
    },
    summary="Verify email and create account",
    description="Submit the token from the verification link to create the account "
    "and receive an authentication token.",
)
def verify(
    request_data: VerifyRequest,
    scope: CancelScope = Depends(get_cancel_scope),
    usecase: VerifyUsecase = Depends(get_verify_usecase),
) -> VerifyResponse:
    """
    Complete registration with a verification token.

    - **token**: Secret from the verification link
    """
    out = usecase.execute(scope, request_data.token)
    return VerifyResponse(
        message=out.message,
        auth_token=out.auth_token,
        user=UserResponse.from_verified(out.user),
    )
