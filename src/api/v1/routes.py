"""
API v1 routes.

Defines REST endpoints for the identity provisioning API. Each route calls
one IdentityService operation and maps a returned Failure onto an HTTP
status; the service never raises business-rule errors.
"""

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import get_bearer_token, get_identity_service
from src.api.models import (
    AccountResponse,
    ErrorResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    SessionResponse,
    SignupRequest,
    SignupResponse,
    VerifyOtpRequest,
)
from src.domain.identity import IdentityService
from src.domain.models import ErrorKind, Failure

router = APIRouter(prefix="/auth", tags=["v1"])

ERROR_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DOMAIN_REJECTED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_OTP: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_failure(failure: Failure) -> NoReturn:
    raise HTTPException(status_code=ERROR_STATUS[failure.kind], detail=failure.message)


# Routes are sync so FastAPI runs them in its threadpool; bcrypt and the
# stores block.


@router.post(
    "/signup",
    response_model=SignupResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing fields or non-institutional email"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
    summary="Start institutional signup",
    description="Submit name, institutional email, password and registration number. "
    "A 6-digit OTP is emailed to the address.",
)
def signup(
    request_data: SignupRequest,
    service: IdentityService = Depends(get_identity_service),
) -> SignupResponse:
    result = service.signup(
        request_data.name,
        request_data.email,
        request_data.password,
        request_data.reg_number,
    )
    if isinstance(result, Failure):
        raise_for_failure(result)

    return SignupResponse(
        message="OTP sent to your institutional email. Please verify to complete signup.",
        email=result.email,
        expires_in_seconds=service.otp_ttl_seconds,
        email_sent=result.email_sent,
    )


@router.post(
    "/verify-otp",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired OTP"},
        409: {"model": ErrorResponse, "description": "Account already created"},
    },
    summary="Complete signup with the emailed OTP",
)
def verify_otp(
    request_data: VerifyOtpRequest,
    service: IdentityService = Depends(get_identity_service),
) -> SessionResponse:
    result = service.verify_otp(request_data.email, request_data.otp)
    if isinstance(result, Failure):
        raise_for_failure(result)

    return SessionResponse(
        message="Signup complete",
        token=result.token,
        name=result.display_name,
        user_id=result.account_id,
        handle=result.handle,
    )


@router.post(
    "/login",
    response_model=SessionResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Incorrect password"},
        404: {"model": ErrorResponse, "description": "No account for this email"},
    },
    summary="Log in with email and password",
)
def login(
    request_data: LoginRequest,
    service: IdentityService = Depends(get_identity_service),
) -> SessionResponse:
    result = service.login(request_data.email, request_data.password)
    if isinstance(result, Failure):
        raise_for_failure(result)

    return SessionResponse(
        message="Login successful",
        token=result.token,
        name=result.display_name,
        user_id=result.account_id,
        handle=result.handle,
    )


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
    summary="Email a password reset OTP",
)
def forgot_password(
    request_data: ForgotPasswordRequest,
    service: IdentityService = Depends(get_identity_service),
) -> ForgotPasswordResponse:
    result = service.forgot_password(request_data.email)
    if isinstance(result, Failure):
        raise_for_failure(result)

    return ForgotPasswordResponse(message="OTP sent to your email", email_sent=result.email_sent)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired OTP"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
    summary="Set a new password with a reset OTP",
)
def reset_password(
    request_data: ResetPasswordRequest,
    service: IdentityService = Depends(get_identity_service),
) -> MessageResponse:
    result = service.reset_password(request_data.email, request_data.otp, request_data.new_password)
    if isinstance(result, Failure):
        raise_for_failure(result)

    return MessageResponse(message="Password reset successful")


@router.get(
    "/me",
    response_model=AccountResponse,
    responses={401: {"model": ErrorResponse, "description": "Missing, invalid or expired token"}},
    summary="Profile of the authenticated account",
)
def me(
    token: str = Depends(get_bearer_token),
    service: IdentityService = Depends(get_identity_service),
) -> AccountResponse:
    result = service.authenticate(token)
    if isinstance(result, Failure):
        raise_for_failure(result)

    return AccountResponse(
        user_id=result.id,
        name=result.display_name,
        email=result.email,
        handle=result.handle,
        reg_number=result.institutional_id,
        verified=result.verified,
    )
