"""
Auth routes.

Defines REST endpoints for signup, OTP verification, password recovery
and the sign-in credential check. Handlers are plain functions so FastAPI
runs the blocking store, bcrypt and SMTP calls on its threadpool.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import (
    get_authentication_service,
    get_password_reset_service,
    get_registration_service,
)
from src.api.models import (
    EmailRequest,
    ErrorResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    SignInRequest,
    SignInResponse,
    VerifyOtpRequest,
)
from src.domain.authentication import AuthenticationService
from src.domain.exceptions import (
    AccountNotFound,
    EmailAlreadyRegistered,
    EmailDeliveryFailed,
    InvalidCredentials,
    InvalidOrExpiredOtp,
    InvalidOtp,
    OtpExpired,
    PendingRegistrationNotFound,
)
from src.domain.password_reset import PasswordResetService
from src.domain.registration import RegistrationService

router = APIRouter(tags=["auth"])

OTP_SENT = "OTP sent to your email"
EMAIL_FAILED = "Failed to send OTP email"


def _email_failed() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=EMAIL_FAILED,
    )


@router.post(
    "/register",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error or email already registered"},
        500: {"model": ErrorResponse, "description": "OTP email could not be sent"},
    },
    summary="Request registration",
    description="Submit name, email and password to begin signup. "
    "A 6-digit OTP valid for 30 minutes is sent to the email.",
)
def register(
    request_data: RegisterRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    try:
        service.request_registration(request_data.name, request_data.email, request_data.password)
    except EmailAlreadyRegistered:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already exist",
        ) from None
    except EmailDeliveryFailed:
        raise _email_failed() from None
    return MessageResponse(message=OTP_SENT)


@router.patch(
    "/register",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        404: {"model": ErrorResponse, "description": "No pending signup for this email"},
        500: {"model": ErrorResponse, "description": "OTP email could not be sent"},
    },
    summary="Resend registration OTP",
    description="Issue a fresh OTP for a pending signup. The previous code stops working.",
)
def resend_registration_otp(
    request_data: EmailRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    try:
        service.resend_registration_otp(request_data.email)
    except PendingRegistrationNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No user found or OTP completed, you might need to sign up again or try logging in",
        ) from None
    except EmailDeliveryFailed:
        raise _email_failed() from None
    return MessageResponse(message=OTP_SENT)


@router.post(
    "/verify-otp",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error, expired or invalid OTP"},
        404: {"model": ErrorResponse, "description": "No pending signup for this email"},
    },
    summary="Verify registration",
    description="Submit the OTP received by email to create the account.",
)
def verify_otp(
    request_data: VerifyOtpRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    try:
        service.verify_registration(request_data.email, request_data.otp)
    except PendingRegistrationNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found or OTP expired",
        ) from None
    except OtpExpired:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="OTP expired") from None
    except InvalidOtp:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OTP") from None
    except EmailAlreadyRegistered:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already exist",
        ) from None
    return MessageResponse(message="Email verified successfully, you can now login.")


@router.post(
    "/forget-password",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error or unknown email"},
        500: {"model": ErrorResponse, "description": "OTP email could not be sent"},
    },
    summary="Request password reset",
    description="Send a password recovery OTP to an existing account's email.",
)
def request_password_reset(
    request_data: EmailRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    try:
        service.request_reset(request_data.email)
    except AccountNotFound:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email does not exist",
        ) from None
    except EmailDeliveryFailed:
        raise _email_failed() from None
    return MessageResponse(message=OTP_SENT)


@router.patch(
    "/forget-password",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error, invalid or expired OTP"},
        404: {"model": ErrorResponse, "description": "No pending reset for this email"},
    },
    summary="Commit password reset",
    description="Submit the recovery OTP and a new password.",
)
def commit_password_reset(
    request_data: ResetPasswordRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    try:
        service.commit_reset(request_data.email, request_data.otp, request_data.password)
    except (PendingRegistrationNotFound, AccountNotFound):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No user found or OTP completed",
        ) from None
    except InvalidOrExpiredOtp:
        # Wrong and expired codes share one message
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid OTP or expired",
        ) from None
    return MessageResponse(message="Password changed successfully")


@router.post(
    "/signin",
    response_model=SignInResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        401: {"model": ErrorResponse, "description": "Invalid email or password"},
    },
    summary="Check sign-in credentials",
    description="Verify an email/password pair. No session is issued.",
)
def signin(
    request_data: SignInRequest,
    service: AuthenticationService = Depends(get_authentication_service),
) -> SignInResponse:
    try:
        account = service.authenticate(request_data.email, request_data.password)
    except InvalidCredentials:
        # Same message for unknown email and wrong password
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        ) from None
    return SignInResponse(message="Signed in successfully", name=account.name, email=account.email)
