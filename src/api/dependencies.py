"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta

from fastapi import Request

from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.sender import SmtpEmailSender
from src.config.settings import Settings, get_settings
from src.domain.authentication import AuthenticationService
from src.domain.password_reset import PasswordResetService
from src.domain.ports import AccountRepository, EmailSender
from src.domain.registration import RegistrationService


def build_email_sender(settings: Settings) -> EmailSender:
    """Create the email sender selected by ``email_backend``."""
    if settings.email_backend == "smtp":
        return SmtpEmailSender.from_settings(settings)
    return ConsoleEmailSender()


def get_repository(request: Request) -> AccountRepository:
    """
    Get repository from app state.

    The repository is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.repository


def get_email_sender(request: Request) -> EmailSender:
    """Get email sender from app state."""
    return request.app.state.email_sender


def get_registration_service(request: Request) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the repository and email sender for the domain service.
    """
    settings = get_settings()
    return RegistrationService(
        repository=get_repository(request),
        email_sender=get_email_sender(request),
        otp_ttl=timedelta(minutes=settings.otp_ttl_minutes),
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_password_reset_service(request: Request) -> PasswordResetService:
    """Create password reset service with injected dependencies."""
    settings = get_settings()
    return PasswordResetService(
        repository=get_repository(request),
        email_sender=get_email_sender(request),
        otp_ttl=timedelta(minutes=settings.otp_ttl_minutes),
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_authentication_service(request: Request) -> AuthenticationService:
    """Create authentication service backed by the app repository."""
    return AuthenticationService(
        repository=get_repository(request),
        bcrypt_cost=get_settings().bcrypt_cost,
    )
