"""
Domain layer - Pure business logic with zero framework imports.

This package contains the account provisioning and recovery logic of the
uptime dashboard: signup and password reset, both gated by an emailed OTP.
It defines its own port interfaces for infrastructure abstraction.
"""

from .authentication import AuthenticationService
from .exceptions import (
    AccountError,
    AccountNotFound,
    EmailAlreadyRegistered,
    EmailDeliveryFailed,
    InvalidCredentials,
    InvalidOrExpiredOtp,
    InvalidOtp,
    OtpExpired,
    PendingRegistrationNotFound,
)
from .password_reset import PasswordResetService
from .ports import (
    Account,
    AccountRepository,
    CommitResult,
    EmailSender,
    PendingPurpose,
    PendingRegistration,
)
from .registration import RegistrationService

__all__ = [
    "Account",
    "AccountError",
    "AccountNotFound",
    "AccountRepository",
    "AuthenticationService",
    "CommitResult",
    "EmailAlreadyRegistered",
    "EmailDeliveryFailed",
    "EmailSender",
    "InvalidCredentials",
    "InvalidOrExpiredOtp",
    "InvalidOtp",
    "OtpExpired",
    "PasswordResetService",
    "PendingPurpose",
    "PendingRegistration",
    "PendingRegistrationNotFound",
    "RegistrationService",
]
