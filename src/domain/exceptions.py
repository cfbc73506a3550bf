"""
Domain exceptions - Semantic error types for account provisioning.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
The API layer maps each of them to an HTTP status and error message.
"""


class AccountError(Exception):
    """Base class for account provisioning and recovery errors."""

    pass


class EmailAlreadyRegistered(AccountError):
    """An account already exists for the email."""

    pass


class AccountNotFound(AccountError):
    """No account exists for the email."""

    pass


class PendingRegistrationNotFound(AccountError):
    """No pending signup or reset exists for the email (or it was consumed)."""

    pass


class OtpExpired(AccountError):
    """The pending record's OTP is past its expiry."""

    pass


class InvalidOtp(AccountError):
    """The submitted OTP does not match the stored hash."""

    pass


class InvalidOrExpiredOtp(AccountError):
    """OTP mismatch or expiry during password reset (deliberately not distinguished)."""

    pass


class InvalidCredentials(AccountError):
    """Unknown email or wrong password at sign-in."""

    pass


class EmailDeliveryFailed(AccountError):
    """The email sender reported that the OTP message was not delivered."""

    pass
