"""
Registration domain service - signup with OTP email verification.

This module contains the business logic that turns a signup request into
an account once the user proves control of their email address.

Registration State Machine
==========================

States:
- NoPending: no pending signup for the email
- PendingSignup: pending record holds name, password hash, OTP hash, expiry
- Verified: account created, pending record deleted (terminal)
- ExpiredOrInvalid: verification rejected; pending record is kept until
  replaced by a new request, refreshed by a resend, or purged by the sweep

Transitions:
    NoPending     -> PendingSignup  (request_registration)
    PendingSignup -> PendingSignup  (request_registration, resend_registration_otp)
    PendingSignup -> Verified       (verify_registration, correct OTP, before expiry)
    PendingSignup -> ExpiredOrInvalid (verify_registration, wrong or late OTP)

The final transition is a conditional write keyed on the pending record's
version, so two concurrent valid verifications create a single account and
a resend racing a verification invalidates the older code.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from .exceptions import (
    EmailAlreadyRegistered,
    InvalidOtp,
    OtpExpired,
    PendingRegistrationNotFound,
)
from .notifications import send_otp_email
from .otp import DEFAULT_BCRYPT_COST, generate_otp, hash_secret, utcnow, verify_secret
from .ports import (
    AccountRepository,
    CommitResult,
    EmailSender,
    PendingPurpose,
    PendingRegistration,
)

logger = logging.getLogger(__name__)

DEFAULT_OTP_TTL = timedelta(minutes=30)


def normalize_email(email: str) -> str:
    """
    Normalize email address for storage and lookup.

    Only surrounding whitespace is removed; matching is otherwise exact.
    """
    return email.strip()


@dataclass
class RegistrationService:
    """
    Domain service for signup.

    Orchestrates OTP generation, hashing, pending-record persistence and
    OTP email dispatch. Persistence always completes before the email is sent.
    """

    repository: AccountRepository
    email_sender: EmailSender
    otp_ttl: timedelta = DEFAULT_OTP_TTL
    bcrypt_cost: int = DEFAULT_BCRYPT_COST
    clock: Callable[[], datetime] = utcnow

    def request_registration(self, name: str, email: str, password: str) -> str:
        """
        Start a signup and email the OTP.

        Args:
            name: Display name for the future account
            email: Email address to verify
            password: Plaintext password (hashed before storage)

        Returns:
            Normalized email address

        Raises:
            EmailAlreadyRegistered: If an account already uses the email
            EmailDeliveryFailed: If the OTP email could not be sent
        """
        normalized_email = normalize_email(email)
        if self.repository.get_account(normalized_email) is not None:
            raise EmailAlreadyRegistered(normalized_email)

        otp = generate_otp()
        pending = PendingRegistration(
            email=normalized_email,
            purpose=PendingPurpose.SIGNUP,
            name=name.strip(),
            password_hash=hash_secret(password, self.bcrypt_cost),
            otp_hash=hash_secret(otp, self.bcrypt_cost),
            expires_at=self.clock() + self.otp_ttl,
        )
        self.repository.replace_pending(pending)
        logger.info("Pending signup stored for %s", normalized_email)

        send_otp_email(self.email_sender, normalized_email, otp, PendingPurpose.SIGNUP, self.otp_ttl)
        return normalized_email

    def resend_registration_otp(self, email: str) -> str:
        """
        Issue a fresh OTP for a pending signup; the previous code stops working.

        Raises:
            PendingRegistrationNotFound: If no pending signup exists for the email
            EmailDeliveryFailed: If the OTP email could not be sent
        """
        normalized_email = normalize_email(email)
        otp = generate_otp()
        refreshed = self.repository.refresh_otp(
            normalized_email,
            PendingPurpose.SIGNUP,
            hash_secret(otp, self.bcrypt_cost),
            self.clock() + self.otp_ttl,
        )
        if not refreshed:
            raise PendingRegistrationNotFound(normalized_email)
        logger.info("Signup OTP refreshed for %s", normalized_email)

        send_otp_email(self.email_sender, normalized_email, otp, PendingPurpose.SIGNUP, self.otp_ttl)
        return normalized_email

    def verify_registration(self, email: str, otp: str) -> str:
        """
        Verify the OTP and promote the pending signup to an account.

        Returns:
            Normalized email address of the new account

        Raises:
            PendingRegistrationNotFound: No pending signup (or already consumed)
            OtpExpired: The OTP is past its expiry
            InvalidOtp: The OTP does not match
            EmailAlreadyRegistered: An account appeared for the email meanwhile
        """
        normalized_email = normalize_email(email)
        pending = self.repository.get_pending(normalized_email)
        if pending is None or pending.purpose is not PendingPurpose.SIGNUP:
            raise PendingRegistrationNotFound(normalized_email)

        if pending.is_expired(self.clock()):
            raise OtpExpired(normalized_email)

        if not verify_secret(otp, pending.otp_hash):
            raise InvalidOtp(normalized_email)

        result = self.repository.promote_pending(normalized_email, pending.version)
        if result is CommitResult.ACCOUNT_EXISTS:
            raise EmailAlreadyRegistered(normalized_email)
        if result is CommitResult.STALE:
            # Consumed by a concurrent verification, or rewritten by a resend.
            if self.repository.get_pending(normalized_email) is None:
                raise PendingRegistrationNotFound(normalized_email)
            raise InvalidOtp(normalized_email)

        logger.info("Account created for %s", normalized_email)
        return normalized_email
