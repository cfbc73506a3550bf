"""
Password-reset domain service - recovery with OTP email verification.

States: NoPending -> PendingReset -> (Committed | ExpiredOrInvalid)

A reset is only offered to existing accounts. The commit updates the
password and deletes the pending record in one transaction, and success
is reported only once both writes are confirmed.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from .exceptions import AccountNotFound, InvalidOrExpiredOtp, PendingRegistrationNotFound
from .notifications import send_otp_email
from .otp import DEFAULT_BCRYPT_COST, generate_otp, hash_secret, utcnow, verify_secret
from .ports import (
    AccountRepository,
    CommitResult,
    EmailSender,
    PendingPurpose,
    PendingRegistration,
)
from .registration import DEFAULT_OTP_TTL, normalize_email

logger = logging.getLogger(__name__)


@dataclass
class PasswordResetService:
    """Domain service for password recovery."""

    repository: AccountRepository
    email_sender: EmailSender
    otp_ttl: timedelta = DEFAULT_OTP_TTL
    bcrypt_cost: int = DEFAULT_BCRYPT_COST
    clock: Callable[[], datetime] = utcnow

    def request_reset(self, email: str) -> str:
        """
        Start a password reset for an existing account and email the OTP.

        Raises:
            AccountNotFound: If no account uses the email
            EmailDeliveryFailed: If the OTP email could not be sent
        """
        normalized_email = normalize_email(email)
        account = self.repository.get_account(normalized_email)
        if account is None:
            raise AccountNotFound(normalized_email)

        otp = generate_otp()
        pending = PendingRegistration(
            email=normalized_email,
            purpose=PendingPurpose.RESET,
            name=account.name,
            password_hash=None,
            otp_hash=hash_secret(otp, self.bcrypt_cost),
            expires_at=self.clock() + self.otp_ttl,
        )
        self.repository.replace_pending(pending)
        logger.info("Pending password reset stored for %s", normalized_email)

        send_otp_email(self.email_sender, normalized_email, otp, PendingPurpose.RESET, self.otp_ttl)
        return normalized_email

    def commit_reset(self, email: str, otp: str, new_password: str) -> str:
        """
        Verify the OTP and replace the account's password.

        Raises:
            PendingRegistrationNotFound: No pending reset (or already consumed)
            InvalidOrExpiredOtp: Wrong OTP or OTP past expiry, not distinguished
        """
        normalized_email = normalize_email(email)
        pending = self.repository.get_pending(normalized_email)
        if pending is None or pending.purpose is not PendingPurpose.RESET:
            raise PendingRegistrationNotFound(normalized_email)

        # Hash check runs even for expired records so both failures cost the same.
        otp_valid = verify_secret(otp, pending.otp_hash)
        if not otp_valid or pending.is_expired(self.clock()):
            raise InvalidOrExpiredOtp(normalized_email)

        password_hash = hash_secret(new_password, self.bcrypt_cost)
        result = self.repository.commit_password_reset(
            normalized_email, pending.version, password_hash
        )
        if result is CommitResult.STALE:
            if self.repository.get_pending(normalized_email) is None:
                raise PendingRegistrationNotFound(normalized_email)
            raise InvalidOrExpiredOtp(normalized_email)
        if result is CommitResult.ACCOUNT_MISSING:
            raise AccountNotFound(normalized_email)

        logger.info("Password changed for %s", normalized_email)
        return normalized_email
