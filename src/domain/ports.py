"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the records the domain works with and the interfaces
(ports) it requires from infrastructure. Adapters implement these protocols.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol


class PendingPurpose(str, Enum):
    """
    Why a pending record exists.

    A single pending record is kept per email, so a signup request replaces
    a pending reset for the same address and vice versa (last writer wins).
    """

    SIGNUP = "SIGNUP"
    RESET = "RESET"


class CommitResult(Enum):
    """
    Outcome of a conditional write that consumes a pending record.

    STALE means the pending record was deleted or rewritten (its version
    moved on) between the read and the write.
    """

    SUCCESS = "success"
    STALE = "stale"
    ACCOUNT_EXISTS = "account_exists"
    ACCOUNT_MISSING = "account_missing"


@dataclass(frozen=True)
class Account:
    """Permanent, authenticatable identity record."""

    id: str
    name: str
    email: str
    password_hash: str


@dataclass(frozen=True)
class PendingRegistration:
    """Transient, email-keyed state between a request and its verification."""

    email: str
    purpose: PendingPurpose
    name: str
    password_hash: str | None
    otp_hash: str
    expires_at: datetime
    version: int = 0

    def is_expired(self, now: datetime) -> bool:
        """True once ``now`` is past the OTP expiry."""
        return self.expires_at < now


class AccountRepository(Protocol):
    """Port interface for account and pending-record persistence."""

    def get_account(self, email: str) -> Account | None:
        """Return the account registered under ``email``, if any."""
        ...

    def get_pending(self, email: str) -> PendingRegistration | None:
        """Return the pending record for ``email``, if any."""
        ...

    def replace_pending(self, pending: PendingRegistration) -> PendingRegistration:
        """
        Atomically replace any pending record for the email with ``pending``.

        Returns:
            The stored record, carrying the version assigned by the store
        """
        ...

    def refresh_otp(
        self, email: str, purpose: PendingPurpose, otp_hash: str, expires_at: datetime
    ) -> bool:
        """
        Overwrite the OTP hash and expiry of an existing pending record.

        The stored password hash is left untouched and the version is bumped,
        so verifications that read the previous version lose their write.

        Returns:
            True if a pending record with that purpose existed, False otherwise
        """
        ...

    def promote_pending(self, email: str, version: int) -> CommitResult:
        """
        Turn a pending signup into an account in one atomic step.

        Deletes the pending signup only if it still carries ``version`` and
        inserts the account from its name and password hash. Either both
        writes happen or neither does.

        Returns:
            SUCCESS, STALE (record gone or rewritten) or ACCOUNT_EXISTS
        """
        ...

    def commit_password_reset(self, email: str, version: int, password_hash: str) -> CommitResult:
        """
        Apply a password reset in one atomic step.

        Deletes the pending reset only if it still carries ``version`` and
        updates the account's password hash. Either both writes happen or
        neither does.

        Returns:
            SUCCESS, STALE (record gone or rewritten) or ACCOUNT_MISSING
        """
        ...

    def purge_expired(self, now: datetime) -> int:
        """Delete pending records whose expiry is before ``now``; return the count."""
        ...

    def ping(self) -> None:
        """Raise if the store is unreachable."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send(self, to_address: str, subject: str, body: str) -> bool:
        """
        Deliver a plain-text email.

        Args:
            to_address: Recipient email address
            subject: Message subject line
            body: Plain-text message body

        Returns:
            True if the message was handed off for delivery, False otherwise
        """
        ...
