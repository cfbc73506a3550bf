"""
In-process repository adapter - Implements AccountRepository protocol.

Keeps accounts and pending records in dictionaries. Emails hash onto a fixed
set of lock stripes; the stripe is held across every read-modify-write for
that email, which gives the same per-email serialization the PostgreSQL
adapter gets from row locks. Unrelated emails may share a stripe.
State is lost on restart; intended for development and tests.
"""

import itertools
import threading
import uuid
from dataclasses import replace
from datetime import datetime

from src.domain.ports import Account, CommitResult, PendingPurpose, PendingRegistration

LOCK_STRIPES = 64


class InMemoryAccountRepository:
    """
    Implements AccountRepository protocol with striped per-email locks.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._pending: dict[str, PendingRegistration] = {}
        self._locks = [threading.Lock() for _ in range(LOCK_STRIPES)]
        # Versions never repeat, even after a record is deleted and recreated
        self._versions = itertools.count(1)
        self._versions_guard = threading.Lock()

    def _lock_for(self, email: str) -> threading.Lock:
        return self._locks[hash(email) % LOCK_STRIPES]

    def _next_version(self) -> int:
        with self._versions_guard:
            return next(self._versions)

    def get_account(self, email: str) -> Account | None:
        with self._lock_for(email):
            return self._accounts.get(email)

    def get_pending(self, email: str) -> PendingRegistration | None:
        with self._lock_for(email):
            return self._pending.get(email)

    def replace_pending(self, pending: PendingRegistration) -> PendingRegistration:
        with self._lock_for(pending.email):
            stored = replace(pending, version=self._next_version())
            self._pending[pending.email] = stored
            return stored

    def refresh_otp(
        self, email: str, purpose: PendingPurpose, otp_hash: str, expires_at: datetime
    ) -> bool:
        with self._lock_for(email):
            current = self._pending.get(email)
            if current is None or current.purpose is not purpose:
                return False
            self._pending[email] = replace(
                current, otp_hash=otp_hash, expires_at=expires_at, version=self._next_version()
            )
            return True

    def promote_pending(self, email: str, version: int) -> CommitResult:
        with self._lock_for(email):
            current = self._pending.get(email)
            if (
                current is None
                or current.purpose is not PendingPurpose.SIGNUP
                or current.version != version
            ):
                return CommitResult.STALE
            if email in self._accounts:
                return CommitResult.ACCOUNT_EXISTS

            self._accounts[email] = Account(
                id=str(uuid.uuid4()),
                name=current.name,
                email=email,
                password_hash=current.password_hash,
            )
            del self._pending[email]
            return CommitResult.SUCCESS

    def commit_password_reset(self, email: str, version: int, password_hash: str) -> CommitResult:
        with self._lock_for(email):
            current = self._pending.get(email)
            if (
                current is None
                or current.purpose is not PendingPurpose.RESET
                or current.version != version
            ):
                return CommitResult.STALE
            account = self._accounts.get(email)
            if account is None:
                return CommitResult.ACCOUNT_MISSING

            self._accounts[email] = replace(account, password_hash=password_hash)
            del self._pending[email]
            return CommitResult.SUCCESS

    def purge_expired(self, now: datetime) -> int:
        deleted = 0
        for email in list(self._pending):
            with self._lock_for(email):
                current = self._pending.get(email)
                if current is not None and current.is_expired(now):
                    del self._pending[email]
                    deleted += 1
        return deleted

    def ping(self) -> None:
        return None
