"""
Test doubles shared across test packages.

- RecordingEmailSender captures OTP messages instead of sending them
- FakeClock lets tests move time past an OTP expiry
- store_pending seeds a pending record with a known OTP
"""

import re
from datetime import UTC, datetime, timedelta

from src.domain.otp import hash_secret
from src.domain.ports import AccountRepository, PendingPurpose, PendingRegistration
from src.domain.registration import DEFAULT_OTP_TTL

TEST_BCRYPT_COST = 4

OTP_PATTERN = re.compile(r"Your OTP code is: (\d{6})\.")


class RecordingEmailSender:
    """EmailSender that keeps every message instead of sending it."""

    def __init__(self, deliver: bool = True) -> None:
        self.deliver = deliver
        self.sent: list[tuple[str, str, str]] = []

    def send(self, to_address: str, subject: str, body: str) -> bool:
        self.sent.append((to_address, subject, body))
        return self.deliver

    def last_otp(self, to_address: str | None = None) -> str:
        """Extract the OTP from the most recent message (optionally to one address)."""
        for address, _subject, body in reversed(self.sent):
            if to_address is None or address == to_address:
                match = OTP_PATTERN.search(body)
                assert match is not None, f"No OTP in message body: {body!r}"
                return match.group(1)
        raise AssertionError(f"No message sent to {to_address}")


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def store_pending(
    repository: AccountRepository,
    clock: FakeClock,
    email: str,
    otp: str,
    purpose: PendingPurpose = PendingPurpose.SIGNUP,
    password: str = "Secret123",
) -> PendingRegistration:
    """Store a pending record whose OTP is known to the test."""
    return repository.replace_pending(
        PendingRegistration(
            email=email,
            purpose=purpose,
            name="Ada",
            password_hash=(
                hash_secret(password, TEST_BCRYPT_COST) if purpose is PendingPurpose.SIGNUP else None
            ),
            otp_hash=hash_secret(otp, TEST_BCRYPT_COST),
            expires_at=clock.now + DEFAULT_OTP_TTL,
        )
    )
