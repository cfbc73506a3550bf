"""
Unit tests for RegistrationService domain logic.

Tests the signup state machine against the in-memory repository to verify:
- Request creates exactly one pending record and one email
- Conflict when an account already exists
- Resend invalidates the previous OTP and extends expiry
- Verification outcomes (success, not found, expired, invalid)
- Persistence happens before email dispatch
"""

from datetime import timedelta
from unittest.mock import Mock

import bcrypt
import pytest

from src.adapters.repository.memory import InMemoryAccountRepository
from src.domain.exceptions import (
    EmailAlreadyRegistered,
    EmailDeliveryFailed,
    InvalidOtp,
    OtpExpired,
    PendingRegistrationNotFound,
)
from src.domain.otp import hash_secret
from src.domain.ports import CommitResult, PendingPurpose, PendingRegistration
from src.domain.registration import RegistrationService
from tests.helpers import TEST_BCRYPT_COST, FakeClock, RecordingEmailSender


@pytest.fixture
def service(
    memory_repository: InMemoryAccountRepository,
    email_sender: RecordingEmailSender,
    clock: FakeClock,
) -> RegistrationService:
    return RegistrationService(
        repository=memory_repository,
        email_sender=email_sender,
        bcrypt_cost=TEST_BCRYPT_COST,
        clock=clock,
    )


class TestRequestRegistration:
    """Tests for request_registration."""

    def test_creates_one_pending_record(
        self, service: RegistrationService, memory_repository: InMemoryAccountRepository
    ) -> None:
        """A request stores one SIGNUP pending record for the email."""
        service.request_registration("Ada", "a@b.com", "Secret123")

        pending = memory_repository.get_pending("a@b.com")
        assert pending is not None
        assert pending.purpose is PendingPurpose.SIGNUP
        assert pending.name == "Ada"

    def test_sends_exactly_one_email(
        self, service: RegistrationService, email_sender: RecordingEmailSender
    ) -> None:
        """A request dispatches one signup OTP email to the address."""
        service.request_registration("Ada", "a@b.com", "Secret123")

        assert len(email_sender.sent) == 1
        to_address, subject, body = email_sender.sent[0]
        assert to_address == "a@b.com"
        assert subject == "Your OTP Code for Signup Verification"
        assert body == f"Your OTP code is: {email_sender.last_otp()}. It expires in 30 minutes."

    def test_expiry_is_thirty_minutes_from_now(
        self,
        service: RegistrationService,
        memory_repository: InMemoryAccountRepository,
        clock: FakeClock,
    ) -> None:
        """Pending record expires 30 minutes after the request."""
        service.request_registration("Ada", "a@b.com", "Secret123")

        pending = memory_repository.get_pending("a@b.com")
        assert pending.expires_at == clock.now + timedelta(minutes=30)

    def test_otp_and_password_are_hashed(
        self,
        service: RegistrationService,
        memory_repository: InMemoryAccountRepository,
        email_sender: RecordingEmailSender,
    ) -> None:
        """Neither the OTP nor the password is stored in plaintext."""
        service.request_registration("Ada", "a@b.com", "Secret123")

        pending = memory_repository.get_pending("a@b.com")
        otp = email_sender.last_otp()
        assert pending.otp_hash != otp
        assert pending.password_hash != "Secret123"
        assert bcrypt.checkpw(otp.encode(), pending.otp_hash.encode())
        assert bcrypt.checkpw(b"Secret123", pending.password_hash.encode())

    def test_returns_email_not_otp(
        self, service: RegistrationService, email_sender: RecordingEmailSender
    ) -> None:
        """The caller gets the email back, never the code."""
        result = service.request_registration("Ada", "  a@b.com  ", "Secret123")

        assert result == "a@b.com"
        assert email_sender.last_otp() not in result

    def test_conflict_when_account_exists(
        self, service: RegistrationService, email_sender: RecordingEmailSender
    ) -> None:
        """A second signup for a verified email raises EmailAlreadyRegistered."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        service.verify_registration("a@b.com", email_sender.last_otp())

        with pytest.raises(EmailAlreadyRegistered):
            service.request_registration("Ada", "a@b.com", "Other1234")

    def test_existing_pending_does_not_conflict(
        self,
        service: RegistrationService,
        memory_repository: InMemoryAccountRepository,
        email_sender: RecordingEmailSender,
    ) -> None:
        """A pending signup is replaced, not treated as a conflict."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        first_otp = email_sender.last_otp()
        service.request_registration("Ada L.", "a@b.com", "Secret456")

        pending = memory_repository.get_pending("a@b.com")
        assert pending.name == "Ada L."
        if first_otp != email_sender.last_otp():
            with pytest.raises(InvalidOtp):
                service.verify_registration("a@b.com", first_otp)

    def test_conflict_sends_no_email(self) -> None:
        """No email is sent when the account already exists."""
        repo = Mock()
        repo.get_account.return_value = Mock()
        sender = Mock()

        service = RegistrationService(repository=repo, email_sender=sender)

        with pytest.raises(EmailAlreadyRegistered):
            service.request_registration("Ada", "a@b.com", "Secret123")

        repo.replace_pending.assert_not_called()
        sender.send.assert_not_called()

    def test_persists_before_dispatch(self) -> None:
        """The pending record is written before the email is attempted."""
        calls: list[str] = []
        repo = Mock()
        repo.get_account.return_value = None
        repo.replace_pending.side_effect = lambda pending: calls.append("persist") or pending
        sender = Mock()
        sender.send.side_effect = lambda *args: calls.append("send") or True

        service = RegistrationService(repository=repo, email_sender=sender, bcrypt_cost=TEST_BCRYPT_COST)
        service.request_registration("Ada", "a@b.com", "Secret123")

        assert calls == ["persist", "send"]

    def test_delivery_failure_raises_and_keeps_record(
        self, memory_repository: InMemoryAccountRepository, clock: FakeClock
    ) -> None:
        """A failed send raises EmailDeliveryFailed; the pending record survives for a resend."""
        sender = RecordingEmailSender(deliver=False)
        service = RegistrationService(
            repository=memory_repository,
            email_sender=sender,
            bcrypt_cost=TEST_BCRYPT_COST,
            clock=clock,
        )

        with pytest.raises(EmailDeliveryFailed):
            service.request_registration("Ada", "a@b.com", "Secret123")

        assert memory_repository.get_pending("a@b.com") is not None


class TestResendRegistrationOtp:
    """Tests for resend_registration_otp."""

    def test_not_found_without_pending(self, service: RegistrationService) -> None:
        with pytest.raises(PendingRegistrationNotFound):
            service.resend_registration_otp("nobody@b.com")

    def test_old_code_fails_new_code_succeeds(
        self,
        service: RegistrationService,
        memory_repository: InMemoryAccountRepository,
        email_sender: RecordingEmailSender,
    ) -> None:
        """After a resend only the newest OTP verifies."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        old_otp = email_sender.last_otp()
        service.resend_registration_otp("a@b.com")
        new_otp = email_sender.last_otp()

        if old_otp != new_otp:
            with pytest.raises(InvalidOtp):
                service.verify_registration("a@b.com", old_otp)

        service.verify_registration("a@b.com", new_otp)
        assert memory_repository.get_account("a@b.com") is not None

    def test_resend_twice_only_latest_verifies(
        self, service: RegistrationService, email_sender: RecordingEmailSender
    ) -> None:
        """Resending twice leaves the first and second codes invalid."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        first = email_sender.last_otp()
        service.resend_registration_otp("a@b.com")
        second = email_sender.last_otp()
        service.resend_registration_otp("a@b.com")
        latest = email_sender.last_otp()

        for stale in {first, second} - {latest}:
            with pytest.raises(InvalidOtp):
                service.verify_registration("a@b.com", stale)

        service.verify_registration("a@b.com", latest)

    def test_extends_expiry(
        self,
        service: RegistrationService,
        memory_repository: InMemoryAccountRepository,
        clock: FakeClock,
    ) -> None:
        """Resend moves the expiry to 30 minutes from the resend."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        clock.advance(minutes=20)
        service.resend_registration_otp("a@b.com")

        pending = memory_repository.get_pending("a@b.com")
        assert pending.expires_at == clock.now + timedelta(minutes=30)

    def test_keeps_password_hash(
        self, service: RegistrationService, memory_repository: InMemoryAccountRepository
    ) -> None:
        """Resend does not touch the stored password hash."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        before = memory_repository.get_pending("a@b.com").password_hash
        service.resend_registration_otp("a@b.com")

        assert memory_repository.get_pending("a@b.com").password_hash == before

    def test_reset_pending_is_not_resent(
        self,
        service: RegistrationService,
        memory_repository: InMemoryAccountRepository,
        email_sender: RecordingEmailSender,
    ) -> None:
        """A pending password reset cannot be refreshed through the signup resend."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        service.verify_registration("a@b.com", email_sender.last_otp())
        memory_repository.replace_pending(_reset_record("a@b.com"))

        with pytest.raises(PendingRegistrationNotFound):
            service.resend_registration_otp("a@b.com")


class TestVerifyRegistration:
    """Tests for verify_registration."""

    def test_success_creates_account_and_clears_pending(
        self,
        service: RegistrationService,
        memory_repository: InMemoryAccountRepository,
        email_sender: RecordingEmailSender,
    ) -> None:
        """Correct OTP before expiry: one account, zero pending records."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        service.verify_registration("a@b.com", email_sender.last_otp())

        account = memory_repository.get_account("a@b.com")
        assert account is not None
        assert account.name == "Ada"
        assert bcrypt.checkpw(b"Secret123", account.password_hash.encode())
        assert memory_repository.get_pending("a@b.com") is None

    def test_second_verification_not_found(
        self, service: RegistrationService, email_sender: RecordingEmailSender
    ) -> None:
        """Reusing a consumed OTP raises PendingRegistrationNotFound."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        otp = email_sender.last_otp()
        service.verify_registration("a@b.com", otp)

        with pytest.raises(PendingRegistrationNotFound):
            service.verify_registration("a@b.com", otp)

    def test_not_found_without_pending(self, service: RegistrationService) -> None:
        with pytest.raises(PendingRegistrationNotFound):
            service.verify_registration("nobody@b.com", "123456")

    def test_expired_even_with_correct_code(
        self,
        service: RegistrationService,
        email_sender: RecordingEmailSender,
        clock: FakeClock,
    ) -> None:
        """A correct OTP after 30 minutes raises OtpExpired."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        clock.advance(minutes=30, seconds=1)

        with pytest.raises(OtpExpired):
            service.verify_registration("a@b.com", email_sender.last_otp())

    def test_valid_at_expiry_boundary(
        self,
        service: RegistrationService,
        memory_repository: InMemoryAccountRepository,
        email_sender: RecordingEmailSender,
        clock: FakeClock,
    ) -> None:
        """The OTP still verifies at exactly the expiry instant."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        clock.advance(minutes=30)

        service.verify_registration("a@b.com", email_sender.last_otp())
        assert memory_repository.get_account("a@b.com") is not None

    def test_expired_record_is_kept(
        self,
        service: RegistrationService,
        memory_repository: InMemoryAccountRepository,
        email_sender: RecordingEmailSender,
        clock: FakeClock,
    ) -> None:
        """An expired verification leaves the pending record for the sweep."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        clock.advance(hours=1)

        with pytest.raises(OtpExpired):
            service.verify_registration("a@b.com", email_sender.last_otp())
        assert memory_repository.get_pending("a@b.com") is not None

    def test_wrong_code_is_invalid(
        self,
        service: RegistrationService,
        memory_repository: InMemoryAccountRepository,
        email_sender: RecordingEmailSender,
    ) -> None:
        """A mismatched OTP raises InvalidOtp and creates no account."""
        service.request_registration("Ada", "a@b.com", "Secret123")
        wrong = "100000" if email_sender.last_otp() != "100000" else "100001"

        with pytest.raises(InvalidOtp):
            service.verify_registration("a@b.com", wrong)
        assert memory_repository.get_account("a@b.com") is None

    def test_stale_write_with_consumed_record_is_not_found(self) -> None:
        """Losing the conditional write to a concurrent verify reports not found."""
        repo = Mock()
        repo.get_pending.side_effect = [
            _signup_record("a@b.com", otp="123456"),
            None,
        ]
        repo.promote_pending.return_value = CommitResult.STALE

        service = RegistrationService(repository=repo, email_sender=Mock(), clock=FakeClock())

        with pytest.raises(PendingRegistrationNotFound):
            service.verify_registration("a@b.com", "123456")

    def test_stale_write_with_rewritten_record_is_invalid(self) -> None:
        """Losing the conditional write to a resend reports an invalid OTP."""
        record = _signup_record("a@b.com", otp="123456")
        repo = Mock()
        repo.get_pending.side_effect = [record, record]
        repo.promote_pending.return_value = CommitResult.STALE

        service = RegistrationService(repository=repo, email_sender=Mock(), clock=FakeClock())

        with pytest.raises(InvalidOtp):
            service.verify_registration("a@b.com", "123456")

    def test_account_created_meanwhile_is_conflict(self) -> None:
        repo = Mock()
        repo.get_pending.return_value = _signup_record("a@b.com", otp="123456")
        repo.promote_pending.return_value = CommitResult.ACCOUNT_EXISTS

        service = RegistrationService(repository=repo, email_sender=Mock(), clock=FakeClock())

        with pytest.raises(EmailAlreadyRegistered):
            service.verify_registration("a@b.com", "123456")


def _signup_record(email: str, otp: str) -> PendingRegistration:
    return PendingRegistration(
        email=email,
        purpose=PendingPurpose.SIGNUP,
        name="Ada",
        password_hash=hash_secret("Secret123", TEST_BCRYPT_COST),
        otp_hash=hash_secret(otp, TEST_BCRYPT_COST),
        expires_at=FakeClock().now + timedelta(minutes=30),
        version=1,
    )


def _reset_record(email: str) -> PendingRegistration:
    return PendingRegistration(
        email=email,
        purpose=PendingPurpose.RESET,
        name="Ada",
        password_hash=None,
        otp_hash=hash_secret("654321", TEST_BCRYPT_COST),
        expires_at=FakeClock().now + timedelta(minutes=30),
    )
