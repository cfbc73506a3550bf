"""
Credential check used by sign-in.

Unknown emails still pay for one bcrypt comparison against a dummy hash,
so response time does not reveal whether an account exists. The dummy hash
is built at the same cost as stored passwords.
"""

from dataclasses import dataclass
from functools import lru_cache

from .exceptions import InvalidCredentials
from .otp import DEFAULT_BCRYPT_COST, hash_secret, verify_secret
from .ports import Account, AccountRepository
from .registration import normalize_email


@lru_cache
def dummy_hash(cost: int) -> str:
    return hash_secret("dummy_password_for_timing_safety", cost)


@dataclass
class AuthenticationService:
    """Checks email/password pairs against stored accounts."""

    repository: AccountRepository
    bcrypt_cost: int = DEFAULT_BCRYPT_COST

    def authenticate(self, email: str, password: str) -> Account:
        """
        Return the account if the password matches.

        Raises:
            InvalidCredentials: Unknown email or wrong password (not distinguished)
        """
        normalized_email = normalize_email(email)
        account = self.repository.get_account(normalized_email)
        stored_hash = (
            account.password_hash if account is not None else dummy_hash(self.bcrypt_cost)
        )

        password_valid = verify_secret(password, stored_hash)
        if account is None or not password_valid:
            raise InvalidCredentials(normalized_email)
        return account
