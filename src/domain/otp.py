"""
One-time codes and secret hashing.

OTPs and passwords are both stored as salted bcrypt hashes. The cost
factor comes from settings; it must stay high enough that the 900,000
possible codes cannot be searched within one OTP validity window.
"""

import secrets
from datetime import UTC, datetime

import bcrypt

OTP_MIN = 100000
OTP_MAX = 999999
DEFAULT_BCRYPT_COST = 10


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(UTC)


def generate_otp() -> str:
    """Generate a 6-digit code drawn uniformly from 100000-999999."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def hash_secret(value: str, cost: int = DEFAULT_BCRYPT_COST) -> str:
    """Hash an OTP or password with bcrypt and a fresh salt."""
    return bcrypt.hashpw(value.encode(), bcrypt.gensalt(rounds=cost)).decode()


def verify_secret(value: str, digest: str) -> bool:
    """
    Compare a plaintext OTP or password against its bcrypt hash.

    A digest that is not a valid bcrypt hash never verifies.
    """
    try:
        return bcrypt.checkpw(value.encode(), digest.encode())
    except ValueError:
        return False
