"""
Shared test fixtures and configuration.

This module provides:
- Test environment defaults (in-memory storage, fast bcrypt, no sweep thread)
- Repository, email sender and clock fixtures for domain tests
- A PostgreSQL pool for integration and adversarial tests, skipped when
  no database is reachable
"""

import os
from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

# Must be set before any test module calls get_settings()
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("EMAIL_BACKEND", "console")
os.environ.setdefault("BCRYPT_COST", "4")
os.environ.setdefault("SWEEP_ENABLED", "false")

from src.adapters.repository.memory import InMemoryAccountRepository  # noqa: E402
from src.adapters.repository.postgres import run_migrations  # noqa: E402
from src.config.settings import get_settings  # noqa: E402
from tests.helpers import FakeClock, RecordingEmailSender  # noqa: E402


@pytest.fixture
def memory_repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="session")
def postgres_pool() -> Generator[ConnectionPool, None, None]:
    """Connection pool against DATABASE_URL with migrations applied."""
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=True)
    try:
        pool.wait(timeout=2)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL not available")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_postgres(postgres_pool: ConnectionPool) -> ConnectionPool:
    """Empty both tables before the test runs."""
    with postgres_pool.connection() as conn:
        conn.execute("DELETE FROM pending_registrations")
        conn.execute("DELETE FROM accounts")
    return postgres_pool
