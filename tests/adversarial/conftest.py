"""
Shared fixtures for adversarial tests.

Every attack runs against both repository backends; the PostgreSQL
variant is skipped when no database is reachable.
"""

import pytest

from src.adapters.repository.memory import InMemoryAccountRepository
from src.adapters.repository.postgres import PostgresAccountRepository
from src.domain.ports import AccountRepository


@pytest.fixture(params=["memory", "postgres"])
def repository(request: pytest.FixtureRequest) -> AccountRepository:
    if request.param == "postgres":
        return PostgresAccountRepository(request.getfixturevalue("clean_postgres"))
    return InMemoryAccountRepository()
