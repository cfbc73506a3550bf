"""
PostgreSQL repository adapter - Implements AccountRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Concurrency Design - Per-Email Serialization:
---------------------------------------------
Every multi-step transition is a single statement or a single transaction,
so concurrent requests for the same email cannot interleave:

1. **replace_pending**: ``INSERT ... ON CONFLICT (email) DO UPDATE`` replaces
   any prior pending record atomically. Versions are drawn from a sequence,
   so a record deleted and created again never reuses an old version.

2. **refresh_otp**: one ``UPDATE ... RETURNING`` rewrites the OTP hash and
   expiry and bumps the version; no read-then-write window.

3. **promote_pending / commit_password_reset**: ``DELETE ... WHERE version = %s
   RETURNING`` acts as a compare-and-swap. The row lock taken by the DELETE
   makes a concurrent consumer wait and then find nothing, so exactly one
   caller gets to write the account. The account write happens in the same
   transaction and both are committed together or rolled back together.
"""

import logging
from datetime import datetime
from pathlib import Path

from psycopg_pool import ConnectionPool

from src.domain.ports import Account, CommitResult, PendingPurpose, PendingRegistration

logger = logging.getLogger(__name__)


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def get_account(self, email: str) -> Account | None:
        sql = """
            SELECT id, name, email, password_hash
            FROM accounts
            WHERE email = %s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()

        if row is None:
            return None
        return Account(id=str(row[0]), name=row[1], email=row[2], password_hash=row[3])

    def get_pending(self, email: str) -> PendingRegistration | None:
        sql = """
            SELECT email, purpose, name, password_hash, otp_hash, expires_at, version
            FROM pending_registrations
            WHERE email = %s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()

        if row is None:
            return None
        return PendingRegistration(
            email=row[0],
            purpose=PendingPurpose(row[1]),
            name=row[2],
            password_hash=row[3],
            otp_hash=row[4],
            expires_at=row[5],
            version=row[6],
        )

    def replace_pending(self, pending: PendingRegistration) -> PendingRegistration:
        """
        Atomically replace any pending record for the email.

        The email is the primary key, so at most one pending record exists
        per address. A replaced record gets a higher version, which makes any
        in-flight verification of the old record lose its conditional write.
        """
        sql = """
            INSERT INTO pending_registrations
                (email, purpose, name, password_hash, otp_hash, expires_at, version, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, nextval('pending_registration_version_seq'), NOW())
            ON CONFLICT (email) DO UPDATE
            SET purpose = EXCLUDED.purpose,
                name = EXCLUDED.name,
                password_hash = EXCLUDED.password_hash,
                otp_hash = EXCLUDED.otp_hash,
                expires_at = EXCLUDED.expires_at,
                version = nextval('pending_registration_version_seq'),
                created_at = NOW()
            RETURNING version
        """
        params = (
            pending.email,
            pending.purpose.value,
            pending.name,
            pending.password_hash,
            pending.otp_hash,
            pending.expires_at,
        )
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            version = cursor.fetchone()[0]
            conn.commit()

        return PendingRegistration(
            email=pending.email,
            purpose=pending.purpose,
            name=pending.name,
            password_hash=pending.password_hash,
            otp_hash=pending.otp_hash,
            expires_at=pending.expires_at,
            version=version,
        )

    def refresh_otp(
        self, email: str, purpose: PendingPurpose, otp_hash: str, expires_at: datetime
    ) -> bool:
        sql = """
            UPDATE pending_registrations
            SET otp_hash = %s, expires_at = %s,
                version = nextval('pending_registration_version_seq')
            WHERE email = %s AND purpose = %s
            RETURNING version
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (otp_hash, expires_at, email, purpose.value))
            row = cursor.fetchone()
            conn.commit()
        return row is not None

    def promote_pending(self, email: str, version: int) -> CommitResult:
        """
        Delete the pending signup and create the account in one transaction.

        Returns:
            SUCCESS when both writes committed, STALE when the pending record
            no longer carries ``version``, ACCOUNT_EXISTS when the email is
            already taken (nothing is written in that case)
        """
        # Conditional delete doubles as the row lock for this email
        consume_sql = """
            DELETE FROM pending_registrations
            WHERE email = %s AND purpose = %s AND version = %s
            RETURNING name, password_hash
        """

        insert_sql = """
            INSERT INTO accounts (name, email, password_hash)
            VALUES (%s, %s, %s)
            ON CONFLICT (email) DO NOTHING
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(consume_sql, (email, PendingPurpose.SIGNUP.value, version))
            row = cursor.fetchone()
            if row is None:
                conn.rollback()
                return CommitResult.STALE

            cursor.execute(insert_sql, (row[0], email, row[1]))
            if cursor.rowcount != 1:
                conn.rollback()
                return CommitResult.ACCOUNT_EXISTS

            conn.commit()
            return CommitResult.SUCCESS

    def commit_password_reset(self, email: str, version: int, password_hash: str) -> CommitResult:
        """
        Delete the pending reset and update the password in one transaction.

        Returns:
            SUCCESS when both writes committed, STALE when the pending record
            no longer carries ``version``, ACCOUNT_MISSING when there is no
            account to update (nothing is written in that case)
        """
        consume_sql = """
            DELETE FROM pending_registrations
            WHERE email = %s AND purpose = %s AND version = %s
            RETURNING email
        """

        update_sql = """
            UPDATE accounts
            SET password_hash = %s, updated_at = NOW()
            WHERE email = %s
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(consume_sql, (email, PendingPurpose.RESET.value, version))
            if cursor.fetchone() is None:
                conn.rollback()
                return CommitResult.STALE

            cursor.execute(update_sql, (password_hash, email))
            if cursor.rowcount != 1:
                conn.rollback()
                return CommitResult.ACCOUNT_MISSING

            conn.commit()
            return CommitResult.SUCCESS

    def purge_expired(self, now: datetime) -> int:
        sql = "DELETE FROM pending_registrations WHERE expires_at < %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (now,))
            deleted = cursor.rowcount
            conn.commit()
        return deleted

    def ping(self) -> None:
        with self._pool.connection() as conn:
            conn.execute("SELECT 1")


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)
                # Committed when the pool connection context exits

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
