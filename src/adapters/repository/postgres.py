"""
PostgreSQL repository adapters - Implement the domain's store protocols.

This module provides the PostgreSQL implementations of the pending
registration, password reset and account ports using psycopg3 with raw SQL.

Atomicity Design:
-----------------
1. **Upserts**: pending registrations and reset requests are written with
   INSERT ... ON CONFLICT (email) DO UPDATE, so each email has at most one
   live record and a newer OTP always replaces the older one.

2. **Account creation**: INSERT ... ON CONFLICT (email) DO NOTHING RETURNING.
   The UNIQUE constraint on accounts.email decides the winner when two
   verifications of the same email race; the loser gets no row back and
   raises AccountAlreadyExists. There is no separate existence pre-check.

3. **OTP lookups**: a single SELECT matching email AND otp, so a miss does
   not reveal which of the two was wrong.
"""

import logging
from datetime import datetime
from pathlib import Path

from psycopg_pool import ConnectionPool

from src.domain.exceptions import AccountAlreadyExists
from src.domain.models import Account, NewAccount, PasswordResetRequest, PendingRegistration

logger = logging.getLogger(__name__)

_ACCOUNT_COLUMNS = (
    "id, email, display_name, institutional_id, password_hash, handle, created_at, verified"
)


def _account_from_row(row: tuple) -> Account:
    return Account(
        id=str(row[0]),
        email=row[1],
        display_name=row[2],
        institutional_id=row[3],
        password_hash=row[4],
        handle=row[5],
        created_at=row[6],
        verified=row[7],
    )


class PostgresPendingRegistrationRepository:
    """
    Implements PendingRegistrationRepository protocol via psycopg3.

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

    def upsert(self, record: PendingRegistration) -> None:
        """
        Store a pending registration, replacing any earlier one for the email.

        The replaced record's OTP stops matching immediately.
        """
        sql = """
            INSERT INTO pending_registrations
                (email, display_name, institutional_id, password_hash, otp, expires_at, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, NOW())
            ON CONFLICT (email) DO UPDATE
            SET display_name = EXCLUDED.display_name,
                institutional_id = EXCLUDED.institutional_id,
                password_hash = EXCLUDED.password_hash,
                otp = EXCLUDED.otp,
                expires_at = EXCLUDED.expires_at,
                created_at = NOW()
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (
                    record.email,
                    record.display_name,
                    record.institutional_id,
                    record.password_hash,
                    record.otp,
                    record.expires_at,
                ),
            )
            conn.commit()

    def find(self, email: str, otp: str) -> PendingRegistration | None:
        sql = """
            SELECT email, display_name, institutional_id, password_hash, otp, expires_at
            FROM pending_registrations
            WHERE email = %s AND otp = %s
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email, otp))
            row = cursor.fetchone()

        if row is None:
            return None
        return PendingRegistration(
            email=row[0],
            display_name=row[1],
            institutional_id=row[2],
            password_hash=row[3],
            otp=row[4],
            expires_at=row[5],
        )

    def delete(self, email: str) -> None:
        with self._pool.connection() as conn:
            conn.execute("DELETE FROM pending_registrations WHERE email = %s", (email,))
            conn.commit()

    def purge_expired(self, now: datetime) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM pending_registrations WHERE expires_at <= %s", (now,))
            conn.commit()
            return cursor.rowcount


class PostgresPasswordResetRepository:
    """Implements PasswordResetRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def upsert(self, request: PasswordResetRequest) -> None:
        sql = """
            INSERT INTO password_reset_requests (email, otp, expires_at, created_at)
            VALUES (%s, %s, %s, NOW())
            ON CONFLICT (email) DO UPDATE
            SET otp = EXCLUDED.otp,
                expires_at = EXCLUDED.expires_at,
                created_at = NOW()
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (request.email, request.otp, request.expires_at))
            conn.commit()

    def find(self, email: str, otp: str) -> PasswordResetRequest | None:
        sql = """
            SELECT email, otp, expires_at
            FROM password_reset_requests
            WHERE email = %s AND otp = %s
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email, otp))
            row = cursor.fetchone()

        if row is None:
            return None
        return PasswordResetRequest(email=row[0], otp=row[1], expires_at=row[2])

    def delete(self, email: str) -> None:
        with self._pool.connection() as conn:
            conn.execute("DELETE FROM password_reset_requests WHERE email = %s", (email,))
            conn.commit()

    def consume(self, email: str, otp: str) -> PasswordResetRequest | None:
        """Delete and return the matching request in one statement."""
        sql = """
            DELETE FROM password_reset_requests
            WHERE email = %s AND otp = %s
            RETURNING email, otp, expires_at
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email, otp))
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            return None
        return PasswordResetRequest(email=row[0], otp=row[1], expires_at=row[2])

    def purge_expired(self, now: datetime) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM password_reset_requests WHERE expires_at <= %s", (now,))
            conn.commit()
            return cursor.rowcount


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Account ids are UUIDs assigned by the database (gen_random_uuid()).
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def find_by_email(self, email: str) -> Account | None:
        sql = f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE email = %s"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()

        return _account_from_row(row) if row is not None else None

    def find_by_id(self, account_id: str) -> Account | None:
        # Tokens carry arbitrary strings; compare as text so a malformed id
        # is a miss instead of a cast error.
        sql = f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE id::text = %s"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (account_id,))
            row = cursor.fetchone()

        return _account_from_row(row) if row is not None else None

    def create(self, new_account: NewAccount) -> Account:
        """
        Insert a verified account.

        Raises:
            AccountAlreadyExists: If the email is already taken (including by
                a concurrent insert that committed first)
        """
        sql = f"""
            INSERT INTO accounts
                (email, display_name, institutional_id, password_hash, handle, verified, created_at)
            VALUES (%s, %s, %s, %s, %s, TRUE, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING {_ACCOUNT_COLUMNS}
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (
                    new_account.email,
                    new_account.display_name,
                    new_account.institutional_id,
                    new_account.password_hash,
                    new_account.handle,
                    new_account.created_at,
                ),
            )
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            raise AccountAlreadyExists()
        return _account_from_row(row)

    def update_password_hash(self, email: str, password_hash: str) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "UPDATE accounts SET password_hash = %s WHERE email = %s",
                (password_hash, email),
            )
            conn.commit()
            return cursor.rowcount == 1


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
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
