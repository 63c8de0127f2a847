"""
Integration tests for the PostgreSQL repositories.

Tests repository operations against a real PostgreSQL database.
Requires PostgreSQL to be running (via docker-compose).
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import (
    PostgresAccountRepository,
    PostgresPasswordResetRepository,
    PostgresPendingRegistrationRepository,
)
from src.domain.exceptions import AccountAlreadyExists
from src.domain.models import NewAccount, PasswordResetRequest, PendingRegistration

pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("clean_database")]

NOW = datetime.now(timezone.utc)


def pending(email: str = "alice@srmist.edu.in", otp: str = "123456", **overrides) -> PendingRegistration:
    fields = {
        "email": email,
        "display_name": "Alice",
        "institutional_id": "RA001",
        "password_hash": "$2b$10$hashedpasswordvalue",
        "otp": otp,
        "expires_at": NOW + timedelta(minutes=10),
    }
    return PendingRegistration(**{**fields, **overrides})


def new_account(email: str = "alice@srmist.edu.in") -> NewAccount:
    return NewAccount(
        email=email,
        display_name="Alice",
        institutional_id="RA001",
        password_hash="$2b$10$hashedpasswordvalue",
        handle=email.split("@")[0],
        created_at=NOW,
    )


@pytest.fixture
def pending_store(pool: ConnectionPool) -> PostgresPendingRegistrationRepository:
    return PostgresPendingRegistrationRepository(pool)


@pytest.fixture
def reset_store(pool: ConnectionPool) -> PostgresPasswordResetRepository:
    return PostgresPasswordResetRepository(pool)


@pytest.fixture
def accounts(pool: ConnectionPool) -> PostgresAccountRepository:
    return PostgresAccountRepository(pool)


class TestPendingRegistrations:
    """Tests for PostgresPendingRegistrationRepository."""

    def test_find_requires_matching_otp(self, pending_store: PostgresPendingRegistrationRepository) -> None:
        pending_store.upsert(pending())

        found = pending_store.find("alice@srmist.edu.in", "123456")

        assert found is not None
        assert found.display_name == "Alice"
        assert found.institutional_id == "RA001"
        assert pending_store.find("alice@srmist.edu.in", "654321") is None

    def test_upsert_replaces_previous_otp(self, pending_store: PostgresPendingRegistrationRepository, pool: ConnectionPool) -> None:
        pending_store.upsert(pending(otp="111111"))
        pending_store.upsert(pending(otp="222222", display_name="Alice B"))

        assert pending_store.find("alice@srmist.edu.in", "111111") is None
        assert pending_store.find("alice@srmist.edu.in", "222222").display_name == "Alice B"
        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT COUNT(*) FROM pending_registrations")
            assert cursor.fetchone()[0] == 1

    def test_delete(self, pending_store: PostgresPendingRegistrationRepository) -> None:
        pending_store.upsert(pending())

        pending_store.delete("alice@srmist.edu.in")

        assert pending_store.find("alice@srmist.edu.in", "123456") is None

    def test_purge_expired_removes_only_expired(self, pending_store: PostgresPendingRegistrationRepository) -> None:
        pending_store.upsert(pending("old@srmist.edu.in", expires_at=NOW - timedelta(seconds=1)))
        pending_store.upsert(pending("new@srmist.edu.in"))

        assert pending_store.purge_expired(NOW) == 1
        assert pending_store.find("new@srmist.edu.in", "123456") is not None


class TestPasswordResets:
    """Tests for PostgresPasswordResetRepository."""

    def test_upsert_find_delete(self, reset_store: PostgresPasswordResetRepository) -> None:
        reset_store.upsert(PasswordResetRequest("alice@srmist.edu.in", "111111", NOW + timedelta(minutes=10)))
        reset_store.upsert(PasswordResetRequest("alice@srmist.edu.in", "222222", NOW + timedelta(minutes=10)))

        assert reset_store.find("alice@srmist.edu.in", "111111") is None
        assert reset_store.find("alice@srmist.edu.in", "222222") is not None

        reset_store.delete("alice@srmist.edu.in")
        assert reset_store.find("alice@srmist.edu.in", "222222") is None

    def test_consume_is_single_use_and_code_bound(self, reset_store: PostgresPasswordResetRepository) -> None:
        reset_store.upsert(PasswordResetRequest("alice@srmist.edu.in", "111111", NOW + timedelta(minutes=10)))

        assert reset_store.consume("alice@srmist.edu.in", "999999") is None
        taken = reset_store.consume("alice@srmist.edu.in", "111111")
        assert taken is not None
        assert taken.otp == "111111"
        assert reset_store.consume("alice@srmist.edu.in", "111111") is None

    def test_purge_expired(self, reset_store: PostgresPasswordResetRepository) -> None:
        reset_store.upsert(PasswordResetRequest("alice@srmist.edu.in", "111111", NOW - timedelta(minutes=1)))

        assert reset_store.purge_expired(NOW) == 1


class TestAccounts:
    """Tests for PostgresAccountRepository."""

    def test_create_assigns_uuid_and_marks_verified(self, accounts: PostgresAccountRepository) -> None:
        account = accounts.create(new_account())

        assert len(account.id) == 36
        assert account.verified is True
        assert account.handle == "alice"
        assert accounts.find_by_email("alice@srmist.edu.in") == account
        assert accounts.find_by_id(account.id) == account

    def test_create_duplicate_raises(self, accounts: PostgresAccountRepository) -> None:
        accounts.create(new_account())

        with pytest.raises(AccountAlreadyExists):
            accounts.create(new_account())

    def test_find_by_malformed_id_is_none(self, accounts: PostgresAccountRepository) -> None:
        assert accounts.find_by_id("not-a-uuid") is None

    def test_update_password_hash(self, accounts: PostgresAccountRepository) -> None:
        accounts.create(new_account())

        assert accounts.update_password_hash("alice@srmist.edu.in", "$2b$10$newhash") is True
        assert accounts.find_by_email("alice@srmist.edu.in").password_hash == "$2b$10$newhash"
        assert accounts.update_password_hash("ghost@srmist.edu.in", "$2b$10$newhash") is False


class TestConcurrentAccountCreation:
    """The UNIQUE constraint decides concurrent inserts."""

    def test_exactly_one_concurrent_create_succeeds(self, pool: ConnectionPool) -> None:
        def attempt() -> bool:
            try:
                PostgresAccountRepository(pool).create(new_account("race@srmist.edu.in"))
            except AccountAlreadyExists:
                return False
            return True

        with ThreadPoolExecutor(max_workers=5) as executor:
            results = list(executor.map(lambda _: attempt(), range(5)))

        assert results.count(True) == 1
        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT COUNT(*) FROM accounts WHERE email = %s", ("race@srmist.edu.in",))
            assert cursor.fetchone()[0] == 1
