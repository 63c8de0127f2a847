"""
Unit tests for the in-memory repository adapters.

Tests verify the store contracts shared with the PostgreSQL adapters:
upsert replaces, find matches email AND otp, create rejects duplicates.
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.adapters.repository.memory import (
    InMemoryAccountRepository,
    InMemoryPasswordResetRepository,
    InMemoryPendingRegistrationRepository,
)
from src.domain.exceptions import AccountAlreadyExists
from src.domain.models import NewAccount, PasswordResetRequest, PendingRegistration

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def pending(email: str = "a@srmist.edu.in", otp: str = "123456", minutes: int = 10) -> PendingRegistration:
    return PendingRegistration(
        email=email,
        display_name="A",
        institutional_id="RA001",
        password_hash="$2b$04$hash",
        otp=otp,
        expires_at=NOW + timedelta(minutes=minutes),
    )


def new_account(email: str = "a@srmist.edu.in") -> NewAccount:
    return NewAccount(
        email=email,
        display_name="A",
        institutional_id="RA001",
        password_hash="$2b$04$hash",
        handle=email.split("@")[0],
        created_at=NOW,
    )


class TestPendingRegistrations:
    def test_find_requires_email_and_otp(self) -> None:
        repo = InMemoryPendingRegistrationRepository()
        repo.upsert(pending())

        assert repo.find("a@srmist.edu.in", "123456") is not None
        assert repo.find("a@srmist.edu.in", "654321") is None
        assert repo.find("b@srmist.edu.in", "123456") is None

    def test_upsert_replaces_prior_record(self) -> None:
        repo = InMemoryPendingRegistrationRepository()
        repo.upsert(pending(otp="111111"))
        repo.upsert(pending(otp="222222"))

        assert repo.find("a@srmist.edu.in", "111111") is None
        assert repo.find("a@srmist.edu.in", "222222") is not None
        assert repo.count() == 1

    def test_find_does_not_filter_expired(self) -> None:
        """Expiry is the service's decision; the store returns what it holds."""
        repo = InMemoryPendingRegistrationRepository()
        repo.upsert(pending(minutes=-1))

        record = repo.find("a@srmist.edu.in", "123456")

        assert record is not None
        assert record.is_expired(NOW)

    def test_delete(self) -> None:
        repo = InMemoryPendingRegistrationRepository()
        repo.upsert(pending())
        repo.delete("a@srmist.edu.in")
        repo.delete("a@srmist.edu.in")

        assert repo.count() == 0

    def test_purge_expired(self) -> None:
        repo = InMemoryPendingRegistrationRepository()
        repo.upsert(pending("old@srmist.edu.in", minutes=-5))
        repo.upsert(pending("new@srmist.edu.in", minutes=5))

        assert repo.purge_expired(NOW) == 1
        assert repo.find("new@srmist.edu.in", "123456") is not None


class TestPasswordResets:
    def test_upsert_and_find(self) -> None:
        repo = InMemoryPasswordResetRepository()
        repo.upsert(PasswordResetRequest("a@srmist.edu.in", "111111", NOW))
        repo.upsert(PasswordResetRequest("a@srmist.edu.in", "222222", NOW))

        assert repo.find("a@srmist.edu.in", "111111") is None
        assert repo.find("a@srmist.edu.in", "222222") is not None
        assert repo.count() == 1

    def test_delete_and_purge(self) -> None:
        repo = InMemoryPasswordResetRepository()
        repo.upsert(PasswordResetRequest("a@srmist.edu.in", "111111", NOW - timedelta(seconds=1)))
        repo.upsert(PasswordResetRequest("b@srmist.edu.in", "111111", NOW + timedelta(minutes=1)))

        assert repo.purge_expired(NOW) == 1
        repo.delete("b@srmist.edu.in")
        assert repo.count() == 0

    def test_consume_takes_matching_request_once(self) -> None:
        repo = InMemoryPasswordResetRepository()
        repo.upsert(PasswordResetRequest("a@srmist.edu.in", "111111", NOW))

        taken = repo.consume("a@srmist.edu.in", "111111")

        assert taken == PasswordResetRequest("a@srmist.edu.in", "111111", NOW)
        assert repo.consume("a@srmist.edu.in", "111111") is None
        assert repo.count() == 0

    def test_consume_with_stale_code_keeps_newer_request(self) -> None:
        repo = InMemoryPasswordResetRepository()
        repo.upsert(PasswordResetRequest("a@srmist.edu.in", "111111", NOW))
        repo.upsert(PasswordResetRequest("a@srmist.edu.in", "222222", NOW))

        assert repo.consume("a@srmist.edu.in", "111111") is None
        assert repo.find("a@srmist.edu.in", "222222") is not None


class TestAccounts:
    def test_create_assigns_id(self) -> None:
        repo = InMemoryAccountRepository()

        account = repo.create(new_account())

        assert account.id
        assert account.verified is True
        assert repo.find_by_email("a@srmist.edu.in") == account
        assert repo.find_by_id(account.id) == account

    def test_create_duplicate_email_raises(self) -> None:
        repo = InMemoryAccountRepository()
        repo.create(new_account())

        with pytest.raises(AccountAlreadyExists):
            repo.create(new_account())
        assert repo.count() == 1

    def test_ids_are_unique(self) -> None:
        repo = InMemoryAccountRepository()

        first = repo.create(new_account("a@srmist.edu.in"))
        second = repo.create(new_account("b@srmist.edu.in"))

        assert first.id != second.id

    def test_update_password_hash(self) -> None:
        repo = InMemoryAccountRepository()
        created = repo.create(new_account())

        assert repo.update_password_hash("a@srmist.edu.in", "$2b$04$new") is True
        updated = repo.find_by_email("a@srmist.edu.in")
        assert updated.password_hash == "$2b$04$new"
        assert updated.id == created.id

    def test_update_unknown_email_returns_false(self) -> None:
        assert InMemoryAccountRepository().update_password_hash("x@srmist.edu.in", "h") is False

    def test_find_missing(self) -> None:
        repo = InMemoryAccountRepository()

        assert repo.find_by_email("x@srmist.edu.in") is None
        assert repo.find_by_id("missing") is None
