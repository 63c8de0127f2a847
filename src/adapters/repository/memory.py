"""
In-memory repository adapters - Implement the domain's store protocols.

Used for local development (STORAGE_BACKEND=memory) and as fast test
doubles. Each store serializes its operations behind a single lock, which
gives the same per-email atomicity the PostgreSQL adapters get from
ON CONFLICT and UNIQUE constraints. State is per-process only.
"""

import secrets
import threading
import uuid
from dataclasses import replace
from datetime import datetime

from src.domain.exceptions import AccountAlreadyExists
from src.domain.models import Account, NewAccount, PasswordResetRequest, PendingRegistration


def _otp_matches(stored: str, presented: str) -> bool:
    return secrets.compare_digest(stored.encode(), presented.encode())


class InMemoryPendingRegistrationRepository:
    """Implements PendingRegistrationRepository protocol with a dict keyed by email."""

    def __init__(self) -> None:
        self._records: dict[str, PendingRegistration] = {}
        self._lock = threading.Lock()

    def upsert(self, record: PendingRegistration) -> None:
        with self._lock:
            self._records[record.email] = record

    def find(self, email: str, otp: str) -> PendingRegistration | None:
        with self._lock:
            record = self._records.get(email)
        if record is None or not _otp_matches(record.otp, otp):
            return None
        return record

    def delete(self, email: str) -> None:
        with self._lock:
            self._records.pop(email, None)

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [email for email, r in self._records.items() if r.is_expired(now)]
            for email in expired:
                del self._records[email]
        return len(expired)

    def count(self) -> int:
        with self._lock:
            return len(self._records)


class InMemoryPasswordResetRepository:
    """Implements PasswordResetRepository protocol with a dict keyed by email."""

    def __init__(self) -> None:
        self._requests: dict[str, PasswordResetRequest] = {}
        self._lock = threading.Lock()

    def upsert(self, request: PasswordResetRequest) -> None:
        with self._lock:
            self._requests[request.email] = request

    def find(self, email: str, otp: str) -> PasswordResetRequest | None:
        with self._lock:
            request = self._requests.get(email)
        if request is None or not _otp_matches(request.otp, otp):
            return None
        return request

    def delete(self, email: str) -> None:
        with self._lock:
            self._requests.pop(email, None)

    def consume(self, email: str, otp: str) -> PasswordResetRequest | None:
        with self._lock:
            request = self._requests.get(email)
            if request is None or not _otp_matches(request.otp, otp):
                return None
            del self._requests[email]
        return request

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [email for email, r in self._requests.items() if r.is_expired(now)]
            for email in expired:
                del self._requests[email]
        return len(expired)

    def count(self) -> int:
        with self._lock:
            return len(self._requests)


class InMemoryAccountRepository:
    """
    Implements AccountRepository protocol.

    create() checks and inserts under one lock acquisition, so concurrent
    verifications of the same email cannot both succeed.
    """

    def __init__(self) -> None:
        self._by_email: dict[str, Account] = {}
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> Account | None:
        with self._lock:
            return self._by_email.get(email)

    def find_by_id(self, account_id: str) -> Account | None:
        with self._lock:
            return next((a for a in self._by_email.values() if a.id == account_id), None)

    def create(self, new_account: NewAccount) -> Account:
        with self._lock:
            if new_account.email in self._by_email:
                raise AccountAlreadyExists()
            account = Account(
                id=str(uuid.uuid4()),
                email=new_account.email,
                display_name=new_account.display_name,
                institutional_id=new_account.institutional_id,
                password_hash=new_account.password_hash,
                handle=new_account.handle,
                created_at=new_account.created_at,
            )
            self._by_email[account.email] = account
            return account

    def update_password_hash(self, email: str, password_hash: str) -> bool:
        with self._lock:
            account = self._by_email.get(email)
            if account is None:
                return False
            self._by_email[email] = replace(account, password_hash=password_hash)
            return True

    def count(self) -> int:
        with self._lock:
            return len(self._by_email)
