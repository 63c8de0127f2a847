"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols through
structural subtyping; none of them inherit from the Protocol classes.
"""

from datetime import datetime
from typing import Protocol

from .models import Account, NewAccount, PasswordResetRequest, PendingRegistration


class PendingRegistrationRepository(Protocol):
    """Port interface for provisional signups."""

    def upsert(self, record: PendingRegistration) -> None:
        """Store the record, replacing any prior record for the same email."""
        ...

    def find(self, email: str, otp: str) -> PendingRegistration | None:
        """
        Look up a pending registration by exact (email, otp) match.

        A single lookup on both fields, so callers cannot tell which of the
        two failed to match. Expiry is not checked here.
        """
        ...

    def delete(self, email: str) -> None:
        ...

    def purge_expired(self, now: datetime) -> int:
        """Remove records whose expiry has passed. Returns the number removed."""
        ...


class PasswordResetRepository(Protocol):
    """Port interface for outstanding password reset OTPs."""

    def upsert(self, request: PasswordResetRequest) -> None:
        ...

    def find(self, email: str, otp: str) -> PasswordResetRequest | None:
        """Exact (email, otp) match, same semantics as PendingRegistrationRepository.find."""
        ...

    def delete(self, email: str) -> None:
        ...

    def consume(self, email: str, otp: str) -> PasswordResetRequest | None:
        """
        Atomically remove and return the request matching (email, otp).

        At most one caller can consume a given request, and a request that
        was replaced by a newer OTP is never removed by the stale code.
        Expired requests are returned too; the caller checks expiry.
        """
        ...

    def purge_expired(self, now: datetime) -> int:
        ...


class AccountRepository(Protocol):
    """Port interface for durable verified accounts."""

    def find_by_email(self, email: str) -> Account | None:
        ...

    def find_by_id(self, account_id: str) -> Account | None:
        ...

    def create(self, new_account: NewAccount) -> Account:
        """
        Create an account and assign its id.

        Uniqueness of the email must be enforced atomically by the store
        itself, never by a separate pre-check.

        Raises:
            AccountAlreadyExists: If an account already exists for the email
        """
        ...

    def update_password_hash(self, email: str, password_hash: str) -> bool:
        """Replace the password hash. Returns False if no account matched."""
        ...


class EmailSender(Protocol):
    """Port interface for OTP email delivery."""

    def send_otp(self, email: str, code: str, name: str = "") -> bool:
        """
        Deliver an OTP to an email address.

        A non-empty name marks a signup verification mail; an empty name
        marks a password reset mail.

        Returns:
            True if the transport accepted the message
        """
        ...


class PasswordHasher(Protocol):
    def hash(self, plaintext: str) -> str:
        ...

    def verify(self, plaintext: str, digest: str) -> bool:
        ...


class TokenIssuer(Protocol):
    def issue(self, account_id: str) -> str:
        ...

    def verify(self, token: str) -> str | None:
        """Return the account id the token was issued for, or None if invalid."""
        ...


class Clock(Protocol):
    def now(self) -> datetime:
        """Current time as a timezone-aware UTC datetime."""
        ...
