"""
Domain models - Records held by the stores and results returned by the service.

Records are immutable dataclasses; stores replace them wholesale rather than
mutating fields in place.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ErrorKind(str, Enum):
    """Tag carried by every failed provisioning operation."""

    VALIDATION = "validation_error"
    DOMAIN_REJECTED = "domain_rejected"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    INVALID_OTP = "invalid_or_expired_otp"
    INTERNAL = "internal"


@dataclass(frozen=True)
class PendingRegistration:
    """Provisional signup awaiting OTP confirmation."""

    email: str
    display_name: str
    institutional_id: str
    password_hash: str
    otp: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class PasswordResetRequest:
    """Outstanding password reset OTP for an account email."""

    email: str
    otp: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class NewAccount:
    """Fields supplied when promoting a pending registration."""

    email: str
    display_name: str
    institutional_id: str
    password_hash: str
    handle: str
    created_at: datetime


@dataclass(frozen=True)
class Account:
    """Durable verified identity. The id is assigned by the store."""

    id: str
    email: str
    display_name: str
    institutional_id: str
    password_hash: str
    handle: str
    created_at: datetime
    verified: bool = True


@dataclass(frozen=True)
class Failure:
    """Tagged error returned instead of raising past the service boundary."""

    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class SignupAccepted:
    email: str
    expires_at: datetime
    email_sent: bool


@dataclass(frozen=True)
class AuthSession:
    """Token plus the identity it was issued for."""

    account_id: str
    email: str
    display_name: str
    handle: str
    token: str


@dataclass(frozen=True)
class PasswordResetRequested:
    email: str
    expires_at: datetime
    email_sent: bool


@dataclass(frozen=True)
class PasswordResetCompleted:
    email: str
