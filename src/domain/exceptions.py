"""
Domain exceptions - Semantic error types for identity provisioning.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Each exception carries the ErrorKind it maps to at the service boundary.
"""

from .models import ErrorKind


class IdentityError(Exception):
    """Base class for identity domain errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(IdentityError):
    """A required field is missing or malformed."""

    kind = ErrorKind.VALIDATION
    default_message = "Please fill all the fields"


class DomainRejected(IdentityError):
    """Email address is outside the institutional domain."""

    kind = ErrorKind.DOMAIN_REJECTED
    default_message = "Only institutional email addresses are allowed"


class AccountAlreadyExists(IdentityError):
    """An account is already registered for this email."""

    kind = ErrorKind.CONFLICT
    default_message = "Email is already registered. Please log in."


class AccountNotFound(IdentityError):
    """No account exists for this email."""

    kind = ErrorKind.NOT_FOUND
    default_message = "No account found for this email"


class InvalidCredentials(IdentityError):
    """Password mismatch, or an invalid/expired session token."""

    kind = ErrorKind.UNAUTHORIZED
    default_message = "Incorrect password"


class InvalidOrExpiredOTP(IdentityError):
    """OTP absent, wrong, already consumed, or past its expiry."""

    kind = ErrorKind.INVALID_OTP
    default_message = "Invalid or expired OTP"
