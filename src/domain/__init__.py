"""
Domain layer - Identity provisioning business logic.

This package contains the provisioning state machine (signup, OTP
verification, login, password reset) and the port interfaces it needs from
infrastructure. Adapters live in src.adapters; the HTTP surface in src.api.
"""

from .clock import SystemClock
from .credentials import BcryptPasswordHasher, OtpGenerator
from .exceptions import (
    AccountAlreadyExists,
    AccountNotFound,
    DomainRejected,
    IdentityError,
    InvalidCredentials,
    InvalidOrExpiredOTP,
    ValidationError,
)
from .identity import IdentityService
from .models import (
    Account,
    AuthSession,
    ErrorKind,
    Failure,
    NewAccount,
    PasswordResetCompleted,
    PasswordResetRequest,
    PasswordResetRequested,
    PendingRegistration,
    SignupAccepted,
)
from .notifications import OtpNotifier
from .ports import (
    AccountRepository,
    Clock,
    EmailSender,
    PasswordHasher,
    PasswordResetRepository,
    PendingRegistrationRepository,
    TokenIssuer,
)
from .tokens import JwtTokenIssuer

__all__ = [
    "Account",
    "AccountAlreadyExists",
    "AccountNotFound",
    "AccountRepository",
    "AuthSession",
    "BcryptPasswordHasher",
    "Clock",
    "DomainRejected",
    "EmailSender",
    "ErrorKind",
    "Failure",
    "IdentityError",
    "IdentityService",
    "InvalidCredentials",
    "InvalidOrExpiredOTP",
    "JwtTokenIssuer",
    "NewAccount",
    "OtpGenerator",
    "OtpNotifier",
    "PasswordHasher",
    "PasswordResetCompleted",
    "PasswordResetRepository",
    "PasswordResetRequest",
    "PasswordResetRequested",
    "PendingRegistration",
    "PendingRegistrationRepository",
    "SignupAccepted",
    "SystemClock",
    "TokenIssuer",
    "ValidationError",
]
