"""
Identity provisioning service - signup, verification, login and reset.

This module contains the core business logic for institution-restricted
identities. Each email moves through its own state machine; the state is
implied by which records exist for it rather than stored as a column.

Provisioning State Machine
==========================

States:
- UNREGISTERED: No records for the email
- PENDING_VERIFICATION: A PendingRegistration holds the hashed password and OTP
- VERIFIED: An Account exists
- AWAITING_RESET: An Account exists and a PasswordResetRequest holds a reset OTP

Transitions:
    UNREGISTERED         -> PENDING_VERIFICATION  (signup)
    PENDING_VERIFICATION -> PENDING_VERIFICATION  (repeat signup replaces the OTP)
    PENDING_VERIFICATION -> VERIFIED              (verify_otp)
    VERIFIED             -> AWAITING_RESET        (forgot_password)
    AWAITING_RESET       -> AWAITING_RESET        (repeat forgot_password replaces the OTP)
    AWAITING_RESET       -> VERIFIED              (reset_password)

A PendingRegistration and a PasswordResetRequest have independent lifecycles;
each store holds at most one live record per email. Expired OTPs never match.

Error contract: every public method returns either a success result or a
Failure tagged with an ErrorKind. Domain exceptions are converted at the
boundary; anything else (storage, hashing, signing) is logged and reported
as ErrorKind.INTERNAL.

Note: a repeat signup or forgot-password silently replaces the earlier OTP.
Anyone who knows an address can keep invalidating its outstanding codes.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import TypeVar

from .credentials import MAX_PASSWORD_BYTES, OtpGenerator
from .exceptions import (
    AccountAlreadyExists,
    AccountNotFound,
    DomainRejected,
    IdentityError,
    InvalidCredentials,
    InvalidOrExpiredOTP,
    ValidationError,
)
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
    PasswordHasher,
    PasswordResetRepository,
    PendingRegistrationRepository,
    TokenIssuer,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class IdentityService:
    """
    Domain service orchestrating the provisioning state machine.

    All collaborators are injected so tests can substitute stores, a frozen
    clock and a seeded OTP generator.
    """

    pending_registrations: PendingRegistrationRepository
    password_resets: PasswordResetRepository
    accounts: AccountRepository
    hasher: PasswordHasher
    tokens: TokenIssuer
    otp_generator: OtpGenerator
    notifier: OtpNotifier
    clock: Clock
    institutional_domain: str
    otp_ttl_seconds: int = 600

    def signup(
        self, name: str, email: str, password: str, institutional_id: str
    ) -> SignupAccepted | Failure:
        """
        Start a registration for an institutional email address.

        Replaces any earlier pending registration for the email and sends
        a fresh OTP. A failed email send is reported in the result but does
        not undo the pending record.

        Args:
            name: Display name
            email: Institutional email (will be normalized)
            password: Plaintext password (will be hashed)
            institutional_id: Registration number issued by the institution

        Returns:
            SignupAccepted, or Failure with VALIDATION, DOMAIN_REJECTED,
            CONFLICT or INTERNAL
        """
        return self._guard("signup", lambda: self._signup(name, email, password, institutional_id))

    def verify_otp(self, email: str, otp: str) -> AuthSession | Failure:
        """
        Promote a pending registration to an account.

        The account store's uniqueness guarantee makes concurrent calls for
        the same record create at most one account; losers get CONFLICT or
        INVALID_OTP.

        Returns:
            AuthSession for the new account, or Failure with VALIDATION,
            INVALID_OTP, CONFLICT or INTERNAL
        """
        return self._guard("verify_otp", lambda: self._verify_otp(email, otp))

    def login(self, email: str, password: str) -> AuthSession | Failure:
        """
        Returns:
            AuthSession, or Failure with VALIDATION, NOT_FOUND, UNAUTHORIZED
            or INTERNAL
        """
        return self._guard("login", lambda: self._login(email, password))

    def forgot_password(self, email: str) -> PasswordResetRequested | Failure:
        """
        Issue a password reset OTP for an existing account.

        Returns:
            PasswordResetRequested, or Failure with VALIDATION, NOT_FOUND
            or INTERNAL
        """
        return self._guard("forgot_password", lambda: self._forgot_password(email))

    def reset_password(
        self, email: str, otp: str, new_password: str
    ) -> PasswordResetCompleted | Failure:
        """
        Returns:
            PasswordResetCompleted, or Failure with VALIDATION, INVALID_OTP,
            NOT_FOUND or INTERNAL
        """
        return self._guard("reset_password", lambda: self._reset_password(email, otp, new_password))

    def authenticate(self, token: str) -> Account | Failure:
        """Resolve a session token to its account."""
        return self._guard("authenticate", lambda: self._authenticate(token))

    def purge_expired(self) -> tuple[int, int]:
        """
        Remove pending registrations and reset requests past their expiry.

        Housekeeping only: expired records never match anyway.

        Returns:
            (pending registrations removed, reset requests removed)
        """
        now = self.clock.now()
        pending = self.pending_registrations.purge_expired(now)
        resets = self.password_resets.purge_expired(now)
        if pending or resets:
            logger.info("Purged %d expired registrations and %d expired resets", pending, resets)
        return pending, resets

    def _signup(
        self, name: str, email: str, password: str, institutional_id: str
    ) -> SignupAccepted:
        name = (name or "").strip()
        institutional_id = (institutional_id or "").strip()
        normalized_email = self._normalize_email(email)
        self._require(name, normalized_email, password, institutional_id)
        self._check_password_length(password)

        if not normalized_email.endswith(self._domain_suffix):
            raise DomainRejected()
        if normalized_email == self._domain_suffix:
            raise ValidationError("Email address is missing its local part")

        if self.accounts.find_by_email(normalized_email) is not None:
            raise AccountAlreadyExists()

        password_hash = self.hasher.hash(password)
        otp = self.otp_generator.generate()
        expires_at = self.clock.now() + timedelta(seconds=self.otp_ttl_seconds)

        self.pending_registrations.upsert(
            PendingRegistration(
                email=normalized_email,
                display_name=name,
                institutional_id=institutional_id,
                password_hash=password_hash,
                otp=otp,
                expires_at=expires_at,
            )
        )
        logger.info("Pending registration stored for %s", normalized_email)

        email_sent = self.notifier.dispatch(normalized_email, otp, name)
        return SignupAccepted(email=normalized_email, expires_at=expires_at, email_sent=email_sent)

    def _verify_otp(self, email: str, otp: str) -> AuthSession:
        normalized_email = self._normalize_email(email)
        otp = (otp or "").strip()
        self._require(normalized_email, otp)

        record = self.pending_registrations.find(normalized_email, otp)
        if record is None or record.is_expired(self.clock.now()):
            raise InvalidOrExpiredOTP()

        account = self.accounts.create(
            NewAccount(
                email=record.email,
                display_name=record.display_name,
                institutional_id=record.institutional_id,
                password_hash=record.password_hash,
                handle=self._handle_for(record.email),
                created_at=self.clock.now(),
            )
        )
        self.pending_registrations.delete(record.email)
        logger.info("Account %s created for %s", account.id, account.email)

        return self._session_for(account)

    def _login(self, email: str, password: str) -> AuthSession:
        normalized_email = self._normalize_email(email)
        self._require(normalized_email, password)

        account = self.accounts.find_by_email(normalized_email)
        if account is None:
            raise AccountNotFound()
        if not self.hasher.verify(password, account.password_hash):
            raise InvalidCredentials()

        return self._session_for(account)

    def _forgot_password(self, email: str) -> PasswordResetRequested:
        normalized_email = self._normalize_email(email)
        self._require(normalized_email)

        if self.accounts.find_by_email(normalized_email) is None:
            raise AccountNotFound("User not found")

        otp = self.otp_generator.generate()
        expires_at = self.clock.now() + timedelta(seconds=self.otp_ttl_seconds)
        self.password_resets.upsert(
            PasswordResetRequest(email=normalized_email, otp=otp, expires_at=expires_at)
        )
        logger.info("Password reset requested for %s", normalized_email)

        email_sent = self.notifier.dispatch(normalized_email, otp)
        return PasswordResetRequested(
            email=normalized_email, expires_at=expires_at, email_sent=email_sent
        )

    def _reset_password(self, email: str, otp: str, new_password: str) -> PasswordResetCompleted:
        normalized_email = self._normalize_email(email)
        otp = (otp or "").strip()
        self._require(normalized_email, otp, new_password)
        self._check_password_length(new_password)

        # Consumed before hashing: concurrent resets with one code race on
        # the store, and a newer code issued meanwhile is left untouched.
        request = self.password_resets.consume(normalized_email, otp)
        if request is None or request.is_expired(self.clock.now()):
            raise InvalidOrExpiredOTP()

        password_hash = self.hasher.hash(new_password)
        if not self.accounts.update_password_hash(normalized_email, password_hash):
            raise AccountNotFound("User not found")
        logger.info("Password reset completed for %s", normalized_email)

        return PasswordResetCompleted(email=normalized_email)

    def _authenticate(self, token: str) -> Account:
        account_id = self.tokens.verify(token or "")
        if account_id is None:
            raise InvalidCredentials("Invalid or expired token")
        account = self.accounts.find_by_id(account_id)
        if account is None:
            raise AccountNotFound()
        return account

    def _session_for(self, account: Account) -> AuthSession:
        return AuthSession(
            account_id=account.id,
            email=account.email,
            display_name=account.display_name,
            handle=account.handle,
            token=self.tokens.issue(account.id),
        )

    def _guard(self, operation: str, fn: Callable[[], T]) -> T | Failure:
        try:
            return fn()
        except IdentityError as e:
            logger.info("%s rejected: %s (%s)", operation, e.kind.value, e.message)
            return Failure(kind=e.kind, message=e.message)
        except Exception:
            logger.exception("%s failed with an internal error", operation)
            return Failure(kind=ErrorKind.INTERNAL, message=f"Server error during {operation}")

    @property
    def _domain_suffix(self) -> str:
        return "@" + self.institutional_domain

    def _handle_for(self, email: str) -> str:
        """Handle is the email with the institutional domain suffix removed."""
        return email.removesuffix(self._domain_suffix)

    @staticmethod
    def _require(*values: str) -> None:
        if not all(values):
            raise ValidationError()

    @staticmethod
    def _check_password_length(password: str) -> None:
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    @staticmethod
    def _normalize_email(email: str) -> str:
        """
        Normalize email address for consistent storage and lookup.

        Applies: strip whitespace + lowercase
        """
        return (email or "").strip().lower()
