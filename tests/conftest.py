"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A frozen, advanceable clock
- In-memory stores and a recording email sender
- A fully wired IdentityService with a seeded OTP source and cheap bcrypt
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from src.adapters.repository.memory import (
    InMemoryAccountRepository,
    InMemoryPasswordResetRepository,
    InMemoryPendingRegistrationRepository,
)
from src.domain.credentials import BcryptPasswordHasher, OtpGenerator
from src.domain.identity import IdentityService
from src.domain.notifications import OtpNotifier
from src.domain.tokens import JwtTokenIssuer

DOMAIN = "srmist.edu.in"
TEST_SECRET = "test-secret-key-with-at-least-32-bytes"


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> None:
        self._now += timedelta(**kwargs)


class RecordingEmailSender:
    """EmailSender double that records every OTP it is asked to send."""

    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.sent: list[tuple[str, str, str]] = []

    def send_otp(self, email: str, code: str, name: str = "") -> bool:
        self.sent.append((email, code, name))
        return self.accept

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def pending_repo() -> InMemoryPendingRegistrationRepository:
    return InMemoryPendingRegistrationRepository()


@pytest.fixture
def reset_repo() -> InMemoryPasswordResetRepository:
    return InMemoryPasswordResetRepository()


@pytest.fixture
def account_repo() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def hasher() -> BcryptPasswordHasher:
    """bcrypt at the minimum cost factor to keep tests fast."""
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def token_issuer(clock: FrozenClock) -> JwtTokenIssuer:
    return JwtTokenIssuer(secret_key=TEST_SECRET, clock=clock)


@pytest.fixture
def service(
    pending_repo: InMemoryPendingRegistrationRepository,
    reset_repo: InMemoryPasswordResetRepository,
    account_repo: InMemoryAccountRepository,
    hasher: BcryptPasswordHasher,
    token_issuer: JwtTokenIssuer,
    email_sender: RecordingEmailSender,
    clock: FrozenClock,
) -> IdentityService:
    return IdentityService(
        pending_registrations=pending_repo,
        password_resets=reset_repo,
        accounts=account_repo,
        hasher=hasher,
        tokens=token_issuer,
        otp_generator=OtpGenerator(rng=random.Random(1234)),
        notifier=OtpNotifier(email_sender),
        clock=clock,
        institutional_domain=DOMAIN,
        otp_ttl_seconds=600,
    )
