"""
FastAPI dependencies - Dependency injection factories.

This module wires domain services and infrastructure adapters from
settings, and provides Depends() factories for injecting them into routes.
"""

from concurrent.futures import Executor

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from src.adapters.repository.memory import (
    InMemoryAccountRepository,
    InMemoryPasswordResetRepository,
    InMemoryPendingRegistrationRepository,
)
from src.adapters.repository.postgres import (
    PostgresAccountRepository,
    PostgresPasswordResetRepository,
    PostgresPendingRegistrationRepository,
)
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.mailjet import MailjetEmailSender
from src.config.settings import Settings
from src.domain.clock import SystemClock
from src.domain.credentials import BcryptPasswordHasher, OtpGenerator
from src.domain.identity import IdentityService
from src.domain.notifications import OtpNotifier
from src.domain.ports import EmailSender
from src.domain.tokens import JwtTokenIssuer


def build_email_sender(settings: Settings) -> ConsoleEmailSender | MailjetEmailSender:
    """
    Select the OTP transport named by EMAIL_BACKEND.

    The caller owns the returned sender and must close() it on shutdown.
    """
    if settings.email_backend == "mailjet":
        return MailjetEmailSender(
            api_key=settings.mailjet_api_key,
            api_secret=settings.mailjet_api_secret,
            sender_email=settings.mailjet_sender_email,
            sender_name=settings.mailjet_sender_name,
            ttl_minutes=settings.otp_ttl_seconds // 60,
            timeout=settings.notify_timeout_seconds,
        )
    return ConsoleEmailSender(ttl_minutes=settings.otp_ttl_seconds // 60)


def build_identity_service(
    settings: Settings,
    pool: ConnectionPool | None = None,
    hash_executor: Executor | None = None,
    notify_executor: Executor | None = None,
    email_sender: EmailSender | None = None,
) -> IdentityService:
    """
    Create the identity service with all collaborators wired from settings.

    Args:
        settings: Application settings
        pool: Connection pool, required when STORAGE_BACKEND=postgres
        hash_executor: Worker pool reserved for bcrypt
        notify_executor: Worker pool for OTP mail delivery
        email_sender: Overrides the transport selected by EMAIL_BACKEND
    """
    if settings.storage_backend == "postgres":
        if pool is None:
            raise ValueError("A connection pool is required for the postgres storage backend")
        pending = PostgresPendingRegistrationRepository(pool)
        resets = PostgresPasswordResetRepository(pool)
        accounts = PostgresAccountRepository(pool)
    else:
        pending = InMemoryPendingRegistrationRepository()
        resets = InMemoryPasswordResetRepository()
        accounts = InMemoryAccountRepository()

    clock = SystemClock()
    notifier = OtpNotifier(
        email_sender=email_sender or build_email_sender(settings),
        executor=notify_executor,
        timeout_seconds=settings.notify_timeout_seconds,
    )
    return IdentityService(
        pending_registrations=pending,
        password_resets=resets,
        accounts=accounts,
        hasher=BcryptPasswordHasher(rounds=settings.bcrypt_cost, executor=hash_executor),
        tokens=JwtTokenIssuer(
            secret_key=settings.jwt_secret_key,
            clock=clock,
            algorithm=settings.jwt_algorithm,
            ttl_seconds=settings.token_ttl_seconds,
        ),
        otp_generator=OtpGenerator(length=settings.otp_length),
        notifier=notifier,
        clock=clock,
        institutional_domain=settings.institutional_domain,
        otp_ttl_seconds=settings.otp_ttl_seconds,
    )


def build_purge_scheduler(
    service: IdentityService, interval_seconds: int
) -> BackgroundScheduler | None:
    """
    Schedule purge_expired every interval_seconds on a background thread.

    Returns None when the interval is 0 or negative. The scheduler is
    returned unstarted.
    """
    if interval_seconds <= 0:
        return None
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        service.purge_expired,
        "interval",
        seconds=interval_seconds,
        id="purge_expired",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def get_identity_service(request: Request) -> IdentityService:
    """
    Get the identity service from app state.

    The service is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.identity_service


# Bearer token security scheme for OpenAPI documentation
http_bearer = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> str:
    """
    Extract the session token from the Authorization header.

    Raises:
        HTTPException: 401 when the header is missing or not a Bearer token
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials
