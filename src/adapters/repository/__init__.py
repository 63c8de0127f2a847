"""Repository adapters - Database and in-memory store implementations."""

from .memory import (
    InMemoryAccountRepository,
    InMemoryPasswordResetRepository,
    InMemoryPendingRegistrationRepository,
)
from .postgres import (
    PostgresAccountRepository,
    PostgresPasswordResetRepository,
    PostgresPendingRegistrationRepository,
    run_migrations,
)

__all__ = [
    "InMemoryAccountRepository",
    "InMemoryPasswordResetRepository",
    "InMemoryPendingRegistrationRepository",
    "PostgresAccountRepository",
    "PostgresPasswordResetRepository",
    "PostgresPendingRegistrationRepository",
    "run_migrations",
]
