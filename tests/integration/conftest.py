"""
Shared fixtures for PostgreSQL integration tests.

Tests are skipped when DATABASE_URL is not reachable (e.g. no
docker-compose database running).
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for integration tests and apply migrations."""
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=False,
    )
    try:
        pool.open(wait=True, timeout=3)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty the identity tables before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM pending_registrations")
        conn.execute("DELETE FROM password_reset_requests")
        conn.execute("DELETE FROM accounts")
        conn.commit()
    yield
