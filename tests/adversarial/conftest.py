"""
Shared fixtures for adversarial tests.

Provides a service whose bcrypt work runs on a worker pool, the way the
application wires it, so concurrent callers genuinely overlap.
"""

from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor

import pytest

from src.domain.credentials import BcryptPasswordHasher
from src.domain.identity import IdentityService


@pytest.fixture
def hash_executor() -> Generator[ThreadPoolExecutor, None, None]:
    executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="bcrypt-test")
    yield executor
    executor.shutdown(wait=True)


@pytest.fixture
def concurrent_service(
    service: IdentityService, hash_executor: ThreadPoolExecutor
) -> IdentityService:
    """The shared in-memory service with bcrypt offloaded to a worker pool."""
    service.hasher = BcryptPasswordHasher(rounds=4, executor=hash_executor)
    return service
