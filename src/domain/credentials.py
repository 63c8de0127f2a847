"""
Credential primitives - password hashing and OTP generation.

Password hashing uses bcrypt with a configurable cost factor. Because bcrypt
is CPU-bound (~100ms at cost 10) and releases the GIL, hashing can be routed
through a dedicated bounded thread pool so a burst of signups does not
occupy every request worker.
"""

import random
import secrets
import string
from concurrent.futures import Executor

import bcrypt

# bcrypt only consumes the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


def _password_bytes(password: str) -> bytes:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password exceeds {MAX_PASSWORD_BYTES} bytes")
    return encoded


class BcryptPasswordHasher:
    """
    Implements PasswordHasher protocol with bcrypt.

    The salt is generated per hash and embedded in the digest, so the same
    password hashes differently each time; only checkpw can compare.
    """

    def __init__(self, rounds: int = 10, executor: Executor | None = None) -> None:
        """
        Args:
            rounds: bcrypt cost factor (4-31)
            executor: Worker pool for hashing. When None, hashing runs on
                the calling thread.
        """
        self._rounds = rounds
        self._executor = executor

    def hash(self, plaintext: str) -> str:
        """
        Hash a password.

        Raises:
            ValueError: If the password is longer than MAX_PASSWORD_BYTES
                when encoded; it is rejected rather than truncated.
        """
        return self._run(self._hash, plaintext)

    def verify(self, plaintext: str, digest: str) -> bool:
        """Compare a password against a stored digest in constant time."""
        return self._run(self._verify, plaintext, digest)

    def _hash(self, plaintext: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(_password_bytes(plaintext), salt).decode("utf-8")

    @staticmethod
    def _verify(plaintext: str, digest: str) -> bool:
        try:
            return bcrypt.checkpw(_password_bytes(plaintext), digest.encode("utf-8"))
        except ValueError:
            # Overlong password or malformed digest; never matches.
            return False

    def _run(self, fn, *args):
        if self._executor is None:
            return fn(*args)
        return self._executor.submit(fn, *args).result()


class OtpGenerator:
    """
    Generates fixed-length numeric one-time codes.

    Each digit is drawn independently and uniformly from 0-9, so leading
    zeros occur. Returns a string to preserve them.
    """

    def __init__(self, length: int = 6, rng: random.Random | None = None) -> None:
        """
        Args:
            length: Number of digits
            rng: Random source. Defaults to the OS CSPRNG; tests pass a
                seeded random.Random for deterministic codes.
        """
        self._length = length
        self._rng = rng or secrets.SystemRandom()

    def generate(self) -> str:
        return "".join(self._rng.choice(string.digits) for _ in range(self._length))
