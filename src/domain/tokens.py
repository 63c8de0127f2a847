"""Session tokens - signed, time-bounded JWTs identifying an account."""

import logging
from datetime import timedelta

import jwt

from .ports import Clock

logger = logging.getLogger(__name__)


class JwtTokenIssuer:
    """
    Implements TokenIssuer protocol with PyJWT.

    Tokens carry the account id in "sub" and expire after a fixed window.
    The secret is supplied once at construction and never rotated.
    """

    def __init__(
        self,
        secret_key: str,
        clock: Clock,
        algorithm: str = "HS256",
        ttl_seconds: int = 3600,
    ) -> None:
        self._secret_key = secret_key
        self._clock = clock
        self._algorithm = algorithm
        self._ttl = timedelta(seconds=ttl_seconds)

    def issue(self, account_id: str) -> str:
        issued_at = self._clock.now()
        payload = {
            "sub": str(account_id),
            "iat": issued_at,
            "exp": issued_at + self._ttl,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> str | None:
        """
        Decode and validate a token.

        Signature and the presence of "sub" and "exp" are checked by PyJWT.
        Expiry is checked against the injected clock, the same one that
        stamped the token, so a token is rejected once now >= exp.

        Returns:
            Account id, or None if the token is invalid or expired
        """
        if not token:
            return None
        try:
            payload = jwt.decode(
                token.strip(),
                self._secret_key,
                algorithms=[self._algorithm],
                options={
                    "require": ["sub", "exp"],
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.PyJWTError as e:
            logger.info("Rejected invalid session token: %s", e)
            return None

        exp = payload["exp"]
        if not isinstance(exp, (int, float)) or exp <= self._clock.now().timestamp():
            logger.info("Rejected expired session token")
            return None
        return payload["sub"]
