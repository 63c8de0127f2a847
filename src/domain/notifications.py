"""
OTP notification dispatch with a bounded wait.

The state transition that produces an OTP has already committed by the time
the mail is sent, so delivery problems are logged and reported as False,
never raised to the caller.
"""

import logging
from concurrent.futures import Executor
from concurrent.futures import TimeoutError as FutureTimeoutError

from .ports import EmailSender

logger = logging.getLogger(__name__)


class OtpNotifier:
    """Runs EmailSender.send_otp on a worker pool and waits at most timeout_seconds."""

    def __init__(
        self,
        email_sender: EmailSender,
        executor: Executor | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._email_sender = email_sender
        self._executor = executor
        self._timeout = timeout_seconds

    def dispatch(self, email: str, code: str, name: str = "") -> bool:
        """
        Send an OTP mail.

        Args:
            email: Recipient email address
            code: OTP to deliver
            name: Display name for signup mails, empty for reset mails

        Returns:
            True if the transport accepted the message in time
        """
        try:
            if self._executor is None:
                sent = self._email_sender.send_otp(email, code, name)
            else:
                future = self._executor.submit(self._email_sender.send_otp, email, code, name)
                sent = future.result(timeout=self._timeout)
        except FutureTimeoutError:
            logger.warning(
                "OTP email to %s not confirmed within %.1fs; continuing", email, self._timeout
            )
            return False
        except Exception:
            logger.exception("OTP email to %s failed", email)
            return False

        if not sent:
            logger.warning("OTP email to %s was rejected by the transport", email)
        return bool(sent)
