"""
Console email sender - Development transport for OTP mails.

Selected with EMAIL_BACKEND=console. Nothing leaves the process: the OTP
is written to the server log so a developer can complete signup or reset
without a mail provider.
"""

import logging

from src.adapters.smtp.mailjet import render_otp_email

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    EmailSender that logs instead of delivering.

    One INFO line per OTP carrying purpose, recipient and code. The full
    rendered text body is logged at DEBUG so template changes can be
    checked locally.
    """

    def __init__(self, ttl_minutes: int = 10) -> None:
        self._ttl_minutes = ttl_minutes

    def send_otp(self, email: str, code: str, name: str = "") -> bool:
        """
        Log an OTP for the given recipient.

        Args:
            email: Recipient (already normalized)
            code: The OTP, leading zeros intact
            name: Display name; empty for password reset mails

        Returns:
            Always True
        """
        purpose = "SIGNUP" if name else "PASSWORD_RESET"
        logger.info("[OTP] Purpose: %s Email: %s Code: %s", purpose, email, code)
        if logger.isEnabledFor(logging.DEBUG):
            text_body, _ = render_otp_email(code, name, self._ttl_minutes)
            logger.debug("OTP mail body for %s:\n%s", email, text_body)
        return True

    def close(self) -> None:
        """Nothing to release."""
