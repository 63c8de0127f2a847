"""
Mailjet email sender adapter - Implements EmailSender protocol.

Delivers OTP mails through the Mailjet v3.1 send API using httpx. The
message counts as delivered when Mailjet reports its status as "success"
or "queued"; any other status, HTTP error or transport error returns False.
"""

import logging
from html import escape

import httpx

logger = logging.getLogger(__name__)

MAILJET_SEND_URL = "https://api.mailjet.com/v3.1/send"

_SIGNUP_TEXT = (
    "Use the following One-Time Password (OTP) to verify your institutional email "
    "and complete your registration:"
)
_RESET_TEXT = "Use the following One-Time Password (OTP) to reset your Unigram password:"


def render_otp_email(code: str, name: str = "", ttl_minutes: int = 10) -> tuple[str, str]:
    """
    Build the plain-text and HTML bodies of an OTP mail.

    Returns:
        (text_body, html_body)
    """
    purpose_text = _SIGNUP_TEXT if name else _RESET_TEXT
    greeting = f"Hello {name}," if name else "Hello,"
    text_body = (
        f"{greeting}\n\n{purpose_text}\n\n{code}\n\n"
        f"This OTP is valid for {ttl_minutes} minutes.\n"
        "If you did not request this, please ignore this email.\n"
    )
    html_body = f"""
    <div style="font-family: sans-serif; padding: 20px; max-width: 500px; margin: auto; text-align: center;">
      <h2>Unigram OTP Request</h2>
      <p>{escape(greeting)}</p>
      <p style="font-size: 16px;">{purpose_text}</p>
      <h1 style="font-size: 32px; letter-spacing: 5px;">{escape(code)}</h1>
      <p style="font-size: 14px; color: #777;">This OTP is valid for {ttl_minutes} minutes.</p>
      <p style="font-size: 12px; color: #999;">If you did not request this, please ignore this email.</p>
    </div>
    """
    return text_body, html_body


class MailjetEmailSender:
    """
    Implements EmailSender protocol via the Mailjet HTTP API.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        sender_email: str,
        sender_name: str = "Unigram",
        ttl_minutes: int = 10,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ) -> None:
        """
        Args:
            api_key: Mailjet public API key
            api_secret: Mailjet private API key
            sender_email: Verified Mailjet sender address
            sender_name: Display name of the sender
            ttl_minutes: OTP validity quoted in the mail body
            client: Preconfigured httpx client (tests inject a MockTransport)
            timeout: Per-request timeout when no client is supplied
        """
        self._auth = (api_key, api_secret)
        self._sender_email = sender_email
        self._sender_name = sender_name
        self._ttl_minutes = ttl_minutes
        self._client = client or httpx.Client(timeout=timeout)

    def send_otp(self, email: str, code: str, name: str = "") -> bool:
        text_body, html_body = render_otp_email(code, name, self._ttl_minutes)
        payload = {
            "Messages": [
                {
                    "From": {"Email": self._sender_email, "Name": self._sender_name},
                    "To": [{"Email": email}],
                    "Subject": "Your Unigram OTP",
                    "TextPart": text_body,
                    "HTMLPart": html_body,
                }
            ]
        }

        logger.info("Sending OTP via Mailjet to %s", email)
        try:
            response = self._client.post(MAILJET_SEND_URL, auth=self._auth, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Mailjet API failed: status=%s to=%s body=%s",
                e.response.status_code,
                email,
                e.response.text[:500],
            )
            return False
        except httpx.HTTPError as e:
            logger.error("Mailjet request error: to=%s error=%s: %s", email, type(e).__name__, e)
            return False

        messages = (response.json() or {}).get("Messages") or [{}]
        status = messages[0].get("Status")
        if status not in ("success", "queued"):
            logger.error("Mailjet rejected OTP: to=%s errors=%s", email, messages[0].get("Errors"))
            return False

        logger.info("OTP email accepted by Mailjet: to=%s status=%s", email, status)
        return True

    def close(self) -> None:
        self._client.close()
