"""
Outbound SMS through Twilio.

SMS is a best-effort channel: callers get True/False back and decide
whether to log. The Twilio SDK is synchronous, so sends run in a worker
thread to keep the event loop free.
"""
import asyncio
from typing import Optional

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from bayanihan.core.config import settings
from bayanihan.core.logging import get_logger

logger = get_logger(__name__)


def to_international(mobile_no: str, country_code: Optional[str] = None) -> Optional[str]:
    """
    Normalise a local mobile number.

    "09171234567" -> "+639171234567"; numbers already starting with "+"
    are returned unchanged; anything without digits returns None.
    """
    country_code = country_code or settings.sms_country_code
    cleaned = "".join(ch for ch in mobile_no if ch.isdigit() or ch == "+")
    if not cleaned or cleaned == "+":
        return None
    if cleaned.startswith("+"):
        return cleaned
    if cleaned.startswith("0"):
        cleaned = cleaned[1:]
    return f"{country_code}{cleaned}"


class SmsSender:
    """Sends text messages; a no-op (returns False) when Twilio is not configured."""

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Optional[Client]:
        if self._client is None and settings.sms_enabled:
            self._client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
        return self._client

    async def send(self, mobile_no: str, body: str) -> bool:
        to_number = to_international(mobile_no)
        if to_number is None:
            logger.info("sms_skipped_invalid_number")
            return False

        client = self.client
        if client is None:
            logger.info("sms_disabled")
            return False

        try:
            message = await asyncio.to_thread(
                client.messages.create,
                body=body,
                from_=settings.twilio_phone_number,
                to=to_number,
            )
        except TwilioException as exc:
            logger.warning("sms_send_failed", to_number=to_number, error=str(exc))
            return False

        logger.info("sms_sent", to_number=to_number, sid=message.sid)
        return True
