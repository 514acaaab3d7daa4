"""
SMS delivery for mobile verification codes.

Messages go out through the Twilio REST API. Without Twilio credentials the
code is logged instead, which keeps local development working.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from mnemo.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


@dataclass
class SMSResult:
    success: bool
    error: Optional[str] = None
    message_sid: Optional[str] = None


class SMSService:
    """Sends verification codes by text message."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config or default_settings
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(
            self.config.twilio_account_sid
            and self.config.twilio_auth_token
            and self.config.twilio_phone_number
        )

    async def send_verification_code(self, phone_number: str, code: str) -> SMSResult:
        """
        Send a verification code.

        Args:
            phone_number: Full number including country code
            code: Six-digit verification code

        Returns:
            SMSResult: Delivery outcome. Failures are reported, not raised.
        """
        body = f"Your verification code is: {code}. This code will expire in {self.config.mobile_code_ttl_minutes} minutes."

        if not self.is_configured:
            logger.info(f"SMS not configured; verification code for {phone_number}: {code}")
            return SMSResult(success=True)

        url = f"{self.config.twilio_api_url}/Accounts/{self.config.twilio_account_sid}/Messages.json"
        try:
            async with httpx.AsyncClient(timeout=15.0, transport=self.transport) as client:
                response = await client.post(
                    url,
                    data={"To": phone_number, "From": self.config.twilio_phone_number, "Body": body},
                    auth=(self.config.twilio_account_sid, self.config.twilio_auth_token)
                )
        except httpx.HTTPError as e:
            logger.warning(f"SMS request failed: {e}")
            return SMSResult(success=False, error=str(e))

        if response.is_error:
            logger.warning(f"SMS provider returned {response.status_code}")
            return SMSResult(success=False, error=f"SMS provider returned {response.status_code}")

        try:
            sid = response.json().get("sid")
        except ValueError:
            sid = None
        logger.info(f"Verification SMS sent to {phone_number}")
        return SMSResult(success=True, message_sid=sid)
