"""
Twilio SMS Gateway

Sends a single SMS through Twilio's REST Messages endpoint and returns
the provider's message SID. Logging the attempt to the notification log
is the caller's job; this class only talks HTTP.
"""

from typing import Optional

import requests
import structlog

from finance_tracker.config import TwilioSettings, get_settings
from finance_tracker.errors import ErrorKind, FinanceTrackerError


logger = structlog.get_logger(__name__)


class SMSError(FinanceTrackerError):
    """SMS gateway rejected or failed the send."""
    kind = ErrorKind.EXTERNAL_SERVICE_UNAVAILABLE

    def __init__(self, message: str, user_message: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            user_message=user_message or "Failed to send notification. Please try again.",
            **kwargs,
        )


class SMSConfigurationError(SMSError):
    """Twilio credentials are not configured."""
    pass


class TwilioSMSGateway:
    """Thin client for Twilio's Messages resource."""

    def __init__(
        self,
        settings: Optional[TwilioSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        if settings is None:
            try:
                settings = get_settings().twilio
            except Exception as e:
                raise SMSConfigurationError(f"Twilio credentials not configured: {e}")

        if not settings.account_sid or not settings.auth_token:
            raise SMSConfigurationError("Twilio credentials not configured")

        self._settings = settings
        self._http = session or requests.Session()

    @property
    def messages_url(self) -> str:
        base = self._settings.api_base_url.rstrip("/")
        return f"{base}/Accounts/{self._settings.account_sid}/Messages.json"

    async def send(self, to: str, body: str) -> str:
        """
        Send `body` to the phone number `to`.

        Returns:
            Twilio message SID

        Raises:
            SMSError: On network failure or a non-2xx response
        """
        try:
            response = self._http.post(
                self.messages_url,
                data={
                    "To": to,
                    "From": self._settings.phone_number,
                    "Body": body,
                },
                auth=(self._settings.account_sid, self._settings.auth_token),
                timeout=self._settings.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.error("sms_request_failed", error=str(e))
            raise SMSError(f"Twilio request failed: {e}")

        try:
            payload = response.json()
        except ValueError:
            payload = {"raw": response.text}

        if not response.ok:
            logger.error("sms_rejected", status=response.status_code, response=payload)
            raise SMSError(f"Twilio error: {response.status_code} {payload}")

        message_sid = payload.get("sid")
        if not message_sid:
            raise SMSError(f"Twilio response missing message sid: {payload}")

        logger.info("sms_sent", message_sid=message_sid)
        return message_sid
