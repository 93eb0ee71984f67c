"""SMS notification gateway."""

from finance_tracker.services.sms.twilio_gateway import (
    SMSConfigurationError,
    SMSError,
    TwilioSMSGateway,
)

__all__ = [
    "SMSConfigurationError",
    "SMSError",
    "TwilioSMSGateway",
]
