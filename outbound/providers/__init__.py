"""Carrier adapters."""

from .base import CarrierAdapter
from .demo import DemoProvider
from .ses import SESEmailProvider
from .twilio_account import TwilioAccount
from .twilio_sms import TwilioSMSProvider
from .twilio_whatsapp import TwilioWhatsAppProvider

__all__ = [
    "CarrierAdapter",
    "DemoProvider",
    "SESEmailProvider",
    "TwilioAccount",
    "TwilioSMSProvider",
    "TwilioWhatsAppProvider",
]
