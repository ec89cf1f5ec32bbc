"""
Phone Number Normalization Utilities

Uses Google's libphonenumber (via phonenumbers package) to turn whatever a
CRM user typed into the digits-only international form the WhatsApp
gateway expects.
"""
import re
import logging

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

from app.shared.core.constants import WHATSAPP_CHAT_ID_SUFFIX

logger = logging.getLogger(__name__)


def normalize_phone_number(phone: str, default_country: str = "AR") -> str:
    """
    Normalize a phone number to E.164 digits (without +).

    Args:
        phone: Phone number in any format
        default_country: ISO 3166-1 alpha-2 region used when the number has no country code

    Returns:
        Normalized number (e.g. "5491122334455"). Numbers libphonenumber
        cannot validate fall back to their digits, so a message is never
        dropped only because the number is unusual.

    Examples:
        >>> normalize_phone_number("+54 9 11 2233-4455")
        "5491122334455"

        >>> normalize_phone_number("(555) 123")
        "555123"
    """
    if not phone:
        return ""

    phone = phone.strip()
    try:
        region = None if phone.startswith("+") or phone.startswith("00") else default_country
        parsed = phonenumbers.parse(phone, region)
        if phonenumbers.is_valid_number(parsed):
            return phonenumbers.format_number(parsed, PhoneNumberFormat.E164).lstrip("+")
    except NumberParseException as e:
        logger.debug(f"Could not parse phone {phone}: {str(e)}")

    # Best-effort fallback: just extract digits
    return re.sub(r"\D", "", phone)


def to_whatsapp_chat_id(phone: str, default_country: str = "AR") -> str:
    """
    Build the gateway chat id for an individual contact.

    Values that already are chat ids are returned unchanged.

    Examples:
        >>> to_whatsapp_chat_id("+5491122334455")
        "5491122334455@c.us"
    """
    if phone.endswith(WHATSAPP_CHAT_ID_SUFFIX):
        return phone
    return f"{normalize_phone_number(phone, default_country)}{WHATSAPP_CHAT_ID_SUFFIX}"
