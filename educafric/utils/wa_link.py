"""
WhatsApp click-to-chat links.

A click-to-chat link opens a prefilled conversation in the user's WhatsApp
client; nothing is sent by the server.
"""
import re
from typing import Optional
from urllib.parse import quote

WA_BASE_URL = "https://wa.me"

_E164 = re.compile(r"^\+?[1-9]\d{7,14}$")


def normalize_e164(phone: Optional[str]) -> Optional[str]:
    """Strip spaces/dashes and return '+<digits>' or None when the number is not E.164."""
    if not phone:
        return None
    cleaned = re.sub(r"[\s\-().]", "", phone)
    if cleaned.startswith("00"):
        cleaned = "+" + cleaned[2:]
    if not _E164.match(cleaned):
        return None
    return cleaned if cleaned.startswith("+") else f"+{cleaned}"


def build_wa_url(phone_e164: str, text: str = "") -> str:
    """Build https://wa.me/<digits>?text=<urlencoded>"""
    normalized = normalize_e164(phone_e164)
    if normalized is None:
        raise ValueError(f"Invalid E.164 phone number: {phone_e164!r}")
    url = f"{WA_BASE_URL}/{normalized.lstrip('+')}"
    if text:
        url += f"?text={quote(text, safe='')}"
    return url
