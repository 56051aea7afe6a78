"""
Locale helpers for notification text: money, dates and JSON-safe payloads.
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

# Thousands separator per language; fr groups with a narrow no-break space
_GROUP_SEPARATORS = {"fr": "\u202f", "en": ","}
_DATE_FORMATS = {"fr": "%d/%m/%Y", "en": "%m/%d/%Y"}


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure datetime is timezone-aware (UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:  # naive → assume UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_amount(amount: Any, language: str = "fr", currency: str = "XAF") -> str:
    """Format a single-currency amount as a grouped integer: 50000 → '50\u202f000 XAF'."""
    if amount is None:
        amount = 0
    value = int(Decimal(str(amount)).to_integral_value())
    grouped = f"{value:,}".replace(",", _GROUP_SEPARATORS.get(language, ","))
    return f"{grouped} {currency}"


def format_date(value: Any, language: str = "fr", tz_name: Optional[str] = None) -> str:
    """Render a date for the recipient's language; datetimes are shown in the platform timezone."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        value = ensure_utc(value)
        if tz_name:
            value = value.astimezone(ZoneInfo(tz_name))
    return value.strftime(_DATE_FORMATS.get(language, _DATE_FORMATS["fr"]))


def serialize_dates(data: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively convert date/datetime objects to ISO format strings"""
    def convert_value(value: Any) -> Any:
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        elif isinstance(value, Decimal):
            return float(value)
        elif isinstance(value, dict):
            return serialize_dates(value)
        elif isinstance(value, (list, tuple)):
            return [convert_value(item) for item in value]
        return value

    return {key: convert_value(value) for key, value in (data or {}).items()}
