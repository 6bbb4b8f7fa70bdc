"""UTC-everywhere time handling, plus the French display helpers used by the back office."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

# Business dates (devis date_creation) are taken in the company's timezone
BUSINESS_TZ = "Europe/Paris"

_FRENCH_MONTHS_SHORT = (
    "janv.", "févr.", "mars", "avr.", "mai", "juin",
    "juil.", "août", "sept.", "oct.", "nov.", "déc.",
)


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def today_business(tz_name: str = BUSINESS_TZ) -> date:
    """Today's calendar date in the business timezone."""
    try:
        tz = ZoneInfo(tz_name)
    except KeyError:
        raise ValueError(f"Unknown timezone: {tz_name}")
    return now_utc().astimezone(tz).date()


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 datetime string to UTC datetime.

    Raises ValueError if string has no timezone info.
    """
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot parse naive datetime string. "
            "Include timezone offset (e.g., 'Z' or '+00:00')."
        )
    return dt.astimezone(timezone.utc)


def format_date_fr(value: date | datetime | None) -> str:
    """
    Format a date the way the back office lists show it: '05 mars 2025'.

    Datetimes are converted to the business timezone first. None renders as ''.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise ValueError("Cannot format naive datetime. Datetime must be timezone-aware.")
        value = value.astimezone(ZoneInfo(BUSINESS_TZ)).date()
    return f"{value.day:02d} {_FRENCH_MONTHS_SHORT[value.month - 1]} {value.year}"
