"""
Timezone helpers for turning a post's calendar slot into an instant
"""

from datetime import date, datetime, timezone
from typing import Optional

import pytz

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def is_valid_timezone(timezone_str: str) -> bool:
    """
    Check if timezone string is valid

    Args:
        timezone_str: Timezone to validate (e.g., 'Europe/Paris')

    Returns:
        True if pytz knows the zone
    """
    try:
        pytz.timezone(timezone_str)
        return True
    except Exception:
        return False


def slot_to_utc(date_str: str, time_str: str, timezone_str: str = "UTC") -> datetime:
    """
    Convert a post's local date/time slot to an aware UTC datetime

    Args:
        date_str: 'YYYY-MM-DD'
        time_str: 'HH:MM'
        timezone_str: IANA zone the slot is expressed in

    Returns:
        Aware datetime in UTC
    """
    naive = datetime.strptime(f"{date_str} {time_str}", f"{DATE_FORMAT} {TIME_FORMAT}")
    tz = pytz.timezone(timezone_str or "UTC")
    # localize() picks the correct DST offset, replace(tzinfo=) would not
    return tz.localize(naive).astimezone(timezone.utc)


def today_in(timezone_str: Optional[str] = None) -> date:
    """Today's date as seen from the given zone (UTC by default)"""
    tz = pytz.timezone(timezone_str) if timezone_str else pytz.utc
    return datetime.now(tz).date()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
