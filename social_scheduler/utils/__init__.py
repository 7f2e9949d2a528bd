"""
Utility functions for the social scheduler backend
"""

import re
from datetime import datetime
from datetime import timezone as dt_timezone
from typing import Optional, Union

# PostgREST may send fewer than six fractional digits ('.3034')
_FRACTION = re.compile(r'\.(\d{1,6})(?=[+-]|$)')
_EPOCH = re.compile(r'^\d{9,11}$')


def _from_epoch(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=dt_timezone.utc)


def _from_iso(value: str) -> Optional[datetime]:
    value = value.strip()
    if value.endswith(('Z', 'z')):
        value = value[:-1] + '+00:00'
    value = _FRACTION.sub(lambda m: '.' + m.group(1).ljust(6, '0'), value)
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def parse_datetime_safe(value: Union[str, int, datetime, None]) -> Optional[datetime]:
    """
    Read a timestamp coming from the database or a provider payload.

    Accepts datetimes as-is, ISO 8601 strings (short fractions and a
    trailing 'Z' included) and unix epoch seconds, either as an int or
    a digit string. Anything else gives None.

    Examples:
        >>> parse_datetime_safe('2025-06-04T08:40:25.3034+00:00')
        datetime.datetime(2025, 6, 4, 8, 40, 25, 303400, tzinfo=datetime.timezone.utc)

        >>> parse_datetime_safe(0)
        datetime.datetime(1970, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, datetime):
        return value
    # bool is an int subclass but never a timestamp
    if isinstance(value, int) and not isinstance(value, bool):
        return _from_epoch(value)
    if not isinstance(value, str):
        return None

    if _EPOCH.match(value.strip()):
        return _from_epoch(int(value))
    return _from_iso(value)
