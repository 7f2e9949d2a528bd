from typing import Optional

from fastapi import HTTPException, Query, status

from social_scheduler.utils.timezone import is_valid_timezone


def get_request_timezone(
    timezone: Optional[str] = Query(None, description="IANA zone 'today' is read in (UTC by default)")
) -> str:
    """`timezone` query parameter, checked; 400 for a zone pytz does not know"""
    if timezone and not is_valid_timezone(timezone):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown timezone: {timezone}")
    return timezone or "UTC"
