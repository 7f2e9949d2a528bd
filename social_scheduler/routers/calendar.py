import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Path, status

from social_scheduler.dependencies.auth import get_current_user
from social_scheduler.dependencies.timezone import get_request_timezone
from social_scheduler.models.calendar import CalendarDayDetail, CalendarMonth, TodayResponse
from social_scheduler.services import calendar_service, post_service
from social_scheduler.utils.database import get_database
from social_scheduler.utils.timezone import DATE_FORMAT, today_in

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/calendar",
    tags=["calendar"],
    dependencies=[Depends(get_current_user)]
)


@router.get("/today", response_model=TodayResponse)
async def get_today(tz: str = Depends(get_request_timezone)):
    """Today's date, the default date for a new post"""
    return {"date": today_in(tz).strftime(DATE_FORMAT), "timezone": tz}


@router.get("/day/{date}", response_model=CalendarDayDetail)
async def get_day(
    date: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    try:
        datetime.strptime(date, DATE_FORMAT)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="date must be a valid YYYY-MM-DD date")

    try:
        posts = post_service.list_posts(db, current_user["id"], start_date=date, end_date=date)
        return {"date": date, "posts": calendar_service.posts_for_day(posts, date)}
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch posts for {date}: {str(e)}"
        )


@router.get("/{year}/{month}", response_model=CalendarMonth)
async def get_month(
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=1, le=12),
    tz: str = Depends(get_request_timezone),
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    """
    Month grid for the calendar view

    Weeks start on Sunday; each day cell previews its first two posts and
    counts the rest.
    """
    start_date, end_date = calendar_service.month_bounds(year, month)
    try:
        posts = post_service.list_posts(db, current_user["id"], start_date=start_date, end_date=end_date)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch calendar: {str(e)}"
        )
    return calendar_service.build_month(year, month, posts, today_in(tz))
