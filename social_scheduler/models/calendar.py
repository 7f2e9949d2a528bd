from typing import List

from pydantic import BaseModel, Field

from social_scheduler.models.posts import PostResponse


class MonthRef(BaseModel):
    year: int
    month: int


class CalendarDay(BaseModel):
    date: str
    day: int
    is_today: bool = False
    post_count: int = 0
    preview: List[str] = Field(default_factory=list)
    more_count: int = 0


class CalendarMonth(BaseModel):
    year: int
    month: int
    title: str
    weekday_names: List[str]
    starting_day_of_week: int
    days_in_month: int
    previous: MonthRef
    next: MonthRef
    days: List[CalendarDay]


class CalendarDayDetail(BaseModel):
    date: str
    posts: List[PostResponse]


class TodayResponse(BaseModel):
    date: str
    timezone: str
