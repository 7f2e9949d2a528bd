"""
Calendar Service
Month grid layout and dashboard counters computed from a user's posts
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Tuple

from social_scheduler.models.posts import PostStatus

MONTH_NAMES = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December'
]
WEEKDAY_NAMES = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']

# Posts shown inside a day cell before collapsing into "+N more"
PREVIEW_LIMIT = 2
THIS_WEEK_DAYS = 7


def format_date(year: int, month: int, day: int) -> str:
    return f"{year}-{month:02d}-{day:02d}"


def get_days_in_month(year: int, month: int) -> Tuple[int, int]:
    """Return (days_in_month, starting_day_of_week) with Sunday as 0"""
    monday_based_first, days_in_month = calendar.monthrange(year, month)
    return days_in_month, (monday_based_first + 1) % 7


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_bounds(year: int, month: int) -> Tuple[str, str]:
    days_in_month, _ = get_days_in_month(year, month)
    return format_date(year, month, 1), format_date(year, month, days_in_month)


def is_active(post: Dict[str, Any]) -> bool:
    return post.get('status') != PostStatus.DELETED.value


def posts_for_day(posts: Iterable[Dict[str, Any]], date_str: str) -> List[Dict[str, Any]]:
    """Active posts on a date, earliest time first"""
    day_posts = [p for p in posts if p.get('date') == date_str and is_active(p)]
    return sorted(day_posts, key=lambda p: p.get('time') or '')


def build_month(year: int, month: int, posts: List[Dict[str, Any]], today: date) -> Dict[str, Any]:
    days_in_month, starting_day_of_week = get_days_in_month(year, month)
    prev_year, prev_month = shift_month(year, month, -1)
    next_year, next_month = shift_month(year, month, 1)

    days = []
    for day in range(1, days_in_month + 1):
        date_str = format_date(year, month, day)
        day_posts = posts_for_day(posts, date_str)
        days.append({
            'date': date_str,
            'day': day,
            'is_today': today == date(year, month, day),
            'post_count': len(day_posts),
            'preview': [f"{p.get('time')} - {p.get('platform')}" for p in day_posts[:PREVIEW_LIMIT]],
            'more_count': max(len(day_posts) - PREVIEW_LIMIT, 0),
        })

    return {
        'year': year,
        'month': month,
        'title': f"{MONTH_NAMES[month - 1]} {year}",
        'weekday_names': WEEKDAY_NAMES,
        'starting_day_of_week': starting_day_of_week,
        'days_in_month': days_in_month,
        'previous': {'year': prev_year, 'month': prev_month},
        'next': {'year': next_year, 'month': next_month},
        'days': days,
    }


def count_this_week(posts: Iterable[Dict[str, Any]], today: date) -> int:
    """Active posts dated from today through today + 7 days inclusive"""
    week_end = today + timedelta(days=THIS_WEEK_DAYS)
    count = 0
    for post in posts:
        if not is_active(post):
            continue
        try:
            post_date = datetime.strptime(post.get('date') or '', '%Y-%m-%d').date()
        except ValueError:
            continue
        if today <= post_date <= week_end:
            count += 1
    return count


def count_by_status(posts: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    counts = {s.value: 0 for s in PostStatus}
    for post in posts:
        status_val = post.get('status', PostStatus.SCHEDULED.value)
        if status_val in counts:
            counts[status_val] += 1
    return counts
