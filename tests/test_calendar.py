"""Tests for the month grid, day view and dashboard counters."""

from datetime import date

import pytest

from social_scheduler.services import calendar_service


class TestMonthLayout:

    @pytest.mark.parametrize("year,month,expected", [
        (2026, 10, (31, 4)),   # October 2026 starts on a Thursday
        (2026, 2, (28, 0)),    # February 2026 starts on a Sunday
        (2024, 2, (29, 4)),    # leap year
        (2026, 6, (30, 1)),
    ])
    def test_days_in_month_and_sunday_based_start(self, year, month, expected):
        assert calendar_service.get_days_in_month(year, month) == expected

    @pytest.mark.parametrize("year,month,delta,expected", [
        (2026, 1, -1, (2025, 12)),
        (2026, 12, 1, (2027, 1)),
        (2026, 6, 1, (2026, 7)),
    ])
    def test_shift_month_rolls_over_years(self, year, month, delta, expected):
        assert calendar_service.shift_month(year, month, delta) == expected

    def test_build_month_previews_two_posts_and_counts_the_rest(self):
        posts = [
            {"date": "2026-10-05", "time": "18:00", "platform": "twitter", "status": "scheduled"},
            {"date": "2026-10-05", "time": "08:15", "platform": "instagram", "status": "draft"},
            {"date": "2026-10-05", "time": "12:00", "platform": "linkedin", "status": "published"},
            {"date": "2026-10-05", "time": "07:00", "platform": "facebook", "status": "deleted"},
        ]
        grid = calendar_service.build_month(2026, 10, posts, today=date(2026, 10, 19))

        assert grid["title"] == "October 2026"
        assert grid["weekday_names"][0] == "Sun"
        assert grid["starting_day_of_week"] == 4
        assert len(grid["days"]) == 31

        day = grid["days"][4]
        assert day["date"] == "2026-10-05"
        assert day["post_count"] == 3
        assert day["preview"] == ["08:15 - instagram", "12:00 - linkedin"]
        assert day["more_count"] == 1

        assert [d["day"] for d in grid["days"] if d["is_today"]] == [19]
        assert grid["previous"] == {"year": 2026, "month": 9}
        assert grid["next"] == {"year": 2026, "month": 11}

    def test_month_bounds(self):
        assert calendar_service.month_bounds(2026, 2) == ("2026-02-01", "2026-02-28")


class TestCounters:

    def test_this_week_is_inclusive_of_both_ends(self):
        today = date(2026, 10, 19)
        posts = [
            {"date": "2026-10-18", "status": "scheduled"},
            {"date": "2026-10-19", "status": "scheduled"},
            {"date": "2026-10-26", "status": "draft"},
            {"date": "2026-10-27", "status": "scheduled"},
            {"date": "2026-10-20", "status": "deleted"},
            {"date": "not-a-date", "status": "scheduled"},
        ]
        assert calendar_service.count_this_week(posts, today) == 2

    def test_count_by_status_lists_every_status(self):
        counts = calendar_service.count_by_status([{"status": "draft"}, {"status": "draft"}, {}])
        assert counts == {"draft": 2, "scheduled": 1, "published": 0, "failed": 0, "deleted": 0}


# ===================================================================
# Router
# ===================================================================

class TestCalendarAPI:

    def test_month_grid(self, client, make_post):
        make_post(date="2026-10-05", time="10:00", platform="linkedin")
        make_post(date="2026-11-05")

        resp = client.get("/api/v1/calendar/2026/10")
        assert resp.status_code == 200
        grid = resp.json()
        assert grid["days_in_month"] == 31
        assert grid["days"][4]["preview"] == ["10:00 - linkedin"]
        assert sum(d["post_count"] for d in grid["days"]) == 1

    @pytest.mark.parametrize("month", [0, 13])
    def test_month_out_of_range(self, client, month):
        assert client.get(f"/api/v1/calendar/2026/{month}").status_code == 422

    def test_day_view_sorted_by_time_without_trash(self, client, make_post):
        make_post(date="2026-10-05", time="15:00", content="late")
        make_post(date="2026-10-05", time="06:00", content="early")
        make_post(date="2026-10-05", time="07:00", content="trashed", status="deleted")

        resp = client.get("/api/v1/calendar/day/2026-10-05")
        assert resp.status_code == 200
        assert [p["content"] for p in resp.json()["posts"]] == ["early", "late"]

    def test_day_view_rejects_bad_date(self, client):
        assert client.get("/api/v1/calendar/day/2026-02-30").status_code == 400

    def test_today(self, client):
        resp = client.get("/api/v1/calendar/today", params={"timezone": "Asia/Tokyo"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["timezone"] == "Asia/Tokyo"
        assert len(body["date"]) == 10

    def test_today_unknown_timezone(self, client):
        assert client.get("/api/v1/calendar/today", params={"timezone": "Nowhere/Land"}).status_code == 400
