"""
Tests for schedule spec parsing and next fire time calculation.
"""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from filemover.detection.cron_parser import (
    DEFAULT_SCHEDULE,
    CronParseError,
    _parse_field,
    next_fire_time,
    parse_schedule,
)


class TestParseField:
    def test_star(self):
        assert _parse_field("*", min_v=0, max_v=59) == set(range(60))

    def test_list_and_range(self):
        assert _parse_field("1,3,10-12", min_v=0, max_v=59) == {1, 3, 10, 11, 12}

    def test_step(self):
        assert _parse_field("*/15", min_v=0, max_v=59) == {0, 15, 30, 45}

    def test_range_with_step(self):
        assert _parse_field("0-30/10", min_v=0, max_v=59) == {0, 10, 20, 30}

    def test_start_with_step(self):
        # Quartz "a/n" runs from a to the field maximum
        assert _parse_field("10/20", min_v=0, max_v=59) == {10, 30, 50}

    def test_day_of_week_7_is_sunday(self):
        assert _parse_field("7", min_v=0, max_v=6, allow_7_as_0=True) == {0}
        assert _parse_field("5-7", min_v=0, max_v=6, allow_7_as_0=True) == {5, 6, 0}

    @pytest.mark.parametrize("token", ["60", "5-1", "a", "*/0", "1-x"])
    def test_invalid(self, token):
        with pytest.raises(CronParseError):
            _parse_field(token, min_v=0, max_v=59)


class TestParseSchedule:
    def test_default(self):
        assert parse_schedule(None).expression == DEFAULT_SCHEDULE
        assert parse_schedule("  ").expression == DEFAULT_SCHEDULE

    def test_interval(self):
        schedule = parse_schedule("every 30s")
        assert schedule.every_s == 30
        assert schedule.cron is None
        assert parse_schedule("every 2m").every_s == 120
        assert parse_schedule("EVERY 1 h").every_s == 3600

    def test_zero_interval(self):
        with pytest.raises(CronParseError):
            parse_schedule("every 0s")

    def test_wrong_field_count(self):
        with pytest.raises(CronParseError, match="5, 6 or 7"):
            parse_schedule("* * * *")

    def test_out_of_range(self):
        with pytest.raises(CronParseError):
            parse_schedule("61 * * * *")

    def test_quartz_drops_seconds(self):
        schedule = parse_schedule("0 0/10 * * * ?")
        assert schedule.cron.minutes == frozenset({0, 10, 20, 30, 40, 50})
        assert schedule.cron.dow_any

    def test_quartz_weekday_numbers(self):
        # Quartz 2 is Monday
        assert parse_schedule("0 0 12 ? * 2").cron.dow == frozenset({1})

    def test_weekday_names(self):
        assert parse_schedule("0 9 * * MON-FRI").cron.dow == frozenset({1, 2, 3, 4, 5})


class TestNextFire:
    NOW = datetime(2024, 1, 15, 10, 32, 30, tzinfo=UTC)  # a Monday

    def test_every_five_minutes(self):
        assert next_fire_time("*/5 * * * *", now=self.NOW) == datetime(2024, 1, 15, 10, 35, tzinfo=UTC)

    def test_strictly_after_now(self):
        now = datetime(2024, 1, 15, 10, 35, tzinfo=UTC)
        assert next_fire_time("*/5 * * * *", now=now) == datetime(2024, 1, 15, 10, 40, tzinfo=UTC)

    def test_interval(self):
        assert next_fire_time("every 30s", now=self.NOW) == self.NOW + timedelta(seconds=30)

    def test_quartz(self):
        assert next_fire_time("0 0/10 * * * ?", now=self.NOW) == datetime(2024, 1, 15, 10, 40, tzinfo=UTC)

    def test_quartz_weekdays_by_name(self):
        saturday = datetime(2024, 1, 13, 12, 0, tzinfo=UTC)
        assert next_fire_time("0 30 9 ? * MON-FRI", now=saturday) == datetime(2024, 1, 15, 9, 30, tzinfo=UTC)

    def test_quartz_weekday_number(self):
        after_noon = datetime(2024, 1, 15, 13, 0, tzinfo=UTC)
        assert next_fire_time("0 0 12 ? * 2", now=after_noon) == datetime(2024, 1, 22, 12, 0, tzinfo=UTC)

    def test_dom_or_dow(self):
        # Either the 1st of the month or a Monday
        tuesday = datetime(2024, 1, 2, 0, 0, tzinfo=UTC)
        assert next_fire_time("0 0 1 * 1", now=tuesday) == datetime(2024, 1, 8, 0, 0, tzinfo=UTC)

    def test_timezone(self):
        fire = next_fire_time("0 9 * * *", now=datetime(2024, 1, 15, 12, 0, tzinfo=UTC), timezone="America/New_York")
        assert fire == datetime(2024, 1, 15, 9, 0, tzinfo=ZoneInfo("America/New_York"))
        assert fire == datetime(2024, 1, 15, 14, 0, tzinfo=UTC)

    def test_naive_now_is_utc(self):
        assert next_fire_time("0 * * * *", now=datetime(2024, 1, 15, 10, 5)) == datetime(2024, 1, 15, 11, 0, tzinfo=UTC)

    def test_impossible_date(self):
        with pytest.raises(CronParseError):
            next_fire_time("0 0 30 2 *", now=self.NOW)
