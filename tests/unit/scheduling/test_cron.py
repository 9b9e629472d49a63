"""Tests for compiling local report times into UTC cron expressions."""

from __future__ import annotations

from datetime import date, time

import pytest

from tallyup.core.exceptions import InvalidTimezoneError, ValidationError
from tallyup.models.schedule import Timezone
from tallyup.scheduling.cron import compile_cron, parse_cron, parse_local_time

DST_DATE = date(2026, 7, 1)
STANDARD_DATE = date(2026, 1, 15)


class TestParseLocalTime:
    def test_parses_with_and_without_seconds(self):
        assert parse_local_time("21:00:00") == time(21, 0)
        assert parse_local_time("9:05") == time(9, 5)

    def test_passes_time_through(self):
        assert parse_local_time(time(7, 30)) == time(7, 30)

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "", None, "12"])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValidationError):
            parse_local_time(value)


class TestCompileCron:
    def test_eastern_dst(self):
        assert compile_cron("21:00:00", Timezone.EASTERN, 0, DST_DATE) == "0 1 * * *"

    def test_eastern_standard(self):
        assert compile_cron("21:00:00", Timezone.EASTERN, 0, STANDARD_DATE) == "0 2 * * *"

    def test_one_minute_delay(self):
        assert compile_cron("21:00:00", Timezone.EASTERN, 1, DST_DATE) == "1 1 * * *"

    def test_delay_rolls_over_the_hour_and_day(self):
        # 23:59 + 2 min = 00:01 local, +4h
        assert compile_cron("23:59:00", Timezone.EASTERN, 2, DST_DATE) == "1 4 * * *"

    def test_other_zones(self):
        assert compile_cron("20:30", Timezone.PACIFIC, 0, DST_DATE) == "30 3 * * *"
        assert compile_cron("19:00", Timezone.HAWAII, 0, DST_DATE) == "0 5 * * *"
        assert compile_cron("06:15", "Alaska", 0, STANDARD_DATE) == "15 15 * * *"

    def test_seconds_are_ignored(self):
        assert compile_cron("21:00:45", Timezone.EASTERN, 0, DST_DATE) == "0 1 * * *"

    def test_output_always_in_range(self):
        for tz in Timezone:
            for hour in range(24):
                for delay in (0, 1, 3, 59, 61, 180):
                    for ref in (DST_DATE, STANDARD_DATE):
                        minute, utc_hour = parse_cron(compile_cron(time(hour, 58), tz, delay, ref))
                        assert 0 <= minute <= 59
                        assert 0 <= utc_hour <= 23

    def test_negative_delay_rejected(self):
        with pytest.raises(ValidationError):
            compile_cron("21:00", Timezone.EASTERN, -1, DST_DATE)

    def test_unknown_timezone_rejected(self):
        with pytest.raises(InvalidTimezoneError):
            compile_cron("21:00", "US/Samoa", 0, DST_DATE)


class TestParseCron:
    def test_round_trip_fields(self):
        assert parse_cron("5 23 * * *") == (5, 23)

    @pytest.mark.parametrize("expr", ["0 24 * * *", "60 1 * * *", "0 1 * * 1", "cron(0 1 * * ? *)"])
    def test_rejects_non_daily_or_out_of_range(self, expr):
        with pytest.raises(ValidationError):
            parse_cron(expr)
