"""Tests for DST windows and UTC offset resolution."""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from tallyup.core.exceptions import InvalidTimezoneError
from tallyup.models.schedule import Timezone
from tallyup.scheduling.timezones import (
    dst_window,
    first_sunday,
    is_dst,
    local_date,
    local_now,
    resolve_offset,
    to_utc,
)

SUMMER = date(2026, 7, 1)
WINTER = date(2026, 1, 15)


class TestDstWindow:
    def test_first_sunday(self):
        assert first_sunday(2026, 3) == date(2026, 3, 1)
        assert first_sunday(2025, 3) == date(2025, 3, 2)

    def test_us_rule(self):
        assert dst_window(2025) == (date(2025, 3, 9), date(2025, 11, 2))
        assert dst_window(2026) == (date(2026, 3, 8), date(2026, 11, 1))

    def test_boundaries_are_half_open(self):
        assert is_dst(Timezone.EASTERN, date(2026, 3, 8))
        assert not is_dst(Timezone.EASTERN, date(2026, 3, 7))
        assert is_dst(Timezone.EASTERN, date(2026, 10, 31))
        assert not is_dst(Timezone.EASTERN, date(2026, 11, 1))

    def test_hawaii_never_observes_dst(self):
        assert not is_dst(Timezone.HAWAII, SUMMER)


class TestResolveOffset:
    @pytest.mark.parametrize("tz", [tz for tz in Timezone if tz is not Timezone.HAWAII])
    def test_dst_shifts_by_one_hour(self, tz):
        assert resolve_offset(tz, SUMMER) - resolve_offset(tz, WINTER) == 1

    def test_hawaii_constant(self):
        assert resolve_offset(Timezone.HAWAII, SUMMER) == -10
        assert resolve_offset(Timezone.HAWAII, WINTER) == -10

    def test_known_values(self):
        assert resolve_offset(Timezone.EASTERN, SUMMER) == -4
        assert resolve_offset(Timezone.EASTERN, WINTER) == -5
        assert resolve_offset(Timezone.PACIFIC, SUMMER) == -7
        assert resolve_offset(Timezone.ALASKA, WINTER) == -9

    def test_accepts_datetime_and_names(self):
        assert resolve_offset("Central", datetime(2026, 7, 1, 12)) == -5
        assert resolve_offset("US/Mountain", WINTER) == -7

    def test_rejects_unknown_zone(self):
        with pytest.raises(InvalidTimezoneError):
            resolve_offset("Europe/Paris", SUMMER)


class TestLocalTime:
    def test_local_now_eastern_summer(self):
        now = datetime(2026, 7, 2, 1, 0, tzinfo=UTC)
        assert local_now(Timezone.EASTERN, now) == datetime(2026, 7, 1, 21, 0)
        assert local_date(Timezone.EASTERN, now) == date(2026, 7, 1)

    def test_local_now_hawaii(self):
        now = datetime(2026, 7, 1, 7, 0, tzinfo=UTC)
        assert local_now(Timezone.HAWAII, now) == datetime(2026, 6, 30, 21, 0)

    def test_naive_now_is_treated_as_utc(self):
        assert local_now(Timezone.EASTERN, datetime(2026, 1, 15, 12, 0)) == datetime(2026, 1, 15, 7, 0)

    def test_to_utc(self):
        assert to_utc(datetime(2026, 7, 1, 21, 0), Timezone.EASTERN) == datetime(2026, 7, 2, 1, 0, tzinfo=UTC)
        assert to_utc(datetime(2026, 1, 15, 21, 0), Timezone.EASTERN) == datetime(2026, 1, 16, 2, 0, tzinfo=UTC)
