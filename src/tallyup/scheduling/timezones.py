"""UTC offsets for the supported US timezones.

DST is modelled with the fixed US rule: active from the second Sunday of March
(00:00) up to, but excluding, the first Sunday of November (00:00). Hawaii never
observes DST. All functions are pure; ``now`` is always passed in or defaulted
at the call site.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Union

from tallyup.models.schedule import Timezone

# Offsets in hours while DST is NOT active
STANDARD_OFFSETS: dict[Timezone, int] = {
    Timezone.EASTERN: -5,
    Timezone.CENTRAL: -6,
    Timezone.MOUNTAIN: -7,
    Timezone.PACIFIC: -8,
    Timezone.ALASKA: -9,
    Timezone.HAWAII: -10,
}

DateLike = Union[date, datetime]


def first_sunday(year: int, month: int) -> date:
    """Day 1 of the month advanced to the next Sunday (itself if already Sunday)."""
    first = date(year, month, 1)
    return first + timedelta(days=(6 - first.weekday()) % 7)


def dst_window(year: int) -> tuple[date, date]:
    """Half-open [start, end) dates during which DST is active."""
    start = first_sunday(year, 3) + timedelta(days=7)
    end = first_sunday(year, 11)
    return start, end


def is_dst(timezone: Timezone | str, reference_date: DateLike) -> bool:
    tz = Timezone.parse(timezone)
    if not tz.observes_dst:
        return False
    ref = reference_date.date() if isinstance(reference_date, datetime) else reference_date
    start, end = dst_window(ref.year)
    return start <= ref < end


def resolve_offset(timezone: Timezone | str, reference_date: DateLike) -> int:
    """UTC offset in whole hours (negative: west of UTC) on ``reference_date``."""
    tz = Timezone.parse(timezone)
    standard = STANDARD_OFFSETS[tz]
    return standard + 1 if is_dst(tz, reference_date) else standard


def _as_utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(UTC)
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now.astimezone(UTC)


def local_now(timezone: Timezone | str, now: datetime | None = None) -> datetime:
    """Naive merchant-local wall-clock time for the UTC instant ``now``."""
    tz = Timezone.parse(timezone)
    utc = _as_utc(now).replace(tzinfo=None)
    # Decide DST on the local calendar date, not the UTC one
    approx_local = utc + timedelta(hours=STANDARD_OFFSETS[tz])
    return utc + timedelta(hours=resolve_offset(tz, approx_local.date()))


def local_date(timezone: Timezone | str, now: datetime | None = None) -> date:
    return local_now(timezone, now).date()


def to_utc(local_dt: datetime, timezone: Timezone | str) -> datetime:
    """Convert a naive merchant-local wall-clock time to an aware UTC datetime."""
    offset = resolve_offset(timezone, local_dt.date())
    return (local_dt - timedelta(hours=offset)).replace(tzinfo=UTC)
