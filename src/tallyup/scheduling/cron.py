"""Compile a merchant-local daily report time into a UTC cron expression."""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time

from tallyup.core.exceptions import ValidationError
from tallyup.models.schedule import Timezone
from tallyup.scheduling.timezones import resolve_offset

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_CRON_RE = re.compile(r"^(\d{1,2}) (\d{1,2}) \* \* \*$")


def parse_local_time(value: str | time) -> time:
    """Parse ``HH:MM:SS`` (seconds optional) into a time."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Report time must be HH:MM:SS, got {value!r}")
    match = _TIME_RE.match(value.strip())
    if match is None:
        raise ValidationError(f"Report time must be HH:MM:SS, got {value!r}")
    hours, minutes, seconds = int(match[1]), int(match[2]), int(match[3] or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValidationError(f"Report time out of range: {value!r}")
    return time(hours, minutes, seconds)


def compile_cron(
    local_time: str | time,
    timezone: Timezone | str,
    extra_delay_minutes: int = 0,
    reference_date: date | None = None,
) -> str:
    """Return ``"M H * * *"`` firing daily at ``local_time + extra_delay_minutes`` local.

    The UTC offset is the one in force on ``reference_date`` (today by default), so the
    expression must be recompiled after a DST change. Seconds are ignored.
    """
    if extra_delay_minutes < 0:
        raise ValidationError(f"Delay must be non-negative, got {extra_delay_minutes}")
    parsed = parse_local_time(local_time)

    total_minutes = parsed.minute + extra_delay_minutes
    hours = (parsed.hour + total_minutes // 60) % 24
    minutes = total_minutes % 60

    offset = resolve_offset(timezone, reference_date or datetime.now(UTC).date())

    # Every supported zone is west of UTC
    utc_hours = hours + abs(offset)
    if utc_hours >= 24:
        utc_hours -= 24
    elif utc_hours < 0:
        utc_hours += 24

    return f"{minutes} {utc_hours} * * *"


def parse_cron(expression: str) -> tuple[int, int]:
    """Split a daily ``"M H * * *"`` expression into (minute, hour)."""
    match = _CRON_RE.match(expression.strip()) if isinstance(expression, str) else None
    if match is None:
        raise ValidationError(f"Not a daily cron expression: {expression!r}")
    minute, hour = int(match[1]), int(match[2])
    if minute > 59 or hour > 23:
        raise ValidationError(f"Cron expression out of range: {expression!r}")
    return minute, hour
