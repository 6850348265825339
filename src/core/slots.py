"""Slot arithmetic - occupied and free 30-minute calendar units.

Pure functions: the repository loads rows, these functions turn them
into ``"HH:MM"`` labels keyed by ISO date.
"""

import calendar
import math
from collections import defaultdict
from collections.abc import Iterable, Iterator
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from src.contracts.appointment import Appointment, BusinessHours

DEFAULT_SLOT_MINUTES = 30


def month_date_range(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month (both inclusive).

    Raises:
        ValueError: If year or month is out of range.
    """
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    if not 1 <= year <= 9999:
        raise ValueError("year must be between 1 and 9999")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def lookback_start(first_day: date) -> date:
    """First day to query so bookings running past midnight into ``first_day`` are seen."""
    if first_day == date.min:
        return first_day
    return first_day - timedelta(days=1)


def to_local(value: datetime, tz: ZoneInfo) -> datetime:
    """Express a timestamp in business time; naive values are already local."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def expand_slots(
    start: datetime,
    duration_minutes: int,
    tz: ZoneInfo,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
) -> Iterator[tuple[str, str]]:
    """Yield ``(iso_date, "HH:MM")`` for every slot a booking touches.

    The first slot is the start rounded down to the slot boundary. A
    partial slot at the end still blocks the whole unit.
    """
    local = to_local(start, tz)
    offset = timedelta(
        minutes=(local.hour * 60 + local.minute) % slot_minutes,
        seconds=local.second,
        microseconds=local.microsecond,
    )
    floored = local - offset
    covered = offset.total_seconds() / 60 + duration_minutes
    step = timedelta(minutes=slot_minutes)

    for i in range(math.ceil(covered / slot_minutes) if duration_minutes > 0 else 0):
        current = floored + i * step
        yield current.date().isoformat(), current.strftime("%H:%M")


def aggregate_occupied_slots(
    appointments: Iterable[Appointment],
    tz: ZoneInfo,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
    first_day: date | None = None,
    last_day: date | None = None,
) -> dict[str, list[str]]:
    """Union of the slots blocked by active appointments, per date.

    Args:
        appointments: Appointments loaded for the period.
        tz: Business timezone used for dates and labels.
        slot_minutes: Slot size.
        first_day: Drop dates before this one, if given.
        last_day: Drop dates after this one, if given.

    Returns:
        ISO date -> sorted, de-duplicated ``"HH:MM"`` labels.
    """
    occupied: dict[str, set[str]] = defaultdict(set)
    low = first_day.isoformat() if first_day else None
    high = last_day.isoformat() if last_day else None

    for appointment in appointments:
        if not appointment.is_active:
            continue
        for day, label in expand_slots(
            appointment.start_at, appointment.duration_minutes, tz, slot_minutes
        ):
            if (low and day < low) or (high and day > high):
                continue
            occupied[day].add(label)

    return {day: sorted(labels) for day, labels in sorted(occupied.items())}


def weekday_sunday_first(day: date) -> int:
    """Weekday number with 0 = Sunday, as stored in ``business_hours``."""
    return (day.weekday() + 1) % 7


def _overlaps(start: float, end: float, other_start: float, other_end: float) -> bool:
    return start < other_end and other_start < end


def compute_available_slots(
    day: date,
    duration_minutes: int,
    hours: BusinessHours,
    appointments: Iterable[Appointment],
    tz: ZoneInfo,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
) -> list[str]:
    """Start times on ``day`` where a service of ``duration_minutes`` fits.

    A candidate must end by closing time and may not overlap the break
    or any active appointment.
    """
    if not hours.is_open or duration_minutes <= 0:
        return []

    day_start = datetime.combine(day, time.min, tzinfo=tz)
    busy: list[tuple[float, float]] = []
    for appointment in appointments:
        if not appointment.is_active:
            continue
        begin = (to_local(appointment.start_at, tz) - day_start).total_seconds() / 60
        busy.append((begin, begin + appointment.duration_minutes))

    pause = hours.break_window
    available = []

    for minute in range(
        hours.open_minutes, hours.close_minutes - duration_minutes + 1, slot_minutes
    ):
        end = minute + duration_minutes
        if pause and _overlaps(minute, end, *pause):
            continue
        if any(_overlaps(minute, end, b_start, b_end) for b_start, b_end in busy):
            continue
        available.append(f"{minute // 60:02d}:{minute % 60:02d}")

    return available
