"""Service for finding free lesson slots between blocked work time."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import date, datetime, time, timedelta, timezone

from dateutil.rrule import DAILY, rrule

from homeschool.domain.errors import InvalidInput
from homeschool.domain.models import BlockedInterval, TimeWindow
from homeschool.services.conflicts import find_overlapping

WEEKEND = frozenset({5, 6})  # date.weekday(): Saturday, Sunday


def find_available_slots(
    intervals: Sequence[BlockedInterval],
    start_date: date,
    end_date: date,
    duration_minutes: int = 60,
    start_hour: int = 8,
    end_hour: int = 17,
    exclude_weekdays: Collection[int] = WEEKEND,
) -> list[TimeWindow]:
    """Return hourly candidate windows (UTC) that avoid every active blocked interval.

    One candidate starts on each whole hour in ``[start_hour, end_hour)`` of every
    date in ``[start_date, end_date]`` whose ``weekday()`` is not excluded.
    """
    if end_date < start_date:
        raise InvalidInput("end_date must not be before start_date")
    if duration_minutes <= 0:
        raise InvalidInput("duration must be a positive number of minutes")
    if not 0 <= start_hour < end_hour <= 24:
        raise InvalidInput("start_hour and end_hour must satisfy 0 <= start_hour < end_hour <= 24")

    active = [i for i in intervals if i.is_active]
    duration = timedelta(minutes=duration_minutes)
    slots: list[TimeWindow] = []

    for day in rrule(DAILY, dtstart=start_date, until=end_date):
        if day.weekday() in exclude_weekdays:
            continue
        midnight = datetime.combine(day.date(), time.min, tzinfo=timezone.utc)
        for hour in range(start_hour, end_hour):
            slot_start = midnight + timedelta(hours=hour)
            slot_end = slot_start + duration
            if not find_overlapping(slot_start, slot_end, active):
                slots.append(TimeWindow(start_time=slot_start, end_time=slot_end))

    return slots


def group_by_date(slots: Sequence[TimeWindow]) -> dict[str, list[TimeWindow]]:
    grouped: dict[str, list[TimeWindow]] = {}
    for slot in slots:
        grouped.setdefault(slot.start_time.date().isoformat(), []).append(slot)
    return grouped
