"""School-day classification against a school year, weekly pattern and vacations.

Every function here is a pure function of the configuration and vacation list
it is handed. Dates are compared as calendar dates; a ``datetime`` argument is
reduced to its date first, so time of day never matters.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import date, datetime, timedelta

from dateutil.rrule import DAILY, rrule

from homeschool.domain.models import (
    WEEKDAYS,
    DayOfWeek,
    ScheduledDate,
    SchoolYearConfig,
    SchoolYearType,
    VacationPeriod,
)

# Indexed by date.weekday()
_DAYS_BY_INDEX = (
    DayOfWeek.MONDAY,
    DayOfWeek.TUESDAY,
    DayOfWeek.WEDNESDAY,
    DayOfWeek.THURSDAY,
    DayOfWeek.FRIDAY,
    DayOfWeek.SATURDAY,
    DayOfWeek.SUNDAY,
)

REGULAR_SCHOOL_DAY = "Regular school day"
NEXT_SCHOOL_DAY_HORIZON = 365
SCHEDULE_ATTEMPTS_PER_LESSON = 10


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def day_of_week(day: date) -> DayOfWeek:
    return _DAYS_BY_INDEX[_as_date(day).weekday()]


def iter_dates(range_start: date, range_end: date) -> list[date]:
    """Every calendar date in ``[range_start, range_end]``."""
    start, end = _as_date(range_start), _as_date(range_end)
    if end < start:
        return []
    return [dt.date() for dt in rrule(DAILY, dtstart=start, until=end)]


# ---------------------------------------------------------------------------
# Vacations
# ---------------------------------------------------------------------------


def find_vacation(vacations: Sequence[VacationPeriod], day: date) -> VacationPeriod | None:
    """First vacation period containing *day*, boundaries inclusive."""
    day = _as_date(day)
    for vacation in vacations:
        if vacation.start_date <= day <= vacation.end_date:
            return vacation
    return None


def is_vacation(vacations: Sequence[VacationPeriod], day: date) -> bool:
    return find_vacation(vacations, day) is not None


# ---------------------------------------------------------------------------
# School days
# ---------------------------------------------------------------------------


def is_within_year_round_cycle(config: SchoolYearConfig, day: date) -> bool:
    """Whether *day* falls in an "on" block of a weeks-on/weeks-off cycle.

    Only year-round calendars cycle; any other type is always "on".
    """
    if config.school_year_type != SchoolYearType.YEAR_ROUND:
        return True
    if not config.weeks_on or not config.weeks_off:
        return True

    cycle_start = config.cycle_start_date or config.start_date
    days_since_start = (_as_date(day) - cycle_start).days
    cycle_length = (config.weeks_on + config.weeks_off) * 7
    return days_since_start % cycle_length < config.weeks_on * 7


def evaluate_date(
    config: SchoolYearConfig | None,
    vacations: Sequence[VacationPeriod],
    day: date,
    specific_days: Collection[DayOfWeek] | None = None,
) -> ScheduledDate:
    """Classify *day* and record why it is or is not a school day.

    Without a config every Monday–Friday is instructional and there is no
    school-year range. *specific_days* overrides the configured weekdays.
    """
    day = _as_date(day)
    weekday = day_of_week(day)
    vacation = find_vacation(vacations, day)
    result = ScheduledDate(
        day=day,
        day_of_week=weekday,
        is_vacation=vacation is not None,
        vacation_name=vacation.name if vacation else None,
    )

    if config is not None:
        if day < config.start_date:
            result.reason = "Before school year starts"
            return result
        if day > config.end_date:
            result.reason = "After school year ends"
            return result
        instructional = (
            specific_days if specific_days is not None else config.instructional_weekdays
        )
    else:
        instructional = specific_days if specific_days is not None else WEEKDAYS

    if weekday not in instructional:
        if config is None and weekday not in WEEKDAYS:
            result.reason = "Weekend"
        else:
            result.reason = "Not a scheduled school day"
        return result

    if config is not None and not is_within_year_round_cycle(config, day):
        result.reason = "Year-round break period"
        return result

    if vacation is not None:
        result.reason = f"Vacation: {vacation.name}"
        return result

    result.is_school_day = True
    result.reason = REGULAR_SCHOOL_DAY
    return result


def is_school_day(
    config: SchoolYearConfig | None,
    vacations: Sequence[VacationPeriod],
    day: date,
) -> bool:
    return evaluate_date(config, vacations, day).is_school_day


def get_scheduled_dates(
    config: SchoolYearConfig | None,
    vacations: Sequence[VacationPeriod],
    range_start: date,
    range_end: date,
) -> list[ScheduledDate]:
    """One classification record per calendar date in the inclusive range."""
    return [evaluate_date(config, vacations, day) for day in iter_dates(range_start, range_end)]


def count_school_days(
    config: SchoolYearConfig | None,
    vacations: Sequence[VacationPeriod],
    range_start: date,
    range_end: date,
) -> int:
    return sum(1 for d in get_scheduled_dates(config, vacations, range_start, range_end) if d.is_school_day)


def next_school_day(
    config: SchoolYearConfig | None,
    vacations: Sequence[VacationPeriod],
    after: date,
    horizon_days: int = NEXT_SCHOOL_DAY_HORIZON,
) -> date | None:
    """First school day strictly after *after*, looking at most *horizon_days* ahead."""
    day = _as_date(after)
    for _ in range(horizon_days):
        day += timedelta(days=1)
        if is_school_day(config, vacations, day):
            return day
    return None


def generate_schedule(
    config: SchoolYearConfig | None,
    vacations: Sequence[VacationPeriod],
    start_date: date,
    number_of_lessons: int,
    specific_days: Collection[DayOfWeek] | None = None,
) -> list[ScheduledDate]:
    """Assign lesson numbers 1..N to consecutive school days from *start_date*.

    Gives up after ``10 * number_of_lessons`` days, so the result may be
    shorter than requested when the calendar has too few school days left.
    """
    schedule: list[ScheduledDate] = []
    day = _as_date(start_date)
    max_attempts = number_of_lessons * SCHEDULE_ATTEMPTS_PER_LESSON

    for _ in range(max_attempts):
        if len(schedule) >= number_of_lessons:
            break
        evaluated = evaluate_date(config, vacations, day, specific_days)
        if evaluated.is_school_day:
            evaluated.lesson_number = len(schedule) + 1
            schedule.append(evaluated)
        day += timedelta(days=1)

    return schedule
