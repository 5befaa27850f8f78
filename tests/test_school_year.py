"""Tests for school-day and vacation classification."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from homeschool.domain.models import (
    DayOfWeek,
    SchoolYearConfig,
    SchoolYearType,
    VacationPeriod,
    VacationType,
)
from homeschool.services.school_year import (
    count_school_days,
    day_of_week,
    evaluate_date,
    find_vacation,
    generate_schedule,
    get_scheduled_dates,
    is_school_day,
    is_vacation,
    is_within_year_round_cycle,
    next_school_day,
)

ORG = "org-1"


@pytest.fixture()
def config() -> SchoolYearConfig:
    return SchoolYearConfig(
        organization_id=ORG,
        start_date=date(2024, 8, 1),
        end_date=date(2025, 5, 31),
    )


@pytest.fixture()
def vacations() -> list[VacationPeriod]:
    return [
        VacationPeriod(
            organization_id=ORG,
            name="Winter Break",
            start_date=date(2024, 12, 23),
            end_date=date(2025, 1, 2),
            vacation_type=VacationType.HOLIDAY,
        )
    ]


def test_default_instructional_weekdays_are_monday_to_friday(config):
    assert config.instructional_weekdays == {
        DayOfWeek.MONDAY,
        DayOfWeek.TUESDAY,
        DayOfWeek.WEDNESDAY,
        DayOfWeek.THURSDAY,
        DayOfWeek.FRIDAY,
    }


def test_christmas_is_winter_break(config, vacations):
    assert is_school_day(config, vacations, date(2024, 12, 25)) is False
    evaluated = evaluate_date(config, vacations, date(2024, 12, 25))
    assert evaluated.is_vacation is True
    assert evaluated.vacation_name == "Winter Break"
    assert evaluated.reason == "Vacation: Winter Break"


def test_saturday_is_not_a_school_day(config, vacations):
    assert day_of_week(date(2024, 8, 3)) == DayOfWeek.SATURDAY
    assert is_school_day(config, vacations, date(2024, 8, 3)) is False
    assert evaluate_date(config, vacations, date(2024, 8, 3)).reason == "Not a scheduled school day"


def test_regular_tuesday_is_a_school_day(config, vacations):
    assert is_school_day(config, vacations, date(2024, 9, 3)) is True
    assert evaluate_date(config, vacations, date(2024, 9, 3)).reason == "Regular school day"


@pytest.mark.parametrize("boundary", [date(2024, 12, 23), date(2025, 1, 2)])
def test_vacation_boundaries_are_inclusive(config, vacations, boundary):
    assert is_vacation(vacations, boundary) is True
    assert is_school_day(config, vacations, boundary) is False


def test_day_after_vacation_is_back_to_school(config, vacations):
    # 2025-01-03 is a Friday
    assert is_vacation(vacations, date(2025, 1, 3)) is False
    assert is_school_day(config, vacations, date(2025, 1, 3)) is True


@pytest.mark.parametrize(
    "day, reason",
    [
        (date(2024, 7, 31), "Before school year starts"),
        (date(2025, 6, 2), "After school year ends"),
    ],
)
def test_dates_outside_school_year(config, vacations, day, reason):
    evaluated = evaluate_date(config, vacations, day)
    assert evaluated.is_school_day is False
    assert evaluated.reason == reason


def test_school_year_bounds_are_inclusive(config):
    # 2024-08-01 is a Thursday, 2025-05-30 a Friday
    assert is_school_day(config, [], date(2024, 8, 1)) is True
    assert is_school_day(config, [], date(2025, 5, 30)) is True


def test_time_of_day_is_ignored(config, vacations):
    late_evening = datetime(2025, 1, 2, 23, 59, tzinfo=timezone.utc)
    assert is_vacation(vacations, late_evening) is True
    assert is_school_day(config, vacations, datetime(2024, 9, 3, 18, 0)) is True


def test_custom_instructional_weekdays(vacations):
    four_day_week = SchoolYearConfig(
        organization_id=ORG,
        start_date=date(2024, 8, 1),
        end_date=date(2025, 5, 31),
        instructional_weekdays={
            DayOfWeek.MONDAY,
            DayOfWeek.TUESDAY,
            DayOfWeek.WEDNESDAY,
            DayOfWeek.THURSDAY,
        },
    )
    assert is_school_day(four_day_week, vacations, date(2024, 9, 6)) is False  # Friday
    assert is_school_day(four_day_week, vacations, date(2024, 9, 5)) is True  # Thursday


def test_without_config_weekdays_are_school_days(vacations):
    assert is_school_day(None, vacations, date(2030, 3, 4)) is True  # Monday
    assert is_school_day(None, vacations, date(2030, 3, 3)) is False  # Sunday
    assert is_school_day(None, vacations, date(2024, 12, 24)) is False


def test_overlapping_vacations_report_first_match():
    vacations = [
        VacationPeriod(
            organization_id=ORG,
            name="Holidays",
            start_date=date(2024, 12, 20),
            end_date=date(2025, 1, 5),
        ),
        VacationPeriod(
            organization_id=ORG,
            name="Christmas",
            start_date=date(2024, 12, 24),
            end_date=date(2024, 12, 26),
        ),
    ]
    assert find_vacation(vacations, date(2024, 12, 25)).name == "Holidays"


def test_vacation_end_before_start_is_rejected():
    with pytest.raises(ValueError):
        VacationPeriod(
            organization_id=ORG,
            name="Backwards",
            start_date=date(2025, 1, 2),
            end_date=date(2024, 12, 23),
        )


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------


def test_scheduled_dates_cover_every_day(config, vacations):
    dates = get_scheduled_dates(config, vacations, date(2024, 12, 20), date(2025, 1, 6))
    assert len(dates) == 18
    assert dates[0].day == date(2024, 12, 20)
    assert dates[-1].day == date(2025, 1, 6)

    by_day = {d.day: d for d in dates}
    assert by_day[date(2024, 12, 20)].is_school_day is True
    # Saturday inside the break still reports the vacation
    assert by_day[date(2024, 12, 28)].is_vacation is True
    assert by_day[date(2024, 12, 28)].vacation_name == "Winter Break"
    assert by_day[date(2024, 12, 28)].is_school_day is False
    assert by_day[date(2025, 1, 6)].is_school_day is True


def test_scheduled_dates_serialize_with_date_key(config):
    dumped = get_scheduled_dates(config, [], date(2024, 9, 3), date(2024, 9, 3))[0].model_dump(
        by_alias=True, mode="json"
    )
    assert dumped["date"] == "2024-09-03"
    assert dumped["day_of_week"] == "tuesday"


def test_empty_range_yields_no_dates(config):
    assert get_scheduled_dates(config, [], date(2024, 9, 3), date(2024, 9, 2)) == []


def test_count_school_days_in_first_full_week(config, vacations):
    # Mon 2024-09-02 .. Sun 2024-09-08
    assert count_school_days(config, vacations, date(2024, 9, 2), date(2024, 9, 8)) == 5


def test_count_school_days_across_winter_break(config, vacations):
    # Dec 16-20 (5) + Jan 3 (1); Dec 23 - Jan 2 is vacation
    assert count_school_days(config, vacations, date(2024, 12, 16), date(2025, 1, 3)) == 6


def test_next_school_day_skips_vacation_and_weekend(config, vacations):
    assert next_school_day(config, vacations, date(2024, 12, 20)) == date(2025, 1, 3)
    assert next_school_day(config, vacations, date(2024, 9, 6)) == date(2024, 9, 9)


def test_next_school_day_after_year_end_is_none(config, vacations):
    assert next_school_day(config, vacations, date(2025, 5, 31)) is None


# ---------------------------------------------------------------------------
# Year-round cycles and lesson planning
# ---------------------------------------------------------------------------


def test_year_round_cycle():
    config = SchoolYearConfig(
        organization_id=ORG,
        school_year_type=SchoolYearType.YEAR_ROUND,
        start_date=date(2024, 7, 1),  # Monday
        end_date=date(2025, 6, 30),
        weeks_on=9,
        weeks_off=3,
    )
    assert is_within_year_round_cycle(config, date(2024, 8, 30)) is True  # week 9
    assert is_within_year_round_cycle(config, date(2024, 9, 2)) is False  # week 10
    assert is_within_year_round_cycle(config, date(2024, 9, 23)) is True  # week 13
    evaluated = evaluate_date(config, [], date(2024, 9, 3))
    assert evaluated.reason == "Year-round break period"


def test_weeks_on_requires_weeks_off():
    with pytest.raises(ValueError):
        SchoolYearConfig(
            organization_id=ORG,
            start_date=date(2024, 7, 1),
            end_date=date(2025, 6, 30),
            weeks_on=9,
        )


def test_generate_schedule_numbers_school_days(config, vacations):
    schedule = generate_schedule(config, vacations, date(2024, 12, 19), 4)
    assert [d.day for d in schedule] == [
        date(2024, 12, 19),
        date(2024, 12, 20),
        date(2025, 1, 3),
        date(2025, 1, 6),
    ]
    assert [d.lesson_number for d in schedule] == [1, 2, 3, 4]


def test_generate_schedule_with_specific_days(config, vacations):
    schedule = generate_schedule(
        config,
        vacations,
        date(2024, 9, 2),
        3,
        specific_days={DayOfWeek.MONDAY, DayOfWeek.WEDNESDAY},
    )
    assert [d.day for d in schedule] == [date(2024, 9, 2), date(2024, 9, 4), date(2024, 9, 9)]


def test_generate_schedule_stops_at_year_end(config, vacations):
    schedule = generate_schedule(config, vacations, date(2025, 5, 28), 5)
    assert [d.day for d in schedule] == [date(2025, 5, 28), date(2025, 5, 29), date(2025, 5, 30)]


def test_traditional_year_ignores_cycle_settings():
    config = SchoolYearConfig(
        organization_id=ORG,
        school_year_type=SchoolYearType.TRADITIONAL,
        start_date=date(2024, 8, 5),  # Monday
        end_date=date(2025, 5, 30),
        weeks_on=1,
        weeks_off=1,
    )
    # would be an "off" week on a 1-on/1-off cycle
    assert is_within_year_round_cycle(config, date(2024, 8, 12)) is True
    evaluated = evaluate_date(config, [], date(2024, 8, 12))
    assert evaluated.is_school_day is True
    assert evaluated.reason == "Regular school day"
    assert count_school_days(config, [], date(2024, 8, 5), date(2024, 8, 18)) == 10


def test_empty_instructional_weekdays_means_no_school_days():
    config = SchoolYearConfig(
        organization_id=ORG,
        start_date=date(2024, 8, 1),
        end_date=date(2025, 5, 31),
        instructional_weekdays=set(),
    )
    assert is_school_day(config, [], date(2024, 8, 6)) is False
    assert count_school_days(config, [], date(2024, 8, 5), date(2024, 8, 11)) == 0
    assert next_school_day(config, [], date(2024, 8, 5)) is None


def test_empty_specific_days_schedules_nothing(config, vacations):
    assert generate_schedule(config, vacations, date(2024, 9, 2), 3, specific_days=set()) == []


def test_weekend_reason_without_config():
    assert evaluate_date(None, [], date(2030, 3, 3)).reason == "Weekend"  # Sunday
    # a weekday left out of specific_days is not a weekend
    assert evaluate_date(None, [], date(2030, 3, 5), {DayOfWeek.MONDAY}).reason == (
        "Not a scheduled school day"
    )
