"""Domain models for lesson scheduling and the school calendar."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class ConflictSeverity(StrEnum):
    NONE = "none"
    WARNING = "warning"
    FULL = "full"


class BlockType(StrEnum):
    FULL = "full"
    PARTIAL = "partial"


class DayOfWeek(StrEnum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class SchoolYearType(StrEnum):
    TRADITIONAL = "traditional"
    YEAR_ROUND = "year_round"
    HYBRID = "hybrid"
    CUSTOM = "custom"


class VacationType(StrEnum):
    HOLIDAY = "holiday"
    BREAK = "break"
    VACATION = "vacation"
    OTHER = "other"


WEEKDAYS = frozenset(
    {
        DayOfWeek.MONDAY,
        DayOfWeek.TUESDAY,
        DayOfWeek.WEDNESDAY,
        DayOfWeek.THURSDAY,
        DayOfWeek.FRIDAY,
    }
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare against aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]


# ---------------------------------------------------------------------------
# Scheduling models
# ---------------------------------------------------------------------------


class TimeWindow(BaseModel):
    start_time: UtcDatetime
    end_time: UtcDatetime

    @model_validator(mode="after")
    def _end_after_start(self) -> TimeWindow:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def duration_minutes(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 60


class BlockedInterval(BaseModel):
    """A synced work-calendar event that keeps lessons out of its time range."""

    id: str = Field(default_factory=_new_id)
    organization_id: str
    title: str
    start_time: UtcDatetime
    end_time: UtcDatetime
    block_type: BlockType = BlockType.FULL
    source_type: str = "work_calendar"
    description: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _end_after_start(self) -> BlockedInterval:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class LessonRecord(BaseModel):
    id: str = Field(default_factory=_new_id)
    organization_id: str
    kid_id: str | None = None
    title: str
    start_time: UtcDatetime
    end_time: UtcDatetime
    has_conflict: bool = False
    conflict_severity: ConflictSeverity | None = None
    conflicting_interval_ids: list[str] = Field(default_factory=list)
    conflicting_lesson_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _end_after_start(self) -> LessonRecord:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BlockingSlot(BaseModel):
    """One blocked interval overlapping a candidate window."""

    id: str
    title: str
    start_time: UtcDatetime
    end_time: UtcDatetime
    block_type: BlockType
    source_type: str
    description: str | None = None
    severity: ConflictSeverity
    overlap_minutes: float
    overlap_percentage: int


class BlockedTimeConflicts(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    has_conflict: bool = Field(default=False, alias="hasConflict")
    conflict_severity: ConflictSeverity = Field(
        default=ConflictSeverity.NONE, alias="conflictSeverity"
    )
    overlapping_intervals: list[BlockingSlot] = Field(
        default_factory=list, alias="overlappingIntervals"
    )
    conflict_message: str | None = Field(default=None, alias="conflictMessage")


class ValidationResult(BaseModel):
    valid: bool
    has_conflict: bool
    can_schedule: bool
    blocked_time_conflicts: BlockedTimeConflicts
    lesson_conflicts: list[LessonRecord] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    summary: str


class ScheduledDate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: date = Field(alias="date")
    day_of_week: DayOfWeek
    is_school_day: bool = False
    is_vacation: bool = False
    vacation_name: str | None = None
    reason: str | None = None
    lesson_number: int | None = None


class SchoolYearConfig(BaseModel):
    organization_id: str
    school_year_type: SchoolYearType = SchoolYearType.TRADITIONAL
    start_date: date
    end_date: date
    instructional_weekdays: set[DayOfWeek] = Field(default_factory=lambda: set(WEEKDAYS))
    weeks_on: int | None = Field(default=None, gt=0)
    weeks_off: int | None = Field(default=None, gt=0)
    cycle_start_date: date | None = None
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _check_ranges(self) -> SchoolYearConfig:
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if (self.weeks_on is None) != (self.weeks_off is None):
            raise ValueError("weeks_on and weeks_off must be given together")
        return self


class VacationPeriod(BaseModel):
    id: str = Field(default_factory=_new_id)
    organization_id: str
    name: str
    start_date: date
    end_date: date
    vacation_type: VacationType = VacationType.VACATION
    notes: str | None = None

    @model_validator(mode="after")
    def _end_not_before_start(self) -> VacationPeriod:
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class ValidateLessonRequest(BaseModel):
    """Raw validation payload; the window itself is checked by the normalizer."""

    start_time: UtcDatetime
    end_time: UtcDatetime
    kid_id: str | None = None
    lesson_id: str | None = None

    @field_validator("kid_id", "lesson_id", mode="before")
    @classmethod
    def _blank_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class LessonWindowRequest(BaseModel):
    window: TimeWindow
    kid_id: str | None = None
    lesson_id: str | None = None


class ConflictSet(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    blocked_time: BlockedTimeConflicts = Field(alias="blockedTime")
    lessons: list[LessonRecord] = Field(default_factory=list)


class ValidationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    valid: bool
    has_conflict: bool = Field(alias="hasConflict")
    can_schedule: bool = Field(alias="canSchedule")
    conflicts: ConflictSet
    warnings: list[str] = Field(default_factory=list)
    summary: str

    @classmethod
    def from_result(cls, result: ValidationResult) -> ValidationResponse:
        return cls(
            valid=result.valid,
            has_conflict=result.has_conflict,
            can_schedule=result.can_schedule,
            conflicts=ConflictSet(
                blocked_time=result.blocked_time_conflicts,
                lessons=result.lesson_conflicts,
            ),
            warnings=result.warnings,
            summary=result.summary,
        )


class BatchValidationItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lesson_index: int = Field(alias="lessonIndex")
    result: ValidationResponse


class CreateLessonRequest(BaseModel):
    title: str = Field(min_length=1)
    kid_id: str | None = None
    start_time: UtcDatetime
    end_time: UtcDatetime

    @model_validator(mode="after")
    def _end_after_start(self) -> CreateLessonRequest:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class CreateBlockedIntervalRequest(BaseModel):
    title: str = Field(min_length=1)
    start_time: UtcDatetime
    end_time: UtcDatetime
    block_type: BlockType = BlockType.FULL
    source_type: str = "manual"
    description: str | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> CreateBlockedIntervalRequest:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ScanLessonsRequest(BaseModel):
    after_date: UtcDatetime | None = None
    kid_id: str | None = None


class ScanSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scanned: int = 0
    updated: int = 0
    conflicts_found: int = Field(default=0, alias="conflictsFound")


class SchoolYearConfigInput(BaseModel):
    school_year_type: SchoolYearType = SchoolYearType.TRADITIONAL
    start_date: date
    end_date: date
    instructional_weekdays: set[DayOfWeek] | None = None
    weeks_on: int | None = Field(default=None, gt=0)
    weeks_off: int | None = Field(default=None, gt=0)
    cycle_start_date: date | None = None


class VacationPeriodInput(BaseModel):
    name: str = Field(min_length=1)
    start_date: date
    end_date: date
    vacation_type: VacationType = VacationType.VACATION
    notes: str | None = None


class GenerateScheduleRequest(BaseModel):
    start_date: date
    number_of_lessons: int = Field(gt=0, le=400)
    specific_days: set[DayOfWeek] | None = None
