"""Service for detecting lesson conflicts with blocked work time and other lessons."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol, Sequence, TypeVar

from homeschool.domain.errors import ReferenceDataUnavailable
from homeschool.domain.models import (
    BlockedInterval,
    BlockedTimeConflicts,
    BlockingSlot,
    BlockType,
    ConflictSeverity,
    LessonRecord,
    TimeWindow,
)
from homeschool.repos.memory import BlockedIntervalRepository, LessonRepository

logger = logging.getLogger(__name__)

SEVERITY_RANK = {
    ConflictSeverity.NONE: 0,
    ConflictSeverity.WARNING: 1,
    ConflictSeverity.FULL: 2,
}


class _Timed(Protocol):
    start_time: datetime
    end_time: datetime


T = TypeVar("T", bound=_Timed)


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Strict overlap: touching boundaries (end == start) do not conflict."""
    return start < other_end and other_start < end


def find_overlapping(start: datetime, end: datetime, records: Sequence[T]) -> list[T]:
    """Return the records whose time range overlaps ``[start, end)``, in input order."""
    return [r for r in records if overlaps(start, end, r.start_time, r.end_time)]


def overlap_minutes(window: TimeWindow, start: datetime, end: datetime) -> float:
    if not overlaps(window.start_time, window.end_time, start, end):
        return 0.0
    overlap = min(window.end_time, end) - max(window.start_time, start)
    return overlap.total_seconds() / 60


def overlap_percentage(window: TimeWindow, start: datetime, end: datetime) -> int:
    """Share of the window covered by ``[start, end)``, rounded to a whole percent."""
    minutes = overlap_minutes(window, start, end)
    if minutes == 0:
        return 0
    return round(minutes / window.duration_minutes * 100)


def max_severity(severities: Sequence[ConflictSeverity]) -> ConflictSeverity:
    return max(severities, key=SEVERITY_RANK.__getitem__, default=ConflictSeverity.NONE)


# ---------------------------------------------------------------------------
# Blocked time
# ---------------------------------------------------------------------------


def interval_severity(window: TimeWindow, interval: BlockedInterval) -> ConflictSeverity:
    """Severity contributed by a single blocked interval.

    Only a ``full`` block that covers the whole window is a hard block; any
    other overlap is advisory. Coverage is judged per interval, never as the
    union of several intervals.
    """
    if not overlaps(window.start_time, window.end_time, interval.start_time, interval.end_time):
        return ConflictSeverity.NONE
    covers = interval.start_time <= window.start_time and interval.end_time >= window.end_time
    if interval.block_type == BlockType.FULL and covers:
        return ConflictSeverity.FULL
    return ConflictSeverity.WARNING


def classify_blocked_time(
    window: TimeWindow, intervals: Sequence[BlockedInterval]
) -> BlockedTimeConflicts:
    """Report every interval overlapping *window* and the worst severity among them."""
    slots = [
        BlockingSlot(
            id=interval.id,
            title=interval.title,
            start_time=interval.start_time,
            end_time=interval.end_time,
            block_type=interval.block_type,
            source_type=interval.source_type,
            description=interval.description,
            severity=interval_severity(window, interval),
            overlap_minutes=overlap_minutes(window, interval.start_time, interval.end_time),
            overlap_percentage=overlap_percentage(window, interval.start_time, interval.end_time),
        )
        for interval in find_overlapping(window.start_time, window.end_time, intervals)
    ]
    if not slots:
        return BlockedTimeConflicts()

    severity = max_severity([s.severity for s in slots])
    return BlockedTimeConflicts(
        has_conflict=True,
        conflict_severity=severity,
        overlapping_intervals=slots,
        conflict_message=_conflict_message(slots, severity),
    )


def load_blocked_intervals(
    organization_id: str, repo: BlockedIntervalRepository
) -> list[BlockedInterval]:
    """Active blocked intervals for the organization, or ReferenceDataUnavailable."""
    try:
        intervals = repo.list_for_organization(organization_id)
    except Exception as exc:
        logger.exception("Failed to load blocked time for organization %s", organization_id)
        raise ReferenceDataUnavailable(
            "Blocked time could not be loaded", details=str(exc)
        ) from exc
    return intervals


def check_blocked_time(
    organization_id: str,
    window: TimeWindow,
    repo: BlockedIntervalRepository,
) -> BlockedTimeConflicts:
    """Load the organization's active blocked intervals and classify *window*."""
    return classify_blocked_time(window, load_blocked_intervals(organization_id, repo))


def _conflict_message(slots: list[BlockingSlot], severity: ConflictSeverity) -> str:
    first = slots[0]
    if len(slots) == 1:
        if severity == ConflictSeverity.FULL:
            return f"This time is completely blocked by: {first.title}"
        return (
            f"This time partially conflicts with: {first.title} "
            f"({first.overlap_percentage}% overlap)"
        )
    if severity == ConflictSeverity.FULL:
        return f"This time is completely blocked by {len(slots)} events"
    return f"This time conflicts with {len(slots)} blocked time slots"


# ---------------------------------------------------------------------------
# Other lessons
# ---------------------------------------------------------------------------


def find_lesson_conflicts(
    window: TimeWindow,
    lessons: Sequence[LessonRecord],
    exclude_lesson_id: str | None = None,
) -> list[LessonRecord]:
    """Lessons overlapping *window*, skipping the lesson being updated."""
    candidates = [lesson for lesson in lessons if lesson.id != exclude_lesson_id]
    return find_overlapping(window.start_time, window.end_time, candidates)


def check_lesson_overlaps(
    organization_id: str,
    kid_id: str | None,
    window: TimeWindow,
    repo: LessonRepository,
    exclude_lesson_id: str | None = None,
) -> list[LessonRecord]:
    """Return the student's lessons overlapping *window*; no student means no conflicts."""
    if kid_id is None:
        return []
    try:
        lessons = repo.list_for_kid(organization_id, kid_id)
    except Exception as exc:
        logger.exception("Failed to load lessons for kid %s", kid_id)
        raise ReferenceDataUnavailable("Lessons could not be loaded", details=str(exc)) from exc
    return find_lesson_conflicts(window, lessons, exclude_lesson_id)
