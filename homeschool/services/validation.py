"""Combine blocked-time and lesson checks into a single scheduling decision."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Sequence

from homeschool.domain.errors import InvalidInput
from homeschool.domain.models import (
    BlockedTimeConflicts,
    ConflictSeverity,
    LessonRecord,
    LessonWindowRequest,
    ScanSummary,
    TimeWindow,
    ValidationResult,
)
from homeschool.repos.memory import BlockedIntervalRepository, LessonRepository
from homeschool.services.conflicts import check_blocked_time, check_lesson_overlaps
from homeschool.services.windows import normalize_request

logger = logging.getLogger(__name__)

SAFE_SUMMARY = "No conflicts - safe to schedule"
WARNING_SUMMARY = "Can schedule with warnings"


def aggregate(
    blocked: BlockedTimeConflicts, lesson_conflicts: Sequence[LessonRecord]
) -> ValidationResult:
    """Merge the two checker outputs. A full block always prevents scheduling."""
    can_schedule = blocked.conflict_severity != ConflictSeverity.FULL
    has_conflict = blocked.conflict_severity != ConflictSeverity.NONE or len(lesson_conflicts) > 0

    warnings: list[str] = []
    for slot in blocked.overlapping_intervals:
        if slot.severity == ConflictSeverity.WARNING:
            warnings.append(
                f"Partially conflicts with {slot.title} ({slot.overlap_percentage}% overlap)"
            )
    for lesson in lesson_conflicts:
        warnings.append(f"Overlaps existing lesson: {lesson.title}")

    result = ValidationResult(
        valid=can_schedule,
        has_conflict=has_conflict,
        can_schedule=can_schedule,
        blocked_time_conflicts=blocked,
        lesson_conflicts=list(lesson_conflicts),
        warnings=warnings,
        summary="",
    )
    result.summary = summarize(result)
    return result


def summarize(result: ValidationResult) -> str:
    if result.can_schedule:
        return WARNING_SUMMARY if result.has_conflict else SAFE_SUMMARY

    reasons: list[str] = []
    if result.blocked_time_conflicts.conflict_severity == ConflictSeverity.FULL:
        reasons.append("time is completely blocked by work events")
    if result.lesson_conflicts:
        reasons.append(f"conflicts with {len(result.lesson_conflicts)} existing lesson(s)")
    return f"Cannot schedule: {' and '.join(reasons)}"


def validate_lesson_window(
    organization_id: str,
    request: LessonWindowRequest,
    blocked_repo: BlockedIntervalRepository,
    lesson_repo: LessonRepository,
) -> ValidationResult:
    """Check a normalized lesson window against blocked time and the student's lessons."""
    blocked = check_blocked_time(organization_id, request.window, blocked_repo)
    lessons = check_lesson_overlaps(
        organization_id,
        request.kid_id,
        request.window,
        lesson_repo,
        exclude_lesson_id=request.lesson_id,
    )
    result = aggregate(blocked, lessons)
    logger.debug(
        "Validated %s-%s for org %s: %s",
        request.window.start_time.isoformat(),
        request.window.end_time.isoformat(),
        organization_id,
        result.summary,
    )
    return result


def validate_batch(
    organization_id: str,
    payloads: Sequence[Any],
    blocked_repo: BlockedIntervalRepository,
    lesson_repo: LessonRepository,
) -> list[ValidationResult]:
    """Validate several windows (e.g. a recurring lesson) against the same data.

    Every payload is normalized before any check runs, so one bad item fails
    the whole batch with its index in the error details.
    """
    requests: list[LessonWindowRequest] = []
    for index, payload in enumerate(payloads):
        try:
            requests.append(normalize_request(payload))
        except InvalidInput as exc:
            raise InvalidInput(
                f"Lesson {index}: {exc.message}",
                details={"lessonIndex": index, "details": exc.details},
            ) from exc

    return [
        validate_lesson_window(organization_id, request, blocked_repo, lesson_repo)
        for request in requests
    ]


# ---------------------------------------------------------------------------
# Stored conflict status
# ---------------------------------------------------------------------------


def apply_conflict_status(lesson: LessonRecord, result: ValidationResult) -> bool:
    """Copy a validation result onto a stored lesson. Returns True if anything changed."""
    severity = result.blocked_time_conflicts.conflict_severity
    if severity == ConflictSeverity.NONE:
        severity = ConflictSeverity.WARNING if result.lesson_conflicts else None

    new_state = (
        result.has_conflict,
        severity,
        [slot.id for slot in result.blocked_time_conflicts.overlapping_intervals],
        [other.id for other in result.lesson_conflicts],
    )
    old_state = (
        lesson.has_conflict,
        lesson.conflict_severity,
        lesson.conflicting_interval_ids,
        lesson.conflicting_lesson_ids,
    )
    if new_state == old_state:
        return False

    (
        lesson.has_conflict,
        lesson.conflict_severity,
        lesson.conflicting_interval_ids,
        lesson.conflicting_lesson_ids,
    ) = new_state
    return True


def scan_lesson_conflicts(
    organization_id: str,
    blocked_repo: BlockedIntervalRepository,
    lesson_repo: LessonRepository,
    after: datetime | None = None,
    kid_id: str | None = None,
) -> ScanSummary:
    """Re-validate stored lessons and refresh their conflict status.

    Run after blocked time changes so lessons created earlier pick up new
    work events.
    """
    summary = ScanSummary()
    for lesson in lesson_repo.list_for_organization(organization_id):
        if after is not None and lesson.start_time < after:
            continue
        if kid_id is not None and lesson.kid_id != kid_id:
            continue

        request = LessonWindowRequest(
            window=TimeWindow(start_time=lesson.start_time, end_time=lesson.end_time),
            kid_id=lesson.kid_id,
            lesson_id=lesson.id,
        )
        result = validate_lesson_window(organization_id, request, blocked_repo, lesson_repo)
        summary.scanned += 1
        if apply_conflict_status(lesson, result):
            summary.updated += 1
        if result.has_conflict:
            summary.conflicts_found += 1

    logger.info(
        "Scanned %d lessons for org %s: %d updated, %d with conflicts",
        summary.scanned,
        organization_id,
        summary.updated,
        summary.conflicts_found,
    )
    return summary
