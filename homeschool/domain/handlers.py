"""Domain event handlers, wired up at application startup."""

from __future__ import annotations

import logging

from homeschool.domain.bus import EventBus
from homeschool.domain.events import (
    BlockedTimeChanged,
    LessonConflictDetected,
    LessonScheduled,
)
from homeschool.domain.models import ConflictSeverity, LessonWindowRequest, TimeWindow
from homeschool.repos.memory import BlockedIntervalRepository, LessonRepository
from homeschool.services.validation import (
    apply_conflict_status,
    scan_lesson_conflicts,
    validate_lesson_window,
)

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Keeps stored lesson conflict status in sync with blocked time and other lessons."""

    def __init__(
        self,
        bus: EventBus,
        blocked_repo: BlockedIntervalRepository,
        lesson_repo: LessonRepository,
    ) -> None:
        self.bus = bus
        self.blocked_repo = blocked_repo
        self.lesson_repo = lesson_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(LessonScheduled, self.on_lesson_scheduled)
        self.bus.subscribe(BlockedTimeChanged, self.on_blocked_time_changed)
        self.bus.subscribe(LessonConflictDetected, self.on_lesson_conflict_detected)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_lesson_scheduled(self, event: LessonScheduled) -> None:
        stored = self.lesson_repo.get(event.lesson_id)
        if stored is None:
            return

        # 1. Re-check the stored lesson, excluding itself
        request = LessonWindowRequest(
            window=TimeWindow(start_time=stored.start_time, end_time=stored.end_time),
            kid_id=stored.kid_id,
            lesson_id=stored.id,
        )
        result = validate_lesson_window(
            event.organization_id, request, self.blocked_repo, self.lesson_repo
        )

        # 2. Persist the conflict status on the lesson
        apply_conflict_status(stored, result)

        # 3. The lessons it collides with now collide with it too
        for conflict in result.lesson_conflicts:
            other = self.lesson_repo.get(conflict.id)
            if other is not None and stored.id not in other.conflicting_lesson_ids:
                other.conflicting_lesson_ids.append(stored.id)
                other.has_conflict = True
                other.conflict_severity = other.conflict_severity or ConflictSeverity.WARNING

        if stored.has_conflict and stored.conflict_severity is not None:
            self.bus.publish(
                LessonConflictDetected(
                    organization_id=event.organization_id,
                    lesson_id=stored.id,
                    severity=stored.conflict_severity,
                    conflicting_interval_ids=stored.conflicting_interval_ids,
                    conflicting_lesson_ids=stored.conflicting_lesson_ids,
                )
            )

    def on_blocked_time_changed(self, event: BlockedTimeChanged) -> None:
        scan_lesson_conflicts(
            event.organization_id,
            self.blocked_repo,
            self.lesson_repo,
            after=event.after,
        )

    def on_lesson_conflict_detected(self, event: LessonConflictDetected) -> None:
        logger.warning(
            "Lesson %s has a %s conflict (blocked: %s, lessons: %s)",
            event.lesson_id,
            event.severity,
            event.conflicting_interval_ids,
            event.conflicting_lesson_ids,
        )
