"""Domain events emitted as lessons and blocked time change."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from homeschool.domain.models import ConflictSeverity


class LessonScheduled(BaseModel):
    """Fired when a lesson is stored (created or moved)."""

    organization_id: str
    lesson_id: str


class BlockedTimeChanged(BaseModel):
    """Fired when blocked intervals are added, synced or deactivated."""

    organization_id: str
    after: datetime | None = None


class LessonConflictDetected(BaseModel):
    """Fired when a stored lesson overlaps blocked time or another lesson."""

    organization_id: str
    lesson_id: str
    severity: ConflictSeverity
    conflicting_interval_ids: list[str]
    conflicting_lesson_ids: list[str]
