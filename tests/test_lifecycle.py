"""Tests for the event bus lifecycle: lesson status, rescans and conflict events."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from homeschool.domain.bus import EventBus
from homeschool.domain.events import (
    BlockedTimeChanged,
    LessonConflictDetected,
    LessonScheduled,
)
from homeschool.domain.handlers import HandlerRegistry
from homeschool.domain.models import (
    BlockedInterval,
    BlockType,
    ConflictSeverity,
    LessonRecord,
)
from homeschool.repos.memory import BlockedIntervalRepository, LessonRepository

ORG = "org-1"
_DAY = datetime(2025, 1, 6, tzinfo=timezone.utc)


@pytest.fixture()
def env():
    """Fresh bus + repos + registry for each test."""
    bus = EventBus()
    blocked_repo = BlockedIntervalRepository()
    lesson_repo = LessonRepository()

    registry = HandlerRegistry(bus=bus, blocked_repo=blocked_repo, lesson_repo=lesson_repo)

    detected: list[LessonConflictDetected] = []
    bus.subscribe(LessonConflictDetected, detected.append)

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.blocked_repo = blocked_repo
    e.lesson_repo = lesson_repo
    e.registry = registry
    e.detected = detected
    return e


def _make_lesson(start_hour: float, end_hour: float, **overrides) -> LessonRecord:
    defaults = dict(
        organization_id=ORG,
        kid_id="kid-1",
        title="Math",
        start_time=_DAY + timedelta(hours=start_hour),
        end_time=_DAY + timedelta(hours=end_hour),
    )
    defaults.update(overrides)
    return LessonRecord(**defaults)


def _make_block(start_hour: float, end_hour: float, **overrides) -> BlockedInterval:
    defaults = dict(
        organization_id=ORG,
        title="Client call",
        start_time=_DAY + timedelta(hours=start_hour),
        end_time=_DAY + timedelta(hours=end_hour),
    )
    defaults.update(overrides)
    return BlockedInterval(**defaults)


# ---------------------------------------------------------------------------
# LessonScheduled
# ---------------------------------------------------------------------------


def test_free_lesson_stays_clear(env):
    """A lesson with no overlaps keeps a clean status and fires nothing."""
    lesson = _make_lesson(13, 14)
    env.lesson_repo.add(lesson)

    env.bus.publish(LessonScheduled(organization_id=ORG, lesson_id=lesson.id))

    assert lesson.has_conflict is False
    assert lesson.conflict_severity is None
    assert env.detected == []


def test_lesson_under_partial_block_is_flagged(env):
    block = _make_block(10, 12, block_type=BlockType.PARTIAL)
    env.blocked_repo.add(block)
    lesson = _make_lesson(11, 13)
    env.lesson_repo.add(lesson)

    env.bus.publish(LessonScheduled(organization_id=ORG, lesson_id=lesson.id))

    assert lesson.has_conflict is True
    assert lesson.conflict_severity == ConflictSeverity.WARNING
    assert lesson.conflicting_interval_ids == [block.id]

    assert len(env.detected) == 1
    assert env.detected[0].lesson_id == lesson.id
    assert env.detected[0].severity == ConflictSeverity.WARNING


def test_double_booking_links_both_lessons(env):
    """The existing lesson learns about the new one as well."""
    existing = _make_lesson(10, 11, title="Reading")
    env.lesson_repo.add(existing)
    new_lesson = _make_lesson(10.5, 11.5, title="Science")
    env.lesson_repo.add(new_lesson)

    env.bus.publish(LessonScheduled(organization_id=ORG, lesson_id=new_lesson.id))

    assert new_lesson.conflicting_lesson_ids == [existing.id]
    assert new_lesson.conflict_severity == ConflictSeverity.WARNING
    assert existing.conflicting_lesson_ids == [new_lesson.id]
    assert existing.has_conflict is True
    assert existing.conflict_severity == ConflictSeverity.WARNING
    assert env.detected[0].conflicting_lesson_ids == [existing.id]


def test_other_students_lessons_do_not_conflict(env):
    env.lesson_repo.add(_make_lesson(10, 11, kid_id="kid-2"))
    lesson = _make_lesson(10, 11)
    env.lesson_repo.add(lesson)

    env.bus.publish(LessonScheduled(organization_id=ORG, lesson_id=lesson.id))

    assert lesson.has_conflict is False
    assert env.detected == []


def test_rescheduling_does_not_duplicate_links(env):
    existing = _make_lesson(10, 11)
    env.lesson_repo.add(existing)
    new_lesson = _make_lesson(10.5, 11.5)
    env.lesson_repo.add(new_lesson)

    env.bus.publish(LessonScheduled(organization_id=ORG, lesson_id=new_lesson.id))
    env.bus.publish(LessonScheduled(organization_id=ORG, lesson_id=new_lesson.id))

    assert existing.conflicting_lesson_ids == [new_lesson.id]
    assert new_lesson.conflicting_lesson_ids == [existing.id]


def test_unknown_lesson_is_ignored(env):
    env.bus.publish(LessonScheduled(organization_id=ORG, lesson_id="missing"))
    assert env.detected == []


# ---------------------------------------------------------------------------
# BlockedTimeChanged
# ---------------------------------------------------------------------------


def test_blocked_time_change_rescans_lessons(env):
    lesson = _make_lesson(10, 11)
    env.lesson_repo.add(lesson)
    block = _make_block(9, 12)
    env.blocked_repo.add(block)

    env.bus.publish(BlockedTimeChanged(organization_id=ORG))

    assert lesson.has_conflict is True
    assert lesson.conflict_severity == ConflictSeverity.FULL
    assert lesson.conflicting_interval_ids == [block.id]


def test_blocked_time_change_respects_after(env):
    earlier = _make_lesson(10, 11)
    later = _make_lesson(24 + 10, 24 + 11)
    env.lesson_repo.add(earlier)
    env.lesson_repo.add(later)
    env.blocked_repo.add(_make_block(9, 12))
    env.blocked_repo.add(_make_block(24 + 9, 24 + 12))

    env.bus.publish(BlockedTimeChanged(organization_id=ORG, after=_DAY + timedelta(hours=24)))

    assert earlier.has_conflict is False
    assert later.has_conflict is True


def test_deactivated_block_clears_lesson(env):
    lesson = _make_lesson(10, 11)
    env.lesson_repo.add(lesson)
    block = _make_block(9, 12)
    env.blocked_repo.add(block)
    env.bus.publish(BlockedTimeChanged(organization_id=ORG))

    env.blocked_repo.deactivate(block.id)
    env.bus.publish(BlockedTimeChanged(organization_id=ORG))

    assert lesson.has_conflict is False
    assert lesson.conflicting_interval_ids == []
