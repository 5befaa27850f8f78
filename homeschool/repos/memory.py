"""In-memory repositories for blocked time, lessons and school calendars."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from homeschool.domain.models import (
    BlockedInterval,
    BlockType,
    LessonRecord,
    SchoolYearConfig,
    VacationPeriod,
)


class BlockedIntervalRepository:
    """Dict-backed store for BlockedInterval instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, BlockedInterval] = {}

    def add(self, interval: BlockedInterval) -> None:
        self._store[interval.id] = interval

    def get(self, interval_id: str) -> BlockedInterval | None:
        return self._store.get(interval_id)

    def list_for_organization(
        self, organization_id: str, include_inactive: bool = False
    ) -> list[BlockedInterval]:
        return [
            i
            for i in self._store.values()
            if i.organization_id == organization_id
            and (include_inactive or i.is_active)
        ]

    def deactivate(self, interval_id: str) -> None:
        interval = self._store.get(interval_id)
        if interval is not None:
            interval.is_active = False


class LessonRepository:
    """Dict-backed store for LessonRecord instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, LessonRecord] = {}

    def add(self, lesson: LessonRecord) -> None:
        self._store[lesson.id] = lesson

    def get(self, lesson_id: str) -> LessonRecord | None:
        return self._store.get(lesson_id)

    def list_for_organization(self, organization_id: str) -> list[LessonRecord]:
        return [
            lesson
            for lesson in self._store.values()
            if lesson.organization_id == organization_id
        ]

    def list_for_kid(self, organization_id: str, kid_id: str) -> list[LessonRecord]:
        """Return a student's lessons in insertion order."""
        return [
            lesson
            for lesson in self._store.values()
            if lesson.organization_id == organization_id and lesson.kid_id == kid_id
        ]

    def delete(self, lesson_id: str) -> None:
        self._store.pop(lesson_id, None)


class SchoolCalendarRepository:
    """Per-organization school-year config plus a list of vacation periods."""

    def __init__(self) -> None:
        self._configs: dict[str, SchoolYearConfig] = {}
        self._vacations: list[VacationPeriod] = []

    def get_config(self, organization_id: str) -> SchoolYearConfig | None:
        return self._configs.get(organization_id)

    def set_config(self, config: SchoolYearConfig) -> None:
        self._configs[config.organization_id] = config

    def add_vacation(self, vacation: VacationPeriod) -> None:
        self._vacations.append(vacation)

    def list_vacations(self, organization_id: str) -> list[VacationPeriod]:
        return sorted(
            [v for v in self._vacations if v.organization_id == organization_id],
            key=lambda v: v.start_date,
        )


# ---------------------------------------------------------------------------
# Seed data – a week of work blocks and lessons useful for manual testing
# ---------------------------------------------------------------------------


def _seed(
    organization_id: str,
    blocked_repo: BlockedIntervalRepository,
    lesson_repo: LessonRepository,
) -> None:
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

    # Standing 9-12 work meeting every day for a week
    for day in range(7):
        blocked_repo.add(
            BlockedInterval(
                organization_id=organization_id,
                title="Client calls",
                start_time=today + timedelta(days=day, hours=9),
                end_time=today + timedelta(days=day, hours=12),
                block_type=BlockType.FULL,
            )
        )

    blocked_repo.add(
        BlockedInterval(
            organization_id=organization_id,
            title="Tentative: team sync",
            start_time=today + timedelta(days=1, hours=14),
            end_time=today + timedelta(days=1, hours=15),
            block_type=BlockType.PARTIAL,
        )
    )

    lesson_repo.add(
        LessonRecord(
            organization_id=organization_id,
            kid_id="kid-1",
            title="Fractions review",
            start_time=today + timedelta(days=1, hours=13),
            end_time=today + timedelta(days=1, hours=14),
        )
    )


def create_seeded_repositories(
    organization_id: str,
) -> tuple[BlockedIntervalRepository, LessonRepository]:
    """Return blocked-time and lesson repositories pre-loaded with sample data."""
    blocked_repo = BlockedIntervalRepository()
    lesson_repo = LessonRepository()
    _seed(organization_id, blocked_repo, lesson_repo)
    return blocked_repo, lesson_repo
