"""FastAPI application: entry point for the homeschool scheduling service."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import uvicorn
from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from homeschool.config import settings
from homeschool.domain.bus import EventBus
from homeschool.domain.errors import InvalidInput, SchedulingError
from homeschool.domain.events import BlockedTimeChanged, LessonScheduled
from homeschool.domain.handlers import HandlerRegistry
from homeschool.domain.models import (
    BatchValidationItem,
    BlockedInterval,
    CreateBlockedIntervalRequest,
    CreateLessonRequest,
    GenerateScheduleRequest,
    LessonRecord,
    LessonWindowRequest,
    ScanLessonsRequest,
    ScanSummary,
    ScheduledDate,
    SchoolYearConfig,
    SchoolYearConfigInput,
    TimeWindow,
    VacationPeriod,
    VacationPeriodInput,
    ValidationResponse,
)
from homeschool.repos.memory import (
    BlockedIntervalRepository,
    LessonRepository,
    SchoolCalendarRepository,
    create_seeded_repositories,
)
from homeschool.services.availability import WEEKEND, find_available_slots, group_by_date
from homeschool.services.conflicts import load_blocked_intervals
from homeschool.services.school_year import (
    count_school_days,
    generate_schedule,
    get_scheduled_dates,
    next_school_day,
)
from homeschool.services.validation import (
    scan_lesson_conflicts,
    validate_batch,
    validate_lesson_window,
)
from homeschool.services.windows import describe_validation_error, normalize_request

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version=settings.app_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
if settings.seed_organization_id:
    blocked_repo, lesson_repo = create_seeded_repositories(settings.seed_organization_id)
else:
    blocked_repo, lesson_repo = BlockedIntervalRepository(), LessonRepository()
calendar_repo = SchoolCalendarRepository()

handler_registry = HandlerRegistry(
    bus=event_bus,
    blocked_repo=blocked_repo,
    lesson_repo=lesson_repo,
)


# ── Error handling ────────────────────────────────────────────────────


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "details": exc.details},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Flatten FastAPI validation errors into ``{"errors": {field: [messages]}}``."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = list(error.get("loc", []))
        if len(loc) > 1 and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        field_name = " -> ".join(str(p) for p in loc).replace("_", " ").title()
        if error.get("type") == "missing":
            message = f"{field_name} is required."
        else:
            message = f"{field_name}: {error.get('msg', 'Invalid value')}"
        errors.setdefault(field_name, []).append(message)
    return JSONResponse(
        status_code=422,
        content={"errors": errors},
    )


def _check_range(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise InvalidInput("end_date must not be before start_date")
    if (end_date - start_date).days + 1 > settings.max_calendar_range_days:
        raise InvalidInput(
            f"Date range is limited to {settings.max_calendar_range_days} days"
        )


# ── Routes: conflict validation ───────────────────────────────────────


@app.post(
    "/organizations/{organization_id}/lessons/validate",
    response_model=ValidationResponse,
)
def validate_lesson(
    organization_id: str, payload: Any = Body(default=None)
) -> ValidationResponse:
    """Check a proposed lesson time against blocked work time and the student's lessons."""
    request = normalize_request(payload)
    result = validate_lesson_window(organization_id, request, blocked_repo, lesson_repo)
    return ValidationResponse.from_result(result)


@app.post(
    "/organizations/{organization_id}/lessons/validate-batch",
    response_model=list[BatchValidationItem],
)
def validate_lessons_batch(
    organization_id: str, payload: Any = Body(default=None)
) -> list[BatchValidationItem]:
    """Validate ``{"lessons": [...]}``, e.g. every occurrence of a recurring lesson."""
    lessons = payload.get("lessons") if isinstance(payload, dict) else None
    if not isinstance(lessons, list) or not lessons:
        raise InvalidInput("Request body must contain a non-empty 'lessons' list")

    results = validate_batch(organization_id, lessons, blocked_repo, lesson_repo)
    return [
        BatchValidationItem(lesson_index=index, result=ValidationResponse.from_result(result))
        for index, result in enumerate(results)
    ]


@app.post(
    "/organizations/{organization_id}/conflicts/scan-lessons",
    response_model=ScanSummary,
)
def scan_lessons(organization_id: str, body: ScanLessonsRequest | None = None) -> ScanSummary:
    """Refresh the stored conflict status of the organization's lessons."""
    body = body or ScanLessonsRequest()
    return scan_lesson_conflicts(
        organization_id,
        blocked_repo,
        lesson_repo,
        after=body.after_date,
        kid_id=body.kid_id,
    )


@app.get("/organizations/{organization_id}/available-slots")
def available_slots(
    organization_id: str,
    start_date: date,
    end_date: date,
    duration: int = settings.slot_duration_minutes,
    start_hour: int = settings.slot_start_hour,
    end_hour: int = settings.slot_end_hour,
    exclude_weekends: bool = True,
) -> dict:
    """Hourly slots in the date range that avoid the organization's blocked time."""
    _check_range(start_date, end_date)
    slots = find_available_slots(
        load_blocked_intervals(organization_id, blocked_repo),
        start_date,
        end_date,
        duration_minutes=duration,
        start_hour=start_hour,
        end_hour=end_hour,
        exclude_weekdays=WEEKEND if exclude_weekends else frozenset(),
    )
    return {
        "totalSlots": len(slots),
        "slots": slots,
        "slotsByDate": group_by_date(slots),
        "parameters": {
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "duration": duration,
            "start_hour": start_hour,
            "end_hour": end_hour,
            "exclude_weekends": exclude_weekends,
        },
    }


# ── Routes: lessons and blocked time ──────────────────────────────────


@app.get("/organizations/{organization_id}/lessons", response_model=list[LessonRecord])
def list_lessons(organization_id: str, kid_id: str | None = None) -> list[LessonRecord]:
    if kid_id is not None:
        return lesson_repo.list_for_kid(organization_id, kid_id)
    return lesson_repo.list_for_organization(organization_id)


@app.post(
    "/organizations/{organization_id}/lessons",
    response_model=LessonRecord,
    status_code=201,
)
def create_lesson(organization_id: str, body: CreateLessonRequest) -> LessonRecord:
    """Store a lesson unless its time is completely blocked by work events."""
    request = LessonWindowRequest(
        window=TimeWindow(start_time=body.start_time, end_time=body.end_time),
        kid_id=body.kid_id,
    )
    result = validate_lesson_window(organization_id, request, blocked_repo, lesson_repo)
    if not result.can_schedule:
        raise HTTPException(status_code=409, detail=result.summary)

    lesson = LessonRecord(
        organization_id=organization_id,
        kid_id=body.kid_id,
        title=body.title,
        start_time=body.start_time,
        end_time=body.end_time,
    )
    lesson_repo.add(lesson)

    # Records the lesson's conflict status via the handlers
    event_bus.publish(LessonScheduled(organization_id=organization_id, lesson_id=lesson.id))
    return lesson


@app.get(
    "/organizations/{organization_id}/blocked-intervals",
    response_model=list[BlockedInterval],
)
def list_blocked_intervals(organization_id: str) -> list[BlockedInterval]:
    return blocked_repo.list_for_organization(organization_id)


@app.post(
    "/organizations/{organization_id}/blocked-intervals",
    response_model=BlockedInterval,
    status_code=201,
)
def create_blocked_interval(
    organization_id: str, body: CreateBlockedIntervalRequest
) -> BlockedInterval:
    interval = BlockedInterval(organization_id=organization_id, **body.model_dump())
    blocked_repo.add(interval)
    event_bus.publish(BlockedTimeChanged(organization_id=organization_id))
    return interval


@app.delete("/organizations/{organization_id}/blocked-intervals/{interval_id}")
def deactivate_blocked_interval(organization_id: str, interval_id: str) -> dict:
    interval = blocked_repo.get(interval_id)
    if interval is None or interval.organization_id != organization_id:
        raise HTTPException(status_code=404, detail="Blocked interval not found")
    blocked_repo.deactivate(interval_id)
    event_bus.publish(BlockedTimeChanged(organization_id=organization_id))
    return {"status": "deactivated"}


# ── Routes: school calendar ───────────────────────────────────────────


@app.get("/organizations/{organization_id}/school-year", response_model=SchoolYearConfig)
def get_school_year(organization_id: str) -> SchoolYearConfig:
    config = calendar_repo.get_config(organization_id)
    if config is None:
        raise HTTPException(status_code=404, detail="School year not configured")
    return config


@app.put("/organizations/{organization_id}/school-year", response_model=SchoolYearConfig)
def put_school_year(organization_id: str, body: SchoolYearConfigInput) -> SchoolYearConfig:
    fields = body.model_dump(exclude_none=True)
    try:
        config = SchoolYearConfig(organization_id=organization_id, **fields)
    except ValidationError as exc:
        raise InvalidInput(
            "Invalid school year configuration", details=describe_validation_error(exc)
        ) from exc
    calendar_repo.set_config(config)
    return config


@app.get("/organizations/{organization_id}/vacations", response_model=list[VacationPeriod])
def list_vacations(organization_id: str) -> list[VacationPeriod]:
    return calendar_repo.list_vacations(organization_id)


@app.post(
    "/organizations/{organization_id}/vacations",
    response_model=VacationPeriod,
    status_code=201,
)
def create_vacation(organization_id: str, body: VacationPeriodInput) -> VacationPeriod:
    try:
        vacation = VacationPeriod(organization_id=organization_id, **body.model_dump())
    except ValidationError as exc:
        raise InvalidInput(
            "Invalid vacation period", details=describe_validation_error(exc)
        ) from exc
    calendar_repo.add_vacation(vacation)
    return vacation


@app.get(
    "/organizations/{organization_id}/school-days",
    response_model=list[ScheduledDate],
)
def school_days(organization_id: str, start_date: date, end_date: date) -> list[ScheduledDate]:
    """Classify every date in the range as school day, weekend or vacation."""
    _check_range(start_date, end_date)
    return get_scheduled_dates(
        calendar_repo.get_config(organization_id),
        calendar_repo.list_vacations(organization_id),
        start_date,
        end_date,
    )


@app.get("/organizations/{organization_id}/school-days/next")
def school_days_next(organization_id: str, after: date) -> dict:
    found = next_school_day(
        calendar_repo.get_config(organization_id),
        calendar_repo.list_vacations(organization_id),
        after,
    )
    return {"after": after.isoformat(), "next_school_day": found.isoformat() if found else None}


@app.get("/organizations/{organization_id}/school-days/count")
def school_days_count(organization_id: str, start_date: date, end_date: date) -> dict:
    _check_range(start_date, end_date)
    count = count_school_days(
        calendar_repo.get_config(organization_id),
        calendar_repo.list_vacations(organization_id),
        start_date,
        end_date,
    )
    return {"start_date": start_date.isoformat(), "end_date": end_date.isoformat(), "count": count}


@app.post(
    "/organizations/{organization_id}/school-days/plan",
    response_model=list[ScheduledDate],
)
def plan_school_days(organization_id: str, body: GenerateScheduleRequest) -> list[ScheduledDate]:
    """Spread a number of lessons over the next available school days."""
    return generate_schedule(
        calendar_repo.get_config(organization_id),
        calendar_repo.list_vacations(organization_id),
        body.start_date,
        body.number_of_lessons,
        specific_days=body.specific_days,
    )


# ── Routes: health ────────────────────────────────────────────────────


@app.get("/health")
def health_check() -> dict:
    return {"status": "healthy", "service": settings.app_name, "version": settings.app_version}


if __name__ == "__main__":
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    uvicorn.run(
        "homeschool.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )
