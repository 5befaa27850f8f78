"""Normalizer turning a raw validation payload into a typed lesson window."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from homeschool.domain.errors import InvalidInput
from homeschool.domain.models import LessonWindowRequest, TimeWindow, ValidateLessonRequest

REQUIRED_FIELDS = ("start_time", "end_time")


def normalize_request(payload: Any) -> LessonWindowRequest:
    """Validate ``{start_time, end_time, kid_id?, lesson_id?}`` once, at the boundary.

    Raises :class:`InvalidInput` when the payload is not an object, a required
    timestamp is missing or unparseable, or ``end_time`` is not strictly after
    ``start_time``.
    """
    if not isinstance(payload, Mapping):
        raise InvalidInput("Request body must be a JSON object")

    missing = [name for name in REQUIRED_FIELDS if payload.get(name) in (None, "")]
    if missing:
        raise InvalidInput(f"Missing required fields: {', '.join(missing)}")

    try:
        request = ValidateLessonRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidInput(
            "Invalid scheduling request", details=describe_validation_error(exc)
        ) from exc

    if request.end_time <= request.start_time:
        raise InvalidInput("end_time must be after start_time")

    return LessonWindowRequest(
        window=TimeWindow(start_time=request.start_time, end_time=request.end_time),
        kid_id=request.kid_id,
        lesson_id=request.lesson_id,
    )


def describe_validation_error(exc: ValidationError) -> list[dict[str, str]]:
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
