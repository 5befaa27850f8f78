"""Errors raised by the scheduling core and mapped to HTTP responses in main."""

from __future__ import annotations

from typing import Any


class SchedulingError(Exception):
    """Base class for failures scoped to a single scheduling call."""

    status_code = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInput(SchedulingError):
    """Missing or malformed request field, or a window with end <= start."""

    status_code = 400


class ReferenceDataUnavailable(SchedulingError):
    """The backing store could not supply blocked intervals, lessons or settings."""

    status_code = 500
