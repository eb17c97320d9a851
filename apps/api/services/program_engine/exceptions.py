"""
Program engine errors.

Every failure the engine can raise derives from ProgramEngineError so callers
can catch the family in one place. None of them are retried: every stage is
deterministic.
"""

from typing import Iterable, List


class ProgramEngineError(Exception):
    """Base class for program engine failures."""

    code = "PROGRAM_ENGINE_ERROR"


class InputValidationError(ProgramEngineError):
    """The request violates one or more validation rules."""

    code = "INVALID_PROGRAM_REQUEST"

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid program request")


class InsufficientDataError(ProgramEngineError):
    """No usable zone source."""

    code = "INSUFFICIENT_ZONE_DATA"

    def __init__(self, sources_tried: Iterable[str], reasons: Iterable[str] = ()):
        self.sources_tried: List[str] = list(sources_tried)
        self.reasons: List[str] = list(reasons)
        message = (
            "No usable training zone data. Tried: "
            + ", ".join(self.sources_tried)
            + ". Add a threshold test or a recent race result."
        )
        if self.reasons:
            message += " (" + "; ".join(self.reasons) + ")"
        super().__init__(message)


class IncompatibleZoneTypeError(ProgramEngineError):
    """The goal needs power zones but only pace data exists (or vice versa)."""

    code = "INCOMPATIBLE_ZONE_TYPE"

    def __init__(self, required: str, available: str):
        self.required = required
        self.available = available
        super().__init__(f"Goal requires {required} zones but only {available} data is available")


class MissingZoneError(ProgramEngineError):
    """A workout referenced a zone the table does not define."""

    code = "MISSING_ZONE"

    def __init__(self, zone):
        self.zone = zone
        super().__init__(f"Zone {zone!r} is not defined in the zone table")


class UnsupportedDaysPerWeekError(ProgramEngineError):
    code = "UNSUPPORTED_DAYS_PER_WEEK"

    def __init__(self, methodology: str, days_per_week: int):
        self.methodology = methodology
        self.days_per_week = days_per_week
        super().__init__(
            f"No {methodology} configuration for {days_per_week} training days per week"
        )


class ProgramTooShortError(ProgramEngineError):
    code = "PROGRAM_TOO_SHORT"

    def __init__(self, duration_weeks: int, minimum_weeks: int):
        self.duration_weeks = duration_weeks
        self.minimum_weeks = minimum_weeks
        super().__init__(
            f"A {duration_weeks}-week program cannot hold base, build, peak and taper; "
            f"minimum is {minimum_weeks} weeks"
        )


class ZoneOrderError(ProgramEngineError):
    """Zone values are not ordered by intensity."""

    code = "ZONE_ORDER_ERROR"
