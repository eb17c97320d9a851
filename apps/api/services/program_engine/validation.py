"""
Request validation.

validate_request() collects every problem so a caller can show them all at
once; ensure_valid() is the engine's own guard and raises.
"""

from datetime import date, timedelta
from typing import List, Optional

from .constants import (
    MAX_DURATION_WEEKS,
    MAX_TRAINING_DAYS,
    MIN_DURATION_WEEKS,
    MIN_TRAINING_DAYS,
)
from .exceptions import InputValidationError
from .models import ProgramRequest


def validate_request(request: ProgramRequest, today: Optional[date] = None) -> List[str]:
    """Return every validation error for a request (empty list = valid)."""
    today = today or date.today()
    errors = []

    if request.duration_weeks < MIN_DURATION_WEEKS:
        errors.append(f"Program duration must be at least {MIN_DURATION_WEEKS} weeks")
    elif request.duration_weeks > MAX_DURATION_WEEKS:
        errors.append(f"Program duration cannot exceed {MAX_DURATION_WEEKS} weeks")

    if not MIN_TRAINING_DAYS <= request.training_days_per_week <= MAX_TRAINING_DAYS:
        errors.append(
            f"Training days per week must be between {MIN_TRAINING_DAYS} and {MAX_TRAINING_DAYS}"
        )

    race_date = request.target_race_date
    if race_date is not None and race_date < today:
        errors.append("Target race date cannot be in the past")
    elif race_date is not None and race_date - timedelta(weeks=request.duration_weeks) < today:
        # The program ends on race day, so it would have to start in the past
        weeks_left = (race_date - today).days // 7
        errors.append(
            f"Target race date is only {weeks_left} weeks away; "
            f"a {request.duration_weeks}-week program would start in the past"
        )

    if request.current_weekly_volume is not None and request.current_weekly_volume < 0:
        errors.append("Current weekly volume cannot be negative")

    running = request.running_sessions_per_week
    if running is not None and not 1 <= running <= max(1, request.training_days_per_week):
        errors.append("Running sessions per week must be between 1 and the number of training days")

    for label, count in (
        ("Strength", request.strength_sessions_per_week),
        ("Core", request.core_sessions_per_week),
        ("Cross-training", request.cross_training_sessions_per_week),
    ):
        if count < 0 or count > MAX_TRAINING_DAYS:
            errors.append(f"{label} sessions per week must be between 0 and {MAX_TRAINING_DAYS}")

    return errors


def ensure_valid(request: ProgramRequest, today: Optional[date] = None) -> None:
    """
    Raises:
        InputValidationError: with every problem found
    """
    errors = validate_request(request, today)
    if errors:
        raise InputValidationError(errors)
