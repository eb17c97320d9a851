"""
Program Generation API Router

Endpoints for:
- Request validation (all problems reported at once)
- Program generation from the athlete's stored zone data
- Methodology structure lookup (sessions per week for a day count)
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from core.database import get_db, get_session_factory
from core.logging import log_context
from core.exceptions import (
    InternalEngineError,
    NotFoundError,
    RequestValidationFailed,
    UnprocessableDataError,
    ValidationError,
)
from models import Athlete

from services.program_engine import (
    Auto,
    Explicit,
    ExperienceLevel,
    GoalType,
    MethodologyType,
    ProgramGenerator,
    ProgramRequest,
    SqlExerciseCatalog,
    SqlZoneSource,
    get_methodology_config,
    load_rules,
    validate_request,
)
from services.program_engine.constants import AthleteLevel
from services.program_engine.exceptions import (
    IncompatibleZoneTypeError,
    InputValidationError,
    InsufficientDataError,
    MissingZoneError,
    ProgramEngineError,
    ProgramTooShortError,
    UnsupportedDaysPerWeekError,
    ZoneOrderError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/programs", tags=["Program Generation"])


# ============ Request Models ============

class ProgramRequestBody(BaseModel):
    """Program request as sent by clients."""
    goal_type: GoalType = Field(..., description="marathon, half_marathon, 10k, 5k, fitness, cycling, skiing, custom")
    duration_weeks: int = Field(..., ge=1, le=104, description="Program length in weeks (4-52 accepted)")
    training_days_per_week: int = Field(..., ge=1, le=7, description="Training days per week (2-7 accepted)")
    experience_level: ExperienceLevel = Field(ExperienceLevel.INTERMEDIATE)

    target_time: Optional[str] = Field(None, description="Goal time, e.g. '3:15:00'")
    target_race_date: Optional[date] = Field(None, description="Race day; the program ends on it")
    start_date: Optional[date] = Field(None, description="Program start (ignored when a race date is set)")
    current_weekly_volume: Optional[float] = Field(None, description="Current km per week")
    methodology: Optional[MethodologyType] = Field(None, description="Omit for automatic selection")
    athlete_level: Optional[AthleteLevel] = None

    running_sessions_per_week: Optional[int] = Field(None, ge=0, le=7)
    strength_sessions_per_week: int = Field(0, ge=0, le=7)
    core_sessions_per_week: int = Field(0, ge=0, le=7)
    cross_training_sessions_per_week: int = Field(0, ge=0, le=7)
    schedule_strength_after_running: bool = False
    schedule_core_after_running: bool = False

    has_lactate_meter: bool = False
    has_hrv_monitor: bool = False
    notes: Optional[str] = Field(None, max_length=2000)

    def to_engine(self) -> ProgramRequest:
        return ProgramRequest(
            goal_type=self.goal_type,
            duration_weeks=self.duration_weeks,
            training_days_per_week=self.training_days_per_week,
            experience_level=self.experience_level,
            target_time=self.target_time,
            target_race_date=self.target_race_date,
            start_date=self.start_date,
            current_weekly_volume=self.current_weekly_volume,
            methodology=Explicit(self.methodology) if self.methodology else Auto(),
            athlete_level=self.athlete_level,
            running_sessions_per_week=self.running_sessions_per_week,
            strength_sessions_per_week=self.strength_sessions_per_week,
            core_sessions_per_week=self.core_sessions_per_week,
            cross_training_sessions_per_week=self.cross_training_sessions_per_week,
            schedule_strength_after_running=self.schedule_strength_after_running,
            schedule_core_after_running=self.schedule_core_after_running,
            has_lactate_meter=self.has_lactate_meter,
            has_hrv_monitor=self.has_hrv_monitor,
            notes=self.notes,
        )


class GenerateProgramBody(ProgramRequestBody):
    athlete_id: UUID = Field(..., description="Athlete whose stored zone data drives the program")


# ============ Response Models ============

class ValidationResult(BaseModel):
    valid: bool
    errors: List[str] = []


# ============ Error mapping ============

DATA_ERRORS = (
    InsufficientDataError,
    IncompatibleZoneTypeError,
    ProgramTooShortError,
    UnsupportedDaysPerWeekError,
)
INTERNAL_ERRORS = (MissingZoneError, ZoneOrderError)


def to_api_error(error: ProgramEngineError) -> Exception:
    """Map an engine failure onto the API exception family."""
    if isinstance(error, InputValidationError):
        return RequestValidationFailed(error.errors)
    if isinstance(error, DATA_ERRORS):
        return UnprocessableDataError(str(error), error.code)
    if isinstance(error, INTERNAL_ERRORS):
        logger.error(f"Program engine consistency failure: {error}")
        return InternalEngineError(str(error), error.code)
    logger.error(f"Unexpected program engine failure: {error}")
    return InternalEngineError(str(error))


# ============ Endpoints ============

@router.post("/validate", response_model=ValidationResult)
async def validate_program_request(body: ProgramRequestBody):
    """Check a request without generating anything."""
    errors = validate_request(body.to_engine())
    return ValidationResult(valid=not errors, errors=errors)


@router.post("/generate", response_model=Dict[str, Any])
def generate_program(
    body: GenerateProgramBody,
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
):
    """
    Generate a complete program for an athlete.

    Zones come from the athlete's stored elite estimate, threshold test or
    race result, in that order of preference.
    """
    athlete = db.query(Athlete).filter(Athlete.id == body.athlete_id).first()
    if not athlete:
        raise NotFoundError("Athlete", str(body.athlete_id))

    generator = ProgramGenerator(rules=load_rules(), exercise_catalog=SqlExerciseCatalog(db))
    with log_context(athlete_id=str(body.athlete_id), goal_type=body.goal_type.value):
        try:
            program = generator.generate_for_athlete(
                body.to_engine(),
                body.athlete_id,
                SqlZoneSource(session_factory),
            )
        except ProgramEngineError as e:
            raise to_api_error(e) from e
        logger.info(f"Generated {len(program.weeks)}-week {program.methodology.value} program")

    return program.to_dict()


@router.get("/methodologies/{methodology}/config", response_model=Dict[str, Any])
async def get_methodology_structure(
    methodology: MethodologyType,
    days_per_week: int = Query(..., ge=1, le=7),
):
    """Weekly session structure for a methodology at a day count."""
    rules = load_rules()
    try:
        config = get_methodology_config(methodology, days_per_week, rules)
    except UnsupportedDaysPerWeekError as e:
        raise to_api_error(e) from e
    except ValueError as e:
        target = rules.alias_for(methodology)
        hint = f"; use {target.value}" if target else ""
        raise ValidationError(f"{e}{hint}", field="methodology") from e
    return config.to_dict()
