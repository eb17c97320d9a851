# Program Generation Engine
#
# Turns a program request plus an athlete's zone data into a complete,
# periodized, week-by-week training program.
#
# Architecture:
# - Zone resolution from elite estimates, threshold tests or race results
# - Methodology selection (Polarized, Pyramidal, Norwegian, Canova)
# - Phase, volume and deload planning driven by a rules registry
# - Weekly distribution and zone-derived workout building
# - Ports for zone data and the exercise catalog (in-memory and SQL adapters)

from .config import RulesRegistry, load_rules
from .constants import (
    AthleteLevel,
    ExperienceLevel,
    GoalType,
    MethodologyType,
    Phase,
    WorkoutType,
    ZoneUnit,
)
from .exceptions import (
    IncompatibleZoneTypeError,
    InputValidationError,
    InsufficientDataError,
    MissingZoneError,
    ProgramEngineError,
    ProgramTooShortError,
    UnsupportedDaysPerWeekError,
    ZoneOrderError,
)
from .generator import ProgramGenerator
from .methodology import get_methodology_config, select_methodology
from .models import (
    Auto,
    Explicit,
    Program,
    ProgramRequest,
    RaceResult,
    ThresholdTest,
    EliteEstimate,
    ZoneTable,
)
from .sources import (
    InMemoryExerciseCatalog,
    InMemoryZoneSource,
    SqlExerciseCatalog,
    SqlZoneSource,
)
from .validation import ensure_valid, validate_request
from .zone_resolver import resolve_zones

__all__ = [
    # Main generator
    'ProgramGenerator',
    'RulesRegistry',
    'load_rules',

    # Stages
    'resolve_zones',
    'select_methodology',
    'get_methodology_config',
    'validate_request',
    'ensure_valid',

    # Data model
    'ProgramRequest',
    'Explicit',
    'Auto',
    'ThresholdTest',
    'RaceResult',
    'EliteEstimate',
    'ZoneTable',
    'Program',

    # Ports / adapters
    'InMemoryZoneSource',
    'InMemoryExerciseCatalog',
    'SqlZoneSource',
    'SqlExerciseCatalog',

    # Errors
    'ProgramEngineError',
    'InputValidationError',
    'InsufficientDataError',
    'IncompatibleZoneTypeError',
    'MissingZoneError',
    'UnsupportedDaysPerWeekError',
    'ProgramTooShortError',
    'ZoneOrderError',

    # Constants
    'AthleteLevel',
    'ExperienceLevel',
    'GoalType',
    'MethodologyType',
    'Phase',
    'WorkoutType',
    'ZoneUnit',
]
