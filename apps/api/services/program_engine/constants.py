"""
Constants for program generation.

These are DEFAULTS that can be overridden by a rules file (see config.py).
They exist here for type safety and documentation.
"""

from enum import Enum
from typing import Dict, Tuple


class GoalType(str, Enum):
    """What the athlete is training for."""
    MARATHON = "marathon"
    HALF_MARATHON = "half_marathon"
    TEN_K = "10k"
    FIVE_K = "5k"
    FITNESS = "fitness"
    CYCLING = "cycling"
    SKIING = "skiing"
    CUSTOM = "custom"


class ExperienceLevel(str, Enum):
    """Self-reported training background."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class AthleteLevel(str, Enum):
    """Derived athlete classification."""
    BEGINNER = "beginner"
    RECREATIONAL = "recreational"
    ADVANCED = "advanced"
    ELITE = "elite"


class MetabolicType(str, Enum):
    """Lactate-profile classification supplied with an elite pace estimate."""
    SLOW_TWITCH = "slow_twitch"                      # low max lactate, compressed profile
    FAST_TWITCH_ENDURANCE = "fast_twitch_endurance"  # high max lactate, compressed
    FAST_TWITCH_POWER = "fast_twitch_power"          # high max lactate, expanded
    MIXED = "mixed"


class MethodologyType(str, Enum):
    """Training methodologies that can be requested."""
    POLARIZED = "polarized"
    NORWEGIAN = "norwegian"
    NORWEGIAN_SINGLE = "norwegian_single"
    CANOVA = "canova"
    PYRAMIDAL = "pyramidal"
    LYDIARD = "lydiard"  # requested name only, resolved through METHODOLOGY_ALIASES


class Phase(str, Enum):
    """Periodization phases."""
    BASE = "base"
    BUILD = "build"
    PEAK = "peak"
    TAPER = "taper"


class CanovaPeriod(str, Enum):
    """Canova periods mapped from the generic phases."""
    GENERAL = "general"
    FUNDAMENTAL = "fundamental"
    SPECIAL = "special"
    SPECIFIC = "specific"
    TAPER = "taper"


class WorkoutType(str, Enum):
    """Session types produced by the distribution planner."""
    LONG_RUN = "long_run"
    TEMPO = "tempo"
    INTERVALS = "intervals"
    HILL_SPRINTS = "hill_sprints"
    CANOVA_INTERVALS = "canova_intervals"
    EASY = "easy"
    RECOVERY_RUN = "recovery_run"
    STRENGTH = "strength"
    CORE = "core"
    PLYOMETRIC = "plyometric"
    CROSS_TRAINING = "cross_training"


class Modality(str, Enum):
    RUNNING = "running"
    CYCLING = "cycling"
    SKIING = "skiing"
    STRENGTH = "strength"
    CORE = "core"
    PLYOMETRIC = "plyometric"
    CROSS_TRAINING = "cross_training"


class Intensity(str, Enum):
    RECOVERY = "recovery"
    EASY = "easy"
    MODERATE = "moderate"
    THRESHOLD = "threshold"
    INTERVAL = "interval"
    MAX = "max"


class ZoneUnit(str, Enum):
    """Unit of every value in a zone table."""
    PACE = "sec_per_km"  # lower is more intense
    POWER = "watts"      # higher is more intense


class ZoneSourceKind(str, Enum):
    ELITE_ESTIMATE = "elite_estimate"
    THRESHOLD_TEST = "threshold_test"
    RACE_RESULT = "race_result"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SessionTime(str, Enum):
    AM = "am"
    PM = "pm"


CONFIDENCE_RANK = {
    Confidence.LOW: 0,
    Confidence.MEDIUM: 1,
    Confidence.HIGH: 2,
}

# Zone identifiers, easiest first
ZONE_ORDER: Tuple[int, ...] = (1, 2, 3, 4, 5)
MARATHON_ZONE = "marathon"

# Goals that train against power rather than pace
POWER_GOALS = frozenset({GoalType.CYCLING})

GOAL_MODALITY = {
    GoalType.CYCLING: Modality.CYCLING,
    GoalType.SKIING: Modality.SKIING,
}

# Race distances in km, used to turn a target time into a goal pace
GOAL_DISTANCE_KM = {
    GoalType.MARATHON: 42.195,
    GoalType.HALF_MARATHON: 21.0975,
    GoalType.TEN_K: 10.0,
    GoalType.FIVE_K: 5.0,
}

# Race distances in meters, for VDOT calculations
RACE_DISTANCE_METERS = {
    "marathon": 42195,
    "half_marathon": 21097.5,
    "10k": 10000,
    "5k": 5000,
    "3k": 3000,
    "1mi": 1609.34,
}

PROGRAM_NAMES = {
    GoalType.MARATHON: "Marathon Program",
    GoalType.HALF_MARATHON: "Half Marathon Program",
    GoalType.TEN_K: "10K Program",
    GoalType.FIVE_K: "5K Program",
    GoalType.FITNESS: "Fitness Program",
    GoalType.CYCLING: "Cycling Program",
    GoalType.SKIING: "Ski Program",
    GoalType.CUSTOM: "Training Program",
}

EXPERIENCE_TO_ATHLETE_LEVEL = {
    ExperienceLevel.BEGINNER: AthleteLevel.BEGINNER,
    ExperienceLevel.INTERMEDIATE: AthleteLevel.RECREATIONAL,
    ExperienceLevel.ADVANCED: AthleteLevel.ADVANCED,
}

# Request validation bounds
MIN_DURATION_WEEKS = 4
MAX_DURATION_WEEKS = 52
MIN_TRAINING_DAYS = 2
MAX_TRAINING_DAYS = 7

# Weekly volume targets (km/week; riding km/week for cycling after the multiplier)
# experience -> (base, peak)
VOLUME_TARGETS: Dict[ExperienceLevel, Tuple[float, float]] = {
    ExperienceLevel.BEGINNER: (20.0, 40.0),
    ExperienceLevel.INTERMEDIATE: (35.0, 65.0),
    ExperienceLevel.ADVANCED: (50.0, 90.0),
}

GOAL_VOLUME_MULTIPLIERS: Dict[GoalType, float] = {
    GoalType.MARATHON: 1.2,
    GoalType.HALF_MARATHON: 1.0,
    GoalType.TEN_K: 0.8,
    GoalType.FIVE_K: 0.7,
    GoalType.FITNESS: 0.6,
    GoalType.CYCLING: 1.5,
    GoalType.SKIING: 1.0,
    GoalType.CUSTOM: 1.0,
}

# Phase proportions: (base, build, peak, taper)
PHASE_PROPORTIONS: Dict[MethodologyType, Tuple[float, float, float, float]] = {
    MethodologyType.POLARIZED: (0.25, 0.35, 0.20, 0.20),
    MethodologyType.PYRAMIDAL: (0.25, 0.40, 0.20, 0.15),
    MethodologyType.NORWEGIAN: (0.30, 0.35, 0.20, 0.15),
    MethodologyType.NORWEGIAN_SINGLE: (0.30, 0.35, 0.20, 0.15),
    MethodologyType.CANOVA: (0.20, 0.30, 0.35, 0.15),
}

# Intensity distribution: (easy %, moderate %, hard %)
INTENSITY_DISTRIBUTION: Dict[MethodologyType, Tuple[float, float, float]] = {
    MethodologyType.POLARIZED: (80.0, 5.0, 15.0),
    MethodologyType.PYRAMIDAL: (72.0, 18.0, 10.0),
    MethodologyType.NORWEGIAN: (87.5, 1.0, 11.5),
    MethodologyType.NORWEGIAN_SINGLE: (87.5, 1.0, 11.5),
    MethodologyType.CANOVA: (70.0, 20.0, 10.0),
}

# Weekly hard-session quota by training days (index = days - 2, for 2..7 days)
HARD_SESSION_QUOTAS: Dict[MethodologyType, Tuple[int, ...]] = {
    MethodologyType.POLARIZED: (1, 1, 2, 2, 2, 2),
    MethodologyType.PYRAMIDAL: (1, 1, 2, 2, 3, 3),
    MethodologyType.NORWEGIAN: (1, 2, 2, 2, 2, 2),
    MethodologyType.NORWEGIAN_SINGLE: (1, 2, 2, 2, 2, 2),
    MethodologyType.CANOVA: (1, 2, 2, 2, 2, 3),
}

LONG_RUN_DAY = 7

# Methodologies that schedule AM/PM doubles
DOUBLE_SESSION_METHODOLOGIES = frozenset({MethodologyType.NORWEGIAN, MethodologyType.CANOVA})
# Methodologies that need a lactate meter
LACTATE_METHODOLOGIES = frozenset({MethodologyType.NORWEGIAN, MethodologyType.NORWEGIAN_SINGLE})

# Requested methodology -> implemented methodology
METHODOLOGY_ALIASES: Dict[MethodologyType, MethodologyType] = {
    MethodologyType.LYDIARD: MethodologyType.CANOVA,
}

# Deload rules
DELOAD_FREQUENCY_BY_LEVEL: Dict[AthleteLevel, int] = {
    AthleteLevel.BEGINNER: 5,
    AthleteLevel.RECREATIONAL: 4,
    AthleteLevel.ADVANCED: 4,
    AthleteLevel.ELITE: 4,
}
INTENSIVE_METHODOLOGIES = frozenset({MethodologyType.NORWEGIAN, MethodologyType.CANOVA})
MIN_DELOAD_FREQUENCY = 3
DELOAD_REDUCTION: Dict[MethodologyType, float] = {
    MethodologyType.POLARIZED: 0.30,
    MethodologyType.PYRAMIDAL: 0.30,
    MethodologyType.NORWEGIAN: 0.40,
    MethodologyType.NORWEGIAN_SINGLE: 0.35,
    MethodologyType.CANOVA: 0.35,
}
# No recovery week inside the first N weeks of a phase
DELOAD_PHASE_LEAD_IN_WEEKS = 2
# Minimum sustainable volume (% of peak) per phase
PHASE_VOLUME_FLOORS: Dict[Phase, float] = {
    Phase.BASE: 40.0,
    Phase.BUILD: 50.0,
    Phase.PEAK: 60.0,
    Phase.TAPER: 0.0,
}

# Final taper week volume (% of peak)
TAPER_FINAL_VOLUME_PCT = 40.0

# Strength rep schemes by phase: (sets, reps, rest seconds)
STRENGTH_REP_SCHEMES: Dict[Phase, Tuple[int, str, int]] = {
    Phase.BASE: (3, "12-15", 90),
    Phase.BUILD: (4, "8-10", 120),
    Phase.PEAK: (3, "6-8", 180),
    Phase.TAPER: (2, "8-10", 90),
}

# Canova percent-of-MP zone bands
CANOVA_ZONES: Dict[str, Tuple[float, float]] = {
    "regeneration": (0.50, 0.60),
    "fundamental": (0.75, 0.85),
    "general_endurance": (0.85, 0.90),
    "special_endurance": (0.90, 0.95),
    "specific_endurance": (0.95, 1.05),
    "special_speed": (1.05, 1.10),
    "lactic_alactic": (1.10, 1.30),
}

# Canova long run distance by period (km)
CANOVA_LONG_RUN_KM: Dict[CanovaPeriod, float] = {
    CanovaPeriod.GENERAL: 25.0,
    CanovaPeriod.FUNDAMENTAL: 30.0,
    CanovaPeriod.SPECIAL: 32.0,
    CanovaPeriod.SPECIFIC: 35.0,
    CanovaPeriod.TAPER: 25.0,
}

# Specific-endurance pace (% of MP) at program start; tightens to 100 by the end
CANOVA_SPECIFIC_PACE_START = 92.0
