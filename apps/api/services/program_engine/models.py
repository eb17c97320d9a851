"""
Program engine data model.

Every entity is created fresh for one generation request and never mutated
afterwards; the only adjustment a later stage makes is the deload reduction,
which the assembler computes before it builds each WeekPlan.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .constants import (
    AthleteLevel,
    Confidence,
    ExperienceLevel,
    GoalType,
    Intensity,
    MetabolicType,
    MethodologyType,
    Modality,
    Phase,
    SessionTime,
    WorkoutType,
    ZoneSourceKind,
    ZoneUnit,
)
from .exceptions import MissingZoneError, ZoneOrderError

ZoneKey = Union[int, str]


# ---------------------------------------------------------------------------
# Methodology choice
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Explicit:
    """The athlete (or coach) asked for a specific methodology."""
    methodology: MethodologyType


@dataclass(frozen=True)
class Auto:
    """Let the selector decide."""


MethodologyChoice = Union[Explicit, Auto]


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProgramRequest:
    """Everything the engine needs to know about the program to build."""
    goal_type: GoalType
    duration_weeks: int
    training_days_per_week: int
    experience_level: ExperienceLevel

    target_time: Optional[str] = None          # "H:MM:SS" or "MM:SS"
    target_race_date: Optional[date] = None
    start_date: Optional[date] = None
    current_weekly_volume: Optional[float] = None
    methodology: MethodologyChoice = field(default_factory=Auto)
    athlete_level: Optional[AthleteLevel] = None

    # Granular session counts
    running_sessions_per_week: Optional[int] = None
    strength_sessions_per_week: int = 0
    core_sessions_per_week: int = 0
    cross_training_sessions_per_week: int = 0
    schedule_strength_after_running: bool = False
    schedule_core_after_running: bool = False

    # Equipment
    has_lactate_meter: bool = False
    has_hrv_monitor: bool = False

    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Zone inputs (what the zone source returns)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ThresholdTest:
    """
    Graded exercise / lactate test result.

    For running tests the threshold values are speeds in km/h; for cycling
    tests they are powers in watts.
    """
    aerobic_threshold: float
    anaerobic_threshold: float
    unit: ZoneUnit = ZoneUnit.PACE
    aerobic_threshold_hr: Optional[int] = None
    anaerobic_threshold_hr: Optional[int] = None
    max_hr: Optional[int] = None
    test_date: Optional[date] = None


@dataclass(frozen=True)
class RaceResult:
    distance_meters: float
    time_seconds: float
    race_date: Optional[date] = None


@dataclass(frozen=True)
class EliteEstimate:
    """Externally computed zone set."""
    zones: Mapping[ZoneKey, float]
    unit: ZoneUnit
    confidence: Confidence
    athlete_level: Optional[AthleteLevel] = None
    metabolic_type: Optional[MetabolicType] = None


# ---------------------------------------------------------------------------
# Zone table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ZoneTable:
    """
    Canonical per-athlete zone table.

    Numeric zones 1..5 must be strictly ordered by intensity: pace values
    decrease (faster) and power values increase as the zone index rises.
    Named zones (e.g. "marathon") must sit inside the numeric range.
    """
    unit: ZoneUnit
    zones: Dict[ZoneKey, float]
    source: ZoneSourceKind
    confidence: Confidence
    warnings: Tuple[str, ...] = ()
    athlete_level: Optional[AthleteLevel] = None
    metabolic_type: Optional[MetabolicType] = None

    def __post_init__(self):
        object.__setattr__(self, "zones", dict(self.zones))
        object.__setattr__(self, "warnings", tuple(self.warnings))
        problems = zone_order_problems(self.zones, self.unit)
        if problems:
            raise ZoneOrderError("; ".join(problems))

    @property
    def is_pace(self) -> bool:
        return self.unit == ZoneUnit.PACE

    def has(self, zone: ZoneKey) -> bool:
        return zone in self.zones

    def value(self, zone: ZoneKey) -> float:
        try:
            return self.zones[zone]
        except KeyError:
            raise MissingZoneError(zone) from None

    def bounds(self) -> Tuple[float, float]:
        """(min, max) over every value in the table."""
        values = list(self.zones.values())
        return min(values), max(values)

    def clamp(self, value: float) -> float:
        """Pull a derived value back inside the table's range."""
        low, high = self.bounds()
        return max(low, min(high, value))

    def with_warnings(self, extra: List[str]) -> "ZoneTable":
        return ZoneTable(
            unit=self.unit,
            zones=self.zones,
            source=self.source,
            confidence=self.confidence,
            warnings=self.warnings + tuple(extra),
            athlete_level=self.athlete_level,
            metabolic_type=self.metabolic_type,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit": self.unit.value,
            "zones": {str(k): round(v, 1) for k, v in self.zones.items()},
            "source": self.source.value,
            "confidence": self.confidence.value,
            "warnings": list(self.warnings),
        }


def zone_order_problems(zones: Mapping[ZoneKey, float], unit: ZoneUnit) -> List[str]:
    """Describe every ordering violation in a zone mapping (empty list = valid)."""
    problems = []
    if not zones:
        return ["zone table is empty"]
    for key, value in zones.items():
        if value is None or not math.isfinite(value) or value <= 0:
            problems.append(f"zone {key!r} has invalid value {value!r}")
    if problems:
        return problems

    numeric = sorted((k, v) for k, v in zones.items() if isinstance(k, int))
    for (k1, v1), (k2, v2) in zip(numeric, numeric[1:]):
        ordered = v2 < v1 if unit == ZoneUnit.PACE else v2 > v1
        if not ordered:
            problems.append(f"zone {k2} ({v2:.1f}) is not more intense than zone {k1} ({v1:.1f})")

    if numeric:
        low = min(v for _, v in numeric)
        high = max(v for _, v in numeric)
        for key, value in zones.items():
            if not isinstance(key, int) and not (low <= value <= high):
                problems.append(f"named zone {key!r} ({value:.1f}) is outside zones 1-5")
    return problems


# ---------------------------------------------------------------------------
# Methodology / periodization
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MethodologyConfig:
    """Weekly session structure for one methodology at one days-per-week count."""
    methodology: MethodologyType
    days_per_week: int
    hard_sessions: int
    easy_sessions: int
    rest_days: int
    long_run_day: int
    intensity_easy_pct: float
    intensity_moderate_pct: float
    intensity_hard_pct: float
    allows_back_to_back: bool = False
    double_days: int = 0
    requires_lactate_meter: bool = False
    deload_reduction: float = 0.30

    def __post_init__(self):
        if self.hard_sessions + self.easy_sessions + 1 != self.days_per_week:
            raise ValueError(
                f"{self.methodology.value}: long run + {self.hard_sessions} hard + "
                f"{self.easy_sessions} easy != {self.days_per_week} days"
            )
        if self.days_per_week + self.rest_days != 7:
            raise ValueError(f"{self.methodology.value}: training + rest days must equal 7")
        total = self.intensity_easy_pct + self.intensity_moderate_pct + self.intensity_hard_pct
        if abs(total - 100.0) > 1e-6:
            raise ValueError(f"{self.methodology.value}: intensity distribution sums to {total}, not 100")
        if not 1 <= self.long_run_day <= 7:
            raise ValueError(f"{self.methodology.value}: long run day must be 1-7")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "methodology": self.methodology.value,
            "days_per_week": self.days_per_week,
            "hard_sessions": self.hard_sessions,
            "easy_sessions": self.easy_sessions,
            "rest_days": self.rest_days,
            "long_run_day": self.long_run_day,
            "intensity_distribution": {
                "easy": self.intensity_easy_pct,
                "moderate": self.intensity_moderate_pct,
                "hard": self.intensity_hard_pct,
            },
            "allows_back_to_back": self.allows_back_to_back,
            "double_days": self.double_days,
            "requires_lactate_meter": self.requires_lactate_meter,
            "deload_reduction": self.deload_reduction,
        }


@dataclass(frozen=True)
class PhaseDistribution:
    base: int
    build: int
    peak: int
    taper: int

    def __post_init__(self):
        if min(self.base, self.build, self.peak, self.taper) < 0:
            raise ValueError("phase week counts cannot be negative")

    @property
    def total(self) -> int:
        return self.base + self.build + self.peak + self.taper

    def weeks_in(self, phase: Phase) -> int:
        return getattr(self, phase.value)

    def phase_mapping(self) -> List[Tuple[int, Phase, int]]:
        """(week_number, phase, week_in_phase) for every program week."""
        mapping = []
        week = 1
        for phase in (Phase.BASE, Phase.BUILD, Phase.PEAK, Phase.TAPER):
            for week_in_phase in range(1, self.weeks_in(phase) + 1):
                mapping.append((week, phase, week_in_phase))
                week += 1
        return mapping

    def to_dict(self) -> Dict[str, int]:
        return {"base": self.base, "build": self.build, "peak": self.peak, "taper": self.taper}


@dataclass(frozen=True)
class WeekProgression:
    """Raw volume curve entry, before any deload adjustment."""
    week: int
    phase: Phase
    week_in_phase: int
    volume_percentage: float
    focus: str


@dataclass(frozen=True)
class DeloadWeek:
    week_number: int
    reduction_factor: float


@dataclass(frozen=True)
class DeloadSchedule:
    weeks: Tuple[DeloadWeek, ...] = ()

    def factor_for(self, week_number: int) -> Optional[float]:
        for entry in self.weeks:
            if entry.week_number == week_number:
                return entry.reduction_factor
        return None

    def __contains__(self, week_number: int) -> bool:
        return self.factor_for(week_number) is not None

    @property
    def week_numbers(self) -> List[int]:
        return [w.week_number for w in self.weeks]

    def to_list(self) -> List[Dict[str, Any]]:
        return [{"week": w.week_number, "reduction_factor": w.reduction_factor} for w in self.weeks]


# ---------------------------------------------------------------------------
# Distribution and workouts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WorkoutSlot:
    """One planned session: what to do on which day, before it is built."""
    day_number: int
    workout_type: WorkoutType
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WorkoutSegment:
    kind: str  # warmup, work, interval, rest, cooldown, exercise
    description: str
    duration_minutes: Optional[float] = None
    distance_km: Optional[float] = None
    zone: Optional[ZoneKey] = None
    target: Optional[float] = None
    unit: Optional[ZoneUnit] = None
    pace_percent: Optional[float] = None
    exercise_id: Optional[str] = None
    sets: Optional[int] = None
    reps: Optional[str] = None
    rest_seconds: Optional[int] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "kind": self.kind,
            "description": self.description,
            "duration_minutes": self.duration_minutes,
            "distance_km": self.distance_km,
            "zone": self.zone,
            "target": round(self.target, 1) if self.target is not None else None,
            "unit": self.unit.value if self.unit else None,
            "pace_percent": self.pace_percent,
            "exercise_id": self.exercise_id,
            "sets": self.sets,
            "reps": self.reps,
            "rest_seconds": self.rest_seconds,
            "notes": self.notes,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class WorkoutSpec:
    """A concrete, buildable session."""
    workout_type: WorkoutType
    name: str
    modality: Modality
    intensity: Intensity
    duration_minutes: int
    instructions: str
    segments: Tuple[WorkoutSegment, ...] = ()
    distance_km: Optional[float] = None
    target_zone: Optional[ZoneKey] = None
    target_value: Optional[float] = None
    target_unit: Optional[ZoneUnit] = None
    pace_percent: Optional[float] = None
    session_time: Optional[SessionTime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workout_type": self.workout_type.value,
            "name": self.name,
            "modality": self.modality.value,
            "intensity": self.intensity.value,
            "duration_minutes": self.duration_minutes,
            "distance_km": self.distance_km,
            "instructions": self.instructions,
            "target_zone": self.target_zone,
            "target_value": round(self.target_value, 1) if self.target_value is not None else None,
            "target_unit": self.target_unit.value if self.target_unit else None,
            "pace_percent": self.pace_percent,
            "session_time": self.session_time.value if self.session_time else None,
            "segments": [s.to_dict() for s in self.segments],
        }


@dataclass(frozen=True)
class DayPlan:
    day_number: int
    workouts: Tuple[WorkoutSpec, ...] = ()
    note: Optional[str] = None

    @property
    def is_rest(self) -> bool:
        return not self.workouts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day_number": self.day_number,
            "workouts": [w.to_dict() for w in self.workouts],
            "note": self.note,
        }


@dataclass(frozen=True)
class WeekPlan:
    week_number: int
    phase: Phase
    week_in_phase: int
    start_date: date
    volume_percentage: float
    target_volume: float
    focus: str
    days: Tuple[DayPlan, ...]
    is_recovery_week: bool = False
    notes: Tuple[str, ...] = ()

    @property
    def training_day_count(self) -> int:
        return sum(1 for d in self.days if not d.is_rest)

    def day(self, day_number: int) -> DayPlan:
        for d in self.days:
            if d.day_number == day_number:
                return d
        raise KeyError(day_number)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week_number": self.week_number,
            "phase": self.phase.value,
            "week_in_phase": self.week_in_phase,
            "start_date": self.start_date.isoformat(),
            "volume_percentage": round(self.volume_percentage, 1),
            "target_volume": round(self.target_volume, 1),
            "focus": self.focus,
            "is_recovery_week": self.is_recovery_week,
            "notes": list(self.notes),
            "days": [d.to_dict() for d in self.days],
        }


@dataclass(frozen=True)
class Program:
    """Complete generated training program."""
    name: str
    goal_type: GoalType
    methodology: MethodologyType
    athlete_level: AthleteLevel
    start_date: date
    end_date: date
    phases: PhaseDistribution
    deload_schedule: DeloadSchedule
    weeks: Tuple[WeekPlan, ...]
    zones: ZoneTable
    base_volume: float
    peak_volume: float
    volume_unit: str = "km"
    requested_methodology: Optional[MethodologyType] = None
    warnings: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "goal_type": self.goal_type.value,
            "methodology": self.methodology.value,
            "requested_methodology": (
                self.requested_methodology.value if self.requested_methodology else None
            ),
            "athlete_level": self.athlete_level.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "duration_weeks": len(self.weeks),
            "phases": self.phases.to_dict(),
            "deload_weeks": self.deload_schedule.to_list(),
            "volume": {
                "base": round(self.base_volume, 1),
                "peak": round(self.peak_volume, 1),
                "unit": self.volume_unit,
            },
            "zones": self.zones.to_dict(),
            "warnings": list(self.warnings),
            "notes": list(self.notes),
            "weeks": [w.to_dict() for w in self.weeks],
        }
