"""
Workout Distribution Planner

Decides which session goes on which day of a week.

Steps:
1. Long run on the configured long-run day
2. Quality sessions on spaced days (no two hard days back to back, except
   Canova special-block days and Norwegian AM/PM double-threshold days)
3. Easy running on the remaining running days
4. Strength / core / cross-training on free days, or same-day after running
5. Everything else is rest

Invariant: the number of days carrying any workout never exceeds the
week's training days.

Usage:
    slots = determine_distribution(context)
    for slot in slots:
        spec = build_workout(slot, zones, context.phase)
"""

import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from .constants import (
    CANOVA_LONG_RUN_KM,
    GOAL_DISTANCE_KM,
    AthleteLevel,
    CanovaPeriod,
    ExperienceLevel,
    GoalType,
    MethodologyType,
    Phase,
    SessionTime,
    WorkoutType,
)
from .models import MethodologyConfig, ProgramRequest, WorkoutSlot, ZoneTable
from .pace_progression import specific_pace_percent

logger = logging.getLogger(__name__)


# =============================================================================
# DAY LAYOUT
# =============================================================================

# Day preferences (1 = Monday)
HARD_DAY_PREFERENCE: Tuple[int, ...] = (2, 4, 6, 3, 5, 1)
EASY_DAY_PREFERENCE: Tuple[int, ...] = (5, 3, 1, 6, 2, 4)
STRENGTH_DAY_PREFERENCE: Tuple[int, ...] = (1, 3, 5, 6, 2, 4)
CORE_DAY_PREFERENCE: Tuple[int, ...] = (5, 3, 1, 6, 2, 4)
CROSS_TRAINING_DAY_PREFERENCE: Tuple[int, ...] = (6, 1, 3, 5, 2, 4)
CANOVA_STRENGTH_DAY_PREFERENCE: Tuple[int, ...] = (6, 5, 1, 3, 2, 4)
CANOVA_CORE_DAY_PREFERENCE: Tuple[int, ...] = (3, 5, 1, 6, 2, 4)

QUALITY_TYPES = frozenset({
    WorkoutType.TEMPO,
    WorkoutType.INTERVALS,
    WorkoutType.HILL_SPRINTS,
    WorkoutType.CANOVA_INTERVALS,
})
RUNNING_TYPES = QUALITY_TYPES | {WorkoutType.LONG_RUN, WorkoutType.EASY, WorkoutType.RECOVERY_RUN}

# =============================================================================
# VOLUME SIZING
# =============================================================================

LONG_RUN_SHARE = 0.30
LONG_RUN_SHARE_LOW_FREQUENCY = 0.35  # 3 or fewer running days
LONG_RUN_MIN_KM = 5.0
LONG_RUN_CAP_KM = {
    GoalType.MARATHON: 35.0,
    GoalType.HALF_MARATHON: 24.0,
    GoalType.TEN_K: 20.0,
    GoalType.FIVE_K: 16.0,
}
DEFAULT_LONG_RUN_CAP_KM = 25.0
QUALITY_SESSION_KM = 10.0
EASY_RUN_KM_RANGE = (4.0, 16.0)

# Power-based sessions are sized in minutes from riding km
REFERENCE_SPEED_KMH = 28.0
LONG_RIDE_MAX_MINUTES = 300
EASY_RIDE_MINUTES_RANGE = (30.0, 120.0)

# =============================================================================
# CANOVA
# =============================================================================

# (reps, km per rep), unlocked progressively inside special / specific periods
SPECIFIC_EXTENSIVE_OPTIONS: Tuple[Tuple[int, float], ...] = ((4, 5.0), (5, 5.0), (4, 6.0), (5, 6.0))
TAPER_REP_SCALE = 0.6

# Special-block AM/PM pairs: ((type, km or reps, percent of MP), ...)
CANOVA_BLOCKS: Dict[str, Tuple[Dict[str, Any], Dict[str, Any]]] = {
    "extensive": (
        {"workout_type": WorkoutType.TEMPO, "distance_km": 20.0, "pace_percent": 95.0},
        {"workout_type": WorkoutType.TEMPO, "distance_km": 12.0, "pace_percent": 100.0},
    ),
    "intensive": (
        {"workout_type": WorkoutType.TEMPO, "distance_km": 12.0, "pace_percent": 95.0},
        {"workout_type": WorkoutType.CANOVA_INTERVALS, "reps": 10, "work_km": 1.0,
         "pace_percent": 105.0, "recovery_km": 0.4, "recovery_percent": 90.0},
    ),
    "mixed": (
        {"workout_type": WorkoutType.TEMPO, "distance_km": 15.0, "pace_percent": 98.0},
        {"workout_type": WorkoutType.CANOVA_INTERVALS, "reps": 8, "work_km": 1.0,
         "pace_percent": 103.0, "recovery_km": 0.4, "recovery_percent": 90.0},
    ),
}
BLOCK_REGENERATION_DAYS = (3, 4)
BLOCK_INTENSIVE_DAY = 5
CANOVA_EASY_PERCENT = 75.0
CANOVA_REGENERATION_PERCENT = 55.0

# Long-run finish share and finish pace (percent of MP) per period
CANOVA_LONG_RUN_FINISH = {
    CanovaPeriod.FUNDAMENTAL: (0.2, 90.0),
    CanovaPeriod.SPECIAL: (0.35, 95.0),
    CanovaPeriod.SPECIFIC: (0.5, None),  # specific pace for the week
}


@dataclass(frozen=True)
class DistributionContext:
    """Everything the planner needs to lay out one week."""
    phase: Phase
    training_days: int
    experience_level: ExperienceLevel
    goal_type: GoalType
    volume_pct: float
    methodology_config: MethodologyConfig
    athlete_level: AthleteLevel
    week_in_phase: int
    week_number: int
    total_weeks: int
    zones: ZoneTable
    request: Optional[ProgramRequest] = None
    weekly_volume: float = 0.0
    phase_weeks: int = 1
    is_recovery_week: bool = False
    marathon_pace: Optional[float] = None

    @property
    def methodology(self) -> MethodologyType:
        return self.methodology_config.methodology

    @property
    def running_days(self) -> int:
        requested = self.request.running_sessions_per_week if self.request else None
        if requested:
            return max(1, min(self.training_days, requested))
        return self.training_days

    @property
    def is_race_week(self) -> bool:
        return self.phase == Phase.TAPER and self.week_in_phase == self.phase_weeks


def determine_distribution(context: DistributionContext) -> List[WorkoutSlot]:
    """
    Lay out one week as a list of WorkoutSlots, ordered by day and session.
    """
    if context.methodology == MethodologyType.CANOVA and context.zones.is_pace:
        slots = _canova_week(context)
    else:
        slots = _standard_week(context)

    slots = slots + _supplementary_sessions(context, slots)

    active_days = {s.day_number for s in slots}
    if len(active_days) > context.training_days:
        raise ValueError(
            f"Week {context.week_number}: {len(active_days)} active days exceed "
            f"{context.training_days} training days"
        )

    logger.debug(
        f"Week {context.week_number} ({context.phase.value} w{context.week_in_phase}): "
        + ", ".join(f"d{s.day_number}:{s.workout_type.value}" for s in _ordered(slots))
    )
    return _ordered(slots)


# =============================================================================
# SHARED HELPERS
# =============================================================================

def _ordered(slots: Sequence[WorkoutSlot]) -> List[WorkoutSlot]:
    rank = {SessionTime.AM: 0, None: 1, SessionTime.PM: 2}
    return sorted(slots, key=lambda s: (s.day_number, rank[s.params.get("session_time")]))


def pick_hard_days(count: int, long_run_day: int, allow_adjacent: bool = False) -> List[int]:
    """
    Choose `count` quality days, spaced so no two are adjacent.

    The day before the long run is used only when no spaced layout of the
    same size avoids it. Only back-to-back methodologies may fall back to
    adjacent days when spacing runs out. May return fewer days than asked for.
    """
    candidates = [day for day in HARD_DAY_PREFERENCE if day != long_run_day]
    rank = {day: index for index, day in enumerate(candidates)}
    eve = long_run_day - 1

    chosen: List[int] = []
    for size in range(min(count, len(candidates)), 0, -1):
        spaced = [
            combo for combo in combinations(sorted(candidates), size)
            if all(b - a > 1 for a, b in zip(combo, combo[1:]))
        ]
        if spaced:
            best = min(spaced, key=lambda combo: (eve in combo, sum(rank[d] for d in combo)))
            chosen = list(best)
            break

    if len(chosen) < count and allow_adjacent:
        for day in candidates:
            if len(chosen) == count:
                break
            if day not in chosen:
                chosen.append(day)
    return sorted(chosen)


def _fill_days(preference: Sequence[int], taken: Set[int], count: int) -> List[int]:
    days = []
    for day in tuple(preference) + tuple(range(1, 8)):
        if len(days) == count:
            break
        if day not in taken and day not in days:
            days.append(day)
    return days


def _quality_quota(context: DistributionContext) -> int:
    """Hard sessions this week, clamped to what fits beside the long run."""
    quota = context.methodology_config.hard_sessions
    if context.is_recovery_week or context.is_race_week:
        quota = min(quota, 1)

    available = context.running_days - 1
    if quota > available:
        logger.warning(
            f"Week {context.week_number}: {quota} quality sessions do not fit in "
            f"{context.running_days} running days; {quota - available} degraded to easy"
        )
        quota = max(0, available)
    return quota


def _long_run_share(context: DistributionContext) -> float:
    return LONG_RUN_SHARE_LOW_FREQUENCY if context.running_days <= 3 else LONG_RUN_SHARE


def _round_half(km: float) -> float:
    return round(km * 2) / 2


def _long_run_size(context: DistributionContext) -> Dict[str, float]:
    share = context.weekly_volume * _long_run_share(context)
    if context.zones.is_pace:
        cap = LONG_RUN_CAP_KM.get(context.goal_type, DEFAULT_LONG_RUN_CAP_KM)
        return {"distance_km": _round_half(max(LONG_RUN_MIN_KM, min(cap, share)))}
    minutes = min(LONG_RIDE_MAX_MINUTES, share / REFERENCE_SPEED_KMH * 60)
    return {"duration_minutes": round(max(EASY_RIDE_MINUTES_RANGE[0], minutes))}


def _easy_size(context: DistributionContext, long_km: float, quality_count: int, easy_count: int) -> Dict[str, float]:
    if easy_count <= 0:
        return {}
    remaining = context.weekly_volume - long_km - quality_count * QUALITY_SESSION_KM
    per_session = remaining / easy_count
    if context.zones.is_pace:
        low, high = EASY_RUN_KM_RANGE
        return {"distance_km": _round_half(max(low, min(high, per_session)))}
    low, high = EASY_RIDE_MINUTES_RANGE
    return {"duration_minutes": round(max(low, min(high, per_session / REFERENCE_SPEED_KMH * 60)))}


def _long_run_km(context: DistributionContext, size: Dict[str, float]) -> float:
    if "distance_km" in size:
        return size["distance_km"]
    return size["duration_minutes"] / 60 * REFERENCE_SPEED_KMH


# =============================================================================
# STANDARD WEEK (Polarized, Pyramidal, Norwegian, Norwegian-Single)
# =============================================================================

def _standard_week(context: DistributionContext) -> List[WorkoutSlot]:
    config = context.methodology_config
    long_day = config.long_run_day
    quota = _quality_quota(context)
    hard_days = pick_hard_days(quota, long_day, allow_adjacent=config.allows_back_to_back)
    if len(hard_days) < quota:
        logger.warning(
            f"Week {context.week_number}: only {len(hard_days)} of {quota} quality days could be spaced; "
            f"the rest are easy"
        )

    long_size = _long_run_size(context)
    slots = [WorkoutSlot(day_number=long_day, workout_type=WorkoutType.LONG_RUN, params=dict(long_size))]

    sessions = _quality_menu(context, len(hard_days))
    for day, day_sessions in zip(hard_days, sessions):
        for workout_type, params in day_sessions:
            slots.append(WorkoutSlot(day_number=day, workout_type=workout_type, params=params))

    easy_count = context.running_days - 1 - len(hard_days)
    easy_size = _easy_size(context, _long_run_km(context, long_size), len(hard_days), easy_count)
    easy_type = WorkoutType.RECOVERY_RUN if context.is_recovery_week else WorkoutType.EASY
    for day in _fill_days(EASY_DAY_PREFERENCE, set(hard_days) | {long_day}, easy_count):
        params = dict(easy_size)
        if easy_type == WorkoutType.RECOVERY_RUN and "distance_km" in params:
            params = {"duration_minutes": 30}
        slots.append(WorkoutSlot(day_number=day, workout_type=easy_type, params=params))
    return slots


QualityDay = List[Tuple[WorkoutType, Dict[str, Any]]]


def _step(context: DistributionContext) -> int:
    """Progression step inside a phase: 0, 1 or 2."""
    return min(2, (context.week_in_phase - 1) // 2)


def _quality_menu(context: DistributionContext, count: int) -> List[QualityDay]:
    methodology = context.methodology
    if methodology == MethodologyType.POLARIZED:
        menu = _polarized_session
    elif methodology in (MethodologyType.NORWEGIAN, MethodologyType.NORWEGIAN_SINGLE):
        return [_norwegian_day(context, index) for index in range(count)]
    else:
        # Pyramidal, and Canova on a power-based table
        menu = _pyramidal_session
    return [[menu(context, index)] for index in range(count)]


def _intervals(reps: int, work_minutes: float, rest_minutes: float, zone: int) -> Tuple[WorkoutType, Dict[str, Any]]:
    return WorkoutType.INTERVALS, {
        "reps": reps, "work_minutes": work_minutes, "rest_minutes": rest_minutes, "zone": zone,
    }


def _hill_sprints(reps: int) -> Tuple[WorkoutType, Dict[str, Any]]:
    return WorkoutType.HILL_SPRINTS, {"reps": reps, "work_seconds": 10, "rest_minutes": 2}


def _polarized_session(context: DistributionContext, index: int) -> Tuple[WorkoutType, Dict[str, Any]]:
    """Polarized quality is all zone 5: intervals and hill sprints."""
    step = _step(context)
    phase = context.phase
    if phase == Phase.BASE:
        return _hill_sprints(6 + 2 * step) if index == 0 else _intervals(4 + step, 4, 3, 5)
    if phase == Phase.BUILD:
        return _intervals(5 + step, 4, 3, 5) if index == 0 else _intervals(4 + step, 5, 3, 5)
    if phase == Phase.PEAK:
        return _intervals(6, 3, 2, 5) if index == 0 else _hill_sprints(8)
    return _intervals(4, 3, 2, 5) if index == 0 else _hill_sprints(6)


def _pyramidal_session(context: DistributionContext, index: int) -> Tuple[WorkoutType, Dict[str, Any]]:
    """Pyramidal: a zone 4 tempo, zone 4/5 intervals, and hill sprints as a third session."""
    step = _step(context)
    phase = context.phase
    if index == 0:
        minutes = {Phase.BASE: 20 + 5 * step, Phase.BUILD: 25 + 5 * step, Phase.PEAK: 30, Phase.TAPER: 15}[phase]
        return WorkoutType.TEMPO, {"duration_minutes": minutes, "zone": 4}
    if index == 1:
        if phase in (Phase.BASE, Phase.BUILD):
            return _intervals(4 + step, 6, 2, 4)
        return _intervals(5 if phase == Phase.PEAK else 4, 3, 2, 5)
    return _hill_sprints(8)


def _norwegian_day(context: DistributionContext, index: int) -> QualityDay:
    """
    Zone 4 threshold intervals. Double-threshold days (Norwegian, outside
    taper and recovery weeks) run one session AM and one PM.
    """
    step = _step(context)
    phase = context.phase
    long_reps = _intervals(4 + step, 6, 1, 4)
    if phase == Phase.PEAK:
        short_reps = _intervals(20, 1, 0.5, 4)
    else:
        short_reps = _intervals(8 + 2 * step, 3, 1, 4)
    if phase == Phase.TAPER:
        long_reps, short_reps = _intervals(4, 5, 1, 4), _intervals(6, 3, 1, 4)

    doubles = (
        context.methodology_config.double_days > index
        and phase != Phase.TAPER
        and not context.is_recovery_week
    )
    if doubles:
        am_type, am_params = long_reps
        pm_type, pm_params = short_reps
        return [
            (am_type, {**am_params, "session_time": SessionTime.AM}),
            (pm_type, {**pm_params, "session_time": SessionTime.PM}),
        ]
    return [long_reps if index % 2 == 0 else short_reps]


# =============================================================================
# CANOVA WEEK
# =============================================================================

def canova_period(phase: Phase, week_in_phase: int) -> CanovaPeriod:
    """Map a generic phase onto Canova's periods."""
    if phase == Phase.BASE:
        return CanovaPeriod.GENERAL if week_in_phase <= 4 else CanovaPeriod.FUNDAMENTAL
    if phase == Phase.BUILD:
        return CanovaPeriod.SPECIAL
    if phase == Phase.PEAK:
        return CanovaPeriod.SPECIFIC
    return CanovaPeriod.TAPER


def is_special_block_week(context: DistributionContext) -> bool:
    """Special-block weeks: every 4th special week and every 3rd specific week, 6+ running days."""
    if context.is_recovery_week or context.running_days < 6 or context.methodology_config.double_days < 1:
        return False
    period = canova_period(context.phase, context.week_in_phase)
    if period == CanovaPeriod.SPECIAL:
        return context.week_in_phase % 4 == 0
    if period == CanovaPeriod.SPECIFIC:
        return context.week_in_phase % 3 == 0
    return False


def _canova_params(context: DistributionContext, **params: Any) -> Dict[str, Any]:
    if context.marathon_pace:
        params["marathon_pace"] = context.marathon_pace
    return params


def specific_extensive_session(context: DistributionContext) -> Dict[str, Any]:
    """
    Long repeats near MP. Reps and distance unlock through the period; the
    pace percent tightens every week of the program.
    """
    option = min(len(SPECIFIC_EXTENSIVE_OPTIONS) - 1, (context.week_in_phase - 1) // 2)
    reps, work_km = SPECIFIC_EXTENSIVE_OPTIONS[option]
    if context.athlete_level not in (AthleteLevel.ADVANCED, AthleteLevel.ELITE):
        reps = max(3, reps - 1)
    if context.phase == Phase.TAPER:
        reps = max(2, round(reps * TAPER_REP_SCALE))

    return _canova_params(
        context,
        session="specific_extensive",
        name=f"Specific Endurance {reps}x{work_km:g}km",
        reps=reps,
        work_km=work_km,
        pace_percent=specific_pace_percent(context.week_number, context.total_weeks),
        recovery_km=1.0,
        recovery_percent=85.0,
    )


def specific_intensive_session(context: DistributionContext) -> Dict[str, Any]:
    period = canova_period(context.phase, context.week_in_phase)
    if period == CanovaPeriod.TAPER:
        reps, pct = 6, 103.0
    elif period == CanovaPeriod.SPECIFIC and context.week_in_phase > 3:
        reps, pct = 12, 105.0
    elif period == CanovaPeriod.SPECIFIC:
        reps, pct = 10, 103.0
    else:
        reps, pct = 8, 103.0
    return _canova_params(
        context,
        session="specific_intensive",
        name=f"Intensive Intervals {reps}x1km",
        reps=reps,
        work_km=1.0,
        pace_percent=pct,
        recovery_km=0.4,
        recovery_percent=90.0,
    )


def _canova_q1(context: DistributionContext, period: CanovaPeriod) -> Tuple[WorkoutType, Dict[str, Any]]:
    if period in (CanovaPeriod.SPECIAL, CanovaPeriod.SPECIFIC, CanovaPeriod.TAPER):
        return WorkoutType.CANOVA_INTERVALS, specific_extensive_session(context)
    if period == CanovaPeriod.FUNDAMENTAL:
        minutes, pct = (45, 92.0) if context.week_in_phase >= 3 else (40, 90.0)
        return WorkoutType.TEMPO, _canova_params(
            context, name="Fundamental Continuous Run", duration_minutes=minutes, pace_percent=pct,
        )
    return WorkoutType.TEMPO, _canova_params(
        context, name="General Aerobic Run", duration_minutes=30, pace_percent=80.0,
    )


def _canova_q2(context: DistributionContext, period: CanovaPeriod) -> Tuple[WorkoutType, Dict[str, Any]]:
    if period in (CanovaPeriod.SPECIAL, CanovaPeriod.SPECIFIC, CanovaPeriod.TAPER):
        return WorkoutType.CANOVA_INTERVALS, specific_intensive_session(context)
    if period == CanovaPeriod.FUNDAMENTAL and context.week_in_phase >= 2:
        reps = 6 + min(2, context.week_in_phase // 2)
        return WorkoutType.CANOVA_INTERVALS, _canova_params(
            context, session="fundamental", name=f"Fundamental Intervals {reps}x1km",
            reps=reps, work_km=1.0, pace_percent=95.0, recovery_km=1.0, recovery_percent=80.0,
        )
    return _hill_sprints(8 + min(4, context.week_in_phase))


def _canova_long_run(context: DistributionContext, period: CanovaPeriod) -> Dict[str, Any]:
    """Long run by period: continuous early, progressive MP finish later, alternations in specific."""
    km = _round_half(min(CANOVA_LONG_RUN_KM[period], max(12.0, context.weekly_volume * 0.35)))
    if context.is_race_week:
        km = min(km, 12.0)

    finish = CANOVA_LONG_RUN_FINISH.get(period)
    if finish is None or context.is_recovery_week or context.is_race_week:
        return _canova_params(context, distance_km=km, segments=[
            {"distance_km": km, "pace_percent": 80.0},
        ])

    share, pct = finish
    if pct is None:
        pct = specific_pace_percent(context.week_number, context.total_weeks)

    if period == CanovaPeriod.SPECIFIC and context.week_in_phase % 2 == 0:
        pairs = max(1, min(8, int(km * 0.5 // 2)))
        easy_km = _round_half(km - 2 * pairs)
        segments = [{"distance_km": easy_km, "pace_percent": 80.0}]
        for _ in range(pairs):
            segments.append({"distance_km": 1.0, "pace_percent": 103.0})
            segments.append({"distance_km": 1.0, "pace_percent": 90.0})
        return _canova_params(context, name="Alternating Long Run", distance_km=km, segments=segments)

    finish_km = _round_half(km * share)
    return _canova_params(context, distance_km=km, segments=[
        {"distance_km": km - finish_km, "pace_percent": 80.0},
        {"distance_km": finish_km, "pace_percent": min(100.0, pct)},
    ])


def _canova_easy(context: DistributionContext, distance: Dict[str, float]) -> Dict[str, Any]:
    return _canova_params(context, pace_percent=CANOVA_EASY_PERCENT, **distance)


def _canova_week(context: DistributionContext) -> List[WorkoutSlot]:
    period = canova_period(context.phase, context.week_in_phase)
    long_day = context.methodology_config.long_run_day
    long_params = _canova_long_run(context, period)

    if is_special_block_week(context):
        return _canova_block_week(context, period, long_params)

    quota = _quality_quota(context)
    hard_days = pick_hard_days(quota, long_day)
    slots = [WorkoutSlot(day_number=long_day, workout_type=WorkoutType.LONG_RUN, params=long_params)]

    sessions = [_canova_q1, _canova_q2]
    for index, day in enumerate(hard_days):
        if index < len(sessions):
            workout_type, params = sessions[index](context, period)
        else:
            workout_type, params = _hill_sprints(8)
        slots.append(WorkoutSlot(day_number=day, workout_type=workout_type, params=params))

    easy_count = context.running_days - 1 - len(hard_days)
    easy_size = _easy_size(context, long_params["distance_km"], len(hard_days), easy_count)
    for day in _fill_days(EASY_DAY_PREFERENCE, set(hard_days) | {long_day}, easy_count):
        slots.append(WorkoutSlot(day_number=day, workout_type=WorkoutType.EASY,
                                 params=_canova_easy(context, easy_size)))
    return slots


def _canova_block_week(
    context: DistributionContext,
    period: CanovaPeriod,
    long_params: Dict[str, Any],
) -> List[WorkoutSlot]:
    """
    Special block: double quality day (AM/PM) on day 2, regeneration on
    days 3-4, intensive intervals on day 5, long run on the long-run day.
    """
    if period == CanovaPeriod.SPECIFIC:
        block = "mixed"
    elif context.athlete_level == AthleteLevel.ELITE:
        block = "extensive"
    else:
        block = "intensive"
    scale = 1.0 if context.athlete_level == AthleteLevel.ELITE else 0.85
    logger.info(f"Week {context.week_number}: Canova special block ({block})")

    slots = []
    for session_time, template in zip((SessionTime.AM, SessionTime.PM), CANOVA_BLOCKS[block]):
        params = {k: v for k, v in template.items() if k != "workout_type"}
        if "distance_km" in params:
            params["distance_km"] = _round_half(params["distance_km"] * scale)
        if "reps" in params:
            params["reps"] = max(4, round(params["reps"] * scale))
            params["session"] = f"block_{block}"
        params["name"] = f"Special Block {block.title()} ({session_time.value.upper()})"
        params["session_time"] = session_time
        slots.append(WorkoutSlot(day_number=2, workout_type=template["workout_type"],
                                 params=_canova_params(context, **params)))

    for day in BLOCK_REGENERATION_DAYS:
        slots.append(WorkoutSlot(day_number=day, workout_type=WorkoutType.RECOVERY_RUN, params=_canova_params(
            context, name="Regeneration Run", duration_minutes=40, pace_percent=CANOVA_REGENERATION_PERCENT,
        )))
    slots.append(WorkoutSlot(day_number=BLOCK_INTENSIVE_DAY, workout_type=WorkoutType.CANOVA_INTERVALS,
                             params=specific_intensive_session(context)))
    long_day = context.methodology_config.long_run_day
    slots.append(WorkoutSlot(day_number=long_day, workout_type=WorkoutType.LONG_RUN, params=long_params))

    taken = {s.day_number for s in slots}
    easy_count = context.running_days - len(taken)
    for day in _fill_days((1, 6), taken, easy_count):
        slots.append(WorkoutSlot(day_number=day, workout_type=WorkoutType.EASY,
                                 params=_canova_easy(context, {"distance_km": 10.0})))
    return slots


# =============================================================================
# STRENGTH / CORE / CROSS-TRAINING
# =============================================================================

def _is_running_goal(goal_type: GoalType) -> bool:
    return goal_type in GOAL_DISTANCE_KM


def _supplementary_sessions(context: DistributionContext, running: Sequence[WorkoutSlot]) -> List[WorkoutSlot]:
    """
    Place the requested non-running sessions.

    Standalone sessions use free days only while the week has training days
    to spare; otherwise (or when the athlete asked for it) they stack onto a
    running day as a PM session.
    """
    request = context.request
    if request is None:
        return []

    running_days = {s.day_number for s in running}
    hard_days = {s.day_number for s in running if s.workout_type in QUALITY_TYPES}
    long_days = {s.day_number for s in running if s.workout_type == WorkoutType.LONG_RUN}
    capacity = context.training_days - len(running_days)
    support_days: Dict[int, Set[WorkoutType]] = {}
    stacked: Dict[int, Set[WorkoutType]] = {}
    slots: List[WorkoutSlot] = []

    def place(workout_type: WorkoutType, preference: Sequence[int], after_running: bool) -> Tuple[int, Optional[SessionTime]]:
        nonlocal capacity
        if not after_running:
            if capacity > 0:
                day = _fill_days(preference, running_days | set(support_days), 1)[0]
                capacity -= 1
                support_days[day] = {workout_type}
                return day, None
            for day in preference:
                if day in support_days and workout_type not in support_days[day]:
                    support_days[day].add(workout_type)
                    return day, None

        def score(day: int) -> Tuple[int, int, int]:
            kind = 2 if day in long_days else 1 if day in hard_days else 0
            order = preference.index(day) if day in preference else len(preference)
            return len(stacked.get(day, ())), kind, order

        day = min(sorted(running_days), key=score)
        stacked.setdefault(day, set()).add(workout_type)
        return day, SessionTime.PM

    canova = context.methodology == MethodologyType.CANOVA
    strength_pref = CANOVA_STRENGTH_DAY_PREFERENCE if canova else STRENGTH_DAY_PREFERENCE
    core_pref = CANOVA_CORE_DAY_PREFERENCE if canova else CORE_DAY_PREFERENCE

    strength_count = request.strength_sessions_per_week
    if context.phase == Phase.TAPER:
        strength_count = min(1, strength_count)
    for index in range(strength_count):
        plyometric = (
            strength_count >= 2
            and index == strength_count - 1
            and context.phase in (Phase.BUILD, Phase.PEAK)
            and _is_running_goal(context.goal_type)
        )
        workout_type = WorkoutType.PLYOMETRIC if plyometric else WorkoutType.STRENGTH
        day, session_time = place(workout_type, strength_pref, request.schedule_strength_after_running)
        focus = "full" if context.phase == Phase.BASE else ("lower", "upper")[index % 2]
        params: Dict[str, Any] = {"focus": "explosive" if plyometric else focus}
        if session_time:
            params["session_time"] = session_time
        slots.append(WorkoutSlot(day_number=day, workout_type=workout_type, params=params))

    for _ in range(request.core_sessions_per_week):
        day, session_time = place(WorkoutType.CORE, core_pref, request.schedule_core_after_running)
        params = {"focus": "core"}
        if session_time:
            params["session_time"] = session_time
        slots.append(WorkoutSlot(day_number=day, workout_type=WorkoutType.CORE, params=params))

    for _ in range(request.cross_training_sessions_per_week):
        day, session_time = place(WorkoutType.CROSS_TRAINING, CROSS_TRAINING_DAY_PREFERENCE, False)
        params = {"duration_minutes": 30 if context.is_recovery_week else 45}
        if session_time:
            params["session_time"] = session_time
        slots.append(WorkoutSlot(day_number=day, workout_type=WorkoutType.CROSS_TRAINING, params=params))

    return slots
