"""
Pace Progression

Goal-pace handling for marathon-pace-based methodologies.

The week's marathon pace (MP) moves from current fitness toward the goal
pace in a funnel: no movement in base, a little in build, most of it in
peak, and the last of it in taper. Paces are seconds per km; blending
happens in speed so equal steps feel equal.
"""

import logging
from typing import Optional

from .constants import (
    CANOVA_SPECIFIC_PACE_START,
    GOAL_DISTANCE_KM,
    RACE_DISTANCE_METERS,
    GoalType,
    Phase,
)
from .zone_resolver import (
    format_pace,
    pace_to_speed,
    parse_time_to_seconds,
    race_time_from_vdot,
    speed_to_pace,
    vdot_from_race,
)

logger = logging.getLogger(__name__)

HOURS_FORMAT_GOALS = frozenset({GoalType.MARATHON, GoalType.HALF_MARATHON})


def target_marathon_pace(goal_type: GoalType, target_time: Optional[str]) -> Optional[float]:
    """
    Goal marathon pace (sec/km) implied by a target race time.

    Shorter race goals are converted to an equivalent marathon pace through
    VDOT. Returns None when the goal has no race distance or the time
    cannot be parsed.
    """
    distance_km = GOAL_DISTANCE_KM.get(goal_type)
    if not target_time or distance_km is None:
        return None

    seconds = parse_time_to_seconds(target_time, prefer_hours=goal_type in HOURS_FORMAT_GOALS)
    if not seconds:
        logger.warning(f"Could not parse target time {target_time!r}")
        return None

    if goal_type == GoalType.MARATHON:
        return seconds / distance_km

    vdot = vdot_from_race(distance_km * 1000, seconds)
    if vdot is None:
        return None
    marathon_seconds = race_time_from_vdot(vdot, RACE_DISTANCE_METERS["marathon"])
    if marathon_seconds is None:
        return None
    return marathon_seconds / GOAL_DISTANCE_KM[GoalType.MARATHON]


def progression_percent(phase: Phase, week_in_phase: int) -> float:
    """How far (0-95%) this week's MP has moved from current fitness toward the goal."""
    if phase == Phase.BASE:
        return 0.0
    if phase == Phase.BUILD:
        return min(15.0, week_in_phase / 6 * 15)
    if phase == Phase.PEAK:
        return min(75.0, 15.0 + week_in_phase / 4 * 60)
    return min(95.0, 75.0 + week_in_phase / 2 * 20)


def weekly_marathon_pace(
    current_pace: float,
    target_pace: Optional[float],
    phase: Phase,
    week_in_phase: int,
) -> float:
    """
    This week's MP in sec/km.

    A goal slower than current fitness is ignored: the athlete trains at
    current fitness.
    """
    if target_pace is None or target_pace >= current_pace:
        return current_pace

    blend = progression_percent(phase, week_in_phase) / 100
    current_speed = pace_to_speed(current_pace)
    target_speed = pace_to_speed(target_pace)
    pace = speed_to_pace(current_speed + (target_speed - current_speed) * blend)
    logger.debug(
        f"MP {phase.value} w{week_in_phase}: {format_pace(pace)}/km "
        f"({blend:.0%} from {format_pace(current_pace)} toward {format_pace(target_pace)})"
    )
    return pace


def specific_pace_percent(week_number: int, total_weeks: int) -> float:
    """
    Target percent of MP for specific-endurance work.

    Tightens strictly toward 100% as the program progresses, reaching it
    in the final week.
    """
    if total_weeks <= 0:
        raise ValueError("total_weeks must be positive")
    progress = max(0.0, min(1.0, week_number / total_weeks))
    return round(CANOVA_SPECIFIC_PACE_START + (100.0 - CANOVA_SPECIFIC_PACE_START) * progress, 1)


def pace_at_percent(marathon_pace: float, percent: float) -> float:
    """Pace (sec/km) for running at `percent` of MP speed."""
    return marathon_pace / (percent / 100.0)
