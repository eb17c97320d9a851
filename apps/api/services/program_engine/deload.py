"""
Deload Scheduler

Places recovery weeks on top of the raw volume curve.

Rules:
- Frequency depends on athlete level (beginners every 5 weeks, everyone
  else every 4), one week sooner on intensive methodologies, never more
  often than every 3 weeks.
- Reduction factor depends on the methodology (30-40%).
- Never in taper, never in the first two weeks of a phase. A blocked
  candidate slides forward to the next eligible week.
"""

import logging
from typing import Iterable, Optional, Tuple

from .config import RulesRegistry
from .constants import AthleteLevel, MethodologyType, Phase
from .models import DeloadSchedule, DeloadWeek

logger = logging.getLogger(__name__)


def deload_frequency(
    athlete_level: AthleteLevel,
    methodology: MethodologyType,
    rules: RulesRegistry,
) -> int:
    frequency = rules.deload_frequency(athlete_level)
    if methodology in rules.intensive_methodologies:
        frequency -= 1
    return max(rules.min_deload_frequency, frequency)


def calculate_deload_schedule(
    duration_weeks: int,
    athlete_level: AthleteLevel,
    methodology: MethodologyType,
    phase_mapping: Iterable[Tuple[int, Phase, int]],
    rules: Optional[RulesRegistry] = None,
) -> DeloadSchedule:
    """
    Compute every recovery week of the program once, up front.

    Args:
        phase_mapping: (week_number, phase, week_in_phase) for each week,
            as produced by PhaseDistribution.phase_mapping()
    """
    rules = rules or RulesRegistry.default()
    frequency = deload_frequency(athlete_level, methodology, rules)
    reduction = rules.deload_reduction(methodology)
    lead_in = rules.deload_lead_in_weeks

    by_week = {week: (phase, week_in_phase) for week, phase, week_in_phase in phase_mapping}

    def eligible(week: int) -> bool:
        phase, week_in_phase = by_week[week]
        return phase != Phase.TAPER and week_in_phase > lead_in

    deloads = []
    candidate = frequency
    while candidate <= duration_weeks:
        week = candidate
        while week <= duration_weeks and not eligible(week):
            week += 1
        if week > duration_weeks:
            break
        deloads.append(DeloadWeek(week_number=week, reduction_factor=reduction))
        candidate = week + frequency

    schedule = DeloadSchedule(weeks=tuple(deloads))
    logger.info(
        f"Deload schedule ({athlete_level.value}, {methodology.value}, every {frequency}w, "
        f"-{reduction:.0%}): weeks {schedule.week_numbers}"
    )
    return schedule


def apply_deload(
    week_number: int,
    raw_volume_pct: float,
    schedule: DeloadSchedule,
    phase_floor: float = 0.0,
) -> float:
    """
    Volume for a week after any scheduled reduction.

    Pure: neither input is modified. The result is never negative, never
    above the raw value and, on a recovery week, never below the phase's
    minimum sustainable volume (unless the raw value already is).
    """
    raw = max(0.0, raw_volume_pct)
    factor = schedule.factor_for(week_number)
    if factor is None:
        return raw
    reduced = raw * (1.0 - factor)
    return min(raw, max(reduced, phase_floor))
