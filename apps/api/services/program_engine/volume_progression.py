"""
Volume Progression

Weekly volume targets and the progressive-overload curve.

Curve (percent of peak volume):
- Base + build: one linear ramp from base/peak up to 100%
- Peak: flat at 100%
- Taper: linear decrease, ending at the configured race-week level

Recovery weeks are NOT applied here; see deload.py.
"""

import logging
from typing import List, Optional, Tuple

from .config import RulesRegistry
from .constants import (
    MIN_TRAINING_DAYS,
    ExperienceLevel,
    GoalType,
    MethodologyType,
    Phase,
)
from .models import PhaseDistribution, WeekProgression
from .phase_builder import calculate_phases, focus_for

logger = logging.getLogger(__name__)


def calculate_volume_targets(
    experience_level: ExperienceLevel,
    goal_type: GoalType,
    current_weekly_volume: Optional[float] = None,
    rules: Optional[RulesRegistry] = None,
) -> Tuple[float, float]:
    """
    Base and peak weekly volume for an athlete.

    Volumes are km/week (hours/week for cycling). A reported current volume
    caps the starting point so the program never opens above what the
    athlete already does.
    """
    rules = rules or RulesRegistry.default()
    base, peak = rules.volume_targets(experience_level)
    multiplier = rules.goal_multiplier(goal_type)

    base_volume = base * multiplier
    peak_volume = peak * multiplier
    if current_weekly_volume:
        base_volume = min(current_weekly_volume, base_volume)

    logger.debug(
        f"Volume targets for {experience_level.value}/{goal_type.value}: "
        f"base={base_volume:.1f} peak={peak_volume:.1f}"
    )
    return base_volume, peak_volume


def progression(
    duration_weeks: int,
    base_volume: float,
    peak_volume: float,
    phases: Optional[PhaseDistribution] = None,
    rules: Optional[RulesRegistry] = None,
) -> List[WeekProgression]:
    """
    Raw per-week volume curve as a percentage of peak volume.

    Non-decreasing through base, build and peak; strictly decreasing
    through taper.
    """
    if peak_volume <= 0:
        raise ValueError("peak_volume must be positive")
    rules = rules or RulesRegistry.default()
    if phases is None:
        phases = calculate_phases(duration_weeks, MethodologyType.POLARIZED, rules)
    if phases.total != duration_weeks:
        raise ValueError(f"phase distribution covers {phases.total} weeks, expected {duration_weeks}")

    start_pct = max(0.0, min(100.0, base_volume / peak_volume * 100.0))
    final_taper_pct = rules.taper_final_volume_pct
    ramp_weeks = phases.base + phases.build

    weeks = []
    for week, phase, week_in_phase in phases.phase_mapping():
        if phase in (Phase.BASE, Phase.BUILD):
            if ramp_weeks <= 1:
                pct = start_pct
            else:
                pct = start_pct + (100.0 - start_pct) * (week - 1) / (ramp_weeks - 1)
        elif phase == Phase.PEAK:
            pct = 100.0
        else:
            pct = 100.0 - (100.0 - final_taper_pct) * week_in_phase / phases.taper

        weeks.append(WeekProgression(
            week=week,
            phase=phase,
            week_in_phase=week_in_phase,
            volume_percentage=round(pct, 2),
            focus=focus_for(phase, week_in_phase, phases.weeks_in(phase)),
        ))
    return weeks


def training_days_for_phase(
    experience_level: ExperienceLevel,
    phase: Phase,
    requested_days: int,
) -> int:
    """Beginners drop one training day during taper (never below the minimum)."""
    if experience_level == ExperienceLevel.BEGINNER and phase == Phase.TAPER:
        return max(MIN_TRAINING_DAYS, requested_days - 1)
    return requested_days
