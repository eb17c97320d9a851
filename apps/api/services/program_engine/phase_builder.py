"""
Phase Builder

Splits a program into base / build / peak / taper week counts using the
methodology's proportions.

Rounding rule: each proportion is floored, taper is raised to at least one
week, and whatever is left over goes to the build phase. If taper had to be
raised, the extra week comes out of the largest other phase.

Usage:
    phases = calculate_phases(16, MethodologyType.POLARIZED)
    # PhaseDistribution(base=4, build=6, peak=3, taper=3)
"""

import logging
import math
from typing import Optional

from .config import RulesRegistry
from .constants import MIN_DURATION_WEEKS, MethodologyType, Phase
from .exceptions import ProgramTooShortError
from .models import PhaseDistribution

logger = logging.getLogger(__name__)

# Focus label per phase, by position (early, late)
PHASE_FOCUS = {
    Phase.BASE: ("aerobic base", "aerobic strength"),
    Phase.BUILD: ("threshold development", "race-specific endurance"),
    Phase.PEAK: ("race-specific sharpening", "race-specific sharpening"),
    Phase.TAPER: ("freshening", "race week"),
}


def calculate_phases(
    duration_weeks: int,
    methodology: MethodologyType,
    rules: Optional[RulesRegistry] = None,
) -> PhaseDistribution:
    """
    Build the phase distribution for a program.

    Raises:
        ProgramTooShortError: duration_weeks < 4
    """
    if duration_weeks < MIN_DURATION_WEEKS:
        raise ProgramTooShortError(duration_weeks, MIN_DURATION_WEEKS)

    rules = rules or RulesRegistry.default()
    base_p, build_p, peak_p, taper_p = rules.phase_proportions(methodology)

    counts = {
        Phase.BASE: math.floor(duration_weeks * base_p + 1e-9),
        Phase.BUILD: math.floor(duration_weeks * build_p + 1e-9),
        Phase.PEAK: math.floor(duration_weeks * peak_p + 1e-9),
        Phase.TAPER: math.floor(duration_weeks * taper_p + 1e-9),
    }

    if counts[Phase.TAPER] < 1:
        counts[Phase.TAPER] = 1

    remainder = duration_weeks - sum(counts.values())
    counts[Phase.BUILD] += remainder

    # Raising taper can overdraw build on very short programs
    while counts[Phase.BUILD] < 0:
        donor = max((Phase.BASE, Phase.PEAK), key=lambda p: counts[p])
        counts[donor] -= 1
        counts[Phase.BUILD] += 1

    phases = PhaseDistribution(
        base=counts[Phase.BASE],
        build=counts[Phase.BUILD],
        peak=counts[Phase.PEAK],
        taper=counts[Phase.TAPER],
    )
    logger.debug(f"{methodology.value} {duration_weeks}w phases: {phases.to_dict()}")
    return phases


def focus_for(phase: Phase, week_in_phase: int, phase_weeks: int) -> str:
    """Descriptive label for a week, from its phase and position in it."""
    early, late = PHASE_FOCUS[phase]
    if phase == Phase.TAPER:
        return late if week_in_phase == phase_weeks else early
    return early if week_in_phase <= max(1, phase_weeks // 2) else late
