"""
Methodology Selector

Chooses the training methodology for a request and produces the weekly
session structure for a given number of training days.

Selection:
- Explicit(methodology): used as asked, after alias lookup. An alias
  (e.g. lydiard -> canova) is a logged, recorded substitution.
- Auto(): metabolic-type decision table when a classification exists,
  otherwise advanced/elite marathoners and half marathoners get Canova and
  everyone else gets Polarized. Lactate-guided methods are never picked
  for an athlete without a lactate meter.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .config import RulesRegistry
from .constants import (
    DOUBLE_SESSION_METHODOLOGIES,
    LACTATE_METHODOLOGIES,
    MAX_TRAINING_DAYS,
    MIN_TRAINING_DAYS,
    AthleteLevel,
    GoalType,
    MetabolicType,
    MethodologyType,
)
from .exceptions import InputValidationError, UnsupportedDaysPerWeekError
from .models import Auto, Explicit, MethodologyChoice, MethodologyConfig

logger = logging.getLogger(__name__)

LONG_DISTANCE_GOALS = frozenset({GoalType.MARATHON, GoalType.HALF_MARATHON})

# (metabolic type, long-distance goal) -> methodology
METABOLIC_DECISION_TABLE: Dict[Tuple[MetabolicType, bool], MethodologyType] = {
    (MetabolicType.SLOW_TWITCH, True): MethodologyType.CANOVA,
    (MetabolicType.SLOW_TWITCH, False): MethodologyType.NORWEGIAN_SINGLE,
    (MetabolicType.FAST_TWITCH_ENDURANCE, True): MethodologyType.CANOVA,
    (MetabolicType.FAST_TWITCH_ENDURANCE, False): MethodologyType.PYRAMIDAL,
    (MetabolicType.FAST_TWITCH_POWER, True): MethodologyType.PYRAMIDAL,
    (MetabolicType.FAST_TWITCH_POWER, False): MethodologyType.POLARIZED,
    (MetabolicType.MIXED, True): MethodologyType.POLARIZED,
    (MetabolicType.MIXED, False): MethodologyType.POLARIZED,
}

# Methodologies that assume an experienced athlete
ADVANCED_METHODOLOGIES = frozenset({
    MethodologyType.CANOVA,
    MethodologyType.NORWEGIAN,
    MethodologyType.NORWEGIAN_SINGLE,
})
EXPERIENCED_LEVELS = frozenset({AthleteLevel.ADVANCED, AthleteLevel.ELITE})

DEFAULT_METHODOLOGY = MethodologyType.POLARIZED


@dataclass(frozen=True)
class MethodologySelection:
    methodology: MethodologyType
    requested: Optional[MethodologyType]
    reason: str
    substitution: Optional[str] = None


def select_methodology(
    athlete_level: AthleteLevel,
    goal_type: GoalType,
    choice: MethodologyChoice,
    metabolic_type: Optional[MetabolicType] = None,
    has_lactate_meter: bool = False,
    rules: Optional[RulesRegistry] = None,
) -> MethodologySelection:
    """
    Decide which methodology to use.

    Raises:
        InputValidationError: an explicit methodology is neither implemented
            nor aliased to one that is
    """
    rules = rules or RulesRegistry.default()

    if isinstance(choice, Explicit):
        return _resolve_explicit(choice.methodology, has_lactate_meter, rules)
    if not isinstance(choice, Auto):
        raise TypeError(f"Unsupported methodology choice: {choice!r}")

    if metabolic_type is not None:
        candidate = METABOLIC_DECISION_TABLE[(metabolic_type, goal_type in LONG_DISTANCE_GOALS)]
        reason = f"metabolic type {metabolic_type.value}"
    elif athlete_level in EXPERIENCED_LEVELS and goal_type in LONG_DISTANCE_GOALS:
        candidate = MethodologyType.CANOVA
        reason = f"{athlete_level.value} athlete targeting {goal_type.value}"
    else:
        candidate = DEFAULT_METHODOLOGY
        reason = "default"

    if candidate in ADVANCED_METHODOLOGIES and athlete_level not in EXPERIENCED_LEVELS:
        logger.info(f"Auto-selection: {candidate.value} needs an advanced athlete, using {DEFAULT_METHODOLOGY.value}")
        candidate, reason = DEFAULT_METHODOLOGY, f"{reason}; {athlete_level.value} level"
    if candidate in LACTATE_METHODOLOGIES and not has_lactate_meter:
        logger.info(f"Auto-selection: {candidate.value} needs a lactate meter, using {DEFAULT_METHODOLOGY.value}")
        candidate, reason = DEFAULT_METHODOLOGY, f"{reason}; no lactate meter"

    logger.info(f"Auto-selected methodology {candidate.value} ({reason})")
    return MethodologySelection(methodology=candidate, requested=None, reason=f"auto: {reason}")


def _resolve_explicit(
    requested: MethodologyType,
    has_lactate_meter: bool,
    rules: RulesRegistry,
) -> MethodologySelection:
    if rules.is_implemented(requested):
        if requested in LACTATE_METHODOLOGIES and not has_lactate_meter:
            logger.warning(f"{requested.value} requested without a lactate meter; threshold work will be pace-guided")
        return MethodologySelection(methodology=requested, requested=requested, reason="explicit")

    target = rules.alias_for(requested)
    if target is None:
        raise InputValidationError([f"Methodology '{requested.value}' is not supported"])

    note = f"{requested.value} is not implemented; using {target.value} as the closest equivalent"
    logger.warning(f"Methodology substitution: {note}")
    return MethodologySelection(
        methodology=target,
        requested=requested,
        reason="explicit (aliased)",
        substitution=note,
    )


def get_methodology_config(
    methodology: MethodologyType,
    days_per_week: int,
    rules: Optional[RulesRegistry] = None,
) -> MethodologyConfig:
    """
    Weekly structure for a methodology at a given training-day count.

    The long run always takes one day; hard sessions are capped so they fit
    alongside it.

    Raises:
        UnsupportedDaysPerWeekError: no configuration for that combination
    """
    rules = rules or RulesRegistry.default()
    if not rules.is_implemented(methodology):
        raise ValueError(f"No configuration for methodology {methodology.value}")

    quota = rules.hard_session_quota(methodology, days_per_week)
    if quota is None or not MIN_TRAINING_DAYS <= days_per_week <= MAX_TRAINING_DAYS:
        raise UnsupportedDaysPerWeekError(methodology.value, days_per_week)

    hard = max(0, min(quota, days_per_week - 1))
    easy = days_per_week - 1 - hard
    easy_pct, moderate_pct, hard_pct = rules.intensity_distribution(methodology)

    double_days = 0
    if methodology == MethodologyType.NORWEGIAN and days_per_week >= 4:
        double_days = hard
    elif methodology == MethodologyType.CANOVA and days_per_week >= 6:
        double_days = 1

    return MethodologyConfig(
        methodology=methodology,
        days_per_week=days_per_week,
        hard_sessions=hard,
        easy_sessions=easy,
        rest_days=7 - days_per_week,
        long_run_day=rules.long_run_day,
        intensity_easy_pct=easy_pct,
        intensity_moderate_pct=moderate_pct,
        intensity_hard_pct=hard_pct,
        allows_back_to_back=methodology in DOUBLE_SESSION_METHODOLOGIES,
        double_days=double_days,
        requires_lactate_meter=methodology in LACTATE_METHODOLOGIES,
        deload_reduction=rules.deload_reduction(methodology),
    )
