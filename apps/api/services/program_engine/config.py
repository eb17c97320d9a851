"""
Rules Registry

Immutable configuration for program generation: phase proportions,
session quotas, deload rules, volume targets, methodology aliases.

Defaults come from constants.py. A YAML file can override any subset,
which lets coaches tune business rules without code changes.

Usage:
    rules = RulesRegistry.default()
    rules = RulesRegistry.from_yaml("config/program_rules.yaml")

    proportions = rules.phase_proportions(MethodologyType.CANOVA)
    reduction = rules.get("deload.reduction.canova")
"""

import copy
import logging
from functools import lru_cache, reduce
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple, Union

import yaml

from . import constants as c
from .constants import (
    AthleteLevel,
    ExperienceLevel,
    GoalType,
    MethodologyType,
    Phase,
)

logger = logging.getLogger(__name__)

# Keys accepted at the top level of a rules file
KNOWN_SECTIONS = frozenset({
    "phase_proportions",
    "intensity_distribution",
    "hard_session_quotas",
    "long_run_day",
    "methodology_aliases",
    "deload",
    "volume_targets",
    "goal_volume_multipliers",
    "taper_final_volume_pct",
})


def _default_rules() -> Dict[str, Any]:
    """Plain-data view of the constants (string keys, lists) so YAML can merge over it."""
    return {
        "phase_proportions": {k.value: list(v) for k, v in c.PHASE_PROPORTIONS.items()},
        "intensity_distribution": {k.value: list(v) for k, v in c.INTENSITY_DISTRIBUTION.items()},
        "hard_session_quotas": {k.value: list(v) for k, v in c.HARD_SESSION_QUOTAS.items()},
        "long_run_day": c.LONG_RUN_DAY,
        "methodology_aliases": {k.value: v.value for k, v in c.METHODOLOGY_ALIASES.items()},
        "deload": {
            "frequency_by_level": {k.value: v for k, v in c.DELOAD_FREQUENCY_BY_LEVEL.items()},
            "intensive_methodologies": sorted(m.value for m in c.INTENSIVE_METHODOLOGIES),
            "min_frequency": c.MIN_DELOAD_FREQUENCY,
            "reduction": {k.value: v for k, v in c.DELOAD_REDUCTION.items()},
            "phase_lead_in_weeks": c.DELOAD_PHASE_LEAD_IN_WEEKS,
            "phase_floors": {k.value: v for k, v in c.PHASE_VOLUME_FLOORS.items()},
        },
        "volume_targets": {k.value: list(v) for k, v in c.VOLUME_TARGETS.items()},
        "goal_volume_multipliers": {k.value: v for k, v in c.GOAL_VOLUME_MULTIPLIERS.items()},
        "taper_final_volume_pct": c.TAPER_FINAL_VOLUME_PCT,
    }


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class RulesRegistry:
    """
    Read-only rule set passed explicitly to every stage that needs it.

    Instances never change after construction; use with_overrides() to
    derive a variant.
    """

    def __init__(self, rules: Optional[Dict[str, Any]] = None, source: str = "defaults"):
        merged = _deep_merge(_default_rules(), rules or {})
        unknown = set(rules or {}) - KNOWN_SECTIONS
        for key in sorted(unknown):
            logger.warning(f"Ignoring unknown program rules section: {key}")
        self._rules = merged
        self.source = source
        self._validate()

    @classmethod
    def default(cls) -> "RulesRegistry":
        return cls()

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "RulesRegistry":
        filepath = Path(path)
        with open(filepath, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Program rules file {filepath} must contain a mapping")
        logger.info(f"Loaded program rules from {filepath}")
        return cls(data, source=str(filepath))

    def with_overrides(self, overrides: Dict[str, Any]) -> "RulesRegistry":
        return RulesRegistry(_deep_merge(self._rules, overrides), source=f"{self.source}+overrides")

    def get(self, key: str = None, default: Any = None) -> Any:
        """
        Get a rule value by dot-separated key (e.g. "deload.reduction.canova").

        Returns a copy; mutating it does not affect the registry.
        """
        if key is None:
            return copy.deepcopy(self._rules)
        try:
            value = reduce(lambda d, k: d[k], key.split("."), self._rules)
        except (KeyError, TypeError):
            return default
        return copy.deepcopy(value)

    # -- typed accessors ----------------------------------------------------

    def phase_proportions(self, methodology: MethodologyType) -> Tuple[float, float, float, float]:
        return tuple(self._rules["phase_proportions"][methodology.value])

    def intensity_distribution(self, methodology: MethodologyType) -> Tuple[float, float, float]:
        return tuple(self._rules["intensity_distribution"][methodology.value])

    def hard_session_quota(self, methodology: MethodologyType, days_per_week: int) -> Optional[int]:
        quotas = self._rules["hard_session_quotas"].get(methodology.value)
        index = days_per_week - c.MIN_TRAINING_DAYS
        if quotas is None or index < 0 or index >= len(quotas):
            return None
        return int(quotas[index])

    @property
    def long_run_day(self) -> int:
        return int(self._rules["long_run_day"])

    def alias_for(self, methodology: MethodologyType) -> Optional[MethodologyType]:
        target = self._rules["methodology_aliases"].get(methodology.value)
        return MethodologyType(target) if target else None

    def is_implemented(self, methodology: MethodologyType) -> bool:
        return methodology.value in self._rules["phase_proportions"]

    def deload_frequency(self, athlete_level: AthleteLevel) -> int:
        return int(self._rules["deload"]["frequency_by_level"][athlete_level.value])

    @property
    def intensive_methodologies(self) -> FrozenSet[MethodologyType]:
        return frozenset(MethodologyType(m) for m in self._rules["deload"]["intensive_methodologies"])

    @property
    def min_deload_frequency(self) -> int:
        return int(self._rules["deload"]["min_frequency"])

    def deload_reduction(self, methodology: MethodologyType) -> float:
        return float(self._rules["deload"]["reduction"][methodology.value])

    @property
    def deload_lead_in_weeks(self) -> int:
        return int(self._rules["deload"]["phase_lead_in_weeks"])

    def phase_floor(self, phase: Phase) -> float:
        return float(self._rules["deload"]["phase_floors"].get(phase.value, 0.0))

    def volume_targets(self, experience: ExperienceLevel) -> Tuple[float, float]:
        base, peak = self._rules["volume_targets"][experience.value]
        return float(base), float(peak)

    def goal_multiplier(self, goal_type: GoalType) -> float:
        return float(self._rules["goal_volume_multipliers"].get(goal_type.value, 1.0))

    @property
    def taper_final_volume_pct(self) -> float:
        return float(self._rules["taper_final_volume_pct"])

    # -- validation ---------------------------------------------------------

    def _validate(self):
        problems = []
        for name, props in self._rules["phase_proportions"].items():
            if len(props) != 4:
                problems.append(f"phase_proportions.{name} needs 4 values")
            elif abs(sum(props) - 1.0) > 0.01:
                problems.append(f"phase_proportions.{name} sums to {sum(props):.2f}, expected 1.0")
        for name, dist in self._rules["intensity_distribution"].items():
            if len(dist) != 3 or abs(sum(dist) - 100.0) > 1e-6:
                problems.append(f"intensity_distribution.{name} must be 3 values summing to 100")
        for name, reduction in self._rules["deload"]["reduction"].items():
            if not 0.0 < reduction < 1.0:
                problems.append(f"deload.reduction.{name} must be between 0 and 1")
        for requested, target in self._rules["methodology_aliases"].items():
            if target not in self._rules["phase_proportions"]:
                problems.append(f"methodology_aliases.{requested} points at unknown methodology {target}")
        if not 1 <= self._rules["long_run_day"] <= 7:
            problems.append("long_run_day must be between 1 and 7")
        if problems:
            raise ValueError("Invalid program rules: " + "; ".join(problems))

    def __repr__(self) -> str:
        return f"RulesRegistry(source={self.source!r})"


@lru_cache(maxsize=1)
def load_rules(path: Optional[str] = None) -> RulesRegistry:
    """
    Build the registry used at application startup.

    With no path, the PROGRAM_RULES_PATH setting is consulted; when that is
    unset the built-in defaults are used.
    """
    if path is None:
        from core.config import settings
        path = settings.PROGRAM_RULES_PATH
    if path:
        return RulesRegistry.from_yaml(path)
    logger.info("Using default program rules")
    return RulesRegistry.default()
