"""
Zone Resolver

Turns whatever physiological data an athlete has into one canonical
ZoneTable (pace in sec/km, or power in watts for cycling goals).

Priority:
    1. Elite pace estimate, when internally consistent and confident enough
    2. Threshold test (aerobic / anaerobic threshold), interpolated to 5 zones
    3. Recent race result, via the Daniels/Gilbert oxygen cost model (VDOT)

Problems with a source (stale race, low-confidence estimate) become
warnings on the table; they never block generation on their own.

Usage:
    zones = resolve_zones(
        GoalType.MARATHON,
        race_result=RaceResult(distance_meters=21097.5, time_seconds=5400),
    )
"""

import logging
import math
from datetime import date
from typing import Dict, List, Mapping, Optional, Tuple

from .constants import (
    CONFIDENCE_RANK,
    MARATHON_ZONE,
    POWER_GOALS,
    Confidence,
    GoalType,
    ZoneSourceKind,
    ZoneUnit,
)
from .exceptions import IncompatibleZoneTypeError, InsufficientDataError
from .models import (
    EliteEstimate,
    RaceResult,
    ThresholdTest,
    ZoneKey,
    ZoneTable,
    zone_order_problems,
)

logger = logging.getLogger(__name__)

SOURCE_PRIORITY = (
    ZoneSourceKind.ELITE_ESTIMATE,
    ZoneSourceKind.THRESHOLD_TEST,
    ZoneSourceKind.RACE_RESULT,
)

# Threshold test interpolation: zone -> multiplier of (LT1, LT2)
# Running works on speed (km/h) and converts to pace at the end.
RUNNING_TEST_FACTORS = {1: ("lt1", 0.85), 2: ("lt1", 1.0), 4: ("lt2", 1.0), 5: ("lt2", 1.08)}
CYCLING_TEST_FACTORS = {1: ("lt1", 0.75), 2: ("lt1", 1.0), 4: ("lt2", 1.0), 5: ("lt2", 1.15)}


# ---------------------------------------------------------------------------
# VDOT (Daniels/Gilbert oxygen cost model)
# ---------------------------------------------------------------------------

# Fraction of VO2max for each training pace at benchmark VDOTs:
# VDOT: (easy_fast, easy_slow, marathon, threshold, interval, repetition)
INTENSITY_TABLE = {
    30: (0.656310, 0.55, 0.857530, 0.923901, 1.113017, 1.244426),
    35: (0.694032, 0.55, 0.884464, 0.951698, 1.135265, 1.259791),
    40: (0.694401, 0.55, 0.872771, 0.938283, 1.108994, 1.226613),
    45: (0.689502, 0.55, 0.847517, 0.910706, 1.072698, 1.178602),
    50: (0.676021, 0.55, 0.819635, 0.887196, 1.046102, 1.148391),
    55: (0.669899, 0.55, 0.806541, 0.866426, 1.013673, 1.105520),
    60: (0.660404, 0.55, 0.794224, 0.848246, 0.993932, 1.085095),
    65: (0.658450, 0.55, 0.791007, 0.854612, 0.993399, 1.086487),
    70: (0.659559, 0.55, 0.787847, 0.845433, 0.982708, 1.070224),
}
PACE_INDEX = {
    "easy_fast": 0,
    "easy_slow": 1,
    "marathon": 2,
    "threshold": 3,
    "interval": 4,
    "repetition": 5,
}
# Zone built from each VDOT training pace
VDOT_ZONE_PACES = {1: "easy_slow", 2: "easy_fast", 3: "marathon", 4: "threshold", 5: "interval"}


def vdot_from_race(distance_meters: float, time_seconds: float) -> Optional[float]:
    """
    VDOT for a race performance.

    VDOT = (-4.60 + 0.182258*V + 0.000104*V^2)
           / (0.8 + 0.1894393*e^(-0.012778*T) + 0.2989558*e^(-0.1932605*T))

    where V is velocity in m/min and T is time in minutes.
    """
    if distance_meters <= 0 or time_seconds <= 0:
        return None

    time_minutes = time_seconds / 60.0
    velocity = distance_meters / time_minutes

    vo2 = -4.6 + (0.182258 * velocity) + (0.000104 * velocity * velocity)
    pct_max = 0.8 + (0.1894393 * math.exp(-0.012778 * time_minutes)) + \
        (0.2989558 * math.exp(-0.1932605 * time_minutes))

    if pct_max <= 0 or vo2 <= 0:
        return None
    return vo2 / pct_max


def vo2_to_velocity(target_vo2: float) -> float:
    """
    Reverse-solve the oxygen cost equation for velocity (m/min).

    0.000104*v^2 + 0.182258*v - (4.6 + VO2) = 0
    """
    a = 0.000104
    b = 0.182258
    c = -(4.6 + target_vo2)
    discriminant = b * b - 4 * a * c
    return (-b + math.sqrt(discriminant)) / (2 * a)


def interpolate_intensity(vdot: float, idx: int) -> float:
    """Linearly interpolate the VO2max fraction for a pace type."""
    vdots = sorted(INTENSITY_TABLE)
    if vdot <= vdots[0]:
        return INTENSITY_TABLE[vdots[0]][idx]
    if vdot >= vdots[-1]:
        return INTENSITY_TABLE[vdots[-1]][idx]
    for low, high in zip(vdots, vdots[1:]):
        if low <= vdot <= high:
            t = (vdot - low) / (high - low)
            i1, i2 = INTENSITY_TABLE[low][idx], INTENSITY_TABLE[high][idx]
            return i1 + t * (i2 - i1)
    return INTENSITY_TABLE[50][idx]


def pace_for(vdot: float, pace_type: str) -> float:
    """Training pace in seconds per km for a VDOT and pace type."""
    intensity = interpolate_intensity(vdot, PACE_INDEX[pace_type])
    velocity = vo2_to_velocity(vdot * intensity)
    return 60000.0 / velocity


def race_time_from_vdot(vdot: float, distance_meters: float) -> Optional[float]:
    """Equivalent race time (seconds) for a VDOT, by bisection on time."""
    if vdot <= 0 or distance_meters <= 0:
        return None
    low, high = distance_meters / 10.0, distance_meters / 0.5  # 10 m/s .. 0.5 m/s
    for _ in range(100):
        mid = (low + high) / 2
        estimate = vdot_from_race(distance_meters, mid)
        if estimate is None:
            return None
        if estimate > vdot:
            low = mid
        else:
            high = mid
    return (low + high) / 2


# ---------------------------------------------------------------------------
# Unit helpers
# ---------------------------------------------------------------------------

def speed_to_pace(kmh: float) -> float:
    """km/h -> seconds per km."""
    return 3600.0 / kmh


def pace_to_speed(sec_per_km: float) -> float:
    """seconds per km -> km/h."""
    return 3600.0 / sec_per_km


def format_pace(sec_per_km: float) -> str:
    """Seconds per km as M:SS."""
    if sec_per_km <= 0:
        return "--:--"
    total = int(round(sec_per_km))
    return f"{total // 60}:{total % 60:02d}"


def parse_time_to_seconds(text: str, prefer_hours: bool = False) -> Optional[float]:
    """
    Parse "H:MM:SS", "MM:SS" or "H:MM" into seconds.

    Two-part values are read as MM:SS unless prefer_hours is set (used for
    marathon and half marathon goals, where "3:15" means 3h15m).
    """
    if not text:
        return None
    try:
        parts = [float(p) for p in text.strip().split(":")]
    except ValueError:
        return None
    if any(p < 0 for p in parts):
        return None
    if len(parts) == 3:
        return parts[0] * 3600 + parts[1] * 60 + parts[2]
    if len(parts) == 2:
        if prefer_hours and parts[0] <= 6:
            return parts[0] * 3600 + parts[1] * 60
        return parts[0] * 60 + parts[1]
    return None


# ---------------------------------------------------------------------------
# Source converters
# ---------------------------------------------------------------------------

def _normalize_keys(zones: Mapping) -> Dict[ZoneKey, float]:
    normalized = {}
    for key, value in zones.items():
        if isinstance(key, str) and key.isdigit():
            key = int(key)
        normalized[key] = float(value)
    return normalized


def zones_from_threshold_test(test: ThresholdTest) -> Dict[ZoneKey, float]:
    """Five zones interpolated around the two thresholds."""
    lt1, lt2 = test.aerobic_threshold, test.anaerobic_threshold
    anchors = {"lt1": lt1, "lt2": lt2}
    factors = CYCLING_TEST_FACTORS if test.unit == ZoneUnit.POWER else RUNNING_TEST_FACTORS

    raw = {zone: anchors[anchor] * factor for zone, (anchor, factor) in factors.items()}
    raw[3] = (lt1 + lt2) / 2

    if test.unit == ZoneUnit.POWER:
        return dict(sorted(raw.items()))

    zones: Dict[ZoneKey, float] = {zone: speed_to_pace(kmh) for zone, kmh in sorted(raw.items())}
    zones[MARATHON_ZONE] = zones[3]
    return zones


def zones_from_race(race: RaceResult) -> Tuple[float, Dict[ZoneKey, float]]:
    vdot = vdot_from_race(race.distance_meters, race.time_seconds)
    if vdot is None:
        raise ValueError("race result has no usable distance/time")
    zones: Dict[ZoneKey, float] = {
        zone: pace_for(vdot, pace_type) for zone, pace_type in VDOT_ZONE_PACES.items()
    }
    zones[MARATHON_ZONE] = zones[3]
    return vdot, zones


def _age_days(when: Optional[date], today: date) -> Optional[int]:
    if when is None:
        return None
    return (today - when).days


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

def resolve_zones(
    goal_type: GoalType,
    threshold_test: Optional[ThresholdTest] = None,
    race_result: Optional[RaceResult] = None,
    elite_estimate: Optional[EliteEstimate] = None,
    today: Optional[date] = None,
    min_confidence: Optional[Confidence] = None,
    race_max_age_days: Optional[int] = None,
    test_max_age_days: Optional[int] = None,
) -> ZoneTable:
    """
    Resolve the athlete's zone table from the best available source.

    Raises:
        IncompatibleZoneTypeError: goal needs power zones but only pace data
            exists (or the reverse)
        InsufficientDataError: none of the sources is usable
    """
    if min_confidence is None or race_max_age_days is None or test_max_age_days is None:
        from core.config import settings
        if min_confidence is None:
            min_confidence = Confidence(settings.ELITE_MIN_CONFIDENCE)
        if race_max_age_days is None:
            race_max_age_days = settings.RACE_RESULT_MAX_AGE_DAYS
        if test_max_age_days is None:
            test_max_age_days = settings.THRESHOLD_TEST_MAX_AGE_DAYS
    today = today or date.today()

    required_unit = ZoneUnit.POWER if goal_type in POWER_GOALS else ZoneUnit.PACE
    warnings: List[str] = []
    reasons: List[str] = []
    wrong_unit_available = False
    required_unit_seen = False

    # 1. Elite estimate
    if elite_estimate is None:
        reasons.append("elite_estimate: none on file")
    elif elite_estimate.unit != required_unit:
        wrong_unit_available = True
        reasons.append(f"elite_estimate: {elite_estimate.unit.value} data, {required_unit.value} required")
    else:
        required_unit_seen = True
        zones = _normalize_keys(elite_estimate.zones)
        problems = zone_order_problems(zones, elite_estimate.unit)
        if CONFIDENCE_RANK[elite_estimate.confidence] < CONFIDENCE_RANK[min_confidence]:
            warnings.append(
                f"Elite pace estimate ignored: confidence {elite_estimate.confidence.value} "
                f"is below {min_confidence.value}"
            )
        elif problems:
            warnings.append("Elite pace estimate ignored: zones not monotonic (" + "; ".join(problems) + ")")
        else:
            logger.info(f"Zones resolved from elite estimate ({elite_estimate.confidence.value} confidence)")
            return ZoneTable(
                unit=elite_estimate.unit,
                zones=zones,
                source=ZoneSourceKind.ELITE_ESTIMATE,
                confidence=elite_estimate.confidence,
                warnings=tuple(warnings),
                athlete_level=elite_estimate.athlete_level,
                metabolic_type=elite_estimate.metabolic_type,
            )
        reasons.append("elite_estimate: rejected")

    # 2. Threshold test
    if threshold_test is None:
        reasons.append("threshold_test: none on file")
    elif threshold_test.unit != required_unit:
        wrong_unit_available = True
        reasons.append(f"threshold_test: {threshold_test.unit.value} data, {required_unit.value} required")
    elif not 0 < threshold_test.aerobic_threshold < threshold_test.anaerobic_threshold:
        required_unit_seen = True
        warnings.append(
            "Threshold test ignored: aerobic threshold must be positive and below the anaerobic threshold"
        )
        reasons.append("threshold_test: inconsistent thresholds")
    else:
        age = _age_days(threshold_test.test_date, today)
        if age is not None and age > test_max_age_days:
            warnings.append(f"Zones derived from a threshold test {age} days old; consider retesting")
        has_hr = threshold_test.aerobic_threshold_hr and threshold_test.anaerobic_threshold_hr
        confidence = Confidence.HIGH if has_hr else Confidence.MEDIUM
        logger.info(f"Zones resolved from threshold test ({threshold_test.unit.value})")
        return ZoneTable(
            unit=threshold_test.unit,
            zones=zones_from_threshold_test(threshold_test),
            source=ZoneSourceKind.THRESHOLD_TEST,
            confidence=confidence,
            warnings=tuple(warnings),
        )

    # 3. Race result
    if race_result is None:
        reasons.append("race_result: none on file")
    elif required_unit == ZoneUnit.POWER:
        wrong_unit_available = True
        reasons.append("race_result: pace data, watts required")
    else:
        try:
            vdot, zones = zones_from_race(race_result)
        except ValueError as e:
            reasons.append(f"race_result: {e}")
        else:
            age = _age_days(race_result.race_date, today)
            confidence = Confidence.MEDIUM
            if age is not None and age > race_max_age_days:
                warnings.append(f"Zones derived from race result older than {race_max_age_days} days ({age} days)")
                confidence = Confidence.LOW
            logger.info(f"Zones resolved from race result (VDOT {vdot:.1f})")
            return ZoneTable(
                unit=ZoneUnit.PACE,
                zones=zones,
                source=ZoneSourceKind.RACE_RESULT,
                confidence=confidence,
                warnings=tuple(warnings),
            )

    if wrong_unit_available and not required_unit_seen:
        available = ZoneUnit.PACE if required_unit == ZoneUnit.POWER else ZoneUnit.POWER
        raise IncompatibleZoneTypeError(required_unit.value, available.value)

    raise InsufficientDataError([s.value for s in SOURCE_PRIORITY], reasons)
