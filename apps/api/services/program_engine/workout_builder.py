"""
Workout Builders

Turn a planned WorkoutSlot into a concrete WorkoutSpec with zone-derived
targets.

Every target value comes from the athlete's zone table. Percent-of-MP
targets are computed from the week's marathon pace and clamped into the
table's range. A slot that names a zone the table does not have raises
MissingZoneError instead of inventing a pace.

Usage:
    spec = build_workout(slot, zones, Phase.BUILD)
    spec.to_dict()
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .constants import (
    MARATHON_ZONE,
    STRENGTH_REP_SCHEMES,
    Intensity,
    Modality,
    Phase,
    SessionTime,
    WorkoutType,
    ZoneUnit,
)
from .models import WorkoutSegment, WorkoutSlot, WorkoutSpec, ZoneTable, ZoneKey
from .pace_progression import pace_at_percent
from .zone_resolver import format_pace

logger = logging.getLogger(__name__)

WARMUP_MINUTES = 15
COOLDOWN_MINUTES = 10

ZONE_INTENSITY = {
    1: Intensity.RECOVERY,
    2: Intensity.EASY,
    3: Intensity.MODERATE,
    4: Intensity.THRESHOLD,
    5: Intensity.INTERVAL,
    MARATHON_ZONE: Intensity.MODERATE,
}

# Session noun per endurance modality
SESSION_NOUN = {
    Modality.RUNNING: "Run",
    Modality.CYCLING: "Ride",
    Modality.SKIING: "Ski",
}


# =============================================================================
# HELPERS
# =============================================================================

def _noun(modality: Modality) -> str:
    return SESSION_NOUN.get(modality, "Session")


def _session_time(params: Mapping[str, Any]) -> Optional[SessionTime]:
    value = params.get("session_time")
    return SessionTime(value) if value else None


def _describe_target(value: float, unit: ZoneUnit) -> str:
    if unit == ZoneUnit.PACE:
        return f"{format_pace(value)}/km"
    return f"{value:.0f} W"


def _minutes_for(distance_km: float, pace: float) -> float:
    return distance_km * pace / 60.0


def _distance_for(minutes: float, pace: float) -> float:
    return minutes * 60.0 / pace


def zone_for_percent(percent: float) -> ZoneKey:
    """Nearest zone for a percent-of-MP effort."""
    if percent >= 110:
        return 5
    if percent >= 105:
        return 4
    if percent >= 95:
        return 3
    if percent >= 75:
        return 2
    return 1


def marathon_pace_for(params: Mapping[str, Any], zones: ZoneTable) -> float:
    """The slot's MP if the planner set one, else the table's marathon zone (zone 3 fallback)."""
    if params.get("marathon_pace"):
        return float(params["marathon_pace"])
    if zones.has(MARATHON_ZONE):
        return zones.value(MARATHON_ZONE)
    return zones.value(3)


def percent_target(params: Mapping[str, Any], zones: ZoneTable, percent: float) -> float:
    """
    Target for `percent` of MP, kept inside the zone table.

    Power tables have no MP: the nearest zone's value is used instead.
    """
    if not zones.is_pace:
        return zones.value(zone_for_percent(percent))
    pace = pace_at_percent(marathon_pace_for(params, zones), percent)
    return zones.clamp(pace)


def _easy_segment(kind: str, minutes: float, zones: ZoneTable, zone: ZoneKey = 1) -> WorkoutSegment:
    target = zones.value(zone)
    return WorkoutSegment(
        kind=kind,
        description=f"{minutes:.0f} min easy",
        duration_minutes=round(minutes, 1),
        zone=zone,
        target=target,
        unit=zones.unit,
    )


def _steady_block(
    kind: str,
    zones: ZoneTable,
    zone: ZoneKey,
    target: float,
    distance_km: Optional[float] = None,
    minutes: Optional[float] = None,
    pace_percent: Optional[float] = None,
    label: str = "",
) -> WorkoutSegment:
    """A continuous block sized by distance or time (the other is derived for pace tables)."""
    if zones.is_pace:
        if distance_km is not None and minutes is None:
            minutes = _minutes_for(distance_km, target)
        elif minutes is not None and distance_km is None:
            distance_km = _distance_for(minutes, target)
    size = f"{distance_km:.1f} km" if distance_km is not None else f"{minutes:.0f} min"
    return WorkoutSegment(
        kind=kind,
        description=f"{size} {label} @ {_describe_target(target, zones.unit)}".replace("  ", " "),
        duration_minutes=round(minutes, 1) if minutes is not None else None,
        distance_km=round(distance_km, 2) if distance_km is not None else None,
        zone=zone,
        target=target,
        unit=zones.unit,
        pace_percent=pace_percent,
    )


def _total_minutes(segments: Sequence[WorkoutSegment]) -> int:
    return int(round(sum(s.duration_minutes or 0 for s in segments)))


def _total_distance(segments: Sequence[WorkoutSegment]) -> Optional[float]:
    distances = [s.distance_km for s in segments if s.distance_km is not None]
    return round(sum(distances), 1) if distances else None


# =============================================================================
# ENDURANCE BUILDERS
# =============================================================================

def build_long_run(params: Mapping[str, Any], zones: ZoneTable) -> WorkoutSpec:
    """
    Long run / ride.

    params:
        distance_km or duration_minutes
        zone (default 2)
        segments: optional list of {"distance_km", "pace_percent"} for
            progressive or alternating long runs
    """
    modality = params.get("modality", Modality.RUNNING)
    zone = params.get("zone", 2)

    if params.get("segments"):
        segments = []
        for block in params["segments"]:
            pct = block["pace_percent"]
            segments.append(_steady_block(
                "work", zones, zone_for_percent(pct), percent_target(params, zones, pct),
                distance_km=block["distance_km"], pace_percent=pct, label=f"@{pct:.0f}% MP",
            ))
        fastest = max(segments, key=lambda s: s.pace_percent or 0)
        return WorkoutSpec(
            workout_type=WorkoutType.LONG_RUN,
            name=params.get("name", f"Progressive Long {_noun(modality)}"),
            modality=modality,
            intensity=ZONE_INTENSITY.get(fastest.zone, Intensity.MODERATE),
            duration_minutes=_total_minutes(segments),
            distance_km=_total_distance(segments),
            instructions=params.get(
                "description",
                "Run each block at its target; the finish should feel controlled, not raced.",
            ),
            segments=tuple(segments),
            target_zone=fastest.zone,
            target_value=fastest.target,
            target_unit=zones.unit,
            pace_percent=fastest.pace_percent,
            session_time=_session_time(params),
        )

    target = zones.value(zone)
    block = _steady_block(
        "work", zones, zone, target,
        distance_km=params.get("distance_km"),
        minutes=params.get("duration_minutes") if params.get("distance_km") is None else None,
    )
    return WorkoutSpec(
        workout_type=WorkoutType.LONG_RUN,
        name=params.get("name", f"Long {_noun(modality)}"),
        modality=modality,
        intensity=Intensity.EASY,
        duration_minutes=_total_minutes([block]),
        distance_km=block.distance_km,
        instructions=params.get(
            "description",
            f"Steady aerobic effort at {_describe_target(target, zones.unit)}. Fuel every 30-40 minutes.",
        ),
        segments=(block,),
        target_zone=zone,
        target_value=target,
        target_unit=zones.unit,
        session_time=_session_time(params),
    )


def build_tempo_run(params: Mapping[str, Any], zones: ZoneTable) -> WorkoutSpec:
    """
    Continuous tempo work between a warmup and cooldown.

    params:
        duration_minutes (work) or distance_km (work)
        zone (default 4) or pace_percent (percent of MP)
    """
    modality = params.get("modality", Modality.RUNNING)
    pct = params.get("pace_percent")
    if pct is not None:
        zone = zone_for_percent(pct)
        target = percent_target(params, zones, pct)
        label = f"@{pct:.0f}% MP"
    else:
        zone = params.get("zone", 4)
        target = zones.value(zone)
        label = "tempo"

    work = _steady_block(
        "work", zones, zone, target,
        distance_km=params.get("distance_km"),
        minutes=params.get("duration_minutes", 20) if params.get("distance_km") is None else None,
        pace_percent=pct,
        label=label,
    )
    segments = (
        _easy_segment("warmup", WARMUP_MINUTES, zones),
        work,
        _easy_segment("cooldown", COOLDOWN_MINUTES, zones),
    )
    return WorkoutSpec(
        workout_type=WorkoutType.TEMPO,
        name=params.get("name", f"Tempo {_noun(modality)}"),
        modality=modality,
        intensity=ZONE_INTENSITY.get(zone, Intensity.THRESHOLD),
        duration_minutes=_total_minutes(segments),
        distance_km=_total_distance(segments),
        instructions=params.get(
            "description",
            f"Warm up, then {work.description}. Comfortably hard and even.",
        ),
        segments=segments,
        target_zone=zone,
        target_value=target,
        target_unit=zones.unit,
        pace_percent=pct,
        session_time=_session_time(params),
    )


def build_intervals(params: Mapping[str, Any], zones: ZoneTable) -> WorkoutSpec:
    """
    Timed repeats with easy recoveries.

    params: reps, work_minutes, rest_minutes, zone (default 5)
    """
    modality = params.get("modality", Modality.RUNNING)
    reps = int(params.get("reps", 5))
    work_minutes = float(params.get("work_minutes", 3))
    rest_minutes = float(params.get("rest_minutes", 2))
    zone = params.get("zone", 5)
    target = zones.value(zone)
    recovery_target = zones.value(1)

    segments: List[WorkoutSegment] = [_easy_segment("warmup", WARMUP_MINUTES, zones)]
    for rep in range(1, reps + 1):
        segments.append(WorkoutSegment(
            kind="interval",
            description=f"Rep {rep}: {work_minutes:g} min @ {_describe_target(target, zones.unit)}",
            duration_minutes=work_minutes,
            zone=zone,
            target=target,
            unit=zones.unit,
        ))
        if rep < reps:
            segments.append(WorkoutSegment(
                kind="rest",
                description=f"{rest_minutes:g} min easy",
                duration_minutes=rest_minutes,
                zone=1,
                target=recovery_target,
                unit=zones.unit,
            ))
    segments.append(_easy_segment("cooldown", COOLDOWN_MINUTES, zones))

    intensity = ZONE_INTENSITY.get(zone, Intensity.INTERVAL)
    label = "Threshold Intervals" if zone == 4 else "Intervals"
    return WorkoutSpec(
        workout_type=WorkoutType.INTERVALS,
        name=params.get("name", f"{label} {reps}x{work_minutes:g}min"),
        modality=modality,
        intensity=intensity,
        duration_minutes=_total_minutes(segments),
        instructions=params.get(
            "description",
            f"{reps} x {work_minutes:g} min @ {_describe_target(target, zones.unit)} "
            f"with {rest_minutes:g} min easy between.",
        ),
        segments=tuple(segments),
        target_zone=zone,
        target_value=target,
        target_unit=zones.unit,
        session_time=_session_time(params),
    )


def build_hill_sprints(params: Mapping[str, Any], zones: ZoneTable) -> WorkoutSpec:
    """Short maximal hill efforts. Effort-based: the sprints carry no pace."""
    modality = params.get("modality", Modality.RUNNING)
    reps = int(params.get("reps", 8))
    work_seconds = int(params.get("work_seconds", 10))
    rest_minutes = float(params.get("rest_minutes", 2))

    sprints = WorkoutSegment(
        kind="interval",
        description=f"{reps} x {work_seconds}s steep hill, all-out; walk down ({rest_minutes:g} min)",
        duration_minutes=round(reps * (work_seconds / 60.0 + rest_minutes), 1),
        sets=reps,
        notes="maximal effort, full recovery",
    )
    segments = (
        _easy_segment("warmup", WARMUP_MINUTES + 5, zones, zone=2),
        sprints,
        _easy_segment("cooldown", COOLDOWN_MINUTES, zones),
    )
    return WorkoutSpec(
        workout_type=WorkoutType.HILL_SPRINTS,
        name=params.get("name", f"Hill Sprints {reps}x{work_seconds}s"),
        modality=modality,
        intensity=Intensity.MAX,
        duration_minutes=_total_minutes(segments),
        instructions=params.get(
            "description",
            "Easy warmup, then short all-out sprints up a steep hill with full recovery.",
        ),
        segments=segments,
        target_zone=2,
        target_value=zones.value(2),
        target_unit=zones.unit,
        session_time=_session_time(params),
    )


def build_canova_intervals(params: Mapping[str, Any], zones: ZoneTable) -> WorkoutSpec:
    """
    Distance repeats at a percent of marathon pace with active recoveries.

    params:
        reps, work_km, pace_percent, recovery_km, recovery_percent,
        marathon_pace (optional, the week's MP), session (label)
    """
    reps = int(params["reps"])
    work_km = float(params["work_km"])
    pct = float(params["pace_percent"])
    recovery_km = float(params.get("recovery_km", 1.0))
    recovery_pct = float(params.get("recovery_percent", 85.0))

    target = percent_target(params, zones, pct)
    recovery_target = percent_target(params, zones, recovery_pct)
    zone = zone_for_percent(pct)

    segments: List[WorkoutSegment] = [_easy_segment("warmup", WARMUP_MINUTES + 5, zones, zone=2)]
    for rep in range(1, reps + 1):
        segments.append(_steady_block(
            "interval", zones, zone, target, distance_km=work_km,
            pace_percent=pct, label=f"rep {rep} @{pct:.0f}% MP",
        ))
        if rep < reps:
            segments.append(_steady_block(
                "rest", zones, zone_for_percent(recovery_pct), recovery_target,
                distance_km=recovery_km, pace_percent=recovery_pct,
                label=f"float @{recovery_pct:.0f}% MP",
            ))
    segments.append(_easy_segment("cooldown", COOLDOWN_MINUTES, zones))

    session = params.get("session", "specific")
    return WorkoutSpec(
        workout_type=WorkoutType.CANOVA_INTERVALS,
        name=params.get("name", f"{session.replace('_', ' ').title()} {reps}x{work_km:g}km"),
        modality=params.get("modality", Modality.RUNNING),
        intensity=ZONE_INTENSITY.get(zone, Intensity.THRESHOLD),
        duration_minutes=_total_minutes(segments),
        distance_km=_total_distance(segments),
        instructions=params.get(
            "description",
            f"{reps} x {work_km:g} km @ {pct:.0f}% MP ({_describe_target(target, zones.unit)}), "
            f"{recovery_km:g} km float @ {recovery_pct:.0f}% MP between. Recoveries stay active.",
        ),
        segments=tuple(segments),
        target_zone=zone,
        target_value=target,
        target_unit=zones.unit,
        pace_percent=pct,
        session_time=_session_time(params),
    )


def build_easy_run(params: Mapping[str, Any], zones: ZoneTable) -> WorkoutSpec:
    """Easy aerobic session, zone 2 unless a percent of MP is given."""
    modality = params.get("modality", Modality.RUNNING)
    pct = params.get("pace_percent")
    if pct is not None:
        zone, target = zone_for_percent(pct), percent_target(params, zones, pct)
    else:
        zone = params.get("zone", 2)
        target = zones.value(zone)

    block = _steady_block(
        "work", zones, zone, target,
        distance_km=params.get("distance_km"),
        minutes=params.get("duration_minutes", 40) if params.get("distance_km") is None else None,
        pace_percent=pct,
        label="easy",
    )
    return WorkoutSpec(
        workout_type=WorkoutType.EASY,
        name=params.get("name", f"Easy {_noun(modality)}"),
        modality=modality,
        intensity=Intensity.EASY,
        duration_minutes=_total_minutes([block]),
        distance_km=block.distance_km,
        instructions=params.get("description", "Conversational effort. Keep it truly easy."),
        segments=(block,),
        target_zone=zone,
        target_value=target,
        target_unit=zones.unit,
        pace_percent=pct,
        session_time=_session_time(params),
    )


def build_recovery_run(params: Mapping[str, Any], zones: ZoneTable) -> WorkoutSpec:
    """Short zone 1 session (Canova regeneration when a percent of MP is given)."""
    modality = params.get("modality", Modality.RUNNING)
    pct = params.get("pace_percent")
    if pct is not None:
        target = percent_target(params, zones, pct)
    else:
        target = zones.value(1)

    block = _steady_block(
        "work", zones, 1, target,
        minutes=params.get("duration_minutes", 30),
        pace_percent=pct,
        label="recovery",
    )
    return WorkoutSpec(
        workout_type=WorkoutType.RECOVERY_RUN,
        name=params.get("name", f"Recovery {_noun(modality)}"),
        modality=modality,
        intensity=Intensity.RECOVERY,
        duration_minutes=_total_minutes([block]),
        distance_km=block.distance_km,
        instructions=params.get("description", "Very easy. The goal is blood flow, not fitness."),
        segments=(block,),
        target_zone=1,
        target_value=target,
        target_unit=zones.unit,
        pace_percent=pct,
        session_time=_session_time(params),
    )


def build_cross_training(params: Mapping[str, Any], zones: ZoneTable) -> WorkoutSpec:
    """Non-specific aerobic work (bike, swim, elliptical) by feel at zone 2 effort."""
    minutes = int(params.get("duration_minutes", 45))
    activity = params.get("activity", "cross-training")
    return WorkoutSpec(
        workout_type=WorkoutType.CROSS_TRAINING,
        name=params.get("name", "Cross-Training"),
        modality=Modality.CROSS_TRAINING,
        intensity=Intensity.EASY,
        duration_minutes=minutes,
        instructions=params.get(
            "description",
            f"{minutes} min {activity} at zone 2 effort (by feel or heart rate).",
        ),
        segments=(WorkoutSegment(kind="work", description=f"{minutes} min {activity}",
                                 duration_minutes=minutes, zone=2),),
        target_zone=2,
        session_time=_session_time(params),
    )


# =============================================================================
# STRENGTH / CORE / PLYOMETRICS
# =============================================================================

def _exercise_segments(
    exercise_ids: Sequence[str],
    sets: int,
    reps: str,
    rest_seconds: int,
) -> List[WorkoutSegment]:
    return [
        WorkoutSegment(
            kind="exercise",
            description=f"{sets} x {reps}",
            exercise_id=exercise_id,
            sets=sets,
            reps=reps,
            rest_seconds=rest_seconds,
        )
        for exercise_id in exercise_ids
    ]


def build_strength_workout(
    params: Mapping[str, Any],
    phase: Phase,
    exercise_ids: Sequence[str] = (),
) -> WorkoutSpec:
    """
    Gym session using the phase's rep scheme.

    An empty exercise list is valid: the session is still scheduled with
    general instructions.
    """
    sets, reps, rest = STRENGTH_REP_SCHEMES[phase]
    focus = params.get("focus", "full")
    segments = _exercise_segments(exercise_ids, sets, reps, rest)
    minutes = max(30, 10 + 6 * len(segments))
    if segments:
        instructions = f"{sets} sets of {reps} per exercise, {rest}s rest."
    else:
        instructions = f"{focus.title()}-body strength: {sets} sets of {reps}, {rest}s rest."
    return WorkoutSpec(
        workout_type=WorkoutType.STRENGTH,
        name=params.get("name", f"Strength ({focus})"),
        modality=Modality.STRENGTH,
        intensity=Intensity.MODERATE,
        duration_minutes=minutes,
        instructions=instructions,
        segments=tuple(segments),
        session_time=_session_time(params),
    )


def build_core_workout(params: Mapping[str, Any], exercise_ids: Sequence[str] = ()) -> WorkoutSpec:
    segments = _exercise_segments(exercise_ids, 3, "45-60s", 45)
    return WorkoutSpec(
        workout_type=WorkoutType.CORE,
        name=params.get("name", "Core Stability"),
        modality=Modality.CORE,
        intensity=Intensity.EASY,
        duration_minutes=int(params.get("duration_minutes", 30)),
        instructions="3 rounds, 45-60s per exercise, 45s rest.",
        segments=tuple(segments),
        session_time=_session_time(params),
    )


def build_plyometric_workout(params: Mapping[str, Any], exercise_ids: Sequence[str] = ()) -> WorkoutSpec:
    segments = _exercise_segments(exercise_ids, 3, "8-10", 120)
    return WorkoutSpec(
        workout_type=WorkoutType.PLYOMETRIC,
        name=params.get("name", "Plyometrics"),
        modality=Modality.PLYOMETRIC,
        intensity=Intensity.INTERVAL,
        duration_minutes=int(params.get("duration_minutes", 35)),
        instructions="3 x 8-10 explosive reps, full 2 min recovery. Quality over quantity.",
        segments=tuple(segments),
        session_time=_session_time(params),
    )


# =============================================================================
# DISPATCH
# =============================================================================

ENDURANCE_BUILDERS: Dict[WorkoutType, Callable[[Mapping[str, Any], ZoneTable], WorkoutSpec]] = {
    WorkoutType.LONG_RUN: build_long_run,
    WorkoutType.TEMPO: build_tempo_run,
    WorkoutType.INTERVALS: build_intervals,
    WorkoutType.HILL_SPRINTS: build_hill_sprints,
    WorkoutType.CANOVA_INTERVALS: build_canova_intervals,
    WorkoutType.EASY: build_easy_run,
    WorkoutType.RECOVERY_RUN: build_recovery_run,
    WorkoutType.CROSS_TRAINING: build_cross_training,
}


def build_workout(
    slot: WorkoutSlot,
    zones: ZoneTable,
    phase: Phase,
    exercise_ids: Sequence[str] = (),
    modality: Modality = Modality.RUNNING,
) -> WorkoutSpec:
    """
    Build the session a slot describes.

    Raises:
        MissingZoneError: the slot needs a zone the table does not have
    """
    if slot.workout_type == WorkoutType.STRENGTH:
        return build_strength_workout(slot.params, phase, exercise_ids)
    if slot.workout_type == WorkoutType.CORE:
        return build_core_workout(slot.params, exercise_ids)
    if slot.workout_type == WorkoutType.PLYOMETRIC:
        return build_plyometric_workout(slot.params, exercise_ids)

    builder = ENDURANCE_BUILDERS.get(slot.workout_type)
    if builder is None:
        raise ValueError(f"No builder for workout type {slot.workout_type.value}")
    params = dict(slot.params)
    params.setdefault("modality", modality)
    return builder(params, zones)
