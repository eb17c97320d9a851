"""
Program Generator

Main orchestrator for program generation.
Coordinates all components to produce a complete training program.

Pipeline:
    validate -> athlete level -> methodology -> volume targets -> phases
    -> volume curve -> deload schedule -> per week: distribution -> workouts

Every stage is deterministic; the only concurrency is the three zone-source
reads in generate_for_athlete(). A failure anywhere aborts the whole
generation: no partial programs.

Usage:
    generator = ProgramGenerator()

    # Zones already resolved
    program = generator.generate_program(request, zone_table)

    # Resolve zones from the athlete's stored data first
    program = generator.generate_for_athlete(request, athlete_id, zone_source)
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import date, timedelta
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

from .config import RulesRegistry
from .constants import (
    EXPERIENCE_TO_ATHLETE_LEVEL,
    GOAL_MODALITY,
    MARATHON_ZONE,
    POWER_GOALS,
    PROGRAM_NAMES,
    AthleteLevel,
    Modality,
    WorkoutType,
    ZoneUnit,
)
from .deload import apply_deload, calculate_deload_schedule
from .distribution import DistributionContext, determine_distribution
from .exceptions import IncompatibleZoneTypeError
from .methodology import get_methodology_config, select_methodology
from .models import (
    DayPlan,
    DeloadSchedule,
    MethodologyConfig,
    Program,
    ProgramRequest,
    WeekPlan,
    WeekProgression,
    WorkoutSlot,
    WorkoutSpec,
    ZoneTable,
)
from .pace_progression import target_marathon_pace, weekly_marathon_pace
from .phase_builder import calculate_phases
from .sources import ExerciseCatalog, ZoneSource
from .validation import ensure_valid
from .volume_progression import calculate_volume_targets, progression, training_days_for_phase
from .workout_builder import build_workout
from .zone_resolver import format_pace, resolve_zones

logger = logging.getLogger(__name__)

# Exercise category and count per session type
EXERCISE_LOOKUPS = {
    WorkoutType.STRENGTH: ("strength", 6),
    WorkoutType.CORE: ("core", 5),
    WorkoutType.PLYOMETRIC: ("plyometric", 4),
}


class ProgramGenerator:
    """
    Generate training programs.

    Args:
        rules: Rule registry (defaults to the built-in constants)
        exercise_catalog: Exercise lookup for strength-type sessions; without
            one those sessions are scheduled with general instructions
    """

    def __init__(
        self,
        rules: Optional[RulesRegistry] = None,
        exercise_catalog: Optional[ExerciseCatalog] = None,
    ):
        self.rules = rules or RulesRegistry.default()
        self.exercise_catalog = exercise_catalog

    def generate_program(
        self,
        request: ProgramRequest,
        zone_table: ZoneTable,
        today: Optional[date] = None,
    ) -> Program:
        """
        Generate a complete program for an already resolved zone table.

        Raises:
            InputValidationError: request fails validation
            IncompatibleZoneTypeError: zone table unit does not suit the goal
            UnsupportedDaysPerWeekError / ProgramTooShortError: no structure fits
            MissingZoneError: a workout needs a zone the table lacks
        """
        today = today or date.today()
        ensure_valid(request, today)

        required_unit = ZoneUnit.POWER if request.goal_type in POWER_GOALS else ZoneUnit.PACE
        if zone_table.unit != required_unit:
            raise IncompatibleZoneTypeError(required_unit.value, zone_table.unit.value)

        athlete_level = self._athlete_level(request, zone_table)
        logger.info(
            f"Generating program: {request.goal_type.value} {request.duration_weeks}w "
            f"{request.training_days_per_week}d ({athlete_level.value}, zones from {zone_table.source.value})"
        )

        selection = select_methodology(
            athlete_level,
            request.goal_type,
            request.methodology,
            metabolic_type=zone_table.metabolic_type,
            has_lactate_meter=request.has_lactate_meter,
            rules=self.rules,
        )
        methodology = selection.methodology

        base_volume, peak_volume = calculate_volume_targets(
            request.experience_level, request.goal_type, request.current_weekly_volume, self.rules
        )
        phases = calculate_phases(request.duration_weeks, methodology, self.rules)
        curve = progression(request.duration_weeks, base_volume, peak_volume, phases, self.rules)
        deloads = calculate_deload_schedule(
            request.duration_weeks, athlete_level, methodology, phases.phase_mapping(), self.rules
        )

        start_date, end_date = self.program_dates(request, today)

        current_mp = self._current_marathon_pace(zone_table)
        target_mp = target_marathon_pace(request.goal_type, request.target_time) if current_mp else None
        notes: List[str] = [f"Methodology: {methodology.value} ({selection.reason})"]
        if target_mp is not None and current_mp is not None and target_mp < current_mp:
            notes.append(
                f"Marathon pace progresses from {format_pace(current_mp)}/km toward {format_pace(target_mp)}/km"
            )
        if request.notes:
            notes.append(request.notes)

        configs: Dict[int, MethodologyConfig] = {}
        exercise_cache: Dict[Tuple[str, Optional[str]], List[str]] = {}
        weeks = []
        for entry in curve:
            training_days = training_days_for_phase(request.experience_level, entry.phase, request.training_days_per_week)
            if training_days not in configs:
                configs[training_days] = get_methodology_config(methodology, training_days, self.rules)

            weeks.append(self._build_week(
                request=request,
                entry=entry,
                config=configs[training_days],
                training_days=training_days,
                athlete_level=athlete_level,
                zone_table=zone_table,
                deloads=deloads,
                peak_volume=peak_volume,
                phase_weeks=phases.weeks_in(entry.phase),
                current_mp=current_mp,
                target_mp=target_mp,
                week_start=start_date + timedelta(weeks=entry.week - 1),
                exercise_cache=exercise_cache,
            ))

        warnings = list(zone_table.warnings)
        if selection.substitution:
            warnings.append(selection.substitution)

        program = Program(
            name=f"{PROGRAM_NAMES[request.goal_type]} ({request.duration_weeks} weeks)",
            goal_type=request.goal_type,
            methodology=methodology,
            requested_methodology=selection.requested,
            athlete_level=athlete_level,
            start_date=start_date,
            end_date=end_date,
            phases=phases,
            deload_schedule=deloads,
            weeks=tuple(weeks),
            zones=zone_table,
            base_volume=base_volume,
            peak_volume=peak_volume,
            warnings=tuple(warnings),
            notes=tuple(notes),
        )
        logger.info(
            f"Generated {program.name}: {methodology.value}, phases {phases.to_dict()}, "
            f"deloads {deloads.week_numbers}, {start_date} -> {end_date}"
        )
        return program

    def generate_for_athlete(
        self,
        request: ProgramRequest,
        athlete_id: Hashable,
        zone_source: ZoneSource,
        today: Optional[date] = None,
    ) -> Program:
        """
        Resolve zones from the athlete's stored data, then generate.

        The three zone-source reads run concurrently; a read that fails or
        times out counts as "no data" for that source.

        Raises:
            InsufficientDataError: no usable zone source
            plus everything generate_program() raises
        """
        from core.config import settings

        lookups = {
            "threshold_test": zone_source.get_threshold_test,
            "race_result": zone_source.get_recent_race_result,
            "elite_estimate": zone_source.get_elite_pace_estimate,
        }
        timeout = settings.ZONE_SOURCE_TIMEOUT_S
        results = {}
        # One deadline for all reads; the pool is not joined so a hung read
        # cannot hold up generation.
        pool = ThreadPoolExecutor(max_workers=settings.ZONE_SOURCE_MAX_WORKERS)
        try:
            futures = {name: pool.submit(lookup, athlete_id) for name, lookup in lookups.items()}
            done, _ = wait(futures.values(), timeout=timeout)
            for name, future in futures.items():
                if future not in done:
                    logger.warning(
                        f"Zone source lookup {name} timed out after {timeout}s for athlete {athlete_id}"
                    )
                    future.cancel()
                    results[name] = None
                    continue
                try:
                    results[name] = future.result()
                except Exception as e:
                    logger.warning(
                        f"Zone source lookup {name} failed for athlete {athlete_id}: "
                        f"{type(e).__name__}: {e}"
                    )
                    results[name] = None
        finally:
            pool.shutdown(wait=False)

        zone_table = resolve_zones(
            request.goal_type,
            threshold_test=results["threshold_test"],
            race_result=results["race_result"],
            elite_estimate=results["elite_estimate"],
            today=today,
        )
        return self.generate_program(request, zone_table, today=today)

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def program_dates(request: ProgramRequest, today: date) -> Tuple[date, date]:
        """
        (start, end) of the program.

        With a race date the program ends on race day; otherwise it starts on
        the requested start date (or today).
        """
        length = timedelta(weeks=request.duration_weeks)
        if request.target_race_date is not None:
            return request.target_race_date - length, request.target_race_date
        start = request.start_date or today
        return start, start + length

    @staticmethod
    def _athlete_level(request: ProgramRequest, zone_table: ZoneTable) -> AthleteLevel:
        if request.athlete_level is not None:
            return request.athlete_level
        if zone_table.athlete_level is not None:
            return zone_table.athlete_level
        return EXPERIENCE_TO_ATHLETE_LEVEL[request.experience_level]

    @staticmethod
    def _current_marathon_pace(zone_table: ZoneTable) -> Optional[float]:
        if not zone_table.is_pace:
            return None
        if zone_table.has(MARATHON_ZONE):
            return zone_table.value(MARATHON_ZONE)
        if zone_table.has(3):
            return zone_table.value(3)
        return None

    def _build_week(
        self,
        request: ProgramRequest,
        entry: WeekProgression,
        config: MethodologyConfig,
        training_days: int,
        athlete_level: AthleteLevel,
        zone_table: ZoneTable,
        deloads: DeloadSchedule,
        peak_volume: float,
        phase_weeks: int,
        current_mp: Optional[float],
        target_mp: Optional[float],
        week_start: date,
        exercise_cache: Dict[Tuple[str, Optional[str]], List[str]],
    ) -> WeekPlan:
        is_recovery = entry.week in deloads
        volume_pct = apply_deload(entry.week, entry.volume_percentage, deloads, self.rules.phase_floor(entry.phase))
        weekly_volume = peak_volume * volume_pct / 100.0

        marathon_pace = None
        if current_mp is not None:
            marathon_pace = weekly_marathon_pace(current_mp, target_mp, entry.phase, entry.week_in_phase)

        context = DistributionContext(
            phase=entry.phase,
            training_days=training_days,
            experience_level=request.experience_level,
            goal_type=request.goal_type,
            volume_pct=volume_pct,
            methodology_config=config,
            athlete_level=athlete_level,
            week_in_phase=entry.week_in_phase,
            week_number=entry.week,
            total_weeks=request.duration_weeks,
            zones=zone_table,
            request=request,
            weekly_volume=weekly_volume,
            phase_weeks=phase_weeks,
            is_recovery_week=is_recovery,
            marathon_pace=marathon_pace,
        )
        slots = determine_distribution(context)

        modality = GOAL_MODALITY.get(request.goal_type, Modality.RUNNING)
        by_day: Dict[int, List[WorkoutSpec]] = {}
        for slot in slots:
            exercise_ids = self._exercises_for(slot, exercise_cache)
            spec = build_workout(slot, zone_table, entry.phase, exercise_ids, modality)
            by_day.setdefault(slot.day_number, []).append(spec)

        days = tuple(
            DayPlan(
                day_number=day,
                workouts=tuple(by_day.get(day, ())),
                note=None if day in by_day else "Rest",
            )
            for day in range(1, 8)
        )

        notes = []
        if is_recovery:
            factor = deloads.factor_for(entry.week)
            notes.append(f"Recovery week: volume reduced up to {factor:.0%}")
        if marathon_pace is not None:
            notes.append(f"Marathon pace this week: {format_pace(marathon_pace)}/km")

        logger.debug(
            f"Week {entry.week}: {entry.phase.value} w{entry.week_in_phase}, "
            f"{volume_pct:.1f}% ({weekly_volume:.1f}), {len(slots)} sessions"
        )
        return WeekPlan(
            week_number=entry.week,
            phase=entry.phase,
            week_in_phase=entry.week_in_phase,
            start_date=week_start,
            volume_percentage=volume_pct,
            target_volume=weekly_volume,
            focus=entry.focus,
            days=days,
            is_recovery_week=is_recovery,
            notes=tuple(notes),
        )

    def _exercises_for(
        self,
        slot: WorkoutSlot,
        cache: Dict[Tuple[str, Optional[str]], List[str]],
    ) -> Sequence[str]:
        """Exercise ids for strength-type slots, looked up once per (category, focus)."""
        lookup = EXERCISE_LOOKUPS.get(slot.workout_type)
        if lookup is None or self.exercise_catalog is None:
            return ()
        category, count = lookup
        key = (category, slot.params.get("focus"))
        if key not in cache:
            cache[key] = list(self.exercise_catalog.find_exercises(category, key[1], count))
        return cache[key]
