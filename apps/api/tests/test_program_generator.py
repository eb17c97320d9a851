"""
Program Generator Tests

End-to-end generation: request validation, dates, methodology choice,
week assembly, recovery weeks, Canova specifics, exercise lookups and
zone-source resolution.
"""

import json
import logging
import threading
import time
from datetime import timedelta

import pytest

from core.config import settings

from services.program_engine import (
    Auto,
    Explicit,
    InMemoryExerciseCatalog,
    InMemoryZoneSource,
    ProgramGenerator,
    ProgramRequest,
)
from services.program_engine.constants import (
    AthleteLevel,
    ExperienceLevel,
    GoalType,
    MethodologyType,
    Modality,
    Phase,
    WorkoutType,
)
from services.program_engine.exceptions import (
    IncompatibleZoneTypeError,
    InputValidationError,
    InsufficientDataError,
)
from services.program_engine.validation import validate_request


def workouts_of(week, *types):
    return [w for day in week.days for w in day.workouts if w.workout_type in types]


@pytest.fixture
def generator():
    return ProgramGenerator()


@pytest.fixture
def canova_request(today):
    return ProgramRequest(
        goal_type=GoalType.MARATHON,
        duration_weeks=20,
        training_days_per_week=6,
        experience_level=ExperienceLevel.ADVANCED,
        athlete_level=AthleteLevel.ELITE,
        target_time="2:30:00",
        methodology=Explicit(MethodologyType.CANOVA),
        start_date=today,
    )


class TestRequestValidation:

    def test_valid_request(self, marathon_request, today):
        assert validate_request(marathon_request, today) == []

    def test_collects_every_error(self, today):
        request = ProgramRequest(
            goal_type=GoalType.MARATHON,
            duration_weeks=2,
            training_days_per_week=9,
            experience_level=ExperienceLevel.BEGINNER,
            target_race_date=today - timedelta(days=1),
            current_weekly_volume=-5.0,
        )
        errors = validate_request(request, today)

        assert "Program duration must be at least 4 weeks" in errors
        assert "Training days per week must be between 2 and 7" in errors
        assert "Target race date cannot be in the past" in errors
        assert len(errors) == 4, f"Errors: {errors}"

    def test_duration_upper_bound(self, marathon_request, today):
        request = ProgramRequest(**{**marathon_request.__dict__, "duration_weeks": 53})
        assert validate_request(request, today) == ["Program duration cannot exceed 52 weeks"]

    def test_race_too_close_for_duration(self, marathon_request, today):
        request = ProgramRequest(**{**marathon_request.__dict__, "target_race_date": today + timedelta(days=14)})
        errors = validate_request(request, today)

        assert len(errors) == 1, f"Errors: {errors}"
        assert "only 2 weeks away" in errors[0]
        assert "16-week program" in errors[0]

    def test_race_exactly_duration_away(self, marathon_request, today):
        request = ProgramRequest(**{**marathon_request.__dict__, "target_race_date": today + timedelta(weeks=16)})
        assert validate_request(request, today) == []

    def test_generator_rejects_race_too_close(self, generator, marathon_request, pace_zones, today):
        request = ProgramRequest(**{**marathon_request.__dict__, "target_race_date": today + timedelta(days=14)})
        with pytest.raises(InputValidationError):
            generator.generate_program(request, pace_zones, today=today)

    def test_running_sessions_bounded_by_training_days(self, today):
        request = ProgramRequest(
            goal_type=GoalType.HALF_MARATHON,
            duration_weeks=12,
            training_days_per_week=4,
            experience_level=ExperienceLevel.INTERMEDIATE,
            running_sessions_per_week=5,
        )
        assert len(validate_request(request, today)) == 1

    def test_generator_rejects_invalid_request(self, generator, pace_zones, today):
        request = ProgramRequest(
            goal_type=GoalType.TEN_K,
            duration_weeks=3,
            training_days_per_week=4,
            experience_level=ExperienceLevel.INTERMEDIATE,
        )
        with pytest.raises(InputValidationError) as exc:
            generator.generate_program(request, pace_zones, today=today)
        assert exc.value.errors == ["Program duration must be at least 4 weeks"]


class TestProgramStructure:

    def test_marathon_program(self, generator, marathon_request, pace_zones, today):
        program = generator.generate_program(marathon_request, pace_zones, today=today)

        assert program.name == "Marathon Program (16 weeks)"
        assert program.methodology == MethodologyType.POLARIZED
        assert program.athlete_level == AthleteLevel.RECREATIONAL
        assert program.phases.to_dict() == {"base": 4, "build": 6, "peak": 3, "taper": 3}
        assert program.deload_schedule.week_numbers == [4, 8, 13]
        assert (program.base_volume, program.peak_volume) == pytest.approx((42.0, 78.0))
        assert program.start_date == today
        assert program.end_date == today + timedelta(weeks=16)
        assert program.notes[0].startswith("Methodology: polarized")

    def test_every_week_is_complete(self, generator, marathon_request, pace_zones, today):
        program = generator.generate_program(marathon_request, pace_zones, today=today)

        assert [w.week_number for w in program.weeks] == list(range(1, 17))
        for week in program.weeks:
            assert [d.day_number for d in week.days] == list(range(1, 8))
            assert week.training_day_count <= 4, f"Week {week.week_number}: {week.training_day_count} days"
            assert week.start_date == today + timedelta(weeks=week.week_number - 1)
            assert all(d.note == "Rest" for d in week.days if d.is_rest)
            long_runs = workouts_of(week, WorkoutType.LONG_RUN)
            assert len(long_runs) == 1 and week.day(7).workouts[0] is long_runs[0]

    def test_recovery_weeks_reduce_volume(self, generator, marathon_request, pace_zones, today):
        program = generator.generate_program(marathon_request, pace_zones, today=today)
        week3, week4, week5 = program.weeks[2:5]

        assert week4.is_recovery_week
        assert week4.volume_percentage < week3.volume_percentage
        assert week4.volume_percentage < week5.volume_percentage
        assert "Recovery week: volume reduced up to 30%" in week4.notes
        assert len(workouts_of(week4, WorkoutType.INTERVALS, WorkoutType.HILL_SPRINTS)) == 1

    def test_taper_volume_falls(self, generator, marathon_request, pace_zones, today):
        program = generator.generate_program(marathon_request, pace_zones, today=today)
        taper = [w.volume_percentage for w in program.weeks if w.phase == Phase.TAPER]
        assert taper == sorted(taper, reverse=True)
        assert taper[-1] == pytest.approx(40.0)

    def test_race_date_sets_dates(self, generator, pace_zones, today):
        race_day = today + timedelta(weeks=18)
        request = ProgramRequest(
            goal_type=GoalType.HALF_MARATHON,
            duration_weeks=12,
            training_days_per_week=5,
            experience_level=ExperienceLevel.INTERMEDIATE,
            target_race_date=race_day,
        )
        program = generator.generate_program(request, pace_zones, today=today)

        assert program.end_date == race_day
        assert program.start_date == race_day - timedelta(weeks=12)

    def test_beginner_drops_a_day_in_taper(self, generator, pace_zones, today):
        request = ProgramRequest(
            goal_type=GoalType.TEN_K,
            duration_weeks=12,
            training_days_per_week=4,
            experience_level=ExperienceLevel.BEGINNER,
        )
        program = generator.generate_program(request, pace_zones, today=today)

        for week in program.weeks:
            limit = 3 if week.phase == Phase.TAPER else 4
            assert week.training_day_count <= limit, f"Week {week.week_number} ({week.phase.value})"

    def test_marathon_pace_notes(self, generator, pace_zones, today):
        request = ProgramRequest(
            goal_type=GoalType.MARATHON,
            duration_weeks=16,
            training_days_per_week=5,
            experience_level=ExperienceLevel.INTERMEDIATE,
            target_time="2:50:00",
        )
        program = generator.generate_program(request, pace_zones, today=today)

        assert any(n.startswith("Marathon pace progresses from") for n in program.notes)
        assert any(n.startswith("Marathon pace this week:") for n in program.weeks[0].notes)

    def test_deterministic(self, generator, marathon_request, pace_zones, today):
        first = generator.generate_program(marathon_request, pace_zones, today=today).to_dict()
        second = generator.generate_program(marathon_request, pace_zones, today=today).to_dict()
        assert first == second

    def test_serializes_to_json(self, generator, marathon_request, pace_zones, today):
        data = generator.generate_program(marathon_request, pace_zones, today=today).to_dict()
        encoded = json.loads(json.dumps(data))

        assert encoded["duration_weeks"] == 16
        assert encoded["methodology"] == "polarized"
        assert encoded["deload_weeks"][0] == {"week": 4, "reduction_factor": 0.3}
        assert len(encoded["weeks"][0]["days"]) == 7


class TestMethodologyChoices:

    def test_lydiard_substitution_is_recorded(self, generator, pace_zones, today):
        request = ProgramRequest(
            goal_type=GoalType.MARATHON,
            duration_weeks=16,
            training_days_per_week=5,
            experience_level=ExperienceLevel.ADVANCED,
            methodology=Explicit(MethodologyType.LYDIARD),
        )
        program = generator.generate_program(request, pace_zones, today=today)

        assert program.methodology == MethodologyType.CANOVA
        assert program.requested_methodology == MethodologyType.LYDIARD
        assert any("lydiard" in w for w in program.warnings)

    def test_auto_selects_canova_for_advanced_marathoner(self, generator, pace_zones, today):
        request = ProgramRequest(
            goal_type=GoalType.MARATHON,
            duration_weeks=16,
            training_days_per_week=6,
            experience_level=ExperienceLevel.ADVANCED,
            methodology=Auto(),
        )
        program = generator.generate_program(request, pace_zones, today=today)
        assert program.methodology == MethodologyType.CANOVA
        assert program.requested_methodology is None


class TestCanovaProgram:

    def test_specific_extensive_pace_tightens(self, generator, canova_request, pace_zones, today):
        program = generator.generate_program(canova_request, pace_zones, today=today)

        assert program.phases.to_dict() == {"base": 4, "build": 6, "peak": 7, "taper": 3}
        week6, week18 = program.weeks[5], program.weeks[17]
        assert (week6.phase, week6.week_in_phase) == (Phase.BUILD, 2)
        assert (week18.phase, week18.week_in_phase) == (Phase.TAPER, 1)

        session6 = week6.day(2).workouts[0]
        session18 = week18.day(2).workouts[0]
        assert session6.workout_type == WorkoutType.CANOVA_INTERVALS
        assert session6.pace_percent == 94.4
        assert session18.pace_percent == 99.2
        assert session6.name.startswith("Specific Endurance")

    def test_special_block_has_am_pm_day(self, generator, canova_request, pace_zones, today):
        program = generator.generate_program(canova_request, pace_zones, today=today)
        week8 = program.weeks[7]

        assert not week8.is_recovery_week
        sessions = week8.day(2).workouts
        assert [s.session_time.value for s in sessions] == ["am", "pm"]

    def test_targets_stay_inside_zone_table(self, generator, canova_request, pace_zones, today):
        program = generator.generate_program(canova_request, pace_zones, today=today)
        low, high = pace_zones.bounds()

        for week in program.weeks:
            for day in week.days:
                for workout in day.workouts:
                    if workout.target_value is not None:
                        assert low <= workout.target_value <= high, (
                            f"Week {week.week_number} {workout.name}: {workout.target_value} outside {low}-{high}"
                        )


class TestOtherGoals:

    def test_cycling_program(self, generator, power_zones, today):
        request = ProgramRequest(
            goal_type=GoalType.CYCLING,
            duration_weeks=12,
            training_days_per_week=4,
            experience_level=ExperienceLevel.INTERMEDIATE,
        )
        program = generator.generate_program(request, power_zones, today=today)

        long_ride = workouts_of(program.weeks[0], WorkoutType.LONG_RUN)[0]
        assert long_ride.modality == Modality.CYCLING
        assert long_ride.name == "Long Ride"
        assert long_ride.target_value == 200.0
        assert not any("Marathon pace" in n for n in program.weeks[0].notes)

    def test_cycling_needs_power_zones(self, generator, pace_zones, today):
        request = ProgramRequest(
            goal_type=GoalType.CYCLING,
            duration_weeks=12,
            training_days_per_week=4,
            experience_level=ExperienceLevel.INTERMEDIATE,
        )
        with pytest.raises(IncompatibleZoneTypeError):
            generator.generate_program(request, pace_zones, today=today)


class TestExerciseLookups:

    CATALOG = [
        ("squat", "strength", "lower"),
        ("deadlift", "strength", None),
        ("pull-up", "strength", "upper"),
        ("box-jump", "plyometric", "explosive"),
        ("plank", "core", "core"),
    ]

    def test_lookups_are_memoised(self, pace_zones, today):
        catalog = InMemoryExerciseCatalog(self.CATALOG)
        generator = ProgramGenerator(exercise_catalog=catalog)
        request = ProgramRequest(
            goal_type=GoalType.MARATHON,
            duration_weeks=16,
            training_days_per_week=6,
            experience_level=ExperienceLevel.INTERMEDIATE,
            running_sessions_per_week=4,
            strength_sessions_per_week=2,
        )
        program = generator.generate_program(request, pace_zones, today=today)

        assert catalog.calls == 3, "One lookup each for (strength, full), (strength, lower), (plyometric, explosive)"
        build_week = program.weeks[4]
        strength = workouts_of(build_week, WorkoutType.STRENGTH)[0]
        plyo = workouts_of(build_week, WorkoutType.PLYOMETRIC)[0]
        assert [s.exercise_id for s in strength.segments] == ["squat", "deadlift"]
        assert [s.exercise_id for s in plyo.segments] == ["box-jump"]

    def test_without_catalog_sessions_are_still_scheduled(self, generator, pace_zones, today):
        request = ProgramRequest(
            goal_type=GoalType.HALF_MARATHON,
            duration_weeks=12,
            training_days_per_week=5,
            experience_level=ExperienceLevel.INTERMEDIATE,
            core_sessions_per_week=1,
        )
        program = generator.generate_program(request, pace_zones, today=today)
        core = workouts_of(program.weeks[0], WorkoutType.CORE)
        assert len(core) == 1 and core[0].segments == ()


class FailingZoneSource(InMemoryZoneSource):
    def get_elite_pace_estimate(self, athlete_id):
        raise RuntimeError("estimate service unavailable")


class SlowZoneSource(InMemoryZoneSource):
    """Threshold-test read that hangs until released."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.release = threading.Event()

    def get_threshold_test(self, athlete_id):
        self.release.wait(timeout=3.0)
        return super().get_threshold_test(athlete_id)


class TestGenerateForAthlete:

    def test_zones_from_race_result(self, generator, marathon_request, race_result, today):
        source = InMemoryZoneSource(race_results={"athlete-1": race_result})
        program = generator.generate_for_athlete(marathon_request, "athlete-1", source, today=today)

        assert program.zones.source.value == "race_result"
        assert len(program.weeks) == 16

    def test_failed_lookup_counts_as_no_data(self, generator, marathon_request, race_result, today, caplog):
        source = FailingZoneSource(race_results={"athlete-1": race_result})
        with caplog.at_level(logging.WARNING):
            program = generator.generate_for_athlete(marathon_request, "athlete-1", source, today=today)

        assert program.zones.source.value == "race_result"
        assert "RuntimeError: estimate service unavailable" in caplog.text

    def test_hung_lookup_does_not_block_generation(
        self, generator, marathon_request, race_result, today, monkeypatch, caplog,
    ):
        monkeypatch.setattr(settings, "ZONE_SOURCE_TIMEOUT_S", 0.2)
        source = SlowZoneSource(race_results={"athlete-1": race_result})

        started = time.monotonic()
        try:
            with caplog.at_level(logging.WARNING):
                program = generator.generate_for_athlete(marathon_request, "athlete-1", source, today=today)
        finally:
            source.release.set()
        elapsed = time.monotonic() - started

        assert elapsed < 1.5, f"Generation waited {elapsed:.2f}s on a hung zone read"
        assert program.zones.source.value == "race_result"
        assert "threshold_test timed out" in caplog.text

    def test_no_zone_data(self, generator, marathon_request, today):
        with pytest.raises(InsufficientDataError):
            generator.generate_for_athlete(marathon_request, "athlete-1", InMemoryZoneSource(), today=today)
