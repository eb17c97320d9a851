"""
Workout Builder Tests

Every target comes from the zone table; percent-of-MP targets stay inside
it; missing zones fail loudly.
"""

import pytest

from services.program_engine.constants import (
    Confidence,
    Intensity,
    Modality,
    Phase,
    SessionTime,
    WorkoutType,
    ZoneSourceKind,
    ZoneUnit,
)
from services.program_engine.exceptions import MissingZoneError
from services.program_engine.models import WorkoutSlot, ZoneTable
from services.program_engine.workout_builder import (
    build_canova_intervals,
    build_hill_sprints,
    build_intervals,
    build_long_run,
    build_strength_workout,
    build_tempo_run,
    build_workout,
    percent_target,
    zone_for_percent,
)


def slot(workout_type, **params):
    return WorkoutSlot(day_number=3, workout_type=workout_type, params=params)


class TestEnduranceBuilders:

    def test_intervals(self, pace_zones):
        spec = build_intervals({"reps": 5, "work_minutes": 3, "rest_minutes": 2, "zone": 5}, pace_zones)

        assert spec.workout_type == WorkoutType.INTERVALS
        assert spec.intensity == Intensity.INTERVAL
        assert spec.target_value == pace_zones.value(5)
        assert len(spec.segments) == 11, "warmup + 5 reps + 4 recoveries + cooldown"
        assert [s.kind for s in spec.segments].count("interval") == 5
        assert spec.duration_minutes == 48

    def test_threshold_intervals_named(self, pace_zones):
        spec = build_intervals({"reps": 4, "work_minutes": 6, "rest_minutes": 1, "zone": 4}, pace_zones)
        assert spec.name == "Threshold Intervals 4x6min"
        assert spec.intensity == Intensity.THRESHOLD

    def test_tempo_by_zone(self, pace_zones):
        spec = build_tempo_run({"duration_minutes": 20, "zone": 4}, pace_zones)

        assert spec.target_zone == 4
        assert spec.target_value == pace_zones.value(4)
        assert spec.duration_minutes == 45
        assert [s.kind for s in spec.segments] == ["warmup", "work", "cooldown"]

    def test_tempo_by_percent_of_mp(self, pace_zones):
        spec = build_tempo_run({"duration_minutes": 40, "pace_percent": 95.0, "marathon_pace": 270.0}, pace_zones)

        assert spec.target_value == pytest.approx(270.0 / 0.95)
        assert spec.target_zone == 3
        assert spec.pace_percent == 95.0

    def test_long_run_by_distance(self, pace_zones):
        spec = build_long_run({"distance_km": 20.0}, pace_zones)

        zone2 = pace_zones.value(2)
        assert spec.distance_km == 20.0
        assert abs(spec.duration_minutes - 20.0 * zone2 / 60) <= 1
        assert spec.intensity == Intensity.EASY
        assert spec.target_value == zone2

    def test_progressive_long_run(self, pace_zones):
        spec = build_long_run({
            "distance_km": 20.0,
            "marathon_pace": 270.0,
            "segments": [
                {"distance_km": 15.0, "pace_percent": 80.0},
                {"distance_km": 5.0, "pace_percent": 100.0},
            ],
        }, pace_zones)

        assert spec.distance_km == 20.0
        assert spec.pace_percent == 100.0
        assert spec.target_value == pytest.approx(270.0)
        assert spec.segments[0].target > spec.segments[1].target, "Finish block should be faster"

    def test_hill_sprints_are_effort_based(self, pace_zones):
        spec = build_hill_sprints({"reps": 8}, pace_zones)

        assert spec.intensity == Intensity.MAX
        assert spec.target_zone == 2
        sprint = spec.segments[1]
        assert sprint.target is None, "Sprints carry no pace target"
        assert sprint.sets == 8
        assert spec.duration_minutes == 47

    def test_canova_intervals(self, pace_zones):
        spec = build_canova_intervals({
            "reps": 4, "work_km": 5.0, "pace_percent": 94.4,
            "recovery_km": 1.0, "recovery_percent": 85.0,
            "marathon_pace": 260.0, "session": "specific_extensive",
        }, pace_zones)

        assert spec.workout_type == WorkoutType.CANOVA_INTERVALS
        assert spec.name == "Specific Extensive 4x5km"
        assert spec.target_value == pytest.approx(260.0 / 0.944)
        assert spec.distance_km == 23.0
        reps = [s for s in spec.segments if s.kind == "interval"]
        assert len(reps) == 4
        assert all(s.distance_km == 5.0 for s in reps)

    def test_session_time_carried(self, pace_zones):
        spec = build_intervals({"reps": 3, "zone": 4, "session_time": SessionTime.PM}, pace_zones)
        assert spec.session_time == SessionTime.PM


class TestTargets:

    @pytest.mark.parametrize("percent,zone", [(55, 1), (80, 2), (100, 3), (105, 4), (112, 5)])
    def test_zone_for_percent(self, percent, zone):
        assert zone_for_percent(percent) == zone

    def test_percent_target_clamped_to_table(self, pace_zones):
        slowest = pace_zones.bounds()[1]
        assert percent_target({"marathon_pace": 300.0}, pace_zones, 40.0) == slowest

    def test_percent_target_defaults_to_marathon_zone(self, pace_zones):
        assert percent_target({}, pace_zones, 100.0) == pytest.approx(pace_zones.value("marathon"))

    def test_power_table_uses_nearest_zone(self, power_zones):
        assert percent_target({}, power_zones, 105.0) == 275.0

    def test_missing_zone_raises(self):
        zones = ZoneTable(
            unit=ZoneUnit.PACE,
            zones={1: 360.0, 2: 320.0, 3: 280.0, 4: 255.0},
            source=ZoneSourceKind.THRESHOLD_TEST,
            confidence=Confidence.HIGH,
        )
        with pytest.raises(MissingZoneError) as exc:
            build_workout(slot(WorkoutType.INTERVALS, reps=5, zone=5), zones, Phase.BUILD)
        assert exc.value.zone == 5


class TestStrengthBuilders:

    def test_rep_scheme_by_phase(self):
        spec = build_strength_workout({"focus": "lower"}, Phase.BUILD, ["ex-1", "ex-2", "ex-3"])

        assert spec.modality == Modality.STRENGTH
        assert [s.exercise_id for s in spec.segments] == ["ex-1", "ex-2", "ex-3"]
        assert all((s.sets, s.reps, s.rest_seconds) == (4, "8-10", 120) for s in spec.segments)
        assert spec.duration_minutes == 30

    def test_duration_grows_with_exercises(self):
        spec = build_strength_workout({}, Phase.BASE, [f"ex-{i}" for i in range(5)])
        assert spec.duration_minutes == 40
        assert spec.segments[0].reps == "12-15"

    def test_empty_exercise_list_is_valid(self):
        spec = build_strength_workout({"focus": "upper"}, Phase.PEAK, [])
        assert spec.segments == ()
        assert spec.instructions.startswith("Upper-body strength")

    def test_core_and_plyometric(self, pace_zones):
        core = build_workout(slot(WorkoutType.CORE), pace_zones, Phase.BASE, ["plank"])
        plyo = build_workout(slot(WorkoutType.PLYOMETRIC), pace_zones, Phase.BUILD, ["box-jump"])

        assert core.duration_minutes == 30
        assert core.segments[0].reps == "45-60s"
        assert plyo.duration_minutes == 35
        assert plyo.segments[0].rest_seconds == 120


class TestDispatch:

    def test_cycling_long_ride(self, power_zones):
        spec = build_workout(
            slot(WorkoutType.LONG_RUN, duration_minutes=180), power_zones, Phase.BASE,
            modality=Modality.CYCLING,
        )
        assert spec.name == "Long Ride"
        assert spec.modality == Modality.CYCLING
        assert spec.target_value == 200.0
        assert spec.target_unit == ZoneUnit.POWER
        assert spec.duration_minutes == 180
        assert spec.distance_km is None

    def test_cross_training_has_no_target(self, pace_zones):
        spec = build_workout(slot(WorkoutType.CROSS_TRAINING, duration_minutes=45), pace_zones, Phase.BASE)
        assert spec.modality == Modality.CROSS_TRAINING
        assert spec.target_value is None
        assert spec.duration_minutes == 45

    def test_to_dict(self, pace_zones):
        data = build_workout(slot(WorkoutType.EASY, distance_km=8.0), pace_zones, Phase.BASE).to_dict()

        assert data["workout_type"] == "easy"
        assert data["target_unit"] == "sec_per_km"
        assert data["distance_km"] == 8.0
        assert data["segments"][0]["zone"] == 2
