"""
Volume Progression Tests

Base/peak targets per experience level and goal, and the weekly
progressive-overload curve.
"""

import pytest

from services.program_engine.config import RulesRegistry
from services.program_engine.constants import ExperienceLevel, GoalType, MethodologyType, Phase
from services.program_engine.phase_builder import calculate_phases
from services.program_engine.volume_progression import (
    calculate_volume_targets,
    progression,
    training_days_for_phase,
)


class TestVolumeTargets:

    def test_marathon_multiplier(self):
        base, peak = calculate_volume_targets(ExperienceLevel.INTERMEDIATE, GoalType.MARATHON)
        assert base == pytest.approx(42.0)
        assert peak == pytest.approx(78.0)

    def test_five_k_multiplier(self):
        base, peak = calculate_volume_targets(ExperienceLevel.BEGINNER, GoalType.FIVE_K)
        assert base == pytest.approx(14.0)
        assert peak == pytest.approx(28.0)

    def test_current_volume_caps_base(self):
        base, peak = calculate_volume_targets(
            ExperienceLevel.INTERMEDIATE, GoalType.MARATHON, current_weekly_volume=30.0,
        )
        assert base == pytest.approx(30.0), f"Base should drop to current volume, got {base}"
        assert peak == pytest.approx(78.0)

    def test_current_volume_never_raises_base(self):
        base, _ = calculate_volume_targets(
            ExperienceLevel.BEGINNER, GoalType.HALF_MARATHON, current_weekly_volume=100.0,
        )
        assert base == pytest.approx(20.0)

    def test_rules_override(self):
        rules = RulesRegistry.default().with_overrides({"goal_volume_multipliers": {"marathon": 1.0}})
        base, peak = calculate_volume_targets(ExperienceLevel.ADVANCED, GoalType.MARATHON, rules=rules)
        assert (base, peak) == (50.0, 90.0)


class TestProgressionCurve:

    def test_16_week_curve(self):
        weeks = progression(16, 40.0, 70.0)

        assert len(weeks) == 16
        assert weeks[0].volume_percentage == pytest.approx(57.14, abs=0.01)
        assert round(70.0 * weeks[0].volume_percentage / 100) == 40
        # last build week reaches peak
        assert weeks[9].phase == Phase.BUILD
        assert weeks[9].volume_percentage == pytest.approx(100.0)
        for week in weeks[10:13]:
            assert week.phase == Phase.PEAK
            assert week.volume_percentage == 100.0
        assert [w.volume_percentage for w in weeks[13:]] == pytest.approx([80.0, 60.0, 40.0])

    @pytest.mark.parametrize("weeks_total", [4, 8, 12, 16, 24, 52])
    def test_monotonic_then_tapering(self, weeks_total):
        curve = progression(weeks_total, 35.0, 65.0)
        build_up = [w.volume_percentage for w in curve if w.phase != Phase.TAPER]
        taper = [w.volume_percentage for w in curve if w.phase == Phase.TAPER]

        assert build_up == sorted(build_up), f"{weeks_total}w: volume dips before taper: {build_up}"
        assert all(b < a for a, b in zip(taper, taper[1:])), f"{weeks_total}w taper not decreasing: {taper}"
        assert taper[0] < build_up[-1]
        assert all(0 <= w.volume_percentage <= 100 for w in curve)

    def test_uses_given_phases(self):
        phases = calculate_phases(20, MethodologyType.CANOVA)
        curve = progression(20, 50.0, 100.0, phases=phases)

        assert [w.phase for w in curve].count(Phase.PEAK) == 7
        assert curve[0].volume_percentage == pytest.approx(50.0)

    def test_phase_mismatch_rejected(self):
        phases = calculate_phases(12, MethodologyType.POLARIZED)
        with pytest.raises(ValueError):
            progression(16, 40.0, 70.0, phases=phases)

    def test_zero_peak_rejected(self):
        with pytest.raises(ValueError):
            progression(16, 0.0, 0.0)

    def test_focus_labels_present(self):
        curve = progression(16, 40.0, 70.0)
        assert curve[0].focus == "aerobic base"
        assert curve[-1].focus == "race week"


class TestTrainingDays:

    def test_beginner_drops_day_in_taper(self):
        assert training_days_for_phase(ExperienceLevel.BEGINNER, Phase.TAPER, 4) == 3
        assert training_days_for_phase(ExperienceLevel.BEGINNER, Phase.BUILD, 4) == 4

    def test_never_below_minimum(self):
        assert training_days_for_phase(ExperienceLevel.BEGINNER, Phase.TAPER, 2) == 2

    def test_others_unchanged(self):
        assert training_days_for_phase(ExperienceLevel.ADVANCED, Phase.TAPER, 6) == 6
