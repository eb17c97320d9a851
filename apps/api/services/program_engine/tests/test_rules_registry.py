"""
Rules Registry Tests

Defaults mirror the constants; YAML files and overrides merge over them;
a rule set that cannot produce sane programs is rejected at load time.
"""

import logging

import pytest

from services.program_engine.config import RulesRegistry, load_rules
from services.program_engine.constants import (
    AthleteLevel,
    ExperienceLevel,
    GoalType,
    MethodologyType,
    Phase,
)


class TestDefaults:

    def test_accessors_match_constants(self):
        rules = RulesRegistry.default()

        assert rules.phase_proportions(MethodologyType.POLARIZED) == (0.25, 0.35, 0.20, 0.20)
        assert rules.hard_session_quota(MethodologyType.PYRAMIDAL, 6) == 3
        assert rules.long_run_day == 7
        assert rules.deload_reduction(MethodologyType.NORWEGIAN) == 0.40
        assert rules.deload_frequency(AthleteLevel.BEGINNER) == 5
        assert rules.phase_floor(Phase.PEAK) == 60.0
        assert rules.volume_targets(ExperienceLevel.ADVANCED) == (50.0, 90.0)
        assert rules.goal_multiplier(GoalType.MARATHON) == 1.2
        assert rules.taper_final_volume_pct == 40.0

    def test_quota_outside_table(self):
        rules = RulesRegistry.default()
        assert rules.hard_session_quota(MethodologyType.POLARIZED, 1) is None
        assert rules.hard_session_quota(MethodologyType.POLARIZED, 8) is None

    def test_lydiard_is_an_alias(self):
        rules = RulesRegistry.default()
        assert rules.alias_for(MethodologyType.LYDIARD) == MethodologyType.CANOVA
        assert not rules.is_implemented(MethodologyType.LYDIARD)
        assert rules.alias_for(MethodologyType.CANOVA) is None

    def test_get_by_dot_key(self):
        rules = RulesRegistry.default()

        assert rules.get("deload.reduction.canova") == 0.35
        assert rules.get("deload.missing", "fallback") == "fallback"
        assert "phase_proportions" in rules.get()

    def test_get_returns_copy(self):
        rules = RulesRegistry.default()
        proportions = rules.get("phase_proportions")
        proportions["polarized"][0] = 0.9

        assert rules.phase_proportions(MethodologyType.POLARIZED)[0] == 0.25


class TestOverrides:

    def test_yaml_overrides_subset(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(
            "deload:\n"
            "  reduction:\n"
            "    polarized: 0.25\n"
            "long_run_day: 6\n"
        )

        rules = RulesRegistry.from_yaml(path)

        assert rules.deload_reduction(MethodologyType.POLARIZED) == 0.25
        assert rules.deload_reduction(MethodologyType.CANOVA) == 0.35, "untouched keys keep their defaults"
        assert rules.long_run_day == 6
        assert rules.source == str(path)

    def test_empty_yaml_is_defaults(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("")
        assert RulesRegistry.from_yaml(path).long_run_day == 7

    def test_yaml_must_be_mapping(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="must contain a mapping"):
            RulesRegistry.from_yaml(path)

    def test_with_overrides_leaves_original(self):
        rules = RulesRegistry.default()
        variant = rules.with_overrides({"taper_final_volume_pct": 50})

        assert variant.taper_final_volume_pct == 50.0
        assert rules.taper_final_volume_pct == 40.0
        assert "overrides" in repr(variant)

    def test_unknown_section_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            RulesRegistry({"race_day_breakfast": {"oats": 1}})
        assert "race_day_breakfast" in caplog.text


class TestValidation:

    @pytest.mark.parametrize("rules", [
        {"phase_proportions": {"polarized": [0.5, 0.5, 0.5, 0.5]}},
        {"phase_proportions": {"polarized": [0.5, 0.5]}},
        {"intensity_distribution": {"pyramidal": [70, 20, 5]}},
        {"deload": {"reduction": {"canova": 1.5}}},
        {"methodology_aliases": {"lydiard": "hadd"}},
        {"long_run_day": 9},
    ])
    def test_invalid_rules_rejected(self, rules):
        with pytest.raises(ValueError, match="Invalid program rules"):
            RulesRegistry(rules)


class TestLoadRules:

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "coach.yaml"
        path.write_text("taper_final_volume_pct: 45\n")
        load_rules.cache_clear()
        try:
            assert load_rules(str(path)).taper_final_volume_pct == 45.0
        finally:
            load_rules.cache_clear()

    def test_defaults_without_setting(self, monkeypatch):
        from core.config import settings

        monkeypatch.setattr(settings, "PROGRAM_RULES_PATH", None)
        load_rules.cache_clear()
        try:
            assert load_rules().source == "defaults"
        finally:
            load_rules.cache_clear()
