"""
Phase Builder Tests

Every program is split into base / build / peak / taper weeks that add up
to the requested duration, with at least one taper week.
"""

import pytest

from services.program_engine.config import RulesRegistry
from services.program_engine.constants import MethodologyType, Phase
from services.program_engine.exceptions import ProgramTooShortError
from services.program_engine.phase_builder import calculate_phases, focus_for

IMPLEMENTED = [
    MethodologyType.POLARIZED,
    MethodologyType.PYRAMIDAL,
    MethodologyType.NORWEGIAN,
    MethodologyType.NORWEGIAN_SINGLE,
    MethodologyType.CANOVA,
]


class TestPhaseDistribution:
    """Phase week counts."""

    @pytest.mark.parametrize("methodology", IMPLEMENTED)
    def test_phases_sum_to_duration(self, methodology):
        for weeks in range(4, 53):
            phases = calculate_phases(weeks, methodology)
            assert phases.total == weeks, (
                f"{methodology.value} {weeks}w: phases {phases.to_dict()} sum to {phases.total}"
            )
            assert phases.taper >= 1, f"{methodology.value} {weeks}w has no taper"
            assert min(phases.base, phases.build, phases.peak) >= 0

    def test_16_week_polarized(self):
        phases = calculate_phases(16, MethodologyType.POLARIZED)
        assert phases.to_dict() == {"base": 4, "build": 6, "peak": 3, "taper": 3}

    def test_20_week_canova(self):
        phases = calculate_phases(20, MethodologyType.CANOVA)
        assert phases.to_dict() == {"base": 4, "build": 6, "peak": 7, "taper": 3}

    def test_remainder_goes_to_build(self):
        # 10 weeks polarized: floors 2/3/2/2 = 9, one week left over
        phases = calculate_phases(10, MethodologyType.POLARIZED)
        assert phases.to_dict() == {"base": 2, "build": 4, "peak": 2, "taper": 2}

    def test_four_week_minimum(self):
        phases = calculate_phases(4, MethodologyType.PYRAMIDAL)
        assert phases.total == 4
        assert phases.taper == 1

    def test_too_short_raises(self):
        with pytest.raises(ProgramTooShortError) as exc:
            calculate_phases(3, MethodologyType.POLARIZED)
        assert "4" in str(exc.value)

    def test_rules_override_proportions(self):
        rules = RulesRegistry.default().with_overrides({
            "phase_proportions": {"polarized": [0.5, 0.25, 0.125, 0.125]},
        })
        phases = calculate_phases(16, MethodologyType.POLARIZED, rules)
        assert phases.to_dict() == {"base": 8, "build": 4, "peak": 2, "taper": 2}


class TestPhaseMapping:
    """Week-to-phase mapping."""

    def test_mapping_is_contiguous(self):
        phases = calculate_phases(20, MethodologyType.CANOVA)
        mapping = phases.phase_mapping()

        assert [week for week, _, _ in mapping] == list(range(1, 21))
        assert mapping[5] == (6, Phase.BUILD, 2)
        assert mapping[17] == (18, Phase.TAPER, 1)
        assert mapping[-1] == (20, Phase.TAPER, 3)

    def test_focus_labels(self):
        assert focus_for(Phase.BASE, 1, 4) == "aerobic base"
        assert focus_for(Phase.BASE, 4, 4) == "aerobic strength"
        assert focus_for(Phase.TAPER, 3, 3) == "race week"
        assert focus_for(Phase.TAPER, 1, 3) == "freshening"
