"""
Engine ports and adapters.

The engine reads three things about an athlete (latest threshold test,
most recent race result, elite pace estimate) and looks up exercises for
strength-type sessions. It only depends on the Protocols below; the
in-memory adapters back tests and scripts, the SQL adapters back the API.

Usage:
    source = SqlZoneSource(SessionLocal)
    catalog = SqlExerciseCatalog(db)
    generator = ProgramGenerator(exercise_catalog=catalog)
    program = generator.generate_for_athlete(request, athlete_id, source)
"""

import logging
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Protocol, Tuple

from sqlalchemy.orm import Session

from .constants import AthleteLevel, Confidence, MetabolicType, ZoneUnit
from .models import EliteEstimate, RaceResult, ThresholdTest, ZoneKey

logger = logging.getLogger(__name__)


class ZoneSource(Protocol):
    def get_threshold_test(self, athlete_id: Hashable) -> Optional[ThresholdTest]:
        ...

    def get_recent_race_result(self, athlete_id: Hashable) -> Optional[RaceResult]:
        ...

    def get_elite_pace_estimate(self, athlete_id: Hashable) -> Optional[EliteEstimate]:
        ...


class ExerciseCatalog(Protocol):
    def find_exercises(self, category: str, focus: Optional[str], count: int) -> List[str]:
        """Return up to `count` exercise ids (may be empty)."""
        ...


# =============================================================================
# IN-MEMORY ADAPTERS
# =============================================================================

class InMemoryZoneSource:
    """Zone data held in dicts keyed by athlete id."""

    def __init__(
        self,
        threshold_tests: Optional[Mapping[Hashable, ThresholdTest]] = None,
        race_results: Optional[Mapping[Hashable, RaceResult]] = None,
        elite_estimates: Optional[Mapping[Hashable, EliteEstimate]] = None,
    ):
        self.threshold_tests = dict(threshold_tests or {})
        self.race_results = dict(race_results or {})
        self.elite_estimates = dict(elite_estimates or {})

    def get_threshold_test(self, athlete_id: Hashable) -> Optional[ThresholdTest]:
        return self.threshold_tests.get(athlete_id)

    def get_recent_race_result(self, athlete_id: Hashable) -> Optional[RaceResult]:
        return self.race_results.get(athlete_id)

    def get_elite_pace_estimate(self, athlete_id: Hashable) -> Optional[EliteEstimate]:
        return self.elite_estimates.get(athlete_id)


class InMemoryExerciseCatalog:
    """
    Exercises as (id, category, focus) tuples.

    A focus of None on an entry matches any requested focus.
    """

    def __init__(self, exercises: Iterable[Tuple[str, str, Optional[str]]] = ()):
        self.exercises = list(exercises)
        self.calls = 0

    def find_exercises(self, category: str, focus: Optional[str], count: int) -> List[str]:
        self.calls += 1
        matches = [
            exercise_id
            for exercise_id, ex_category, ex_focus in self.exercises
            if ex_category == category and (focus is None or ex_focus is None or ex_focus == focus)
        ]
        return matches[:count]


# =============================================================================
# SQL ADAPTERS
# =============================================================================

def zones_from_json(raw: Mapping[str, Any]) -> Dict[ZoneKey, float]:
    """JSON object keys are strings; numeric zone keys come back as ints."""
    zones: Dict[ZoneKey, float] = {}
    for key, value in (raw or {}).items():
        text = str(key)
        zones[int(text) if text.isdigit() else text] = float(value)
    return zones


class SqlZoneSource:
    """
    Reads the athlete's latest zone inputs from the database.

    Lookups run concurrently on worker threads, so each one opens its own
    session from the factory instead of sharing a request session.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get_threshold_test(self, athlete_id: Hashable) -> Optional[ThresholdTest]:
        from models import ThresholdTestRecord

        with self.session_factory() as db:
            record = (
                db.query(ThresholdTestRecord)
                .filter(ThresholdTestRecord.athlete_id == athlete_id)
                .order_by(ThresholdTestRecord.test_date.desc())
                .first()
            )
            if record is None:
                return None
            return ThresholdTest(
                aerobic_threshold=record.aerobic_threshold,
                anaerobic_threshold=record.anaerobic_threshold,
                unit=ZoneUnit(record.unit),
                aerobic_threshold_hr=record.aerobic_threshold_hr,
                anaerobic_threshold_hr=record.anaerobic_threshold_hr,
                max_hr=record.max_hr,
                test_date=record.test_date,
            )

    def get_recent_race_result(self, athlete_id: Hashable) -> Optional[RaceResult]:
        from models import RaceResultRecord

        with self.session_factory() as db:
            record = (
                db.query(RaceResultRecord)
                .filter(RaceResultRecord.athlete_id == athlete_id)
                .order_by(RaceResultRecord.race_date.desc())
                .first()
            )
            if record is None:
                return None
            return RaceResult(
                distance_meters=record.distance_meters,
                time_seconds=record.time_seconds,
                race_date=record.race_date,
            )

    def get_elite_pace_estimate(self, athlete_id: Hashable) -> Optional[EliteEstimate]:
        from models import ElitePaceEstimateRecord

        with self.session_factory() as db:
            record = (
                db.query(ElitePaceEstimateRecord)
                .filter(ElitePaceEstimateRecord.athlete_id == athlete_id)
                .order_by(ElitePaceEstimateRecord.created_at.desc())
                .first()
            )
            if record is None:
                return None
            return EliteEstimate(
                zones=zones_from_json(record.zones),
                unit=ZoneUnit(record.unit),
                confidence=Confidence(record.confidence),
                athlete_level=AthleteLevel(record.athlete_level) if record.athlete_level else None,
                metabolic_type=MetabolicType(record.metabolic_type) if record.metabolic_type else None,
            )


class SqlExerciseCatalog:
    def __init__(self, db: Session):
        self.db = db

    def find_exercises(self, category: str, focus: Optional[str], count: int) -> List[str]:
        from models import Exercise

        query = self.db.query(Exercise).filter(Exercise.category == category, Exercise.is_active.is_(True))
        if focus is not None:
            query = query.filter((Exercise.focus == focus) | (Exercise.focus.is_(None)))
        rows = query.order_by(Exercise.sort_order, Exercise.name).limit(count).all()
        return [str(row.id) for row in rows]
