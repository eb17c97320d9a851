from sqlalchemy import Column, Integer, Boolean, Float, Date, DateTime, ForeignKey, Text, Index, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from core.database import Base
import uuid


class Athlete(Base):
    __tablename__ = "athlete"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    display_name = Column(Text, nullable=True)
    primary_sport = Column(Text, default="running", nullable=False)  # 'running', 'cycling', 'skiing'

    threshold_tests = relationship("ThresholdTestRecord", back_populates="athlete", cascade="all, delete-orphan")
    race_results = relationship("RaceResultRecord", back_populates="athlete", cascade="all, delete-orphan")
    pace_estimates = relationship("ElitePaceEstimateRecord", back_populates="athlete", cascade="all, delete-orphan")


class ThresholdTestRecord(Base):
    """
    Graded exercise / lactate test.

    Running tests store threshold speeds in km/h; cycling tests store
    threshold powers in watts. `unit` says which.
    """
    __tablename__ = "threshold_test"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), nullable=False)
    test_date = Column(Date, nullable=False)
    unit = Column(Text, default="sec_per_km", nullable=False)  # 'sec_per_km' or 'watts'

    aerobic_threshold = Column(Float, nullable=False)
    anaerobic_threshold = Column(Float, nullable=False)
    aerobic_threshold_hr = Column(Integer, nullable=True)
    anaerobic_threshold_hr = Column(Integer, nullable=True)
    max_hr = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    athlete = relationship("Athlete", back_populates="threshold_tests")

    __table_args__ = (
        Index("ix_threshold_test_athlete_date", "athlete_id", "test_date"),
    )


class RaceResultRecord(Base):
    __tablename__ = "race_result"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), nullable=False)
    race_date = Column(Date, nullable=False)
    name = Column(Text, nullable=True)
    distance_meters = Column(Float, nullable=False)
    time_seconds = Column(Float, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    athlete = relationship("Athlete", back_populates="race_results")

    __table_args__ = (
        Index("ix_race_result_athlete_date", "athlete_id", "race_date"),
    )


class ElitePaceEstimateRecord(Base):
    """
    Externally computed zone set (e.g. from lactate profiling).

    zones: {"1": value, ..., "5": value, "marathon": value}; keys are stored
    as strings and converted back by the zone source.
    """
    __tablename__ = "elite_pace_estimate"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), nullable=False)
    unit = Column(Text, default="sec_per_km", nullable=False)
    zones = Column(JSON, nullable=False, default=dict)
    confidence = Column(Text, default="medium", nullable=False)  # 'low', 'medium', 'high'
    athlete_level = Column(Text, nullable=True)
    metabolic_type = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    athlete = relationship("Athlete", back_populates="pace_estimates")

    __table_args__ = (
        Index("ix_elite_pace_estimate_athlete", "athlete_id"),
    )


class Exercise(Base):
    """Exercise catalog entry used by strength, core and plyometric sessions."""
    __tablename__ = "exercise"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=False)  # 'strength', 'core', 'plyometric'
    focus = Column(Text, nullable=True)  # 'full', 'lower', 'upper', 'core', 'explosive'
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("ix_exercise_category_focus", "category", "focus"),
    )
