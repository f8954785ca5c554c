from sqlalchemy import Column, Boolean, Float, Date, DateTime, ForeignKey, Text, String, Index, UniqueConstraint, JSON
from sqlalchemy.orm import relationship
from core.database import Base
import uuid
from datetime import datetime, timezone


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Metric(Base):
    """
    A tracked quantity: manual entry, formula, or survey answer.

    Formulas reference other metrics by display name, e.g.
    "[Weight] / (([Height]/100) * ([Height]/100))".
    """
    __tablename__ = "metric"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(Text, nullable=False, unique=True)
    unit = Column(Text, nullable=False, default="")
    input_type = Column(Text, nullable=False, default="manual")  # 'manual', 'calculated', 'survey'
    formula = Column(Text, nullable=True)  # required for calculated metrics
    survey_question_key = Column(Text, nullable=True)  # required for survey metrics
    is_active = Column(Boolean, default=True, nullable=False)
    show_in_radar = Column(Boolean, default=False, nullable=False)
    # Metrics such as height that make no sense to rank
    exclude_from_leaderboard = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class Player(Base):
    __tablename__ = "player"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(Text, nullable=False)
    position = Column(Text, nullable=False, default="")
    email = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    birth_date = Column(Date, nullable=True)
    avatar_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    measurements = relationship("Measurement", cascade="all, delete-orphan")
    daily_surveys = relationship("DailySurvey", cascade="all, delete-orphan")
    injuries = relationship("Injury", cascade="all, delete-orphan")
    notes = relationship("Note", cascade="all, delete-orphan")


class Measurement(Base):
    __tablename__ = "measurement"

    id = Column(String(36), primary_key=True, default=_uuid)
    player_id = Column(String(36), ForeignKey("player.id", ondelete="CASCADE"), nullable=False, index=True)
    metric_id = Column(String(36), ForeignKey("metric.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False)  # naive UTC
    # Tie-break for equal dates: later insert wins in composites
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_measurement_player_metric_date", "player_id", "metric_id", "date"),
    )


class DailySurvey(Base):
    """
    One wellness survey per player per day.

    Answers are keyed by survey question key; values are numbers or text.
    """
    __tablename__ = "daily_survey"

    id = Column(String(36), primary_key=True, default=_uuid)
    player_id = Column(String(36), ForeignKey("player.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    answers = Column(JSON, nullable=False, default=dict)
    submitted_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("player_id", "date", name="uq_daily_survey_player_date"),
    )


class SurveyQuestion(Base):
    __tablename__ = "survey_question"

    id = Column(String(36), primary_key=True, default=_uuid)
    label = Column(Text, nullable=False)
    key = Column(Text, nullable=False, unique=True)
    type = Column(Text, nullable=False, default="number")  # 'number', 'range', 'textarea'
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class Injury(Base):
    __tablename__ = "injury"

    id = Column(String(36), primary_key=True, default=_uuid)
    player_id = Column(String(36), ForeignKey("player.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    estimated_recovery = Column(Text, nullable=False, default="")
    date = Column(DateTime, nullable=True)
    recovery_date = Column(DateTime, nullable=True)
    is_current = Column(Boolean, default=False, nullable=False)


class Note(Base):
    __tablename__ = "note"

    id = Column(String(36), primary_key=True, default=_uuid)
    player_id = Column(String(36), ForeignKey("player.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Text, nullable=False)
    text = Column(Text, nullable=False)
    date = Column(DateTime, nullable=True)
    is_public = Column(Boolean, default=False, nullable=False)


class ScheduleEvent(Base):
    __tablename__ = "schedule_event"

    id = Column(String(36), primary_key=True, default=_uuid)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(5), nullable=True)  # "HH:MM"
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    is_team_event = Column(Boolean, default=True, nullable=False)
    player_ids = Column(JSON, nullable=False, default=list)  # empty for team events
