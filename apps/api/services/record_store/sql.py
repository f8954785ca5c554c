"""
SQLAlchemy record store.

Maps ORM rows (models.py) to the engine's dataclasses. The store flushes
but never commits: the request-scoped session from core.database.get_db
owns the transaction.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Type
import logging

from sqlalchemy.orm import Session

import models as orm
from services.metric_engine.models import (
    DailySurveyRecord,
    Measurement,
    MetricDefinition,
    MetricInputType,
)
from .base import DuplicateRecordError, RecordNotFoundError, RecordStore
from .models import (
    Injury,
    Note,
    Player,
    ScheduleEvent,
    SurveyQuestion,
    SurveyQuestionType,
)

logger = logging.getLogger(__name__)

_ENUM_FIELDS = ("input_type", "type")


def _column_value(key: str, value: Any) -> Any:
    if key in _ENUM_FIELDS and hasattr(value, "value"):
        return value.value
    return value


# --- Row -> record conversion ---

def _metric(row: orm.Metric) -> MetricDefinition:
    return MetricDefinition(
        id=row.id,
        name=row.name,
        unit=row.unit or "",
        input_type=MetricInputType(row.input_type),
        formula=row.formula,
        survey_question_key=row.survey_question_key,
        is_active=row.is_active,
        show_in_radar=row.show_in_radar,
        exclude_from_leaderboard=row.exclude_from_leaderboard,
    )


def _player(row: orm.Player) -> Player:
    return Player(
        id=row.id,
        name=row.name,
        position=row.position or "",
        email=row.email,
        phone=row.phone,
        birth_date=row.birth_date,
        avatar_url=row.avatar_url,
    )


def _measurement(row: orm.Measurement) -> Measurement:
    return Measurement(
        id=row.id,
        player_id=row.player_id,
        metric_id=row.metric_id,
        value=row.value,
        date=row.date,
    )


def _survey(row: orm.DailySurvey) -> DailySurveyRecord:
    return DailySurveyRecord(player_id=row.player_id, date=row.date, answers=dict(row.answers or {}))


def _question(row: orm.SurveyQuestion) -> SurveyQuestion:
    return SurveyQuestion(
        id=row.id,
        label=row.label,
        key=row.key,
        type=SurveyQuestionType(row.type),
        is_active=row.is_active,
    )


def _injury(row: orm.Injury) -> Injury:
    return Injury(
        id=row.id,
        player_id=row.player_id,
        description=row.description,
        estimated_recovery=row.estimated_recovery or "",
        date=row.date,
        recovery_date=row.recovery_date,
        is_current=row.is_current,
    )


def _note(row: orm.Note) -> Note:
    return Note(
        id=row.id,
        player_id=row.player_id,
        author_id=row.author_id,
        text=row.text,
        date=row.date,
        is_public=row.is_public,
    )


def _event(row: orm.ScheduleEvent) -> ScheduleEvent:
    return ScheduleEvent(
        id=row.id,
        date=row.date,
        time=row.time,
        title=row.title,
        description=row.description,
        is_team_event=row.is_team_event,
        player_ids=list(row.player_ids or []),
    )


class SqlRecordStore(RecordStore):
    """RecordStore over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def _require(self, model: Type, resource: str, record_id: str):
        row = self.db.get(model, record_id)
        if row is None:
            raise RecordNotFoundError(resource, record_id)
        return row

    def _apply(self, row, changes: Dict[str, Any], frozen=("id",)) -> None:
        for key, value in changes.items():
            if key in frozen or not hasattr(row, key):
                continue
            setattr(row, key, _column_value(key, value))

    def _insert(self, row):
        self.db.add(row)
        self.db.flush()
        return row

    # --- Metrics ---

    def _check_metric_name(self, name: str, metric_id: Optional[str] = None) -> None:
        query = self.db.query(orm.Metric).filter(orm.Metric.name == name)
        if metric_id is not None:
            query = query.filter(orm.Metric.id != metric_id)
        if query.first() is not None:
            raise DuplicateRecordError(f"Metric name already exists: {name}")

    def list_metrics(self) -> List[MetricDefinition]:
        rows = self.db.query(orm.Metric).order_by(orm.Metric.created_at, orm.Metric.id).all()
        return [_metric(r) for r in rows]

    def get_metric(self, metric_id: str) -> Optional[MetricDefinition]:
        row = self.db.get(orm.Metric, metric_id)
        return _metric(row) if row else None

    def add_metric(self, metric: MetricDefinition) -> MetricDefinition:
        self._check_metric_name(metric.name)
        row = orm.Metric(
            id=metric.id or None,
            name=metric.name,
            unit=metric.unit,
            input_type=_column_value("input_type", metric.input_type),
            formula=metric.formula,
            survey_question_key=metric.survey_question_key,
            is_active=metric.is_active,
            show_in_radar=metric.show_in_radar,
            exclude_from_leaderboard=metric.exclude_from_leaderboard,
        )
        return _metric(self._insert(row))

    def update_metric(self, metric_id: str, changes: Dict[str, Any]) -> MetricDefinition:
        row = self._require(orm.Metric, "Metric", metric_id)
        if "name" in changes:
            self._check_metric_name(changes["name"], metric_id)
        self._apply(row, changes)
        self.db.flush()
        return _metric(row)

    def delete_metric(self, metric_id: str) -> None:
        row = self._require(orm.Metric, "Metric", metric_id)
        self.db.query(orm.Measurement).filter(orm.Measurement.metric_id == metric_id).delete()
        self.db.delete(row)
        self.db.flush()

    # --- Players ---

    def list_players(self) -> List[Player]:
        rows = self.db.query(orm.Player).order_by(orm.Player.created_at, orm.Player.id).all()
        return [_player(r) for r in rows]

    def get_player(self, player_id: str) -> Optional[Player]:
        row = self.db.get(orm.Player, player_id)
        return _player(row) if row else None

    def add_player(self, player: Player) -> Player:
        row = orm.Player(
            id=player.id or None,
            name=player.name,
            position=player.position,
            email=player.email,
            phone=player.phone,
            birth_date=player.birth_date,
            avatar_url=player.avatar_url,
        )
        return _player(self._insert(row))

    def update_player(self, player_id: str, changes: Dict[str, Any]) -> Player:
        row = self._require(orm.Player, "Player", player_id)
        self._apply(row, changes)
        self.db.flush()
        return _player(row)

    def delete_player(self, player_id: str) -> None:
        row = self._require(orm.Player, "Player", player_id)
        for event in self.db.query(orm.ScheduleEvent).all():
            if player_id in (event.player_ids or []):
                event.player_ids = [p for p in event.player_ids if p != player_id]
        # relationship cascades remove measurements, surveys, injuries, notes
        self.db.delete(row)
        self.db.flush()

    # --- Measurements ---

    def list_measurements(self, player_id: str) -> List[Measurement]:
        rows = (
            self.db.query(orm.Measurement)
            .filter(orm.Measurement.player_id == player_id)
            .order_by(orm.Measurement.date, orm.Measurement.created_at, orm.Measurement.id)
            .all()
        )
        return [_measurement(r) for r in rows]

    def add_measurements(self, player_id: str, measurements: List[Measurement]) -> List[Measurement]:
        self._require(orm.Player, "Player", player_id)
        rows = []
        for measurement in measurements:
            row = orm.Measurement(
                id=measurement.id or None,
                player_id=player_id,
                metric_id=measurement.metric_id,
                value=measurement.value,
                date=measurement.date,
            )
            self.db.add(row)
            rows.append(row)
        self.db.flush()
        return [_measurement(r) for r in rows]

    def update_measurement(self, measurement_id: str, changes: Dict[str, Any]) -> Measurement:
        row = self._require(orm.Measurement, "Measurement", measurement_id)
        self._apply(row, changes, frozen=("id", "player_id"))
        self.db.flush()
        return _measurement(row)

    def delete_measurement(self, measurement_id: str) -> None:
        self.db.delete(self._require(orm.Measurement, "Measurement", measurement_id))
        self.db.flush()

    # --- Daily surveys ---

    def list_daily_surveys(self, player_id: str) -> List[DailySurveyRecord]:
        rows = (
            self.db.query(orm.DailySurvey)
            .filter(orm.DailySurvey.player_id == player_id)
            .order_by(orm.DailySurvey.date)
            .all()
        )
        return [_survey(r) for r in rows]

    def get_daily_survey(self, player_id: str, on: date) -> Optional[DailySurveyRecord]:
        row = self.db.query(orm.DailySurvey).filter(
            orm.DailySurvey.player_id == player_id,
            orm.DailySurvey.date == on,
        ).first()
        return _survey(row) if row else None

    def upsert_daily_survey(self, survey: DailySurveyRecord) -> DailySurveyRecord:
        self._require(orm.Player, "Player", survey.player_id)
        existing = self.db.query(orm.DailySurvey).filter(
            orm.DailySurvey.player_id == survey.player_id,
            orm.DailySurvey.date == survey.day,
        ).first()
        if existing:
            # New dict so the JSON column registers the change
            existing.answers = dict(survey.answers)
            row = existing
        else:
            row = orm.DailySurvey(player_id=survey.player_id, date=survey.day, answers=dict(survey.answers))
            self.db.add(row)
        self.db.flush()
        return _survey(row)

    # --- Survey questions ---

    def list_survey_questions(self) -> List[SurveyQuestion]:
        rows = self.db.query(orm.SurveyQuestion).order_by(orm.SurveyQuestion.created_at, orm.SurveyQuestion.id).all()
        return [_question(r) for r in rows]

    def add_survey_question(self, question: SurveyQuestion) -> SurveyQuestion:
        if self.db.query(orm.SurveyQuestion).filter(orm.SurveyQuestion.key == question.key).first():
            raise DuplicateRecordError(f"Survey question key already exists: {question.key}")
        row = orm.SurveyQuestion(
            id=question.id or None,
            label=question.label,
            key=question.key,
            type=_column_value("type", question.type),
            is_active=question.is_active,
        )
        return _question(self._insert(row))

    def update_survey_question(self, question_id: str, changes: Dict[str, Any]) -> SurveyQuestion:
        row = self._require(orm.SurveyQuestion, "Survey question", question_id)
        self._apply(row, changes)
        self.db.flush()
        return _question(row)

    def delete_survey_question(self, question_id: str) -> None:
        self.db.delete(self._require(orm.SurveyQuestion, "Survey question", question_id))
        self.db.flush()

    # --- Injuries ---

    def list_injuries(self, player_id: str) -> List[Injury]:
        rows = (
            self.db.query(orm.Injury)
            .filter(orm.Injury.player_id == player_id)
            .order_by(orm.Injury.date)
            .all()
        )
        return [_injury(r) for r in rows]

    def add_injury(self, injury: Injury) -> Injury:
        self._require(orm.Player, "Player", injury.player_id)
        row = orm.Injury(
            id=injury.id or None,
            player_id=injury.player_id,
            description=injury.description,
            estimated_recovery=injury.estimated_recovery,
            date=injury.date,
            recovery_date=injury.recovery_date,
            is_current=injury.is_current,
        )
        return _injury(self._insert(row))

    def update_injury(self, injury_id: str, changes: Dict[str, Any]) -> Injury:
        row = self._require(orm.Injury, "Injury", injury_id)
        self._apply(row, changes, frozen=("id", "player_id"))
        self.db.flush()
        return _injury(row)

    def delete_injury(self, injury_id: str) -> None:
        self.db.delete(self._require(orm.Injury, "Injury", injury_id))
        self.db.flush()

    # --- Notes ---

    def list_notes(self, player_id: str) -> List[Note]:
        rows = (
            self.db.query(orm.Note)
            .filter(orm.Note.player_id == player_id)
            .order_by(orm.Note.date)
            .all()
        )
        return [_note(r) for r in rows]

    def add_note(self, note: Note) -> Note:
        self._require(orm.Player, "Player", note.player_id)
        row = orm.Note(
            id=note.id or None,
            player_id=note.player_id,
            author_id=note.author_id,
            text=note.text,
            date=note.date,
            is_public=note.is_public,
        )
        return _note(self._insert(row))

    def update_note(self, note_id: str, changes: Dict[str, Any]) -> Note:
        row = self._require(orm.Note, "Note", note_id)
        self._apply(row, changes, frozen=("id", "player_id", "author_id"))
        self.db.flush()
        return _note(row)

    def delete_note(self, note_id: str) -> None:
        self.db.delete(self._require(orm.Note, "Note", note_id))
        self.db.flush()

    # --- Schedule ---

    def list_schedule_events(self) -> List[ScheduleEvent]:
        rows = self.db.query(orm.ScheduleEvent).order_by(orm.ScheduleEvent.date, orm.ScheduleEvent.time).all()
        return [_event(r) for r in rows]

    def add_schedule_event(self, event: ScheduleEvent) -> ScheduleEvent:
        row = orm.ScheduleEvent(
            id=event.id or None,
            date=event.date,
            time=event.time,
            title=event.title,
            description=event.description,
            is_team_event=event.is_team_event,
            player_ids=list(event.player_ids),
        )
        return _event(self._insert(row))

    def update_schedule_event(self, event_id: str, changes: Dict[str, Any]) -> ScheduleEvent:
        row = self._require(orm.ScheduleEvent, "Schedule event", event_id)
        if "player_ids" in changes:
            changes = dict(changes, player_ids=list(changes["player_ids"]))
        self._apply(row, changes)
        self.db.flush()
        return _event(row)

    def delete_schedule_event(self, event_id: str) -> None:
        self.db.delete(self._require(orm.ScheduleEvent, "Schedule event", event_id))
        self.db.flush()
