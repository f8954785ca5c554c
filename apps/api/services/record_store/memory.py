"""
In-memory record store.

Keeps every record in process-local dictionaries. Used for local
development without a database and as the store behind API tests.
Each instance is independent; nothing is shared at module level.
"""

from copy import deepcopy
from dataclasses import fields, replace
from datetime import date
from typing import Any, Dict, List, Optional, TypeVar
import logging

from services.metric_engine.models import DailySurveyRecord, Measurement, MetricDefinition
from .base import DuplicateRecordError, RecordNotFoundError, RecordStore
from .models import Injury, Note, Player, ScheduleEvent, SurveyQuestion, new_id

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _with_changes(record: T, changes: Dict[str, Any]) -> T:
    allowed = {f.name for f in fields(record)} - {"id"}
    return replace(record, **{k: v for k, v in changes.items() if k in allowed})


def _with_id(record: T) -> T:
    if getattr(record, "id", None):
        return deepcopy(record)
    return replace(deepcopy(record), id=new_id())


class InMemoryRecordStore(RecordStore):
    """RecordStore backed by dictionaries (insertion-ordered)."""

    def __init__(self):
        self._metrics: Dict[str, MetricDefinition] = {}
        self._players: Dict[str, Player] = {}
        self._measurements: Dict[str, Measurement] = {}
        self._surveys: Dict[tuple, DailySurveyRecord] = {}
        self._questions: Dict[str, SurveyQuestion] = {}
        self._injuries: Dict[str, Injury] = {}
        self._notes: Dict[str, Note] = {}
        self._events: Dict[str, ScheduleEvent] = {}

    @staticmethod
    def _require(table: Dict[str, T], resource: str, record_id: str) -> T:
        record = table.get(record_id)
        if record is None:
            raise RecordNotFoundError(resource, record_id)
        return record

    # --- Metrics ---

    def _check_metric_name(self, name: str, metric_id: Optional[str] = None) -> None:
        for existing in self._metrics.values():
            if existing.name == name and existing.id != metric_id:
                raise DuplicateRecordError(f"Metric name already exists: {name}")

    def list_metrics(self) -> List[MetricDefinition]:
        return deepcopy(list(self._metrics.values()))

    def get_metric(self, metric_id: str) -> Optional[MetricDefinition]:
        return deepcopy(self._metrics.get(metric_id))

    def add_metric(self, metric: MetricDefinition) -> MetricDefinition:
        self._check_metric_name(metric.name)
        stored = _with_id(metric)
        self._metrics[stored.id] = stored
        return deepcopy(stored)

    def update_metric(self, metric_id: str, changes: Dict[str, Any]) -> MetricDefinition:
        current = self._require(self._metrics, "Metric", metric_id)
        if "name" in changes:
            self._check_metric_name(changes["name"], metric_id)
        updated = _with_changes(current, changes)
        self._metrics[metric_id] = updated
        return deepcopy(updated)

    def delete_metric(self, metric_id: str) -> None:
        self._require(self._metrics, "Metric", metric_id)
        del self._metrics[metric_id]
        self._measurements = {
            k: m for k, m in self._measurements.items() if m.metric_id != metric_id
        }

    # --- Players ---

    def list_players(self) -> List[Player]:
        return deepcopy(list(self._players.values()))

    def get_player(self, player_id: str) -> Optional[Player]:
        return deepcopy(self._players.get(player_id))

    def add_player(self, player: Player) -> Player:
        stored = _with_id(player)
        self._players[stored.id] = stored
        return deepcopy(stored)

    def update_player(self, player_id: str, changes: Dict[str, Any]) -> Player:
        updated = _with_changes(self._require(self._players, "Player", player_id), changes)
        self._players[player_id] = updated
        return deepcopy(updated)

    def delete_player(self, player_id: str) -> None:
        self._require(self._players, "Player", player_id)
        del self._players[player_id]
        self._measurements = {k: m for k, m in self._measurements.items() if m.player_id != player_id}
        self._surveys = {k: s for k, s in self._surveys.items() if s.player_id != player_id}
        self._injuries = {k: i for k, i in self._injuries.items() if i.player_id != player_id}
        self._notes = {k: n for k, n in self._notes.items() if n.player_id != player_id}
        for event_id, event in list(self._events.items()):
            if player_id in event.player_ids:
                self._events[event_id] = replace(
                    event, player_ids=[p for p in event.player_ids if p != player_id]
                )

    # --- Measurements ---

    def list_measurements(self, player_id: str) -> List[Measurement]:
        own = [m for m in self._measurements.values() if m.player_id == player_id]
        return deepcopy(sorted(own, key=lambda m: m.date))

    def add_measurements(self, player_id: str, measurements: List[Measurement]) -> List[Measurement]:
        self._require(self._players, "Player", player_id)
        stored = []
        for measurement in measurements:
            record = replace(_with_id(measurement), player_id=player_id)
            self._measurements[record.id] = record
            stored.append(record)
        return deepcopy(stored)

    def update_measurement(self, measurement_id: str, changes: Dict[str, Any]) -> Measurement:
        current = self._require(self._measurements, "Measurement", measurement_id)
        updated = _with_changes(current, {k: v for k, v in changes.items() if k != "player_id"})
        self._measurements[measurement_id] = updated
        return deepcopy(updated)

    def delete_measurement(self, measurement_id: str) -> None:
        self._require(self._measurements, "Measurement", measurement_id)
        del self._measurements[measurement_id]

    # --- Daily surveys ---

    def list_daily_surveys(self, player_id: str) -> List[DailySurveyRecord]:
        own = [s for s in self._surveys.values() if s.player_id == player_id]
        return deepcopy(sorted(own, key=lambda s: s.date))

    def get_daily_survey(self, player_id: str, on: date) -> Optional[DailySurveyRecord]:
        return deepcopy(self._surveys.get((player_id, on)))

    def upsert_daily_survey(self, survey: DailySurveyRecord) -> DailySurveyRecord:
        self._require(self._players, "Player", survey.player_id)
        stored = replace(deepcopy(survey), date=survey.day)
        self._surveys[(stored.player_id, stored.date)] = stored
        return deepcopy(stored)

    # --- Survey questions ---

    def list_survey_questions(self) -> List[SurveyQuestion]:
        return deepcopy(list(self._questions.values()))

    def add_survey_question(self, question: SurveyQuestion) -> SurveyQuestion:
        if any(q.key == question.key for q in self._questions.values()):
            raise DuplicateRecordError(f"Survey question key already exists: {question.key}")
        stored = _with_id(question)
        self._questions[stored.id] = stored
        return deepcopy(stored)

    def update_survey_question(self, question_id: str, changes: Dict[str, Any]) -> SurveyQuestion:
        updated = _with_changes(self._require(self._questions, "Survey question", question_id), changes)
        self._questions[question_id] = updated
        return deepcopy(updated)

    def delete_survey_question(self, question_id: str) -> None:
        self._require(self._questions, "Survey question", question_id)
        del self._questions[question_id]

    # --- Injuries ---

    def list_injuries(self, player_id: str) -> List[Injury]:
        own = [i for i in self._injuries.values() if i.player_id == player_id]
        return deepcopy(sorted(own, key=lambda i: (i.date is None, i.date)))

    def add_injury(self, injury: Injury) -> Injury:
        self._require(self._players, "Player", injury.player_id)
        stored = _with_id(injury)
        self._injuries[stored.id] = stored
        return deepcopy(stored)

    def update_injury(self, injury_id: str, changes: Dict[str, Any]) -> Injury:
        updated = _with_changes(self._require(self._injuries, "Injury", injury_id), changes)
        self._injuries[injury_id] = updated
        return deepcopy(updated)

    def delete_injury(self, injury_id: str) -> None:
        self._require(self._injuries, "Injury", injury_id)
        del self._injuries[injury_id]

    # --- Notes ---

    def list_notes(self, player_id: str) -> List[Note]:
        own = [n for n in self._notes.values() if n.player_id == player_id]
        return deepcopy(sorted(own, key=lambda n: (n.date is None, n.date)))

    def add_note(self, note: Note) -> Note:
        self._require(self._players, "Player", note.player_id)
        stored = _with_id(note)
        self._notes[stored.id] = stored
        return deepcopy(stored)

    def update_note(self, note_id: str, changes: Dict[str, Any]) -> Note:
        updated = _with_changes(self._require(self._notes, "Note", note_id), changes)
        self._notes[note_id] = updated
        return deepcopy(updated)

    def delete_note(self, note_id: str) -> None:
        self._require(self._notes, "Note", note_id)
        del self._notes[note_id]

    # --- Schedule ---

    def list_schedule_events(self) -> List[ScheduleEvent]:
        return deepcopy(list(self._events.values()))

    def add_schedule_event(self, event: ScheduleEvent) -> ScheduleEvent:
        stored = _with_id(event)
        self._events[stored.id] = stored
        return deepcopy(stored)

    def update_schedule_event(self, event_id: str, changes: Dict[str, Any]) -> ScheduleEvent:
        updated = _with_changes(self._require(self._events, "Schedule event", event_id), changes)
        self._events[event_id] = updated
        return deepcopy(updated)

    def delete_schedule_event(self, event_id: str) -> None:
        self._require(self._events, "Schedule event", event_id)
        del self._events[event_id]
