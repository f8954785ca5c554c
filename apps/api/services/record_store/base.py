"""
Base class for record stores.

The metric engine and the routers only talk to this interface. Two
implementations exist:
- SqlRecordStore: SQLAlchemy session (production)
- InMemoryRecordStore: process-local dictionaries (development, tests)

Implementation Requirements:
- get_* return None for unknown ids; update_*/delete_* raise RecordNotFoundError
- add_* assign an id when the record has none and return the stored record
- Returned records are copies; mutating them does not change the store
- list_measurements orders by date ascending, insertion order within a timestamp
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

from services.metric_engine.models import DailySurveyRecord, Measurement, MetricDefinition
from .models import Injury, Note, Player, ScheduleEvent, SurveyQuestion


class RecordStoreError(Exception):
    """Base class for record store failures."""


class RecordNotFoundError(RecordStoreError, LookupError):
    """The referenced record does not exist."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class DuplicateRecordError(RecordStoreError, ValueError):
    """A uniqueness rule would be violated (e.g. metric name)."""


class RecordStore(ABC):
    """Repository interface over all dashboard records."""

    # --- Metrics ---

    @abstractmethod
    def list_metrics(self) -> List[MetricDefinition]:
        """All metric definitions, active and inactive, in creation order."""

    @abstractmethod
    def get_metric(self, metric_id: str) -> Optional[MetricDefinition]:
        pass

    @abstractmethod
    def add_metric(self, metric: MetricDefinition) -> MetricDefinition:
        """Store a new metric. Raises DuplicateRecordError on a name clash."""

    @abstractmethod
    def update_metric(self, metric_id: str, changes: Dict[str, Any]) -> MetricDefinition:
        pass

    @abstractmethod
    def delete_metric(self, metric_id: str) -> None:
        """Delete a metric and its measurements."""

    # --- Players ---

    @abstractmethod
    def list_players(self) -> List[Player]:
        pass

    @abstractmethod
    def get_player(self, player_id: str) -> Optional[Player]:
        pass

    @abstractmethod
    def add_player(self, player: Player) -> Player:
        pass

    @abstractmethod
    def update_player(self, player_id: str, changes: Dict[str, Any]) -> Player:
        pass

    @abstractmethod
    def delete_player(self, player_id: str) -> None:
        """Delete a player with all measurements, surveys, injuries and notes."""

    # --- Measurements ---

    @abstractmethod
    def list_measurements(self, player_id: str) -> List[Measurement]:
        pass

    @abstractmethod
    def add_measurements(self, player_id: str, measurements: List[Measurement]) -> List[Measurement]:
        pass

    @abstractmethod
    def update_measurement(self, measurement_id: str, changes: Dict[str, Any]) -> Measurement:
        pass

    @abstractmethod
    def delete_measurement(self, measurement_id: str) -> None:
        pass

    # --- Daily surveys ---

    @abstractmethod
    def list_daily_surveys(self, player_id: str) -> List[DailySurveyRecord]:
        """Surveys ordered by date ascending."""

    @abstractmethod
    def get_daily_survey(self, player_id: str, on: date) -> Optional[DailySurveyRecord]:
        pass

    @abstractmethod
    def upsert_daily_survey(self, survey: DailySurveyRecord) -> DailySurveyRecord:
        """Insert, or replace the answers of the same player's survey that day."""

    # --- Survey questions ---

    @abstractmethod
    def list_survey_questions(self) -> List[SurveyQuestion]:
        pass

    @abstractmethod
    def add_survey_question(self, question: SurveyQuestion) -> SurveyQuestion:
        pass

    @abstractmethod
    def update_survey_question(self, question_id: str, changes: Dict[str, Any]) -> SurveyQuestion:
        pass

    @abstractmethod
    def delete_survey_question(self, question_id: str) -> None:
        pass

    # --- Injuries ---

    @abstractmethod
    def list_injuries(self, player_id: str) -> List[Injury]:
        """Injury history ordered by date ascending."""

    @abstractmethod
    def add_injury(self, injury: Injury) -> Injury:
        pass

    @abstractmethod
    def update_injury(self, injury_id: str, changes: Dict[str, Any]) -> Injury:
        pass

    @abstractmethod
    def delete_injury(self, injury_id: str) -> None:
        pass

    # --- Notes ---

    @abstractmethod
    def list_notes(self, player_id: str) -> List[Note]:
        """Notes ordered by date ascending."""

    @abstractmethod
    def add_note(self, note: Note) -> Note:
        pass

    @abstractmethod
    def update_note(self, note_id: str, changes: Dict[str, Any]) -> Note:
        pass

    @abstractmethod
    def delete_note(self, note_id: str) -> None:
        pass

    # --- Schedule ---

    @abstractmethod
    def list_schedule_events(self) -> List[ScheduleEvent]:
        pass

    @abstractmethod
    def add_schedule_event(self, event: ScheduleEvent) -> ScheduleEvent:
        pass

    @abstractmethod
    def update_schedule_event(self, event_id: str, changes: Dict[str, Any]) -> ScheduleEvent:
        pass

    @abstractmethod
    def delete_schedule_event(self, event_id: str) -> None:
        pass
