from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from datetime import datetime, date, timezone
from typing import Optional, List, Dict, Union, Any
import datetime as dt
import math

from services.metric_engine.models import ChangeType, MetricInputType, SortOrder
from services.record_store.models import SurveyQuestionType

AnswerValue = Union[int, float, str, None]


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store timestamps as naive UTC; naive input is taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# --- Metrics ---

class MetricCreate(BaseModel):
    name: str = Field(..., min_length=1)
    unit: str = ""
    input_type: MetricInputType = MetricInputType.MANUAL
    formula: Optional[str] = None  # e.g. "[Weight] / (([Height]/100) * ([Height]/100))"
    survey_question_key: Optional[str] = None
    is_active: bool = True
    show_in_radar: bool = False
    exclude_from_leaderboard: bool = False

    @model_validator(mode='after')
    def check_type_fields(self):
        if self.input_type == MetricInputType.CALCULATED and not (self.formula or "").strip():
            raise ValueError('calculated metrics require a formula')
        if self.input_type == MetricInputType.SURVEY and not (self.survey_question_key or "").strip():
            raise ValueError('survey metrics require a survey_question_key')
        return self


class MetricUpdate(BaseModel):
    """Partial update; only fields sent are applied."""
    name: Optional[str] = Field(default=None, min_length=1)
    unit: Optional[str] = None
    input_type: Optional[MetricInputType] = None
    formula: Optional[str] = None
    survey_question_key: Optional[str] = None
    is_active: Optional[bool] = None
    show_in_radar: Optional[bool] = None
    exclude_from_leaderboard: Optional[bool] = None


class MetricResponse(BaseModel):
    id: str
    name: str
    unit: str
    input_type: MetricInputType
    formula: Optional[str] = None
    survey_question_key: Optional[str] = None
    is_active: bool
    show_in_radar: bool
    exclude_from_leaderboard: bool

    model_config = ConfigDict(from_attributes=True)


# --- Players ---

class PlayerCreate(BaseModel):
    name: str = Field(..., min_length=1)
    position: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    avatar_url: Optional[str] = None


class PlayerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    position: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    avatar_url: Optional[str] = None


class PlayerResponse(BaseModel):
    id: str
    name: str
    position: str
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    avatar_url: Optional[str] = None
    age: Optional[int] = None  # derived from birth_date
    is_injured: bool = False

    model_config = ConfigDict(from_attributes=True)


# --- Measurements ---

class MeasurementCreate(BaseModel):
    metric_id: str
    value: float = Field(..., allow_inf_nan=False)
    date: datetime

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class MeasurementBatchCreate(BaseModel):
    """Several measurements recorded in one session."""
    measurements: List[MeasurementCreate] = Field(..., min_length=1)


class MeasurementUpdate(BaseModel):
    value: Optional[float] = Field(None, allow_inf_nan=False)
    date: Optional[dt.datetime] = None

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return to_naive_utc(v)


class MeasurementResponse(BaseModel):
    id: str
    player_id: str
    metric_id: str
    value: float
    date: datetime

    model_config = ConfigDict(from_attributes=True)


# --- Daily surveys ---

class DailySurveyCreate(BaseModel):
    """Submitting twice on the same day replaces the first answers."""
    date: Optional[dt.date] = None  # default: today (UTC)
    answers: Dict[str, AnswerValue] = Field(default_factory=dict)


class DailySurveyResponse(BaseModel):
    player_id: str
    date: date
    answers: Dict[str, AnswerValue]

    model_config = ConfigDict(from_attributes=True)


class SurveyQuestionCreate(BaseModel):
    label: str = Field(..., min_length=1)
    key: Optional[str] = None  # default: custom_<timestamp>
    type: SurveyQuestionType = SurveyQuestionType.NUMBER
    is_active: bool = True


class SurveyQuestionUpdate(BaseModel):
    label: Optional[str] = Field(default=None, min_length=1)
    type: Optional[SurveyQuestionType] = None
    is_active: Optional[bool] = None


class SurveyQuestionResponse(BaseModel):
    id: str
    label: str
    key: str
    type: SurveyQuestionType
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


# --- Injuries ---

class InjuryCreate(BaseModel):
    description: str = Field(..., min_length=1)
    estimated_recovery: str = ""
    date: Optional[dt.datetime] = None  # default: now

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return to_naive_utc(v)


class InjuryStatusUpdate(BaseModel):
    """New current injury, or null to mark the player fit."""
    injury: Optional[InjuryCreate] = None


class InjuryUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1)
    estimated_recovery: Optional[str] = None
    date: Optional[dt.datetime] = None
    recovery_date: Optional[dt.datetime] = None

    @field_validator('date', 'recovery_date')
    @classmethod
    def normalize_dates(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return to_naive_utc(v)


class InjuryResponse(BaseModel):
    id: str
    player_id: str
    description: str
    estimated_recovery: str
    date: Optional[datetime] = None
    recovery_date: Optional[datetime] = None
    is_current: bool

    model_config = ConfigDict(from_attributes=True)


# --- Notes ---

class NoteCreate(BaseModel):
    author_id: str
    text: str = Field(..., min_length=1)
    is_public: bool = False
    date: Optional[dt.datetime] = None  # default: now

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return to_naive_utc(v)


class NoteUpdate(BaseModel):
    text: Optional[str] = Field(default=None, min_length=1)
    is_public: Optional[bool] = None


class NoteResponse(BaseModel):
    id: str
    player_id: str
    author_id: str
    text: str
    date: Optional[datetime] = None
    is_public: bool

    model_config = ConfigDict(from_attributes=True)


# --- Schedule ---

class ScheduleEventCreate(BaseModel):
    date: date
    title: str = Field(..., min_length=1)
    time: Optional[str] = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    description: Optional[str] = None
    is_team_event: bool = True
    player_ids: List[str] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_participants(self):
        if self.is_team_event:
            self.player_ids = []
        elif not self.player_ids:
            raise ValueError('individual events need at least one player')
        return self


class ScheduleEventUpdate(BaseModel):
    date: Optional[dt.date] = None
    title: Optional[str] = Field(default=None, min_length=1)
    time: Optional[str] = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    description: Optional[str] = None
    is_team_event: Optional[bool] = None
    player_ids: Optional[List[str]] = None


class ScheduleEventResponse(BaseModel):
    id: str
    date: date
    time: Optional[str] = None
    title: str
    description: Optional[str] = None
    is_team_event: bool
    player_ids: List[str]

    model_config = ConfigDict(from_attributes=True)


# --- Analytics ---

class CompositeSeriesResponse(BaseModel):
    """Per-date metric values keyed by metric display name."""
    player_id: str
    data: List[Dict[str, Any]]


class RadarEntryResponse(BaseModel):
    subject: str
    value: float
    raw_value: float
    full_mark: float
    metric_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RadarResponse(BaseModel):
    player_id: str
    entries: List[RadarEntryResponse]


class LeaderboardEntryResponse(BaseModel):
    player_id: str
    player_name: str
    latest_value: float
    improvement_absolute: float
    improvement_percent: float
    measurement_count: int

    model_config = ConfigDict(from_attributes=True)

    @field_serializer('improvement_absolute', 'improvement_percent')
    def serialize_improvement(self, value: float) -> Union[float, str]:
        # JSON has no infinity literal
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return value


class LeaderboardResponse(BaseModel):
    metric_id: Optional[str] = None
    metric_name: Optional[str] = None
    unit: Optional[str] = None
    change_type: ChangeType
    sort_order: SortOrder
    entries: List[LeaderboardEntryResponse]


class InjuredPlayerResponse(BaseModel):
    player_id: str
    player_name: str
    injury: InjuryResponse


class DashboardSummaryResponse(BaseModel):
    total_players: int
    injured_count: int
    injured_players: List[InjuredPlayerResponse]
    todays_events: List[ScheduleEventResponse]
    default_leaderboard_metric_id: Optional[str] = None
