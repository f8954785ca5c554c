"""
Domain models for the metric engine.

These are plain dataclasses, independent of the ORM, so the computations
can run over any record store (SQL, in-memory, fixtures).

Design Principles:
- Metric values are keyed by metric id, never by display name
- Survey answers may be numbers or free text
- Derived records (composites, leaderboard, radar) are never persisted
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

MetricValue = Union[float, int, str]


class MetricInputType(str, Enum):
    """How a metric gets its values."""
    MANUAL = "manual"          # Entered by a conditioner (weight, jump height)
    CALCULATED = "calculated"  # Formula over other metrics (BMI)
    SURVEY = "survey"          # Read from a daily survey answer


class ChangeType(str, Enum):
    """What a leaderboard ranks by."""
    PERCENT = "percent"
    UNIT = "unit"
    LATEST = "latest"


class SortOrder(str, Enum):
    DESC = "desc"
    ASC = "asc"


@dataclass
class MetricDefinition:
    """
    A named, unit-tagged quantity tracked per player.

    `formula` is only meaningful for calculated metrics and
    `survey_question_key` only for survey metrics.
    """
    id: str
    name: str
    unit: str = ""
    input_type: MetricInputType = MetricInputType.MANUAL
    formula: Optional[str] = None
    survey_question_key: Optional[str] = None
    is_active: bool = True
    show_in_radar: bool = False
    exclude_from_leaderboard: bool = False

    @property
    def is_manual(self) -> bool:
        return self.input_type == MetricInputType.MANUAL

    @property
    def is_calculated(self) -> bool:
        return self.input_type == MetricInputType.CALCULATED

    @property
    def is_survey(self) -> bool:
        return self.input_type == MetricInputType.SURVEY


@dataclass
class Measurement:
    """A single manual reading of a metric for a player."""
    id: str
    metric_id: str
    value: float
    date: datetime
    player_id: Optional[str] = None

    @property
    def day(self) -> date:
        return calendar_day(self.date)


@dataclass
class DailySurveyRecord:
    """One player's wellness survey for one calendar day."""
    player_id: str
    date: date
    answers: Dict[str, MetricValue] = field(default_factory=dict)

    @property
    def day(self) -> date:
        return calendar_day(self.date)


@dataclass
class PlayerSnapshot:
    """
    Everything the engine needs to know about one player.

    Loaded from the record store once per request; the engine never
    fetches on its own.
    """
    id: str
    name: str
    position: Optional[str] = None
    measurements: List[Measurement] = field(default_factory=list)
    daily_surveys: List[DailySurveyRecord] = field(default_factory=list)


@dataclass
class CompositeDataPoint:
    """
    All metric values known for one player on one calendar day.

    `values` maps metric id to a number (or a survey text answer).
    """
    date: date
    values: Dict[str, MetricValue] = field(default_factory=dict)

    def get(self, metric_id: str, default: Any = None) -> Any:
        return self.values.get(metric_id, default)

    def __contains__(self, metric_id: str) -> bool:
        return metric_id in self.values

    def to_dict(self, names: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Flatten for serialization.

        With `names` (metric id -> display name) values are keyed by
        display name, which is what charts and tables expect.
        """
        out: Dict[str, Any] = {"date": self.date.isoformat()}
        for metric_id, value in self.values.items():
            key = names.get(metric_id, metric_id) if names else metric_id
            out[key] = value
        return out


@dataclass
class LeaderboardEntry:
    """A player's standing for one metric."""
    player_id: str
    player_name: str
    latest_value: float
    improvement_absolute: float = 0.0
    improvement_percent: float = 0.0
    measurement_count: int = 0


@dataclass
class RadarEntry:
    """One axis of a player's radar chart."""
    subject: str
    value: float
    raw_value: float
    full_mark: float
    metric_id: Optional[str] = None


def calendar_day(value: Union[date, datetime]) -> date:
    """Reduce a timestamp to its calendar date (no time-of-day)."""
    if isinstance(value, datetime):
        return value.date()
    return value
