"""
Record types for the dashboard entities that sit around the metric engine.

Metric definitions, measurements and daily surveys live in
services.metric_engine.models; the types here cover players, survey
questions, injuries, notes and the schedule.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional
import uuid


def new_id() -> str:
    return str(uuid.uuid4())


class SurveyQuestionType(str, Enum):
    NUMBER = "number"
    RANGE = "range"        # 1-9 slider
    TEXTAREA = "textarea"  # free text


@dataclass
class Player:
    id: str
    name: str
    position: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    avatar_url: Optional[str] = None

    def age(self, on: Optional[date] = None) -> Optional[int]:
        """Age in whole years on the given day (default today)."""
        if self.birth_date is None:
            return None
        today = on or date.today()
        years = today.year - self.birth_date.year
        if (today.month, today.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return years


@dataclass
class SurveyQuestion:
    id: str
    label: str
    key: str
    type: SurveyQuestionType = SurveyQuestionType.NUMBER
    is_active: bool = True


@dataclass
class Injury:
    """
    One injury in a player's history.

    At most one injury per player is current; closing it sets
    recovery_date.
    """
    id: str
    player_id: str
    description: str
    estimated_recovery: str = ""  # free text, e.g. "2 weeks"
    date: Optional[datetime] = None
    recovery_date: Optional[datetime] = None
    is_current: bool = False


@dataclass
class Note:
    id: str
    player_id: str
    author_id: str
    text: str
    date: Optional[datetime] = None
    is_public: bool = False  # visible to the player


@dataclass
class ScheduleEvent:
    id: str
    date: date
    title: str
    time: Optional[str] = None  # "HH:MM"
    description: Optional[str] = None
    is_team_event: bool = True
    player_ids: List[str] = field(default_factory=list)  # empty for team events
