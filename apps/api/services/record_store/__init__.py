"""
Record Store

Persistence boundary for metrics, players, measurements, surveys,
injuries, notes and schedule events.
"""

from .base import DuplicateRecordError, RecordNotFoundError, RecordStore, RecordStoreError
from .memory import InMemoryRecordStore
from .models import (
    Injury,
    Note,
    Player,
    ScheduleEvent,
    SurveyQuestion,
    SurveyQuestionType,
    new_id,
)
from .sql import SqlRecordStore

__all__ = [
    'DuplicateRecordError',
    'RecordNotFoundError',
    'RecordStore',
    'RecordStoreError',
    'InMemoryRecordStore',
    'SqlRecordStore',
    'Injury',
    'Note',
    'Player',
    'ScheduleEvent',
    'SurveyQuestion',
    'SurveyQuestionType',
    'new_id',
]
