"""
Metric Engine

Derived-metrics computation for the athlete dashboard:
- Formula evaluation over named metric references
- Merge of manual measurements and survey answers into dated composites
- Radar snapshot with per-axis maxima
- Leaderboards by percent change, absolute change or latest value

Design Principles:
- Pure functions over data already loaded from the record store
- Missing data is an absence (None / empty list), never an exception
- Recomputed on every read; identical input gives identical output
"""

from .models import (
    ChangeType,
    CompositeDataPoint,
    DailySurveyRecord,
    LeaderboardEntry,
    Measurement,
    MetricDefinition,
    MetricInputType,
    PlayerSnapshot,
    RadarEntry,
    SortOrder,
)
from .registry import MetricRegistry
from .formula import (
    FormulaError,
    FormulaSyntaxError,
    UnknownMetricReference,
    evaluate,
    rename_reference,
    validate_formula,
)
from .timeseries import build_composites
from .radar import build_radar_snapshot
from .leaderboard import compute_player_trend, rank_players

__all__ = [
    'ChangeType',
    'CompositeDataPoint',
    'DailySurveyRecord',
    'LeaderboardEntry',
    'Measurement',
    'MetricDefinition',
    'MetricInputType',
    'PlayerSnapshot',
    'RadarEntry',
    'SortOrder',
    'MetricRegistry',
    'FormulaError',
    'FormulaSyntaxError',
    'UnknownMetricReference',
    'evaluate',
    'rename_reference',
    'validate_formula',
    'build_composites',
    'build_radar_snapshot',
    'compute_player_trend',
    'rank_players',
]
