"""
Time-Series Merger

Builds a player's composite records: one per calendar day that has any
measurement or survey data, holding every metric value known for that day.

Order of work per player:
1. Manual measurements (last processed wins on same metric + day)
2. Survey answers for survey-linked metrics
3. Calculated metrics, evaluated against the manual/survey values only

Calculated metrics never see each other's output. A formula that names
another calculated metric therefore never resolves; the metric catalog
rejects such formulas up front.
"""

from datetime import date
from typing import Dict, List
import logging
import math

from .formula import evaluate
from .models import CompositeDataPoint, PlayerSnapshot
from .registry import MetricRegistry

logger = logging.getLogger(__name__)


def build_composites(player: PlayerSnapshot, registry: MetricRegistry) -> List[CompositeDataPoint]:
    """
    Merge a player's measurements and daily surveys into dated composites.

    Args:
        player: Player with measurements and daily surveys loaded
        registry: Metric definitions for this request

    Returns:
        Composite records sorted ascending by date. Values are keyed by
        metric id. Days without data are absent; metrics without a value
        on a day are absent from that day's record.
    """
    records: Dict[date, CompositeDataPoint] = {}

    def record_for(day: date) -> CompositeDataPoint:
        record = records.get(day)
        if record is None:
            record = CompositeDataPoint(date=day)
            records[day] = record
        return record

    manual_ids = {m.id for m in registry.manual()}
    survey_metrics = registry.survey_linked()
    calculated_metrics = registry.calculated()

    # 1. Manual measurements, in the order the store returned them
    for measurement in player.measurements:
        if measurement.metric_id not in manual_ids:
            continue
        record_for(measurement.day).values[measurement.metric_id] = measurement.value

    # 2. Survey answers; a survey day gets a record even if nothing is linked
    for survey in player.daily_surveys:
        record = record_for(survey.day)
        for metric in survey_metrics:
            answer = survey.answers.get(metric.survey_question_key)
            if answer is not None:
                record.values[metric.id] = answer

    # 3. Calculated metrics against a frozen view of the base values
    if calculated_metrics:
        for record in records.values():
            base = dict(record.values)
            for metric in calculated_metrics:
                result = evaluate(metric.formula, base, registry)
                if result is not None:
                    record.values[metric.id] = result

    composites = sorted(records.values(), key=lambda r: r.date)
    logger.debug(
        f"Built {len(composites)} composite records for player {player.id}",
        extra={"extra_fields": {"player_id": player.id, "records": len(composites)}},
    )
    return composites


def metric_history(composites: List[CompositeDataPoint], metric_id: str) -> List[float]:
    """Finite numeric values of one metric across composites, in date order."""
    history: List[float] = []
    for record in composites:
        value = record.get(metric_id)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if not math.isfinite(value):
            continue
        history.append(float(value))
    return history
