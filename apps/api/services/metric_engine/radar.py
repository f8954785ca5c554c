"""
Radar Snapshot

Latest-value view of the metrics flagged for the overview radar chart,
with a per-axis maximum so differently-scaled metrics (kg, cm, %) can
share one chart.
"""

from typing import Dict, List, Optional

from core.metrics_config import metrics_config
from .formula import evaluate
from .models import CompositeDataPoint, Measurement, PlayerSnapshot, RadarEntry
from .registry import MetricRegistry
from .timeseries import metric_history


def latest_measurements(measurements: List[Measurement]) -> Dict[str, Measurement]:
    """
    Most recent measurement per metric id.

    On equal timestamps the measurement later in the list wins, matching
    the overwrite rule used when building composites.
    """
    latest: Dict[str, Measurement] = {}
    for measurement in measurements:
        current = latest.get(measurement.metric_id)
        if current is None or measurement.date >= current.date:
            latest[measurement.metric_id] = measurement
    return latest


def latest_data_point(player: PlayerSnapshot, registry: MetricRegistry) -> Dict[str, float]:
    """
    Cross-date point holding each manual metric's most recent value.

    Not tied to one calendar day: Height may come from January and Weight
    from March.
    """
    latest = latest_measurements(player.measurements)
    point: Dict[str, float] = {}
    for metric in registry.manual_all():
        measurement = latest.get(metric.id)
        if measurement is not None:
            point[metric.id] = measurement.value
    return point


def axis_maximum(history: List[float], latest_value: float, headroom: Optional[float] = None) -> float:
    """
    Axis maximum for one radar metric.

    With history: the largest of history and the latest value.
    Without: latest value plus headroom, or 1 when the value is not positive.
    """
    if history:
        return max(max(history), latest_value)
    factor = metrics_config.radar_headroom if headroom is None else headroom
    return latest_value * factor if latest_value > 0 else 1


def build_radar_snapshot(
    player: PlayerSnapshot,
    registry: MetricRegistry,
    composites: List[CompositeDataPoint],
) -> List[RadarEntry]:
    """
    Build one radar entry per active metric flagged show_in_radar.

    Args:
        player: Player with measurements loaded
        registry: Metric definitions for this request
        composites: The player's composite records (see build_composites)

    Returns:
        Entries in registry order. A metric without a latest value gets
        value 0 and full_mark 1, so the chart draws an empty axis.
    """
    point = latest_data_point(player, registry)
    entries: List[RadarEntry] = []

    for metric in registry.radar_metrics():
        latest_value: Optional[float] = None
        if metric.is_manual:
            latest_value = point.get(metric.id)
        elif metric.is_calculated and metric.formula:
            latest_value = evaluate(metric.formula, point, registry)

        if latest_value is None:
            entries.append(RadarEntry(
                subject=metric.name, value=0, raw_value=0, full_mark=1, metric_id=metric.id,
            ))
            continue

        full_mark = axis_maximum(metric_history(composites, metric.id), latest_value)
        entries.append(RadarEntry(
            subject=metric.name,
            value=latest_value,
            raw_value=latest_value,
            full_mark=full_mark,
            metric_id=metric.id,
        ))

    return entries
