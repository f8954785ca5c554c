"""
Leaderboard Ranker

Ranks players on one manual metric by percent change, absolute change
or latest value, comparing each player's earliest and latest measurement.

Conventions:
- No measurements: player is left out
- One measurement: latest value only, both improvements 0
- First value 0: percent change is +inf when the last value is positive,
  otherwise 0 (no exception)
- Ties keep the input order of players
- Non-finite values (inf, NaN) are treated as missing
"""

from typing import Iterable, List, Optional, Union
import logging
import math

from core.metrics_config import metrics_config
from .formula import round_value
from .models import ChangeType, LeaderboardEntry, PlayerSnapshot, SortOrder

logger = logging.getLogger(__name__)


def compute_player_trend(player: PlayerSnapshot, metric_id: str) -> Optional[LeaderboardEntry]:
    """
    Latest value and improvement of one player on one metric.

    Returns:
        LeaderboardEntry, or None if the player has no measurement
        for the metric.
    """
    relevant = sorted(
        (m for m in player.measurements if m.metric_id == metric_id and math.isfinite(m.value)),
        key=lambda m: m.date,
    )
    if not relevant:
        return None

    latest_value = relevant[-1].value
    entry = LeaderboardEntry(
        player_id=player.id,
        player_name=player.name,
        latest_value=latest_value,
        measurement_count=len(relevant),
    )
    if len(relevant) < 2:
        return entry

    first_value = relevant[0].value
    entry.improvement_absolute = round_value(latest_value - first_value)
    if first_value == 0:
        entry.improvement_percent = float("inf") if latest_value > 0 else 0.0
    else:
        entry.improvement_percent = round_value((latest_value - first_value) / first_value * 100)
    return entry


def _sort_key(change_type: ChangeType):
    if change_type == ChangeType.LATEST:
        return lambda e: e.latest_value
    if change_type == ChangeType.PERCENT:
        return lambda e: e.improvement_percent
    return lambda e: e.improvement_absolute


def rank_players(
    players: Iterable[PlayerSnapshot],
    metric_id: str,
    change_type: Union[ChangeType, str] = ChangeType.PERCENT,
    sort_order: Union[SortOrder, str] = SortOrder.DESC,
    limit: Optional[int] = None,
) -> List[LeaderboardEntry]:
    """
    Rank players on a metric.

    Args:
        players: Players with measurements loaded
        metric_id: Metric to rank on
        change_type: 'percent', 'unit' or 'latest'
        sort_order: 'desc' or 'asc'
        limit: Number of entries kept (default from MetricsConfig, 5)

    Returns:
        At most `limit` entries, best first for the given order.
        Players without measurements for the metric are not included.

    Raises:
        ValueError: If change_type or sort_order is not a known value
    """
    change_type = ChangeType(change_type)
    sort_order = SortOrder(sort_order)
    size = metrics_config.leaderboard_size if limit is None else limit

    entries = []
    for player in players:
        entry = compute_player_trend(player, metric_id)
        if entry is not None:
            entries.append(entry)

    # sorted() is stable for both directions, so ties keep input order
    ranked = sorted(
        entries,
        key=_sort_key(change_type),
        reverse=sort_order == SortOrder.DESC,
    )
    logger.debug(
        f"Leaderboard for metric {metric_id}: {len(entries)} ranked players",
        extra={"extra_fields": {"metric_id": metric_id, "change_type": change_type.value}},
    )
    return ranked[:max(size, 0)]
