"""
Analytics API Router

Derived views over a player's records: composite time series, radar
snapshot, leaderboards and the conditioner dashboard summary.
Everything here is recomputed on each request; nothing is persisted.
"""

from dataclasses import asdict
from fastapi import APIRouter, Depends, Query
from typing import Optional

from core.exceptions import NotFoundError
from core.store import get_record_store
from schemas import (
    CompositeSeriesResponse,
    DashboardSummaryResponse,
    InjuredPlayerResponse,
    InjuryResponse,
    LeaderboardResponse,
    RadarResponse,
)
from services.metric_engine import (
    ChangeType,
    MetricRegistry,
    SortOrder,
    build_composites,
    build_radar_snapshot,
    rank_players,
)
from services.player_overview import dashboard_summary, load_all_snapshots, load_player_snapshot
from services.record_store import RecordStore

router = APIRouter(prefix="/v1", tags=["analytics"])


def _require_snapshot(store: RecordStore, player_id: str):
    snapshot = load_player_snapshot(store, player_id)
    if snapshot is None:
        raise NotFoundError("Player", player_id)
    return snapshot


@router.get("/players/{player_id}/composites", response_model=CompositeSeriesResponse)
def get_composites(player_id: str, store: RecordStore = Depends(get_record_store)):
    """
    Per-date records merging measurements, survey answers and formulas.

    Values are keyed by metric display name, oldest date first.
    """
    snapshot = _require_snapshot(store, player_id)
    registry = MetricRegistry(store.list_metrics())
    names = registry.names()
    return CompositeSeriesResponse(
        player_id=player_id,
        data=[point.to_dict(names) for point in build_composites(snapshot, registry)],
    )


@router.get("/players/{player_id}/radar", response_model=RadarResponse)
def get_radar(player_id: str, store: RecordStore = Depends(get_record_store)):
    """Latest value of every radar metric with its axis maximum."""
    snapshot = _require_snapshot(store, player_id)
    registry = MetricRegistry(store.list_metrics())
    composites = build_composites(snapshot, registry)
    return RadarResponse(
        player_id=player_id,
        entries=[asdict(e) for e in build_radar_snapshot(snapshot, registry, composites)],
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(
    metric_id: Optional[str] = Query(None, description="Metric to rank on (default: first rankable metric)"),
    change_type: ChangeType = Query(ChangeType.PERCENT),
    sort_order: SortOrder = Query(SortOrder.DESC),
    limit: Optional[int] = Query(None, ge=1, le=100, description="Entries to return (default 5)"),
    store: RecordStore = Depends(get_record_store),
):
    """
    Rank players on one metric.

    percent: change from first to latest measurement in percent
    unit: the same change in the metric's unit
    latest: most recent value
    """
    registry = MetricRegistry(store.list_metrics())
    metric = registry.get(metric_id) if metric_id else registry.default_leaderboard_metric()
    if metric is None:
        return LeaderboardResponse(
            metric_id=metric_id, change_type=change_type, sort_order=sort_order, entries=[],
        )

    entries = rank_players(load_all_snapshots(store), metric.id, change_type, sort_order, limit=limit)
    return LeaderboardResponse(
        metric_id=metric.id,
        metric_name=metric.name,
        unit=metric.unit,
        change_type=change_type,
        sort_order=sort_order,
        entries=[asdict(e) for e in entries],
    )


@router.get("/dashboard/summary", response_model=DashboardSummaryResponse)
def get_dashboard_summary(store: RecordStore = Depends(get_record_store)):
    """Player count, injured players and today's schedule."""
    summary = dashboard_summary(store)
    default_metric = MetricRegistry(store.list_metrics()).default_leaderboard_metric()
    return DashboardSummaryResponse(
        total_players=summary.total_players,
        injured_count=len(summary.injured_players),
        injured_players=[
            InjuredPlayerResponse(
                player_id=player.id,
                player_name=player.name,
                injury=InjuryResponse(**asdict(injury)),
            )
            for player, injury in summary.injured_players
        ],
        todays_events=[asdict(e) for e in summary.todays_events],
        default_leaderboard_metric_id=default_metric.id if default_metric else None,
    )
