"""
Metrics API Router

Metric catalog management for conditioners: manual, calculated and
survey-linked metrics.
"""
from fastapi import APIRouter, Depends, Query, status
from typing import List

from core.store import get_record_store
from schemas import MetricCreate, MetricResponse, MetricUpdate
from services import metric_catalog
from services.metric_engine.models import MetricDefinition
from services.metric_engine.registry import MetricRegistry
from services.record_store import RecordStore

router = APIRouter(prefix="/v1/metrics", tags=["metrics"])


@router.get("", response_model=List[MetricResponse])
def list_metrics(
    include_inactive: bool = Query(True, description="Include deactivated metrics"),
    store: RecordStore = Depends(get_record_store),
):
    metrics = store.list_metrics()
    if not include_inactive:
        metrics = [m for m in metrics if m.is_active]
    return metrics


@router.get("/leaderboard-options", response_model=List[MetricResponse])
def list_leaderboard_options(store: RecordStore = Depends(get_record_store)):
    """Active manual metrics that can be ranked; the first one is the default."""
    return MetricRegistry(store.list_metrics()).leaderboard_metrics()


@router.post("", response_model=MetricResponse, status_code=status.HTTP_201_CREATED)
def create_metric(payload: MetricCreate, store: RecordStore = Depends(get_record_store)):
    """
    Create a metric.

    Calculated metrics are validated: the formula must parse and may only
    reference existing manual or survey metrics by name.
    """
    return metric_catalog.create_metric(store, MetricDefinition(id="", **payload.model_dump()))


@router.patch("/{metric_id}", response_model=MetricResponse)
def update_metric(metric_id: str, payload: MetricUpdate, store: RecordStore = Depends(get_record_store)):
    """Partial update. Renames are propagated into other metrics' formulas."""
    return metric_catalog.update_metric(store, metric_id, payload.model_dump(exclude_unset=True))


@router.post("/{metric_id}/toggle-active", response_model=MetricResponse)
def toggle_active(metric_id: str, store: RecordStore = Depends(get_record_store)):
    return metric_catalog.toggle_active(store, metric_id)


@router.post("/{metric_id}/toggle-radar", response_model=MetricResponse)
def toggle_radar(metric_id: str, store: RecordStore = Depends(get_record_store)):
    return metric_catalog.toggle_radar(store, metric_id)


@router.delete("/{metric_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_metric(metric_id: str, store: RecordStore = Depends(get_record_store)):
    """Delete a metric together with its measurements."""
    metric_catalog.delete_metric(store, metric_id)
