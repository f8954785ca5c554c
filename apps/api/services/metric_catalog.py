"""
Metric Catalog Service

Create, update, delete and toggle metric definitions.

Rules enforced here (not in the record store):
- Names are unique, case-sensitive
- Calculated metrics need a formula that parses and only references
  known manual or survey metrics (calculated outputs are not visible to
  other formulas during a merge)
- Survey metrics need a survey question key
- Renaming a metric rewrites [Old] references in stored formulas to [New]
"""

from dataclasses import replace
from typing import Any, Dict, Optional
import logging

from core.exceptions import ConflictError, NotFoundError, ValidationError
from services.metric_engine.formula import (
    FormulaSyntaxError,
    UnknownMetricReference,
    formula_references,
    rename_reference,
    validate_formula,
)
from services.metric_engine.models import MetricDefinition, MetricInputType
from services.metric_engine.registry import MetricRegistry
from services.record_store import DuplicateRecordError, RecordStore

logger = logging.getLogger(__name__)


def _normalized(metric: MetricDefinition) -> MetricDefinition:
    """Clear the fields that do not apply to the metric's input type."""
    name = (metric.name or "").strip()
    formula = (metric.formula or "").strip() or None
    key = (metric.survey_question_key or "").strip() or None
    input_type = MetricInputType(metric.input_type)
    if input_type != MetricInputType.CALCULATED:
        formula = None
    if input_type != MetricInputType.SURVEY:
        key = None
    return replace(metric, name=name, input_type=input_type, formula=formula, survey_question_key=key)


def _references(formula: Optional[str]):
    if not formula:
        return []
    try:
        return formula_references(formula)
    except FormulaSyntaxError:
        return []


def _validate(metric: MetricDefinition, registry: MetricRegistry) -> None:
    if not metric.name:
        raise ValidationError("Metric name is required", field="name")

    if metric.is_survey and not metric.survey_question_key:
        raise ValidationError("Survey metrics require a survey question key", field="survey_question_key")

    if not metric.is_calculated:
        return

    if not metric.formula:
        raise ValidationError("Calculated metrics require a formula", field="formula")
    try:
        references = validate_formula(metric.formula, registry)
    except FormulaSyntaxError as e:
        raise ValidationError(f"Invalid formula: {e}", field="formula")
    except UnknownMetricReference as e:
        raise ValidationError(f"Formula references unknown metric: {e.name}", field="formula")

    for name in references:
        referenced = registry.get_by_name(name)
        if referenced.id == metric.id or referenced.is_calculated:
            raise ValidationError(
                f"Formula cannot reference calculated metric: {name}",
                field="formula",
            )

    dependents = [
        m.name for m in registry.calculated()
        if m.id != metric.id and metric.name in _references(m.formula)
    ]
    if dependents:
        raise ValidationError(
            f"Metric is referenced by calculated metrics: {', '.join(dependents)}",
            field="input_type",
        )


def _require(store: RecordStore, metric_id: str) -> MetricDefinition:
    metric = store.get_metric(metric_id)
    if metric is None:
        raise NotFoundError("Metric", metric_id)
    return metric


def create_metric(store: RecordStore, metric: MetricDefinition) -> MetricDefinition:
    """
    Validate and store a new metric definition.

    Raises:
        ValidationError: Missing formula/key or invalid formula
        ConflictError: Name already in use
    """
    metric = _normalized(metric)
    _validate(metric, MetricRegistry(store.list_metrics()))
    try:
        created = store.add_metric(metric)
    except DuplicateRecordError as e:
        raise ConflictError(str(e))

    logger.info(
        f"Created metric {created.name}",
        extra={"extra_fields": {"metric_id": created.id, "input_type": created.input_type.value}},
    )
    return created


def update_metric(store: RecordStore, metric_id: str, changes: Dict[str, Any]) -> MetricDefinition:
    """
    Apply a partial update to a metric.

    When the name changes, every other formula referencing the old name is
    rewritten to the new one in the same unit of work.
    """
    current = _require(store, metric_id)
    changes = {k: v for k, v in changes.items() if k != "id"}
    candidate = _normalized(replace(current, **changes))

    others = [m for m in store.list_metrics() if m.id != metric_id]
    if any(m.name == candidate.name for m in others):
        raise ConflictError(f"Metric name already exists: {candidate.name}")
    # Validate against the catalog as it will look after the update
    _validate(candidate, MetricRegistry(others + [candidate]))

    fields = {
        "name": candidate.name,
        "unit": candidate.unit,
        "input_type": candidate.input_type,
        "formula": candidate.formula,
        "survey_question_key": candidate.survey_question_key,
        "is_active": candidate.is_active,
        "show_in_radar": candidate.show_in_radar,
        "exclude_from_leaderboard": candidate.exclude_from_leaderboard,
    }
    try:
        updated = store.update_metric(metric_id, fields)
    except DuplicateRecordError as e:
        raise ConflictError(str(e))

    if current.name != updated.name:
        _propagate_rename(store, others, current.name, updated.name)
    return updated


def _propagate_rename(store: RecordStore, others, old_name: str, new_name: str) -> int:
    rewritten = 0
    for metric in others:
        if old_name not in _references(metric.formula):
            continue
        store.update_metric(metric.id, {"formula": rename_reference(metric.formula, old_name, new_name)})
        rewritten += 1

    logger.info(
        f"Renamed metric {old_name} -> {new_name}",
        extra={"extra_fields": {"formulas_rewritten": rewritten}},
    )
    return rewritten


def delete_metric(store: RecordStore, metric_id: str) -> None:
    """Delete a metric and its measurements."""
    metric = _require(store, metric_id)
    store.delete_metric(metric_id)
    logger.info(f"Deleted metric {metric.name}", extra={"extra_fields": {"metric_id": metric_id}})


def toggle_active(store: RecordStore, metric_id: str, value: Optional[bool] = None) -> MetricDefinition:
    """Flip (or set) is_active."""
    metric = _require(store, metric_id)
    return store.update_metric(metric_id, {"is_active": (not metric.is_active) if value is None else value})


def toggle_radar(store: RecordStore, metric_id: str, value: Optional[bool] = None) -> MetricDefinition:
    """Flip (or set) show_in_radar."""
    metric = _require(store, metric_id)
    return store.update_metric(metric_id, {"show_in_radar": (not metric.show_in_radar) if value is None else value})
