"""
Metric Registry

Read-only snapshot of metric definitions for one request.
The other engine components take their configuration from here instead of
filtering raw metric lists themselves.
"""

from typing import Dict, Iterable, List, Optional
import logging

from .models import MetricDefinition, MetricInputType

logger = logging.getLogger(__name__)


class MetricRegistry:
    """
    Registry over a fixed set of metric definitions.

    Usage:
        registry = MetricRegistry(store.list_metrics())
        bmi = registry.get_by_name("BMI")
        for metric in registry.calculated():
            ...

    Iteration order is the order the definitions were given in; every
    filtered view preserves it.
    """

    def __init__(self, definitions: Iterable[MetricDefinition] = ()):
        self._metrics: List[MetricDefinition] = list(definitions)
        self._by_id: Dict[str, MetricDefinition] = {}
        self._by_name: Dict[str, MetricDefinition] = {}
        for metric in self._metrics:
            self._by_id[metric.id] = metric
            if metric.name in self._by_name:
                # Names are unique in the catalog; a clash here means stale data.
                logger.warning(f"Duplicate metric name in registry: {metric.name}")
                continue
            self._by_name[metric.name] = metric

    def __len__(self) -> int:
        return len(self._metrics)

    def __iter__(self):
        return iter(self._metrics)

    def __contains__(self, metric_id: str) -> bool:
        return metric_id in self._by_id

    def all(self) -> List[MetricDefinition]:
        return list(self._metrics)

    def get(self, metric_id: str) -> Optional[MetricDefinition]:
        """Get metric by id."""
        return self._by_id.get(metric_id)

    def get_by_name(self, name: str) -> Optional[MetricDefinition]:
        """Get metric by display name (exact match)."""
        return self._by_name.get(name)

    def resolve(self, name: str) -> Optional[str]:
        """Map a formula reference name to the metric id it stands for."""
        metric = self._by_name.get(name)
        return metric.id if metric else None

    def names(self) -> Dict[str, str]:
        """Metric id -> display name, for rendering composites."""
        return {m.id: m.name for m in self._metrics}

    def active(self) -> List[MetricDefinition]:
        return [m for m in self._metrics if m.is_active]

    def _active_of(self, input_type: MetricInputType) -> List[MetricDefinition]:
        return [m for m in self._metrics if m.is_active and m.input_type == input_type]

    def manual(self) -> List[MetricDefinition]:
        """Active manually-entered metrics."""
        return self._active_of(MetricInputType.MANUAL)

    def survey_linked(self) -> List[MetricDefinition]:
        """Active metrics that read a survey answer."""
        return [
            m for m in self._active_of(MetricInputType.SURVEY)
            if m.survey_question_key
        ]

    def calculated(self) -> List[MetricDefinition]:
        """Active formula metrics."""
        return [m for m in self._active_of(MetricInputType.CALCULATED) if m.formula]

    def manual_all(self) -> List[MetricDefinition]:
        """Manual metrics regardless of active flag."""
        return [m for m in self._metrics if m.is_manual]

    def radar_metrics(self) -> List[MetricDefinition]:
        return [m for m in self._metrics if m.show_in_radar and m.is_active]

    def leaderboard_metrics(self) -> List[MetricDefinition]:
        """Active manual metrics that may be ranked."""
        return [m for m in self.manual() if not m.exclude_from_leaderboard]

    def default_leaderboard_metric(self) -> Optional[MetricDefinition]:
        options = self.leaderboard_metrics()
        return options[0] if options else None
