"""
Tests for the metric registry views
"""
import pytest

from services.metric_engine.models import MetricDefinition, MetricInputType
from services.metric_engine.registry import MetricRegistry


@pytest.fixture
def registry():
    return MetricRegistry([
        MetricDefinition(id="height", name="Height", unit="cm", exclude_from_leaderboard=True),
        MetricDefinition(id="weight", name="Weight", unit="kg", show_in_radar=True),
        MetricDefinition(id="sprint", name="Sprint 30m", unit="s", is_active=False, show_in_radar=True),
        MetricDefinition(
            id="bmi", name="BMI", input_type=MetricInputType.CALCULATED,
            formula="[Weight] / (([Height]/100) * ([Height]/100))", show_in_radar=True,
        ),
        MetricDefinition(id="broken", name="Broken", input_type=MetricInputType.CALCULATED, formula=None),
        MetricDefinition(
            id="sleep", name="Sleep", input_type=MetricInputType.SURVEY, survey_question_key="sleep_hours",
        ),
        MetricDefinition(id="unlinked", name="Unlinked", input_type=MetricInputType.SURVEY),
    ])


class TestLookups:
    def test_get_by_id(self, registry):
        assert registry.get("weight").name == "Weight"
        assert registry.get("missing") is None

    def test_get_by_name_is_exact(self, registry):
        assert registry.get_by_name("BMI").id == "bmi"
        assert registry.get_by_name("bmi") is None

    def test_resolve(self, registry):
        assert registry.resolve("Sprint 30m") == "sprint"
        assert registry.resolve("Nope") is None

    def test_names(self, registry):
        assert registry.names()["sleep"] == "Sleep"

    def test_len_and_contains(self, registry):
        assert len(registry) == 7
        assert "bmi" in registry


class TestViews:
    """Filtered views keep definition order"""

    def test_manual_is_active_only(self, registry):
        assert [m.id for m in registry.manual()] == ["height", "weight"]

    def test_manual_all_includes_inactive(self, registry):
        assert [m.id for m in registry.manual_all()] == ["height", "weight", "sprint"]

    def test_calculated_requires_formula(self, registry):
        assert [m.id for m in registry.calculated()] == ["bmi"]

    def test_survey_linked_requires_key(self, registry):
        assert [m.id for m in registry.survey_linked()] == ["sleep"]

    def test_radar_metrics(self, registry):
        assert [m.id for m in registry.radar_metrics()] == ["weight", "bmi"]

    def test_leaderboard_metrics_skip_excluded(self, registry):
        assert [m.id for m in registry.leaderboard_metrics()] == ["weight"]

    def test_default_leaderboard_metric(self, registry):
        assert registry.default_leaderboard_metric().id == "weight"

    def test_default_leaderboard_metric_empty(self):
        assert MetricRegistry([]).default_leaderboard_metric() is None


class TestDuplicates:
    def test_first_name_wins(self, caplog):
        registry = MetricRegistry([
            MetricDefinition(id="a", name="Weight"),
            MetricDefinition(id="b", name="Weight"),
        ])
        assert registry.resolve("Weight") == "a"
        assert "Duplicate metric name" in caplog.text
