"""
Tests for the time-series merger (composite records)
"""
import pytest
from datetime import date, datetime

from services.metric_engine.models import (
    DailySurveyRecord,
    Measurement,
    MetricDefinition,
    MetricInputType,
    PlayerSnapshot,
)
from services.metric_engine.registry import MetricRegistry
from services.metric_engine.timeseries import build_composites, metric_history

BMI = "[Weight] / (([Height]/100) * ([Height]/100))"


def _m(metric_id, value, when, mid=None):
    return Measurement(id=mid or f"{metric_id}-{when.isoformat()}", metric_id=metric_id, value=value, date=when)


@pytest.fixture
def registry():
    return MetricRegistry([
        MetricDefinition(id="weight", name="Weight", unit="kg"),
        MetricDefinition(id="height", name="Height", unit="cm"),
        MetricDefinition(id="bmi", name="BMI", input_type=MetricInputType.CALCULATED, formula=BMI),
        MetricDefinition(
            id="sleep", name="Sleep", unit="h",
            input_type=MetricInputType.SURVEY, survey_question_key="sleep_hours",
        ),
        MetricDefinition(id="retired", name="Old Sprint", unit="s", is_active=False),
    ])


class TestBuildComposites:
    """Merging measurements, surveys and formulas per calendar day"""

    def test_empty_player(self, registry):
        assert build_composites(PlayerSnapshot(id="p", name="P"), registry) == []

    def test_manual_and_calculated_same_day(self, registry):
        player = PlayerSnapshot(id="p", name="P", measurements=[
            _m("weight", 70, datetime(2024, 3, 1, 9, 0)),
            _m("height", 175, datetime(2024, 3, 1, 9, 5)),
        ])
        composites = build_composites(player, registry)

        assert len(composites) == 1
        assert composites[0].date == date(2024, 3, 1)
        assert composites[0].values == {"weight": 70, "height": 175, "bmi": 22.86}

    def test_calculated_absent_when_reference_missing(self, registry):
        """Height measured on another day: no BMI on either day"""
        player = PlayerSnapshot(id="p", name="P", measurements=[
            _m("height", 175, datetime(2024, 1, 10, 9, 0)),
            _m("weight", 70, datetime(2024, 3, 1, 9, 0)),
        ])
        composites = build_composites(player, registry)

        assert [c.date for c in composites] == [date(2024, 1, 10), date(2024, 3, 1)]
        assert all("bmi" not in c for c in composites)

    def test_same_day_later_measurement_wins(self, registry):
        """Two weights on one day: the one processed last is kept"""
        player = PlayerSnapshot(id="p", name="P", measurements=[
            _m("weight", 70, datetime(2024, 3, 1, 8, 0), mid="a"),
            _m("weight", 72, datetime(2024, 3, 1, 8, 0), mid="b"),
        ])
        composites = build_composites(player, registry)
        assert composites[0].get("weight") == 72

    def test_records_sorted_by_date(self, registry):
        player = PlayerSnapshot(id="p", name="P", measurements=[
            _m("weight", 71, datetime(2024, 5, 1, 9, 0)),
            _m("weight", 70, datetime(2024, 2, 1, 9, 0)),
            _m("weight", 69, datetime(2024, 4, 1, 9, 0)),
        ])
        composites = build_composites(player, registry)
        assert [c.date for c in composites] == [date(2024, 2, 1), date(2024, 4, 1), date(2024, 5, 1)]
        assert [c.get("weight") for c in composites] == [70, 69, 71]

    def test_inactive_metric_ignored(self, registry):
        player = PlayerSnapshot(id="p", name="P", measurements=[
            _m("retired", 4.2, datetime(2024, 3, 1, 9, 0)),
        ])
        assert build_composites(player, registry) == []

    def test_unknown_metric_ignored(self, registry):
        player = PlayerSnapshot(id="p", name="P", measurements=[
            _m("deleted-metric", 1, datetime(2024, 3, 1, 9, 0)),
        ])
        assert build_composites(player, registry) == []

    def test_survey_answer_merged(self, registry):
        player = PlayerSnapshot(
            id="p", name="P",
            measurements=[_m("weight", 70, datetime(2024, 3, 1, 9, 0))],
            daily_surveys=[DailySurveyRecord(player_id="p", date=date(2024, 3, 1), answers={"sleep_hours": 8})],
        )
        composites = build_composites(player, registry)
        assert composites[0].values == {"weight": 70, "sleep": 8}

    def test_survey_day_without_linked_answers_creates_record(self, registry):
        player = PlayerSnapshot(id="p", name="P", daily_surveys=[
            DailySurveyRecord(player_id="p", date=date(2024, 3, 2), answers={"mood": "good"}),
        ])
        composites = build_composites(player, registry)
        assert len(composites) == 1
        assert composites[0].date == date(2024, 3, 2)
        assert composites[0].values == {}

    def test_none_answer_skipped(self, registry):
        player = PlayerSnapshot(id="p", name="P", daily_surveys=[
            DailySurveyRecord(player_id="p", date=date(2024, 3, 2), answers={"sleep_hours": None}),
        ])
        assert "sleep" not in build_composites(player, registry)[0]

    def test_calculated_metrics_do_not_see_each_other(self):
        """A formula over another calculated metric never resolves"""
        registry = MetricRegistry([
            MetricDefinition(id="a", name="A"),
            MetricDefinition(id="double", name="Double", input_type=MetricInputType.CALCULATED, formula="[A] * 2"),
            MetricDefinition(id="quad", name="Quad", input_type=MetricInputType.CALCULATED, formula="[Double] * 2"),
        ])
        player = PlayerSnapshot(id="p", name="P", measurements=[_m("a", 3, datetime(2024, 3, 1, 9, 0))])
        composites = build_composites(player, registry)

        assert composites[0].get("double") == 6.0
        assert "quad" not in composites[0]

    def test_rendered_by_display_name(self, registry):
        player = PlayerSnapshot(id="p", name="P", measurements=[
            _m("weight", 88, datetime(2024, 3, 1, 9, 0)),
            _m("height", 192, datetime(2024, 3, 1, 9, 0)),
        ])
        rendered = build_composites(player, registry)[0].to_dict(registry.names())
        assert rendered == {"date": "2024-03-01", "Weight": 88, "Height": 192, "BMI": 23.87}

    def test_deterministic(self, registry):
        player = PlayerSnapshot(id="p", name="P", measurements=[
            _m("weight", 70, datetime(2024, 3, 1, 9, 0)),
            _m("height", 175, datetime(2024, 3, 1, 9, 0)),
        ])
        assert build_composites(player, registry) == build_composites(player, registry)


class TestMetricHistory:
    """Numeric history used for radar axis maxima"""

    def test_skips_missing_and_text_values(self, registry):
        player = PlayerSnapshot(
            id="p", name="P",
            measurements=[_m("weight", 70, datetime(2024, 3, 1, 9, 0))],
            daily_surveys=[
                DailySurveyRecord(player_id="p", date=date(2024, 3, 2), answers={"sleep_hours": "8"}),
                DailySurveyRecord(player_id="p", date=date(2024, 3, 3), answers={"sleep_hours": 7}),
            ],
        )
        composites = build_composites(player, registry)
        assert metric_history(composites, "weight") == [70.0]
        assert metric_history(composites, "sleep") == [7.0]
