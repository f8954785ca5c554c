"""
Tests for the radar snapshot
"""
import pytest
from datetime import datetime

from services.metric_engine.models import Measurement, MetricDefinition, MetricInputType, PlayerSnapshot
from services.metric_engine.radar import axis_maximum, build_radar_snapshot, latest_measurements
from services.metric_engine.registry import MetricRegistry
from services.metric_engine.timeseries import build_composites

BMI = "[Weight] / (([Height]/100) * ([Height]/100))"


def _m(metric_id, value, when, mid=None):
    return Measurement(id=mid or f"{metric_id}-{when.isoformat()}", metric_id=metric_id, value=value, date=when)


@pytest.fixture
def registry():
    return MetricRegistry([
        MetricDefinition(id="weight", name="Weight", unit="kg", show_in_radar=True),
        MetricDefinition(id="height", name="Height", unit="cm"),
        MetricDefinition(
            id="bmi", name="BMI", input_type=MetricInputType.CALCULATED, formula=BMI, show_in_radar=True,
        ),
        MetricDefinition(
            id="sleep", name="Sleep", input_type=MetricInputType.SURVEY,
            survey_question_key="sleep_hours", show_in_radar=True,
        ),
        MetricDefinition(id="jump", name="Jump", unit="cm", show_in_radar=True, is_active=False),
    ])


def _snapshot(player, registry):
    return build_radar_snapshot(player, registry, build_composites(player, registry))


class TestAxisMaximum:
    """Per-axis maximum"""

    def test_no_history_uses_headroom(self):
        assert axis_maximum([], 50) == pytest.approx(60)

    def test_history_maximum(self):
        assert axis_maximum([80, 75], 75) == 80

    def test_latest_above_history(self):
        assert axis_maximum([60, 65], 70) == 70

    def test_non_positive_latest_without_history(self):
        assert axis_maximum([], 0) == 1
        assert axis_maximum([], -3) == 1

    def test_custom_headroom(self):
        assert axis_maximum([], 50, headroom=1.5) == pytest.approx(75)


class TestRadarSnapshot:
    """Entries for active radar metrics in registry order"""

    def test_single_value_without_history(self, registry):
        """Latest 50 and no composite history gives an axis of 60"""
        player = PlayerSnapshot(id="p", name="P", measurements=[_m("weight", 50, datetime(2024, 3, 1, 9, 0))])
        entries = build_radar_snapshot(player, registry, [])
        weight = entries[0]

        assert weight.subject == "Weight"
        assert weight.value == 50
        assert weight.raw_value == 50
        assert weight.full_mark == pytest.approx(60)

    def test_history_sets_full_mark(self, registry):
        player = PlayerSnapshot(id="p", name="P", measurements=[
            _m("weight", 80, datetime(2024, 1, 1, 9, 0)),
            _m("weight", 75, datetime(2024, 3, 1, 9, 0)),
        ])
        weight = _snapshot(player, registry)[0]
        assert weight.value == 75
        assert weight.full_mark == 80

    def test_order_and_filtering(self, registry):
        """Inactive and non-radar metrics are left out"""
        entries = _snapshot(PlayerSnapshot(id="p", name="P"), registry)
        assert [e.subject for e in entries] == ["Weight", "BMI", "Sleep"]

    def test_missing_value_renders_empty_axis(self, registry):
        entries = _snapshot(PlayerSnapshot(id="p", name="P"), registry)
        for entry in entries:
            assert (entry.value, entry.raw_value, entry.full_mark) == (0, 0, 1)

    def test_calculated_uses_latest_values_across_dates(self, registry):
        """Height from January and Weight from March still give a BMI"""
        player = PlayerSnapshot(id="p", name="P", measurements=[
            _m("height", 175, datetime(2024, 1, 10, 9, 0)),
            _m("weight", 70, datetime(2024, 3, 1, 9, 0)),
        ])
        bmi = _snapshot(player, registry)[1]

        assert bmi.subject == "BMI"
        assert bmi.value == 22.86
        # No same-day BMI in the composites, so the headroom rule applies
        assert bmi.full_mark == pytest.approx(22.86 * 1.2)

    def test_survey_metric_has_no_latest_value(self, registry):
        player = PlayerSnapshot(id="p", name="P")
        sleep = _snapshot(player, registry)[2]
        assert sleep.subject == "Sleep"
        assert sleep.full_mark == 1


class TestLatestMeasurements:
    """Most recent measurement per metric"""

    def test_latest_by_date(self):
        latest = latest_measurements([
            _m("weight", 80, datetime(2024, 3, 1, 9, 0)),
            _m("weight", 75, datetime(2024, 1, 1, 9, 0)),
        ])
        assert latest["weight"].value == 80

    def test_equal_dates_later_in_list_wins(self):
        when = datetime(2024, 3, 1, 9, 0)
        latest = latest_measurements([_m("weight", 80, when, mid="a"), _m("weight", 81, when, mid="b")])
        assert latest["weight"].id == "b"
