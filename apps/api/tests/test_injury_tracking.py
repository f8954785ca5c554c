"""
Tests for injury status changes and the dashboard summary
"""
import pytest
from datetime import date, datetime

from services.injury_tracking import current_injury, is_injured, set_injury_status
from services.player_overview import dashboard_summary, load_all_snapshots, load_player_snapshot
from services.record_store import Injury, Player, RecordNotFoundError, ScheduleEvent


def _injury(description, when=None):
    return Injury(id="", player_id="", description=description, estimated_recovery="2 weeks", date=when)


class TestSetInjuryStatus:
    def test_new_injury_becomes_current(self, store, player):
        created = set_injury_status(store, player.id, _injury("Shoulder strain", datetime(2024, 6, 1)))

        assert created.is_current
        assert created.player_id == player.id
        assert current_injury(store, player.id).id == created.id
        assert is_injured(store, player.id)

    def test_replacing_closes_previous(self, store, player):
        first = set_injury_status(store, player.id, _injury("Ankle sprain", datetime(2024, 5, 1)))
        now = datetime(2024, 6, 1, 12, 0)
        second = set_injury_status(store, player.id, _injury("Shoulder strain"), now=now)

        history = {i.id: i for i in store.list_injuries(player.id)}
        assert history[first.id].is_current is False
        assert history[first.id].recovery_date == now
        assert history[second.id].is_current is True
        assert history[second.id].date == now  # no date given: recorded now

    def test_clearing_marks_fit(self, store, player):
        set_injury_status(store, player.id, _injury("Knee"))
        assert set_injury_status(store, player.id, None) is None
        assert not is_injured(store, player.id)
        assert len(store.list_injuries(player.id)) == 1

    def test_clearing_when_fit_is_noop(self, store, player):
        assert set_injury_status(store, player.id, None) is None
        assert store.list_injuries(player.id) == []

    def test_unknown_player(self, store):
        with pytest.raises(RecordNotFoundError):
            set_injury_status(store, "ghost", _injury("Knee"))


class TestPlayerOverview:
    def test_snapshot(self, store, player, bmi_metrics):
        from conftest import add_measurement

        weight, _, _ = bmi_metrics
        add_measurement(store, player.id, weight.id, 70, date(2024, 3, 1))
        snapshot = load_player_snapshot(store, player.id)

        assert snapshot.name == player.name
        assert [m.value for m in snapshot.measurements] == [70]

    def test_unknown_player(self, store):
        assert load_player_snapshot(store, "ghost") is None

    def test_all_snapshots_in_store_order(self, store):
        for name in ("A", "B", "C"):
            store.add_player(Player(id="", name=name))
        assert [s.name for s in load_all_snapshots(store)] == ["A", "B", "C"]

    def test_dashboard_summary(self, store, player):
        store.add_player(Player(id="", name="Fit Player"))
        set_injury_status(store, player.id, _injury("Back"))
        today = date(2024, 6, 3)
        store.add_schedule_event(ScheduleEvent(id="", date=today, title="Match", time="19:00"))
        store.add_schedule_event(ScheduleEvent(id="", date=today, title="Breakfast", time="08:00"))
        store.add_schedule_event(ScheduleEvent(id="", date=date(2024, 6, 4), title="Recovery"))

        summary = dashboard_summary(store, today=today)

        assert summary.total_players == 2
        assert [(p.id, i.description) for p, i in summary.injured_players] == [(player.id, "Back")]
        assert [e.title for e in summary.todays_events] == ["Breakfast", "Match"]


class TestPlayerAge:
    def test_age_before_birthday(self):
        assert Player(id="p", name="P", birth_date=date(2000, 5, 17)).age(on=date(2024, 5, 16)) == 23

    def test_age_on_birthday(self):
        assert Player(id="p", name="P", birth_date=date(2000, 5, 17)).age(on=date(2024, 5, 17)) == 24

    def test_unknown_birth_date(self):
        assert Player(id="p", name="P").age() is None
