"""
Player Overview Service

Loads the per-player inputs for the metric engine from the record store
and builds the conditioner's dashboard summary.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple

from services.metric_engine.models import PlayerSnapshot
from services.record_store import Injury, Player, RecordStore, ScheduleEvent
from services.injury_tracking import current_injury
from services.schedule import events_on


def _snapshot(store: RecordStore, player: Player) -> PlayerSnapshot:
    return PlayerSnapshot(
        id=player.id,
        name=player.name,
        position=player.position,
        measurements=store.list_measurements(player.id),
        daily_surveys=store.list_daily_surveys(player.id),
    )


def load_player_snapshot(store: RecordStore, player_id: str) -> Optional[PlayerSnapshot]:
    """Player with measurements and surveys, or None if unknown."""
    player = store.get_player(player_id)
    if player is None:
        return None
    return _snapshot(store, player)


def load_all_snapshots(store: RecordStore) -> List[PlayerSnapshot]:
    """Every player, in store order (leaderboard tie order)."""
    return [_snapshot(store, p) for p in store.list_players()]


@dataclass
class DashboardSummary:
    total_players: int
    injured_players: List[Tuple[Player, Injury]] = field(default_factory=list)
    todays_events: List[ScheduleEvent] = field(default_factory=list)


def dashboard_summary(store: RecordStore, today: Optional[date] = None) -> DashboardSummary:
    """Player count, currently injured players and the day's schedule."""
    today = today or date.today()
    players = store.list_players()

    injured = []
    for player in players:
        injury = current_injury(store, player.id)
        if injury is not None:
            injured.append((player, injury))

    return DashboardSummary(
        total_players=len(players),
        injured_players=injured,
        todays_events=events_on(store.list_schedule_events(), today),
    )
