"""
Schedule Service

Team events are visible to every player; individual events only to the
players they list.
"""

from datetime import date
from typing import Iterable, List, Optional

from services.record_store import ScheduleEvent


def _time_key(event: ScheduleEvent):
    # Untimed events sort after timed ones on the same day
    return (event.date, event.time is None, event.time or "")


def is_visible_to(event: ScheduleEvent, player_id: str) -> bool:
    return event.is_team_event or player_id in event.player_ids


def filter_events(
    events: Iterable[ScheduleEvent],
    player_id: Optional[str] = None,
    on: Optional[date] = None,
) -> List[ScheduleEvent]:
    """
    Events visible to a player and/or on one day, sorted by date then time.

    Either filter may be omitted.
    """
    selected = [
        e for e in events
        if (player_id is None or is_visible_to(e, player_id))
        and (on is None or e.date == on)
    ]
    return sorted(selected, key=_time_key)


def events_for_player(events: Iterable[ScheduleEvent], player_id: str) -> List[ScheduleEvent]:
    return filter_events(events, player_id=player_id)


def events_on(events: Iterable[ScheduleEvent], on: date) -> List[ScheduleEvent]:
    return filter_events(events, on=on)
