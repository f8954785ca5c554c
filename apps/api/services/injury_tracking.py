"""
Injury Tracking Service

A player has at most one current injury plus a history. Setting a new
injury status closes the current one (recovery date = now) before the
new one, if any, becomes current. Clearing the status only closes.
"""

from datetime import datetime, timezone
from typing import List, Optional
import logging

from services.record_store import Injury, RecordNotFoundError, RecordStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def current_injury(store: RecordStore, player_id: str) -> Optional[Injury]:
    """The player's open injury, if any (latest one wins if data is inconsistent)."""
    current = [i for i in store.list_injuries(player_id) if i.is_current]
    return current[-1] if current else None


def is_injured(store: RecordStore, player_id: str) -> bool:
    return current_injury(store, player_id) is not None


def set_injury_status(
    store: RecordStore,
    player_id: str,
    new_injury: Optional[Injury],
    now: Optional[datetime] = None,
) -> Optional[Injury]:
    """
    Replace the player's injury status.

    Args:
        store: Record store
        player_id: Player whose status changes
        new_injury: The new current injury, or None to mark the player fit
        now: Timestamp used to close the open injury (default: utcnow)

    Returns:
        The new current injury, or None when cleared

    Raises:
        RecordNotFoundError: If the player does not exist
    """
    if store.get_player(player_id) is None:
        raise RecordNotFoundError("Player", player_id)
    now = now or _utcnow()

    for open_injury in (i for i in store.list_injuries(player_id) if i.is_current):
        store.update_injury(open_injury.id, {"is_current": False, "recovery_date": now})
        logger.info(
            "Closed injury",
            extra={"extra_fields": {"player_id": player_id, "injury_id": open_injury.id}},
        )

    if new_injury is None:
        return None

    created = store.add_injury(Injury(
        id=new_injury.id,
        player_id=player_id,
        description=new_injury.description,
        estimated_recovery=new_injury.estimated_recovery,
        date=new_injury.date or now,
        recovery_date=None,
        is_current=True,
    ))
    logger.info(
        "Recorded injury",
        extra={"extra_fields": {"player_id": player_id, "injury_id": created.id}},
    )
    return created


def injured_player_ids(store: RecordStore, player_ids: List[str]) -> List[str]:
    return [pid for pid in player_ids if is_injured(store, pid)]
