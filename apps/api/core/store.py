"""
Record store dependencies.

Provides FastAPI dependencies for:
- Getting the request's record store (SQL session backed)
- Loading a player or failing with 404
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import NotFoundError
from services.record_store import Player, RecordStore, SqlRecordStore


def get_record_store(db: Session = Depends(get_db)) -> RecordStore:
    """
    Record store bound to the request's database session.

    Tests override this dependency with an InMemoryRecordStore.
    """
    return SqlRecordStore(db)


def require_player(store: RecordStore, player_id: str) -> Player:
    player = store.get_player(player_id)
    if player is None:
        raise NotFoundError("Player", player_id)
    return player
