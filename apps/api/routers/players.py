"""
Players API Router

Player profiles plus the per-player records: measurements, notes and
injuries.
"""
from fastapi import APIRouter, Depends, Query, status
from datetime import datetime, timezone
from typing import List, Optional

from core.exceptions import NotFoundError, ValidationError
from core.store import get_record_store, require_player
from schemas import (
    InjuryResponse,
    InjuryStatusUpdate,
    InjuryUpdate,
    MeasurementBatchCreate,
    MeasurementResponse,
    MeasurementUpdate,
    NoteCreate,
    NoteResponse,
    NoteUpdate,
    PlayerCreate,
    PlayerResponse,
    PlayerUpdate,
)
from services.injury_tracking import is_injured, set_injury_status
from services.metric_engine.models import Measurement
from services.record_store import Injury, Note, Player, RecordStore

router = APIRouter(prefix="/v1", tags=["players"])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _player_response(store: RecordStore, player: Player) -> PlayerResponse:
    return PlayerResponse(
        id=player.id,
        name=player.name,
        position=player.position,
        email=player.email,
        phone=player.phone,
        birth_date=player.birth_date,
        avatar_url=player.avatar_url,
        age=player.age(),
        is_injured=is_injured(store, player.id),
    )


# --- Players ---

@router.get("/players", response_model=List[PlayerResponse])
def list_players(store: RecordStore = Depends(get_record_store)):
    return [_player_response(store, p) for p in store.list_players()]


@router.post("/players", response_model=PlayerResponse, status_code=status.HTTP_201_CREATED)
def create_player(payload: PlayerCreate, store: RecordStore = Depends(get_record_store)):
    player = store.add_player(Player(id="", **payload.model_dump()))
    return _player_response(store, player)


@router.get("/players/{player_id}", response_model=PlayerResponse)
def get_player(player_id: str, store: RecordStore = Depends(get_record_store)):
    return _player_response(store, require_player(store, player_id))


@router.patch("/players/{player_id}", response_model=PlayerResponse)
def update_player(player_id: str, payload: PlayerUpdate, store: RecordStore = Depends(get_record_store)):
    require_player(store, player_id)
    player = store.update_player(player_id, payload.model_dump(exclude_unset=True))
    return _player_response(store, player)


@router.delete("/players/{player_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_player(player_id: str, store: RecordStore = Depends(get_record_store)):
    """Delete a player with all measurements, surveys, injuries and notes."""
    require_player(store, player_id)
    store.delete_player(player_id)


# --- Measurements ---

@router.get("/players/{player_id}/measurements", response_model=List[MeasurementResponse])
def list_measurements(
    player_id: str,
    metric_id: Optional[str] = Query(None, description="Only this metric"),
    store: RecordStore = Depends(get_record_store),
):
    require_player(store, player_id)
    measurements = store.list_measurements(player_id)
    if metric_id:
        measurements = [m for m in measurements if m.metric_id == metric_id]
    return measurements


@router.post(
    "/players/{player_id}/measurements",
    response_model=List[MeasurementResponse],
    status_code=status.HTTP_201_CREATED,
)
def add_measurements(
    player_id: str,
    payload: MeasurementBatchCreate,
    store: RecordStore = Depends(get_record_store),
):
    """
    Record one session's measurements.

    Only manual metrics accept measurements; calculated and survey values
    are derived.
    """
    require_player(store, player_id)
    for item in payload.measurements:
        metric = store.get_metric(item.metric_id)
        if metric is None:
            raise ValidationError(f"Unknown metric: {item.metric_id}", field="metric_id")
        if not metric.is_manual:
            raise ValidationError(f"Metric {metric.name} does not accept manual values", field="metric_id")

    return store.add_measurements(player_id, [
        Measurement(id="", player_id=player_id, metric_id=item.metric_id, value=item.value, date=item.date)
        for item in payload.measurements
    ])


def _require_measurement(store: RecordStore, player_id: str, measurement_id: str) -> Measurement:
    require_player(store, player_id)
    for measurement in store.list_measurements(player_id):
        if measurement.id == measurement_id:
            return measurement
    raise NotFoundError("Measurement", measurement_id)


@router.patch("/players/{player_id}/measurements/{measurement_id}", response_model=MeasurementResponse)
def update_measurement(
    player_id: str,
    measurement_id: str,
    payload: MeasurementUpdate,
    store: RecordStore = Depends(get_record_store),
):
    _require_measurement(store, player_id, measurement_id)
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    return store.update_measurement(measurement_id, changes)


@router.delete("/players/{player_id}/measurements/{measurement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_measurement(player_id: str, measurement_id: str, store: RecordStore = Depends(get_record_store)):
    _require_measurement(store, player_id, measurement_id)
    store.delete_measurement(measurement_id)


# --- Notes ---

@router.get("/players/{player_id}/notes", response_model=List[NoteResponse])
def list_notes(
    player_id: str,
    public_only: bool = Query(False, description="Only notes visible to the player"),
    store: RecordStore = Depends(get_record_store),
):
    require_player(store, player_id)
    notes = store.list_notes(player_id)
    if public_only:
        notes = [n for n in notes if n.is_public]
    return notes


@router.post("/players/{player_id}/notes", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
def create_note(player_id: str, payload: NoteCreate, store: RecordStore = Depends(get_record_store)):
    require_player(store, player_id)
    return store.add_note(Note(
        id="",
        player_id=player_id,
        author_id=payload.author_id,
        text=payload.text,
        date=payload.date or _utcnow(),
        is_public=payload.is_public,
    ))


@router.patch("/notes/{note_id}", response_model=NoteResponse)
def update_note(note_id: str, payload: NoteUpdate, store: RecordStore = Depends(get_record_store)):
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    return store.update_note(note_id, changes)


@router.delete("/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_note(note_id: str, store: RecordStore = Depends(get_record_store)):
    store.delete_note(note_id)


# --- Injuries ---

@router.get("/players/{player_id}/injuries", response_model=List[InjuryResponse])
def list_injuries(player_id: str, store: RecordStore = Depends(get_record_store)):
    """Injury history, oldest first; at most one entry is current."""
    require_player(store, player_id)
    return store.list_injuries(player_id)


@router.put("/players/{player_id}/injury", response_model=Optional[InjuryResponse])
def set_injury(player_id: str, payload: InjuryStatusUpdate, store: RecordStore = Depends(get_record_store)):
    """
    Replace the player's injury status.

    The open injury (if any) is closed with today's recovery date. Sending
    {"injury": null} marks the player fit.
    """
    require_player(store, player_id)
    new_injury = None
    if payload.injury is not None:
        new_injury = Injury(
            id="",
            player_id=player_id,
            description=payload.injury.description,
            estimated_recovery=payload.injury.estimated_recovery,
            date=payload.injury.date,
        )
    return set_injury_status(store, player_id, new_injury, now=_utcnow())


def _require_injury(store: RecordStore, player_id: str, injury_id: str) -> Injury:
    require_player(store, player_id)
    for injury in store.list_injuries(player_id):
        if injury.id == injury_id:
            return injury
    raise NotFoundError("Injury", injury_id)


@router.patch("/players/{player_id}/injuries/{injury_id}", response_model=InjuryResponse)
def update_injury(
    player_id: str,
    injury_id: str,
    payload: InjuryUpdate,
    store: RecordStore = Depends(get_record_store),
):
    """Correct a history entry (description, dates)."""
    _require_injury(store, player_id, injury_id)
    return store.update_injury(injury_id, payload.model_dump(exclude_unset=True))


@router.delete("/players/{player_id}/injuries/{injury_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_injury(player_id: str, injury_id: str, store: RecordStore = Depends(get_record_store)):
    _require_injury(store, player_id, injury_id)
    store.delete_injury(injury_id)
