"""
Schedule API Router

Team and individual events. Players see team events plus the individual
events that list them.
"""
from fastapi import APIRouter, Depends, Query, status
from datetime import date
from typing import List, Optional

from core.store import get_record_store
from schemas import ScheduleEventCreate, ScheduleEventResponse, ScheduleEventUpdate
from services.record_store import RecordStore, ScheduleEvent
from services.schedule import filter_events

router = APIRouter(prefix="/v1/schedule", tags=["schedule"])


@router.get("", response_model=List[ScheduleEventResponse])
def list_events(
    player_id: Optional[str] = Query(None, description="Only events visible to this player"),
    on: Optional[date] = Query(None, description="Only events on this day"),
    store: RecordStore = Depends(get_record_store),
):
    return filter_events(store.list_schedule_events(), player_id=player_id, on=on)


@router.post("", response_model=ScheduleEventResponse, status_code=status.HTTP_201_CREATED)
def create_event(payload: ScheduleEventCreate, store: RecordStore = Depends(get_record_store)):
    return store.add_schedule_event(ScheduleEvent(id="", **payload.model_dump()))


@router.patch("/{event_id}", response_model=ScheduleEventResponse)
def update_event(event_id: str, payload: ScheduleEventUpdate, store: RecordStore = Depends(get_record_store)):
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("is_team_event"):
        changes["player_ids"] = []
    return store.update_schedule_event(event_id, changes)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, store: RecordStore = Depends(get_record_store)):
    store.delete_schedule_event(event_id)
