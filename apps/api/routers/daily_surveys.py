"""
Daily Survey API Router

Wellness surveys submitted by players (one per day, resubmission replaces
the day's answers) and the question set conditioners maintain.
"""
from fastapi import APIRouter, Depends, status
from datetime import datetime, timezone, date
from typing import List, Optional
import logging
import time

from core.exceptions import ConflictError
from core.store import get_record_store, require_player
from schemas import (
    DailySurveyCreate,
    DailySurveyResponse,
    SurveyQuestionCreate,
    SurveyQuestionResponse,
    SurveyQuestionUpdate,
)
from services.metric_engine.models import DailySurveyRecord
from services.record_store import DuplicateRecordError, RecordStore, SurveyQuestion

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["daily_surveys"])


def _today() -> date:
    return datetime.now(timezone.utc).date()


# --- Surveys ---

@router.get("/players/{player_id}/daily-surveys", response_model=List[DailySurveyResponse])
def list_daily_surveys(player_id: str, store: RecordStore = Depends(get_record_store)):
    require_player(store, player_id)
    return store.list_daily_surveys(player_id)


@router.get("/players/{player_id}/daily-surveys/today", response_model=Optional[DailySurveyResponse])
def get_todays_survey(player_id: str, store: RecordStore = Depends(get_record_store)):
    """Today's submission, or null if the player has not filled it in yet."""
    require_player(store, player_id)
    return store.get_daily_survey(player_id, _today())


@router.post(
    "/players/{player_id}/daily-surveys",
    response_model=DailySurveyResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_daily_survey(player_id: str, payload: DailySurveyCreate, store: RecordStore = Depends(get_record_store)):
    """
    Submit a survey.

    A second submission for the same day replaces the first one's answers
    entirely (no merge).
    """
    require_player(store, player_id)
    survey = DailySurveyRecord(
        player_id=player_id,
        date=payload.date or _today(),
        answers=dict(payload.answers),
    )
    stored = store.upsert_daily_survey(survey)
    logger.info(
        "Daily survey submitted",
        extra={"extra_fields": {"player_id": player_id, "date": stored.date.isoformat()}},
    )
    return stored


# --- Survey questions ---

@router.get("/survey-questions", response_model=List[SurveyQuestionResponse])
def list_survey_questions(active_only: bool = False, store: RecordStore = Depends(get_record_store)):
    questions = store.list_survey_questions()
    if active_only:
        questions = [q for q in questions if q.is_active]
    return questions


@router.post("/survey-questions", response_model=SurveyQuestionResponse, status_code=status.HTTP_201_CREATED)
def create_survey_question(payload: SurveyQuestionCreate, store: RecordStore = Depends(get_record_store)):
    """Create a question; the answer key defaults to custom_<epoch ms>."""
    key = (payload.key or "").strip() or f"custom_{int(time.time() * 1000)}"
    try:
        return store.add_survey_question(SurveyQuestion(
            id="",
            label=payload.label,
            key=key,
            type=payload.type,
            is_active=payload.is_active,
        ))
    except DuplicateRecordError as e:
        raise ConflictError(str(e))


@router.patch("/survey-questions/{question_id}", response_model=SurveyQuestionResponse)
def update_survey_question(
    question_id: str,
    payload: SurveyQuestionUpdate,
    store: RecordStore = Depends(get_record_store),
):
    """Key is fixed once created; survey metrics point at it."""
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    return store.update_survey_question(question_id, changes)


@router.delete("/survey-questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_survey_question(question_id: str, store: RecordStore = Depends(get_record_store)):
    store.delete_survey_question(question_id)
