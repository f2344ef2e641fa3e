"""
Match results: record a winner, correct scores, undo the last result.
Each call runs as one transaction in the service layer.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, model_validator
from sqlmodel import Session

from app.database import get_session
from app.services.errors import BracketError
from app.services.result_recorder import record_result, update_score
from app.services.undo_service import undo_last_result
from app.utils.http_errors import to_http_exception
from app.utils.organizer import get_organizer_id

router = APIRouter()


class RecordResultRequest(BaseModel):
    winner_id: int
    player1_score: Optional[int] = None
    player2_score: Optional[int] = None

    @model_validator(mode="after")
    def validate_score_pair(self):
        if (self.player1_score is None) != (self.player2_score is None):
            raise ValueError("player1_score and player2_score must be provided together")
        return self


class RecordResultResponse(BaseModel):
    match_id: int
    winner_id: int
    player1_score: Optional[int] = None
    player2_score: Optional[int] = None
    round_complete: bool
    tournament_finished: bool


class UpdateScoreRequest(BaseModel):
    player1_score: int
    player2_score: int


class UpdateScoreResponse(BaseModel):
    match_id: int
    player1_score: int
    player2_score: int


class UndoResponse(BaseModel):
    match_id: int
    winner_id: int
    round_number: int
    tournament_reopened: bool


@router.post(
    "/tournaments/{tournament_id}/matches/{match_id}/result",
    response_model=RecordResultResponse,
)
def post_match_result(
    tournament_id: int,
    match_id: int,
    payload: RecordResultRequest,
    session: Session = Depends(get_session),
    organizer_id: int = Depends(get_organizer_id),
) -> RecordResultResponse:
    """Record a match winner. Completing a round generates the next one or finishes the tournament."""
    try:
        result = record_result(
            session,
            tournament_id,
            match_id,
            organizer_id,
            winner_id=payload.winner_id,
            player1_score=payload.player1_score,
            player2_score=payload.player2_score,
        )
    except BracketError as e:
        raise to_http_exception(e)
    return RecordResultResponse(**result)


@router.patch(
    "/tournaments/{tournament_id}/matches/{match_id}/score",
    response_model=UpdateScoreResponse,
)
def patch_match_score(
    tournament_id: int,
    match_id: int,
    payload: UpdateScoreRequest,
    session: Session = Depends(get_session),
    organizer_id: int = Depends(get_organizer_id),
) -> UpdateScoreResponse:
    """Correct scores of a decided match without touching the winner."""
    try:
        result = update_score(
            session,
            tournament_id,
            match_id,
            organizer_id,
            player1_score=payload.player1_score,
            player2_score=payload.player2_score,
        )
    except BracketError as e:
        raise to_http_exception(e)
    return UpdateScoreResponse(**result)


@router.post("/tournaments/{tournament_id}/undo", response_model=UndoResponse)
def post_undo(
    tournament_id: int,
    session: Session = Depends(get_session),
    organizer_id: int = Depends(get_organizer_id),
) -> UndoResponse:
    """Revert the most recent result, removing any round it generated."""
    try:
        result = undo_last_result(session, tournament_id, organizer_id)
    except BracketError as e:
        raise to_http_exception(e)
    return UndoResponse(**result)
