"""
Mid-event admissions: late entry into Round 1 and rebuy into the repechage round.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlmodel import Session

from app.database import get_session
from app.models.match import Match
from app.models.player import Player
from app.services.errors import BracketError
from app.services.late_entry import late_entry
from app.services.rebuy import rebuy
from app.utils.http_errors import to_http_exception
from app.utils.organizer import get_organizer_id

router = APIRouter()


class LateEntryRequest(BaseModel):
    player_name: str
    force: bool = False

    @field_validator("player_name")
    @classmethod
    def validate_player_name(cls, v):
        if not v or not v.strip():
            raise ValueError("player_name is required")
        return v.strip()


class RebuyRequest(BaseModel):
    player_id: int


class PlayerState(BaseModel):
    id: int
    tournament_id: int
    name: str
    is_rebuy: bool

    class Config:
        from_attributes = True


class MatchState(BaseModel):
    id: int
    round_id: int
    position_in_bracket: int
    player1_id: int
    player2_id: Optional[int] = None
    winner_id: Optional[int] = None
    is_bye: bool
    finished_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LateEntryResponse(BaseModel):
    is_duplicate: bool
    existing_name: Optional[str] = None
    player: Optional[PlayerState] = None
    match: Optional[MatchState] = None
    paired: Optional[bool] = None


class RebuyResponse(BaseModel):
    player: PlayerState
    match: MatchState
    paired: bool


def _player_state(p: Player) -> PlayerState:
    return PlayerState.model_validate(p)


def _match_state(m: Match) -> MatchState:
    return MatchState.model_validate(m)


@router.post("/tournaments/{tournament_id}/late-entry", response_model=LateEntryResponse)
def post_late_entry(
    tournament_id: int,
    payload: LateEntryRequest,
    session: Session = Depends(get_session),
    organizer_id: int = Depends(get_organizer_id),
) -> LateEntryResponse:
    """Admit a new player while Round 1 is still open. Duplicate names need force=true."""
    try:
        result = late_entry(session, tournament_id, organizer_id, payload.player_name, force=payload.force)
    except BracketError as e:
        raise to_http_exception(e)

    if result["is_duplicate"]:
        return LateEntryResponse(is_duplicate=True, existing_name=result["existing_name"])
    return LateEntryResponse(
        is_duplicate=False,
        player=_player_state(result["player"]),
        match=_match_state(result["match"]),
        paired=result["paired"],
    )


@router.post("/tournaments/{tournament_id}/rebuy", response_model=RebuyResponse)
def post_rebuy(
    tournament_id: int,
    payload: RebuyRequest,
    session: Session = Depends(get_session),
    organizer_id: int = Depends(get_organizer_id),
) -> RebuyResponse:
    """Re-admit a Round-1-eliminated player into the repechage round (once per player)."""
    try:
        result = rebuy(session, tournament_id, organizer_id, payload.player_id)
    except BracketError as e:
        raise to_http_exception(e)
    return RebuyResponse(
        player=_player_state(result["player"]),
        match=_match_state(result["match"]),
        paired=result["paired"],
    )
