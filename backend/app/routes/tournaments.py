from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator, model_validator
from sqlmodel import Session, select

from app.database import get_session
from app.models.tournament import Tournament, TournamentStatus
from app.services.bracket_view import fetch_bracket, tournament_statistics
from app.services.errors import BracketError
from app.services.ledger import calculate_financials
from app.utils.bracket_queries import get_owned_tournament
from app.utils.http_errors import to_http_exception
from app.utils.organizer import get_organizer_id

router = APIRouter()


def _check_percentage(v: Optional[Decimal], field: str) -> Optional[Decimal]:
    if v is not None and (v < 0 or v > 100):
        raise ValueError(f"{field} must be between 0 and 100")
    return v


class TournamentCreate(BaseModel):
    name: str
    entry_fee: Optional[Decimal] = None
    late_entry_fee: Optional[Decimal] = None
    rebuy_fee: Optional[Decimal] = None
    organizer_percentage: Decimal = Decimal("0")
    first_place_percentage: Optional[Decimal] = None
    second_place_percentage: Optional[Decimal] = None
    third_place_percentage: Decimal = Decimal("0")
    fourth_place_percentage: Decimal = Decimal("0")
    allow_late_entry: bool = False
    allow_rebuy: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("entry_fee", "late_entry_fee", "rebuy_fee")
    @classmethod
    def validate_fee(cls, v):
        if v is not None and v < 0:
            raise ValueError("fees must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_percentages(self):
        for field in (
            "organizer_percentage",
            "first_place_percentage",
            "second_place_percentage",
            "third_place_percentage",
            "fourth_place_percentage",
        ):
            _check_percentage(getattr(self, field), field)
        placements = [
            self.first_place_percentage,
            self.second_place_percentage,
            self.third_place_percentage,
            self.fourth_place_percentage,
        ]
        if sum(p for p in placements if p is not None) > 100:
            raise ValueError("placement percentages cannot exceed 100")
        return self


class FinancialsResponse(BaseModel):
    total_collected: Decimal
    organizer_amount: Decimal
    prize_pool: Decimal
    champion_prize: Decimal
    runner_up_prize: Decimal
    third_place_prize: Decimal
    fourth_place_prize: Decimal


class TournamentResponse(BaseModel):
    id: int
    name: str
    organizer_id: int
    status: TournamentStatus
    entry_fee: Optional[Decimal] = None
    late_entry_fee: Optional[Decimal] = None
    rebuy_fee: Optional[Decimal] = None
    organizer_percentage: Decimal
    third_place_percentage: Decimal
    fourth_place_percentage: Decimal
    allow_late_entry: bool
    allow_rebuy: bool
    champion_id: Optional[int] = None
    runner_up_id: Optional[int] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TournamentDetailResponse(TournamentResponse):
    financials: FinancialsResponse


def _detail(tournament: Tournament) -> TournamentDetailResponse:
    snapshot = calculate_financials(
        tournament.total_collected,
        tournament.organizer_percentage,
        champion_percentage=tournament.first_place_percentage,
        runner_up_percentage=tournament.second_place_percentage,
        third_place_percentage=tournament.third_place_percentage,
        fourth_place_percentage=tournament.fourth_place_percentage,
    )
    base = TournamentResponse.model_validate(tournament)
    return TournamentDetailResponse(
        **base.model_dump(),
        financials=FinancialsResponse(**asdict(snapshot)),
    )


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(
    session: Session = Depends(get_session),
    organizer_id: int = Depends(get_organizer_id),
):
    """List the caller's tournaments, newest first"""
    tournaments = session.exec(
        select(Tournament).where(Tournament.organizer_id == organizer_id).order_by(Tournament.created_at.desc())
    ).all()
    return tournaments


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(
    tournament_data: TournamentCreate,
    session: Session = Depends(get_session),
    organizer_id: int = Depends(get_organizer_id),
):
    """Create a new tournament in DRAFT"""
    tournament = Tournament(**tournament_data.model_dump(), organizer_id=organizer_id)
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments/{tournament_id}", response_model=TournamentDetailResponse)
def get_tournament(
    tournament_id: int,
    session: Session = Depends(get_session),
    organizer_id: int = Depends(get_organizer_id),
):
    """Get a tournament with its financial snapshot"""
    try:
        tournament = get_owned_tournament(session, tournament_id, organizer_id, lock=False)
    except BracketError as e:
        raise to_http_exception(e)
    return _detail(tournament)


@router.get("/tournaments/{tournament_id}/bracket")
def get_bracket(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Public read-only bracket: rounds, matches, champion"""
    try:
        return fetch_bracket(session, tournament_id)
    except BracketError as e:
        raise to_http_exception(e)


@router.get("/tournaments/{tournament_id}/statistics")
def get_statistics(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Public read-only match statistics. NotFoundError is answered by the app-level handler."""
    return tournament_statistics(session, tournament_id)
