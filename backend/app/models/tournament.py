from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.match import Match
    from app.models.player import Player
    from app.models.round import Round


class TournamentStatus(str, Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    organizer_id: int = Field(index=True)
    status: TournamentStatus = Field(default=TournamentStatus.DRAFT)

    # Money is stored as Numeric(12, 2); never float
    entry_fee: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    late_entry_fee: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    rebuy_fee: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    organizer_percentage: Decimal = Field(default=Decimal("0"), max_digits=5, decimal_places=2)
    first_place_percentage: Optional[Decimal] = Field(default=None, max_digits=5, decimal_places=2)
    second_place_percentage: Optional[Decimal] = Field(default=None, max_digits=5, decimal_places=2)
    third_place_percentage: Decimal = Field(default=Decimal("0"), max_digits=5, decimal_places=2)
    fourth_place_percentage: Decimal = Field(default=Decimal("0"), max_digits=5, decimal_places=2)
    total_collected: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    organizer_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    prize_pool: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)

    allow_late_entry: bool = Field(default=False)
    allow_rebuy: bool = Field(default=False)

    # Set when the final match resolves; cleared when undo reopens the tournament
    champion_id: Optional[int] = Field(default=None)
    runner_up_id: Optional[int] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = Field(default=None)
    finished_at: Optional[datetime] = Field(default=None)

    # Relationships
    rounds: List["Round"] = Relationship(back_populates="tournament")
    players: List["Player"] = Relationship(back_populates="tournament")
    matches: List["Match"] = Relationship(back_populates="tournament")
