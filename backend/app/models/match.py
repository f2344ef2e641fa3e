from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.round import Round
    from app.models.tournament import Tournament


class Match(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("round_id", "position_in_bracket", name="uq_round_position"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    round_id: int = Field(foreign_key="round.id", index=True)
    position_in_bracket: int  # 1-based, contiguous within a round

    player1_id: int = Field(foreign_key="player.id")
    # Null means "awaiting opponent" (late entry / repechage) or a bye
    player2_id: Optional[int] = Field(default=None, foreign_key="player.id")
    winner_id: Optional[int] = Field(default=None, foreign_key="player.id")
    is_bye: bool = Field(default=False)  # implies player2_id is None and winner_id == player1_id

    player1_score: Optional[int] = Field(default=None)
    player2_score: Optional[int] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = Field(default=None)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")
    round: "Round" = Relationship(back_populates="matches")
