from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.tournament import Tournament


class Player(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str
    is_rebuy: bool = Field(default=False)  # set once by a rebuy; a second rebuy is rejected
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationship
    tournament: "Tournament" = Relationship(back_populates="players")
