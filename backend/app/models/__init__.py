from app.models.match import Match
from app.models.player import Player
from app.models.round import Round
from app.models.tournament import Tournament, TournamentStatus

__all__ = [
    "Tournament",
    "TournamentStatus",
    "Round",
    "Match",
    "Player",
]
