"""
Late entry: admit a new player into Round 1 while it is still being played.

Pairing order for the newcomer:
  (a) a Round-1 match waiting for an opponent  -> paired
  (b) a Round-1 bye, converted into a real match -> paired
  (c) a new pending match at the next position -> waits for the next entrant

A waiting player is never auto-advanced.
"""
import logging
from typing import Dict

from sqlmodel import Session

from app.database import transaction
from app.models.match import Match
from app.models.player import Player
from app.models.tournament import TournamentStatus
from app.services.errors import ConflictError, ValidationError
from app.services.ledger import charge, fee_for
from app.utils.bracket_queries import (
    find_bye_match,
    find_open_first_round,
    find_open_slot,
    find_player_by_name,
    get_owned_tournament,
    next_position,
)
from app.utils.perf_log import log_operation

logger = logging.getLogger(__name__)


def late_entry(session: Session, tournament_id: int, organizer_id: int, player_name: str, force: bool = False) -> Dict:
    """
    Register a late entrant and place them in Round 1.

    Returns either {"is_duplicate": True, "existing_name": ...} (nothing
    written) or {"is_duplicate": False, "player": Player, "match": Match,
    "paired": bool}.

    Raises:
        ValidationError: empty name
        ConflictError: tournament not running, late entry disabled, Round 1 closed
    """
    name = (player_name or "").strip()
    if not name:
        raise ValidationError("Player name is required")

    with log_operation("tournament", "late_entry", tournament_id=tournament_id):
        with transaction(session):
            tournament = get_owned_tournament(session, tournament_id, organizer_id)
            if tournament.status != TournamentStatus.RUNNING:
                raise ConflictError("Tournament is not running")
            if not tournament.allow_late_entry:
                raise ConflictError("Late entry is not enabled for this tournament")

            first_round = find_open_first_round(session, tournament_id)
            if first_round is None:
                raise ConflictError("Late entry is closed: Round 1 is complete")

            if not force:
                existing = find_player_by_name(session, tournament_id, name)
                if existing is not None:
                    return {"is_duplicate": True, "existing_name": existing.name}

            fee = fee_for(tournament.late_entry_fee, tournament.entry_fee)
            charge(tournament, fee)
            session.add(tournament)

            player = Player(tournament_id=tournament_id, name=name)
            session.add(player)
            session.flush()

            match = find_open_slot(session, first_round.id) or find_bye_match(session, first_round.id)
            if match is not None:
                match.player2_id = player.id
                match.is_bye = False
                match.winner_id = None
                match.finished_at = None
                paired = True
            else:
                match = Match(
                    tournament_id=tournament_id,
                    round_id=first_round.id,
                    position_in_bracket=next_position(session, first_round.id),
                    player1_id=player.id,
                )
                paired = False
            session.add(match)
            session.flush()

        logger.info(
            "Tournament %d: late entry '%s' (player %d) -> match %d, paired=%s, fee=%s",
            tournament_id,
            name,
            player.id,
            match.id,
            paired,
            fee,
        )
        return {"is_duplicate": False, "player": player, "match": match, "paired": paired}
