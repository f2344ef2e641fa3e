"""
Rebuy: re-admit a Round-1-eliminated player into the repechage track.

The repechage round is a single parallel round, created by the first rebuy and
reused by every later one. Rebuyers are paired in arrival order; an odd one
waits in a pending match for the next rebuyer.
"""
import logging
from typing import Dict

from sqlmodel import Session

from app.database import transaction
from app.models.match import Match
from app.models.round import Round
from app.models.tournament import TournamentStatus
from app.services.errors import ConflictError
from app.services.ledger import charge, fee_for
from app.utils.bracket_queries import (
    find_first_round_loss,
    find_open_slot,
    find_repechage_round,
    get_owned_tournament,
    get_tournament_player,
    max_round_number,
    next_position,
)
from app.utils.perf_log import log_operation

logger = logging.getLogger(__name__)


def rebuy(session: Session, tournament_id: int, organizer_id: int, player_id: int) -> Dict:
    """
    Charge the rebuy fee and place the player in the repechage round.

    Returns:
        Dict with player, match and paired

    Raises:
        NotFoundError: tournament or player not found
        ConflictError: tournament not running, rebuy disabled, player not
            eliminated in Round 1, player already rebought
    """
    with log_operation("tournament", "rebuy", tournament_id=tournament_id, player_id=player_id):
        with transaction(session):
            tournament = get_owned_tournament(session, tournament_id, organizer_id)
            if tournament.status != TournamentStatus.RUNNING:
                raise ConflictError("Tournament is not running")
            if not tournament.allow_rebuy:
                raise ConflictError("Rebuy is not enabled for this tournament")

            player = get_tournament_player(session, tournament_id, player_id)
            if find_first_round_loss(session, tournament_id, player_id) is None:
                raise ConflictError("Only players eliminated in Round 1 may rebuy")
            if player.is_rebuy:
                raise ConflictError("Player has already used their rebuy")

            fee = fee_for(tournament.rebuy_fee, tournament.entry_fee)
            charge(tournament, fee)
            session.add(tournament)

            player.is_rebuy = True
            session.add(player)

            repechage = find_repechage_round(session, tournament_id)
            match = None
            if repechage is None:
                repechage = Round(
                    tournament_id=tournament_id,
                    round_number=max_round_number(session, tournament_id) + 1,
                    is_repechage=True,
                )
                session.add(repechage)
                session.flush()
                logger.info("Tournament %d: repechage round %d created", tournament_id, repechage.round_number)
            else:
                match = find_open_slot(session, repechage.id)

            if match is not None:
                match.player2_id = player_id
                paired = True
            else:
                match = Match(
                    tournament_id=tournament_id,
                    round_id=repechage.id,
                    position_in_bracket=next_position(session, repechage.id),
                    player1_id=player_id,
                )
                paired = False
            session.add(match)
            session.flush()

        logger.info(
            "Tournament %d: rebuy player %d -> repechage match %d, paired=%s, fee=%s",
            tournament_id,
            player_id,
            match.id,
            paired,
            fee,
        )
        return {"player": player, "match": match, "paired": paired}
