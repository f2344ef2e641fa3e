"""
Undo the most recent match result.

Reverting a result also removes the pairings the round advancer generated from
it, and reopens a finished tournament. Undo is refused once any match of the
generated round has actually been played.
"""
import logging
from typing import Dict

from sqlmodel import Session

from app.database import transaction
from app.models.round import Round
from app.models.tournament import TournamentStatus
from app.services.errors import ConflictError
from app.utils.bracket_queries import find_latest_resolved_match, get_main_round, get_owned_tournament, matches_in_round
from app.utils.perf_log import log_operation

logger = logging.getLogger(__name__)


def undo_last_result(session: Session, tournament_id: int, organizer_id: int) -> Dict:
    """
    Revert the latest non-bye result of a tournament.

    Returns:
        Dict with match_id, winner_id (the reverted winner), round_number and
        tournament_reopened
    """
    with log_operation("match", "undo_last_result", tournament_id=tournament_id):
        with transaction(session):
            tournament = get_owned_tournament(session, tournament_id, organizer_id)
            if tournament.status not in (TournamentStatus.RUNNING, TournamentStatus.FINISHED):
                raise ConflictError("Tournament is not running")

            latest = find_latest_resolved_match(session, tournament_id)
            if latest is None:
                raise ConflictError("Nothing to undo")

            round_ = session.get(Round, latest.round_id)
            reverted_winner_id = latest.winner_id
            removed = 0

            if not round_.is_repechage:
                next_round = get_main_round(session, tournament_id, round_.round_number + 1)
                if next_round is not None:
                    downstream = matches_in_round(session, next_round.id)
                    if any(m.winner_id is not None and not m.is_bye for m in downstream):
                        raise ConflictError("Cannot undo: the next round already has results")
                    if downstream:
                        for m in downstream:
                            session.delete(m)
                        session.flush()
                        removed = len(downstream)

            tournament_reopened = tournament.status == TournamentStatus.FINISHED
            if tournament_reopened:
                tournament.status = TournamentStatus.RUNNING
                tournament.finished_at = None
                tournament.champion_id = None
                tournament.runner_up_id = None
                session.add(tournament)

            latest.winner_id = None
            latest.finished_at = None
            session.add(latest)

            result = {
                "match_id": latest.id,
                "winner_id": reverted_winner_id,
                "round_number": round_.round_number,
                "tournament_reopened": tournament_reopened,
            }

        logger.info(
            "Tournament %d: undid match %d (round %d), removed %d generated match(es), reopened=%s",
            tournament_id,
            result["match_id"],
            result["round_number"],
            removed,
            tournament_reopened,
        )
        return result
