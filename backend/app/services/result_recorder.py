"""
Match result recording and score correction.

record_result() is the entry point of bracket progression: it validates and
persists one outcome, then hands a completed main-bracket round to the round
advancer. update_score() only corrects the scores of an already decided match.
"""
import logging
from datetime import datetime
from typing import Dict, Optional

from sqlmodel import Session

from app.database import transaction
from app.models.match import Match
from app.models.round import Round
from app.models.tournament import TournamentStatus
from app.services.errors import ConflictError, ValidationError
from app.services.round_advancer import advance_round
from app.utils.bracket_queries import (
    find_downstream_match,
    get_owned_tournament,
    get_tournament_match,
    round_has_unresolved_match,
)
from app.utils.perf_log import log_operation

logger = logging.getLogger(__name__)


def validate_scores(match: Match, winner_id: Optional[int], player1_score: int, player2_score: int) -> None:
    """Scores must be non-negative, not tied, and the higher score must belong to the winner."""
    if player1_score < 0 or player2_score < 0:
        raise ValidationError("Scores cannot be negative")
    if player1_score == player2_score:
        raise ValidationError("Scores cannot be tied")
    score_winner_id = match.player1_id if player1_score > player2_score else match.player2_id
    if score_winner_id != winner_id:
        raise ValidationError("Winner must be the player with the higher score")


def record_result(
    session: Session,
    tournament_id: int,
    match_id: int,
    organizer_id: int,
    winner_id: int,
    player1_score: Optional[int] = None,
    player2_score: Optional[int] = None,
) -> Dict:
    """
    Record the winner (and optionally the scores) of a match.

    When this resolves the last open match of a main-bracket round, the next
    round is generated (or the tournament finishes) in the same transaction.
    Completing the repechage round never advances or finishes anything.

    Raises:
        NotFoundError: tournament or match not found
        ForbiddenError: organizer does not own the tournament
        ConflictError: tournament not running, bye match, result already
            recorded, downstream match already decided
        ValidationError: winner not in match, only one score given, invalid scores
    """
    with log_operation("match", "record_result", tournament_id=tournament_id, match_id=match_id):
        with transaction(session):
            tournament = get_owned_tournament(session, tournament_id, organizer_id)
            if tournament.status != TournamentStatus.RUNNING:
                raise ConflictError("Tournament is not running")

            match = get_tournament_match(session, tournament_id, match_id)
            round_ = session.get(Round, match.round_id)
            round_number = round_.round_number

            if match.is_bye:
                raise ConflictError("Bye matches cannot be edited")
            if match.winner_id is not None:
                raise ConflictError("Result already recorded")
            if not round_.is_repechage:
                downstream = find_downstream_match(
                    session, tournament_id, round_number, match.position_in_bracket
                )
                if downstream is not None and downstream.winner_id is not None:
                    raise ConflictError("The next round has already been decided for this slot")
            # A pending match (no opponent yet) can only be won by player1
            if winner_id not in (match.player1_id, match.player2_id):
                raise ValidationError("Winner is not a player in this match")

            if (player1_score is None) != (player2_score is None):
                raise ValidationError("Both scores must be provided together")
            if player1_score is not None:
                validate_scores(match, winner_id, player1_score, player2_score)

            match.winner_id = winner_id
            match.player1_score = player1_score
            match.player2_score = player2_score
            match.finished_at = datetime.utcnow()
            session.add(match)
            session.flush()

            response = {
                "match_id": match.id,
                "winner_id": winner_id,
                "player1_score": match.player1_score,
                "player2_score": match.player2_score,
                "round_complete": False,
                "tournament_finished": False,
            }

            if round_has_unresolved_match(session, round_):
                logger.info("Tournament %d: match %d won by player %d", tournament_id, match_id, winner_id)
                return response

            response["round_complete"] = True
            if round_.is_repechage:
                logger.info("Tournament %d: repechage round complete", tournament_id)
                return response

            outcome = advance_round(session, tournament, round_)
            response["tournament_finished"] = outcome["tournament_finished"]

        logger.info(
            "Tournament %d: match %d won by player %d, round %d complete",
            tournament_id,
            match_id,
            winner_id,
            round_number,
        )
        return response


def update_score(
    session: Session,
    tournament_id: int,
    match_id: int,
    organizer_id: int,
    player1_score: int,
    player2_score: int,
) -> Dict:
    """Correct the scores of a decided match. Winner and bracket progression are untouched."""
    with log_operation("match", "update_score", tournament_id=tournament_id, match_id=match_id):
        with transaction(session):
            tournament = get_owned_tournament(session, tournament_id, organizer_id)
            if tournament.status == TournamentStatus.FINISHED:
                raise ConflictError("Tournament already finished; scores can no longer be edited")

            match = get_tournament_match(session, tournament_id, match_id)
            if match.is_bye:
                raise ConflictError("Bye matches have no score")
            if match.winner_id is None:
                raise ConflictError("Match has no winner yet")

            validate_scores(match, match.winner_id, player1_score, player2_score)

            match.player1_score = player1_score
            match.player2_score = player2_score
            session.add(match)

        return {"match_id": match_id, "player1_score": player1_score, "player2_score": player2_score}
