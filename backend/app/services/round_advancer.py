"""
Round advancement: when a main-bracket round is fully resolved, create the next
round's pairings or finish the tournament.

Rounds 2..N already exist (empty) once the draw ran; this module only fills
them with matches. The repechage round is never treated as a "next round".
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlmodel import Session

from app.models.match import Match
from app.models.round import Round
from app.models.tournament import Tournament, TournamentStatus
from app.services.errors import ConflictError
from app.utils.bracket_queries import count_main_rounds, get_main_round, matches_in_round

logger = logging.getLogger(__name__)


def _loser_of(match: Match) -> Optional[int]:
    """Loser of a played match; None for byes or matches without a real opponent."""
    if match.is_bye or match.player2_id is None or match.winner_id is None:
        return None
    return match.player2_id if match.winner_id == match.player1_id else match.player1_id


def _has_progress(matches: List[Match]) -> bool:
    return any(
        m.player1_id is not None or m.player2_id is not None or m.winner_id is not None for m in matches
    )


def _finish_tournament(session: Session, tournament: Tournament, final_round: Round) -> Dict:
    """The championship always sits at position 1 of the last round."""
    championship = next(
        (m for m in matches_in_round(session, final_round.id) if m.position_in_bracket == 1),
        None,
    )
    if championship is None or championship.winner_id is None:
        raise ConflictError("Final round has no decided championship match")

    tournament.status = TournamentStatus.FINISHED
    tournament.finished_at = datetime.utcnow()
    tournament.champion_id = championship.winner_id
    tournament.runner_up_id = (
        championship.player2_id if championship.winner_id == championship.player1_id else championship.player1_id
    )
    session.add(tournament)
    session.flush()

    logger.info(
        "Tournament %d finished: champion=%s runner_up=%s",
        tournament.id,
        tournament.champion_id,
        tournament.runner_up_id,
    )
    return {"tournament_finished": True, "matches_created": 0}


def _third_place_pairings(tournament: Tournament, next_round: Round, semis: List[Match]) -> List[Match]:
    semi_a, semi_b = semis
    pairings = [
        Match(
            tournament_id=tournament.id,
            round_id=next_round.id,
            position_in_bracket=1,
            player1_id=semi_a.winner_id,
            player2_id=semi_b.winner_id,
        )
    ]
    loser_a = _loser_of(semi_a)
    loser_b = _loser_of(semi_b)
    if loser_a is not None and loser_b is not None:
        pairings.append(
            Match(
                tournament_id=tournament.id,
                round_id=next_round.id,
                position_in_bracket=2,
                player1_id=loser_a,
                player2_id=loser_b,
            )
        )
    return pairings


def _general_pairings(tournament: Tournament, next_round: Round, completed: List[Match]) -> List[Match]:
    """
    Pair winners of consecutive positions: (1, 2) -> 1, (3, 4) -> 2, ...

    An odd leftover winner gets a bye match, the only way a bye is created after
    Round 1.
    """
    now = datetime.utcnow()
    pairings: List[Match] = []
    for i in range(0, len(completed), 2):
        position = i // 2 + 1
        player1_id = completed[i].winner_id
        if i + 1 < len(completed):
            pairings.append(
                Match(
                    tournament_id=tournament.id,
                    round_id=next_round.id,
                    position_in_bracket=position,
                    player1_id=player1_id,
                    player2_id=completed[i + 1].winner_id,
                )
            )
        else:
            pairings.append(
                Match(
                    tournament_id=tournament.id,
                    round_id=next_round.id,
                    position_in_bracket=position,
                    player1_id=player1_id,
                    player2_id=None,
                    winner_id=player1_id,
                    is_bye=True,
                    finished_at=now,
                )
            )
    return pairings


def advance_round(session: Session, tournament: Tournament, completed_round: Round) -> Dict:
    """
    Generate the next main-bracket round from a fully resolved round.

    Cases, in order:
    1. No next round: this was the final; finish the tournament.
    2. Next round already has matches: advancement already ran -> ConflictError.
    3. Semifinal with third/fourth-place prizes and exactly 2 matches: final at
       position 1, third-place match at position 2 (when both losers are known).
    4. General consecutive pairing, odd leftover gets a bye.

    Must run inside the caller's transaction (tournament row already locked).

    Returns:
        Dict with tournament_finished and matches_created
    """
    next_round = get_main_round(session, tournament.id, completed_round.round_number + 1)
    if next_round is None:
        return _finish_tournament(session, tournament, completed_round)

    if _has_progress(matches_in_round(session, next_round.id)):
        raise ConflictError("Next round already started; results cannot be advanced twice")

    completed = matches_in_round(session, completed_round.id)
    unresolved = [m.id for m in completed if m.winner_id is None]
    if unresolved:
        raise ConflictError(f"Round {completed_round.round_number} is not complete")

    total_rounds = count_main_rounds(session, tournament.id)
    has_placement_prizes = (tournament.third_place_percentage or 0) > 0 or (tournament.fourth_place_percentage or 0) > 0
    is_semifinal = (
        completed_round.round_number == total_rounds - 1
        and next_round.round_number == total_rounds
        and len(completed) == 2
    )

    if has_placement_prizes and is_semifinal:
        new_matches = _third_place_pairings(tournament, next_round, completed)
    else:
        new_matches = _general_pairings(tournament, next_round, completed)

    session.add_all(new_matches)
    session.flush()

    logger.info(
        "Tournament %d: round %d complete, created %d match(es) in round %d",
        tournament.id,
        completed_round.round_number,
        len(new_matches),
        next_round.round_number,
    )
    return {"tournament_finished": False, "matches_created": len(new_matches)}
