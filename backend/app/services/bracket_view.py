"""
Read-only bracket and statistics views.

Nothing here mutates state; dashboards and public pages read the engine's
rounds and matches through these functions.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from app.models.match import Match
from app.models.player import Player
from app.models.round import Round
from app.models.tournament import Tournament, TournamentStatus
from app.services.errors import NotFoundError

ROUND_LABELS = {
    0: "Final",
    1: "Semifinal",
    2: "Quarterfinal",
    3: "Round of 16",
}
REPECHAGE_LABEL = "Repechage"


def round_label(round_number: int, total_rounds: int) -> str:
    return ROUND_LABELS.get(total_rounds - round_number, f"Round {round_number}")


def _player_ref(players: Dict[int, Player], player_id: Optional[int]) -> Optional[Dict[str, Any]]:
    if player_id is None or player_id not in players:
        return None
    return {"id": player_id, "name": players[player_id].name}


def _get_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise NotFoundError("Tournament not found")
    return tournament


def _players_by_id(session: Session, tournament_id: int) -> Dict[int, Player]:
    players = session.exec(select(Player).where(Player.tournament_id == tournament_id)).all()
    return {p.id: p for p in players}


def fetch_bracket(session: Session, tournament_id: int) -> Dict[str, Any]:
    """Rounds in order with their matches by position. total_rounds counts main rounds only."""
    tournament = _get_tournament(session, tournament_id)
    players = _players_by_id(session, tournament_id)

    rounds = session.exec(
        select(Round).where(Round.tournament_id == tournament_id).order_by(Round.round_number)
    ).all()
    total_rounds = sum(1 for r in rounds if not r.is_repechage)

    matches = session.exec(
        select(Match).where(Match.tournament_id == tournament_id).order_by(Match.position_in_bracket)
    ).all()
    by_round: Dict[int, List[Match]] = {}
    for m in matches:
        by_round.setdefault(m.round_id, []).append(m)

    round_views = []
    for r in rounds:
        round_views.append(
            {
                "id": r.id,
                "round_number": r.round_number,
                "is_repechage": r.is_repechage,
                "label": REPECHAGE_LABEL if r.is_repechage else round_label(r.round_number, total_rounds),
                "matches": [
                    {
                        "id": m.id,
                        "position_in_bracket": m.position_in_bracket,
                        "player1": _player_ref(players, m.player1_id),
                        "player2": _player_ref(players, m.player2_id),
                        "winner": _player_ref(players, m.winner_id),
                        "player1_score": m.player1_score,
                        "player2_score": m.player2_score,
                        "is_bye": m.is_bye,
                        "finished_at": m.finished_at,
                    }
                    for m in by_round.get(r.id, [])
                ],
            }
        )

    champion = None
    if tournament.status == TournamentStatus.FINISHED:
        champion = _player_ref(players, tournament.champion_id)

    return {
        "tournament": {
            "id": tournament.id,
            "name": tournament.name,
            "status": tournament.status,
            "started_at": tournament.started_at,
            "finished_at": tournament.finished_at,
        },
        "total_rounds": total_rounds,
        "rounds": round_views,
        "champion": champion,
        "runner_up": _player_ref(players, tournament.runner_up_id) if champion else None,
    }


def tournament_statistics(session: Session, tournament_id: int) -> Dict[str, Any]:
    """Aggregates over non-bye matches. Only matches with both scores count toward score stats."""
    _get_tournament(session, tournament_id)
    players = _players_by_id(session, tournament_id)

    matches = session.exec(
        select(Match).where(Match.tournament_id == tournament_id, Match.is_bye == False)  # noqa: E712
    ).all()
    completed = [m for m in matches if m.winner_id is not None]
    scored = [m for m in completed if m.player1_score is not None and m.player2_score is not None]

    total_games = sum(m.player1_score + m.player2_score for m in scored)

    totals: Dict[int, int] = {}
    for m in scored:
        totals[m.player1_id] = totals.get(m.player1_id, 0) + m.player1_score
        if m.player2_id is not None:
            totals[m.player2_id] = totals.get(m.player2_id, 0) + m.player2_score

    highest_scoring_player = None
    for player_id, total in totals.items():
        if highest_scoring_player is None or total > highest_scoring_player["total_score"]:
            highest_scoring_player = {
                "id": player_id,
                "name": players[player_id].name if player_id in players else None,
                "total_score": total,
            }

    biggest_win_margin = None
    for m in scored:
        if m.player2_id is None:
            continue
        margin = abs(m.player1_score - m.player2_score)
        if biggest_win_margin is None or margin > biggest_win_margin["margin"]:
            loser_id = m.player2_id if m.winner_id == m.player1_id else m.player1_id
            biggest_win_margin = {
                "match_id": m.id,
                "margin": margin,
                "winner": _player_ref(players, m.winner_id),
                "loser": _player_ref(players, loser_id),
            }

    average = round(total_games / len(scored), 1) if scored else 0

    final_score = None
    final_round = session.exec(
        select(Round)
        .where(Round.tournament_id == tournament_id, Round.is_repechage == False)  # noqa: E712
        .order_by(Round.round_number.desc())
    ).first()
    if final_round is not None:
        championship = next(
            (
                m
                for m in scored
                if m.round_id == final_round.id and m.position_in_bracket == 1 and m.player2_id is not None
            ),
            None,
        )
        if championship is not None:
            final_score = {
                "player1": _player_ref(players, championship.player1_id),
                "player2": _player_ref(players, championship.player2_id),
                "score1": championship.player1_score,
                "score2": championship.player2_score,
            }

    unique_players = set()
    for m in matches:
        unique_players.add(m.player1_id)
        if m.player2_id is not None:
            unique_players.add(m.player2_id)

    return {
        "total_matches": len(matches),
        "completed_matches": len(completed),
        "total_games": total_games,
        "highest_scoring_player": highest_scoring_player,
        "biggest_win_margin": biggest_win_margin,
        "average_score_per_match": average,
        "final_score": final_score,
        "player_count": len(unique_players),
    }
