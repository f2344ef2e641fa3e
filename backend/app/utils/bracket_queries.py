"""
Named bracket queries.

Every lookup the engine relies on for an invariant (open slot, downstream
match, round completion, late-entry window) lives here so each rule is
expressed in exactly one place. All functions take the caller's Session and
run inside the caller's transaction.
"""
from typing import List, Optional

from sqlalchemy import or_
from sqlmodel import Session, func, select

from app.models.match import Match
from app.models.player import Player
from app.models.round import Round
from app.models.tournament import Tournament
from app.services.errors import ForbiddenError, NotFoundError
from app.utils.sql import scalar_int, scalar_int_or_none


def get_owned_tournament(session: Session, tournament_id: int, organizer_id: int, lock: bool = True) -> Tournament:
    """
    Load a tournament and check ownership.

    With lock=True the row is read FOR UPDATE so every mutating operation on the
    same tournament serializes behind it until commit/rollback.

    Raises:
        NotFoundError: tournament does not exist
        ForbiddenError: tournament belongs to another organizer
    """
    query = select(Tournament).where(Tournament.id == tournament_id)
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    tournament = session.exec(query).first()
    if not tournament:
        raise NotFoundError("Tournament not found")
    if tournament.organizer_id != organizer_id:
        raise ForbiddenError("Access denied")
    return tournament


def get_tournament_match(session: Session, tournament_id: int, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if not match or match.tournament_id != tournament_id:
        raise NotFoundError("Match not found")
    return match


def get_tournament_player(session: Session, tournament_id: int, player_id: int) -> Player:
    player = session.get(Player, player_id)
    if not player or player.tournament_id != tournament_id:
        raise NotFoundError("Player not found")
    return player


# ---------------------------------------------------------------------------
# Rounds
# ---------------------------------------------------------------------------


def get_main_round(session: Session, tournament_id: int, round_number: int) -> Optional[Round]:
    """Main-bracket round by number. The repechage round is never returned."""
    return session.exec(
        select(Round).where(
            Round.tournament_id == tournament_id,
            Round.round_number == round_number,
            Round.is_repechage == False,  # noqa: E712
        )
    ).first()


def count_main_rounds(session: Session, tournament_id: int) -> int:
    result = session.exec(
        select(func.count(Round.id)).where(
            Round.tournament_id == tournament_id,
            Round.is_repechage == False,  # noqa: E712
        )
    ).one()
    return scalar_int(result)


def max_round_number(session: Session, tournament_id: int) -> int:
    result = session.exec(select(func.max(Round.round_number)).where(Round.tournament_id == tournament_id)).one()
    return scalar_int_or_none(result) or 0


def find_repechage_round(session: Session, tournament_id: int) -> Optional[Round]:
    return session.exec(
        select(Round).where(
            Round.tournament_id == tournament_id,
            Round.is_repechage == True,  # noqa: E712
        )
    ).first()


def find_open_first_round(session: Session, tournament_id: int) -> Optional[Round]:
    """
    Round 1, but only while it still has a match without a winner.

    Returns None the instant the last Round-1 match resolves, which permanently
    closes late entry regardless of later rounds.
    """
    unresolved = (
        select(Match.id)
        .where(Match.round_id == Round.id, Match.winner_id.is_(None))
        .exists()
    )
    return session.exec(
        select(Round).where(
            Round.tournament_id == tournament_id,
            Round.round_number == 1,
            Round.is_repechage == False,  # noqa: E712
            unresolved,
        )
    ).first()


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------


def matches_in_round(session: Session, round_id: int) -> List[Match]:
    return list(
        session.exec(select(Match).where(Match.round_id == round_id).order_by(Match.position_in_bracket)).all()
    )


def round_has_unresolved_match(session: Session, round_: Round) -> bool:
    """
    A main round is complete iff every match has a winner.

    In the repechage round an unpaired pending match (player2 still null) does
    not count: it waits for the next rebuy and must not block the others.
    """
    query = select(Match.id).where(Match.round_id == round_.id, Match.winner_id.is_(None))
    if round_.is_repechage:
        query = query.where(Match.player2_id.is_not(None))
    return session.exec(query).first() is not None


def find_downstream_match(
    session: Session, tournament_id: int, round_number: int, position_in_bracket: int
) -> Optional[Match]:
    """Match a winner of (round_number, position) feeds into: main round + 1, slot ceil(position / 2)."""
    next_position = (position_in_bracket + 1) // 2
    return session.exec(
        select(Match)
        .join(Round, Match.round_id == Round.id)
        .where(
            Match.tournament_id == tournament_id,
            Match.position_in_bracket == next_position,
            Round.round_number == round_number + 1,
            Round.is_repechage == False,  # noqa: E712
        )
    ).first()


def find_open_slot(session: Session, round_id: int) -> Optional[Match]:
    """Lowest-position match still waiting for an opponent. Row is locked for the pairing write."""
    return session.exec(
        select(Match)
        .where(
            Match.round_id == round_id,
            Match.player2_id.is_(None),
            Match.winner_id.is_(None),
            Match.is_bye == False,  # noqa: E712
        )
        .order_by(Match.position_in_bracket)
        .with_for_update()
    ).first()


def find_bye_match(session: Session, round_id: int) -> Optional[Match]:
    return session.exec(
        select(Match)
        .where(Match.round_id == round_id, Match.is_bye == True)  # noqa: E712
        .order_by(Match.position_in_bracket)
        .with_for_update()
    ).first()


def next_position(session: Session, round_id: int) -> int:
    result = session.exec(select(func.max(Match.position_in_bracket)).where(Match.round_id == round_id)).one()
    return (scalar_int_or_none(result) or 0) + 1


def find_first_round_loss(session: Session, tournament_id: int, player_id: int) -> Optional[Match]:
    """Finished Round-1 (main bracket) match this player took part in and did not win."""
    return session.exec(
        select(Match)
        .join(Round, Match.round_id == Round.id)
        .where(
            Match.tournament_id == tournament_id,
            Round.round_number == 1,
            Round.is_repechage == False,  # noqa: E712
            or_(Match.player1_id == player_id, Match.player2_id == player_id),
            Match.winner_id.is_not(None),
            Match.winner_id != player_id,
        )
    ).first()


def find_latest_resolved_match(session: Session, tournament_id: int) -> Optional[Match]:
    """Most recently finished non-bye match; created_at then id break same-timestamp ties."""
    return session.exec(
        select(Match)
        .where(
            Match.tournament_id == tournament_id,
            Match.winner_id.is_not(None),
            Match.is_bye == False,  # noqa: E712
        )
        .order_by(Match.finished_at.desc(), Match.created_at.desc(), Match.id.desc())
    ).first()


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------


def find_player_by_name(session: Session, tournament_id: int, name: str) -> Optional[Player]:
    """Case-insensitive, whitespace-trimmed name lookup within a tournament."""
    normalized = name.strip().lower()
    return session.exec(
        select(Player).where(
            Player.tournament_id == tournament_id,
            func.lower(func.trim(Player.name)) == normalized,
        )
    ).first()
