"""Recording results: validation, round completion and tournament finish."""
from datetime import datetime
from decimal import Decimal

import pytest
from sqlmodel import Session

from app.models.match import Match
from app.models.tournament import TournamentStatus
from app.services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.services.result_recorder import record_result, update_score
from app.utils.bracket_queries import matches_in_round


def _win(session, bracket, match, winner_id, **scores):
    return record_result(session, bracket.id, match.id, bracket.organizer_id, winner_id=winner_id, **scores)


def test_record_result_without_completing_round(session: Session, bracket_factory):
    b = bracket_factory(4)
    m1 = b.first_round[0]

    result = _win(session, b, m1, m1.player1_id, player1_score=3, player2_score=1)

    assert result["winner_id"] == m1.player1_id
    assert result["player1_score"] == 3
    assert result["player2_score"] == 1
    assert result["round_complete"] is False
    assert result["tournament_finished"] is False
    session.refresh(m1)
    assert m1.winner_id == m1.player1_id
    assert m1.finished_at is not None
    assert matches_in_round(session, b.rounds[1].id) == []


def test_completing_round_creates_next_round(session: Session, bracket_factory):
    b = bracket_factory(4)
    m1, m2 = b.first_round

    _win(session, b, m1, m1.player1_id)
    result = _win(session, b, m2, m2.player2_id)

    assert result["round_complete"] is True
    assert result["tournament_finished"] is False
    final = matches_in_round(session, b.rounds[1].id)
    assert len(final) == 1
    assert final[0].position_in_bracket == 1
    assert final[0].player1_id == m1.player1_id
    assert final[0].player2_id == m2.player2_id
    assert final[0].winner_id is None
    assert final[0].is_bye is False


def test_final_finishes_tournament(session: Session, bracket_factory):
    b = bracket_factory(4)
    m1, m2 = b.first_round
    _win(session, b, m1, m1.player1_id)
    _win(session, b, m2, m2.player1_id)
    final = matches_in_round(session, b.rounds[1].id)[0]

    result = _win(session, b, final, final.player2_id, player1_score=2, player2_score=5)

    assert result["round_complete"] is True
    assert result["tournament_finished"] is True
    session.refresh(b.tournament)
    assert b.tournament.status == TournamentStatus.FINISHED
    assert b.tournament.finished_at is not None
    assert b.tournament.champion_id == m2.player1_id
    assert b.tournament.runner_up_id == m1.player1_id


def test_eight_players_with_third_place(session: Session, bracket_factory):
    b = bracket_factory(8, third_place_percentage=Decimal("10"))
    assert len(b.rounds) == 3

    for m in b.first_round:
        _win(session, b, m, m.player1_id)

    semis = matches_in_round(session, b.rounds[1].id)
    assert [m.position_in_bracket for m in semis] == [1, 2]
    r1 = b.first_round
    assert (semis[0].player1_id, semis[0].player2_id) == (r1[0].player1_id, r1[1].player1_id)
    assert (semis[1].player1_id, semis[1].player2_id) == (r1[2].player1_id, r1[3].player1_id)

    _win(session, b, semis[0], semis[0].player1_id)
    result = _win(session, b, semis[1], semis[1].player2_id)
    assert result["round_complete"] is True

    final, third = matches_in_round(session, b.rounds[2].id)
    assert (final.position_in_bracket, third.position_in_bracket) == (1, 2)
    assert (final.player1_id, final.player2_id) == (semis[0].player1_id, semis[1].player2_id)
    assert (third.player1_id, third.player2_id) == (semis[0].player2_id, semis[1].player1_id)

    result = _win(session, b, third, third.player1_id)
    assert result["round_complete"] is False

    result = _win(session, b, final, final.player1_id)
    assert result["tournament_finished"] is True
    session.refresh(b.tournament)
    assert b.tournament.champion_id == final.player1_id
    assert b.tournament.runner_up_id == final.player2_id


def test_eight_players_without_placement_prizes_has_only_final(session: Session, bracket_factory):
    b = bracket_factory(8)
    for m in b.first_round:
        _win(session, b, m, m.player1_id)
    for m in matches_in_round(session, b.rounds[1].id):
        _win(session, b, m, m.player1_id)

    assert len(matches_in_round(session, b.rounds[2].id)) == 1


def test_bye_round_one_advances_with_played_matches(session: Session, bracket_factory):
    b = bracket_factory(3)
    played, bye = b.first_round
    assert bye.is_bye is True

    result = _win(session, b, played, played.player2_id)

    assert result["round_complete"] is True
    final = matches_in_round(session, b.rounds[1].id)[0]
    assert (final.player1_id, final.player2_id) == (played.player2_id, bye.player1_id)


def test_winner_must_be_in_match(session: Session, bracket_factory):
    b = bracket_factory(4)
    m1, m2 = b.first_round
    with pytest.raises(ValidationError):
        _win(session, b, m1, m2.player1_id)


@pytest.mark.parametrize(
    "scores,message",
    [
        ((-1, 2), "negative"),
        ((3, 3), "tied"),
        ((1, 4), "higher score"),
    ],
)
def test_invalid_scores_rejected(session: Session, bracket_factory, scores, message):
    b = bracket_factory(4)
    m1 = b.first_round[0]
    with pytest.raises(ValidationError) as exc:
        _win(session, b, m1, m1.player1_id, player1_score=scores[0], player2_score=scores[1])
    assert message in exc.value.message
    session.refresh(m1)
    assert m1.winner_id is None


def test_result_twice_conflicts(session: Session, bracket_factory):
    b = bracket_factory(4)
    m1 = b.first_round[0]
    _win(session, b, m1, m1.player1_id)
    with pytest.raises(ConflictError):
        _win(session, b, m1, m1.player2_id)


def test_decided_downstream_match_blocks_result(session: Session, bracket_factory):
    b = bracket_factory(4)
    m1, m2 = b.first_round
    downstream = Match(
        tournament_id=b.id,
        round_id=b.rounds[1].id,
        position_in_bracket=1,
        player1_id=m1.player1_id,
        player2_id=m2.player1_id,
        winner_id=m1.player1_id,
        finished_at=datetime.utcnow(),
    )
    session.add(downstream)
    session.commit()

    with pytest.raises(ConflictError) as exc:
        _win(session, b, m2, m2.player1_id)
    assert "already been decided" in exc.value.message

    session.refresh(m2)
    assert m2.winner_id is None
    assert m2.finished_at is None
    session.refresh(b.tournament)
    assert b.tournament.status == TournamentStatus.RUNNING


def test_single_score_rejected(session: Session, bracket_factory):
    b = bracket_factory(4)
    m1 = b.first_round[0]
    with pytest.raises(ValidationError):
        _win(session, b, m1, m1.player1_id, player1_score=3)
    session.refresh(m1)
    assert m1.winner_id is None
    assert m1.player1_score is None


def test_bye_match_cannot_be_recorded(session: Session, bracket_factory):
    b = bracket_factory(3)
    bye = b.first_round[1]
    with pytest.raises(ConflictError):
        _win(session, b, bye, bye.player1_id)


def test_tournament_must_be_running(session: Session, bracket_factory):
    b = bracket_factory(4)
    b.tournament.status = TournamentStatus.OPEN
    session.add(b.tournament)
    session.commit()
    m1 = b.first_round[0]
    with pytest.raises(ConflictError):
        _win(session, b, m1, m1.player1_id)


def test_other_organizer_forbidden(session: Session, bracket_factory):
    b = bracket_factory(4)
    m1 = b.first_round[0]
    with pytest.raises(ForbiddenError):
        record_result(session, b.id, m1.id, 999, winner_id=m1.player1_id)


def test_match_from_other_tournament_not_found(session: Session, bracket_factory):
    a = bracket_factory(4)
    b = bracket_factory(4, name="Other")
    with pytest.raises(NotFoundError):
        _win(session, a, b.first_round[0], b.first_round[0].player1_id)


def test_update_score_keeps_winner(session: Session, bracket_factory):
    b = bracket_factory(4)
    m1 = b.first_round[0]
    _win(session, b, m1, m1.player1_id, player1_score=3, player2_score=1)

    result = update_score(session, b.id, m1.id, b.organizer_id, player1_score=5, player2_score=4)

    assert result == {"match_id": m1.id, "player1_score": 5, "player2_score": 4}
    session.refresh(m1)
    assert m1.winner_id == m1.player1_id
    assert (m1.player1_score, m1.player2_score) == (5, 4)


def test_update_score_cannot_flip_winner(session: Session, bracket_factory):
    b = bracket_factory(4)
    m1 = b.first_round[0]
    _win(session, b, m1, m1.player1_id)
    with pytest.raises(ValidationError):
        update_score(session, b.id, m1.id, b.organizer_id, player1_score=1, player2_score=4)


def test_update_score_requires_decided_match(session: Session, bracket_factory):
    b = bracket_factory(4)
    with pytest.raises(ConflictError):
        update_score(session, b.id, b.first_round[0].id, b.organizer_id, player1_score=2, player2_score=1)


def test_update_score_rejected_after_finish(session: Session, bracket_factory):
    b = bracket_factory(2)
    m1 = b.first_round[0]
    result = _win(session, b, m1, m1.player1_id)
    assert result["tournament_finished"] is True
    with pytest.raises(ConflictError):
        update_score(session, b.id, m1.id, b.organizer_id, player1_score=2, player2_score=1)
