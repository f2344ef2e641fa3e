"""Late entry: pairing order, duplicate names, fees and the Round 1 window."""
from decimal import Decimal

import pytest
from sqlmodel import Session, select

from app.models.player import Player
from app.services.errors import ConflictError, ValidationError
from app.services.late_entry import late_entry
from app.services.result_recorder import record_result
from app.utils.bracket_queries import matches_in_round


def _players(session, bracket):
    return session.exec(select(Player).where(Player.tournament_id == bracket.id)).all()


def test_late_entry_creates_pending_match_and_charges_fee(session: Session, bracket_factory):
    b = bracket_factory(
        4,
        allow_late_entry=True,
        entry_fee=Decimal("10"),
        late_entry_fee=Decimal("15"),
        organizer_percentage=Decimal("10"),
    )
    session.refresh(b.tournament)
    assert b.tournament.total_collected == Decimal("40.00")

    result = late_entry(session, b.id, b.organizer_id, "Erin")

    assert result["is_duplicate"] is False
    assert result["paired"] is False
    match = result["match"]
    assert match.position_in_bracket == 3
    assert match.player1_id == result["player"].id
    assert match.player2_id is None
    assert match.winner_id is None
    assert match.is_bye is False

    session.refresh(b.tournament)
    assert b.tournament.total_collected == Decimal("55.00")
    assert b.tournament.organizer_amount == Decimal("5.50")
    assert b.tournament.prize_pool == Decimal("49.50")


def test_second_late_entrant_fills_open_slot(session: Session, bracket_factory):
    b = bracket_factory(4, allow_late_entry=True)
    first = late_entry(session, b.id, b.organizer_id, "Erin")
    second = late_entry(session, b.id, b.organizer_id, "Frank")

    assert second["paired"] is True
    assert second["match"].id == first["match"].id
    assert second["match"].player2_id == second["player"].id


def test_late_entrant_converts_bye(session: Session, bracket_factory):
    b = bracket_factory(3, allow_late_entry=True)
    bye = b.first_round[1]

    result = late_entry(session, b.id, b.organizer_id, "Dana")

    assert result["paired"] is True
    assert result["match"].id == bye.id
    session.refresh(bye)
    assert bye.is_bye is False
    assert bye.winner_id is None
    assert bye.finished_at is None
    assert bye.player2_id == result["player"].id


def test_late_entry_fee_falls_back_to_entry_fee(session: Session, bracket_factory):
    b = bracket_factory(2, allow_late_entry=True, entry_fee=Decimal("7.50"))
    late_entry(session, b.id, b.organizer_id, "Erin")
    session.refresh(b.tournament)
    assert b.tournament.total_collected == Decimal("22.50")


def test_duplicate_name_needs_force(session: Session, bracket_factory):
    b = bracket_factory(4, allow_late_entry=True, entry_fee=Decimal("10"))
    existing = b.players[0].name

    result = late_entry(session, b.id, b.organizer_id, f"  {existing.upper()} ")

    assert result == {"is_duplicate": True, "existing_name": existing}
    assert len(_players(session, b)) == 4
    session.refresh(b.tournament)
    assert b.tournament.total_collected == Decimal("40.00")

    forced = late_entry(session, b.id, b.organizer_id, existing, force=True)
    assert forced["is_duplicate"] is False
    assert len(_players(session, b)) == 5


def test_name_is_trimmed(session: Session, bracket_factory):
    b = bracket_factory(4, allow_late_entry=True)
    result = late_entry(session, b.id, b.organizer_id, "  Erin  ")
    assert result["player"].name == "Erin"


def test_empty_name_rejected(session: Session, bracket_factory):
    b = bracket_factory(4, allow_late_entry=True)
    with pytest.raises(ValidationError):
        late_entry(session, b.id, b.organizer_id, "   ")


def test_late_entry_disabled(session: Session, bracket_factory):
    b = bracket_factory(4)
    with pytest.raises(ConflictError):
        late_entry(session, b.id, b.organizer_id, "Erin")


def test_late_entry_closes_when_round_one_completes(session: Session, bracket_factory):
    b = bracket_factory(4, allow_late_entry=True, entry_fee=Decimal("10"))
    for m in b.first_round:
        record_result(session, b.id, m.id, b.organizer_id, winner_id=m.player1_id)

    with pytest.raises(ConflictError) as exc:
        late_entry(session, b.id, b.organizer_id, "Erin")
    assert "Round 1" in exc.value.message

    session.refresh(b.tournament)
    assert b.tournament.total_collected == Decimal("40.00")
    assert len(_players(session, b)) == 4


def test_lone_late_entrant_can_be_recorded_as_winner(session: Session, bracket_factory):
    b = bracket_factory(4, allow_late_entry=True)
    pending = late_entry(session, b.id, b.organizer_id, "Erin")["match"]

    for m in b.first_round:
        result = record_result(session, b.id, m.id, b.organizer_id, winner_id=m.player1_id)
    assert result["round_complete"] is False
    assert matches_in_round(session, b.rounds[1].id) == []

    result = record_result(session, b.id, pending.id, b.organizer_id, winner_id=pending.player1_id)

    assert result["round_complete"] is True
    assert result["tournament_finished"] is False
    session.refresh(pending)
    assert pending.winner_id == pending.player1_id
    assert pending.player2_id is None
    assert pending.is_bye is False

    second = matches_in_round(session, b.rounds[1].id)
    assert [m.position_in_bracket for m in second] == [1, 2]
    assert second[1].is_bye is True
    assert second[1].player1_id == pending.player1_id

    with pytest.raises(ConflictError):
        late_entry(session, b.id, b.organizer_id, "Frank")


def test_pending_match_winner_must_be_the_entrant(session: Session, bracket_factory):
    b = bracket_factory(4, allow_late_entry=True)
    pending = late_entry(session, b.id, b.organizer_id, "Erin")["match"]
    other = b.first_round[0].player1_id

    with pytest.raises(ValidationError):
        record_result(session, b.id, pending.id, b.organizer_id, winner_id=other)
    session.refresh(pending)
    assert pending.winner_id is None


def test_cent_late_entry_fees_accumulate_exactly(session: Session, bracket_factory):
    b = bracket_factory(
        4,
        allow_late_entry=True,
        entry_fee=Decimal("10"),
        late_entry_fee=Decimal("0.01"),
    )
    for _ in range(10):
        result = late_entry(session, b.id, b.organizer_id, "Erin", force=True)
        assert result["is_duplicate"] is False

    session.refresh(b.tournament)
    assert b.tournament.total_collected == Decimal("40.10")
    assert b.tournament.prize_pool == Decimal("40.10")
    assert len(_players(session, b)) == 14
