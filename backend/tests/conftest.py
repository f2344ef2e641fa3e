from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.database import get_session
from app.main import app
from app.models.match import Match
from app.models.player import Player
from app.models.round import Round
from app.models.tournament import Tournament, TournamentStatus
from app.services.ledger import split_total

TEST_DATABASE_URL = "sqlite:///:memory:"
ORGANIZER_ID = 1

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models are imported at module level, before create_all()
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables are created per test and dropped afterwards
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place for the
    entire duration so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@dataclass
class BuiltBracket:
    tournament: Tournament
    players: List[Player]
    rounds: List[Round]
    first_round: List[Match] = field(default_factory=list)
    organizer_id: int = ORGANIZER_ID

    @property
    def id(self) -> int:
        return self.tournament.id


def _bracket_size(player_count: int) -> int:
    size = 2
    while size < player_count:
        size *= 2
    return size


@pytest.fixture(name="bracket_factory")
def bracket_factory_fixture(session: Session):
    """Build a RUNNING tournament the way a finished draw leaves it.

    Round 1 pairs players in order; the power-of-two gap is filled with byes
    at the highest positions. Rounds 2..N exist but hold no matches. When an
    entry fee is configured, total_collected covers every registered player.
    """

    def build(player_count: int = 4, names: List[str] = None, **settings) -> BuiltBracket:
        names = names or [f"Player {i + 1}" for i in range(player_count)]
        player_count = len(names)

        tournament = Tournament(
            name=settings.pop("name", "Friday Night Bracket"),
            organizer_id=settings.pop("organizer_id", ORGANIZER_ID),
            status=TournamentStatus.RUNNING,
            started_at=datetime.utcnow(),
            **settings,
        )
        if tournament.entry_fee is not None:
            totals = split_total(
                Decimal(tournament.entry_fee) * player_count,
                tournament.organizer_percentage,
            )
            tournament.total_collected = totals.total_collected
            tournament.organizer_amount = totals.organizer_amount
            tournament.prize_pool = totals.prize_pool
        session.add(tournament)
        session.commit()
        session.refresh(tournament)

        players = [Player(tournament_id=tournament.id, name=name) for name in names]
        session.add_all(players)

        size = _bracket_size(player_count)
        rounds = []
        round_number, matches_in_round = 1, size // 2
        while matches_in_round >= 1:
            rounds.append(Round(tournament_id=tournament.id, round_number=round_number))
            round_number += 1
            matches_in_round //= 2
        session.add_all(rounds)
        session.commit()

        bye_count = size - player_count
        real_matches = size // 2 - bye_count
        first_round = []
        index = 0
        for position in range(1, size // 2 + 1):
            if position <= real_matches:
                match = Match(
                    tournament_id=tournament.id,
                    round_id=rounds[0].id,
                    position_in_bracket=position,
                    player1_id=players[index].id,
                    player2_id=players[index + 1].id,
                )
                index += 2
            else:
                match = Match(
                    tournament_id=tournament.id,
                    round_id=rounds[0].id,
                    position_in_bracket=position,
                    player1_id=players[index].id,
                    winner_id=players[index].id,
                    is_bye=True,
                    finished_at=datetime.utcnow(),
                )
                index += 1
            first_round.append(match)
        session.add_all(first_round)
        session.commit()

        return BuiltBracket(tournament=tournament, players=players, rounds=rounds, first_round=first_round)

    return build
