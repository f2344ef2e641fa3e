import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterator

from dotenv import load_dotenv
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tournament.db")
TRANSACTION_TIMEOUT_SECONDS = int(os.getenv("TRANSACTION_TIMEOUT_SECONDS", "30"))

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}
_echo = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")

if _is_sqlite:
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=_echo,
    connect_args=_connect_args,
)


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session


def _apply_transaction_timeout(session: Session) -> None:
    """Bound lock waits and statements for the current transaction (PostgreSQL only)."""
    if session.get_bind().dialect.name != "postgresql":
        return
    timeout_ms = TRANSACTION_TIMEOUT_SECONDS * 1000
    session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))
    session.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """
    Unit of work for one engine operation.

    Everything done with the yielded session is committed together, or rolled
    back together if anything raises. Precondition reads and writes share the
    same transaction, so callers never observe a partial operation.
    """
    try:
        _apply_transaction_timeout(session)
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def init_db() -> None:
    """Initialize database - create all tables"""
    # Import all models to ensure they're registered with SQLModel metadata
    from app.models.match import Match  # noqa: F401
    from app.models.player import Player  # noqa: F401
    from app.models.round import Round  # noqa: F401
    from app.models.tournament import Tournament  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database initialized at %s", engine.url)
