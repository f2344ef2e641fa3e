from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Columns added after the initial bracket schema (late entry, rebuy, placement prizes,
# repechage, scores). Databases created before them are patched at startup.
# (name, sqlite_type, postgres_type, default_clause)
REQUIRED_TOURNAMENT_COLUMNS: List[Tuple[str, str, str, str]] = [
    ("late_entry_fee", "NUMERIC(12, 2)", "NUMERIC(12, 2)", "DEFAULT NULL"),
    ("rebuy_fee", "NUMERIC(12, 2)", "NUMERIC(12, 2)", "DEFAULT NULL"),
    ("third_place_percentage", "NUMERIC(5, 2)", "NUMERIC(5, 2)", "DEFAULT 0"),
    ("fourth_place_percentage", "NUMERIC(5, 2)", "NUMERIC(5, 2)", "DEFAULT 0"),
    ("organizer_amount", "NUMERIC(12, 2)", "NUMERIC(12, 2)", "DEFAULT 0"),
    ("allow_late_entry", "INTEGER", "BOOLEAN", "DEFAULT {false}"),
    ("allow_rebuy", "INTEGER", "BOOLEAN", "DEFAULT {false}"),
]

REQUIRED_ROUND_COLUMNS: List[Tuple[str, str, str, str]] = [
    ("is_repechage", "INTEGER", "BOOLEAN", "DEFAULT {false}"),
]

REQUIRED_MATCH_COLUMNS: List[Tuple[str, str, str, str]] = [
    ("player1_score", "INTEGER", "INTEGER", "DEFAULT NULL"),
    ("player2_score", "INTEGER", "INTEGER", "DEFAULT NULL"),
]

REQUIRED_PLAYER_COLUMNS: List[Tuple[str, str, str, str]] = [
    ("is_rebuy", "INTEGER", "BOOLEAN", "DEFAULT {false}"),
]


def _is_sqlite(engine: Engine) -> bool:
    return engine.dialect.name.lower() == "sqlite"


def _get_existing_columns_sqlite(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    with engine.connect() as conn:
        res = conn.execute(text(f"PRAGMA table_info({table_name});")).fetchall()
        # PRAGMA table_info returns rows: (cid, name, type, notnull, dflt_value, pk)
        for row in res:
            cols[str(row[1])] = str(row[2])
    return cols


def _get_existing_columns_postgres(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    sql = """
    SELECT column_name, data_type
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = :table_name;
    """
    with engine.connect() as conn:
        res = conn.execute(text(sql), {"table_name": table_name}).fetchall()
        for row in res:
            cols[str(row[0])] = str(row[1])
    return cols


def _table_exists(engine: Engine, table: str) -> bool:
    if _is_sqlite(engine):
        sql = "SELECT name FROM sqlite_master WHERE type='table' AND name=:table_name"
    else:
        sql = """
        SELECT EXISTS (
            SELECT FROM information_schema.tables
            WHERE table_schema = 'public' AND table_name = :table_name
        )
        """
    with engine.connect() as conn:
        result = conn.execute(text(sql), {"table_name": table}).fetchone()
    if _is_sqlite(engine):
        return result is not None
    return bool(result and result[0])


def _ensure_columns(engine: Engine, table: str, columns: List[Tuple[str, str, str, str]]) -> List[str]:
    """
    Idempotently adds missing columns to a table. Returns the names added.
    Missing tables are skipped (create_all creates them complete).
    """
    if not _table_exists(engine, table):
        return []

    sqlite = _is_sqlite(engine)
    existing = _get_existing_columns_sqlite(engine, table) if sqlite else _get_existing_columns_postgres(engine, table)
    added: List[str] = []
    with engine.begin() as conn:
        for name, sqlite_type, pg_type, default in columns:
            if name in existing:
                continue
            default_sql = default.format(false="0" if sqlite else "FALSE")
            if sqlite:
                # SQLite supports ADD COLUMN without IF NOT EXISTS
                conn.execute(text(f'ALTER TABLE "{table}" ADD COLUMN {name} {sqlite_type} {default_sql};'))
            else:
                conn.execute(text(f'ALTER TABLE "{table}" ADD COLUMN IF NOT EXISTS {name} {pg_type} {default_sql};'))
            added.append(name)
    if added:
        logger.info("Added columns to %s: %s", table, ", ".join(added))
    return added


def ensure_tournament_columns(engine: Engine) -> None:
    """Safe to run at every startup."""
    from app.models.tournament import Tournament

    try:
        _ensure_columns(engine, Tournament.__table__.name, REQUIRED_TOURNAMENT_COLUMNS)
    except Exception as e:
        # Log error but don't crash the server
        logger.warning(f"Failed to ensure tournament columns (this is OK if table doesn't exist yet): {e}")


def ensure_round_columns(engine: Engine) -> None:
    from app.models.round import Round

    try:
        _ensure_columns(engine, Round.__table__.name, REQUIRED_ROUND_COLUMNS)
    except Exception as e:
        logger.warning(f"Failed to ensure round columns: {e}")


def ensure_match_columns(engine: Engine) -> None:
    from app.models.match import Match

    try:
        _ensure_columns(engine, Match.__table__.name, REQUIRED_MATCH_COLUMNS)
    except Exception as e:
        logger.warning(f"Failed to ensure match columns: {e}")


def ensure_player_columns(engine: Engine) -> None:
    from app.models.player import Player

    try:
        _ensure_columns(engine, Player.__table__.name, REQUIRED_PLAYER_COLUMNS)
    except Exception as e:
        logger.warning(f"Failed to ensure player columns: {e}")
