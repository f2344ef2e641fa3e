#!/usr/bin/env python3
"""Check that the bracket tables and their uniqueness guards exist in the database"""

import sys

from sqlalchemy import inspect

from app.database import engine

REQUIRED_TABLES = ["tournament", "player", "round", "match"]
REQUIRED_UNIQUE = {
    "round": "uq_tournament_round_number",
    "match": "uq_round_position",
}


def check_schema():
    inspector = inspect(engine)
    existing_tables = inspector.get_table_names()

    print(f"Database: {engine.url}")
    print()

    problems = []
    for table in REQUIRED_TABLES:
        if table in existing_tables:
            print(f"✓ {table} exists")
        else:
            print(f"✗ {table} MISSING")
            problems.append(table)

    for table, constraint in REQUIRED_UNIQUE.items():
        if table not in existing_tables:
            continue
        names = {uc["name"] for uc in inspector.get_unique_constraints(table)}
        if constraint in names:
            print(f"✓ {table}.{constraint}")
        else:
            print(f"✗ {table}.{constraint} MISSING (double advancement is unguarded)")
            problems.append(constraint)

    print()
    if problems:
        print("ERROR: schema incomplete. Run migrations with: alembic upgrade head")
        return False
    print("Bracket schema is complete.")
    return True


if __name__ == "__main__":
    try:
        sys.exit(0 if check_schema() else 1)
    except Exception as e:
        print(f"Error checking schema: {e}")
        sys.exit(1)
