"""Initial migration: create tournament, player, round, match tables

Revision ID: 001_initial
Revises:
Create Date: 2026-09-01 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None

TOURNAMENT_STATUS = sa.Enum("DRAFT", "OPEN", "RUNNING", "FINISHED", name="tournamentstatus")


def upgrade() -> None:
    op.create_table(
        "tournament",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("organizer_id", sa.Integer(), nullable=False),
        sa.Column("status", TOURNAMENT_STATUS, nullable=False),
        sa.Column("entry_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("late_entry_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("rebuy_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("organizer_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("first_place_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("second_place_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("third_place_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("fourth_place_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("total_collected", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("organizer_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("prize_pool", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("allow_late_entry", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("allow_rebuy", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("champion_id", sa.Integer(), nullable=True),
        sa.Column("runner_up_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("finished_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tournament_organizer_id", "tournament", ["organizer_id"])

    op.create_table(
        "player",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("is_rebuy", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
    )
    op.create_index("ix_player_tournament_id", "player", ["tournament_id"])

    op.create_table(
        "round",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("is_repechage", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "round_number", name="uq_tournament_round_number"),
    )
    op.create_index("ix_round_tournament_id", "round", ["tournament_id"])

    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("round_id", sa.Integer(), nullable=False),
        sa.Column("position_in_bracket", sa.Integer(), nullable=False),
        sa.Column("player1_id", sa.Integer(), nullable=False),
        sa.Column("player2_id", sa.Integer(), nullable=True),
        sa.Column("winner_id", sa.Integer(), nullable=True),
        sa.Column("is_bye", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("player1_score", sa.Integer(), nullable=True),
        sa.Column("player2_score", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("finished_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["round_id"], ["round.id"]),
        sa.ForeignKeyConstraint(["player1_id"], ["player.id"]),
        sa.ForeignKeyConstraint(["player2_id"], ["player.id"]),
        sa.ForeignKeyConstraint(["winner_id"], ["player.id"]),
        sa.UniqueConstraint("round_id", "position_in_bracket", name="uq_round_position"),
    )
    op.create_index("ix_match_tournament_id", "match", ["tournament_id"])
    op.create_index("ix_match_round_id", "match", ["round_id"])
    # Undo looks up the latest finished match per tournament
    op.create_index("ix_match_tournament_finished_at", "match", ["tournament_id", "finished_at"])


def downgrade() -> None:
    op.drop_index("ix_match_tournament_finished_at", table_name="match")
    op.drop_index("ix_match_round_id", table_name="match")
    op.drop_index("ix_match_tournament_id", table_name="match")
    op.drop_table("match")
    op.drop_index("ix_round_tournament_id", table_name="round")
    op.drop_table("round")
    op.drop_index("ix_player_tournament_id", table_name="player")
    op.drop_table("player")
    op.drop_index("ix_tournament_organizer_id", table_name="tournament")
    op.drop_table("tournament")
    TOURNAMENT_STATUS.drop(op.get_bind(), checkfirst=True)
