"""add raid_stats and raid_history tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-07

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "003"
down_revision = "002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "raid_stats",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("total_attacks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("successful_attacks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("attack_rating", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("total_defenses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("successful_defenses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("defense_rating", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("last_attack_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_raided_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index(op.f("ix_raid_stats_id"), "raid_stats", ["id"], unique=False)
    op.create_index(op.f("ix_raid_stats_user_id"), "raid_stats", ["user_id"], unique=False)

    op.create_table(
        "raid_history",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("attacker_id", sa.Integer(), nullable=False),
        sa.Column("defender_id", sa.Integer(), nullable=False),
        sa.Column("attacker_name", sa.String(64), nullable=False),
        sa.Column("defender_name", sa.String(64), nullable=False),
        sa.Column("attacker_knight_ids", sa.JSON(), nullable=False),
        sa.Column("defender_knight_ids", sa.JSON(), nullable=False),
        sa.Column("attack_power", sa.Integer(), nullable=False),
        sa.Column("defense_power", sa.Integer(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("resources_stolen", sa.JSON(), nullable=False),
        sa.Column("coins_stolen", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["attacker_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["defender_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_raid_history_id"), "raid_history", ["id"], unique=False)
    op.create_index(op.f("ix_raid_history_attacker_id"), "raid_history", ["attacker_id"], unique=False)
    op.create_index(op.f("ix_raid_history_defender_id"), "raid_history", ["defender_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_raid_history_defender_id"), table_name="raid_history")
    op.drop_index(op.f("ix_raid_history_attacker_id"), table_name="raid_history")
    op.drop_index(op.f("ix_raid_history_id"), table_name="raid_history")
    op.drop_table("raid_history")
    op.drop_index(op.f("ix_raid_stats_user_id"), table_name="raid_stats")
    op.drop_index(op.f("ix_raid_stats_id"), table_name="raid_stats")
    op.drop_table("raid_stats")
