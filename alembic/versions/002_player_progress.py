"""add player_progress table

Revision ID: 002
Revises: 001
Create Date: 2026-10-05

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "player_progress",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("royal_coins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bananas", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("peanuts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bread", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sandwiches", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("treasury", sa.JSON(), nullable=False),
        sa.Column("castle_level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("knights", sa.JSON(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index(op.f("ix_player_progress_id"), "player_progress", ["id"], unique=False)
    op.create_index(op.f("ix_player_progress_user_id"), "player_progress", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_player_progress_user_id"), table_name="player_progress")
    op.drop_index(op.f("ix_player_progress_id"), table_name="player_progress")
    op.drop_table("player_progress")
