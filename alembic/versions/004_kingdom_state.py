"""add kingdom_state table

Revision ID: 004
Revises: 003
Create Date: 2026-10-09

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "004"
down_revision = "003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "kingdom_state",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=False),
        sa.Column("current_king_id", sa.Integer(), nullable=True),
        sa.Column("king_crowned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_election_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("king_free_changes_remaining", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("royal_treasury_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active_doctrines", sa.JSON(), nullable=False),
        sa.CheckConstraint("royal_treasury_balance >= 0", name="ck_kingdom_treasury_non_negative"),
        sa.ForeignKeyConstraint(["current_king_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("kingdom_state")
