"""KingdomState model: the realm-wide singleton row."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base

KINGDOM_STATE_ID = 1


class KingdomState(Base):
    """Tracks the reigning king, the election clock and the royal treasury.

    Exactly one row exists, with id == KINGDOM_STATE_ID.

    active_doctrines: JSON dict {category: doctrine_id | None}
        One slot per doctrine category; None until the first coronation seeds defaults.
    """

    __tablename__ = "kingdom_state"
    __table_args__ = (
        CheckConstraint("royal_treasury_balance >= 0", name="ck_kingdom_treasury_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    current_king_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"), nullable=True, default=None
    )
    king_crowned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    next_election_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    king_free_changes_remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    royal_treasury_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active_doctrines: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
