"""PlayerProgress model: one row of realm progress per user."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, func
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


def _empty_treasury() -> dict:
    return {"royal_coins": 0, "bananas": 0, "peanuts": 0, "bread": 0, "sandwiches": 0}


class PlayerProgress(Base):
    """Currency balances, castle level and knight roster for a single user.

    treasury: JSON dict mirroring the pocket currency fields
        {"royal_coins": int, "bananas": int, "peanuts": int, "bread": int, "sandwiches": int}
        Parked resources are out of reach of raiders.

    knights: JSON list of dicts
        {"id": str, "name": str, "valor": int, "wit": int, "tier": 1..4}
        Older rows may carry "stickiness" instead of "wit".
    """

    __tablename__ = "player_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, unique=True, index=True
    )
    royal_coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bananas: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    peanuts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bread: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sandwiches: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    treasury: Mapped[dict] = mapped_column(JSON, nullable=False, default=_empty_treasury)
    castle_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    knights: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
