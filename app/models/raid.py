"""Raid models: per-user raid counters and the append-only raid log."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.data.policy import STARTING_RATING
from app.models.base import Base


class RaidStats(Base):
    """Attack/defense counters and ratings for one user.

    Created the first time the user takes part in a raid, as attacker or
    defender.  Ratings stay within the policy bounds.
    """

    __tablename__ = "raid_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, unique=True, index=True
    )
    total_attacks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_attacks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attack_rating: Mapped[int] = mapped_column(Integer, nullable=False, default=STARTING_RATING)
    total_defenses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_defenses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    defense_rating: Mapped[int] = mapped_column(Integer, nullable=False, default=STARTING_RATING)
    last_attack_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    last_raided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )


class RaidHistory(Base):
    """One row per resolved raid.  Never updated after insert."""

    __tablename__ = "raid_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, index=True)
    attacker_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    defender_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    attacker_name: Mapped[str] = mapped_column(String(64), nullable=False)
    defender_name: Mapped[str] = mapped_column(String(64), nullable=False)
    attacker_knight_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    defender_knight_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    attack_power: Mapped[int] = mapped_column(Integer, nullable=False)
    defense_power: Mapped[int] = mapped_column(Integer, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    # {"bananas": int, "peanuts": int, "bread": int, "sandwiches": int}; empty on failure
    resources_stolen: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    coins_stolen: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
