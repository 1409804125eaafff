"""Player progress service: currency balances, knights and the personal treasury."""

from __future__ import annotations

import logging
import math
import random
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.data.policy import (
    BASIC_RESOURCES,
    COIN_FIELD,
    CURRENCY_FIELDS,
    KNIGHT_RECRUIT_COSTS,
    KNIGHT_STAT_MAX,
    KNIGHT_STAT_MIN,
    STARTING_CASTLE_LEVEL,
    STARTING_COINS,
    STARTING_RESOURCES,
    TIER_MULTIPLIERS,
)
from app.models.player_progress import PlayerProgress
from app.services.kingdom_service import active_modifiers, get_kingdom_state

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lookup / lazy creation
# ---------------------------------------------------------------------------


async def get_progress(db: AsyncSession, user_id: int) -> PlayerProgress | None:
    result = await db.execute(
        select(PlayerProgress).where(PlayerProgress.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_or_create_progress(db: AsyncSession, user_id: int) -> PlayerProgress:
    """Return the user's progress row, creating it with starting balances if absent."""
    progress = await get_progress(db, user_id)
    if progress is None:
        progress = PlayerProgress(
            user_id=user_id,
            royal_coins=STARTING_COINS,
            treasury={field: 0 for field in CURRENCY_FIELDS},
            castle_level=STARTING_CASTLE_LEVEL,
            knights=[],
            **{resource: STARTING_RESOURCES for resource in BASIC_RESOURCES},
        )
        db.add(progress)
        await db.flush()
    return progress


def serialize_progress(progress: PlayerProgress) -> dict:
    return {
        "user_id": progress.user_id,
        COIN_FIELD: progress.royal_coins,
        "resources": {resource: getattr(progress, resource) for resource in BASIC_RESOURCES},
        "treasury": {field: progress.treasury.get(field, 0) for field in CURRENCY_FIELDS},
        "castle_level": progress.castle_level,
        "knights": list(progress.knights),
    }


# ---------------------------------------------------------------------------
# Knights
# ---------------------------------------------------------------------------


async def recruit_cost(db: AsyncSession, tier: int) -> int:
    """Royal coin price of a *tier* knight under the active doctrines (floored)."""
    state = await get_kingdom_state(db)
    modifiers = active_modifiers(state.active_doctrines or {}) if state is not None else {}
    pct = modifiers.get("recruit_cost_pct", 0)
    return max(0, math.floor(KNIGHT_RECRUIT_COSTS[tier] * (100 + pct) / 100))


async def recruit_knight(
    db: AsyncSession,
    user_id: int,
    name: str,
    tier: int,
    rng: random.Random | None = None,
) -> tuple[PlayerProgress, dict]:
    """Pay the tier's recruit cost in royal coins and add a freshly rolled knight."""
    if tier not in TIER_MULTIPLIERS:
        raise ValueError(f"Invalid knight tier: {tier}. Must be one of {sorted(TIER_MULTIPLIERS)}")
    name = (name or "").strip()
    if not name:
        raise ValueError("Knight name is required")

    rng = rng or random.Random()
    progress = await get_or_create_progress(db, user_id)

    cost = await recruit_cost(db, tier)
    if progress.royal_coins < cost:
        raise ValueError(
            f"Not enough royal coins. Need {cost} coins, have {progress.royal_coins}"
        )

    knight = {
        "id": uuid.uuid4().hex,
        "name": name,
        "valor": rng.randint(KNIGHT_STAT_MIN, KNIGHT_STAT_MAX),
        "wit": rng.randint(KNIGHT_STAT_MIN, KNIGHT_STAT_MAX),
        "tier": tier,
    }
    progress.royal_coins -= cost
    # knights is JSON; build a new list so SQLAlchemy sees the change
    progress.knights = [*progress.knights, knight]
    await db.flush()

    logger.info("User %s recruited tier %s knight %s for %s coins", user_id, tier, knight["id"], cost)
    return progress, knight


# ---------------------------------------------------------------------------
# Personal treasury
# ---------------------------------------------------------------------------


def _validate_transfer(resource: str, amount: int) -> None:
    if resource not in CURRENCY_FIELDS:
        raise ValueError(
            f"Invalid resource: {resource}. Must be one of: {', '.join(CURRENCY_FIELDS)}"
        )
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValueError("amount must be a positive integer")


async def deposit_to_treasury(
    db: AsyncSession, user_id: int, resource: str, amount: int
) -> PlayerProgress:
    """Move *amount* of *resource* from the pocket into the personal treasury."""
    _validate_transfer(resource, amount)
    progress = await get_or_create_progress(db, user_id)

    pocket = getattr(progress, resource)
    if pocket < amount:
        raise ValueError(f"Not enough {resource}. Need {amount}, have {pocket}")

    setattr(progress, resource, pocket - amount)
    new_treasury = dict(progress.treasury)
    new_treasury[resource] = new_treasury.get(resource, 0) + amount
    progress.treasury = new_treasury
    await db.flush()
    return progress


async def withdraw_from_treasury(
    db: AsyncSession, user_id: int, resource: str, amount: int
) -> PlayerProgress:
    """Move *amount* of *resource* from the personal treasury back into the pocket."""
    _validate_transfer(resource, amount)
    progress = await get_or_create_progress(db, user_id)

    parked = progress.treasury.get(resource, 0)
    if parked < amount:
        raise ValueError(f"Not enough {resource} in treasury. Need {amount}, have {parked}")

    new_treasury = dict(progress.treasury)
    new_treasury[resource] = parked - amount
    progress.treasury = new_treasury
    setattr(progress, resource, getattr(progress, resource) + amount)
    await db.flush()
    return progress
