"""Raid service: resolves knight raids between players.

A raid pits the attacker's chosen knights against the defender's strongest
knights:
  1. Power of a knight = (valor + wit) x tier multiplier (1x, 3x, 5x, 10x).
  2. Both parties are capped at the MAX_RAID_PARTY highest-power knights.
  3. Each side's power is scaled by an independent uniform roll in [0.95, 1.05].
  4. The attacker wins iff the attack roll strictly exceeds the defense roll.
  5. A winner steals a uniform 5%-15% of each pocket resource and of the
     defender's royal coins (floored); the treasury is never touched.

Cooldown and immunity are claimed with conditional UPDATEs so that two
concurrent raids cannot both pass the same gate.  Nothing is committed here;
the caller commits once so a raid lands completely or not at all.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.data.policy import (
    ATTACK_COOLDOWN,
    ATTACK_LOSS_DELTA,
    ATTACK_WIN_DELTA,
    BASIC_RESOURCES,
    COIN_FIELD,
    DEFENSE_IMMUNITY,
    DEFENSE_LOSS_DELTA,
    DEFENSE_WIN_DELTA,
    MAX_CASTLE_LEVEL_GAP,
    MAX_RAID_PARTY,
    POWER_VARIANCE_MAX,
    POWER_VARIANCE_MIN,
    RAID_HISTORY_LIMIT,
    RAID_TARGET_LIMIT,
    RATING_MAX,
    RATING_MIN,
    STARTING_RATING,
    STEAL_PCT_MAX,
    STEAL_PCT_MIN,
    TIER_MULTIPLIERS,
)
from app.models.player_progress import PlayerProgress
from app.models.raid import RaidHistory, RaidStats
from app.models.user import User
from app.services.progress_service import get_or_create_progress, get_progress
from app.timeutils import minutes_remaining, to_epoch_ms, utc_now, window_ends

logger = logging.getLogger(__name__)


@dataclass
class RaidResult:
    """Outcome of a resolved raid as reported back to the attacker."""
    success: bool
    attack_power: int
    defense_power: int
    resources_stolen: dict[str, int] = field(default_factory=dict)
    coins_stolen: int = 0
    history_id: int | None = None


# ---------------------------------------------------------------------------
# Power calculation
# ---------------------------------------------------------------------------


def knight_secondary(knight: dict) -> float:
    """The knight's second combat attribute: wit, or legacy stickiness."""
    if knight.get("wit") is not None:
        return knight["wit"]
    return knight.get("stickiness") or 0


def knight_power(knight: dict) -> float:
    """(valor + wit) x tier multiplier.  Raises ValueError on an unknown tier."""
    tier = knight.get("tier", 1)
    if tier not in TIER_MULTIPLIERS:
        raise ValueError(f"Invalid knight tier: {tier}")
    return ((knight.get("valor") or 0) + knight_secondary(knight)) * TIER_MULTIPLIERS[tier]


def select_raid_party(knights: list[dict]) -> list[dict]:
    """Strongest MAX_RAID_PARTY knights, highest power first."""
    ranked = sorted(knights, key=knight_power, reverse=True)
    return ranked[:MAX_RAID_PARTY]


def party_power(knights: list[dict]) -> float:
    return sum(knight_power(k) for k in knights)


# ---------------------------------------------------------------------------
# Randomness
# ---------------------------------------------------------------------------


def roll_variance(rng: random.Random) -> float:
    return rng.uniform(POWER_VARIANCE_MIN, POWER_VARIANCE_MAX)


def roll_steal_pct(rng: random.Random) -> float:
    return rng.uniform(STEAL_PCT_MIN, STEAL_PCT_MAX)


def resolve_rolls(
    attack_power: float,
    defense_power: float,
    attack_multiplier: float,
    defense_multiplier: float,
) -> tuple[float, float, bool]:
    """Apply the variance multipliers.  Returns (attack_roll, defense_roll, success)."""
    attack_roll = attack_power * attack_multiplier
    defense_roll = defense_power * defense_multiplier
    return attack_roll, defense_roll, attack_roll > defense_roll


def compute_loot(progress: PlayerProgress, steal_pct: float) -> tuple[dict[str, int], int]:
    """Floor of steal_pct of each pocket resource and of the pocket coins."""
    resources = {
        resource: int(max(0, getattr(progress, resource)) * steal_pct)
        for resource in BASIC_RESOURCES
    }
    coins = int(max(0, progress.royal_coins) * steal_pct)
    return resources, coins


def clamp_rating(value: int) -> int:
    return max(RATING_MIN, min(RATING_MAX, value))


# ---------------------------------------------------------------------------
# Raid stats
# ---------------------------------------------------------------------------


async def get_raid_stats(db: AsyncSession, user_id: int) -> RaidStats | None:
    result = await db.execute(select(RaidStats).where(RaidStats.user_id == user_id))
    return result.scalar_one_or_none()


async def get_or_create_raid_stats(db: AsyncSession, user_id: int) -> RaidStats:
    stats = await get_raid_stats(db, user_id)
    if stats is None:
        stats = RaidStats(user_id=user_id)
        db.add(stats)
        await db.flush()
    return stats


def serialize_raid_stats(stats: RaidStats | None, now: datetime | None = None) -> dict:
    """Counters and ratings, plus when the next attack is allowed (epoch ms)."""
    now = now or utc_now()
    if stats is None:
        stats = RaidStats(
            total_attacks=0,
            successful_attacks=0,
            attack_rating=STARTING_RATING,
            total_defenses=0,
            successful_defenses=0,
            defense_rating=STARTING_RATING,
        )
    next_attack_at = window_ends(stats.last_attack_at, ATTACK_COOLDOWN)
    immune_until = window_ends(stats.last_raided_at, DEFENSE_IMMUNITY)
    return {
        "total_attacks": stats.total_attacks,
        "successful_attacks": stats.successful_attacks,
        "attack_rating": stats.attack_rating,
        "total_defenses": stats.total_defenses,
        "successful_defenses": stats.successful_defenses,
        "defense_rating": stats.defense_rating,
        "last_attack_at": to_epoch_ms(stats.last_attack_at),
        "last_raided_at": to_epoch_ms(stats.last_raided_at),
        "can_attack": next_attack_at is None or now >= next_attack_at,
        "next_attack_at": to_epoch_ms(next_attack_at),
        "is_immune": immune_until is not None and now < immune_until,
        "immune_until": to_epoch_ms(immune_until),
    }


def _cooldown_message(last_attack_at: datetime | None, now: datetime) -> str | None:
    ends = window_ends(last_attack_at, ATTACK_COOLDOWN)
    if ends is not None and now < ends:
        return (
            f"Raid cooldown active. You can attack again in "
            f"{minutes_remaining(ends, now)} minutes"
        )
    return None


def _immunity_message(last_raided_at: datetime | None, now: datetime) -> str | None:
    ends = window_ends(last_raided_at, DEFENSE_IMMUNITY)
    if ends is not None and now < ends:
        return (
            f"This player was recently raided and is protected for "
            f"{minutes_remaining(ends, now)} more minutes"
        )
    return None


async def _claim_attack_slot(db: AsyncSession, attacker_id: int, now: datetime) -> bool:
    """Stamp last_attack_at and count the attack only if the cooldown has elapsed."""
    result = await db.execute(
        update(RaidStats)
        .where(
            RaidStats.user_id == attacker_id,
            or_(
                RaidStats.last_attack_at.is_(None),
                RaidStats.last_attack_at <= now - ATTACK_COOLDOWN,
            ),
        )
        .values(last_attack_at=now, total_attacks=RaidStats.total_attacks + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _claim_defender(db: AsyncSession, defender_id: int, now: datetime) -> bool:
    """Stamp last_raided_at only if the defender's immunity window has elapsed."""
    result = await db.execute(
        update(RaidStats)
        .where(
            RaidStats.user_id == defender_id,
            or_(
                RaidStats.last_raided_at.is_(None),
                RaidStats.last_raided_at <= now - DEFENSE_IMMUNITY,
            ),
        )
        .values(last_raided_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _transfer_loot(
    db: AsyncSession,
    from_user_id: int,
    to_user_id: int,
    resources: dict[str, int],
    coins: int,
) -> None:
    amounts = {**resources, COIN_FIELD: coins}
    await db.execute(
        update(PlayerProgress)
        .where(PlayerProgress.user_id == from_user_id)
        .values(**{f: getattr(PlayerProgress, f) - n for f, n in amounts.items()})
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(PlayerProgress)
        .where(PlayerProgress.user_id == to_user_id)
        .values(**{f: getattr(PlayerProgress, f) + n for f, n in amounts.items()})
        .execution_options(synchronize_session=False)
    )


async def _public_name(db: AsyncSession, user_id: int) -> str:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    return user.public_name if user is not None else f"Player {user_id}"


# ---------------------------------------------------------------------------
# Launch
# ---------------------------------------------------------------------------


async def launch_raid(
    db: AsyncSession,
    attacker_id: int,
    defender_id: int | None,
    knight_ids: list[str] | None,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> RaidResult:
    """Validate and resolve one raid.

    Validation runs read-only, in order: required fields, self-raid, cooldown,
    knight ownership, party size, defender exists, defender immunity, castle
    level gap.  Any failure
    raises ValueError before anything is written.
    """
    now = now or utc_now()
    rng = rng or random.Random()

    if defender_id is None or not knight_ids:
        raise ValueError("Missing required fields: defender_id and knight_ids")
    if defender_id == attacker_id:
        raise ValueError("You cannot raid yourself")

    attacker_stats = await get_raid_stats(db, attacker_id)
    if attacker_stats is not None:
        message = _cooldown_message(attacker_stats.last_attack_at, now)
        if message:
            raise ValueError(message)

    attacker = await get_progress(db, attacker_id)
    owned = {k["id"]: k for k in (attacker.knights if attacker else [])}
    if len(set(knight_ids)) != len(knight_ids):
        raise ValueError("Each knight can only be sent once per raid")
    if any(kid not in owned for kid in knight_ids):
        raise ValueError("One or more selected knights do not belong to you")
    if len(knight_ids) > MAX_RAID_PARTY:
        raise ValueError(f"Maximum raid party size is {MAX_RAID_PARTY} knights")

    defender = await get_progress(db, defender_id)
    if defender is None:
        raise ValueError("Target player not found")

    defender_stats = await get_raid_stats(db, defender_id)
    if defender_stats is not None:
        message = _immunity_message(defender_stats.last_raided_at, now)
        if message:
            raise ValueError(message)

    if abs(attacker.castle_level - defender.castle_level) > MAX_CASTLE_LEVEL_GAP:
        raise ValueError(
            f"Castle level mismatch: your castle is level {attacker.castle_level}, "
            f"target castle is level {defender.castle_level}. "
            f"Raids are only allowed within {MAX_CASTLE_LEVEL_GAP} level"
        )

    # -- resolve -------------------------------------------------------------
    attack_party = [owned[kid] for kid in knight_ids]
    defense_party = select_raid_party(list(defender.knights))
    attack_power = party_power(attack_party)
    defense_power = party_power(defense_party)

    attack_roll, defense_roll, success = resolve_rolls(
        attack_power, defense_power, roll_variance(rng), roll_variance(rng)
    )

    resources_stolen: dict[str, int] = {}
    coins_stolen = 0
    if success:
        resources_stolen, coins_stolen = compute_loot(defender, roll_steal_pct(rng))

    # -- write ---------------------------------------------------------------
    attacker_stats = await get_or_create_raid_stats(db, attacker_id)
    defender_stats = await get_or_create_raid_stats(db, defender_id)

    if not await _claim_attack_slot(db, attacker_id, now):
        await db.refresh(attacker_stats)
        logger.warning("Attack cooldown for user %s claimed by a concurrent raid", attacker_id)
        raise ValueError(
            _cooldown_message(attacker_stats.last_attack_at, now) or "Raid cooldown active"
        )
    if not await _claim_defender(db, defender_id, now):
        await db.refresh(defender_stats)
        logger.warning("Immunity for user %s claimed by a concurrent raid", defender_id)
        raise ValueError(
            _immunity_message(defender_stats.last_raided_at, now)
            or "This player was recently raided"
        )
    await db.refresh(attacker_stats)
    await db.refresh(defender_stats)

    if success:
        await _transfer_loot(db, defender_id, attacker_id, resources_stolen, coins_stolen)
        await db.refresh(attacker)
        await db.refresh(defender)
        attacker_stats.successful_attacks += 1
        attacker_stats.attack_rating = clamp_rating(attacker_stats.attack_rating + ATTACK_WIN_DELTA)
        defender_stats.total_defenses += 1
        defender_stats.defense_rating = clamp_rating(
            defender_stats.defense_rating + DEFENSE_LOSS_DELTA
        )
    else:
        defender_stats.total_defenses += 1
        defender_stats.successful_defenses += 1
        defender_stats.defense_rating = clamp_rating(
            defender_stats.defense_rating + DEFENSE_WIN_DELTA
        )
        attacker_stats.attack_rating = clamp_rating(
            attacker_stats.attack_rating + ATTACK_LOSS_DELTA
        )

    history = RaidHistory(
        attacker_id=attacker_id,
        defender_id=defender_id,
        attacker_name=await _public_name(db, attacker_id),
        defender_name=await _public_name(db, defender_id),
        attacker_knight_ids=list(knight_ids),
        defender_knight_ids=[k["id"] for k in defense_party],
        attack_power=round(attack_power),
        defense_power=round(defense_power),
        success=success,
        resources_stolen=resources_stolen,
        coins_stolen=coins_stolen,
        created_at=now,
    )
    db.add(history)
    await db.flush()

    logger.info(
        "Raid %s: user %s (%.1f -> %.1f) vs user %s (%.1f -> %.1f) success=%s coins=%s",
        history.id, attacker_id, attack_power, attack_roll,
        defender_id, defense_power, defense_roll, success, coins_stolen,
    )

    return RaidResult(
        success=success,
        attack_power=round(attack_power),
        defense_power=round(defense_power),
        resources_stolen=resources_stolen,
        coins_stolen=coins_stolen,
        history_id=history.id,
    )


# ---------------------------------------------------------------------------
# Read paths
# ---------------------------------------------------------------------------


async def get_raid_history(
    db: AsyncSession, user_id: int, limit: int = RAID_HISTORY_LIMIT
) -> list[RaidHistory]:
    """Most recent raids the user took part in, newest first."""
    result = await db.execute(
        select(RaidHistory)
        .where(or_(RaidHistory.attacker_id == user_id, RaidHistory.defender_id == user_id))
        .order_by(RaidHistory.created_at.desc(), RaidHistory.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


def serialize_history(row: RaidHistory, viewer_id: int) -> dict:
    return {
        "id": row.id,
        "attacker_id": row.attacker_id,
        "attacker_name": row.attacker_name,
        "defender_id": row.defender_id,
        "defender_name": row.defender_name,
        "attacker_knight_ids": row.attacker_knight_ids,
        "defender_knight_ids": row.defender_knight_ids,
        "attack_power": row.attack_power,
        "defense_power": row.defense_power,
        "success": row.success,
        "resources_stolen": row.resources_stolen,
        "coins_stolen": row.coins_stolen,
        "role": "attacker" if row.attacker_id == viewer_id else "defender",
        "created_at": to_epoch_ms(row.created_at),
    }


async def get_raid_targets(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
    limit: int = RAID_TARGET_LIMIT,
) -> list[dict]:
    """Other players within castle-level range, weakest defense first."""
    now = now or utc_now()
    me = await get_or_create_progress(db, user_id)

    result = await db.execute(
        select(PlayerProgress, User, RaidStats)
        .join(User, User.id == PlayerProgress.user_id)
        .outerjoin(RaidStats, RaidStats.user_id == PlayerProgress.user_id)
        .where(
            PlayerProgress.user_id != user_id,
            PlayerProgress.castle_level.between(
                me.castle_level - MAX_CASTLE_LEVEL_GAP,
                me.castle_level + MAX_CASTLE_LEVEL_GAP,
            ),
        )
    )

    targets = []
    for progress, user, stats in result.all():
        immune_until = window_ends(stats.last_raided_at if stats else None, DEFENSE_IMMUNITY)
        targets.append(
            {
                "user_id": progress.user_id,
                "name": user.public_name,
                "castle_level": progress.castle_level,
                "defense_rating": stats.defense_rating if stats else STARTING_RATING,
                "defense_power": round(party_power(select_raid_party(list(progress.knights)))),
                "knight_count": len(progress.knights),
                "royal_coins": progress.royal_coins,
                "resources": {r: getattr(progress, r) for r in BASIC_RESOURCES},
                "is_immune": immune_until is not None and now < immune_until,
                "immune_until": to_epoch_ms(immune_until),
            }
        )

    targets.sort(key=lambda t: (t["defense_power"], t["user_id"]))
    return targets[:limit]
