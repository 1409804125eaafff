"""Static definitions for kingdom doctrines.

The reigning king sets one doctrine in each of four categories.  Each doctrine
names a single game-balance modifier; the kingdom state reports the modifiers of
whatever doctrines are active.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class DoctrineCategory(str, enum.Enum):
    religious = "religious"
    economic = "economic"
    military = "military"
    cultural = "cultural"


@dataclass(frozen=True)
class Doctrine:
    doctrine_id: str
    name: str
    category: DoctrineCategory
    modifier_key: str
    modifier_value: float
    description: str = ""


_DOCTRINES: list[Doctrine] = [
    # ── RELIGIOUS ─────────────────────────────────────────────────────────────
    Doctrine(
        doctrine_id="old_faith",
        name="The Old Faith",
        category=DoctrineCategory.religious,
        modifier_key="quest_reward_pct",
        modifier_value=5,
        description="Quests pay out 5% more",
    ),
    Doctrine(
        doctrine_id="banana_cult",
        name="Cult of the Golden Banana",
        category=DoctrineCategory.religious,
        modifier_key="banana_yield_pct",
        modifier_value=15,
        description="Banana harvests yield 15% more",
    ),
    Doctrine(
        doctrine_id="secular_court",
        name="Secular Court",
        category=DoctrineCategory.religious,
        modifier_key="tax_rate_pct",
        modifier_value=-2,
        description="Royal tax is 2 points lower",
    ),
    # ── ECONOMIC ──────────────────────────────────────────────────────────────
    Doctrine(
        doctrine_id="free_market",
        name="Free Market",
        category=DoctrineCategory.economic,
        modifier_key="trade_fee_pct",
        modifier_value=-5,
        description="Market fees reduced by 5%",
    ),
    Doctrine(
        doctrine_id="royal_monopoly",
        name="Royal Monopoly",
        category=DoctrineCategory.economic,
        modifier_key="tax_rate_pct",
        modifier_value=3,
        description="Royal tax is 3 points higher",
    ),
    Doctrine(
        doctrine_id="peanut_standard",
        name="Peanut Standard",
        category=DoctrineCategory.economic,
        modifier_key="craft_cost_pct",
        modifier_value=-10,
        description="Crafting costs 10% fewer peanuts",
    ),
    # ── MILITARY ──────────────────────────────────────────────────────────────
    Doctrine(
        doctrine_id="balanced_levy",
        name="Balanced Levy",
        category=DoctrineCategory.military,
        modifier_key="recruit_cost_pct",
        modifier_value=0,
        description="No change to knight recruitment",
    ),
    Doctrine(
        doctrine_id="fortress_doctrine",
        name="Fortress Doctrine",
        category=DoctrineCategory.military,
        modifier_key="castle_upgrade_cost_pct",
        modifier_value=-10,
        description="Castle upgrades cost 10% less",
    ),
    Doctrine(
        doctrine_id="raider_doctrine",
        name="Raider Doctrine",
        category=DoctrineCategory.military,
        modifier_key="recruit_cost_pct",
        modifier_value=-10,
        description="Knights cost 10% less to recruit",
    ),
    # ── CULTURAL ──────────────────────────────────────────────────────────────
    Doctrine(
        doctrine_id="folk_traditions",
        name="Folk Traditions",
        category=DoctrineCategory.cultural,
        modifier_key="sandwich_yield_pct",
        modifier_value=10,
        description="Sandwich kitchens yield 10% more",
    ),
    Doctrine(
        doctrine_id="court_of_arts",
        name="Court of Arts",
        category=DoctrineCategory.cultural,
        modifier_key="bread_yield_pct",
        modifier_value=10,
        description="Bakeries yield 10% more",
    ),
    Doctrine(
        doctrine_id="scholars_guild",
        name="Scholars' Guild",
        category=DoctrineCategory.cultural,
        modifier_key="quest_xp_pct",
        modifier_value=10,
        description="Quests grant 10% more experience",
    ),
]

_DOCTRINE_INDEX: dict[str, Doctrine] = {d.doctrine_id: d for d in _DOCTRINES}

# Seeded into empty slots on coronation
DEFAULT_DOCTRINES: dict[str, str] = {
    DoctrineCategory.religious.value: "old_faith",
    DoctrineCategory.economic.value: "free_market",
    DoctrineCategory.military.value: "balanced_levy",
    DoctrineCategory.cultural.value: "folk_traditions",
}


def get_doctrine_categories() -> list[str]:
    return [c.value for c in DoctrineCategory]


def get_doctrine(doctrine_id: str) -> Doctrine:
    """Return a Doctrine by id.  Raises KeyError if not found."""
    if doctrine_id not in _DOCTRINE_INDEX:
        raise KeyError(f"Unknown doctrine: {doctrine_id}")
    return _DOCTRINE_INDEX[doctrine_id]


def list_doctrines(category: str | None = None) -> list[Doctrine]:
    if category is None:
        return list(_DOCTRINES)
    return [d for d in _DOCTRINES if d.category.value == category]


def empty_doctrine_slots() -> dict[str, str | None]:
    return {category: None for category in get_doctrine_categories()}
