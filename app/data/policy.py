"""Game-balance constants for raids, the kingdom and player progress.

Every tunable number the realm rules depend on lives here so that services and
tests read the same values.
"""

from datetime import timedelta

# ── Currencies ────────────────────────────────────────────────────────────────
# Consumable resources carried in a player's pocket (and mirrored in the treasury)
BASIC_RESOURCES: tuple[str, ...] = ("bananas", "peanuts", "bread", "sandwiches")
COIN_FIELD = "royal_coins"
CURRENCY_FIELDS: tuple[str, ...] = (COIN_FIELD, *BASIC_RESOURCES)

STARTING_COINS = 500
STARTING_RESOURCES = 50
STARTING_CASTLE_LEVEL = 1

# ── Knights ───────────────────────────────────────────────────────────────────
# tier -> power multiplier
TIER_MULTIPLIERS: dict[int, int] = {1: 1, 2: 3, 3: 5, 4: 10}

# tier -> royal coin cost to recruit
KNIGHT_RECRUIT_COSTS: dict[int, int] = {1: 100, 2: 400, 3: 1200, 4: 5000}
KNIGHT_STAT_MIN = 1
KNIGHT_STAT_MAX = 10

# ── Raids ─────────────────────────────────────────────────────────────────────
MAX_RAID_PARTY = 15
POWER_VARIANCE_MIN = 0.95
POWER_VARIANCE_MAX = 1.05
STEAL_PCT_MIN = 0.05
STEAL_PCT_MAX = 0.15
MAX_CASTLE_LEVEL_GAP = 1

ATTACK_COOLDOWN = timedelta(hours=6)
DEFENSE_IMMUNITY = timedelta(hours=1)

RATING_MIN = 50
RATING_MAX = 300
STARTING_RATING = 100
ATTACK_WIN_DELTA = 10
ATTACK_LOSS_DELTA = -5
DEFENSE_WIN_DELTA = 10
DEFENSE_LOSS_DELTA = -10

RAID_HISTORY_LIMIT = 50
RAID_TARGET_LIMIT = 20

# ── Kingdom ───────────────────────────────────────────────────────────────────
ELECTION_INTERVAL = timedelta(days=30)
FREE_DOCTRINE_CHANGES = 1
DOCTRINE_CHANGE_COST = 1000
NO_RULER_NAME = "No Ruler"
