"""Kingdom service: the royal election, doctrines and the royal treasury.

The kingdom is a single row (id == KINGDOM_STATE_ID).  Reading it runs the
election lazily: when there is no king, no election date, or the election date
has passed, the player with the most royal coins (pocket + personal treasury)
is crowned for another ELECTION_INTERVAL and receives one free doctrine change.

Once the free change is spent, each further doctrine change costs
DOCTRINE_CHANGE_COST from the royal treasury.  The treasury is fed by tax.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.data.doctrines import (
    DEFAULT_DOCTRINES,
    empty_doctrine_slots,
    get_doctrine,
    get_doctrine_categories,
)
from app.data.policy import (
    COIN_FIELD,
    DOCTRINE_CHANGE_COST,
    ELECTION_INTERVAL,
    FREE_DOCTRINE_CHANGES,
    NO_RULER_NAME,
)
from app.models.kingdom import KINGDOM_STATE_ID, KingdomState
from app.models.player_progress import PlayerProgress
from app.models.user import User
from app.timeutils import as_utc, to_epoch_ms, utc_now

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Kingdom state helpers
# ---------------------------------------------------------------------------


async def get_kingdom_state(db: AsyncSession) -> KingdomState | None:
    result = await db.execute(
        select(KingdomState).where(KingdomState.id == KINGDOM_STATE_ID)
    )
    return result.scalar_one_or_none()


async def get_or_create_kingdom_state(db: AsyncSession) -> KingdomState:
    """Return the kingdom row, creating an empty one (no king, no treasury) if absent."""
    state = await get_kingdom_state(db)
    if state is None:
        state = KingdomState(
            id=KINGDOM_STATE_ID,
            current_king_id=None,
            king_crowned_at=None,
            next_election_at=None,
            king_free_changes_remaining=0,
            royal_treasury_balance=0,
            active_doctrines=empty_doctrine_slots(),
        )
        db.add(state)
        await db.flush()
    return state


def election_due(state: KingdomState, now: datetime) -> bool:
    next_election_at = as_utc(state.next_election_at)
    return (
        state.current_king_id is None
        or next_election_at is None
        or next_election_at <= now
    )


# ---------------------------------------------------------------------------
# Election
# ---------------------------------------------------------------------------


async def rank_wealth(db: AsyncSession) -> list[tuple[int, int]]:
    """(user_id, pocket + treasury royal coins) for every player, richest first.

    Ties go to the lowest user id.
    """
    result = await db.execute(
        select(PlayerProgress.user_id, PlayerProgress.royal_coins, PlayerProgress.treasury)
    )
    ranking = [
        (user_id, (coins or 0) + int((treasury or {}).get(COIN_FIELD, 0) or 0))
        for user_id, coins, treasury in result.all()
    ]
    ranking.sort(key=lambda entry: (-entry[1], entry[0]))
    return ranking


async def run_election_if_due(
    db: AsyncSession, state: KingdomState, now: datetime | None = None
) -> bool:
    """Crown the wealthiest player if an election is due.  Returns True if a coronation happened.

    The coronation is a conditional UPDATE that re-checks the due condition, so
    two requests racing past election_due() crown at most once.
    """
    now = now or utc_now()
    if not election_due(state, now):
        return False

    ranking = await rank_wealth(db)
    if not ranking:
        return False
    king_id, wealth = ranking[0]

    doctrines = dict(state.active_doctrines or {})
    if not any(doctrines.values()):
        doctrines = dict(DEFAULT_DOCTRINES)

    result = await db.execute(
        update(KingdomState)
        .where(
            KingdomState.id == KINGDOM_STATE_ID,
            or_(
                KingdomState.current_king_id.is_(None),
                KingdomState.next_election_at.is_(None),
                KingdomState.next_election_at <= now,
            ),
        )
        .values(
            current_king_id=king_id,
            king_crowned_at=now,
            next_election_at=now + ELECTION_INTERVAL,
            king_free_changes_remaining=FREE_DOCTRINE_CHANGES,
            active_doctrines=doctrines,
        )
        .execution_options(synchronize_session=False)
    )
    await db.refresh(state)

    if result.rowcount != 1:
        logger.warning("Coronation skipped: another request already ran this election")
        return False

    logger.info("User %s crowned king with %s royal coins", king_id, wealth)
    return True


async def resolve_king_name(db: AsyncSession, king_id: int | None) -> str:
    if king_id is None:
        return NO_RULER_NAME
    result = await db.execute(select(User).where(User.id == king_id))
    user = result.scalar_one_or_none()
    return user.public_name if user is not None else NO_RULER_NAME


async def load_kingdom(db: AsyncSession, now: datetime | None = None) -> KingdomState:
    """Read path: lazily create the singleton and run any due election."""
    state = await get_or_create_kingdom_state(db)
    await run_election_if_due(db, state, now)
    return state


def active_modifiers(doctrines: dict) -> dict[str, float]:
    modifiers: dict[str, float] = {}
    for doctrine_id in doctrines.values():
        if not doctrine_id:
            continue
        try:
            doctrine = get_doctrine(doctrine_id)
        except KeyError:
            continue
        modifiers[doctrine.modifier_key] = (
            modifiers.get(doctrine.modifier_key, 0) + doctrine.modifier_value
        )
    return modifiers


def serialize_kingdom(state: KingdomState, king_name: str) -> dict:
    doctrines = {**empty_doctrine_slots(), **(state.active_doctrines or {})}
    return {
        "current_king_id": state.current_king_id,
        "king_name": king_name,
        "king_crowned_at": to_epoch_ms(state.king_crowned_at),
        "next_election_at": to_epoch_ms(state.next_election_at),
        "king_free_changes_remaining": state.king_free_changes_remaining,
        "royal_treasury_balance": state.royal_treasury_balance,
        "active_doctrines": doctrines,
        "active_modifiers": active_modifiers(doctrines),
    }


# ---------------------------------------------------------------------------
# Doctrine changes
# ---------------------------------------------------------------------------


async def set_doctrine(
    db: AsyncSession,
    user_id: int,
    category: str,
    doctrine: str,
    now: datetime | None = None,
) -> KingdomState:
    """Set *doctrine* in *category* on behalf of the king.

    Spends the free change if one remains, otherwise debits exactly
    DOCTRINE_CHANGE_COST from the royal treasury.  Raises PermissionError when
    the caller is not the king and ValueError on bad input or low funds.
    A reign whose election date has passed is settled first, so a lapsed king
    cannot keep spending.
    """
    state = await get_kingdom_state(db)
    if state is None:
        raise ValueError("Kingdom state not initialized")
    await run_election_if_due(db, state, now)
    if state.current_king_id != user_id:
        raise PermissionError("Only the current king can change doctrines")

    categories = get_doctrine_categories()
    if category not in categories:
        raise ValueError(
            f"Invalid doctrine category: {category}. Must be one of: {', '.join(categories)}"
        )
    try:
        chosen = get_doctrine(doctrine)
    except KeyError:
        chosen = None
    if chosen is None or chosen.category.value != category:
        raise ValueError(f"Unknown {category} doctrine: {doctrine}")

    is_king = and_(KingdomState.id == KINGDOM_STATE_ID, KingdomState.current_king_id == user_id)

    # Free change first; only when none remain is the treasury charged
    free = await db.execute(
        update(KingdomState)
        .where(is_king, KingdomState.king_free_changes_remaining > 0)
        .values(king_free_changes_remaining=KingdomState.king_free_changes_remaining - 1)
        .execution_options(synchronize_session=False)
    )
    paid_with = "free change"
    if free.rowcount != 1:
        paid = await db.execute(
            update(KingdomState)
            .where(
                is_king,
                KingdomState.king_free_changes_remaining <= 0,
                KingdomState.royal_treasury_balance >= DOCTRINE_CHANGE_COST,
            )
            .values(
                royal_treasury_balance=KingdomState.royal_treasury_balance - DOCTRINE_CHANGE_COST
            )
            .execution_options(synchronize_session=False)
        )
        await db.refresh(state)
        if paid.rowcount != 1:
            if state.current_king_id != user_id:
                raise PermissionError("Only the current king can change doctrines")
            raise ValueError(
                f"Not enough treasury balance. Need {DOCTRINE_CHANGE_COST} coins, "
                f"have {state.royal_treasury_balance}"
            )
        paid_with = f"{DOCTRINE_CHANGE_COST} treasury coins"
    else:
        await db.refresh(state)

    new_doctrines = {**empty_doctrine_slots(), **(state.active_doctrines or {})}
    new_doctrines[category] = doctrine
    state.active_doctrines = new_doctrines
    await db.flush()

    logger.info("King %s set %s doctrine to %s (%s)", user_id, category, doctrine, paid_with)
    return state


# ---------------------------------------------------------------------------
# Tax
# ---------------------------------------------------------------------------


async def add_tax(db: AsyncSession, tax_amount: int) -> KingdomState:
    """Credit *tax_amount* to the royal treasury."""
    if isinstance(tax_amount, bool) or not isinstance(tax_amount, int) or tax_amount <= 0:
        raise ValueError("taxAmount must be a positive integer")

    state = await get_kingdom_state(db)
    if state is None:
        raise ValueError("Kingdom state not initialized")

    await db.execute(
        update(KingdomState)
        .where(KingdomState.id == KINGDOM_STATE_ID)
        .values(royal_treasury_balance=KingdomState.royal_treasury_balance + tax_amount)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(state)

    logger.info("Added %s coins of tax; treasury now %s", tax_amount, state.royal_treasury_balance)
    return state
