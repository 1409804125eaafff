"""Tests for the kingdom: election, doctrines and the royal treasury.

Covers:
- Doctrine catalogue static data
- First read with no players creates an empty kingdom
- Election crowns the richest player (pocket + treasury coins), seeds doctrines
- Re-reading inside the election window changes nothing
- Election re-runs once the window has passed
- Doctrine changes: free change first, then exactly 1000 treasury coins
- Doctrine changes rejected for non-kings, bad categories/doctrines, low funds
- Tax: credited to the treasury, rejected when not positive or uninitialised
"""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.data.doctrines import (
    DEFAULT_DOCTRINES,
    DoctrineCategory,
    get_doctrine,
    get_doctrine_categories,
    list_doctrines,
)
from app.data.policy import DOCTRINE_CHANGE_COST, NO_RULER_NAME
from app.models.player_progress import PlayerProgress
from app.models.user import User
from app.services.kingdom_service import (
    active_modifiers,
    add_tax,
    election_due,
    get_kingdom_state,
    get_or_create_kingdom_state,
    load_kingdom,
    rank_wealth,
    resolve_king_name,
    run_election_if_due,
    serialize_kingdom,
    set_doctrine,
)
from app.timeutils import as_utc, to_epoch_ms


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _player(
    db: AsyncSession, tag: str, coins: int, parked_coins: int = 0, display_name: str | None = None
) -> User:
    user = User(
        email=f"kingdom_{tag}@test.com",
        username=f"kingdom_{tag}",
        display_name=display_name,
        hashed_password="x",
    )
    db.add(user)
    await db.flush()
    db.add(
        PlayerProgress(
            user_id=user.id,
            royal_coins=coins,
            treasury={"royal_coins": parked_coins, "bananas": 0, "peanuts": 0, "bread": 0, "sandwiches": 0},
        )
    )
    await db.flush()
    return user


async def _crowned_kingdom(db: AsyncSession, now, treasury: int = 0, free_changes: int = 1):
    king = await _player(db, "king", coins=5000)
    state = await load_kingdom(db, now)
    state.royal_treasury_balance = treasury
    state.king_free_changes_remaining = free_changes
    await db.flush()
    return king, state


# ---------------------------------------------------------------------------
# Static data
# ---------------------------------------------------------------------------


class TestDoctrineData:
    def test_four_categories(self):
        assert get_doctrine_categories() == ["religious", "economic", "military", "cultural"]

    def test_each_category_has_doctrines(self):
        for category in DoctrineCategory:
            assert len(list_doctrines(category.value)) >= 2

    def test_defaults_belong_to_their_category(self):
        assert set(DEFAULT_DOCTRINES) == set(get_doctrine_categories())
        for category, doctrine_id in DEFAULT_DOCTRINES.items():
            assert get_doctrine(doctrine_id).category.value == category

    def test_doctrine_ids_unique(self):
        ids = [d.doctrine_id for d in list_doctrines()]
        assert len(ids) == len(set(ids))

    def test_unknown_doctrine_raises(self):
        with pytest.raises(KeyError):
            get_doctrine("anarchy")

    def test_active_modifiers_sums_by_key(self):
        modifiers = active_modifiers({"economic": "royal_monopoly", "religious": "secular_court"})
        assert modifiers == {"tax_rate_pct": 1}

    def test_active_modifiers_skips_empty_slots(self):
        assert active_modifiers({"economic": None}) == {}


# ---------------------------------------------------------------------------
# Election
# ---------------------------------------------------------------------------


class TestElection:
    async def test_first_read_without_players_creates_empty_kingdom(self, db_session: AsyncSession, now):
        state = await load_kingdom(db_session, now)

        assert state.id == 1
        assert state.current_king_id is None
        assert state.next_election_at is None
        assert state.royal_treasury_balance == 0
        assert state.active_doctrines == {c: None for c in get_doctrine_categories()}

        king_name = await resolve_king_name(db_session, state.current_king_id)
        data = serialize_kingdom(state, king_name)
        assert data["king_name"] == NO_RULER_NAME
        assert data["king_crowned_at"] is None
        assert data["next_election_at"] is None

    async def test_richest_player_crowned_counting_treasury(self, db_session: AsyncSession, now):
        await _player(db_session, "pocket", coins=1000)
        saver = await _player(db_session, "saver", coins=600, parked_coins=500, display_name="Lady Saver")

        state = await load_kingdom(db_session, now)

        assert state.current_king_id == saver.id
        assert as_utc(state.king_crowned_at) == now
        assert as_utc(state.next_election_at) == now + timedelta(days=30)
        assert state.king_free_changes_remaining == 1
        assert state.active_doctrines == DEFAULT_DOCTRINES
        assert await resolve_king_name(db_session, state.current_king_id) == "Lady Saver"

    async def test_rank_wealth_tie_goes_to_lowest_id(self, db_session: AsyncSession):
        first = await _player(db_session, "first", coins=700)
        second = await _player(db_session, "second", coins=700)
        ranking = await rank_wealth(db_session)
        assert ranking == [(first.id, 700), (second.id, 700)]
        assert ranking[0][0] < second.id

    async def test_repeated_reads_inside_window_are_stable(self, db_session: AsyncSession, now):
        first_king = await _player(db_session, "first", coins=1000)
        state = await load_kingdom(db_session, now)
        next_election = as_utc(state.next_election_at)

        # someone richer appears, but the window is still open
        await _player(db_session, "richer", coins=99999)
        for days in (1, 10, 29):
            state = await load_kingdom(db_session, now + timedelta(days=days))
            assert state.current_king_id == first_king.id
            assert as_utc(state.next_election_at) == next_election

    async def test_election_reruns_when_window_passes(self, db_session: AsyncSession, now):
        await _player(db_session, "first", coins=1000)
        state = await load_kingdom(db_session, now)
        state.king_free_changes_remaining = 0
        state.active_doctrines = {**DEFAULT_DOCTRINES, "military": "raider_doctrine"}
        await db_session.flush()

        richer = await _player(db_session, "richer", coins=99999)
        later = now + timedelta(days=30)
        state = await load_kingdom(db_session, later)

        assert state.current_king_id == richer.id
        assert as_utc(state.king_crowned_at) == later
        assert as_utc(state.next_election_at) == later + timedelta(days=30)
        assert state.king_free_changes_remaining == 1
        # existing doctrines survive a coronation
        assert state.active_doctrines["military"] == "raider_doctrine"

    async def test_election_due(self, db_session: AsyncSession, now):
        await _player(db_session, "k", coins=10)
        state = await load_kingdom(db_session, now)
        assert election_due(state, now + timedelta(days=29)) is False
        assert election_due(state, now + timedelta(days=30)) is True

    async def test_serialized_timestamps_are_epoch_ms(self, db_session: AsyncSession, now):
        await _player(db_session, "k", coins=10)
        state = await load_kingdom(db_session, now)
        data = serialize_kingdom(state, "kingdom_k")
        assert data["king_crowned_at"] == to_epoch_ms(now)
        assert data["next_election_at"] == to_epoch_ms(now + timedelta(days=30))
        assert data["active_modifiers"]


# ---------------------------------------------------------------------------
# Doctrine changes
# ---------------------------------------------------------------------------


class TestDoctrineChanges:
    async def test_free_change_consumed_without_charge(self, db_session: AsyncSession, now):
        king, _ = await _crowned_kingdom(db_session, now, treasury=5000, free_changes=1)

        state = await set_doctrine(db_session, king.id, "military", "raider_doctrine", now=now)

        assert state.king_free_changes_remaining == 0
        assert state.royal_treasury_balance == 5000
        assert state.active_doctrines["military"] == "raider_doctrine"

    async def test_paid_change_debits_exactly_cost(self, db_session: AsyncSession, now):
        king, _ = await _crowned_kingdom(db_session, now, treasury=5000, free_changes=1)

        await set_doctrine(db_session, king.id, "military", "raider_doctrine", now=now)
        state = await set_doctrine(db_session, king.id, "economic", "royal_monopoly", now=now)

        assert state.king_free_changes_remaining == 0
        assert state.royal_treasury_balance == 5000 - DOCTRINE_CHANGE_COST
        assert state.active_doctrines["economic"] == "royal_monopoly"
        assert state.active_doctrines["military"] == "raider_doctrine"

    async def test_exact_cost_balance_allowed(self, db_session: AsyncSession, now):
        king, _ = await _crowned_kingdom(db_session, now, treasury=1000, free_changes=0)
        state = await set_doctrine(db_session, king.id, "cultural", "court_of_arts", now=now)
        assert state.royal_treasury_balance == 0

    async def test_insufficient_treasury_rejected(self, db_session: AsyncSession, now):
        king, _ = await _crowned_kingdom(db_session, now, treasury=500, free_changes=0)

        with pytest.raises(ValueError, match="Not enough treasury balance. Need 1000 coins, have 500"):
            await set_doctrine(db_session, king.id, "religious", "banana_cult", now=now)

        state = await get_kingdom_state(db_session)
        assert state.royal_treasury_balance == 500
        assert state.king_free_changes_remaining == 0
        assert state.active_doctrines["religious"] == DEFAULT_DOCTRINES["religious"]

    async def test_non_king_rejected(self, db_session: AsyncSession, now):
        await _crowned_kingdom(db_session, now, treasury=5000)
        peasant = await _player(db_session, "peasant", coins=1)

        with pytest.raises(PermissionError, match="king"):
            await set_doctrine(db_session, peasant.id, "military", "raider_doctrine", now=now)

    async def test_invalid_category_rejected(self, db_session: AsyncSession, now):
        king, _ = await _crowned_kingdom(db_session, now)
        with pytest.raises(ValueError, match="Invalid doctrine category"):
            await set_doctrine(db_session, king.id, "culinary", "raider_doctrine", now=now)

    async def test_doctrine_from_other_category_rejected(self, db_session: AsyncSession, now):
        king, _ = await _crowned_kingdom(db_session, now)
        with pytest.raises(ValueError, match="Unknown military doctrine"):
            await set_doctrine(db_session, king.id, "military", "banana_cult", now=now)

        state = await get_kingdom_state(db_session)
        assert state.king_free_changes_remaining == 1

    async def test_uninitialised_kingdom_rejected(self, db_session: AsyncSession):
        with pytest.raises(ValueError, match="not initialized"):
            await set_doctrine(db_session, 1, "military", "raider_doctrine")

    async def test_lapsed_reign_settled_before_change(self, db_session: AsyncSession, now):
        old_king, _ = await _crowned_kingdom(db_session, now, treasury=5000, free_changes=1)
        challenger = await _player(db_session, "challenger", coins=99999)
        later = now + timedelta(days=31)

        with pytest.raises(PermissionError, match="king"):
            await set_doctrine(db_session, old_king.id, "military", "raider_doctrine", now=later)

        state = await get_kingdom_state(db_session)
        assert state.current_king_id == challenger.id
        assert state.royal_treasury_balance == 5000
        assert state.active_doctrines["military"] == DEFAULT_DOCTRINES["military"]

        state = await set_doctrine(db_session, challenger.id, "military", "raider_doctrine", now=later)
        assert state.king_free_changes_remaining == 0
        assert state.royal_treasury_balance == 5000


# ---------------------------------------------------------------------------
# Concurrent requests (two sessions on the same database)
# ---------------------------------------------------------------------------


class TestConcurrentKingdomWrites:
    async def test_coronation_applied_once(self, db_engine, now):
        factory = async_sessionmaker(db_engine, expire_on_commit=False)
        async with factory() as setup:
            rich = await _player(setup, "rich", coins=1000)
            await get_or_create_kingdom_state(setup)
            await setup.commit()

        async with factory() as session_a, factory() as session_b:
            stale = await get_kingdom_state(session_a)
            assert election_due(stale, now)

            await load_kingdom(session_b, now)
            await session_b.commit()

            crowned = await run_election_if_due(session_a, stale, now + timedelta(minutes=1))
            assert crowned is False
            assert stale.current_king_id == rich.id
            assert as_utc(stale.king_crowned_at) == now
            assert as_utc(stale.next_election_at) == now + timedelta(days=30)
            await session_a.rollback()

    async def test_free_change_spent_once(self, db_engine, now):
        factory = async_sessionmaker(db_engine, expire_on_commit=False)
        async with factory() as setup:
            king = await _player(setup, "king", coins=5000)
            await load_kingdom(setup, now)
            await setup.commit()

        async with factory() as session_a, factory() as session_b:
            stale = await get_kingdom_state(session_a)
            assert stale.king_free_changes_remaining == 1

            await set_doctrine(session_b, king.id, "military", "raider_doctrine", now=now)
            await session_b.commit()

            with pytest.raises(ValueError, match="Need 1000 coins, have 0"):
                await set_doctrine(session_a, king.id, "economic", "royal_monopoly", now=now)
            await session_a.rollback()

        async with factory() as check:
            state = await get_kingdom_state(check)
            assert state.king_free_changes_remaining == 0
            assert state.royal_treasury_balance == 0
            assert state.active_doctrines["military"] == "raider_doctrine"
            assert state.active_doctrines["economic"] == DEFAULT_DOCTRINES["economic"]


# ---------------------------------------------------------------------------
# Tax
# ---------------------------------------------------------------------------


class TestTax:
    async def test_tax_added_to_treasury(self, db_session: AsyncSession, now):
        await load_kingdom(db_session, now)
        await add_tax(db_session, 250)
        state = await add_tax(db_session, 50)
        assert state.royal_treasury_balance == 300

    @pytest.mark.parametrize("amount", [0, -10, True, 2.5])
    async def test_non_positive_or_non_integer_tax_rejected(self, db_session: AsyncSession, now, amount):
        await load_kingdom(db_session, now)
        with pytest.raises(ValueError, match="positive integer"):
            await add_tax(db_session, amount)

    async def test_tax_before_initialisation_rejected(self, db_session: AsyncSession):
        with pytest.raises(ValueError, match="not initialized"):
            await add_tax(db_session, 100)
