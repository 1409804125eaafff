"""Kingdom actions: state, doctrines and tax."""

from sqlalchemy.ext.asyncio import AsyncSession

from app.handlers.registry import action
from app.models.user import User
from app.schemas.actions import AddTaxPayload, EmptyPayload, SetDoctrinePayload
from app.services.kingdom_service import (
    add_tax,
    load_kingdom,
    resolve_king_name,
    serialize_kingdom,
    set_doctrine,
)


@action("getKingdomState")
async def get_kingdom_state_action(db: AsyncSession, user: User, body: EmptyPayload) -> dict:
    state = await load_kingdom(db)
    king_name = await resolve_king_name(db, state.current_king_id)
    return serialize_kingdom(state, king_name)


@action("setKingdomDoctrine", SetDoctrinePayload)
async def set_doctrine_action(db: AsyncSession, user: User, body: SetDoctrinePayload) -> dict:
    state = await set_doctrine(db, user.id, body.category, body.doctrine)
    return {
        "king_free_changes_remaining": state.king_free_changes_remaining,
        "royal_treasury_balance": state.royal_treasury_balance,
        "active_doctrines": state.active_doctrines,
    }


@action("addTaxToKingdomTreasury", AddTaxPayload)
async def add_tax_action(db: AsyncSession, user: User, body: AddTaxPayload) -> dict:
    state = await add_tax(db, body.tax_amount)
    return {"royal_treasury_balance": state.royal_treasury_balance}
