"""Profile and progress actions."""

from sqlalchemy.ext.asyncio import AsyncSession

from app.handlers.registry import action
from app.models.user import User
from app.schemas.actions import (
    EmptyPayload,
    RecruitKnightPayload,
    TreasuryTransferPayload,
    UpdateProfilePayload,
)
from app.services.progress_service import (
    deposit_to_treasury,
    get_or_create_progress,
    recruit_knight,
    serialize_progress,
    withdraw_from_treasury,
)


def _profile(user: User) -> dict:
    return {"id": user.id, "username": user.username, "display_name": user.public_name}


@action("getProfile")
async def get_profile(db: AsyncSession, user: User, body: EmptyPayload) -> dict:
    return _profile(user)


@action("updateProfile", UpdateProfilePayload)
async def update_profile(db: AsyncSession, user: User, body: UpdateProfilePayload) -> dict:
    user.display_name = body.display_name.strip()
    await db.flush()
    return _profile(user)


@action("getProgress")
async def get_progress_action(db: AsyncSession, user: User, body: EmptyPayload) -> dict:
    progress = await get_or_create_progress(db, user.id)
    return serialize_progress(progress)


@action("recruitKnight", RecruitKnightPayload)
async def recruit_knight_action(db: AsyncSession, user: User, body: RecruitKnightPayload) -> dict:
    progress, knight = await recruit_knight(db, user.id, body.name, body.tier)
    return {"knight": knight, "royal_coins": progress.royal_coins}


@action("depositToTreasury", TreasuryTransferPayload)
async def deposit_action(db: AsyncSession, user: User, body: TreasuryTransferPayload) -> dict:
    progress = await deposit_to_treasury(db, user.id, body.resource, body.amount)
    return serialize_progress(progress)


@action("withdrawFromTreasury", TreasuryTransferPayload)
async def withdraw_action(db: AsyncSession, user: User, body: TreasuryTransferPayload) -> dict:
    progress = await withdraw_from_treasury(db, user.id, body.resource, body.amount)
    return serialize_progress(progress)
