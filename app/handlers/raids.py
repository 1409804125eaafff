"""Raid actions: targets, launch, history and stats."""

from dataclasses import asdict

from sqlalchemy.ext.asyncio import AsyncSession

from app.handlers.registry import action
from app.models.user import User
from app.schemas.actions import EmptyPayload, LaunchRaidPayload
from app.services.raid_service import (
    get_raid_history,
    get_raid_stats,
    get_raid_targets,
    launch_raid,
    serialize_history,
    serialize_raid_stats,
)


@action("getRaidTargets")
async def get_raid_targets_action(db: AsyncSession, user: User, body: EmptyPayload) -> dict:
    return {"targets": await get_raid_targets(db, user.id)}


@action("launchRaid", LaunchRaidPayload)
async def launch_raid_action(db: AsyncSession, user: User, body: LaunchRaidPayload) -> dict:
    result = await launch_raid(db, user.id, body.defender_id, body.knight_ids)
    return asdict(result)


@action("getRaidHistory")
async def get_raid_history_action(db: AsyncSession, user: User, body: EmptyPayload) -> dict:
    rows = await get_raid_history(db, user.id)
    return {"history": [serialize_history(row, user.id) for row in rows]}


@action("getRaidStats")
async def get_raid_stats_action(db: AsyncSession, user: User, body: EmptyPayload) -> dict:
    return serialize_raid_stats(await get_raid_stats(db, user.id))
