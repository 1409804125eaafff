"""Action registry: maps action names to typed handlers.

Each handler declares the pydantic model its payload must satisfy and returns
a JSON-serialisable dict.  The set of actions is fixed at import time and can
be listed with list_actions().
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.schemas.actions import EmptyPayload

Handler = Callable[[AsyncSession, User, Any], Awaitable[dict]]


@dataclass(frozen=True)
class ActionSpec:
    name: str
    handler: Handler
    payload_model: type[BaseModel]


_ACTIONS: dict[str, ActionSpec] = {}


def action(name: str, payload_model: type[BaseModel] = EmptyPayload):
    """Register the decorated coroutine as the handler for *name*."""

    def decorator(handler: Handler) -> Handler:
        if name in _ACTIONS:
            raise ValueError(f"Action already registered: {name}")
        _ACTIONS[name] = ActionSpec(name=name, handler=handler, payload_model=payload_model)
        return handler

    return decorator


def get_action(name: str) -> ActionSpec:
    """Return the ActionSpec for *name*.  Raises LookupError if unknown."""
    if name not in _ACTIONS:
        raise LookupError(f"Unknown action: {name}")
    return _ACTIONS[name]


def list_actions() -> list[str]:
    return sorted(_ACTIONS)


async def dispatch(db: AsyncSession, user: User, name: str, payload: dict) -> dict:
    """Validate *payload* against the action's model and run its handler.

    Raises LookupError, pydantic.ValidationError, ValueError or PermissionError;
    the caller owns commit/rollback.
    """
    entry = get_action(name)
    body = entry.payload_model.model_validate(payload or {})
    return await entry.handler(db, user, body)
