"""Action-dispatch router: the single entry point for realm actions.

Body: {"action": str, "payload": dict}
Errors are returned as {"error": str}.  Authentication is checked before the
body is read, so an anonymous request is always answered with 401.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_optional_user
from app.handlers import dispatch, list_actions
from app.models.user import User
from app.schemas.actions import ActionRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/actions", tags=["actions"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"Invalid field '{location}': {first.get('msg', 'invalid value')}"


@router.get("")
async def list_actions_endpoint():
    """Return the names of every registered action."""
    return {"actions": list_actions()}


@router.post("")
async def dispatch_action_endpoint(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
):
    if current_user is None:
        return _error(status.HTTP_401_UNAUTHORIZED, "Not authenticated")
    user_id = current_user.id

    try:
        raw = await request.json()
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, "Request body must be a JSON object")
    action_name = raw.get("action") if isinstance(raw, dict) else None

    try:
        body = ActionRequest.model_validate(raw)
        data = await dispatch(db, current_user, body.action, body.payload)
        await db.commit()
    except LookupError as e:
        await db.rollback()
        return _error(status.HTTP_400_BAD_REQUEST, str(e.args[0]) if e.args else str(e))
    except ValidationError as e:
        await db.rollback()
        return _error(status.HTTP_400_BAD_REQUEST, _validation_message(e))
    except PermissionError as e:
        await db.rollback()
        return _error(status.HTTP_403_FORBIDDEN, str(e))
    except ValueError as e:
        await db.rollback()
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Action %s failed for user %s", action_name, user_id)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
    except Exception:
        await db.rollback()
        logger.exception("Unexpected error in action %s for user %s", action_name, user_id)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    return {"data": data}
