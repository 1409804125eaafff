# Importing the handler modules registers their actions
from app.handlers import kingdom, profile, raids  # noqa: F401
from app.handlers.registry import dispatch, get_action, list_actions  # noqa: F401
