from app.models.base import Base  # noqa: F401
from app.models.kingdom import KINGDOM_STATE_ID, KingdomState  # noqa: F401
from app.models.player_progress import PlayerProgress  # noqa: F401
from app.models.raid import RaidHistory, RaidStats  # noqa: F401
from app.models.user import User  # noqa: F401
