"""SQLAlchemy models"""

from tvbingefriend_watch_history.models.base import Base
from tvbingefriend_watch_history.models.watched_item import WatchedItemRecord

__all__ = [
    "Base",
    "WatchedItemRecord",
]
