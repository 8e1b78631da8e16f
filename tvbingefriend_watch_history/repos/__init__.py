"""Repository classes"""

from tvbingefriend_watch_history.repos.watched_repository import WatchedRepository

__all__ = [
    "WatchedRepository",
]
