"""Screen state snapshots"""

from tvbingefriend_watch_history.state.history_state import HistoryPage, HistoryState, WatchedItem
from tvbingefriend_watch_history.state.recommendations_state import RecommendationItem, RecommendationsState

__all__ = [
    "HistoryPage",
    "HistoryState",
    "WatchedItem",
    "RecommendationItem",
    "RecommendationsState",
]
