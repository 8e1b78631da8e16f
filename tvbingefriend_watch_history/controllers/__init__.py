"""Screen controllers"""

from .history_controller import HistoryController
from .recommendations_controller import RecommendationsController

__all__ = ["HistoryController", "RecommendationsController"]
