"""Service classes"""

from .history_api_client import HistoryAPIClient

__all__ = ["HistoryAPIClient"]
