"""Client for the watch history and recommendations HTTP API"""
from typing import Callable, List, Optional
import asyncio
import logging
import requests

from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from tvbingefriend_watch_history.config import get_api_base_url, get_login_url, get_request_timeout
from tvbingefriend_watch_history.errors import NotFound, TransportError, Unauthorized, UnknownError
from tvbingefriend_watch_history.state import HistoryPage, RecommendationItem, WatchedItem

logger = logging.getLogger(__name__)


class HistoryAPIClient:
    """
    HTTP client for the user's watch history and recommendation feed.

    Status codes are mapped once, here:
        401 -> Unauthorized (after calling `on_unauthorized`, on `callback_loop` when set)
        404 on delete -> NotFound
        any other non-2xx -> TransportError(status)
    Connection failures become TransportError(None); unreadable bodies become UnknownError.
    """

    def __init__(
            self,
            base_url: Optional[str] = None,
            timeout: Optional[int] = None,
            on_unauthorized: Optional[Callable[[], None]] = None,
            session: Optional[requests.Session] = None,
            callback_loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        self.base_url = (base_url or get_api_base_url()).rstrip("/")
        self.timeout = timeout or get_request_timeout()
        self.on_unauthorized = on_unauthorized or self._log_redirect_to_login
        # Loop that owns the presentation layer; on_unauthorized is always run there
        self.callback_loop = callback_loop

        if session is None:
            # Configure session with retries; let the final response through so its
            # status can be mapped instead of surfacing a RetryError.
            session = requests.Session()
            retry_strategy = Retry(
                total=3,
                backoff_factor=1,
                status_forcelist=[429, 500, 502, 503, 504],
                raise_on_status=False
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            # noinspection HttpUrlsUsage
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session

    @staticmethod
    def _log_redirect_to_login() -> None:
        logger.warning(f"Session is no longer valid, redirecting to {get_login_url()}")

    def _signal_unauthorized(self) -> None:
        """Run on_unauthorized, hopping to callback_loop when called from another thread."""
        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        if self.callback_loop is not None and running_loop is not self.callback_loop:
            self.callback_loop.call_soon_threadsafe(self.on_unauthorized)
        else:
            self.on_unauthorized()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise TransportError(None, f"{method} {path} failed: {e}") from e

        if response.status_code == 401:
            self._signal_unauthorized()
            raise Unauthorized()
        return response

    @staticmethod
    def _raise_for_status(response: requests.Response, action: str) -> None:
        if not response.ok:
            raise TransportError(response.status_code, f"Failed to {action}: {response.status_code}")

    @staticmethod
    def _json(response: requests.Response):
        try:
            return response.json()
        except ValueError as e:
            raise UnknownError(f"Malformed response body: {e}") from e

    @staticmethod
    def _pagination_params(limit: Optional[int], cursor: Optional[str]) -> dict:
        params = {}
        if limit:
            params["limit"] = limit
        if cursor:
            params["cursor"] = cursor
        return params

    # ===== WATCH HISTORY =====

    def fetch_page(self, limit: int, cursor: Optional[str] = None) -> HistoryPage:
        """
        Fetch one page of the user's watch history.

        Args:
            limit: Number of items per page
            cursor: Opaque cursor from the previous page (None for the first page)

        Returns:
            HistoryPage with the items in server order and the next cursor, if any
        """
        response = self._request("GET", "/me/watched", params=self._pagination_params(limit, cursor))
        self._raise_for_status(response, "fetch watched history")

        body = self._json(response)
        try:
            items = tuple(WatchedItem.from_payload(payload) for payload in body["data"])
            next_cursor = body.get("next_cursor")
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise UnknownError(f"Unexpected watched history payload: {e}") from e

        logger.debug(f"Fetched {len(items)} watched items (next cursor: {next_cursor})")
        return HistoryPage(items=items, next_cursor=str(next_cursor) if next_cursor else None)

    def delete_item(self, item_id: str) -> None:
        """Remove an item from the user's watch history."""
        response = self._request("DELETE", f"/me/watched/{item_id}")
        if response.status_code == 404:
            raise NotFound(f"Watched item {item_id} not found")
        self._raise_for_status(response, "delete watched item")
        logger.debug(f"Deleted watched item {item_id}")

    # ===== RECOMMENDATIONS =====

    def fetch_recommendations(
            self,
            limit: Optional[int] = None,
            cursor: Optional[str] = None
    ) -> List[RecommendationItem]:
        """Fetch one page of the user's recommendation feed."""
        response = self._request("GET", "/recommendations", params=self._pagination_params(limit, cursor))
        self._raise_for_status(response, "fetch recommendations")

        body = self._json(response)
        if not isinstance(body, list):
            raise UnknownError("Unexpected recommendations payload: expected a list")
        try:
            return [RecommendationItem.from_payload(payload) for payload in body]
        except ValueError as e:
            raise UnknownError(str(e)) from e

    def mark_as_watched(self, command: dict) -> None:
        """
        Mark a movie/series as watched.

        A 409 Conflict means the item is already in the history and counts as success.
        """
        response = self._request("POST", "/me/watched", json=command)
        if response.status_code == 409:
            logger.info(f"{command.get('title')} is already marked as watched")
            return
        self._raise_for_status(response, "mark as watched")
