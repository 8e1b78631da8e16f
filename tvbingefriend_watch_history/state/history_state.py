"""
Immutable snapshots of the watch history screen and the transitions between them.

Every function here takes a HistoryState and returns a new one; nothing is
mutated in place. Items are always matched by id, never by position, because
the list can shift while a request is outstanding.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class WatchedItem:
    """One entry of the user's watch history."""

    id: str
    data: Mapping[str, Any] = field(default_factory=dict, hash=False)
    is_deleting: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "WatchedItem":
        """Build an item from an API payload; all fields are kept as-is in `data`."""
        if not isinstance(payload, Mapping) or payload.get("id") in (None, ""):
            raise ValueError(f"Watched item payload has no id: {payload!r}")
        return cls(id=str(payload["id"]), data=dict(payload))

    @property
    def title(self) -> str | None:
        return self.data.get("title")


@dataclass(frozen=True)
class HistoryPage:
    """Result of fetching one page of history."""

    items: tuple[WatchedItem, ...]
    next_cursor: str | None = None


@dataclass(frozen=True)
class HistoryState:
    """Single source of truth for the history screen."""

    items: tuple[WatchedItem, ...] = ()
    is_loading: bool = False
    is_fetching_next_page: bool = False
    error: Exception | None = None
    cursor: str | None = None
    has_more: bool = False

    def find(self, item_id: str) -> WatchedItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    @property
    def is_empty(self) -> bool:
        return not self.items and not self.is_loading and self.error is None


# ===== INITIAL LOAD =====

def start_initial_load(state: HistoryState) -> HistoryState:
    """Begin (re)loading the first page; a next page still in flight no longer counts."""
    return replace(state, is_loading=True, is_fetching_next_page=False, error=None)


def initial_load_succeeded(state: HistoryState, page: HistoryPage) -> HistoryState:
    cursor = page.next_cursor or None
    return replace(
        state,
        items=tuple(page.items),
        is_loading=False,
        cursor=cursor,
        has_more=cursor is not None,
    )


def initial_load_failed(state: HistoryState, error: Exception) -> HistoryState:
    return replace(
        state,
        items=(),
        is_loading=False,
        error=error,
        cursor=None,
        has_more=False,
    )


# ===== NEXT PAGE =====

def can_fetch_next_page(state: HistoryState) -> bool:
    """Whether a next-page request may start now."""
    return (
        not state.is_loading
        and not state.is_fetching_next_page
        and state.has_more
        and state.cursor is not None
    )


def start_next_page(state: HistoryState) -> HistoryState:
    return replace(state, is_fetching_next_page=True)


def next_page_succeeded(state: HistoryState, page: HistoryPage) -> HistoryState:
    """Append the page after the items already loaded."""
    cursor = page.next_cursor or None
    return replace(
        state,
        items=state.items + tuple(page.items),
        is_fetching_next_page=False,
        cursor=cursor,
        has_more=cursor is not None,
    )


def next_page_failed(state: HistoryState) -> HistoryState:
    return replace(state, is_fetching_next_page=False)


# ===== DELETE =====

def _set_deleting(state: HistoryState, item_id: str, is_deleting: bool) -> HistoryState:
    items = tuple(
        replace(item, is_deleting=is_deleting) if item.id == item_id else item
        for item in state.items
    )
    return replace(state, items=items)


def mark_deleting(state: HistoryState, item_id: str) -> HistoryState:
    return _set_deleting(state, item_id, True)


def clear_deleting(state: HistoryState, item_id: str) -> HistoryState:
    return _set_deleting(state, item_id, False)


def remove_item(state: HistoryState, item_id: str) -> HistoryState:
    return replace(state, items=tuple(item for item in state.items if item.id != item_id))
