"""Immutable snapshots of the recommendations feed."""
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

MEDIA_TYPES = ("movie", "series")


@dataclass(frozen=True)
class RecommendationItem:
    """A single recommended movie or series."""

    id: str
    external_movie_id: str
    media_type: str
    title: str
    year: int | None = None
    poster_path: str | None = None
    data: Mapping[str, Any] = field(default_factory=dict, hash=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RecommendationItem":
        """
        Build a recommendation from an API payload.

        Raises:
            ValueError: if a required field is missing
        """
        if not isinstance(payload, Mapping):
            raise ValueError(f"Recommendation payload must be an object: {payload!r}")
        try:
            return cls(
                id=str(payload["id"]),
                external_movie_id=str(payload["external_movie_id"]),
                media_type=payload["media_type"],
                title=payload["title"],
                year=payload.get("year"),
                poster_path=payload.get("poster_path"),
                data=dict(payload),
            )
        except KeyError as e:
            raise ValueError(f"Recommendation payload is missing {e}") from e

    def to_watched_command(self) -> dict:
        """Body of the POST /me/watched request for this recommendation."""
        command = {
            "external_movie_id": self.external_movie_id,
            "media_type": self.media_type,
            "title": self.title,
            "meta_data": {"poster_path": self.poster_path or ""},
        }
        if self.year is not None:
            command["year"] = self.year
        return command


@dataclass(frozen=True)
class RecommendationsState:
    """Single source of truth for the recommendations feed."""

    items: tuple[RecommendationItem, ...] = ()
    is_initial_loading: bool = False
    is_loading_more: bool = False
    error: Exception | None = None
    has_more: bool = False
    cursor: str | None = None

    def index_of(self, item_id: str) -> int | None:
        for i, item in enumerate(self.items):
            if item.id == item_id:
                return i
        return None


def start_initial_load(state: RecommendationsState) -> RecommendationsState:
    return replace(state, is_initial_loading=True, is_loading_more=False, error=None)


def initial_load_succeeded(
        state: RecommendationsState,
        items: Sequence[RecommendationItem],
        page_size: int
) -> RecommendationsState:
    # The feed has no cursor in its response: a full page means there may be more,
    # and the last id is where the next page starts.
    return replace(
        state,
        items=tuple(items),
        is_initial_loading=False,
        has_more=len(items) == page_size,
        cursor=items[-1].id if items else None,
    )


def initial_load_failed(state: RecommendationsState, error: Exception) -> RecommendationsState:
    return replace(state, items=(), is_initial_loading=False, error=error, has_more=False, cursor=None)


def can_load_more(state: RecommendationsState) -> bool:
    return (
        not state.is_initial_loading
        and not state.is_loading_more
        and state.has_more
        and state.cursor is not None
    )


def start_load_more(state: RecommendationsState) -> RecommendationsState:
    return replace(state, is_loading_more=True)


def load_more_succeeded(
        state: RecommendationsState,
        items: Sequence[RecommendationItem],
        page_size: int
) -> RecommendationsState:
    return replace(
        state,
        items=state.items + tuple(items),
        is_loading_more=False,
        has_more=len(items) == page_size,
        cursor=items[-1].id if items else state.cursor,
    )


def load_more_failed(state: RecommendationsState) -> RecommendationsState:
    return replace(state, is_loading_more=False)


def hide_item(state: RecommendationsState, item_id: str) -> RecommendationsState:
    return replace(state, items=tuple(item for item in state.items if item.id != item_id))


def restore_item(state: RecommendationsState, item: RecommendationItem, index: int) -> RecommendationsState:
    """Put a hidden item back where it was, or at the end if the list got shorter."""
    if state.index_of(item.id) is not None:
        return state
    position = max(0, min(index, len(state.items)))
    items = state.items[:position] + (item,) + state.items[position:]
    return replace(state, items=items)
