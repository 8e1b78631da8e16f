"""Repository for a user's watch history."""

import logging

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tvbingefriend_watch_history.errors import InvalidCursorError, WatchedItemAlreadyExistsError
from tvbingefriend_watch_history.models import WatchedItemRecord

logger = logging.getLogger(__name__)


class WatchedRepository:
    """
    Repository for watched items, always scoped to one user.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_page(self, user_id: str, limit: int = 20, cursor: str | None = None) -> dict:
        """
        Get one page of the user's history, newest first.

        Args:
            user_id: Owner of the history
            limit: Maximum number of items to return
            cursor: Id of the last item of the previous page

        Returns:
            {"data": [item dicts], "next_cursor": id of the last item, or None on the last page}

        Raises:
            InvalidCursorError: if the cursor is not an item of this user
        """
        query = self.db.query(WatchedItemRecord).filter(WatchedItemRecord.user_id == user_id)

        if cursor:
            anchor = self.get_item(user_id, cursor)
            if anchor is None:
                raise InvalidCursorError(f"Unknown cursor: {cursor}")
            # Strictly after the anchor in (created_at desc, id desc) order
            query = query.filter(
                or_(
                    WatchedItemRecord.created_at < anchor.created_at,
                    and_(
                        WatchedItemRecord.created_at == anchor.created_at,
                        WatchedItemRecord.id < anchor.id,
                    ),
                )
            )

        # Fetch one extra row to know whether another page exists
        rows = (
            query.order_by(WatchedItemRecord.created_at.desc(), WatchedItemRecord.id.desc())
            .limit(limit + 1)
            .all()
        )

        has_more = len(rows) > limit
        rows = rows[:limit]
        next_cursor = rows[-1].id if has_more and rows else None

        return {
            "data": [row.to_dict() for row in rows],
            "next_cursor": next_cursor,
        }

    def create(self, user_id: str, command: dict) -> WatchedItemRecord:
        """
        Mark a movie/series as watched.

        Raises:
            WatchedItemAlreadyExistsError: if the user already has this item
        """
        item = WatchedItemRecord(
            user_id=user_id,
            external_movie_id=command["external_movie_id"],
            media_type=command["media_type"],
            title=command["title"],
            year=command.get("year"),
            meta_data=command["meta_data"],
        )
        self.db.add(item)

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info(f"User {user_id} already watched {command['media_type']} {command['external_movie_id']}")
            raise WatchedItemAlreadyExistsError() from e

        self.db.refresh(item)
        return item

    def get_item(self, user_id: str, item_id: str) -> WatchedItemRecord | None:
        """Get one of the user's watched items by id."""
        return (
            self.db.query(WatchedItemRecord)
            .filter(WatchedItemRecord.user_id == user_id, WatchedItemRecord.id == item_id)
            .first()
        )

    def delete(self, user_id: str, item_id: str) -> bool:
        """
        Remove an item from the user's history.

        Returns:
            True if deleted, False if not found (or owned by someone else)
        """
        count = (
            self.db.query(WatchedItemRecord)
            .filter(WatchedItemRecord.user_id == user_id, WatchedItemRecord.id == item_id)
            .delete()
        )
        self.db.commit()

        return count > 0

    def count(self, user_id: str) -> int:
        """Count the user's watched items."""
        return self.db.query(WatchedItemRecord).filter(WatchedItemRecord.user_id == user_id).count()
