"""A movie or series the user marked as watched."""
import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, UniqueConstraint

from tvbingefriend_watch_history.models.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class WatchedItemRecord(Base):
    """One row of a user's watch history.

    A user can mark a given movie/series as watched only once.
    """

    __tablename__ = "watched_items"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), nullable=False)
    external_movie_id = Column(String(64), nullable=False)
    media_type = Column(String(10), nullable=False)  # 'movie' or 'series'
    title = Column(String(255), nullable=False)
    year = Column(Integer, nullable=True)
    meta_data = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "external_movie_id", "media_type", name="uq_watched_user_movie"),
        Index("idx_watched_user_created", "user_id", "created_at"),
    )

    def to_dict(self) -> dict:
        """Response DTO (meta_data stays server side)."""
        return {
            "id": self.id,
            "external_movie_id": self.external_movie_id,
            "media_type": self.media_type,
            "title": self.title,
            "year": self.year,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<WatchedItemRecord(id={self.id}, user_id={self.user_id}, title='{self.title}')>"
