"""Unit tests for tvbingefriend_watch_history.models.watched_item."""
import uuid
from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from tvbingefriend_watch_history.models.watched_item import WatchedItemRecord


class TestWatchedItemRecord:
    """Tests for WatchedItemRecord model."""

    def test_tablename(self):
        """Test the table name."""
        # Assert
        assert WatchedItemRecord.__tablename__ == 'watched_items'

    def test_defaults_on_insert(self, test_db_session):
        """Test that id and created_at are filled in."""
        # Arrange
        record = WatchedItemRecord(
            user_id='u1', external_movie_id='550', media_type='movie',
            title='Fight Club', meta_data={'poster_path': '/p.jpg'},
        )

        # Act
        test_db_session.add(record)
        test_db_session.commit()

        # Assert
        assert uuid.UUID(record.id)
        assert isinstance(record.created_at, datetime)
        assert record.year is None

    def test_unique_per_user_and_media(self, test_db_session):
        """Test the (user, external id, media type) unique constraint."""
        # Arrange
        for _ in range(2):
            test_db_session.add(WatchedItemRecord(
                user_id='u1', external_movie_id='550', media_type='movie',
                title='Fight Club', meta_data={'poster_path': ''},
            ))

        # Act & Assert
        with pytest.raises(IntegrityError):
            test_db_session.commit()

    def test_same_external_id_different_media_type(self, test_db_session):
        """Test that a movie and a series may share an external id."""
        # Arrange
        test_db_session.add(WatchedItemRecord(user_id='u1', external_movie_id='1', media_type='movie',
                                              title='A', meta_data={'poster_path': ''}))
        test_db_session.add(WatchedItemRecord(user_id='u1', external_movie_id='1', media_type='series',
                                              title='A', meta_data={'poster_path': ''}))

        # Act
        test_db_session.commit()

        # Assert
        assert test_db_session.query(WatchedItemRecord).count() == 2

    def test_to_dict(self):
        """Test the response DTO."""
        # Arrange
        record = WatchedItemRecord(
            id='abc', user_id='u1', external_movie_id='550', media_type='movie', title='Fight Club',
            year=1999, meta_data={'poster_path': '/p.jpg'}, created_at=datetime(2024, 1, 2, 3, 4, 5),
        )

        # Act
        result = record.to_dict()

        # Assert
        assert result == {
            'id': 'abc',
            'external_movie_id': '550',
            'media_type': 'movie',
            'title': 'Fight Club',
            'year': 1999,
            'created_at': '2024-01-02T03:04:05',
        }

    def test_repr(self):
        """Test string representation."""
        # Arrange
        record = WatchedItemRecord(id='abc', user_id='u1', title='Fight Club')

        # Assert
        assert repr(record) == "<WatchedItemRecord(id=abc, user_id=u1, title='Fight Club')>"
