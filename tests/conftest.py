"""Shared test fixtures and configuration for pytest."""
import json
import threading
from pathlib import Path
from typing import Dict, List
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tvbingefriend_watch_history.models.base import Base
from tvbingefriend_watch_history.models.watched_item import WatchedItemRecord
from tvbingefriend_watch_history.repos.watched_repository import WatchedRepository
from tvbingefriend_watch_history.state import HistoryPage, RecommendationItem, WatchedItem


# ===== Database Fixtures =====

@pytest.fixture(scope="function")
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_session_factory(test_db_engine):
    """Session factory bound to the in-memory database."""
    return sessionmaker(bind=test_db_engine)


@pytest.fixture(scope="function")
def test_db_session(test_session_factory):
    """Create a database session for testing."""
    session = test_session_factory()
    yield session
    session.close()


@pytest.fixture
def watched_repository(test_db_session):
    """WatchedRepository bound to the test session."""
    return WatchedRepository(test_db_session)


# ===== Sample Data Fixtures =====

USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def other_user_id() -> str:
    return OTHER_USER_ID


@pytest.fixture
def sample_watched_command() -> Dict:
    """Valid POST /me/watched body."""
    return {
        "external_movie_id": "tt0903747",
        "media_type": "series",
        "title": "Breaking Bad",
        "year": 2008,
        "meta_data": {"poster_path": "/ggFHVNu6YYI5L9pCfOacjizRGt.jpg"},
    }


@pytest.fixture
def sample_watched_records(test_db_session) -> List[WatchedItemRecord]:
    """Five watched items of USER_ID (newest is id ...5) and one of another user."""
    from datetime import datetime, timedelta

    base_time = datetime(2024, 1, 1, 12, 0, 0)
    records = [
        WatchedItemRecord(
            id=f"00000000-0000-0000-0000-00000000000{i}",
            user_id=USER_ID,
            external_movie_id=f"tt000000{i}",
            media_type="movie",
            title=f"Movie {i}",
            year=2000 + i,
            meta_data={"poster_path": f"/poster{i}.jpg"},
            created_at=base_time + timedelta(days=i),
        )
        for i in range(1, 6)
    ]
    records.append(
        WatchedItemRecord(
            id="00000000-0000-0000-0000-000000000009",
            user_id=OTHER_USER_ID,
            external_movie_id="tt0000009",
            media_type="series",
            title="Someone Else's Show",
            meta_data={"poster_path": ""},
            created_at=base_time + timedelta(days=10),
        )
    )

    for record in records:
        test_db_session.add(record)
    test_db_session.commit()

    return records


def make_watched_items(start: int, count: int) -> tuple:
    """Watched items with ids item-<n>."""
    return tuple(
        WatchedItem.from_payload({"id": f"item-{n}", "title": f"Title {n}", "media_type": "movie"})
        for n in range(start, start + count)
    )


def make_recommendations(start: int, count: int) -> list:
    """Recommendations with ids rec-<n>."""
    return [
        RecommendationItem.from_payload({
            "id": f"rec-{n}",
            "external_movie_id": f"ext-{n}",
            "media_type": "movie",
            "title": f"Recommendation {n}",
            "year": 2000 + n,
            "poster_path": f"/rec{n}.jpg",
        })
        for n in range(start, start + count)
    ]


@pytest.fixture
def watched_items_factory():
    return make_watched_items


@pytest.fixture
def recommendations_factory():
    return make_recommendations


# ===== Fake API Client =====

class FakeHistoryClient:
    """
    In-memory stand-in for HistoryAPIClient.

    Results are keyed by cursor (fetches) or id (deletes); an Exception value is
    raised instead of returned. `hold(key)` makes matching calls block on a worker
    thread until the returned event is set, so tests decide the resolution order.
    """

    def __init__(self):
        self.pages: Dict = {}
        self.delete_results: Dict = {}
        self.recommendation_pages: Dict = {}
        self.mark_results: Dict = {}
        self.calls: List = []
        self._gates: Dict = {}
        self.callback_loop = None

    def hold(self, key) -> threading.Event:
        gate = threading.Event()
        self._gates[key] = gate
        return gate

    def _wait(self, key):
        gate = self._gates.get(key)
        if gate is not None:
            gate.wait(timeout=5)

    @staticmethod
    def _resolve(result):
        if isinstance(result, Exception):
            raise result
        return result

    def fetch_page(self, limit, cursor=None):
        self.calls.append(("fetch_page", limit, cursor))
        self._wait(("fetch_page", cursor))
        return self._resolve(self.pages[cursor])

    def delete_item(self, item_id):
        self.calls.append(("delete_item", item_id))
        self._wait(("delete_item", item_id))
        return self._resolve(self.delete_results.get(item_id))

    def fetch_recommendations(self, limit=None, cursor=None):
        self.calls.append(("fetch_recommendations", limit, cursor))
        self._wait(("fetch_recommendations", cursor))
        return self._resolve(self.recommendation_pages[cursor])

    def mark_as_watched(self, command):
        self.calls.append(("mark_as_watched", command))
        self._wait(("mark_as_watched", command["external_movie_id"]))
        return self._resolve(self.mark_results.get(command["external_movie_id"]))

    def count(self, name, *args) -> int:
        return sum(1 for call in self.calls if call[0] == name and call[1:1 + len(args)] == args)


@pytest.fixture
def fake_client():
    """Fake client serving a 20-item first page (cursor 'abc') and a 5-item last page."""
    client = FakeHistoryClient()
    client.pages[None] = HistoryPage(items=make_watched_items(1, 20), next_cursor="abc")
    client.pages["abc"] = HistoryPage(items=make_watched_items(21, 5), next_cursor=None)
    return client


# ===== Configuration Fixtures =====

@pytest.fixture
def mock_config(monkeypatch):
    """Mock configuration values."""
    monkeypatch.setenv('DATABASE_URL', 'sqlite:///:memory:')
    monkeypatch.setenv('HISTORY_API_URL', 'http://localhost:7071/api')
    monkeypatch.setenv('HISTORY_PAGE_SIZE', '20')
    monkeypatch.setenv('RECOMMENDATIONS_PAGE_SIZE', '50')
    monkeypatch.setenv('HTTP_TIMEOUT_SECONDS', '10')
    monkeypatch.setenv('LOGIN_URL', '/login')


@pytest.fixture
def no_local_settings(tmp_path):
    """Point the config module at a project root without local.settings.json."""
    from unittest.mock import patch

    with patch('tvbingefriend_watch_history.config.Path') as mock_path:
        mock_path.return_value.resolve.return_value.parent.parent = tmp_path / 'nonexistent'
        yield


# ===== Azure Functions Fixtures =====

@pytest.fixture
def mock_http_request():
    """Mock Azure Functions HttpRequest from an authenticated user."""
    mock_req = Mock()
    mock_req.route_params = {}
    mock_req.params = {}
    mock_req.headers = {"X-MS-CLIENT-PRINCIPAL-ID": USER_ID}
    mock_req.get_json.return_value = {}
    return mock_req


@pytest.fixture
def patched_session_factory(test_session_factory, monkeypatch):
    """Make the blueprint open sessions on the in-memory database."""
    import importlib

    watched_bp = importlib.import_module('tvbingefriend_watch_history.blueprints.watched_bp')

    monkeypatch.setattr(watched_bp, 'get_session_factory', lambda: test_session_factory)
    return test_session_factory


@pytest.fixture
def sample_local_settings(tmp_path) -> Path:
    """A local.settings.json with a couple of values."""
    settings = {
        "Values": {
            "HISTORY_API_URL": "http://from-settings:9000/api/",
            "HISTORY_PAGE_SIZE": "30",
        }
    }
    settings_file = tmp_path / "local.settings.json"
    with open(settings_file, 'w') as f:
        json.dump(settings, f)
    return settings_file
