"""
Pytest configuration and fixtures for anyrss tests.
"""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from anyrss.idgen import IDGenerator
from anyrss.models import Channel, Feed
from anyrss.services import ChannelStore, FeedService
from anyrss.storage import KVStore


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path of a fresh database file."""
    return tmp_path / "anyrss.db"


@pytest.fixture
def store(db_path: Path) -> Iterator[KVStore]:
    """Open KVStore on a per-test temporary file."""
    kv = KVStore(db_path)
    yield kv
    kv.close()


@pytest.fixture
def id_generator(store: KVStore) -> Iterator[IDGenerator]:
    """Running IDGenerator with the default baseline."""
    generator = IDGenerator(store)
    generator.start()
    yield generator
    generator.stop()


@pytest.fixture
def channel_store(store: KVStore) -> ChannelStore:
    return ChannelStore(store)


@pytest.fixture
def feed_service(channel_store: ChannelStore, id_generator: IDGenerator) -> FeedService:
    return FeedService(channel_store, id_generator)


@pytest.fixture
def news(channel_store: ChannelStore) -> Channel:
    """A stored channel called "news"."""
    return channel_store.create("news")


def _make_feed(feed_id: int, **fields: str) -> Feed:
    values = {
        "title": f"Title {feed_id}",
        "url": f"https://example.com/{feed_id}",
        "description": f"Description {feed_id}",
        "author": "Test Author",
    }
    values.update(fields)
    feed = Feed(id=feed_id, channel_name="news", **values)
    feed.hash = feed.calc_hash()
    return feed


@pytest.fixture
def make_feed() -> Callable[..., Feed]:
    """
    Factory for stored-shape Feeds with distinct content per id.

    Keyword arguments override title, url, description or author.
    """
    return _make_feed


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """
    Sort test items to run unit tests before integration tests.

    Tests marked with @pytest.mark.integration run last.
    """

    def sort_key(item: pytest.Item) -> tuple[int, str]:
        if item.get_closest_marker("integration"):
            return (1, item.nodeid)
        return (0, item.nodeid)

    items.sort(key=sort_key)
