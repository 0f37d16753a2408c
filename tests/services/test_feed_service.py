"""
Tests for the feed service operations.
"""

import xml.etree.ElementTree as ET
from datetime import UTC, datetime, timedelta

import pytest

from anyrss.errors import AlreadyExistsError, InvalidInputError, NotFoundError
from anyrss.idgen import IDGenerator
from anyrss.models import Channel, FeedDraft
from anyrss.services import ChannelStore, FeedService
from anyrss.storage import KVStore


def _draft(n: int = 0, **fields: str) -> FeedDraft:
    values = {
        "title": f"Entry {n}",
        "url": f"https://example.com/{n}",
        "description": f"About entry {n}",
        "author": "Test Author",
    }
    values.update(fields)
    return FeedDraft(**values)


# =============================================================================
# Channels
# =============================================================================


def test_create_and_list_channels(feed_service: FeedService) -> None:
    """Should create channels and list them in name order."""
    feed_service.create_channel("sports")
    feed_service.create_channel("news")

    assert feed_service.list_channels() == [Channel(name="news"), Channel(name="sports")]


def test_get_channel_missing_raises(feed_service: FeedService) -> None:
    """Should raise NotFoundError for an unknown channel."""
    with pytest.raises(NotFoundError, match="no such channel"):
        feed_service.get_channel("nope")


# =============================================================================
# Posting
# =============================================================================


def test_end_to_end_post_and_dedup(feed_service: FeedService) -> None:
    """Should store one item and reject an identical second post."""
    feed_service.create_channel("news")
    draft = FeedDraft(title="A", url="http://x", description="d")

    posted = feed_service.post_feed("news", draft)

    feeds = feed_service.list_feeds("news")
    assert len(feeds) == 1
    assert feeds[0].title == "A"
    assert feeds[0].id >= 1001
    assert feeds[0] == posted

    with pytest.raises(AlreadyExistsError, match="feed already exists"):
        feed_service.post_feed("news", draft)
    assert len(feed_service.list_feeds("news")) == 1


def test_post_assigns_server_fields(feed_service: FeedService) -> None:
    """Should set id, channel, timestamp and hash on the stored item."""
    feed_service.create_channel("news")
    before = datetime.now(UTC)

    feed = feed_service.post_feed("news", _draft(1))

    assert feed.id == 1001
    assert feed.channel_name == "news"
    assert feed.hash == feed.calc_hash()
    assert before <= feed.created_at <= datetime.now(UTC) + timedelta(seconds=1)


def test_post_to_missing_channel_raises(feed_service: FeedService) -> None:
    """Should raise NotFoundError when the channel does not exist."""
    with pytest.raises(NotFoundError):
        feed_service.post_feed("nope", _draft())


@pytest.mark.parametrize("missing", ["title", "url", "description"])
def test_post_invalid_feed_writes_nothing(
    store: KVStore,
    feed_service: FeedService,
    id_generator: IDGenerator,
    missing: str,
) -> None:
    """Should reject an incomplete feed before any write or id allocation."""
    feed_service.create_channel("news")

    with pytest.raises(InvalidInputError):
        feed_service.post_feed("news", _draft(**{missing: ""}))

    assert id_generator.last_id == 1000
    assert store.update(lambda tx: tx.bucket(b"channel:news")) is None


def test_control_characters_rejected_and_rss_still_renders(
    feed_service: FeedService, id_generator: IDGenerator
) -> None:
    """Should refuse text that cannot go into XML and keep the channel renderable."""
    feed_service.create_channel("news")
    feed_service.post_feed("news", _draft(1))

    with pytest.raises(InvalidInputError, match="XML"):
        feed_service.post_feed("news", _draft(2, description="bell \x07"))

    assert id_generator.last_id == 1001
    root = ET.fromstring(feed_service.render_rss("news"))
    assert [i.findtext("title") for i in root.iter("item")] == ["Entry 1"]


def test_same_content_allowed_in_different_channels(feed_service: FeedService) -> None:
    """Should dedup within a channel only."""
    feed_service.create_channel("news")
    feed_service.create_channel("other")

    a = feed_service.post_feed("news", _draft(1))
    b = feed_service.post_feed("other", _draft(1))

    assert a.hash == b.hash
    assert a.id != b.id


def test_author_does_not_affect_dedup(feed_service: FeedService) -> None:
    """Should treat posts differing only in author as duplicates."""
    feed_service.create_channel("news")
    feed_service.post_feed("news", _draft(1, author="alice"))

    with pytest.raises(AlreadyExistsError):
        feed_service.post_feed("news", _draft(1, author="bob"))


def test_racing_identical_posts_can_both_land(
    feed_service: FeedService,
    channel_store: ChannelStore,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Should store both items when the dedup check misses a concurrent insert."""
    feed_service.create_channel("news")
    # Both posts pass the check before either writes
    monkeypatch.setattr(channel_store, "has_feed", lambda channel, feed: False)

    first = feed_service.post_feed("news", _draft(1))
    second = feed_service.post_feed("news", _draft(1))

    monkeypatch.undo()
    news = channel_store.lookup("news")
    assert [f.id for f in feed_service.list_feeds("news")] == [second.id, first.id]
    assert channel_store.get_feed_by_hash(news, first.hash) == second


# =============================================================================
# Listing, lookup, removal
# =============================================================================


def test_list_feeds_newest_first(feed_service: FeedService) -> None:
    """Should list items in descending id order with offset and limit."""
    feed_service.create_channel("news")
    ids = [feed_service.post_feed("news", _draft(n)).id for n in range(5)]

    assert [f.id for f in feed_service.list_feeds("news")] == ids[::-1]
    assert [f.id for f in feed_service.list_feeds("news", 1, 2)] == [ids[3], ids[2]]


def test_list_feeds_missing_channel_raises(feed_service: FeedService) -> None:
    """Should raise NotFoundError for an unknown channel."""
    with pytest.raises(NotFoundError):
        feed_service.list_feeds("nope")


def test_get_feed(feed_service: FeedService) -> None:
    """Should return one item by id, or raise NotFoundError."""
    feed_service.create_channel("news")
    posted = feed_service.post_feed("news", _draft(1))

    assert feed_service.get_feed("news", posted.id) == posted
    with pytest.raises(NotFoundError):
        feed_service.get_feed("news", posted.id + 100)


def test_remove_feed_allows_reposting(feed_service: FeedService) -> None:
    """Should free the content hash so the same content can be posted again."""
    feed_service.create_channel("news")
    posted = feed_service.post_feed("news", _draft(1))

    feed_service.remove_feed("news", posted.id)
    feed_service.remove_feed("news", posted.id)

    assert feed_service.list_feeds("news") == []
    reposted = feed_service.post_feed("news", _draft(1))
    assert reposted.id > posted.id


# =============================================================================
# RSS
# =============================================================================


def test_render_rss(feed_service: FeedService) -> None:
    """Should render the channel's items as RSS 2.0, newest first."""
    feed_service.create_channel("news")
    feed_service.post_feed("news", _draft(1, author="editor@example.com"))
    feed_service.post_feed("news", _draft(2))

    root = ET.fromstring(feed_service.render_rss("news"))

    assert root.tag == "rss"
    channel = root.find("channel")
    assert channel.findtext("title") == "news"
    assert channel.findtext("link") == "/rss/news"
    items = channel.findall("item")
    assert [i.findtext("title") for i in items] == ["Entry 2", "Entry 1"]
    assert items[1].findtext("link") == "https://example.com/1"
    assert items[1].findtext("description") == "About entry 1"
    assert "editor@example.com" in items[1].findtext("author")
    assert items[0].findtext("pubDate")


def test_render_rss_respects_list_limit(
    channel_store: ChannelStore, id_generator: IDGenerator
) -> None:
    """Should cap the document at the configured number of items."""
    service = FeedService(channel_store, id_generator, feed_list_limit=2)
    service.create_channel("news")
    for n in range(4):
        service.post_feed("news", _draft(n))

    root = ET.fromstring(service.render_rss("news"))

    assert len(root.find("channel").findall("item")) == 2


def test_render_rss_empty_channel(feed_service: FeedService) -> None:
    """Should render a channel without items."""
    feed_service.create_channel("news")

    root = ET.fromstring(feed_service.render_rss("news"))

    assert root.find("channel").findall("item") == []


def test_render_rss_missing_channel_raises(feed_service: FeedService) -> None:
    """Should raise NotFoundError for an unknown channel."""
    with pytest.raises(NotFoundError):
        feed_service.render_rss("nope")
