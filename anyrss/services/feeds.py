"""
Feed service.

The operations the request layer calls: channel creation and listing, posting
feed items with dedup, listing items, and rendering a channel as RSS.
"""

from datetime import UTC, datetime

from anyrss.config import DEFAULT_FEED_LIST_LIMIT
from anyrss.errors import AlreadyExistsError, InvalidInputError, NotFoundError
from anyrss.idgen import IDGenerator
from anyrss.logging import get_logger
from anyrss.models import Channel, Feed, FeedDraft
from anyrss.services.channel_store import ChannelStore
from anyrss.services.syndication import render_rss

logger = get_logger(__name__)


class FeedService:
    """
    Service for channels and their feed items.

    Parameters
    ----------
    channels : ChannelStore
        Channel Store over the open storage handle.
    ids : IDGenerator
        Running ID generator.
    feed_list_limit : int, optional
        Number of items in a rendered RSS document (default: 100).
    """

    def __init__(
        self,
        channels: ChannelStore,
        ids: IDGenerator,
        feed_list_limit: int = DEFAULT_FEED_LIST_LIMIT,
    ) -> None:
        self.channels = channels
        self.ids = ids
        self.feed_list_limit = feed_list_limit

    def create_channel(self, name: str) -> Channel:
        return self.channels.create(name)

    def list_channels(self) -> list[Channel]:
        return self.channels.list_all()

    def get_channel(self, name: str) -> Channel:
        """
        Return the channel called ``name``.

        Raises
        ------
        NotFoundError
            If there is no such channel.
        """
        channel = self.channels.lookup(name)
        if channel is None:
            raise NotFoundError(f"no such channel: {name}")
        return channel

    def post_feed(self, channel_name: str, draft: FeedDraft) -> Feed:
        """
        Post a feed item to a channel.

        The duplicate check and the insert are separate transactions, so two
        identical posts racing each other can both be stored.

        Parameters
        ----------
        channel_name : str
            Target channel.
        draft : FeedDraft
            Client-supplied fields.

        Returns
        -------
        Feed
            The stored item with its id, timestamp and hash.

        Raises
        ------
        NotFoundError
            If the channel does not exist.
        InvalidInputError
            If title, url or description is empty, or a field holds characters
            that cannot be written into XML.
        AlreadyExistsError
            If the channel already holds an item with the same content.
        """
        channel = self.get_channel(channel_name)

        candidate = Feed(**draft.model_dump())
        if not candidate.valid():
            raise InvalidInputError(
                "invalid feed: title, url and description are required and must be XML text"
            )
        if self.channels.has_feed(channel, candidate):
            raise AlreadyExistsError("feed already exists")

        feed = Feed.from_draft(
            draft,
            id=self.ids.next_id(),
            channel_name=channel.name,
            created_at=datetime.now(UTC),
        )
        self.channels.add_feed(channel, feed)
        logger.info("feed posted", channel=channel.name, feed_id=feed.id, url=feed.url)
        return feed

    def list_feeds(
        self, channel_name: str, offset: int = 0, limit: int | None = None
    ) -> list[Feed]:
        """List a channel's items, newest first."""
        channel = self.get_channel(channel_name)
        return self.channels.get_feeds(channel, offset, limit)

    def get_feed(self, channel_name: str, feed_id: int) -> Feed:
        """
        Return one item of a channel.

        Raises
        ------
        NotFoundError
            If the channel or the item does not exist.
        """
        channel = self.get_channel(channel_name)
        feed = self.channels.get_feed_by_id(channel, feed_id)
        if feed is None:
            raise NotFoundError(f"no such feed in {channel_name}: {feed_id}")
        return feed

    def remove_feed(self, channel_name: str, feed_id: int) -> None:
        """Remove one item; removing an item that is already gone is a no-op."""
        channel = self.get_channel(channel_name)
        feed = self.channels.get_feed_by_id(channel, feed_id)
        if feed is None:
            return
        self.channels.remove_feed(channel, feed)
        logger.info("feed removed", channel=channel.name, feed_id=feed_id)

    def render_rss(self, channel_name: str, link: str | None = None) -> str:
        """
        Render a channel's newest items as an RSS document.

        Parameters
        ----------
        channel_name : str
            Channel to render.
        link : str | None, optional
            Channel link; defaults to the channel's RSS path.
        """
        channel = self.get_channel(channel_name)
        feeds = self.channels.get_feeds(channel, 0, self.feed_list_limit)
        return render_rss(
            channel,
            (feed.to_syndication_item() for feed in feeds),
            link or f"/rss/{channel.name}",
        )
