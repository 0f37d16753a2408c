"""Services over the feed store."""

from anyrss.services.channel_store import ChannelStore
from anyrss.services.feeds import FeedService
from anyrss.services.syndication import render_rss

__all__ = ["ChannelStore", "FeedService", "render_rss"]
