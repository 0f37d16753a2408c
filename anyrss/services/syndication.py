"""
RSS rendering of a channel.

Turns ``SyndicationItem`` values into an RSS 2.0 document with feedgen.
"""

from collections.abc import Iterable
from datetime import UTC

from feedgen.feed import FeedGenerator

from anyrss.models import Channel, SyndicationItem


def _author(name: str) -> dict[str, str]:
    # RSS <author> is an email address; a plain name only reaches the Atom side
    if "@" in name:
        return {"name": name, "email": name}
    return {"name": name}


def render_rss(channel: Channel, items: Iterable[SyndicationItem], link: str) -> str:
    """
    Render ``items`` as the RSS document of ``channel``.

    Parameters
    ----------
    channel : Channel
        Channel whose name becomes the feed title.
    items : Iterable[SyndicationItem]
        Items in the order they should appear.
    link : str
        Link of the channel itself.

    Returns
    -------
    str
        RSS 2.0 XML.
    """
    fg = FeedGenerator()
    fg.title(channel.name)
    fg.link(href=link)
    fg.description(f"Items posted to {channel.name}")

    for item in items:
        entry = fg.add_entry(order="append")
        entry.title(item.title)
        entry.link(href=item.link)
        entry.description(item.description)
        if item.author:
            entry.author(_author(item.author))
        if item.created is not None:
            created = item.created
            if created.tzinfo is None:
                created = created.replace(tzinfo=UTC)
            entry.pubDate(created)

    return fg.rss_str(pretty=True).decode("utf-8")
