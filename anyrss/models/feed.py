"""
Feed item data models.

A ``FeedDraft`` is what a client posts; a ``Feed`` is the stored record with
the server-assigned id, timestamp, content hash and channel back-reference.
"""

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime

from anyrss.models.base import RecordModel

# Characters XML 1.0 cannot carry: C0 controls other than tab, LF and CR,
# lone surrogates, and the U+FFFE/U+FFFF noncharacters
_XML_INVALID_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def is_xml_text(value: str) -> bool:
    """True if ``value`` can be written into an XML document unchanged."""
    return _XML_INVALID_CHARS.search(value) is None


class FeedDraft(RecordModel):
    """Client-supplied fields of a feed item."""

    title: str = ""
    url: str = ""
    description: str = ""
    author: str = ""


@dataclass
class SyndicationItem:
    """
    Generic syndication item, independent of the output format.
    """

    title: str
    link: str
    description: str
    author: str
    created: datetime | None


class Feed(RecordModel):
    """
    A feed item stored in exactly one channel.

    ``id``, ``created_at``, ``hash`` and ``channel_name`` are assigned by the
    server when the item is posted.
    """

    id: int = 0
    title: str = ""
    url: str = ""
    description: str = ""
    author: str = ""
    created_at: datetime | None = None
    hash: str = ""
    channel_name: str = ""

    @classmethod
    def from_draft(
        cls,
        draft: FeedDraft,
        *,
        id: int,
        channel_name: str,
        created_at: datetime,
    ) -> "Feed":
        """
        Build the stored record for a posted draft.

        Parameters
        ----------
        draft : FeedDraft
            Client-supplied fields.
        id : int
            Id issued by the ID generator.
        channel_name : str
            Channel the item is posted to.
        created_at : datetime
            Insertion time.

        Returns
        -------
        Feed
            Feed with its content hash computed.
        """
        feed = cls(
            id=id,
            title=draft.title,
            url=draft.url,
            description=draft.description,
            author=draft.author,
            created_at=created_at,
            channel_name=channel_name,
        )
        feed.hash = feed.calc_hash()
        return feed

    def calc_hash(self) -> str:
        """
        Content fingerprint over (title, description, url).

        Used only to detect duplicates within a channel, not for security.
        """
        s = f"{self.title}|{self.description}|{self.url}"
        return hashlib.md5(s.encode("utf-8"), usedforsecurity=False).hexdigest()

    def valid(self) -> bool:
        """
        True iff title, url and description are all non-empty.

        Text fields must also be representable in XML, since every stored item
        ends up in the channel's RSS document.
        """
        if not (self.title and self.url and self.description):
            return False
        return all(
            is_xml_text(value)
            for value in (self.title, self.url, self.description, self.author)
        )

    def to_syndication_item(self) -> SyndicationItem:
        return SyndicationItem(
            title=self.title,
            link=self.url,
            description=self.description,
            author=self.author,
            created=self.created_at,
        )
