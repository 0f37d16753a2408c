"""Data models for channels and feed items."""

from anyrss.models.base import RecordModel
from anyrss.models.channel import Channel
from anyrss.models.feed import Feed, FeedDraft, SyndicationItem, is_xml_text

__all__ = [
    "RecordModel",
    "Channel",
    "Feed",
    "FeedDraft",
    "SyndicationItem",
    "is_xml_text",
]
