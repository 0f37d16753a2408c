"""
Channel data model.
"""

from anyrss.models.base import RecordModel


class Channel(RecordModel):
    """A named collection of feed items. Never mutated once stored."""

    name: str
