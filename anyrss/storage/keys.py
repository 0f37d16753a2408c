"""
Persisted key layout.

| Bucket           | Key                        | Value                     |
|------------------|----------------------------|---------------------------|
| settings         | id                         | last issued id (decimal)  |
| channels         | channel:<name>             | JSON Channel              |
| channel:<name>   | item:id:<be_int64(-id)>    | JSON Feed                 |
| channel:<name>   | item:hash:<hex digest>     | Feed id (decimal)         |

Item keys hold the negated id as a big-endian signed 64-bit integer, so a
forward scan over ``item:id:`` returns the highest id (newest item) first.
"""

import struct

# bucket names
SETTINGS_BUCKET = b"settings"
CHANNELS_BUCKET = b"channels"
CHANNEL_BUCKET_PREFIX = b"channel:"

# const keys
SETTINGS_ID_KEY = b"id"

CHANNEL_KEY_PREFIX = b"channel:"
ITEM_ID_PREFIX = b"item:id:"
ITEM_HASH_PREFIX = b"item:hash:"

_ITEM_ID_FORMAT = ">q"

# ids are positive signed 64-bit values
MAX_FEED_ID = 2**63 - 1


def channel_bucket_name(name: str) -> bytes:
    """Bucket holding the items of channel ``name``."""
    return CHANNEL_BUCKET_PREFIX + name.encode("utf-8")


def channel_key(name: str) -> bytes:
    """Key of the channel record inside the channels bucket."""
    return CHANNEL_KEY_PREFIX + name.encode("utf-8")


def is_storable_id(feed_id: int) -> bool:
    """True if ``feed_id`` is in the range item ids are issued and stored in."""
    return 0 < feed_id <= MAX_FEED_ID


def item_id_key(feed_id: int) -> bytes:
    """
    Key of a feed item, ordered by descending id.

    Only ids accepted by ``is_storable_id`` are ever written.
    """
    return ITEM_ID_PREFIX + struct.pack(_ITEM_ID_FORMAT, -feed_id)


def item_hash_key(digest: str) -> bytes:
    """Key of the hash index entry for a content digest."""
    return ITEM_HASH_PREFIX + digest.encode("ascii")
