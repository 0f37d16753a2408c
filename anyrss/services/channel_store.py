"""
Channel Store.

Channel metadata lives in the ``channels`` bucket; each channel's items live in
their own ``channel:<name>`` bucket together with a content-hash index used for
dedup. Every operation runs in exactly one transaction.
"""

from itertools import islice

from anyrss.errors import AlreadyExistsError, InvalidInputError, StorageError
from anyrss.logging import get_logger
from anyrss.models import Channel, Feed, is_xml_text
from anyrss.storage import Bucket, KVStore, Transaction
from anyrss.storage.keys import (
    CHANNEL_KEY_PREFIX,
    CHANNELS_BUCKET,
    ITEM_ID_PREFIX,
    channel_bucket_name,
    channel_key,
    is_storable_id,
    item_hash_key,
    item_id_key,
)

logger = get_logger(__name__)

def _items_bucket(tx: Transaction, channel: Channel) -> Bucket:
    return tx.create_bucket_if_not_exists(channel_bucket_name(channel.name))


class ChannelStore:
    """
    CRUD over channels and the feed items they hold.

    Parameters
    ----------
    store : KVStore
        Open storage handle.
    """

    def __init__(self, store: KVStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def create(self, name: str) -> Channel:
        """
        Persist a new channel.

        Raises
        ------
        InvalidInputError
            If ``name`` is empty or cannot be written into XML.
        AlreadyExistsError
            If a channel with that name already exists.
        """
        if not name:
            raise InvalidInputError("invalid channel: empty name")
        if not is_xml_text(name):
            raise InvalidInputError("invalid channel: name contains characters not allowed in XML")
        channel = Channel(name=name)

        def _create(tx: Transaction) -> None:
            bucket = tx.create_bucket_if_not_exists(CHANNELS_BUCKET)
            key = channel_key(name)
            if bucket.get(key) is not None:
                raise AlreadyExistsError(f"channel already exists: {name}")
            bucket.put(key, channel.to_record())

        self.store.update(_create)
        logger.info("channel created", channel=name)
        return channel

    def lookup(self, name: str) -> Channel | None:
        """Return the channel called ``name``, or None if there is none."""

        def _lookup(tx: Transaction) -> Channel | None:
            bucket = tx.bucket(CHANNELS_BUCKET)
            if bucket is None:
                return None
            raw = bucket.get(channel_key(name))
            return Channel.from_record(raw) if raw is not None else None

        return self.store.update(_lookup)

    def list_all(self) -> list[Channel]:
        """Return every channel in name order."""

        def _list(tx: Transaction) -> list[Channel]:
            bucket = tx.bucket(CHANNELS_BUCKET)
            if bucket is None:
                return []
            return [Channel.from_record(raw) for _, raw in bucket.scan_prefix(CHANNEL_KEY_PREFIX)]

        return self.store.update(_list)

    # ------------------------------------------------------------------
    # Feed items
    # ------------------------------------------------------------------

    def add_feed(self, channel: Channel, feed: Feed) -> None:
        """
        Store ``feed`` and its hash index entry in one transaction.

        An existing hash index entry for the same content is overwritten.
        """
        if not is_storable_id(feed.id):
            raise InvalidInputError(f"feed id out of range: {feed.id}")
        digest = feed.calc_hash()

        def _add(tx: Transaction) -> None:
            bucket = _items_bucket(tx, channel)
            bucket.put(item_id_key(feed.id), feed.to_record())
            bucket.put(item_hash_key(digest), str(feed.id).encode("ascii"))

        self.store.update(_add)
        logger.debug("feed added", channel=channel.name, feed_id=feed.id, hash=digest)

    def has_feed(self, channel: Channel, feed: Feed) -> bool:
        """True if the channel already holds an item with ``feed``'s content hash."""
        key = item_hash_key(feed.calc_hash())

        def _has(tx: Transaction) -> bool:
            bucket = tx.bucket(channel_bucket_name(channel.name))
            return bucket is not None and bucket.get(key) is not None

        return self.store.update(_has)

    def remove_feed(self, channel: Channel, feed: Feed) -> None:
        """
        Delete ``feed`` and its hash index entry.

        Missing keys are ignored, as is an id that no stored item can have.
        """
        if not is_storable_id(feed.id):
            return
        id_key = item_id_key(feed.id)
        hash_key = item_hash_key(feed.calc_hash())

        def _remove(tx: Transaction) -> None:
            bucket = tx.bucket(channel_bucket_name(channel.name))
            if bucket is None:
                return
            bucket.delete(id_key)
            bucket.delete(hash_key)

        self.store.update(_remove)
        logger.debug("feed removed", channel=channel.name, feed_id=feed.id)

    def get_feeds(
        self, channel: Channel, offset: int = 0, limit: int | None = None
    ) -> list[Feed]:
        """
        List a channel's items, newest (highest id) first.

        Parameters
        ----------
        channel : Channel
            Channel to list.
        offset : int, optional
            Number of items to skip (default: 0).
        limit : int | None, optional
            Maximum number of items to return; None means no limit.

        Returns
        -------
        list[Feed]
            Decoded items in descending id order.
        """
        if offset < 0:
            raise InvalidInputError(f"offset must not be negative: {offset}")
        if limit is not None and limit < 0:
            raise InvalidInputError(f"limit must not be negative: {limit}")
        stop = offset + limit if limit is not None else None

        def _get(tx: Transaction) -> list[Feed]:
            bucket = tx.bucket(channel_bucket_name(channel.name))
            if bucket is None:
                return []
            rows = islice(bucket.scan_prefix(ITEM_ID_PREFIX), offset, stop)
            return [Feed.from_record(raw) for _, raw in rows]

        return self.store.update(_get)

    def get_feed_by_id(self, channel: Channel, feed_id: int) -> Feed | None:
        """Point read of one item by id. Ids outside the key range are never stored."""
        if not is_storable_id(feed_id):
            return None

        def _get(tx: Transaction) -> Feed | None:
            bucket = tx.bucket(channel_bucket_name(channel.name))
            if bucket is None:
                return None
            raw = bucket.get(item_id_key(feed_id))
            return Feed.from_record(raw) if raw is not None else None

        return self.store.update(_get)

    def get_feed_by_hash(self, channel: Channel, digest: str) -> Feed | None:
        """Resolve a content hash through the hash index to its item."""

        def _get(tx: Transaction) -> Feed | None:
            bucket = tx.bucket(channel_bucket_name(channel.name))
            if bucket is None:
                return None
            raw_id = bucket.get(item_hash_key(digest))
            if raw_id is None:
                return None
            try:
                feed_id = int(raw_id.decode("ascii"))
            except (UnicodeDecodeError, ValueError) as e:
                raise StorageError(f"corrupt hash index entry: {raw_id!r}") from e
            if not is_storable_id(feed_id):
                raise StorageError(f"corrupt hash index entry: {raw_id!r}")
            raw = bucket.get(item_id_key(feed_id))
            return Feed.from_record(raw) if raw is not None else None

        return self.store.update(_get)
