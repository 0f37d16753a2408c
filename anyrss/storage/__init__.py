"""Storage layer: the key-value engine adapter and the persisted key layout."""

from anyrss.storage.kv import Bucket, Cursor, KVStore, Transaction

__all__ = ["Bucket", "Cursor", "KVStore", "Transaction"]
