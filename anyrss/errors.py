"""
Error kinds raised by the anyrss store and services.

Storage errors propagate unchanged through every layer; the request layer maps
each kind onto an HTTP status.
"""


class AnyRSSError(Exception):
    """Base class for all anyrss errors."""


class InvalidInputError(AnyRSSError):
    """Empty channel name or a feed that fails its validity check."""


class NotFoundError(AnyRSSError):
    """The requested channel (or feed) does not exist."""


class AlreadyExistsError(AnyRSSError):
    """Duplicate channel name, or duplicate feed content within a channel."""


class StorageError(AnyRSSError):
    """Underlying transaction or encoding failure."""


class IDGeneratorError(StorageError):
    """The ID generator can no longer issue IDs safely."""
