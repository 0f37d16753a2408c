"""
Base model for values kept in the key-value store.

Records are stored as compact camelCase JSON, the same shape the HTTP API
returns, so a stored value can be served without re-mapping.
"""

from typing import Self

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from anyrss.errors import StorageError


class RecordModel(BaseModel):
    """Model with camelCase aliases and byte-level encode/decode for storage."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_record(self) -> bytes:
        """Encode as the UTF-8 JSON value written to a bucket."""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_record(cls, raw: bytes) -> Self:
        """
        Decode a value read from a bucket.

        Raises
        ------
        StorageError
            If the stored bytes are not a valid record of this type.
        """
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"cannot decode {cls.__name__}: {e}") from e
