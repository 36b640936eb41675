"""BSON codec implementation for LOCO packet bodies."""

from collections.abc import Mapping
from functools import lru_cache
from typing import Any

import bson
from bson.errors import BSONError
from pydantic import BaseModel, TypeAdapter, ValidationError

from ..exceptions import CodecError
from .base import Codec


@lru_cache(maxsize=64)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


class BSONCodec(Codec):
    """BSON codec for typed documents."""

    def encode(self, data: Any) -> bytes:
        """Encode data to BSON bytes.

        Args:
            data: Data to encode (pydantic model or mapping)

        Returns:
            BSON document bytes

        Raises:
            CodecError: If the data is not a document or holds values BSON
                cannot represent
        """
        if isinstance(data, BaseModel):
            document = data.model_dump(by_alias=True)
        elif isinstance(data, Mapping):
            document = data
        else:
            raise CodecError(f"Cannot encode {type(data).__name__} as a BSON document")

        try:
            return bson.encode(document)
        except (BSONError, TypeError, OverflowError) as exc:
            raise CodecError(f"BSON encoding failed: {exc}") from exc

    def decode(self, data: bytes, shape: Any = None) -> Any:
        """Decode BSON bytes to data.

        Args:
            data: BSON document bytes
            shape: Destination type (pydantic model, TypedDict, ...) or None

        Returns:
            The document as a dict, or validated into shape

        Raises:
            CodecError: If the bytes are not a well-formed document or lack
                fields required by shape
        """
        try:
            document = bson.decode(data)
        except (BSONError, IndexError, ValueError) as exc:
            raise CodecError(f"Malformed BSON document: {exc}") from exc

        if shape is None:
            return document

        try:
            return _adapter(shape).validate_python(document)
        except ValidationError as exc:
            raise CodecError(f"Document does not match {getattr(shape, '__name__', shape)!r}: {exc}") from exc
