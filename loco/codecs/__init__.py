"""Packet body codecs, looked up by the header's body_type."""

from ..constants import BodyType
from ..exceptions import CodecError
from .base import Codec
from .bson_codec import BSONCodec

__all__ = [
    "Codec",
    "BSONCodec",
    "register_codec",
    "get_codec",
    "list_codecs",
]


_CODECS: dict[int, type[Codec]] = {}


def register_codec(body_type: int, codec_class: type[Codec]) -> None:
    """Register the codec used for packets carrying body_type."""
    if not 0 <= body_type <= 0xFF:
        raise ValueError(f"body_type must fit in one byte, got {body_type}")
    _CODECS[body_type] = codec_class


def get_codec(body_type: int) -> Codec:
    """Return a codec for body_type, or raise CodecError if none is registered."""
    try:
        codec_class = _CODECS[body_type]
    except KeyError:
        raise CodecError(f"No codec registered for body type {body_type}") from None
    return codec_class()


def list_codecs() -> list[int]:
    return sorted(_CODECS)


register_codec(BodyType.BSON, BSONCodec)
