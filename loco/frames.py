"""LOCO packet structures and serialization."""

import asyncio
import struct
from dataclasses import dataclass
from typing import Any

from .codecs import get_codec
from .constants import DEFAULT_MAX_BODY_BYTES, HEADER_FORMAT, HEADER_SIZE, METHOD_NAME_SIZE, BodyType
from .exceptions import FramingError, TransportError

# ----------------------------------------------------------------------------
# Packet structures
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class PacketHeader:
    """LOCO packet header.

    On the wire the header is a fixed 22 byte little-endian record. The
    method name always occupies 11 bytes, padded with NUL bytes.
    """

    packet_id: int = 0
    status_code: int = 0
    method: str = ""
    body_type: int = BodyType.BSON
    body_length: int = 0

    def to_bytes(self) -> bytes:
        """Convert header to its 22 byte wire form."""
        return encode_header(self, self.body_length)

    @classmethod
    def from_bytes(cls, data: bytes) -> "PacketHeader":
        """Create header from its 22 byte wire form."""
        return decode_header(data)


@dataclass(frozen=True)
class Packet:
    """LOCO packet containing header and document body."""

    header: PacketHeader
    body: bytes

    def __post_init__(self) -> None:
        if len(self.body) != self.header.body_length:
            raise FramingError(
                f"Body length mismatch: header declares {self.header.body_length}, body has {len(self.body)}"
            )

    @classmethod
    def build(
        cls,
        packet_id: int,
        method: str,
        value: Any,
        status_code: int = 0,
        body_type: int = BodyType.BSON,
    ) -> "Packet":
        """Encode a value and wrap it in a packet.

        Args:
            packet_id: Caller assigned correlation id
            method: Method name (at most 11 ASCII bytes)
            value: Document to encode (pydantic model or mapping)
            status_code: Status code (0 on requests)
            body_type: Body codec discriminator

        Returns:
            Packet whose header carries the encoded body length
        """
        body = get_codec(body_type).encode(value)
        header = PacketHeader(
            packet_id=packet_id,
            status_code=status_code,
            method=method,
            body_type=body_type,
            body_length=len(body),
        )
        return cls(header=header, body=body)

    def decode(self, shape: Any = None) -> Any:
        """Decode the body with the codec named by the header."""
        return parse_body(self.body, self.header, shape)

    @property
    def method(self) -> str:
        return self.header.method

    @property
    def packet_id(self) -> int:
        return self.header.packet_id

    @property
    def status_code(self) -> int:
        return self.header.status_code


# ----------------------------------------------------------------------------
# Header serialization/deserialization
# ----------------------------------------------------------------------------


def encode_header(header: PacketHeader, body_length: int) -> bytes:
    """Pack a header into the 22 byte wire format.

    Args:
        header: Header to serialize (its own body_length is ignored)
        body_length: Length of the body that follows the header

    Returns:
        22 bytes, little-endian

    Raises:
        FramingError: If the method name does not fit the 11 byte field or a
            numeric field is out of range
    """
    try:
        method = header.method.encode("ascii")
    except UnicodeEncodeError as exc:
        raise FramingError(f"Method name is not ASCII: {header.method!r}") from exc
    if len(method) > METHOD_NAME_SIZE:
        raise FramingError(f"Method name longer than {METHOD_NAME_SIZE} bytes: {header.method!r}")

    # struct pads 11s with NUL bytes
    try:
        return struct.pack(
            HEADER_FORMAT, header.packet_id, header.status_code, method, header.body_type, body_length
        )
    except struct.error as exc:
        raise FramingError(f"Invalid header field: {exc}") from exc


def decode_header(data: bytes) -> PacketHeader:
    """Parse the first 22 bytes of data as a packet header.

    Args:
        data: At least 22 bytes

    Returns:
        Parsed header

    Raises:
        FramingError: If fewer than 22 bytes are supplied or the method name
            is not valid UTF-8
    """
    if len(data) < HEADER_SIZE:
        raise FramingError(f"Short packet header: expected {HEADER_SIZE} bytes, got {len(data)}")

    packet_id, status_code, raw_method, body_type, body_length = struct.unpack_from(HEADER_FORMAT, data)
    try:
        method = raw_method.rstrip(b"\x00").decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FramingError(f"Method name is not valid UTF-8: {raw_method!r}") from exc

    return PacketHeader(
        packet_id=packet_id,
        status_code=status_code,
        method=method,
        body_type=body_type,
        body_length=body_length,
    )


# ----------------------------------------------------------------------------
# Packet serialization/deserialization
# ----------------------------------------------------------------------------


def pack_packet(packet: Packet) -> bytes:
    """Pack a Packet into the LOCO binary format.

    Args:
        packet: The packet to serialize

    Returns:
        Header bytes followed by body bytes
    """
    return encode_header(packet.header, len(packet.body)) + packet.body


parse_header = decode_header


def parse_body(data: bytes, header: PacketHeader, shape: Any = None) -> Any:
    """Decode a packet body.

    Args:
        data: Body bytes, exactly header.body_length long
        header: Header read before the body
        shape: Destination pydantic model, or None for a plain dict

    Returns:
        Decoded document

    Raises:
        FramingError: If the body length does not match the header
        CodecError: If the body does not decode into the requested shape
    """
    if len(data) != header.body_length:
        raise FramingError(f"Body length mismatch: header declares {header.body_length}, got {len(data)}")
    return get_codec(header.body_type).decode(data, shape)


def parse_packet(data: bytes) -> Packet:
    """Split one complete plaintext packet into header and body.

    Raises:
        FramingError: If the data is not exactly one packet
    """
    header = decode_header(data)
    body = data[HEADER_SIZE:]
    if len(body) != header.body_length:
        raise FramingError(f"Body length mismatch: header declares {header.body_length}, got {len(body)}")
    return Packet(header=header, body=bytes(body))


async def recv_exact(reader: asyncio.StreamReader, n: int) -> bytes:
    """Receive exactly n bytes from a stream.

    Args:
        reader: Stream to receive from
        n: Number of bytes to receive

    Returns:
        Received bytes

    Raises:
        TransportError: If the stream fails or is closed unexpectedly
    """
    try:
        return await reader.readexactly(n)
    except asyncio.IncompleteReadError as exc:
        raise TransportError(f"Unexpected EOF from peer ({len(exc.partial)} of {n} bytes)") from exc
    except OSError as exc:
        raise TransportError(f"Read failed: {exc}") from exc


async def read_packet(reader: asyncio.StreamReader, max_body_bytes: int = DEFAULT_MAX_BODY_BYTES) -> Packet:
    """Read one plaintext packet from a stream.

    Args:
        reader: Stream to read from
        max_body_bytes: Largest body accepted

    Returns:
        Parsed packet

    Raises:
        FramingError: If the declared body is larger than max_body_bytes
        TransportError: If the stream is closed unexpectedly
    """
    header = decode_header(await recv_exact(reader, HEADER_SIZE))
    if header.body_length > max_body_bytes:
        raise FramingError(f"Packet body too large: {header.body_length} > {max_body_bytes}")
    body = await recv_exact(reader, header.body_length)
    return Packet(header=header, body=body)
