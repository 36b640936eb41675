# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
r"""LOCO - a client for the LOCO length-prefixed binary packet protocol.

This package implements the framing, handshake and session encryption layers
of the protocol:
- 22 byte little-endian packet headers followed by BSON document bodies
- Pluggable body codecs keyed by the header body type
- RSA-OAEP (SHA-1) session key exchange with a 12 byte preamble
- AES-128-CFB secure envelopes with a fresh IV per packet
- TLS and secure-session transports selected per service
- An asyncio client with typed request/response calls and a local peer server
"""

# Import public API from modules
from .client import Client, get_booking_data, get_checkin_data
from .codecs import (
    BSONCodec,
    Codec,
    get_codec,
    list_codecs,
    register_codec,
)
from .constants import (
    AES_ENCRYPT_TYPE,
    DEFAULT_MAX_BODY_BYTES,
    DEFAULT_MAX_ENVELOPE_BYTES,
    HEADER_SIZE,
    LOCO_PUBLIC_KEY,
    METHOD_NAME_SIZE,
    RSA_ENCRYPT_TYPE,
    SESSION_KEY_SIZE,
    BodyType,
)
from .exceptions import (
    CodecError,
    CryptoError,
    FramingError,
    LocoError,
    TransportError,
)
from .frames import (
    Packet,
    PacketHeader,
    decode_header,
    encode_header,
    pack_packet,
    parse_body,
    parse_header,
    parse_packet,
    read_packet,
)
from .handshake import (
    Handshake,
    HandshakeHeader,
    HandshakeState,
    decrypt_session_key,
    default_public_key,
    generate_session_key,
    load_public_key,
    read_handshake,
)
from .models import (
    BookingRequest,
    CheckinRequest,
    CheckinResponse,
    ConnectionInfo,
    GetConfResponse,
    HostInfo,
    Trailer,
    TrailerHigh,
)
from .secure import SecureChannel, SecureHeader
from .server import Server
from .transport import (
    BOOKING_ENDPOINT,
    TICKET_ENDPOINT,
    PacketStream,
    PlainPacketStream,
    SecurePacketStream,
    ServiceEndpoint,
    TransportMode,
    open_stream,
)

# Public API exports
__all__ = [
    # Core classes
    "Packet",
    "PacketHeader",
    "Client",
    "Server",
    "Codec",
    "BSONCodec",
    "Handshake",
    "HandshakeHeader",
    "HandshakeState",
    "SecureChannel",
    "SecureHeader",
    "ServiceEndpoint",
    "PacketStream",
    "PlainPacketStream",
    "SecurePacketStream",
    # Constants and enums
    "HEADER_SIZE",
    "METHOD_NAME_SIZE",
    "SESSION_KEY_SIZE",
    "RSA_ENCRYPT_TYPE",
    "AES_ENCRYPT_TYPE",
    "LOCO_PUBLIC_KEY",
    "DEFAULT_MAX_BODY_BYTES",
    "DEFAULT_MAX_ENVELOPE_BYTES",
    "BodyType",
    "TransportMode",
    "BOOKING_ENDPOINT",
    "TICKET_ENDPOINT",
    # Errors
    "LocoError",
    "FramingError",
    "CodecError",
    "CryptoError",
    "TransportError",
    # Packet utilities
    "encode_header",
    "decode_header",
    "pack_packet",
    "parse_header",
    "parse_body",
    "parse_packet",
    "read_packet",
    # Codec utilities
    "get_codec",
    "list_codecs",
    "register_codec",
    # Handshake utilities
    "load_public_key",
    "default_public_key",
    "generate_session_key",
    "decrypt_session_key",
    "read_handshake",
    # Transport and service calls
    "open_stream",
    "get_booking_data",
    "get_checkin_data",
    # Documents
    "BookingRequest",
    "ConnectionInfo",
    "HostInfo",
    "Trailer",
    "TrailerHigh",
    "GetConfResponse",
    "CheckinRequest",
    "CheckinResponse",
]
