"""LOCO transports.

A LOCO service is reached in one of two fixed modes:

- ``TLS``: packets are written in the clear to a TLS wrapped TCP stream.
- ``SECURE``: a plain TCP stream; the client sends the handshake once, then
  every packet travels inside a secure envelope.

The mode is a property of the service being contacted and never changes for
the life of a connection.
"""

import asyncio
import logging
import ssl
from dataclasses import dataclass
from enum import Enum
from typing import Self

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from .constants import BOOKING_HOST, DEFAULT_MAX_BODY_BYTES, HEADER_SIZE, IV_SIZE, LOCO_PORT, TICKET_HOST
from .exceptions import LocoError, TransportError
from .frames import Packet, pack_packet, parse_packet, read_packet
from .handshake import Handshake
from .secure import SecureChannel

__all__ = [
    "TransportMode",
    "ServiceEndpoint",
    "BOOKING_ENDPOINT",
    "TICKET_ENDPOINT",
    "PacketStream",
    "PlainPacketStream",
    "SecurePacketStream",
    "open_stream",
]

logger = logging.getLogger(__name__)


class TransportMode(Enum):
    TLS = "tls"
    SECURE = "secure"


@dataclass(frozen=True)
class ServiceEndpoint:
    """A LOCO service address and the transport mode it speaks."""

    host: str
    port: int
    mode: TransportMode

    def __str__(self) -> str:
        return f"{self.host}:{self.port} ({self.mode.value})"


BOOKING_ENDPOINT = ServiceEndpoint(BOOKING_HOST, LOCO_PORT, TransportMode.TLS)
TICKET_ENDPOINT = ServiceEndpoint(TICKET_HOST, LOCO_PORT, TransportMode.SECURE)


class PacketStream:
    """Packet level view of a byte stream.

    Any failure while sending or receiving breaks the stream: the read
    position can no longer be trusted, so every further call raises
    :class:`TransportError`.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self.max_body_bytes = max_body_bytes
        self._closed = False
        self._broken = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def broken(self) -> bool:
        return self._broken

    async def start(self) -> None:
        """Run any per connection setup before the first packet."""

    async def send(self, packet: Packet) -> None:
        self._check_usable()
        try:
            await self._write(self._encode(pack_packet(packet)))
        except LocoError:
            self._broken = True
            raise
        logger.debug("Sent %s packet id=%d (%d body bytes)", packet.method, packet.packet_id, len(packet.body))

    async def receive(self) -> Packet:
        self._check_usable()
        try:
            packet = await self._read()
        except LocoError:
            self._broken = True
            raise
        logger.debug(
            "Received %s packet id=%d status=%d (%d body bytes)",
            packet.method,
            packet.packet_id,
            packet.status_code,
            len(packet.body),
        )
        return packet

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._writer.close()
            await self._writer.wait_closed()
        except OSError as exc:
            # The peer may already be gone; there is nothing left to flush
            logger.debug("Error while closing stream: %s", exc)

    def _check_usable(self) -> None:
        if self._closed:
            raise TransportError("Stream is closed")
        if self._broken:
            raise TransportError("Stream is broken by an earlier error")

    def _encode(self, data: bytes) -> bytes:
        return data

    async def _read(self) -> Packet:
        raise NotImplementedError

    async def _write(self, data: bytes) -> None:
        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as exc:
            raise TransportError(f"Write failed: {exc}") from exc

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: object, exc_value: object, exc_traceback: object) -> None:
        await self.close()


class PlainPacketStream(PacketStream):
    """Packets written as is (the stream is expected to be TLS wrapped)."""

    async def _read(self) -> Packet:
        return await read_packet(self._reader, self.max_body_bytes)


class SecurePacketStream(PacketStream):
    """Packets wrapped in secure envelopes after a one time handshake.

    A client stream sends the handshake from :meth:`start`. A stream created
    with an already keyed ``channel`` (the accepting side) skips it.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        public_key: RSAPublicKey | None = None,
        channel: SecureChannel | None = None,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    ) -> None:
        super().__init__(reader, writer, max_body_bytes=max_body_bytes)
        self._handshake = Handshake(public_key)
        self._channel = channel

    async def start(self) -> None:
        self._check_usable()
        if self._channel is not None:
            return
        try:
            data = self._handshake.to_bytes()
            self._channel = SecureChannel(self._handshake.key)
            await self._write(data)
        except LocoError:
            self._broken = True
            raise
        logger.debug("Secure session handshake sent")

    async def close(self) -> None:
        await super().close()
        # Drop the session key with the connection
        self._channel = None
        self._handshake.clear()

    @property
    def channel(self) -> SecureChannel:
        if self._channel is None:
            raise TransportError("Secure session is not active")
        return self._channel

    def _encode(self, data: bytes) -> bytes:
        return self.channel.encrypt(data)

    async def _read(self) -> Packet:
        plaintext = await self.channel.read_envelope(self._reader, self.max_body_bytes + HEADER_SIZE + IV_SIZE)
        return parse_packet(plaintext)


async def open_stream(
    endpoint: ServiceEndpoint,
    *,
    ssl_context: ssl.SSLContext | None = None,
    public_key: RSAPublicKey | None = None,
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
) -> PacketStream:
    """Connect to a service and return a ready to use packet stream.

    Args:
        endpoint: Service to contact; its mode selects the transport
        ssl_context: TLS context for TLS mode (system defaults when omitted)
        public_key: Server key for secure mode (embedded key when omitted)
        max_body_bytes: Largest packet body accepted

    Returns:
        A started packet stream

    Raises:
        TransportError: If the connection or the TLS handshake fails
        CryptoError: If the secure session handshake cannot be prepared
    """
    connect_args = {}
    if endpoint.mode is TransportMode.TLS:
        connect_args["ssl"] = ssl_context if ssl_context is not None else ssl.create_default_context()
        connect_args["server_hostname"] = endpoint.host

    try:
        reader, writer = await asyncio.open_connection(endpoint.host, endpoint.port, **connect_args)
    except OSError as exc:
        raise TransportError(f"Cannot connect to {endpoint}: {exc}") from exc

    logger.debug("Connected to %s", endpoint)

    stream: PacketStream
    if endpoint.mode is TransportMode.TLS:
        stream = PlainPacketStream(reader, writer, max_body_bytes=max_body_bytes)
    else:
        stream = SecurePacketStream(reader, writer, public_key=public_key, max_body_bytes=max_body_bytes)

    try:
        await stream.start()
    except BaseException:
        await stream.close()
        raise
    return stream
