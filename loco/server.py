"""LOCO peer server for local testing."""

import asyncio
import logging
import ssl
from collections.abc import Callable
from typing import Self

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .constants import DEFAULT_MAX_BODY_BYTES
from .exceptions import LocoError
from .frames import Packet
from .handshake import read_handshake
from .secure import SecureChannel
from .transport import PacketStream, PlainPacketStream, SecurePacketStream, TransportMode

__all__ = ["Server"]

logger = logging.getLogger(__name__)


class Server:
    """LOCO server that accepts connections and answers packets.

    In secure mode every connection starts with the client's handshake, which
    is decrypted with ``private_key``. In TLS mode ``ssl_context`` must be a
    server side context.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 0,
        mode: TransportMode = TransportMode.SECURE,
        *,
        private_key: RSAPrivateKey | None = None,
        ssl_context: ssl.SSLContext | None = None,
        on_packet: Callable[[Packet], Packet | None] | None = None,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    ):
        """Initialize server.

        Args:
            host: Host to bind to
            port: Port to bind to (0 picks a free port, see :attr:`port`)
            mode: Transport mode clients are expected to use
            private_key: Key matching the public key clients encrypt with
                (secure mode)
            ssl_context: Server TLS context (TLS mode)
            on_packet: Packet handler; returns the reply or None for no reply
            max_body_bytes: Largest request body accepted
        """
        if mode is TransportMode.SECURE and private_key is None:
            raise ValueError("Secure mode requires a private key")
        if mode is TransportMode.TLS and ssl_context is None:
            raise ValueError("TLS mode requires an SSL context")
        self.host = host
        self.port = port
        self.mode = mode
        self.private_key = private_key
        self.ssl_context = ssl_context
        self.on_packet = on_packet or self._default_packet_handler
        self.max_body_bytes = max_body_bytes
        self._server: asyncio.Server | None = None
        self._streams: set[PacketStream] = set()

    @staticmethod
    def _default_packet_handler(packet: Packet) -> Packet:
        """Default handler that echoes the request.

        Args:
            packet: Received packet

        Returns:
            The same packet
        """
        return packet

    async def start(self) -> None:
        """Start listening."""
        self._server = await asyncio.start_server(
            self._handle_connection,
            self.host,
            self.port,
            ssl=self.ssl_context if self.mode is TransportMode.TLS else None,
        )
        self.port = self._server.sockets[0].getsockname()[1]
        logger.info("LOCO server listening on %s:%d (%s)", self.host, self.port, self.mode.value)

    async def stop(self) -> None:
        """Stop the server."""
        if self._server is not None:
            self._server.close()
            for stream in list(self._streams):
                await stream.close()
            await self._server.wait_closed()
            self._server = None

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        addr = writer.get_extra_info("peername")
        stream: PacketStream
        try:
            if self.mode is TransportMode.SECURE:
                key = await read_handshake(reader, self.private_key)
                stream = SecurePacketStream(
                    reader, writer, channel=SecureChannel(key), max_body_bytes=self.max_body_bytes
                )
            else:
                stream = PlainPacketStream(reader, writer, max_body_bytes=self.max_body_bytes)
        except LocoError as exc:
            logger.debug("Client %s handshake failed: %s", addr, exc)
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                logger.debug("Error while closing %s: %s", addr, exc)
            return

        self._streams.add(stream)
        try:
            async with stream:
                await self._serve(stream, addr)
        finally:
            self._streams.discard(stream)

    async def _serve(self, stream: PacketStream, addr: object) -> None:
        while True:
            try:
                packet = await stream.receive()
            except LocoError as exc:
                logger.debug("Client %s closed: %s", addr, exc)
                return
            try:
                response = self.on_packet(packet)
            except Exception:
                logger.exception("Packet handler failed for %s from %s", packet.method, addr)
                return
            if response is not None:
                try:
                    await stream.send(response)
                except LocoError as exc:
                    logger.debug("Client %s error: %s", addr, exc)
                    return

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, exc_type: object, exc_value: object, exc_traceback: object) -> None:
        await self.stop()
