"""LOCO client implementation."""

import asyncio
import logging
import ssl
from typing import Any, Self

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from .constants import DEFAULT_MAX_BODY_BYTES, METHOD_CHECKIN, METHOD_GETCONF, BodyType
from .exceptions import TransportError
from .frames import Packet
from .models import BookingRequest, CheckinRequest, CheckinResponse, GetConfResponse
from .transport import BOOKING_ENDPOINT, TICKET_ENDPOINT, PacketStream, ServiceEndpoint, open_stream

__all__ = ["Client", "get_booking_data", "get_checkin_data"]

logger = logging.getLogger(__name__)


class Client:
    """LOCO client for one service connection.

    Requests are strictly sequential: one packet is written, then the reply is
    read in full before the next request may start. Any error during an
    exchange closes the connection. Packet ids count from 1 on each connection.
    """

    def __init__(
        self,
        endpoint: ServiceEndpoint,
        *,
        ssl_context: ssl.SSLContext | None = None,
        public_key: RSAPublicKey | None = None,
        timeout: float | None = None,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    ):
        """Initialize client.

        Args:
            endpoint: Service to talk to (its mode selects TLS or secure session)
            ssl_context: TLS context for TLS mode endpoints
            public_key: Server public key for secure mode endpoints
            timeout: Deadline in seconds for connecting and for each exchange
                (no deadline when None)
            max_body_bytes: Largest reply body accepted
        """
        self.endpoint = endpoint
        self.ssl_context = ssl_context
        self.public_key = public_key
        self.timeout = timeout
        self.max_body_bytes = max_body_bytes
        self._stream: PacketStream | None = None
        self._packet_id = 1
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """Open the connection (and run the handshake in secure mode)."""
        if self._stream is not None:
            raise TransportError("Client is already connected")
        try:
            async with asyncio.timeout(self.timeout):
                self._stream = await open_stream(
                    self.endpoint,
                    ssl_context=self.ssl_context,
                    public_key=self.public_key,
                    max_body_bytes=self.max_body_bytes,
                )
        except TimeoutError as exc:
            raise TransportError(f"Timed out connecting to {self.endpoint}") from exc
        # Packet ids start over on every connection
        self._packet_id = 1
        logger.info("Connected to %s", self.endpoint)

    async def request(self, method: str, value: Any, status_code: int = 0) -> Packet:
        """Send a request and wait for the reply packet.

        Args:
            method: Method name
            value: Request document (pydantic model or mapping)
            status_code: Status code to send (0 for requests)

        Returns:
            Reply packet

        Raises:
            LocoError: On any framing, codec, crypto or transport failure; the
                connection is closed before the error propagates
        """
        async with self._lock:
            stream = self._require_stream()
            packet_id = self._packet_id
            self._packet_id += 1

            try:
                packet = Packet.build(packet_id, method, value, status_code=status_code, body_type=BodyType.BSON)
                async with asyncio.timeout(self.timeout):
                    await stream.send(packet)
                    response = await stream.receive()
            except TimeoutError as exc:
                await self.close()
                raise TransportError(f"Timed out waiting for {method} reply") from exc
            except BaseException:
                await self.close()
                raise

        if response.packet_id != packet_id:
            logger.warning("Reply packet id %d does not match request id %d", response.packet_id, packet_id)
        return response

    async def send_and_receive(self, method: str, value: Any, shape: Any = None) -> Any:
        """Send a request and decode the reply body.

        Args:
            method: Method name
            value: Request document
            shape: Type to validate the reply body against (dict when None)

        Returns:
            Decoded reply body
        """
        response = await self.request(method, value)
        try:
            return response.decode(shape)
        except BaseException:
            await self.close()
            raise

    async def close(self) -> None:
        """Close the connection."""
        stream, self._stream = self._stream, None
        if stream is not None:
            await stream.close()
            logger.info("Disconnected from %s", self.endpoint)

    @property
    def connected(self) -> bool:
        return self._stream is not None

    def _require_stream(self) -> PacketStream:
        if self._stream is None:
            raise TransportError("Client is not connected")
        return self._stream

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: object, exc_value: object, exc_traceback: object) -> None:
        await self.close()


# ----------------------------------------------------------------------------
# Service calls
# ----------------------------------------------------------------------------


async def get_booking_data(
    request: BookingRequest | None = None,
    *,
    endpoint: ServiceEndpoint = BOOKING_ENDPOINT,
    **options: Any,
) -> GetConfResponse:
    """Fetch the connection configuration from the booking service (GETCONF)."""
    async with Client(endpoint, **options) as client:
        return await client.send_and_receive(METHOD_GETCONF, request or BookingRequest(), GetConfResponse)


async def get_checkin_data(
    request: CheckinRequest,
    *,
    endpoint: ServiceEndpoint = TICKET_ENDPOINT,
    **options: Any,
) -> CheckinResponse:
    """Ask the ticket service which chat server to use (CHECKIN)."""
    async with Client(endpoint, **options) as client:
        return await client.send_and_receive(METHOD_CHECKIN, request, CheckinResponse)
