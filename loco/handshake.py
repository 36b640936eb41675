"""LOCO session key exchange.

The client opens a secure session by generating a random AES-128 key,
encrypting it with the server's RSA public key (OAEP, SHA-1) and sending it
behind a 12 byte preamble::

    [data_length:u32][rsa_encrypt_type:u32][aes_encrypt_type:u32][encrypted key]

The preamble is sent exactly once per connection, before the first packet.
"""

import asyncio
import logging
import secrets
import struct
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from cryptography.hazmat.primitives.serialization import load_pem_public_key

from .constants import (
    AES_ENCRYPT_TYPE,
    HANDSHAKE_HEADER_FORMAT,
    HANDSHAKE_HEADER_SIZE,
    LOCO_PUBLIC_KEY,
    RSA_ENCRYPT_TYPE,
    SESSION_KEY_SIZE,
)
from .exceptions import CryptoError, FramingError
from .frames import recv_exact

__all__ = [
    "HandshakeHeader",
    "HandshakeState",
    "Handshake",
    "load_public_key",
    "default_public_key",
    "generate_session_key",
    "decrypt_session_key",
    "read_handshake",
]

logger = logging.getLogger(__name__)

# Largest encrypted key blob accepted from a peer (16384 bit RSA)
MAX_HANDSHAKE_DATA = 2048


def _oaep() -> padding.OAEP:
    return padding.OAEP(mgf=padding.MGF1(algorithm=hashes.SHA1()), algorithm=hashes.SHA1(), label=None)


@dataclass(frozen=True)
class HandshakeHeader:
    """12 byte handshake preamble."""

    data_length: int
    rsa_encrypt_type: int = RSA_ENCRYPT_TYPE
    aes_encrypt_type: int = AES_ENCRYPT_TYPE

    def to_bytes(self) -> bytes:
        return struct.pack(HANDSHAKE_HEADER_FORMAT, self.data_length, self.rsa_encrypt_type, self.aes_encrypt_type)

    @classmethod
    def from_bytes(cls, data: bytes) -> "HandshakeHeader":
        if len(data) < HANDSHAKE_HEADER_SIZE:
            raise FramingError(f"Short handshake header: expected {HANDSHAKE_HEADER_SIZE} bytes, got {len(data)}")
        return cls(*struct.unpack_from(HANDSHAKE_HEADER_FORMAT, data))


class HandshakeState(Enum):
    UNKEYED = "unkeyed"
    KEYED = "keyed"


def load_public_key(pem: bytes) -> RSAPublicKey:
    """Load an RSA public key from a PEM encoded SubjectPublicKeyInfo.

    Raises:
        CryptoError: If the key is malformed or not an RSA key
    """
    try:
        key = load_pem_public_key(pem)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise CryptoError(f"Cannot load public key: {exc}") from exc
    if not isinstance(key, RSAPublicKey):
        raise CryptoError(f"Unsupported public key type: {type(key).__name__} (expected RSA)")
    return key


@lru_cache(maxsize=1)
def default_public_key() -> RSAPublicKey:
    """The embedded LOCO server key, loaded once per process."""
    return load_public_key(LOCO_PUBLIC_KEY)


def generate_session_key() -> bytes:
    return secrets.token_bytes(SESSION_KEY_SIZE)


class Handshake:
    """Client side of the key exchange for one connection.

    A handshake starts unkeyed. Calling :meth:`to_bytes` generates the session
    key, encrypts it and moves to the keyed state; it can only happen once.
    """

    def __init__(self, public_key: RSAPublicKey | None = None) -> None:
        self._public_key = public_key
        self._key: bytes | None = None
        self.state = HandshakeState.UNKEYED

    @property
    def key(self) -> bytes:
        """The session key (only available once keyed)."""
        if self._key is None:
            raise CryptoError("Handshake has not been performed")
        return self._key

    def to_bytes(self) -> bytes:
        """Generate the session key and return preamble + encrypted key.

        Raises:
            CryptoError: If the handshake was already performed or the key
                cannot be encrypted
        """
        if self.state is HandshakeState.KEYED:
            raise CryptoError("Handshake already performed on this connection")

        public_key = self._public_key if self._public_key is not None else default_public_key()
        key = generate_session_key()
        try:
            blob = public_key.encrypt(key, _oaep())
        except ValueError as exc:
            raise CryptoError(f"Session key encryption failed: {exc}") from exc

        self._key = key
        self.state = HandshakeState.KEYED
        logger.debug("Handshake prepared (%d byte key blob)", len(blob))
        return HandshakeHeader(data_length=len(blob)).to_bytes() + blob

    def clear(self) -> None:
        """Forget the session key once the connection it keyed is closed.

        The handshake stays in the keyed state; a new connection needs a new
        :class:`Handshake`.
        """
        self._key = None


# ----------------------------------------------------------------------------
# Server side
# ----------------------------------------------------------------------------


def decrypt_session_key(private_key: RSAPrivateKey, blob: bytes) -> bytes:
    """Recover the session key from an encrypted key blob.

    Raises:
        CryptoError: If decryption fails or the key is not 16 bytes long
    """
    try:
        key = private_key.decrypt(blob, _oaep())
    except ValueError as exc:
        raise CryptoError(f"Session key decryption failed: {exc}") from exc
    if len(key) != SESSION_KEY_SIZE:
        raise CryptoError(f"Session key must be {SESSION_KEY_SIZE} bytes, got {len(key)}")
    return key


async def read_handshake(reader: asyncio.StreamReader, private_key: RSAPrivateKey) -> bytes:
    """Read a handshake from a stream and return the session key.

    Raises:
        FramingError: If the preamble declares an oversized blob
        CryptoError: If the algorithm identifiers are unknown or the key
            cannot be recovered
        TransportError: If the stream is closed unexpectedly
    """
    header = HandshakeHeader.from_bytes(await recv_exact(reader, HANDSHAKE_HEADER_SIZE))
    if header.data_length > MAX_HANDSHAKE_DATA:
        raise FramingError(f"Handshake key blob too large: {header.data_length}")
    if header.rsa_encrypt_type != RSA_ENCRYPT_TYPE or header.aes_encrypt_type != AES_ENCRYPT_TYPE:
        raise CryptoError(
            f"Unsupported encryption types: rsa={header.rsa_encrypt_type}, aes={header.aes_encrypt_type}"
        )
    blob = await recv_exact(reader, header.data_length)
    return decrypt_session_key(private_key, blob)
