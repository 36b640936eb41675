"""LOCO secure envelope.

In secure-session mode every packet travels inside an envelope::

    [data_length:u32][iv:16][ciphertext: data_length - 16 bytes]

The ciphertext is one complete packet (header and body) encrypted with
AES-128 in CFB mode (128 bit segments) under the session key and the
envelope's IV. Every envelope carries a freshly generated IV.
"""

import asyncio
import secrets
import struct
from dataclasses import dataclass

from cryptography.hazmat.decrepit.ciphers.modes import CFB
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

from .constants import DEFAULT_MAX_ENVELOPE_BYTES, IV_SIZE, SECURE_HEADER_FORMAT, SECURE_HEADER_SIZE, SESSION_KEY_SIZE
from .exceptions import CryptoError, FramingError
from .frames import recv_exact

__all__ = ["SecureHeader", "SecureChannel"]


@dataclass(frozen=True)
class SecureHeader:
    """20 byte envelope header: ciphertext length + 16, then the IV."""

    data_length: int
    iv: bytes

    @property
    def ciphertext_length(self) -> int:
        return self.data_length - IV_SIZE

    def to_bytes(self) -> bytes:
        return struct.pack(SECURE_HEADER_FORMAT, self.data_length, self.iv)

    @classmethod
    def from_bytes(cls, data: bytes) -> "SecureHeader":
        """Parse the first 20 bytes of data.

        Raises:
            FramingError: If fewer than 20 bytes are supplied or the declared
                length cannot hold an IV
        """
        if len(data) < SECURE_HEADER_SIZE:
            raise FramingError(f"Short secure header: expected {SECURE_HEADER_SIZE} bytes, got {len(data)}")
        data_length, iv = struct.unpack_from(SECURE_HEADER_FORMAT, data)
        if data_length < IV_SIZE:
            raise FramingError(f"Secure header data_length {data_length} is smaller than the IV")
        return cls(data_length=data_length, iv=iv)


class SecureChannel:
    """Encrypts and decrypts envelopes under one session key."""

    def __init__(self, key: bytes) -> None:
        if len(key) != SESSION_KEY_SIZE:
            raise CryptoError(f"Session key must be {SESSION_KEY_SIZE} bytes, got {len(key)}")
        self._algorithm = algorithms.AES(key)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(self._algorithm, CFB(iv))

    def encrypt(self, plaintext: bytes, iv: bytes | None = None) -> bytes:
        """Wrap plaintext packet bytes in an envelope.

        Args:
            plaintext: One complete packet (header and body)
            iv: IV to use; a fresh random one when omitted

        Returns:
            Envelope bytes
        """
        if iv is None:
            iv = secrets.token_bytes(IV_SIZE)
        elif len(iv) != IV_SIZE:
            raise CryptoError(f"IV must be {IV_SIZE} bytes, got {len(iv)}")

        encryptor = self._cipher(iv).encryptor()
        ciphertext = encryptor.update(plaintext) + encryptor.finalize()
        header = SecureHeader(data_length=len(ciphertext) + IV_SIZE, iv=iv)
        return header.to_bytes() + ciphertext

    def decrypt(self, envelope: bytes) -> bytes:
        """Unwrap one complete envelope.

        Args:
            envelope: Secure header followed by exactly data_length - 16
                bytes of ciphertext

        Returns:
            Plaintext packet bytes

        Raises:
            FramingError: If the ciphertext length does not match the header
        """
        header = SecureHeader.from_bytes(envelope)
        ciphertext = envelope[SECURE_HEADER_SIZE:]
        if len(ciphertext) != header.ciphertext_length:
            raise FramingError(
                f"Envelope length mismatch: header declares {header.ciphertext_length} bytes, got {len(ciphertext)}"
            )
        return self.decrypt_payload(header, ciphertext)

    def decrypt_payload(self, header: SecureHeader, ciphertext: bytes) -> bytes:
        decryptor = self._cipher(header.iv).decryptor()
        return decryptor.update(ciphertext) + decryptor.finalize()

    async def read_envelope(
        self, reader: asyncio.StreamReader, max_bytes: int = DEFAULT_MAX_ENVELOPE_BYTES
    ) -> bytes:
        """Read one envelope from a stream and return its plaintext.

        Raises:
            FramingError: If the envelope is larger than max_bytes
            TransportError: If the stream is closed unexpectedly
        """
        header = SecureHeader.from_bytes(await recv_exact(reader, SECURE_HEADER_SIZE))
        if header.data_length > max_bytes:
            raise FramingError(f"Envelope too large: {header.data_length} > {max_bytes}")
        ciphertext = await recv_exact(reader, header.ciphertext_length)
        return self.decrypt_payload(header, ciphertext)
