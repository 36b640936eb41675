"""Tests for the LOCO session key exchange."""

import asyncio
import struct

import pytest
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa

from loco import (
    AES_ENCRYPT_TYPE,
    RSA_ENCRYPT_TYPE,
    SESSION_KEY_SIZE,
    CryptoError,
    FramingError,
    Handshake,
    HandshakeHeader,
    HandshakeState,
    decrypt_session_key,
    default_public_key,
    load_public_key,
    read_handshake,
)


def test_handshake_header_layout() -> None:
    """Test the 12 byte preamble layout."""
    header = HandshakeHeader(data_length=256)
    data = header.to_bytes()

    assert len(data) == 12
    assert data == struct.pack("<III", 256, 14, 2)
    assert HandshakeHeader.from_bytes(data) == header


def test_handshake_header_short() -> None:
    with pytest.raises(FramingError):
        HandshakeHeader.from_bytes(b"\x00" * 11)


def test_handshake_structure(rsa_private_key: rsa.RSAPrivateKey) -> None:
    """Test that the preamble reports the blob and fixed algorithm ids."""
    handshake = Handshake(rsa_private_key.public_key())
    assert handshake.state is HandshakeState.UNKEYED

    data = handshake.to_bytes()
    header = HandshakeHeader.from_bytes(data)
    blob = data[12:]

    assert handshake.state is HandshakeState.KEYED
    assert header.rsa_encrypt_type == RSA_ENCRYPT_TYPE == 14
    assert header.aes_encrypt_type == AES_ENCRYPT_TYPE == 2
    assert header.data_length == len(blob) == 256

    # The peer recovers exactly the session key
    assert decrypt_session_key(rsa_private_key, blob) == handshake.key
    assert len(handshake.key) == SESSION_KEY_SIZE


def test_handshake_blob_tracks_key_size() -> None:
    """Test that data_length follows the public key size."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=1024)
    data = Handshake(private_key.public_key()).to_bytes()
    assert HandshakeHeader.from_bytes(data).data_length == len(data) - 12 == 128


def test_handshake_only_once(rsa_public_key: rsa.RSAPublicKey) -> None:
    """Test that a connection cannot be keyed twice."""
    handshake = Handshake(rsa_public_key)
    handshake.to_bytes()
    with pytest.raises(CryptoError):
        handshake.to_bytes()


def test_key_before_handshake(rsa_public_key: rsa.RSAPublicKey) -> None:
    with pytest.raises(CryptoError):
        Handshake(rsa_public_key).key


def test_cleared_handshake_forgets_key(rsa_public_key: rsa.RSAPublicKey) -> None:
    """Test that a cleared handshake keeps no key and cannot be reused."""
    handshake = Handshake(rsa_public_key)
    handshake.to_bytes()
    handshake.clear()

    assert handshake.state is HandshakeState.KEYED
    with pytest.raises(CryptoError):
        handshake.key
    with pytest.raises(CryptoError):
        handshake.to_bytes()


def test_fresh_key_per_handshake(rsa_public_key: rsa.RSAPublicKey) -> None:
    first = Handshake(rsa_public_key)
    second = Handshake(rsa_public_key)
    first.to_bytes()
    second.to_bytes()
    assert first.key != second.key


def test_default_public_key() -> None:
    """Test that the embedded key loads once and produces a 2048 bit blob."""
    key = default_public_key()
    assert key is default_public_key()
    assert key.key_size == 2048

    data = Handshake().to_bytes()
    assert HandshakeHeader.from_bytes(data).data_length == 256
    assert len(data) == 12 + 256


def test_load_malformed_public_key() -> None:
    """Test that a malformed key is a crypto error."""
    with pytest.raises(CryptoError):
        load_public_key(b"-----BEGIN PUBLIC KEY-----\nnot a key\n-----END PUBLIC KEY-----\n")


def test_load_unsupported_key_encoding(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that keys the backend cannot handle are crypto errors."""

    def unsupported(data: bytes) -> None:
        raise UnsupportedAlgorithm("unsupported key encoding")

    monkeypatch.setattr("loco.handshake.load_pem_public_key", unsupported)
    with pytest.raises(CryptoError):
        load_public_key(b"-----BEGIN PUBLIC KEY-----\n-----END PUBLIC KEY-----\n")


def test_decrypt_with_wrong_key(rsa_public_key: rsa.RSAPublicKey) -> None:
    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    data = Handshake(rsa_public_key).to_bytes()
    with pytest.raises(CryptoError):
        decrypt_session_key(other_key, data[12:])


def test_read_handshake(rsa_private_key: rsa.RSAPrivateKey) -> None:
    """Test the accepting side reading a handshake from a stream."""
    handshake = Handshake(rsa_private_key.public_key())
    data = handshake.to_bytes()

    async def read() -> bytes:
        reader = asyncio.StreamReader()
        reader.feed_data(data)
        return await read_handshake(reader, rsa_private_key)

    assert asyncio.run(read()) == handshake.key


def test_read_handshake_unknown_algorithms(rsa_private_key: rsa.RSAPrivateKey) -> None:
    data = Handshake(rsa_private_key.public_key()).to_bytes()
    tampered = struct.pack("<III", len(data) - 12, 15, 2) + data[12:]

    async def read() -> bytes:
        reader = asyncio.StreamReader()
        reader.feed_data(tampered)
        return await read_handshake(reader, rsa_private_key)

    with pytest.raises(CryptoError):
        asyncio.run(read())
