"""LOCO error taxonomy."""

__all__ = ["LocoError", "FramingError", "CodecError", "CryptoError", "TransportError"]


class LocoError(Exception):
    """Base class for all errors raised by this package.

    None of these errors leave a connection reusable: the connection that
    raised one must be closed and a fresh one (with a fresh handshake) opened.
    """


class FramingError(LocoError, ValueError):
    """Raised when bytes on the wire do not form a valid packet or envelope.

    Covers short headers, method names that do not fit the 11 byte field,
    body lengths that do not match the declared length and envelopes whose
    ciphertext does not match their declared ``data_length``.
    """


class CodecError(LocoError, ValueError):
    """Raised when a packet body cannot be encoded or decoded.

    The ``__cause__`` attribute holds the underlying serializer or
    validation error.
    """


class CryptoError(LocoError):
    """Raised when the handshake or the session cipher fails.

    For example a malformed public key, a failed asymmetric encryption or a
    session key of the wrong size.
    """


class TransportError(LocoError, ConnectionError):
    """Raised when the underlying byte stream fails.

    Connect failures, TLS handshake failures, timeouts, write failures and
    premature end of stream all end up here. This is also raised when a
    connection that already failed or was closed is used again.
    """
