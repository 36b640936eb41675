"""Body codec interface.

A codec turns a request document into packet body bytes and turns a reply
body back into a value. Decoding is schema-on-read: the caller names the
shape it expects and the codec validates the decoded document against it.
"""

from abc import ABC, abstractmethod
from typing import Any


class Codec(ABC):
    """Encodes and decodes packet bodies of one body type."""

    @abstractmethod
    def encode(self, value: Any) -> bytes:
        """Serialize a document into body bytes.

        Raises:
            CodecError: If the value cannot be represented
        """

    @abstractmethod
    def decode(self, data: bytes, shape: Any = None) -> Any:
        """Deserialize body bytes.

        Args:
            data: Exactly body_length bytes
            shape: Expected type of the document; the plain document is
                returned when omitted

        Raises:
            CodecError: If the bytes are malformed or do not fit shape
        """
