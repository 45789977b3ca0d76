"""Value codec port.

Every read and write path of a bucket goes through a codec that turns a
structured value into self-describing bytes and back. The encoding keeps
field names so stored values can be inspected without the program that
wrote them.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol, TypeVar

T = TypeVar("T")


class ValueCodec(Protocol[T]):
    """Protocol for converting values of one type to and from bytes."""

    @abstractmethod
    def encode(self, value: T) -> bytes:
        """Serialize a value.

        Raises:
            EncodeError: If the value cannot be serialized.
        """
        ...

    @abstractmethod
    def decode(self, data: bytes) -> T:
        """Deserialize bytes into a value of the codec's type.

        Raises:
            DecodeError: If the bytes are malformed or their shape does not
                match the codec's type.
        """
        ...
