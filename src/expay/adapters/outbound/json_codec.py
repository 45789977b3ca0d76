"""JSON value codec built on pydantic type adapters.

A codec is bound to one destination type. Dataclasses, pydantic models,
typed containers, and plain JSON values all round-trip; with the default
``Any`` type the codec accepts any JSON-serializable value.

Both directions are strict. A value handed to ``encode`` must already be
an instance of the destination type, so nothing that ``decode`` would later
reject ever reaches the store. NaN and the infinities have no JSON form
and are refused rather than written as ``null``.
"""

from __future__ import annotations

import math
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from expay.domain.errors import DecodeError, EncodeError

T = TypeVar("T")


class JsonCodec(Generic[T]):
    """ValueCodec implementation producing UTF-8 JSON."""

    def __init__(self, value_type: Any = Any) -> None:
        """Initialize the codec.

        Args:
            value_type: Type that encoded and decoded values must match.
        """
        self._value_type = value_type
        self._adapter: TypeAdapter[T] = TypeAdapter(value_type)

    @property
    def value_type(self) -> Any:
        """Return the destination type of this codec."""
        return self._value_type

    def encode(self, value: T) -> bytes:
        """Serialize a value to JSON bytes.

        Raises:
            EncodeError: If the value is not of the codec's type, contains a
                non-finite float, or cannot be represented as JSON.
        """
        if self._value_type is not Any:
            try:
                self._adapter.validate_python(value, strict=True)
            except ValidationError as e:
                raise EncodeError(
                    f"cannot encode {type(value).__name__} as {self._type_name()}: "
                    f"{e.errors()[0]['msg']}"
                ) from e

        try:
            plain = self._adapter.dump_python(value)
            data = self._adapter.dump_json(value)
        except (PydanticSerializationError, TypeError, ValueError) as e:
            raise EncodeError(f"cannot encode {type(value).__name__}: {e}") from e

        if _has_non_finite(plain):
            raise EncodeError(f"cannot encode {type(value).__name__}: non-finite float")
        return data

    def decode(self, data: bytes) -> T:
        """Deserialize JSON bytes into the destination type.

        Raises:
            DecodeError: If the bytes are not JSON or do not match the type.
        """
        try:
            return self._adapter.validate_json(data, strict=True)
        except ValidationError as e:
            raise DecodeError(
                f"cannot decode into {self._type_name()}: {e.error_count()} error(s): "
                f"{e.errors()[0]['msg']}"
            ) from e

    def _type_name(self) -> str:
        return getattr(self._value_type, "__name__", repr(self._value_type))

    def __repr__(self) -> str:
        return f"JsonCodec({self._type_name()})"


def _has_non_finite(value: Any) -> bool:
    """Return True if a float anywhere in ``value`` is NaN or infinite."""
    if isinstance(value, float):
        return not math.isfinite(value)
    if isinstance(value, dict):
        return any(_has_non_finite(item) for item in value.values())
    if isinstance(value, (list, tuple, set, frozenset)):
        return any(_has_non_finite(item) for item in value)
    return False
