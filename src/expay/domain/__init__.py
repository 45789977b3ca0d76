"""Domain layer: errors, identifiers, and the payment resource."""

from expay.domain.errors import (
    CodecError,
    DecodeError,
    EncodeError,
    ExpayError,
    InvalidIdError,
    InvalidPaymentError,
    IteratorExhaustedError,
    NotFoundError,
    StoreIOError,
    UnsupportedOperationError,
)

__all__ = [
    "ExpayError",
    "NotFoundError",
    "UnsupportedOperationError",
    "StoreIOError",
    "CodecError",
    "EncodeError",
    "DecodeError",
    "InvalidIdError",
    "InvalidPaymentError",
    "IteratorExhaustedError",
]
