"""Error taxonomy shared by the storage layer and the payment service.

The storage layer never retries or recovers: every failure surfaces as one
of these exceptions, with the underlying driver or codec error chained as
``__cause__``. Callers decide how to present them.
"""

from __future__ import annotations


class ExpayError(Exception):
    """Base class for all ExPay errors."""


class NotFoundError(ExpayError, LookupError):
    """Raised when an item is not found in the store.

    Covers both an absent key and a bucket that has never been written.
    """

    def __init__(
        self,
        message: str = "item not found",
        bucket: str | None = None,
        record_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.bucket = bucket
        self.record_id = record_id


class UnsupportedOperationError(ExpayError, NotImplementedError):
    """Raised for operations the store reserves but does not implement."""


class StoreIOError(ExpayError, OSError):
    """Raised when the store file cannot be opened or a transaction fails."""


class CodecError(ExpayError):
    """Base class for value serialization errors."""


class EncodeError(CodecError, ValueError):
    """Raised when a value cannot be serialized."""


class DecodeError(CodecError, ValueError):
    """Raised when stored bytes do not match the requested value type."""


class InvalidIdError(ExpayError, ValueError):
    """Raised when an external record id is not a 16-digit hex string."""


class InvalidPaymentError(ExpayError, ValueError):
    """Raised when a payment fails verification."""

    def __init__(self, message: str = "invalid payment") -> None:
        super().__init__(message)


class IteratorExhaustedError(ExpayError, LookupError):
    """Raised when scanning an iterator that has no current element."""
