"""Record store port consumed by the payment service.

This inbound port is the capability surface the REST layer depends on:
CRUD over one bucket plus forward-only iteration. The storage engine's
``Bucket`` implements it; tests substitute an in-memory fake.

Key responsibilities:
- Allocate ids on create and hand them out as hex strings
- Report absence as ``NotFoundError``
- Iterate a consistent snapshot in ascending id order

References:
    - adapters/outbound/bucket.py (storage-engine implementation)
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol, TypeVar

T = TypeVar("T")


class RecordIterator(Protocol[T]):
    """Protocol for a forward-only, single-pass scan over records.

    Lifecycle:
        ``has_next`` reports whether a current element exists, ``scan``
        consumes it, and ``close`` releases the underlying snapshot. Close
        must run on every exit path; use the iterator as a context manager.
    """

    @abstractmethod
    def has_next(self) -> bool:
        """Return True if a current element is available to scan."""
        ...

    @abstractmethod
    def scan(self) -> tuple[str, T]:
        """Decode the current element and advance past it.

        Returns:
            The element's id and its decoded value.

        Raises:
            DecodeError: If the stored bytes do not match the value type.
                The iterator has already advanced past the element.
            IteratorExhaustedError: If there is no current element.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the read snapshot held by the iterator.

        Raises:
            StoreIOError: If the snapshot cannot be released.
        """
        ...

    def __enter__(self) -> RecordIterator[T]:
        ...

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        ...


class RecordStore(Protocol[T]):
    """Protocol for CRUD access to one bucket of records.

    Thread Safety:
        Implementations must be safe for concurrent use by request handlers.
    """

    @abstractmethod
    def create(self, value: T) -> str:
        """Store a new value under a freshly allocated id and return the id.

        Raises:
            EncodeError: If the value cannot be serialized.
            StoreIOError: If the transaction fails.
        """
        ...

    @abstractmethod
    def get(self, record_id: str) -> T:
        """Return the value stored under ``record_id``.

        Raises:
            NotFoundError: If the id or the bucket does not exist.
            DecodeError: If the stored bytes do not match the value type.
        """
        ...

    @abstractmethod
    def update(self, record_id: str, value: T) -> None:
        """Write ``value`` under ``record_id``.

        This is an upsert: it succeeds whether or not the id existed.

        Raises:
            EncodeError: If the value cannot be serialized.
            StoreIOError: If the transaction fails.
        """
        ...

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Remove ``record_id``; removing an absent id is not an error.

        Raises:
            StoreIOError: If the transaction fails.
        """
        ...

    @abstractmethod
    def list(self) -> RecordIterator[T]:
        """Return an iterator over all records in ascending id order.

        Raises:
            NotFoundError: If the bucket has never been written.
            StoreIOError: If the read transaction cannot be opened.
        """
        ...

    @abstractmethod
    def paginate(self, last_cursor: str, limit: int) -> RecordIterator[T]:
        """Cursor-based pagination (reserved).

        Raises:
            UnsupportedOperationError: Always.
        """
        ...
