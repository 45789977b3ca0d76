"""Snapshot iterator over the records of one bucket.

The iterator owns a read transaction taken when the bucket was listed, so
it sees the bucket exactly as it was at that moment: later commits, even
from the same caller, are invisible to it.

State machine:
    Ready --scan--> Ready --scan--> ... --> Exhausted
    any state --close--> Closed

``scan`` decodes the current element and moves the cursor forward as a
side effect, before decoding. A ``DecodeError`` therefore leaves the
iterator positioned after the element that failed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, TypeVar

from expay.domain.errors import IteratorExhaustedError
from expay.domain.value_objects import key_to_id
from expay.ports.outbound import ValueCodec

if TYPE_CHECKING:
    from expay.adapters.outbound.storage_engine import Cursor, Transaction

T = TypeVar("T")


class BucketIterator(Generic[T]):
    """Forward-only, single-pass iterator implementing RecordIterator.

    Usage:
        with bucket.list() as it:
            for record_id, value in it:
                ...

    The read transaction is released by ``close``; the ``with`` block
    guarantees that on every exit path. An iterator that is never closed
    keeps its snapshot alive for as long as the engine is open.
    """

    def __init__(self, tx: Transaction, cursor: Cursor, codec: ValueCodec[T]) -> None:
        self._tx = tx
        self._cursor = cursor
        self._codec = codec
        self._key, self._value = cursor.first()

    @property
    def closed(self) -> bool:
        """Return True once the iterator has been closed."""
        return self._tx.closed

    def has_next(self) -> bool:
        """Return True if a current element is available to scan."""
        return self._key is not None

    def scan(self) -> tuple[str, T]:
        """Decode the current element, then advance past it.

        Returns:
            The element's hex id and decoded value.

        Raises:
            IteratorExhaustedError: If there is no current element.
            DecodeError: If the element does not match the bucket's value
                type. The cursor has already moved past it.
            StoreIOError: If reading the next element fails.
        """
        if self._key is None:
            raise IteratorExhaustedError("no current element to scan")
        key, data = self._key, self._value
        self._key, self._value = self._cursor.next()
        return key_to_id(key), self._codec.decode(data)

    def close(self) -> None:
        """Release the read transaction. Closing twice is a no-op.

        Raises:
            StoreIOError: If the transaction cannot be released.
        """
        self._key, self._value = None, None
        self._tx.rollback()

    def __iter__(self) -> BucketIterator[T]:
        return self

    def __next__(self) -> tuple[str, T]:
        if not self.has_next():
            raise StopIteration
        return self.scan()

    def __enter__(self) -> BucketIterator[T]:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
