"""Bucket: CRUD and iteration over one named partition of the store.

A bucket handle is cheap and long-lived; it is created by
``StorageEngine.bucket`` and shares the engine's transactions. Each
operation below runs as exactly one transaction.

Identifiers:
    ``create`` allocates the next value of the bucket's sequence inside the
    same write transaction as the insert, so concurrent creates always get
    distinct, strictly increasing ids. Ids are never reused, even after a
    delete, because the sequence only moves forward.

Update is an upsert:
    ``update`` writes the key unconditionally and creates the bucket if
    needed. It does not check that the id was ever allocated. Callers that
    need "update existing only" semantics must check with ``get`` first, as
    the payment service does.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Generator, Generic, TypeVar

from expay.adapters.outbound.bucket_iterator import BucketIterator
from expay.adapters.outbound.json_codec import JsonCodec
from expay.domain.errors import NotFoundError, UnsupportedOperationError
from expay.domain.value_objects import id_to_key, key_to_id, sequence_to_key
from expay.infrastructure.logging import get_logger
from expay.infrastructure.metrics import MetricsRegistry, get_metrics
from expay.infrastructure.tracing import bucket_span
from expay.ports.outbound import ValueCodec

if TYPE_CHECKING:
    from expay.adapters.outbound.storage_engine import StorageEngine

logger = get_logger(__name__)

T = TypeVar("T")


class Bucket(Generic[T]):
    """RecordStore implementation backed by the storage engine.

    Attributes:
        name: Bucket name inside the store file.
        codec: Codec converting values of type ``T`` to stored bytes.
    """

    def __init__(
        self,
        engine: StorageEngine,
        name: str,
        codec: ValueCodec[T] | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        if not name:
            raise ValueError("bucket name required")
        self._engine = engine
        self._name = name
        self._codec: ValueCodec[T] = codec or JsonCodec()
        self._metrics = metrics or get_metrics()

    @property
    def name(self) -> str:
        """Return the bucket name."""
        return self._name

    @property
    def codec(self) -> ValueCodec[T]:
        """Return the bucket's value codec."""
        return self._codec

    def create(self, value: T) -> str:
        """Store a new value and return its id.

        The bucket is created on first use.

        Raises:
            EncodeError: If the value cannot be serialized.
            StoreIOError: If the transaction fails.
        """
        with self._operation("create"):
            data = self._codec.encode(value)
            with self._engine.update() as tx:
                tx.create_bucket_if_not_exists(self._name)
                key = sequence_to_key(tx.next_sequence(self._name))
                tx.put(self._name, key, data)
            self._metrics.ids_allocated_total.labels(bucket=self._name).inc()
            record_id = key_to_id(key)
            logger.debug("record_created", bucket=self._name, record_id=record_id)
            return record_id

    def get(self, record_id: str) -> T:
        """Return the value stored under ``record_id``.

        Raises:
            InvalidIdError: If the id is not a 16-digit hex string.
            NotFoundError: If the bucket or the id does not exist.
            DecodeError: If the stored value does not match the bucket's type.
        """
        with self._operation("get"):
            key = id_to_key(record_id)
            with self._engine.view() as tx:
                data = tx.get(self._name, key) if tx.bucket_exists(self._name) else None
            if data is None:
                raise NotFoundError(bucket=self._name, record_id=record_id)
            return self._codec.decode(data)

    def update(self, record_id: str, value: T) -> None:
        """Write ``value`` under ``record_id``, whether or not it exists.

        Raises:
            InvalidIdError: If the id is not a 16-digit hex string.
            EncodeError: If the value cannot be serialized.
            StoreIOError: If the transaction fails.
        """
        with self._operation("update"):
            key = id_to_key(record_id)
            data = self._codec.encode(value)
            with self._engine.update() as tx:
                tx.create_bucket_if_not_exists(self._name)
                tx.put(self._name, key, data)

    def delete(self, record_id: str) -> None:
        """Remove ``record_id``. Deleting an absent id succeeds.

        Raises:
            InvalidIdError: If the id is not a 16-digit hex string.
            StoreIOError: If the transaction fails.
        """
        with self._operation("delete"):
            key = id_to_key(record_id)
            with self._engine.update() as tx:
                tx.create_bucket_if_not_exists(self._name)
                tx.delete(self._name, key)

    def list(self) -> BucketIterator[T]:
        """Return an iterator over the bucket as of now, in ascending id order.

        The caller owns the returned iterator and must close it.

        Raises:
            NotFoundError: If the bucket has never been written.
            StoreIOError: If the read transaction cannot be opened.
        """
        with self._operation("list"):
            tx = self._engine.begin(writable=False)
            try:
                if not tx.bucket_exists(self._name):
                    raise NotFoundError(bucket=self._name)
                return BucketIterator(tx, tx.cursor(self._name), self._codec)
            except BaseException:
                tx.rollback()
                raise

    def paginate(self, last_cursor: str, limit: int) -> BucketIterator[T]:
        """Cursor-based pagination. Not implemented.

        Raises:
            UnsupportedOperationError: Always.
        """
        raise UnsupportedOperationError("not implemented yet")

    @contextmanager
    def _operation(self, operation: str) -> Generator[None, None, None]:
        """Trace and measure one bucket operation."""
        status = "error"
        start = time.perf_counter()
        with bucket_span(self._name, operation):
            try:
                yield
                status = "success"
            except NotFoundError:
                status = "not_found"
                raise
            finally:
                self._metrics.operations_total.labels(
                    bucket=self._name, operation=operation, status=status
                ).inc()
                self._metrics.operation_latency_seconds.labels(operation=operation).observe(
                    time.perf_counter() - start
                )

    def __repr__(self) -> str:
        return f"Bucket({self._name!r}, {self._codec!r})"

