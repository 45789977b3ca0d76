"""Outbound adapters - the storage engine and its value codec.

Exports:
    - StorageEngine: Owner of one store file, its buckets and transactions
    - Transaction, Cursor: Transaction scope and ordered bucket cursor
    - Bucket: CRUD over one named partition (implements RecordStore)
    - BucketIterator: Snapshot iterator (implements RecordIterator)
    - JsonCodec: JSON ValueCodec bound to one value type
"""

from expay.adapters.outbound.bucket import Bucket
from expay.adapters.outbound.bucket_iterator import BucketIterator
from expay.adapters.outbound.json_codec import JsonCodec
from expay.adapters.outbound.storage_engine import Cursor, StorageEngine, Transaction

__all__ = [
    "StorageEngine",
    "Transaction",
    "Cursor",
    "Bucket",
    "BucketIterator",
    "JsonCodec",
]
