"""Adapters layer - concrete implementations of port interfaces.

- Inbound adapters: Handle incoming requests (REST)
- Outbound adapters: The storage engine behind the record store port
"""

from expay.adapters.outbound import (
    Bucket,
    BucketIterator,
    JsonCodec,
    StorageEngine,
)

__all__ = [
    # Outbound adapters
    "StorageEngine",
    "Bucket",
    "BucketIterator",
    "JsonCodec",
]
