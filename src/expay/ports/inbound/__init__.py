"""Inbound ports - APIs offered to clients of the storage layer."""

from expay.ports.inbound.store import RecordIterator, RecordStore

__all__ = [
    "RecordStore",
    "RecordIterator",
]
