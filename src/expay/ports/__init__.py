"""Ports layer - interface definitions following Hexagonal Architecture.

- Inbound ports: APIs offered to clients (RecordStore, RecordIterator)
- Outbound ports: Dependencies of the storage layer (ValueCodec)

Adapters implement these ports with concrete functionality.
"""

from expay.ports.inbound import RecordIterator, RecordStore
from expay.ports.outbound import ValueCodec

__all__ = [
    # Inbound ports
    "RecordStore",
    "RecordIterator",
    # Outbound ports
    "ValueCodec",
]
