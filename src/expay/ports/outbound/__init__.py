"""Outbound ports - interfaces for dependencies of the storage layer."""

from expay.ports.outbound.codec import ValueCodec

__all__ = [
    "ValueCodec",
]
