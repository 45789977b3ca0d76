"""
ExPay - Payment API over an embedded key-value store

A small RESTful payment service whose storage layer is a bucket-scoped,
transactional key-value engine kept in a single file: monotonic ids,
JSON values, and snapshot-consistent iteration.
"""

__version__ = "0.1.0"
