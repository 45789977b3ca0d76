"""Value objects for the ExPay domain.

Exports:
    Identifiers:
        - Sequence: Per-bucket monotonic counter value
        - sequence_to_key / key_to_sequence: 8-byte big-endian key codec
        - key_to_id / id_to_key: hex string form used outside the store
        - RECORD_KEY_SIZE, MAX_SEQUENCE: Key layout constants
"""

from expay.domain.value_objects.identifiers import (
    MAX_SEQUENCE,
    RECORD_KEY_SIZE,
    Sequence,
    id_to_key,
    key_to_id,
    key_to_sequence,
    sequence_to_id,
    sequence_to_key,
)

__all__ = [
    "Sequence",
    "MAX_SEQUENCE",
    "RECORD_KEY_SIZE",
    "sequence_to_key",
    "key_to_sequence",
    "key_to_id",
    "id_to_key",
    "sequence_to_id",
]
