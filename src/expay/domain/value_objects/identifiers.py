"""Record identifiers and their on-disk key encoding.

A record id is an unsigned 64-bit sequence number. On disk it is stored
as 8 big-endian bytes so that byte-wise key order equals numeric order,
which in turn equals allocation order. Outside the store it travels as a
fixed-length, lowercase, 16-digit hexadecimal string.
"""

from __future__ import annotations

import re
import struct
from typing import NewType

from expay.domain.errors import InvalidIdError


Sequence = NewType("Sequence", int)
"""Per-bucket monotonic counter value. The first allocated value is 1."""

RECORD_KEY_FORMAT = ">Q"
RECORD_KEY_SIZE = struct.calcsize(RECORD_KEY_FORMAT)
MAX_SEQUENCE = Sequence(2**64 - 1)

_HEX_ID = re.compile(r"[0-9a-fA-F]{%d}" % (RECORD_KEY_SIZE * 2))


def sequence_to_key(sequence: int) -> bytes:
    """Return the 8-byte big-endian key for a sequence number.

    Raises:
        ValueError: If the sequence does not fit in an unsigned 64-bit integer.
    """
    if not 0 <= sequence <= MAX_SEQUENCE:
        raise ValueError(f"sequence out of range: {sequence}")
    return struct.pack(RECORD_KEY_FORMAT, sequence)


def key_to_sequence(key: bytes) -> Sequence:
    """Return the sequence number stored in an 8-byte key."""
    (sequence,) = struct.unpack(RECORD_KEY_FORMAT, key)
    return Sequence(sequence)


def key_to_id(key: bytes) -> str:
    """Return the external hex id for a key."""
    return key.hex()


def id_to_key(record_id: str) -> bytes:
    """Parse an external hex id back into its 8-byte key.

    Upper-case digits are accepted. Anything that is not exactly
    16 hex digits is rejected.

    Raises:
        InvalidIdError: If the id is malformed.
    """
    if not isinstance(record_id, str) or _HEX_ID.fullmatch(record_id) is None:
        raise InvalidIdError(f"invalid record id: {record_id!r}")
    return bytes.fromhex(record_id)


def sequence_to_id(sequence: int) -> str:
    """Return the external hex id for a sequence number."""
    return key_to_id(sequence_to_key(sequence))
