"""Unit tests for domain value objects - identifiers."""

from __future__ import annotations

import pytest

from expay.domain.errors import InvalidIdError
from expay.domain.value_objects import (
    MAX_SEQUENCE,
    RECORD_KEY_SIZE,
    Sequence,
    id_to_key,
    key_to_id,
    key_to_sequence,
    sequence_to_id,
    sequence_to_key,
)


@pytest.mark.unit
class TestSequenceKeys:
    """Tests for the 8-byte key encoding of sequence numbers."""

    def test_key_size(self) -> None:
        """Keys are 8 bytes long."""
        assert RECORD_KEY_SIZE == 8
        assert len(sequence_to_key(1)) == RECORD_KEY_SIZE

    def test_big_endian(self) -> None:
        """The most significant byte comes first."""
        assert sequence_to_key(1) == b"\x00\x00\x00\x00\x00\x00\x00\x01"
        assert sequence_to_key(256) == b"\x00\x00\x00\x00\x00\x00\x01\x00"

    def test_byte_order_matches_numeric_order(self) -> None:
        """Sorting keys as bytes sorts them numerically."""
        sequences = [1, 2, 255, 256, 65535, 65536, 2**32, MAX_SEQUENCE]
        keys = [sequence_to_key(s) for s in sequences]
        assert sorted(keys) == keys

    def test_key_to_sequence(self) -> None:
        """A key decodes back to its sequence number."""
        assert key_to_sequence(sequence_to_key(42)) == Sequence(42)
        assert key_to_sequence(sequence_to_key(MAX_SEQUENCE)) == MAX_SEQUENCE

    def test_out_of_range(self) -> None:
        """Sequences outside the unsigned 64-bit range are rejected."""
        with pytest.raises(ValueError):
            sequence_to_key(-1)
        with pytest.raises(ValueError):
            sequence_to_key(MAX_SEQUENCE + 1)


@pytest.mark.unit
class TestHexIds:
    """Tests for the external hex id form."""

    def test_first_id(self) -> None:
        """The first allocated sequence maps to a zero-padded id."""
        assert sequence_to_id(1) == "0000000000000001"

    def test_lowercase(self) -> None:
        """Ids are rendered in lower case."""
        assert sequence_to_id(0xABCDEF) == "0000000000abcdef"

    def test_id_to_key(self) -> None:
        """Parsing an id yields its key."""
        assert id_to_key("0000000000000001") == sequence_to_key(1)
        assert key_to_id(id_to_key("00000000000000ff")) == "00000000000000ff"

    def test_uppercase_accepted(self) -> None:
        """Upper-case digits parse to the same key."""
        assert id_to_key("0000000000ABCDEF") == id_to_key("0000000000abcdef")

    @pytest.mark.parametrize(
        "record_id",
        [
            "",
            "1",
            "xyz",
            "000000000000001",  # 15 digits
            "00000000000000001",  # 17 digits
            "000000000000000g",
            " 000000000000001",
            "0x00000000000001",
        ],
    )
    def test_malformed_ids(self, record_id: str) -> None:
        """Anything but exactly 16 hex digits is rejected."""
        with pytest.raises(InvalidIdError):
            id_to_key(record_id)

    def test_non_string_rejected(self) -> None:
        """Only strings are ids."""
        with pytest.raises(InvalidIdError):
            id_to_key(1)  # type: ignore[arg-type]
