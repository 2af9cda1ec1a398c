"""
Unit tests for the canonical encoder and hasher.

The whole tamper-evidence guarantee rests on these functions producing
byte-identical output for equal data.
"""

import hashlib
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID

import pytest

from inventory_kernel.utils.hashing import (
    CANONICALIZATION_VERSION,
    HASH_ALGORITHM,
    canonical_bytes,
    canonicalize_json,
    format_decimal,
    format_timestamp,
    hash_block_header,
    hash_bytes,
    hash_payload,
    parse_timestamp,
)

AT = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Colour(str, Enum):
    RED = "red"


class TestCanonicalizeJson:
    def test_keys_sorted_and_compact(self):
        assert canonicalize_json({"b": 1, "a": 2}) == '{"a":2,"b":1}'

    def test_nested_keys_sorted(self):
        result = canonicalize_json({"outer": {"z": 1, "y": [{"d": 1, "c": 2}]}})
        assert result == '{"outer":{"y":[{"c":2,"d":1}],"z":1}}'

    def test_insertion_order_irrelevant(self):
        first = {"sku": "SKU-1", "quantity": 4, "actor": {"name": "A", "userId": "u"}}
        second = {"actor": {"userId": "u", "name": "A"}, "quantity": 4, "sku": "SKU-1"}
        assert canonical_bytes(first) == canonical_bytes(second)

    def test_non_ascii_emitted_as_utf8(self):
        assert canonical_bytes({"name": "Café"}) == '{"name":"Café"}'.encode("utf-8")

    def test_supported_types(self):
        data = {
            "decimal": Decimal("12.50"),
            "datetime": AT,
            "date": date(2024, 1, 2),
            "uuid": UUID("12345678-1234-5678-1234-567812345678"),
            "bytes": b"\x01\xff",
            "enum": Colour.RED,
            "tuple": (1, 2),
        }
        assert canonicalize_json(data) == (
            '{"bytes":"01ff","date":"2024-01-02",'
            '"datetime":"2024-01-01T12:00:00.000000+00:00",'
            '"decimal":"12.5","enum":"red","tuple":[1,2],'
            '"uuid":"12345678-1234-5678-1234-567812345678"}'
        )

    def test_nan_rejected(self):
        with pytest.raises(ValueError):
            canonicalize_json({"x": float("nan")})

    def test_unsupported_type_raises_type_error(self):
        with pytest.raises(TypeError):
            canonicalize_json({"x": object()})


class TestFormatDecimal:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("12.50", "12.5"),
            ("1.25E+1", "12.5"),
            ("100", "100"),
            ("0.000", "0"),
            ("-0", "0"),
            ("0.10", "0.1"),
        ],
    )
    def test_plain_normalized_form(self, value, expected):
        assert format_decimal(Decimal(value)) == expected

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError):
            format_decimal(Decimal("Infinity"))


class TestTimestamps:
    def test_converted_to_utc_with_microseconds(self):
        local = datetime(2024, 1, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(local) == "2024-01-01T12:00:00.000000+00:00"

    def test_naive_rejected(self):
        with pytest.raises(ValueError):
            format_timestamp(datetime(2024, 1, 1))

    def test_parse_round_trip_is_stable(self):
        text = format_timestamp(AT)
        assert format_timestamp(parse_timestamp(text)) == text

    def test_parse_requires_offset(self):
        with pytest.raises(ValueError):
            parse_timestamp("2024-01-01T12:00:00")


class TestHasher:
    def test_constants(self):
        assert HASH_ALGORITHM == "sha256"
        assert CANONICALIZATION_VERSION == 1

    def test_hash_bytes_is_sha256_hex(self):
        assert hash_bytes(b"abc") == hashlib.sha256(b"abc").hexdigest()
        assert len(hash_bytes(b"")) == 64

    def test_hash_payload_order_independent(self):
        assert hash_payload({"a": 1, "b": 2}) == hash_payload({"b": 2, "a": 1})

    def test_block_header_hash_covers_exact_fields(self):
        tx = {"txType": "GENESIS"}
        expected = hashlib.sha256(
            b'{"index":0,"previousHash":"0",'
            b'"timestamp":"2024-01-01T12:00:00.000000+00:00",'
            b'"transaction":{"txType":"GENESIS"}}'
        ).hexdigest()
        assert hash_block_header(0, AT, tx, "0") == expected

    @pytest.mark.parametrize(
        "index,at,previous",
        [
            (1, AT, "0"),
            (0, AT + timedelta(microseconds=1), "0"),
            (0, AT, "1"),
        ],
    )
    def test_every_header_field_affects_hash(self, index, at, previous):
        base = hash_block_header(0, AT, {"txType": "GENESIS"}, "0")
        assert hash_block_header(index, at, {"txType": "GENESIS"}, previous) != base
