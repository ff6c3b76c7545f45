"""Tests for the small formatting and encoding helpers."""
from __future__ import annotations

import pytest

from core.mining_utils import (
    calculate_hashrate,
    format_duration,
    format_hashrate,
    format_salt_hex,
    parse_int,
    salt_from_index,
    smooth_hashrate,
    truncate_address,
)


def test_salt_from_index_is_big_endian_and_padded() -> None:
    assert salt_from_index(0) == bytes(32)
    assert salt_from_index(1) == bytes(31) + b"\x01"
    assert salt_from_index(0x1234)[-2:] == b"\x12\x34"
    assert len(salt_from_index(2 ** 200)) == 32


def test_format_salt_hex_matches_salt_bytes() -> None:
    assert format_salt_hex(4_242) == "0x" + salt_from_index(4_242).hex()


@pytest.mark.parametrize(
    "text, expected",
    [("192", 192), ("0xC0", 0xC0), ("0b11000000", 0xC0), ("50_000", 50_000), (" 7 ", 7)],
)
def test_parse_int(text: str, expected: int) -> None:
    assert parse_int(text) == expected


def test_parse_int_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        parse_int("lots")


def test_truncate_address() -> None:
    assert truncate_address("0x4e59b44847b379578588920cA78FbF26c0B4956C", 8) == "0x4e59b4..."
    assert truncate_address("0x12", 8) == "0x12"


def test_hashrate_helpers() -> None:
    assert calculate_hashrate(1_000, 0) == 0.0
    assert calculate_hashrate(1_000, 2.0) == 500.0
    assert smooth_hashrate(0.0, 50.0) == 50.0
    assert smooth_hashrate(1000.0, 1200.0, 0.9) == pytest.approx(1020.0)
    assert format_hashrate(12.4) == "12 H/s"
    assert format_hashrate(2_500.0) == "2.50 KH/s"
    assert format_hashrate(3_000_000.0) == "3.00 MH/s"


def test_format_duration() -> None:
    assert format_duration(0) == "0:00:00"
    assert format_duration(3725) == "1:02:05"
    assert format_duration(-5) == "0:00:00"
