"""Tests for CREATE2 address derivation and input normalisation."""
from __future__ import annotations

import pytest

import core.address as address_module
from core.address import (
    assemble_bytecode,
    derive_create2_address,
    derive_create2_address_from_hash,
    ensure_hash_primitive,
    keccak256,
    normalize_address,
    normalize_bytecode,
    to_checksum,
)
from core.exceptions import InvalidInputError, PrimitiveUnavailableError

# Examples from EIP-1014
EIP1014_VECTORS = [
    ("00" * 20, "00" * 32, "00", "4d1a2e2bb4f88f0250f26ffff098b0b30b26bf38"),
    ("deadbeef" + "00" * 16, "00" * 32, "00", "b928f69bb1d91cd65274e3c79d8986362984fda3"),
    (
        "deadbeef" + "00" * 16,
        "00" * 12 + "feed" + "00" * 18,
        "00",
        "d04116cdd17bebe565eb2422f2497e06cc1c9833",
    ),
    ("00" * 20, "00" * 32, "deadbeef", "70f2b2914a2a4b783faefb75f459a580616fcb5e"),
    (
        "00" * 16 + "deadbeef",
        "00" * 28 + "cafebabe",
        "deadbeef",
        "60f3f640a8508fc6a86d45df051962668e1e8ac7",
    ),
    ("00" * 20, "00" * 32, "", "e33c0c7f7df4809055c3eba6c09cfe4baf1bd9e0"),
]


def test_keccak256_matches_known_empty_digest() -> None:
    assert keccak256(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"


@pytest.mark.parametrize("deployer, salt, code, expected", EIP1014_VECTORS)
def test_derive_create2_address_matches_eip1014(deployer: str, salt: str, code: str, expected: str) -> None:
    address = derive_create2_address(bytes.fromhex(deployer), bytes.fromhex(salt), bytes.fromhex(code))
    assert address.hex() == expected
    assert len(address) == 20


def test_derive_is_deterministic() -> None:
    deployer = bytes.fromhex("4e59b44847b379578588920ca78fbf26c0b4956c")
    salt = (42).to_bytes(32, "big")
    code = bytes.fromhex("608060405234801561001057600080fd5b50")
    assert derive_create2_address(deployer, salt, code) == derive_create2_address(deployer, salt, code)


def test_derive_from_hash_agrees_with_full_bytecode() -> None:
    deployer = bytes.fromhex("deadbeef" * 5)
    salt = bytes(32)
    code = bytes.fromhex("602a60005260206000f3")
    assert derive_create2_address_from_hash(deployer, salt, keccak256(code)) == derive_create2_address(
        deployer, salt, code
    )


def test_derive_rejects_wrong_field_widths() -> None:
    with pytest.raises(InvalidInputError):
        derive_create2_address(bytes(19), bytes(32), b"\x00")
    with pytest.raises(InvalidInputError):
        derive_create2_address(bytes(20), bytes(31), b"\x00")
    with pytest.raises(InvalidInputError):
        derive_create2_address_from_hash(bytes(20), bytes(32), bytes(31))


def test_to_checksum_matches_eip55() -> None:
    assert to_checksum(bytes.fromhex("4d1a2e2bb4f88f0250f26ffff098b0b30b26bf38")) == (
        "0x4D1A2e2bB4F88F0250f26Ffff098B0b30B26BF38"
    )
    assert to_checksum(bytes.fromhex("b928f69bb1d91cd65274e3c79d8986362984fda3")) == (
        "0xB928f69Bb1D91Cd65274e3c79d8986362984fDA3"
    )


@pytest.mark.parametrize(
    "value",
    [
        "0x4e59b44847b379578588920cA78FbF26c0B4956C",
        "4e59b44847b379578588920ca78fbf26c0b4956c",
        bytes.fromhex("4e59b44847b379578588920ca78fbf26c0b4956c"),
    ],
)
def test_normalize_address_accepts_hex_and_bytes(value) -> None:
    assert normalize_address(value).hex() == "4e59b44847b379578588920ca78fbf26c0b4956c"


@pytest.mark.parametrize("value", ["0x1234", "0x" + "00" * 21, "0xzz" + "00" * 19, "0x123", bytes(19), 42])
def test_normalize_address_rejects_malformed(value) -> None:
    with pytest.raises(InvalidInputError) as excinfo:
        normalize_address(value)
    assert excinfo.value.field == "deployer"


def test_normalize_bytecode_rejects_empty() -> None:
    with pytest.raises(InvalidInputError):
        normalize_bytecode("0x")
    with pytest.raises(InvalidInputError):
        normalize_bytecode(b"")


def test_assemble_bytecode_appends_constructor_args() -> None:
    args = "0x" + "00" * 31 + "2a"
    code = assemble_bytecode("0x6080", args)
    assert code == bytes.fromhex("6080") + bytes.fromhex("00" * 31 + "2a")
    assert assemble_bytecode("0x6080") == bytes.fromhex("6080")
    assert assemble_bytecode(b"\x60\x80", b"\x01") == b"\x60\x80\x01"


@pytest.mark.parametrize("args", [42, 0, [1, 2], 1.5])
def test_assemble_bytecode_rejects_unsupported_constructor_args(args) -> None:
    with pytest.raises(InvalidInputError) as excinfo:
        assemble_bytecode("0x6080", args)
    assert excinfo.value.field == "constructor_args"


def test_constructor_args_change_the_address() -> None:
    deployer = bytes(20)
    salt = bytes(32)
    plain = derive_create2_address(deployer, salt, assemble_bytecode("0x6080"))
    with_args = derive_create2_address(deployer, salt, assemble_bytecode("0x6080", "0x01"))
    assert plain != with_args


def test_missing_backend_raises_primitive_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_keccak(_data: bytes) -> bytes:
        raise ImportError("None of these hashing backends are installed")

    monkeypatch.setattr(address_module, "keccak", broken_keccak)
    with pytest.raises(PrimitiveUnavailableError):
        ensure_hash_primitive()
    with pytest.raises(PrimitiveUnavailableError):
        derive_create2_address(bytes(20), bytes(32), b"\x00")
