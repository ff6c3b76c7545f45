"""
Address Derivation Module

CREATE2 (EIP-1014) address computation and the input normalisation shared by
every mining mode:

    address = keccak256(0xff ++ deployer ++ salt ++ keccak256(init_code))[12:]

The outer preimage is always 1 + 20 + 32 + 32 = 85 bytes.
"""

import binascii
from typing import Optional, Union

from eth_utils import keccak, remove_0x_prefix, to_checksum_address

from .constants import ADDRESS_LENGTH, CREATE2_PREFIX, HASH_LENGTH, SALT_LENGTH
from .exceptions import InvalidInputError, PrimitiveUnavailableError

BytesLike = Union[bytes, bytearray, str]


def keccak256(data: bytes) -> bytes:
    """
    Hash data with keccak256.

    Raises:
        PrimitiveUnavailableError: If no eth-hash backend is installed
    """
    try:
        return keccak(data)
    except ImportError as e:
        raise PrimitiveUnavailableError(f"keccak256 backend not available: {e}") from e


def ensure_hash_primitive() -> None:
    """Probe the keccak backend so a missing backend fails before mining starts."""
    keccak256(b"")


def _decode_hex(value: str, field: str) -> bytes:
    text = remove_0x_prefix(value.strip())
    if len(text) % 2 != 0:
        raise InvalidInputError(field, "hex length must be even")
    try:
        return bytes.fromhex(text)
    except (ValueError, binascii.Error) as e:
        raise InvalidInputError(field, f"not valid hex ({e})") from e


def normalize_address(value: BytesLike, field: str = "deployer") -> bytes:
    """
    Convert a deployer address to its 20 raw bytes.

    Args:
        value: Raw bytes or a hex string (with or without 0x)
        field: Name used in error messages

    Returns:
        20-byte address

    Raises:
        InvalidInputError: If the value is not exactly 20 bytes

    Example:
        >>> normalize_address("0x4e59b44847b379578588920cA78FbF26c0B4956C").hex()
        '4e59b44847b379578588920ca78fbf26c0b4956c'
    """
    if isinstance(value, str):
        raw = _decode_hex(value, field)
    elif isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        raise InvalidInputError(field, f"unsupported type {type(value).__name__}")

    if len(raw) != ADDRESS_LENGTH:
        raise InvalidInputError(field, f"must be {ADDRESS_LENGTH} bytes, got {len(raw)}")
    return raw


def normalize_bytecode(value: BytesLike) -> bytes:
    """
    Convert init code to raw bytes.

    Raises:
        InvalidInputError: If the bytecode is empty or not valid hex
    """
    if isinstance(value, str):
        raw = _decode_hex(value, "bytecode")
    elif isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        raise InvalidInputError("bytecode", f"unsupported type {type(value).__name__}")

    if not raw:
        raise InvalidInputError("bytecode", "must not be empty")
    return raw


def assemble_bytecode(bytecode: BytesLike, constructor_args: Optional[BytesLike] = None) -> bytes:
    """
    Append ABI-encoded constructor arguments to init code.

    The result is what CREATE2 actually hashes, so it must be complete before
    mining: arguments appended afterwards change the derived address.

    Raises:
        InvalidInputError: If either part is malformed
    """
    code = normalize_bytecode(bytecode)
    if constructor_args is None:
        return code
    if isinstance(constructor_args, str):
        return code + _decode_hex(constructor_args, "constructor_args")
    if isinstance(constructor_args, (bytes, bytearray)):
        return code + bytes(constructor_args)
    raise InvalidInputError("constructor_args", f"unsupported type {type(constructor_args).__name__}")


def derive_create2_address_from_hash(deployer: bytes, salt: bytes, bytecode_hash: bytes) -> bytes:
    """
    Compute a CREATE2 address from a precomputed init code hash.

    Raises:
        InvalidInputError: If any field has the wrong width
    """
    if len(deployer) != ADDRESS_LENGTH:
        raise InvalidInputError("deployer", f"must be {ADDRESS_LENGTH} bytes, got {len(deployer)}")
    if len(salt) != SALT_LENGTH:
        raise InvalidInputError("salt", f"must be {SALT_LENGTH} bytes, got {len(salt)}")
    if len(bytecode_hash) != HASH_LENGTH:
        raise InvalidInputError("bytecode_hash", f"must be {HASH_LENGTH} bytes, got {len(bytecode_hash)}")

    return keccak256(CREATE2_PREFIX + deployer + salt + bytecode_hash)[12:]


def derive_create2_address(deployer: bytes, salt: bytes, bytecode: bytes) -> bytes:
    """
    Compute the CREATE2 deployment address.

    Args:
        deployer: 20-byte factory/proxy address
        salt: 32-byte salt
        bytecode: Init code including encoded constructor arguments

    Returns:
        20-byte address (low 20 bytes of the outer digest)

    Example:
        >>> derive_create2_address(bytes(20), bytes(32), b"\\x00").hex()
        '4d1a2e2bb4f88f0250f26ffff098b0b30b26bf38'
    """
    return derive_create2_address_from_hash(deployer, salt, keccak256(bytecode))


def to_checksum(address: bytes) -> str:
    """Render a 20-byte address as an EIP-55 checksummed string."""
    return to_checksum_address(address)
