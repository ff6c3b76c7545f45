"""
Mining Utilities Module

Common utility functions used across mining modules to reduce code duplication.
"""

from .constants import (
    HASHRATE_EMA_WEIGHT_OLD,
    HASHRATE_KH_THRESHOLD,
    HASHRATE_MH_THRESHOLD,
    SALT_LENGTH,
)


def salt_from_index(index: int) -> bytes:
    """
    Encode a salt index as a 32-byte big-endian salt.

    Args:
        index: Non-negative salt index

    Returns:
        Zero-padded 32-byte salt

    Example:
        >>> salt_from_index(255).hex()[-4:]
        '00ff'
    """
    return index.to_bytes(SALT_LENGTH, "big")


def format_salt_hex(index: int) -> str:
    """
    Format a salt index as a 0x-prefixed uint256 hex string.

    Example:
        >>> format_salt_hex(255)
        '0x00000000000000000000000000000000000000000000000000000000000000ff'
    """
    return f"0x{index:064x}"


def parse_int(value: str) -> int:
    """
    Parse a decimal, 0x-hex or 0b-binary integer string.

    Example:
        >>> parse_int("0xC0")
        192
    """
    return int(value.strip().replace("_", ""), 0)


def truncate_address(address: str, length: int = 10) -> str:
    """
    Truncate address for display purposes.

    Args:
        address: Full address
        length: Number of characters to show (default: 10)

    Returns:
        Truncated address with ellipsis

    Example:
        >>> truncate_address("0x4e59b44847b379578588920cA78FbF26c0B4956C", 8)
        '0x4e59b4...'
    """
    if len(address) <= length:
        return address
    return address[:length] + "..."


def calculate_hashrate(hashes: int, duration: float) -> float:
    """
    Calculate hashrate from number of hashes and duration.

    Args:
        hashes: Number of addresses derived
        duration: Time taken in seconds

    Returns:
        Hashrate in hashes per second (0 if duration is 0)

    Example:
        >>> calculate_hashrate(1000000, 10.0)
        100000.0
    """
    if duration <= 0:
        return 0.0
    return hashes / duration


def smooth_hashrate(old_hashrate: float, new_hashrate: float, weight_old: float = HASHRATE_EMA_WEIGHT_OLD) -> float:
    """
    Apply exponential moving average to smooth hashrate fluctuations.

    Args:
        old_hashrate: Previous hashrate value
        new_hashrate: New instantaneous hashrate
        weight_old: Weight for old value (0.9 = 90% old, 10% new)

    Returns:
        Smoothed hashrate value

    Example:
        >>> smooth_hashrate(1000.0, 1200.0, 0.9)
        1020.0
    """
    if old_hashrate == 0:
        return new_hashrate

    weight_new = 1.0 - weight_old
    return (weight_old * old_hashrate) + (weight_new * new_hashrate)


def format_hashrate(hashrate: float) -> str:
    """
    Format a hashrate with a H/s, KH/s or MH/s unit.

    Example:
        >>> format_hashrate(2500.0)
        '2.50 KH/s'
    """
    if hashrate >= HASHRATE_MH_THRESHOLD:
        return f"{hashrate / 1_000_000:.2f} MH/s"
    if hashrate >= HASHRATE_KH_THRESHOLD:
        return f"{hashrate / 1_000:.2f} KH/s"
    return f"{hashrate:.0f} H/s"


def format_duration(seconds: float) -> str:
    """
    Format seconds as H:MM:SS.

    Example:
        >>> format_duration(3725)
        '1:02:05'
    """
    seconds = max(0, int(seconds))
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"
