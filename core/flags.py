"""
Hook Flags Module

Translation between hook callback names and the permission bits a Uniswap v4
pool manager reads from the bottom 14 bits of a hook's address, plus the
predicate that checks an address against a flag mask.
"""

import logging
import re
from typing import Dict, Iterable, List, Union

from .constants import (
    FLAG_MASK,
    BEFORE_INITIALIZE_FLAG,
    AFTER_INITIALIZE_FLAG,
    BEFORE_ADD_LIQUIDITY_FLAG,
    AFTER_ADD_LIQUIDITY_FLAG,
    BEFORE_REMOVE_LIQUIDITY_FLAG,
    AFTER_REMOVE_LIQUIDITY_FLAG,
    BEFORE_SWAP_FLAG,
    AFTER_SWAP_FLAG,
    BEFORE_DONATE_FLAG,
    AFTER_DONATE_FLAG,
    BEFORE_SWAP_RETURNS_DELTA_FLAG,
    AFTER_SWAP_RETURNS_DELTA_FLAG,
    AFTER_ADD_LIQUIDITY_RETURNS_DELTA_FLAG,
    AFTER_REMOVE_LIQUIDITY_RETURNS_DELTA_FLAG,
)
from .exceptions import InvalidInputError

# Canonical camelCase name -> bit, highest bit first
HOOK_FLAGS: Dict[str, int] = {
    "beforeInitialize": BEFORE_INITIALIZE_FLAG,
    "afterInitialize": AFTER_INITIALIZE_FLAG,
    "beforeAddLiquidity": BEFORE_ADD_LIQUIDITY_FLAG,
    "afterAddLiquidity": AFTER_ADD_LIQUIDITY_FLAG,
    "beforeRemoveLiquidity": BEFORE_REMOVE_LIQUIDITY_FLAG,
    "afterRemoveLiquidity": AFTER_REMOVE_LIQUIDITY_FLAG,
    "beforeSwap": BEFORE_SWAP_FLAG,
    "afterSwap": AFTER_SWAP_FLAG,
    "beforeDonate": BEFORE_DONATE_FLAG,
    "afterDonate": AFTER_DONATE_FLAG,
    "beforeSwapReturnDelta": BEFORE_SWAP_RETURNS_DELTA_FLAG,
    "afterSwapReturnDelta": AFTER_SWAP_RETURNS_DELTA_FLAG,
    "afterAddLiquidityReturnDelta": AFTER_ADD_LIQUIDITY_RETURNS_DELTA_FLAG,
    "afterRemoveLiquidityReturnDelta": AFTER_REMOVE_LIQUIDITY_RETURNS_DELTA_FLAG,
}

# Callback names the translator accepts. The returns-delta bits are decoded
# by flags_to_names but never produced from names.
TRANSLATABLE_HOOKS = (
    "beforeInitialize",
    "afterInitialize",
    "beforeAddLiquidity",
    "afterAddLiquidity",
    "beforeRemoveLiquidity",
    "afterRemoveLiquidity",
    "beforeSwap",
    "afterSwap",
    "beforeDonate",
    "afterDonate",
)

# Normalized name -> bit. Shorthands map to the "before" callback.
HOOK_NAME_ALIASES: Dict[str, int] = {name.lower(): HOOK_FLAGS[name] for name in TRANSLATABLE_HOOKS}
HOOK_NAME_ALIASES.update({
    "initialize": BEFORE_INITIALIZE_FLAG,
    "addliquidity": BEFORE_ADD_LIQUIDITY_FLAG,
    "liquidity": BEFORE_ADD_LIQUIDITY_FLAG,
    "removeliquidity": BEFORE_REMOVE_LIQUIDITY_FLAG,
    "swap": BEFORE_SWAP_FLAG,
    "donate": BEFORE_DONATE_FLAG,
    "donations": BEFORE_DONATE_FLAG,
})

_SEPARATORS = re.compile(r"[\s_-]")

AddressLike = Union[bytes, bytearray, str]


def normalize_hook_name(name: str) -> str:
    """
    Normalize a hook name for lookup.

    Example:
        >>> normalize_hook_name(" Before_Swap ")
        'beforeswap'
    """
    return _SEPARATORS.sub("", name.strip().lower())


def hook_names_to_flags(names: Iterable[str]) -> int:
    """
    Map hook names to their combined flag mask.

    Recognizes the ten before/after callbacks in camelCase, snake_case or
    kebab-case, plus a few shorthands ("swap", "liquidity", "donations", ...).
    Unknown names, including the returns-delta callbacks, are ignored;
    callers that need strictness must validate upstream.

    Args:
        names: Hook callback names, in any order, duplicates allowed

    Returns:
        Bitwise OR of every recognized flag

    Raises:
        InvalidInputError: If names is not a collection of strings

    Example:
        >>> hex(hook_names_to_flags(["beforeSwap", "after-swap"]))
        '0xc0'
    """
    if isinstance(names, (str, bytes)):
        raise InvalidInputError("hooks", "expected a collection of names, got a single string")
    try:
        items = iter(names)
    except TypeError:
        raise InvalidInputError("hooks", f"expected a collection of names, got {type(names).__name__}") from None

    flags = 0
    for name in items:
        if not isinstance(name, str):
            raise InvalidInputError("hooks", f"hook names must be strings, got {type(name).__name__}")
        bit = HOOK_NAME_ALIASES.get(normalize_hook_name(name))
        if bit is None:
            logging.debug(f"Ignoring unknown hook name: {name!r}")
            continue
        flags |= bit
    return flags


def address_flags(address: AddressLike) -> int:
    """Return the bottom 14 bits of an address."""
    if isinstance(address, str):
        value = int(address, 16)
    else:
        value = int.from_bytes(address, "big")
    return value & FLAG_MASK


def flags_satisfied(address_bits: int, target: int) -> bool:
    """Low-bit predicate shared by every search loop. A target of 0 is unconstrained."""
    target &= FLAG_MASK
    return target == 0 or address_bits & FLAG_MASK == target


def address_matches_flags(address: AddressLike, flags: int) -> bool:
    """
    Check if an address has exactly the required flags in its bottom 14 bits.

    Bits above the mask are ignored on both sides. Flags 0 means no
    constraint and matches every address.

    Example:
        >>> address_matches_flags("0x00000000000000000000000000000000000000c0", 0xC0)
        True
    """
    return flags_satisfied(address_flags(address), flags)


def validate_hook_address(address: AddressLike, expected_flags: int) -> bool:
    """Validate that an already-deployed or mined address encodes the expected flags."""
    return address_matches_flags(address, expected_flags)


def flags_to_names(flags: int) -> List[str]:
    """
    Get human-readable hook names from a flag mask, highest bit first.

    Example:
        >>> flags_to_names(0xC0)
        ['beforeSwap', 'afterSwap']
    """
    return [name for name, bit in HOOK_FLAGS.items() if flags & bit]


def flags_to_permissions(flags: int) -> Dict[str, bool]:
    """Expand a flag mask into the full hook permissions bitmap."""
    return {name: bool(flags & bit) for name, bit in HOOK_FLAGS.items()}


def format_flags(flags: int) -> str:
    """Format flags as hex plus the 14-bit binary pattern, e.g. '0xc0 (00000011000000)'."""
    masked = flags & FLAG_MASK
    return f"0x{masked:x} ({masked:014b})"
