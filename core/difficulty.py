"""
Difficulty Estimation Module

Estimates how many salts a search will need before it is launched.

The model treats every keccak256 output bit as an independent fair coin, so a
mask with k set bits matches a random candidate with probability 2**-k. That
is a standard assumption about the hash, not something verified here: treat
every number below as a heuristic.
"""

import math

from .constants import DIFFICULTY_FALLBACK, DIFFICULTY_THRESHOLDS, FLAG_MASK
from .types import DifficultyEstimate


def count_flags(flags: int) -> int:
    """Number of set bits inside the 14-bit flag mask."""
    return bin(flags & FLAG_MASK).count("1")


def difficulty_tier(estimated_iterations: int) -> str:
    """Map an expected iteration count to a qualitative tier."""
    for threshold, name in DIFFICULTY_THRESHOLDS:
        if estimated_iterations < threshold:
            return name
    return DIFFICULTY_FALLBACK


def estimate_mining_difficulty(flags: int) -> DifficultyEstimate:
    """
    Estimate mining difficulty based on the number of flags set.

    Args:
        flags: Target flag mask (bits above 14 are ignored)

    Returns:
        DifficultyEstimate with expected iterations (2**flag_count), tier and
        flag count

    Example:
        >>> estimate_mining_difficulty(0xC0)
        DifficultyEstimate(estimated_iterations=4, difficulty='Instant', flag_count=2)
    """
    flag_count = count_flags(flags)
    estimated_iterations = 2 ** flag_count
    return DifficultyEstimate(
        estimated_iterations=estimated_iterations,
        difficulty=difficulty_tier(estimated_iterations),
        flag_count=flag_count,
    )


def success_probability(flags: int, iterations: int) -> float:
    """
    Probability that a search bounded at `iterations` finds a match.

    Example:
        >>> success_probability(0, 1)
        1.0
    """
    if iterations <= 0:
        return 0.0
    p = 1.0 / (2 ** count_flags(flags))
    if p >= 1.0:
        return 1.0
    return -math.expm1(iterations * math.log1p(-p))


def iterations_for_probability(flags: int, probability: float) -> int:
    """
    Smallest iteration bound whose success probability reaches `probability`.

    Raises:
        ValueError: If probability is not in (0, 1)
    """
    if not 0.0 < probability < 1.0:
        raise ValueError(f"probability must be in (0, 1), got {probability}")
    p = 1.0 / (2 ** count_flags(flags))
    if p >= 1.0:
        return 1
    return math.ceil(math.log1p(-probability) / math.log1p(-p))


def estimate_duration(estimate: DifficultyEstimate, hashrate: float) -> float:
    """
    Expected search time in seconds at a given hashrate (0 if unknown).

    Example:
        >>> estimate_duration(estimate_mining_difficulty(0xFF), 128.0)
        2.0
    """
    if hashrate <= 0:
        return 0.0
    return estimate.estimated_iterations / hashrate
