"""Tests for the difficulty heuristics."""
from __future__ import annotations

import pytest

from core.constants import FLAG_MASK
from core.difficulty import (
    count_flags,
    difficulty_tier,
    estimate_duration,
    estimate_mining_difficulty,
    iterations_for_probability,
    success_probability,
)
from core.types import DifficultyEstimate


def test_estimate_for_swap_pair() -> None:
    assert estimate_mining_difficulty(0xC0) == DifficultyEstimate(
        estimated_iterations=4, difficulty="Instant", flag_count=2
    )


def test_no_flags_is_a_single_iteration() -> None:
    estimate = estimate_mining_difficulty(0)
    assert estimate.estimated_iterations == 1
    assert estimate.flag_count == 0
    assert estimate.difficulty == "Instant"


def test_bits_above_the_mask_are_ignored() -> None:
    assert estimate_mining_difficulty(0xC0 | (1 << 20)) == estimate_mining_difficulty(0xC0)
    assert count_flags(-1) == 14


@pytest.mark.parametrize(
    "flags, tier",
    [
        (0b11111, "Instant"),     # 32
        (0b111111, "Fast"),       # 64
        (0xFF, "Fast"),           # 256
        (0x1FF, "Medium"),        # 512
        (0xFFF, "Medium"),        # 4096
        (0x1FFF, "Slow"),         # 8192
        (FLAG_MASK, "Slow"),      # 16384
    ],
)
def test_tiers(flags: int, tier: str) -> None:
    assert estimate_mining_difficulty(flags).difficulty == tier


def test_tier_thresholds() -> None:
    assert difficulty_tier(49) == "Instant"
    assert difficulty_tier(50) == "Fast"
    assert difficulty_tier(499) == "Fast"
    assert difficulty_tier(500) == "Medium"
    assert difficulty_tier(5_000) == "Slow"
    assert difficulty_tier(50_000) == "Very Slow"


def test_estimate_is_monotonic_in_flag_count() -> None:
    masks = [(1 << n) - 1 for n in range(15)]
    estimates = [estimate_mining_difficulty(m).estimated_iterations for m in masks]
    assert estimates == sorted(estimates)
    # Spread bits count the same as contiguous ones
    assert estimate_mining_difficulty(0b10101).estimated_iterations == estimate_mining_difficulty(0b111).estimated_iterations


def test_success_probability() -> None:
    assert success_probability(0xC0, 0) == 0.0
    assert success_probability(0, 1) == 1.0
    assert success_probability(0x80, 1) == pytest.approx(0.5)
    assert success_probability(0xC0, 2) == pytest.approx(1 - 0.75 ** 2)
    values = [success_probability(FLAG_MASK, n) for n in (1, 100, 10_000, 100_000)]
    assert values == sorted(values)
    assert values[-1] < 1.0


def test_iterations_for_probability_is_the_smallest_bound() -> None:
    bound = iterations_for_probability(FLAG_MASK, 0.5)
    assert success_probability(FLAG_MASK, bound) >= 0.5
    assert success_probability(FLAG_MASK, bound - 1) < 0.5
    assert iterations_for_probability(0, 0.99) == 1


def test_iterations_for_probability_rejects_bad_probability() -> None:
    with pytest.raises(ValueError):
        iterations_for_probability(0xC0, 1.0)
    with pytest.raises(ValueError):
        iterations_for_probability(0xC0, 0.0)


def test_estimate_duration() -> None:
    estimate = estimate_mining_difficulty(0xFF)
    assert estimate_duration(estimate, 128.0) == 2.0
    assert estimate_duration(estimate, 0.0) == 0.0
