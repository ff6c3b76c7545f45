"""Tests for the console progress line."""
from __future__ import annotations

import io

from core.progress import ProgressReporter
from core.types import DifficultyEstimate

ADDRESS = "0x4D1A2e2bB4F88F0250f26Ffff098B0b30B26BF38"


def test_render_contains_counts_and_candidate() -> None:
    reporter = ProgressReporter(total=500_000, stream=io.StringIO())
    line = reporter.render(5_000, ADDRESS)
    assert "5,000" in line
    assert "500,000" in line
    assert "(1.0%)" in line
    assert "0x4D1A2e2b..." in line
    assert "ETA --:--:--" in line


def test_callback_rewrites_a_single_line() -> None:
    stream = io.StringIO()
    reporter = ProgressReporter(total=20_000, stream=stream)
    reporter(5_000, ADDRESS)
    reporter(10_000, ADDRESS)
    reporter.finish()
    text = stream.getvalue()
    assert text.count("\r") == 2
    assert text.endswith("\n")
    assert reporter.updates == 2
    assert reporter.last_iteration == 10_000


def test_finish_without_updates_prints_nothing() -> None:
    stream = io.StringIO()
    ProgressReporter(total=10, stream=stream).finish()
    assert stream.getvalue() == ""


def test_eta_uses_the_expected_iterations() -> None:
    estimate = DifficultyEstimate(estimated_iterations=1_000, difficulty="Medium", flag_count=10)
    reporter = ProgressReporter(total=500_000, estimate=estimate, stream=io.StringIO())
    assert reporter.eta_seconds(0) is None
    reporter.hashrate = 100.0
    assert reporter.eta_seconds(500) == 5.0
    # Past the expectation there is nothing left to wait for
    assert reporter.eta_seconds(2_000) == 0.0


def test_eta_falls_back_to_the_bound() -> None:
    reporter = ProgressReporter(total=1_000, stream=io.StringIO())
    reporter.hashrate = 10.0
    assert reporter.eta_seconds(900) == 10.0


def test_zero_total_renders() -> None:
    reporter = ProgressReporter(total=0, stream=io.StringIO())
    assert "(0.0%)" in reporter.render(0, ADDRESS)
