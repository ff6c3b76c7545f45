"""
Progress Reporting Module

Console status line for long searches: iterations, share of the bound,
smoothed hashrate, current candidate and ETA. Purely advisory, the miners
never depend on it.
"""

import sys
import threading
import time
from typing import Optional, TextIO

from colorama import Fore, Style

from .constants import ADDRESS_DISPLAY_LENGTH, HASHRATE_EMA_WEIGHT_OLD
from .mining_utils import (
    calculate_hashrate,
    format_duration,
    format_hashrate,
    smooth_hashrate,
    truncate_address,
)
from .types import DifficultyEstimate


class ProgressReporter:
    """
    Progress callback printing a single, continuously rewritten status line.

    Example:
        >>> reporter = ProgressReporter(total=500_000)
        >>> await mine_hook_address(deployer, flags, bytecode, on_progress=reporter)
        >>> reporter.finish()
    """

    def __init__(
        self,
        total: int,
        estimate: Optional[DifficultyEstimate] = None,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.total = total
        self.estimate = estimate
        self.stream = stream if stream is not None else sys.stderr
        self.lock = threading.Lock()
        self.start_time = time.monotonic()
        self.last_time = self.start_time
        self.last_iteration = 0
        self.hashrate = 0.0
        self.updates = 0

    def __call__(self, iteration: int, address: str) -> None:
        with self.lock:
            now = time.monotonic()
            instant = calculate_hashrate(iteration - self.last_iteration, now - self.last_time)
            self.hashrate = smooth_hashrate(self.hashrate, instant, HASHRATE_EMA_WEIGHT_OLD)
            self.last_time = now
            self.last_iteration = iteration
            self.updates += 1
            self.stream.write("\r" + self.render(iteration, address))
            self.stream.flush()

    def eta_seconds(self, iteration: int) -> Optional[float]:
        """Seconds until the expected iteration count (or the bound) is reached."""
        if self.hashrate <= 0:
            return None
        target = self.total
        if self.estimate is not None:
            target = min(self.total, self.estimate.estimated_iterations)
        return max(0, target - iteration) / self.hashrate

    def render(self, iteration: int, address: str) -> str:
        percent = 100.0 * iteration / self.total if self.total else 0.0
        eta = self.eta_seconds(iteration)
        eta_text = format_duration(eta) if eta is not None else "--:--:--"
        return (
            f"{Fore.CYAN}{iteration:,}{Style.RESET_ALL}/{self.total:,} "
            f"({percent:.1f}%) "
            f"{Fore.GREEN}{format_hashrate(self.hashrate)}{Style.RESET_ALL} "
            f"candidate {truncate_address(address, ADDRESS_DISPLAY_LENGTH)} "
            f"ETA {eta_text}"
        )

    def finish(self) -> None:
        """End the status line, if anything was printed."""
        with self.lock:
            if self.updates:
                self.stream.write("\n")
                self.stream.flush()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time
