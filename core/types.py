"""
Type Definitions Module

Centralized type definitions for the hook miner.
Uses TypedDict for queue messages and configuration sections, and frozen
dataclasses for the values returned to callers.
"""

from dataclasses import dataclass
from typing import Callable, Literal, Optional, TypedDict

from eth_utils import to_checksum_address

from .mining_utils import format_salt_hex


# ============================================================================
# Mining Results
# ============================================================================

@dataclass(frozen=True)
class MiningResult:
    """A salt whose CREATE2 address carries the requested hook flags."""
    address: bytes
    salt: bytes
    iterations: int

    @property
    def address_hex(self) -> str:
        return to_checksum_address(self.address)

    @property
    def salt_hex(self) -> str:
        return format_salt_hex(self.salt_index)

    @property
    def salt_index(self) -> int:
        return int.from_bytes(self.salt, "big")

    def as_dict(self) -> dict:
        return {
            "address": self.address_hex,
            "salt": self.salt_hex,
            "iterations": self.iterations,
        }


@dataclass(frozen=True)
class DifficultyEstimate:
    """Expected cost of a search, derived from the flag mask only."""
    estimated_iterations: int
    difficulty: str
    flag_count: int


@dataclass(frozen=True)
class MiningProgress:
    """Snapshot yielded by the chunked search after each batch."""
    iterations: int
    max_iterations: int
    address: Optional[bytes]


# Progress observer: (iteration, candidate address as checksummed hex)
ProgressCallback = Callable[[int, str], None]


# ============================================================================
# Worker Request/Response Types
# ============================================================================

class MineRequest(TypedDict):
    """Request sent to CPU workers."""
    id: int
    type: Literal["mine", "shutdown"]
    deployer: bytes
    bytecode_hash: bytes
    flags: int
    start: int
    count: int
    generation: int


class MineResponse(TypedDict, total=False):
    """Response from CPU workers."""
    request_id: int
    worker_id: int
    start: int
    found: bool
    index: Optional[int]
    address: Optional[bytes]
    hashes: int
    duration: float
    error: Optional[str]


# ============================================================================
# Configuration Types
# ============================================================================

class MinerConfig(TypedDict, total=False):
    """Miner configuration section."""
    deployer: str
    max_iterations: int
    sync_max_iterations: int
    batch_size: int
    progress_interval: int
    mode: str


class CPUConfig(TypedDict, total=False):
    """CPU configuration section."""
    workers: int
    chunk_size: int


class LoggingConfig(TypedDict, total=False):
    """Logging configuration section."""
    file: Optional[str]
    level: str
    console_level: str


class ConfigData(TypedDict, total=False):
    """Complete configuration structure."""
    miner: MinerConfig
    cpu: CPUConfig
    logging: LoggingConfig


# ============================================================================
# Worker Type
# ============================================================================

WorkerType = Literal["cpu"]
MiningMode = Literal["async", "sync", "parallel"]
