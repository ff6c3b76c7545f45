"""
Hook Miner Module

Searches for a CREATE2 salt whose deployment address carries a given set of
hook flags in its bottom 14 bits.

Salts are enumerated as 0, 1, 2, ... (each left-padded to 32 bytes), so a
search is deterministic and can always be restarted from zero. Every mode
below walks the same enumeration and returns the same result for the same
inputs and bound:

- mine_hook_address_sync: blocking, returns None when the bound is exhausted
- iter_hook_address_batches: generator, yields a MiningProgress after every
  batch so a host can interleave other work or stop polling
- mine_hook_address: asyncio coroutine built on the generator, yields to the
  event loop between batches and can be cancelled at those points
"""

import asyncio
import logging
import threading
from typing import Generator, Optional, Tuple

from .address import BytesLike, assemble_bytecode, keccak256, normalize_address, to_checksum
from .constants import (
    CREATE2_PREFIX,
    FLAG_MASK,
    MAX_ITERATIONS,
    PROGRESS_INTERVAL,
    SYNC_MAX_ITERATIONS,
    YIELD_BATCH_SIZE,
)
from .exceptions import InvalidInputError, SearchCancelledError, SearchExhaustedError
from .flags import flags_satisfied, format_flags
from .mining_utils import salt_from_index
from .types import MiningProgress, MiningResult, ProgressCallback

MiningGenerator = Generator[MiningProgress, None, Optional[MiningResult]]


def _require_count(name: str, value: int, allow_zero: bool) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(name, f"must be an integer, got {type(value).__name__}")
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidInputError(name, f"must be {'>= 0' if allow_zero else '> 0'}, got {value}")
    return value


def prepare_search_inputs(
    deployer: BytesLike,
    flags: int,
    bytecode: BytesLike,
    max_iterations: int,
    constructor_args: Optional[BytesLike],
) -> Tuple[bytes, int, bytes]:
    """Validate inputs before any salt is tried."""
    deployer_bytes = normalize_address(deployer)
    code = assemble_bytecode(bytecode, constructor_args)
    if isinstance(flags, bool) or not isinstance(flags, int):
        raise InvalidInputError("flags", f"must be an integer, got {type(flags).__name__}")
    _require_count("max_iterations", max_iterations, allow_zero=True)
    return deployer_bytes, flags & FLAG_MASK, code


def search_salt_range(
    deployer: bytes,
    bytecode_hash: bytes,
    flags: int,
    start: int,
    stop: int,
) -> Optional[Tuple[int, bytes]]:
    """
    Scan salt indices [start, stop) and return the first match.

    Args:
        deployer: 20-byte deployer address
        bytecode_hash: keccak256 of the full init code
        flags: Target flag mask (already masked)
        start: First salt index
        stop: One past the last salt index

    Returns:
        (index, address) of the lowest matching salt, or None
    """
    prefix = CREATE2_PREFIX + deployer
    target = flags & FLAG_MASK
    for index in range(start, stop):
        address = keccak256(prefix + salt_from_index(index) + bytecode_hash)[12:]
        if flags_satisfied(int.from_bytes(address[-2:], "big"), target):
            return index, address
    return None


def mine_hook_address_sync(
    deployer: BytesLike,
    flags: int,
    bytecode: BytesLike,
    max_iterations: int = SYNC_MAX_ITERATIONS,
    constructor_args: Optional[BytesLike] = None,
) -> Optional[MiningResult]:
    """
    Blocking search for short, bounded runs.

    Args:
        deployer: CREATE2 deployer address
        flags: Target hook flag mask
        bytecode: Contract init code
        max_iterations: Number of salts to try
        constructor_args: ABI-encoded constructor arguments appended to bytecode

    Returns:
        MiningResult on success, None if the bound is exhausted

    Raises:
        InvalidInputError: If deployer, bytecode or bound is malformed
        PrimitiveUnavailableError: If keccak256 cannot be computed
    """
    deployer_bytes, target, code = prepare_search_inputs(deployer, flags, bytecode, max_iterations, constructor_args)
    if max_iterations == 0:
        return None

    hit = search_salt_range(deployer_bytes, keccak256(code), target, 0, max_iterations)
    if hit is None:
        logging.debug(f"Sync search exhausted {max_iterations} iterations for flags {format_flags(target)}")
        return None

    index, address = hit
    return MiningResult(address=address, salt=salt_from_index(index), iterations=index)


def iter_hook_address_batches(
    deployer: BytesLike,
    flags: int,
    bytecode: BytesLike,
    max_iterations: int = MAX_ITERATIONS,
    on_progress: Optional[ProgressCallback] = None,
    constructor_args: Optional[BytesLike] = None,
    batch_size: int = YIELD_BATCH_SIZE,
    progress_interval: int = PROGRESS_INTERVAL,
) -> MiningGenerator:
    """
    Chunked search: a generator that suspends at every batch boundary.

    Inputs are validated eagerly, when this function is called. The returned
    generator yields a MiningProgress after salt 0 and then after every
    `batch_size` salts; its return value (StopIteration.value) is the
    MiningResult, or None if the bound was exhausted. Closing the generator
    abandons the search.

    Raises:
        InvalidInputError: If any input is malformed
    """
    deployer_bytes, target, code = prepare_search_inputs(deployer, flags, bytecode, max_iterations, constructor_args)
    _require_count("batch_size", batch_size, allow_zero=False)
    _require_count("progress_interval", progress_interval, allow_zero=False)
    return _iterate(deployer_bytes, target, code, max_iterations, on_progress, batch_size, progress_interval)


def _iterate(
    deployer: bytes,
    target: int,
    code: bytes,
    max_iterations: int,
    on_progress: Optional[ProgressCallback],
    batch_size: int,
    progress_interval: int,
) -> MiningGenerator:
    if max_iterations == 0:
        return None

    logging.info(f"Mining hook address with flags: {format_flags(target)}")
    prefix = CREATE2_PREFIX + deployer
    bytecode_hash = keccak256(code)

    for i in range(max_iterations):
        salt = salt_from_index(i)
        address = keccak256(prefix + salt + bytecode_hash)[12:]

        if flags_satisfied(int.from_bytes(address[-2:], "big"), target):
            logging.info(f"Found valid address after {i} iterations: {to_checksum(address)}")
            return MiningResult(address=address, salt=salt, iterations=i)

        if on_progress is not None and i % progress_interval == 0 and i > 0:
            on_progress(i, to_checksum(address))

        if i % batch_size == 0:
            yield MiningProgress(iterations=i + 1, max_iterations=max_iterations, address=address)

    return None


async def mine_hook_address(
    deployer: BytesLike,
    flags: int,
    bytecode: BytesLike,
    max_iterations: int = MAX_ITERATIONS,
    on_progress: Optional[ProgressCallback] = None,
    constructor_args: Optional[BytesLike] = None,
    batch_size: int = YIELD_BATCH_SIZE,
    progress_interval: int = PROGRESS_INTERVAL,
    cancel_event: Optional[threading.Event] = None,
) -> MiningResult:
    """
    Mine a salt cooperatively inside an asyncio event loop.

    Control returns to the event loop every `batch_size` salts. Cancelling the
    surrounding task raises asyncio.CancelledError at the next batch boundary;
    setting `cancel_event` raises SearchCancelledError there instead.

    Args:
        deployer: CREATE2 deployer address
        flags: Target hook flag mask
        bytecode: Contract init code
        max_iterations: Number of salts to try
        on_progress: Optional callback(iteration, candidate_address)
        constructor_args: ABI-encoded constructor arguments appended to bytecode
        batch_size: Salts between suspension points
        progress_interval: Salts between progress callbacks
        cancel_event: Optional event checked at every suspension point

    Returns:
        MiningResult for the lowest matching salt

    Raises:
        InvalidInputError: If inputs are malformed (before any iteration)
        SearchExhaustedError: If no salt below max_iterations matches
        SearchCancelledError: If cancel_event was set
        PrimitiveUnavailableError: If keccak256 cannot be computed
    """
    search = iter_hook_address_batches(
        deployer,
        flags,
        bytecode,
        max_iterations=max_iterations,
        on_progress=on_progress,
        constructor_args=constructor_args,
        batch_size=batch_size,
        progress_interval=progress_interval,
    )
    result = await drive_search(search, cancel_event)
    if result is None:
        logging.warning(f"Could not find salt after {max_iterations} iterations")
        raise SearchExhaustedError(max_iterations)
    return result


async def drive_search(
    search: MiningGenerator,
    cancel_event: Optional[threading.Event] = None,
) -> Optional[MiningResult]:
    """Run a chunked search to completion, yielding to the event loop between batches."""
    try:
        while True:
            try:
                progress = next(search)
            except StopIteration as stop:
                return stop.value
            if cancel_event is not None and cancel_event.is_set():
                raise SearchCancelledError(progress.iterations)
            await asyncio.sleep(0)
    finally:
        search.close()


def run_hook_miner(
    deployer: BytesLike,
    flags: int,
    bytecode: BytesLike,
    max_iterations: int = MAX_ITERATIONS,
    on_progress: Optional[ProgressCallback] = None,
    constructor_args: Optional[BytesLike] = None,
    batch_size: int = YIELD_BATCH_SIZE,
    progress_interval: int = PROGRESS_INTERVAL,
    cancel_event: Optional[threading.Event] = None,
) -> MiningResult:
    """Run the cooperative miner on a fresh event loop (for synchronous callers such as the CLI)."""
    return asyncio.run(
        mine_hook_address(
            deployer,
            flags,
            bytecode,
            max_iterations=max_iterations,
            on_progress=on_progress,
            constructor_args=constructor_args,
            batch_size=batch_size,
            progress_interval=progress_interval,
            cancel_event=cancel_event,
        )
    )
