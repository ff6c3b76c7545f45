"""
Parallel Miner Module

Shards the salt enumeration across CPU worker processes.

Each request covers a disjoint range of salt indices. Ranges are handed out
in increasing order; once a hit is known no range above it is dispatched, and
every outstanding range below it is still waited for. The winner is the
lowest matching salt, so the result is identical to mine_hook_address_sync
with the same bound.
"""

import logging
import multiprocessing as mp
import os
import queue
import time
from typing import Dict, List, Optional, Tuple

import psutil

from cpu_core.worker import CPUWorker

from .address import BytesLike, keccak256, to_checksum
from .constants import (
    CPU_CHUNK_SIZE,
    MAX_ITERATIONS,
    WORKER_JOIN_TIMEOUT,
    WORKER_RESPONSE_TIMEOUT,
)
from .exceptions import InvalidInputError, SearchExhaustedError, WorkerCrashError, WorkerTimeoutError
from .flags import format_flags
from .hook_miner import prepare_search_inputs
from .mining_utils import salt_from_index
from .types import MineRequest, MineResponse, MiningResult, ProgressCallback

# Requests queued per worker so a worker never idles between ranges
REQUESTS_PER_WORKER = 2

# Poll interval while waiting for responses (seconds)
RESPONSE_POLL_INTERVAL = 0.5


def default_worker_count() -> int:
    """Physical core count, falling back to logical cores."""
    return psutil.cpu_count(logical=False) or os.cpu_count() or 1


class ParallelHookMiner:
    """
    Multi-process hook address miner.

    Example:
        >>> with ParallelHookMiner(workers=4) as miner:
        ...     result = miner.mine(CREATE2_DEPLOYER, 0xC0, bytecode)
    """

    def __init__(
        self,
        workers: Optional[int] = None,
        chunk_size: int = CPU_CHUNK_SIZE,
        response_timeout: float = WORKER_RESPONSE_TIMEOUT,
    ) -> None:
        """
        Initialize the miner without starting any process.

        Args:
            workers: Number of worker processes (None or 0 = physical cores)
            chunk_size: Salts per request
            response_timeout: Seconds to wait for a worker before giving up
        """
        if chunk_size <= 0:
            raise InvalidInputError("chunk_size", f"must be > 0, got {chunk_size}")
        self.worker_count = workers or default_worker_count()
        self.chunk_size = chunk_size
        self.response_timeout = response_timeout
        self.response_queue: Optional[mp.Queue] = None
        self.request_queues: List[mp.Queue] = []
        self.workers: List[CPUWorker] = []
        self.running = False
        self._next_request_id = 0
        # Bumped after every search so workers drop ranges left in their queues
        self.generation = mp.Value('i', 0)

    def __enter__(self) -> "ParallelHookMiner":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def start(self) -> None:
        """Start the worker processes."""
        if self.running:
            return
        self.response_queue = mp.Queue()
        for i in range(self.worker_count):
            request_queue = mp.Queue()
            worker = CPUWorker(i, request_queue, self.response_queue, self.generation)
            worker.start()
            self.request_queues.append(request_queue)
            self.workers.append(worker)
        self.running = True
        logging.info(f"Started {self.worker_count} CPU workers")

    def stop(self) -> None:
        """Send shutdown requests and join the worker processes."""
        if not self.running:
            return
        for request_queue in self.request_queues:
            request_queue.put({'type': 'shutdown'})
        for worker in self.workers:
            worker.join(timeout=WORKER_JOIN_TIMEOUT)
            if worker.is_alive():
                logging.warning(f"CPU worker {worker.worker_id} did not exit, terminating")
                worker.terminate()
        self.request_queues = []
        self.workers = []
        self.response_queue = None
        self.running = False
        logging.info("CPU workers stopped")

    def mine(
        self,
        deployer: BytesLike,
        flags: int,
        bytecode: BytesLike,
        max_iterations: int = MAX_ITERATIONS,
        on_progress: Optional[ProgressCallback] = None,
        constructor_args: Optional[BytesLike] = None,
    ) -> MiningResult:
        """
        Mine the lowest matching salt below `max_iterations`.

        Raises:
            InvalidInputError: If inputs are malformed (before any work is queued)
            SearchExhaustedError: If no salt in range matches
            WorkerCrashError: If a worker reports an error or dies
            WorkerTimeoutError: If a worker stops responding
        """
        deployer_bytes, target, code = prepare_search_inputs(deployer, flags, bytecode, max_iterations, constructor_args)
        if max_iterations == 0:
            raise SearchExhaustedError(0)

        bytecode_hash = keccak256(code)
        self.start()
        logging.info(
            f"Mining hook address with flags: {format_flags(target)} "
            f"on {self.worker_count} workers"
        )

        generation = self.generation.value
        try:
            return self._run_search(deployer_bytes, target, bytecode_hash, max_iterations, on_progress, generation)
        finally:
            with self.generation.get_lock():
                self.generation.value += 1

    def _run_search(
        self,
        deployer_bytes: bytes,
        target: int,
        bytecode_hash: bytes,
        max_iterations: int,
        on_progress: Optional[ProgressCallback],
        generation: int,
    ) -> MiningResult:
        # request_id -> (worker_id, start)
        outstanding: Dict[int, Tuple[int, int]] = {}
        per_worker = [0] * self.worker_count
        next_start = 0
        best: Optional[Tuple[int, bytes]] = None
        hashes = 0

        def dispatch() -> None:
            nonlocal next_start
            while next_start < max_iterations and (best is None or next_start < best[0]):
                worker_id = min(range(self.worker_count), key=lambda w: per_worker[w])
                if per_worker[worker_id] >= REQUESTS_PER_WORKER:
                    return
                count = min(self.chunk_size, max_iterations - next_start)
                request_id = self._next_request_id
                self._next_request_id += 1
                request: MineRequest = {
                    'id': request_id,
                    'type': 'mine',
                    'deployer': deployer_bytes,
                    'bytecode_hash': bytecode_hash,
                    'flags': target,
                    'start': next_start,
                    'count': count,
                    'generation': generation,
                }
                self.request_queues[worker_id].put(request)
                outstanding[request_id] = (worker_id, next_start)
                per_worker[worker_id] += 1
                next_start += count

        dispatch()
        while outstanding:
            response = self._next_response(outstanding)
            request_id = response['request_id']
            if request_id not in outstanding:
                # Stale response from an abandoned search
                continue
            worker_id, _ = outstanding.pop(request_id)
            per_worker[worker_id] -= 1

            if response.get('error'):
                raise WorkerCrashError("cpu", worker_id, response['error'])

            hashes += response['hashes']
            if response['found'] and (best is None or response['index'] < best[0]):
                best = (response['index'], response['address'])
                logging.debug(f"CPU {worker_id} hit at salt {best[0]}")
                # Ranges above the hit are useless now
                for rid in [r for r, (_, start) in outstanding.items() if start > best[0]]:
                    w, _ = outstanding.pop(rid)
                    per_worker[w] -= 1
            elif on_progress is not None and response.get('address'):
                on_progress(hashes, to_checksum(response['address']))

            dispatch()

        if best is None:
            logging.warning(f"Could not find salt after {max_iterations} iterations")
            raise SearchExhaustedError(max_iterations)

        index, address = best
        logging.info(f"Found valid address after {index} iterations: {to_checksum(address)}")
        return MiningResult(address=address, salt=salt_from_index(index), iterations=index)

    def _next_response(self, outstanding: Dict[int, Tuple[int, int]]) -> MineResponse:
        """Wait for a response, watching for dead or silent workers."""
        deadline = time.monotonic() + self.response_timeout
        while True:
            try:
                return self.response_queue.get(timeout=RESPONSE_POLL_INTERVAL)
            except queue.Empty:
                pass
            for worker in self.workers:
                if not worker.is_alive():
                    raise WorkerCrashError("cpu", worker.worker_id, f"exited with code {worker.exitcode}")
            if time.monotonic() >= deadline:
                oldest = min(outstanding)
                raise WorkerTimeoutError("cpu", outstanding[oldest][0], self.response_timeout)
