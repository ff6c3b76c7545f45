"""Tests for the multi-process miner."""
from __future__ import annotations

import multiprocessing as mp
import queue
from typing import Iterator, List

import pytest

from core.exceptions import InvalidInputError, SearchExhaustedError
from core.flags import address_matches_flags
from core.hook_miner import mine_hook_address_sync
from core.parallel_miner import ParallelHookMiner, default_worker_count
from cpu_core.worker import CPUWorker


@pytest.fixture(scope="module")
def miner() -> Iterator[ParallelHookMiner]:
    with ParallelHookMiner(workers=2, chunk_size=97) as parallel:
        yield parallel


def test_default_worker_count_is_positive() -> None:
    assert default_worker_count() >= 1


def test_rejects_non_positive_chunk_size() -> None:
    with pytest.raises(InvalidInputError):
        ParallelHookMiner(workers=1, chunk_size=0)


@pytest.mark.parametrize("flags", [0xC0, 0x0A30, 0x2A80])
def test_parallel_matches_sync(miner: ParallelHookMiner, deployer: str, bytecode: str, flags: int) -> None:
    expected = mine_hook_address_sync(deployer, flags, bytecode, 5_000)
    if expected is None:
        with pytest.raises(SearchExhaustedError):
            miner.mine(deployer, flags, bytecode, 5_000)
        return
    result = miner.mine(deployer, flags, bytecode, 5_000)
    assert result == expected
    assert address_matches_flags(result.address, flags)


def test_parallel_exhaustion(miner: ParallelHookMiner, deployer: str, bytecode: str) -> None:
    found = mine_hook_address_sync(deployer, 0x0A30, bytecode, 50_000)
    assert found is not None
    with pytest.raises(SearchExhaustedError) as excinfo:
        miner.mine(deployer, 0x0A30, bytecode, found.iterations)
    assert excinfo.value.iterations == found.iterations


def test_parallel_reports_progress(miner: ParallelHookMiner, deployer: str, bytecode: str) -> None:
    calls: List[int] = []
    found = mine_hook_address_sync(deployer, 0x0A30, bytecode, 50_000)
    assert found is not None
    bound = found.iterations
    if bound == 0:
        pytest.skip("first salt already matches")
    with pytest.raises(SearchExhaustedError):
        miner.mine(deployer, 0x0A30, bytecode, bound, on_progress=lambda hashes, _address: calls.append(hashes))
    assert calls == sorted(calls)
    assert calls[-1] == bound


def test_zero_bound_starts_no_workers(deployer: str, bytecode: str) -> None:
    idle = ParallelHookMiner(workers=1)
    with pytest.raises(SearchExhaustedError):
        idle.mine(deployer, 0, bytecode, 0)
    assert not idle.running
    assert idle.workers == []


def test_zero_flags_hit_the_first_salt(miner: ParallelHookMiner, deployer: str, bytecode: str) -> None:
    result = miner.mine(deployer, 0, bytecode, 5_000)
    assert result.iterations == 0
    assert result == mine_hook_address_sync(deployer, 0, bytecode, 5_000)


def test_reused_miner_after_early_hit(miner: ParallelHookMiner, deployer: str, bytecode: str) -> None:
    before = miner.generation.value
    # A hit at salt 0 leaves ranges queued above it
    assert miner.mine(deployer, 0, bytecode, 5_000).iterations == 0
    assert miner.generation.value == before + 1
    expected = mine_hook_address_sync(deployer, 0xC0, bytecode, 5_000)
    assert expected is not None
    assert miner.mine(deployer, 0xC0, bytecode, 5_000) == expected


def _mine_request(generation: int) -> dict:
    return {
        'id': 1,
        'type': 'mine',
        'deployer': bytes(20),
        'bytecode_hash': bytes(32),
        'flags': 0,
        'start': 0,
        'count': 1,
        'generation': generation,
    }


def test_worker_skips_ranges_from_an_older_search() -> None:
    generation = mp.Value('i', 3)
    responses = mp.Queue()
    worker = CPUWorker(0, mp.Queue(), responses, generation)

    worker._handle_mine(_mine_request(2))
    with pytest.raises(queue.Empty):
        responses.get(timeout=0.5)

    worker._handle_mine(_mine_request(3))
    response = responses.get(timeout=5)
    assert response['request_id'] == 1
    assert response['found'] is True
    assert response['index'] == 0
