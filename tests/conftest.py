"""Shared fixtures for the hook miner test-suite."""
from __future__ import annotations

from typing import Iterator

import pytest

from core.config import config
from core.constants import CREATE2_DEPLOYER

# Placeholder init code used by the demo "Mine" button
DUMMY_BYTECODE = "0x608060405234801561001057600080fd5b50"


@pytest.fixture(autouse=True)
def reset_config() -> Iterator[None]:
    """The config is a process-wide singleton; start every test from defaults."""
    config.reset()
    yield
    config.reset()


@pytest.fixture()
def deployer() -> str:
    return CREATE2_DEPLOYER


@pytest.fixture()
def bytecode() -> str:
    return DUMMY_BYTECODE
