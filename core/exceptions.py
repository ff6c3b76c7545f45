"""
Custom Exception Classes

Defines custom exceptions for the hook miner to provide better error
handling and more specific error messages.
"""

from .types import WorkerType


class MinerError(Exception):
    """Base exception class for all miner-related errors."""
    pass


class InvalidInputError(MinerError):
    """Raised when mining inputs are malformed. Always raised before iterating."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


class SearchExhaustedError(MinerError):
    """Raised when the iteration bound is reached without a matching salt."""

    def __init__(self, iterations: int):
        self.iterations = iterations
        super().__init__(f"Could not find salt after {iterations} iterations")


class SearchCancelledError(MinerError):
    """Raised when a search is cancelled through its cancel event."""

    def __init__(self, iterations: int):
        self.iterations = iterations
        super().__init__(f"Search cancelled after {iterations} iterations")


class PrimitiveUnavailableError(MinerError):
    """Raised when no keccak256 backend can be loaded."""

    def __init__(self, message: str = "keccak256 backend not available"):
        super().__init__(message)


class ConfigurationError(MinerError):
    """Raised for configuration-related errors."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Configuration error for '{key}': {message}")


class WorkerError(MinerError):
    """Base class for worker-related errors."""
    pass


class WorkerCrashError(WorkerError):
    """Raised when a worker process crashes."""

    def __init__(self, worker_type: WorkerType, worker_id: int, message: str = "Worker crashed"):
        self.worker_type = worker_type
        self.worker_id = worker_id
        super().__init__(f"{worker_type.upper()} {worker_id}: {message}")


class WorkerTimeoutError(WorkerError):
    """Raised when a worker doesn't respond in time."""

    def __init__(self, worker_type: WorkerType, worker_id: int, timeout: float):
        self.worker_type = worker_type
        self.worker_id = worker_id
        self.timeout = timeout
        super().__init__(f"{worker_type.upper()} {worker_id}: Timeout after {timeout}s")
