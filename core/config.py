import copy
import os
from typing import Any, Optional, Dict
import yaml
import logging
from .constants import (
    CPU_CHUNK_SIZE,
    CREATE2_DEPLOYER,
    DEFAULT_CONFIG_FILE,
    DEFAULT_CPU_WORKERS,
    DEFAULT_MINING_MODE,
    MAX_ITERATIONS,
    MINING_MODES,
    PROGRESS_INTERVAL,
    SYNC_MAX_ITERATIONS,
    YIELD_BATCH_SIZE,
)
from .address import normalize_address
from .exceptions import ConfigurationError, InvalidInputError
from .types import ConfigData

DEFAULT_CONFIG: ConfigData = {
    "miner": {
        "deployer": CREATE2_DEPLOYER,
        "max_iterations": MAX_ITERATIONS,
        "sync_max_iterations": SYNC_MAX_ITERATIONS,
        "batch_size": YIELD_BATCH_SIZE,
        "progress_interval": PROGRESS_INTERVAL,
        "mode": DEFAULT_MINING_MODE,
    },
    "cpu": {
        "workers": DEFAULT_CPU_WORKERS,
        "chunk_size": CPU_CHUNK_SIZE,
    },
    "logging": {
        "file": None,
        "level": "INFO",
        "console_level": "WARNING",
    }
}

# Settings that must be integers; value is the smallest accepted value
_INTEGER_SETTINGS = {
    "miner.max_iterations": 0,
    "miner.sync_max_iterations": 0,
    "miner.batch_size": 1,
    "miner.progress_interval": 1,
    "cpu.workers": 0,
    "cpu.chunk_size": 1,
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Config:
    """
    Application configuration manager with singleton pattern.

    Holds defaults until load() merges a user YAML file over them, and
    provides dot-notation access to nested configuration values.

    Example:
        >>> config = Config()
        >>> deployer = config.get('miner.deployer')
        >>> workers = config.get('cpu.workers', default=0)
    """

    _instance: Optional['Config'] = None

    def __new__(cls) -> 'Config':
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance.reset()
        return cls._instance

    def reset(self) -> None:
        """Discard loaded settings and return to defaults."""
        self.data = copy.deepcopy(DEFAULT_CONFIG)
        self.path: Optional[str] = None

    def load(self, config_path: str = DEFAULT_CONFIG_FILE) -> None:
        """
        Load configuration from YAML file, merging with defaults.

        A missing file is not an error: defaults stay in effect.

        Args:
            config_path: Path to YAML configuration file

        Raises:
            ConfigurationError: If config file is malformed or has invalid values
        """
        if not os.path.exists(config_path):
            logging.info(f"No config file found at {config_path}, using defaults")
            return

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(config_path, f"Malformed YAML: {e}") from e
        except OSError as e:
            raise ConfigurationError(config_path, f"Failed to read: {e}") from e

        if user_config:
            if not isinstance(user_config, dict):
                raise ConfigurationError(
                    config_path,
                    "Configuration file must contain a dictionary"
                )
            self._merge(self.data, user_config)

        self.path = config_path
        self.validate()
        logging.info(f"Loaded configuration from {config_path}")

    def validate(self) -> None:
        """
        Check types and ranges of every known setting.

        Raises:
            ConfigurationError: On the first invalid value
        """
        for key, minimum in _INTEGER_SETTINGS.items():
            value = self.get(key)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(key, f"must be an integer, got {value!r}")
            if value < minimum:
                raise ConfigurationError(key, f"must be >= {minimum}, got {value}")

        mode = self.get('miner.mode')
        if mode not in MINING_MODES:
            raise ConfigurationError('miner.mode', f"must be one of {', '.join(MINING_MODES)}, got {mode!r}")

        for key in ('logging.level', 'logging.console_level'):
            level = self.get(key)
            if not isinstance(level, str) or level.upper() not in _LOG_LEVELS:
                raise ConfigurationError(key, f"must be one of {', '.join(_LOG_LEVELS)}, got {level!r}")

        try:
            normalize_address(str(self.get('miner.deployer')))
        except InvalidInputError as e:
            raise ConfigurationError('miner.deployer', str(e)) from e

    def save(self, config_path: str = DEFAULT_CONFIG_FILE) -> None:
        """
        Save current configuration to YAML file.

        Args:
            config_path: Path where configuration should be saved

        Raises:
            ConfigurationError: If unable to write configuration file
        """
        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                yaml.dump(self.data, f, default_flow_style=False, sort_keys=False)
            logging.info(f"Saved configuration to {config_path}")
        except OSError as e:
            raise ConfigurationError(config_path, f"Failed to save: {e}") from e

    def _merge(self, default: Dict[str, Any], user: Dict[str, Any]) -> None:
        """
        Recursively merge user configuration into default configuration.

        Args:
            default: Default configuration dictionary (modified in place)
            user: User configuration to merge
        """
        for k, v in user.items():
            if isinstance(v, dict) and k in default and isinstance(default[k], dict):
                self._merge(default[k], v)
            else:
                default[k] = v

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            path: Dot-separated path to configuration value (e.g., 'miner.deployer')
            default: Default value if path not found

        Returns:
            Configuration value at path, or default if not found

        Example:
            >>> config.get('cpu.chunk_size', default=20000)
            20000
        """
        keys = path.split('.')
        val = self.data
        try:
            for k in keys:
                val = val[k]
            return val
        except (KeyError, TypeError):
            return default

    def set(self, path: str, value: Any) -> None:
        """Set a configuration value using dot notation, creating sections as needed."""
        keys = path.split('.')
        section = self.data
        for k in keys[:-1]:
            section = section.setdefault(k, {})
        section[keys[-1]] = value


# Global instance
config = Config()
