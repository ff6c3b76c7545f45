import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional, Union
from colorama import Fore, Style, init

from .constants import LOG_MAX_SIZE, LOG_BACKUP_COUNT

# Initialize colorama
init(autoreset=True)


class ColoredFormatter(logging.Formatter):
    """Custom formatter for colored console logs."""

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with appropriate color."""
        color = self.COLORS.get(record.levelno, Fore.WHITE)
        message = super().format(record)
        return f"{color}{message}{Style.RESET_ALL}"


def parse_level(level: Union[int, str]) -> int:
    """
    Convert a level name ("info", "WARNING") or number to a logging level.

    Example:
        >>> parse_level("debug") == logging.DEBUG
        True
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_logging(
    log_file: Optional[str] = None,
    level: Union[int, str] = logging.INFO,
    console_level: Optional[Union[int, str]] = None,
    max_bytes: int = LOG_MAX_SIZE,
    backup_count: int = LOG_BACKUP_COUNT,
    enable_console_logging: bool = True
) -> None:
    """
    Configure the logging system for the application.

    Args:
        log_file: Path to log file (None disables file logging)
        level: Base logging level for file handler
        console_level: Console logging level (defaults to WARNING if None)
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup log files to keep
        enable_console_logging: Whether to enable console logging

    Example:
        >>> setup_logging(log_file="hook_miner.log", level=logging.INFO, console_level=logging.WARNING)
    """
    level = parse_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level if console_level is None else min(level, parse_level(console_level)))

    # Clear existing handlers to avoid duplication
    root_logger.handlers = []

    # Console Handler - only show warnings/errors by default
    if enable_console_logging:
        if console_level is None:
            console_level = logging.WARNING

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(parse_level(console_level))
        console_formatter = ColoredFormatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )
        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

    # File Handler with rotation
    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)

    root_logger.debug("Logging initialized")
