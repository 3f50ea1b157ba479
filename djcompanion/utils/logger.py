"""
Logging setup for DJ-Companion

Two audiences read the logs:

- The DJ at the console sees warnings, errors and the few messages a module
  marks as user-facing (``logger.console_info(...)``). Console lines are
  written through ``tqdm.write`` so they appear above the live progress bar
  of ``dj-companion watch`` instead of tearing it.
- The rotating log file (``~/.dj-companion/dj-companion.log`` by default)
  gets every record at the configured level with module and function names,
  which is where poll and command failures can be traced afterwards.

HTTP and Spotify client libraries are muted; the engine logs what matters
about each request itself.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Optional

import colorama
from colorama import Back, Fore, Style
from tqdm import tqdm

colorama.init()

QUIET_LOGGERS = (
    'spotipy', 'urllib3', 'urllib3.connectionpool', 'requests',
    'aiohttp', 'aiohttp.access', 'aiohttp.client', 'asyncio',
)

FILE_FORMAT = '%(asctime)s | %(name)-32s | %(levelname)-8s | %(funcName)-20s | %(message)s'
FILE_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_SIZE_RE = re.compile(r'^(\d+(?:\.\d+)?)\s*([KMG]?B)$')
_SIZE_UNITS = {'B': 1, 'KB': 1 << 10, 'MB': 1 << 20, 'GB': 1 << 30}


class UserFacingFilter(logging.Filter):
    """Pass warnings and above, plus records explicitly meant for the user"""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.WARNING:
            return True
        return bool(getattr(record, 'console_output', False)) or record.name.endswith('.user')


class LevelColorFormatter(logging.Formatter):
    """
    Console formatter coloring messages by level

    Warnings and errors are colored as a whole line, lower levels only get a
    colored level name (if the format shows it).
    """

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Back.WHITE + Style.BRIGHT,
    }

    def __init__(self, fmt: str = '%(message)s', use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        if color is None:
            return super().format(record)

        # Work on a copy, the file handler formats the same record
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{Style.RESET_ALL}"
        if record.levelno >= logging.WARNING:
            colored.msg = f"{color}{record.getMessage()}{Style.RESET_ALL}"
            colored.args = None
        return super().format(colored)


class ProgressHandler(logging.Handler):
    """Console handler that writes above the live progress bar instead of through it"""

    def __init__(self, stream=None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
        except Exception:
            self.handleError(record)


def parse_size(size_str: str) -> int:
    """
    Convert a human size such as ``"10MB"`` or ``"1.5 GB"`` to bytes

    Raises:
        ValueError: If the string is not a size
    """
    match = _SIZE_RE.match(size_str.strip().upper())
    if not match:
        raise ValueError(f"Invalid size format: {size_str}")
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit])


def _console_handler(colored_output: bool) -> logging.Handler:
    handler = ProgressHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)
    handler.addFilter(UserFacingFilter())
    handler.setFormatter(LevelColorFormatter(use_colors=colored_output))
    return handler


def _file_handler(log_file: str, level: int, max_size: str, backup_count: int) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=parse_size(max_size), backupCount=backup_count, encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: bool = True,
    colored_output: bool = True,
    max_size: str = "10MB",
    backup_count: int = 3
) -> None:
    """
    Replace the root handlers with the console and file handlers

    Args:
        level: Level of the log file (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file path, None for console only
        console_output: Show user-facing records on the console
        colored_output: Color the console output
        max_size: Size at which the log file is rotated
        backup_count: Rotated files to keep
    """
    root = logging.getLogger()
    # Handlers do the filtering
    root.setLevel(logging.DEBUG)

    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)

    if console_output:
        root.addHandler(_console_handler(colored_output))
    if log_file:
        file_level = getattr(logging, level.upper(), logging.INFO)
        root.addHandler(_file_handler(log_file, file_level, max_size, backup_count))

    for name in QUIET_LOGGERS:
        quiet = logging.getLogger(name)
        quiet.setLevel(logging.CRITICAL)
        quiet.propagate = False

    logging.getLogger('djcompanion').debug(
        f"Logging ready (level={level}, console={console_output}, file={log_file})"
    )


def get_current_log_file() -> Optional[Path]:
    """Path of the active log file, None when logging to the console only"""
    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            return Path(handler.baseFilename)
    return None


def get_logger(name: str) -> logging.Logger:
    """
    Module logger with ``console_info`` / ``console_warning`` / ``console_error``

    ``console_info`` marks an INFO record as user-facing so it reaches the
    console; warnings and errors always do.
    """
    logger = logging.getLogger(name)
    logger.console_info = lambda message: logger.info(message, extra={'console_output': True})
    logger.console_warning = logger.warning
    logger.console_error = logger.error
    return logger


def configure_from_settings() -> None:
    """Apply the ``logging`` section of the current settings"""
    from ..config.settings import get_settings

    settings = get_settings()
    config = settings.logging

    log_file = None
    if config.file:
        path = Path(config.file).expanduser()
        log_file = str(path if path.is_absolute() else settings.get_config_directory() / path)

    setup_logging(
        level=config.level,
        log_file=log_file,
        console_output=config.console_output,
        colored_output=config.colored_output,
        max_size=config.max_size,
        backup_count=config.backup_count
    )
