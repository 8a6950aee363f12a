"""
Logging configuration for Partner Sync
Console output with level colours, optional rotating log file, and the
current reconciliation run id stamped on every record
"""

import copy
import logging
import logging.handlers
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional
import colorama

# Initialize colorama for Windows color support
colorama.init()

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - run:%(run_id)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

NO_RUN = "-"

# Libraries that log hashing/registry internals at DEBUG
NOISY_LOGGERS = ('passlib',)

_current_run_id = NO_RUN


class RunContextFilter(logging.Filter):
    """Adds `run_id` to every record passing through a handler"""

    def filter(self, record):
        record.run_id = _current_run_id
        return True


@contextmanager
def run_context(run_id: Optional[str]) -> Generator[None, None, None]:
    """Tag log records emitted inside the block with a short run id."""
    global _current_run_id
    previous = _current_run_id
    _current_run_id = run_id[:8] if run_id else NO_RUN
    try:
        yield
    finally:
        _current_run_id = previous


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name for console output"""

    COLORS = {
        'DEBUG': colorama.Fore.CYAN,
        'INFO': colorama.Fore.GREEN,
        'WARNING': colorama.Fore.YELLOW,
        'ERROR': colorama.Fore.RED,
        'CRITICAL': colorama.Fore.RED + colorama.Style.BRIGHT,
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname)
        if color is None:
            return super().format(record)
        # Colour a copy so file handlers sharing the record stay plain
        record = copy.copy(record)
        record.levelname = f"{color}{record.levelname}{colorama.Style.RESET_ALL}"
        return super().format(record)


def setup_logging(
    log_file: Optional[str] = None,
    log_level: str = "INFO",
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure root logging for reconciliation runs

    Args:
        log_file: Rotating log file to write as well (console only if None)
        log_level: Root level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files to keep

    Returns:
        The configured root logger
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper()))
    root.handlers.clear()

    run_filter = RunContextFilter()

    console = logging.StreamHandler()
    console.addFilter(run_filter)
    console.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        rotating = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        rotating.addFilter(run_filter)
        rotating.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(rotating)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.INFO))

    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
