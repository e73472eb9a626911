"""
Outcome reporting for periodic tasks.

The runner reports each outcome through a Reporter. The default
LoggingReporter writes to the standard logging system; setup_logging()
installs console (optionally coloured) and file handlers.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Protocol

from periodic.config import LoggingConfig

logger = logging.getLogger(__name__)

REPORTER_LOGGER_NAME = "periodic.reporter"


class Reporter(Protocol):
    """Receives the runner's outcome messages."""

    def report_success(self, message: str) -> None:
        ...

    def report_failure(self, message: str) -> None:
        ...

    def report_critical(self, message: str) -> None:
        ...


class LoggingReporter:
    """Reporter that forwards messages to a logger at INFO, WARNING and CRITICAL."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logging.getLogger(REPORTER_LOGGER_NAME)

    def report_success(self, message: str) -> None:
        self.log.info(message)

    def report_failure(self, message: str) -> None:
        self.log.warning(message)

    def report_critical(self, message: str) -> None:
        self.log.critical(message)


class ColoredFormatter(logging.Formatter):
    """Console formatter that colours each record by level using ANSI codes."""

    grey = "\x1b[38;21m"
    green = "\x1b[32;21m"
    yellow = "\x1b[33;21m"
    red = "\x1b[31;21m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    COLORS = {
        logging.DEBUG: grey,
        logging.INFO: green,
        logging.WARNING: yellow,
        logging.ERROR: red,
        logging.CRITICAL: bold_red,
    }

    def __init__(self, fmt: str = '%(asctime)s [%(levelname)s] %(message)s',
                 datefmt: str = '%Y-%m-%d %H:%M:%S'):
        super().__init__(fmt, datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        color = self.COLORS.get(record.levelno)
        if color is None:
            return formatted
        return f"{color}{formatted}{self.reset}"


def setup_logging(config: Optional[LoggingConfig] = None, verbose: bool = False):
    """
    Setup logging configuration.

    Args:
        config: Logging configuration (environment defaults if None)
        verbose: Force DEBUG level regardless of config
    """
    config = config or LoggingConfig()
    level = logging.DEBUG if verbose else config.level_number

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    if config.color:
        console_handler.setFormatter(ColoredFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # File handler
    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        ))
        root_logger.addHandler(file_handler)

    # APScheduler logs every job add/run at INFO; one runner step is one job
    if not verbose:
        logging.getLogger('apscheduler').setLevel(logging.WARNING)

    logger.debug(f"Logging configured at {logging.getLevelName(level)}")
