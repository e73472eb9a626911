"""
Task and logging configuration for the periodic runner.

TaskConfig describes a single recurring task: the callable, its arguments,
timing, and error policy. It is validated on construction and immutable
afterwards. LoggingConfig controls how runner output is written.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from periodic.exceptions import ConfigurationError

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0  # seconds
DEFAULT_RESUME_DELAY = 60.0  # seconds
ANONYMOUS_TASK_NAME = "Anonymous"

ENV_LOG_LEVEL = "PERIODIC_LOG_LEVEL"
ENV_LOG_FILE = "PERIODIC_LOG_FILE"
ENV_LOG_COLOR = "PERIODIC_LOG_COLOR"
ENV_CONFIG_PATH = "PERIODIC_CONFIG_PATH"


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _task_name_for(work) -> str:
    """Derive a display name from the work callable."""
    name = getattr(work, "__name__", None)
    if not name or name == "<lambda>":
        return ANONYMOUS_TASK_NAME
    return name


@dataclass(frozen=True)
class TaskConfig:
    """
    Configuration of one recurring task.

    Durations are in seconds. An error_rate_limit of 0 disables the
    abort-on-failure-burst behaviour.
    """
    work: Optional[Callable[..., Any]] = None
    interval: float = DEFAULT_INTERVAL
    arguments: Tuple[Any, ...] = ()
    keyword_arguments: Mapping[str, Any] = field(default_factory=dict)
    on_success: Optional[Callable[[Any], Any]] = None
    on_failure: Optional[Callable[[BaseException], Any]] = None
    quiet: bool = False
    error_rate_limit: int = 0
    resume_after_abort: bool = False
    resume_delay: float = DEFAULT_RESUME_DELAY
    name: Optional[str] = None

    def __post_init__(self):
        # Accept lists for convenience; stored as a tuple
        if isinstance(self.arguments, list):
            object.__setattr__(self, "arguments", tuple(self.arguments))
        if self.name is None and callable(self.work):
            object.__setattr__(self, "name", _task_name_for(self.work))

        errors = self.validate()
        if errors:
            raise ConfigurationError("Invalid task configuration: " + "; ".join(errors))

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.work is None:
            errors.append("'work' is required")
        elif not callable(self.work):
            errors.append(f"'work' must be callable, got {type(self.work).__name__}")

        for attr in ("on_success", "on_failure"):
            callback = getattr(self, attr)
            if callback is not None and not callable(callback):
                errors.append(f"'{attr}' must be callable or None")

        if not _is_number(self.interval) or self.interval < 0:
            errors.append("'interval' must be a non-negative number of seconds")
        if not _is_number(self.resume_delay) or self.resume_delay < 0:
            errors.append("'resume_delay' must be a non-negative number of seconds")

        if (not isinstance(self.error_rate_limit, int)
                or isinstance(self.error_rate_limit, bool)
                or self.error_rate_limit < 0):
            errors.append("'error_rate_limit' must be a non-negative integer")

        if self.name is not None and not isinstance(self.name, str):
            errors.append(f"'name' must be a string, got {type(self.name).__name__}")

        if not isinstance(self.arguments, tuple):
            errors.append("'arguments' must be a tuple or list")
        if not isinstance(self.keyword_arguments, Mapping):
            errors.append("'keyword_arguments' must be a mapping")

        return errors

    @property
    def display_name(self) -> str:
        return self.name or ANONYMOUS_TASK_NAME

    @property
    def limits_error_rate(self) -> bool:
        return self.error_rate_limit > 0


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _default_log_level() -> str:
    return os.environ.get(ENV_LOG_LEVEL, "INFO").upper()


def _default_log_file() -> Optional[str]:
    if os.environ.get(ENV_LOG_FILE):
        return str(Path(os.environ[ENV_LOG_FILE]).expanduser())
    return None


def _default_log_color() -> bool:
    return _env_flag(ENV_LOG_COLOR, True)


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = field(default_factory=_default_log_level)
    file: Optional[str] = field(default_factory=_default_log_file)
    color: bool = field(default_factory=_default_log_color)

    def __post_init__(self):
        self.level = str(self.level).upper()
        if logging.getLevelName(self.level) == f"Level {self.level}":
            raise ConfigurationError(f"Unknown log level: {self.level}")

    @property
    def level_number(self) -> int:
        return logging.getLevelName(self.level)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_logging_config(config_path: Optional[str] = None) -> LoggingConfig:
    """
    Load logging configuration from a JSON file.

    Configuration path priority:
    1. Explicit config_path argument
    2. PERIODIC_CONFIG_PATH environment variable
    3. None: environment defaults only

    Keys missing from the file's "logging" section fall back to the
    environment defaults.
    """
    if not config_path:
        config_path = os.environ.get(ENV_CONFIG_PATH)
    if not config_path:
        return LoggingConfig()

    path = Path(config_path).expanduser()
    if not path.exists():
        logger.info(f"No config found at {path}, using defaults")
        return LoggingConfig()

    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load config from {path}: {e}")
        raise ConfigurationError(f"Failed to load config from {path}: {e}") from e

    section = data.get('logging', {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"'logging' section in {path} must be an object")

    unknown = set(section) - {'level', 'file', 'color'}
    if unknown:
        raise ConfigurationError(f"Unknown logging option(s) in {path}: {', '.join(sorted(unknown))}")

    logger.debug(f"Loaded logging config from {path}")
    return LoggingConfig(**section)
