"""
Periodic Runner

Run a callable over and over on a fixed interval, routing each outcome to
callbacks and a reporter, with an optional abort when failures pile up.

Main Components:
- PeriodicRunner / execute_periodically: the scheduling loop
- TaskConfig: validated, immutable task definition
- Reporters: LoggingReporter plus coloured console logging setup
"""

from periodic.config import TaskConfig, LoggingConfig, load_logging_config
from periodic.exceptions import PeriodicRunnerError, ConfigurationError, TaskFailure
from periodic.reporter import Reporter, LoggingReporter, ColoredFormatter, setup_logging
from periodic.runner import PeriodicRunner, RunnerState, RunStats, execute_periodically

__version__ = "0.1.0"

__all__ = [
    # Runner
    "PeriodicRunner",
    "RunnerState",
    "RunStats",
    "execute_periodically",
    # Configuration
    "TaskConfig",
    "LoggingConfig",
    "load_logging_config",
    # Reporting
    "Reporter",
    "LoggingReporter",
    "ColoredFormatter",
    "setup_logging",
    # Errors
    "PeriodicRunnerError",
    "ConfigurationError",
    "TaskFailure",
]
