"""
Exceptions raised by the periodic runner.
"""


class PeriodicRunnerError(Exception):
    """Base class for periodic runner errors."""
    pass


class ConfigurationError(PeriodicRunnerError, ValueError):
    """Raised when a task configuration is missing or invalid."""
    pass


class TaskFailure(PeriodicRunnerError):
    """
    Wraps a failed invocation that did not raise an ordinary exception,
    e.g. a cancelled coroutine, so failure callbacks always get an exception.
    """

    def __init__(self, message: str, task_name: str = None):
        super().__init__(message)
        self.task_name = task_name
