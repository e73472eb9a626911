"""
Shared fixtures for the periodic runner tests.
"""

import time

import pytest

from periodic import PeriodicRunner, TaskConfig


class RecordingReporter:
    """Reporter that keeps every message it receives."""

    def __init__(self):
        self.successes = []
        self.failures = []
        self.critical = []

    def report_success(self, message):
        self.successes.append(message)

    def report_failure(self, message):
        self.failures.append(message)

    def report_critical(self, message):
        self.critical.append(message)


def wait_until(predicate, timeout=3.0, poll=0.005):
    """Poll predicate until it is true or timeout seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(poll)
    return predicate()


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def make_runner(reporter):
    """Build runners that are always stopped at teardown."""
    runners = []

    def _make(clock=None, **options):
        kwargs = {'reporter': reporter}
        if clock is not None:
            kwargs['clock'] = clock
        runner = PeriodicRunner(TaskConfig(**options), **kwargs)
        runners.append(runner)
        return runner

    yield _make

    for runner in runners:
        runner.stop(wait=True)
