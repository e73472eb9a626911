"""
Periodic task runner using APScheduler.

Runs a single task over and over with a fixed delay between the end of one
invocation and the start of the next:

- Success and failure callbacks
- Outcome reporting through a pluggable reporter
- Abort after too many failures within a minute, with optional resume
- Explicit stop() that cancels any pending invocation

Each step is a one-shot 'date' job; the next one is only added once the
current invocation has finished, so invocations of one runner never overlap.
"""

import asyncio
import inspect
import itertools
import logging
import threading
import time
import uuid
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.background import BackgroundScheduler

from periodic.config import TaskConfig
from periodic.exceptions import ConfigurationError, TaskFailure
from periodic.reporter import LoggingReporter, Reporter

logger = logging.getLogger(__name__)

ERROR_WINDOW_SECONDS = 60.0


class RunnerState:
    """
    Abort flag and failure accounting for one running loop.

    Failures are counted in a window that opens with the first failure seen
    once the previous window is at least a minute old. Exceeding the limit
    inside the window aborts the loop. The window is not reset by an abort.
    """

    def __init__(self):
        self.aborted = False
        self.failure_count = 0
        self.window_start: Optional[float] = None

    def record_failure(self, now: float, error_rate_limit: int) -> bool:
        """
        Count a failure observed at monotonic time `now`.

        Returns:
            True if this failure exceeded the limit and aborted the loop
        """
        in_window = (
            self.window_start is not None
            and now - self.window_start < ERROR_WINDOW_SECONDS
        )

        if in_window and error_rate_limit > 0 and self.failure_count + 1 > error_rate_limit:
            self.failure_count += 1
            self.aborted = True
            return True

        if not in_window:
            self.failure_count = 1
            self.window_start = now
        else:
            self.failure_count += 1
        return False

    def __repr__(self):
        return (f"RunnerState(aborted={self.aborted}, failure_count={self.failure_count}, "
                f"window_start={self.window_start})")


@dataclass
class RunStats:
    """In-memory execution statistics for a runner."""
    invocations: int = 0
    successes: int = 0
    failures: int = 0
    aborts: int = 0
    resumes: int = 0
    last_error: Optional[str] = None
    last_run_at: Optional[str] = None
    last_duration_seconds: Optional[float] = None


async def _await(awaitable):
    return await awaitable


class PeriodicRunner:
    """
    Drives one task in a sequential loop on an APScheduler scheduler.

    By default the runner owns a BackgroundScheduler with a single worker
    thread. A shared scheduler may be passed instead; the runner then only
    adds and removes its own jobs and never starts or shuts it down.
    """

    def __init__(
        self,
        config: TaskConfig,
        reporter: Optional[Reporter] = None,
        scheduler=None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the runner.

        Args:
            config: Task configuration
            reporter: Receives outcome messages (LoggingReporter if None)
            scheduler: APScheduler scheduler to run on (a private one if None)

        Raises:
            ConfigurationError: If config is not a TaskConfig or scheduler is an AsyncIOScheduler
            clock: Monotonic time source used for failure accounting
        """
        if not isinstance(config, TaskConfig):
            raise ConfigurationError(
                f"Expected a TaskConfig, got {type(config).__name__}"
            )
        if isinstance(scheduler, AsyncIOScheduler):
            raise ConfigurationError(
                "AsyncIOScheduler is not supported; pass a thread-based scheduler"
            )

        self.config = config
        self.reporter = reporter or LoggingReporter()
        self.clock = clock
        self.stats = RunStats()
        self.state: Optional[RunnerState] = None

        self._owns_scheduler = scheduler is None
        if scheduler is None:
            scheduler = BackgroundScheduler(
                executors={'default': ThreadPoolExecutor(1)},
                job_defaults={
                    'coalesce': True,
                    'max_instances': 1,
                    'misfire_grace_time': None  # late steps still run
                }
            )
        self.scheduler = scheduler

        self._runner_id = str(uuid.uuid4())[:8]
        self._job_numbers = itertools.count(1)
        self._lock = threading.RLock()
        self._started = False
        self._stopped = False
        self._pending_job_id: Optional[str] = None
        self._worker: Optional[threading.Thread] = None

    @property
    def name(self) -> str:
        return self.config.display_name

    @property
    def aborted(self) -> bool:
        return self.state is not None and self.state.aborted

    def start(self):
        """Schedule the first invocation immediately and return."""
        with self._lock:
            if self._stopped:
                raise RuntimeError(f"Runner '{self.name}' has been stopped and cannot be restarted")
            if self._started:
                logger.warning(f"Runner '{self.name}' is already running")
                return

            self._started = True
            self.state = RunnerState()

            if self._owns_scheduler and not self.scheduler.running:
                self.scheduler.start()

            self._schedule(self._execute_step, 0, "step")

        logger.info(
            f"[{self.name}:{self._runner_id}] Started "
            f"(interval: {self.config.interval}s, error rate limit: {self.config.error_rate_limit}/min)"
        )

    def stop(self, wait: bool = True):
        """
        Stop the runner.

        Cancels any pending invocation or resume. An invocation already in
        progress finishes, but nothing is scheduled after it.

        Args:
            wait: If True, wait for an in-progress invocation to complete
        """
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            job_id = self._pending_job_id
            self._pending_job_id = None
            # Waiting on our own worker thread would deadlock
            in_worker = self._worker is threading.current_thread()

        if job_id:
            try:
                self.scheduler.remove_job(job_id)
            except JobLookupError:
                logger.debug(f"Job '{job_id}' already ran or was removed")

        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=wait and not in_worker)

        logger.info(f"[{self.name}:{self._runner_id}] Stopped")

    def is_running(self) -> bool:
        """True while further invocations can still happen."""
        if not self._started or self._stopped:
            return False
        return not (self.aborted and not self.config.resume_after_abort)

    def get_stats(self) -> Dict[str, Any]:
        """Get execution statistics."""
        stats = asdict(self.stats)
        stats['name'] = self.name
        stats['aborted'] = self.aborted
        stats['failure_count'] = self.state.failure_count if self.state else 0
        return stats

    def _schedule(self, func: Callable[[], None], delay: float, kind: str):
        """Add a one-shot job running func after delay seconds. Caller holds the lock."""
        if self._stopped:
            return

        # Fresh id per job: the scheduler removes a fired date job after submitting it
        job_id = f"{self._runner_id}:{kind}:{next(self._job_numbers)}"
        self._pending_job_id = job_id
        self.scheduler.add_job(
            func,
            'date',
            run_date=datetime.now(self.scheduler.timezone) + timedelta(seconds=delay),
            id=job_id,
            name=f"{self.name} ({kind})",
            misfire_grace_time=None,
            coalesce=True,
            max_instances=1
        )

    def _execute_step(self):
        with self._lock:
            if self._stopped:
                return
            self._pending_job_id = None
            self._worker = threading.current_thread()

        started = time.monotonic()
        self.stats.invocations += 1
        self.stats.last_run_at = datetime.now().isoformat()

        try:
            try:
                result = self._invoke()
            except Exception as error:
                self.stats.last_duration_seconds = round(time.monotonic() - started, 3)
                self._handle_failure(error)
            else:
                self.stats.last_duration_seconds = round(time.monotonic() - started, 3)
                self._handle_success(result)
        finally:
            with self._lock:
                self._worker = None
                if not self.state.aborted:
                    self._schedule(self._execute_step, self.config.interval, "step")

    def _invoke(self):
        config = self.config
        result = config.work(*config.arguments, **config.keyword_arguments)
        if inspect.isawaitable(result):
            try:
                result = asyncio.run(_await(result))
            except asyncio.CancelledError as e:
                raise TaskFailure(f"{self.name} was cancelled", task_name=self.name) from e
        return result

    def _handle_success(self, result):
        self.stats.successes += 1

        if self.config.on_success is not None:
            self._run_callback(self.config.on_success, result)

        if not self.config.quiet:
            self._report(
                self.reporter.report_success,
                f"Periodic function call: {self.name} completed successfully"
            )

    def _handle_failure(self, error: Exception):
        self.stats.failures += 1
        self.stats.last_error = str(error)

        # Count the failure before any user code or reporter runs
        now = self.clock()
        with self._lock:
            exceeded = self.state.record_failure(now, self.config.error_rate_limit)
            failure_count = self.state.failure_count

        if self.config.on_failure is not None:
            self._run_callback(self.config.on_failure, error)

        if not self.config.quiet:
            self._report(
                self.reporter.report_failure,
                f"Periodic function call {self.name} encountered an error: {error}"
            )

        if exceeded:
            self._abort(failure_count)

    def _abort(self, failure_count: int):
        self.stats.aborts += 1
        self._report(
            self.reporter.report_critical,
            f"Error rate limit exceeded. Aborting {self.name} due to "
            f"{failure_count} errors in the last minute."
        )

        with self._lock:
            if self.config.resume_after_abort:
                self._schedule(self._resume, self.config.resume_delay, "resume")
                logger.info(f"[{self.name}:{self._runner_id}] Resuming in {self.config.resume_delay}s")
                return

            logger.info(f"[{self.name}:{self._runner_id}] Halted after error rate limit")
            if not self._owns_scheduler or self._stopped:
                return
            self._stopped = True

        # Runs on the scheduler's worker thread, so it must not wait for itself
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def _resume(self):
        with self._lock:
            if self._stopped:
                return
            self.state.aborted = False
            self.stats.resumes += 1

        logger.info(f"[{self.name}:{self._runner_id}] Resuming after abort")
        self._execute_step()

    def _run_callback(self, callback: Callable[[Any], Any], value):
        # A failing callback is logged; it is not a task failure
        try:
            callback(value)
        except Exception:
            logger.exception(f"[{self.name}:{self._runner_id}] Callback {callback!r} raised")

    def _report(self, report: Callable[[str], None], message: str):
        try:
            report(message)
        except Exception:
            logger.exception(f"[{self.name}:{self._runner_id}] Reporter failed on: {message}")

    def __repr__(self):
        return f"PeriodicRunner(name={self.name!r}, interval={self.config.interval}, state={self.state!r})"


def execute_periodically(
    work: Optional[Callable[..., Any]] = None,
    reporter: Optional[Reporter] = None,
    scheduler=None,
    **options
) -> PeriodicRunner:
    """
    Start running work periodically.

    Builds a TaskConfig from work and options (interval, arguments,
    keyword_arguments, on_success, on_failure, quiet, error_rate_limit,
    resume_after_abort, resume_delay, name), schedules the first invocation
    and returns the runner handle without waiting for it.

    Raises:
        ConfigurationError: If work is missing or an option is invalid
    """
    try:
        config = TaskConfig(work=work, **options)
    except TypeError as e:
        raise ConfigurationError(str(e)) from e

    runner = PeriodicRunner(config, reporter=reporter, scheduler=scheduler)
    runner.start()
    return runner
