"""
Job Scheduler - bounded-concurrency execution of independent jobs.

All jobs are placed on one shared queue. Exactly ``concurrency`` worker
threads repeatedly claim the next job (claiming is an atomic get-and-remove,
so no two workers ever run the same job) and run its commands strictly in
order before claiming another. run_all() blocks until every worker has
drained the queue and exited.

Failure policy:
    The first failing command sets a shared cancellation event. Once it is
    set, no worker claims another job and no further command of an in-flight
    chain is started; commands already running are allowed to finish. The
    first failure is reported in the returned SchedulerResult rather than
    raised, so the caller decides how to exit.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from queue import Empty, Queue
from typing import TYPE_CHECKING, Callable, Optional, Sequence

from nbuild.errors import CommandFailedError
from nbuild.subprocess_utils import CommandRunner, run_command

if TYPE_CHECKING:
    from nbuild.build.models import Job


class JobState(Enum):
    """State of a scheduled job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class SchedulerResult:
    """Outcome of JobScheduler.run_all().

    Attributes:
        success: True if every job completed
        failure: First command failure observed, if any
        completed: Names of jobs whose whole chain succeeded
        cancelled: Names of jobs that were never started (or stopped mid-chain) after a failure
        elapsed: Wall-clock time in seconds
    """

    success: bool
    failure: Optional[CommandFailedError] = None
    completed: list[str] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)
    elapsed: float = 0.0


ProgressCallback = Callable[["Job", JobState], None]


class JobScheduler:
    """Runs jobs across a fixed-size pool of worker threads."""

    def __init__(self, runner: CommandRunner = run_command, progress_callback: Optional[ProgressCallback] = None):
        """Initialize the scheduler.

        Args:
            runner: Executes one command, raising CommandFailedError on failure
            progress_callback: Optional callback notified on job state changes
        """
        self.runner = runner
        self.progress_callback = progress_callback

    def run_all(self, jobs: Sequence["Job"], concurrency: int = 1) -> SchedulerResult:
        """Run all jobs with at most ``concurrency`` commands in flight.

        Args:
            jobs: Independent jobs; each job's commands run in order
            concurrency: Number of worker threads (values below 1 mean 1)

        Returns:
            SchedulerResult describing which jobs completed and the first failure
        """
        start_time = time.time()
        num_workers = max(1, concurrency)
        queue: "Queue[Job]" = Queue()
        for job in jobs:
            queue.put(job)
            self._notify(job, JobState.PENDING)

        cancel = threading.Event()
        lock = threading.Lock()
        completed: list[str] = []
        failures: list[CommandFailedError] = []
        failed_jobs: set[str] = set()
        interrupted: list[BaseException] = []

        def worker() -> None:
            name = threading.current_thread().name
            while not cancel.is_set():
                try:
                    job = queue.get_nowait()
                except Empty:
                    break
                logging.debug(f"Worker {name} claimed job: {job.name}")
                self._notify(job, JobState.RUNNING)
                try:
                    for command in job.commands:
                        if cancel.is_set():
                            break
                        self.runner(command)
                    else:
                        with lock:
                            completed.append(job.name)
                        self._notify(job, JobState.COMPLETED)
                except CommandFailedError as e:
                    logging.error(f"Job {job.name} failed: {e}")
                    with lock:
                        failures.append(e)
                        failed_jobs.add(job.name)
                    cancel.set()
                    self._notify(job, JobState.FAILED)
                except BaseException as e:
                    # KeyboardInterrupt and unexpected errors stop everything and
                    # are re-raised on the calling thread.
                    with lock:
                        interrupted.append(e)
                    cancel.set()
                    self._notify(job, JobState.FAILED)
            logging.debug(f"Worker {name} exiting")

        if jobs:
            logging.debug(f"Running {len(jobs)} jobs on {num_workers} workers")
        workers = [threading.Thread(target=worker, name=f"JobWorker-{i}", daemon=True) for i in range(num_workers)]
        for thread in workers:
            thread.start()
        for thread in workers:
            thread.join()

        if interrupted:
            raise interrupted[0]

        done = set(completed)
        cancelled = []
        for job in jobs:
            if job.name not in done and job.name not in failed_jobs:
                cancelled.append(job.name)
                self._notify(job, JobState.CANCELLED)

        result = SchedulerResult(
            success=not failures,
            failure=failures[0] if failures else None,
            completed=completed,
            cancelled=cancelled,
            elapsed=time.time() - start_time,
        )
        if failures:
            logging.info(f"Jobs stopped after failure: {len(completed)} completed, {len(cancelled)} cancelled")
        else:
            logging.debug(f"All {len(completed)} jobs completed in {result.elapsed:.2f}s")
        return result

    def _notify(self, job: "Job", state: JobState) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(job, state)
        except KeyboardInterrupt:
            raise
        except Exception as e:
            logging.error(f"Progress callback error: {e}", exc_info=True)
