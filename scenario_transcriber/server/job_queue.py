"""
FIFO job queue running one job at a time on a ThreadPoolExecutor.

The queue owns every job record. Running job bodies report progress through a
patch-only update handle; readers only ever get immutable snapshots. All record
mutations and snapshot reads happen under one lock, so a reader never sees a
half-applied patch.
"""

import logging
import math
import threading
import uuid
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from functools import partial
from typing import Any, Deque, Dict, Optional

from .models import Job, JobResult, JobRunnable, JobSnapshot, JobState

logger = logging.getLogger(__name__)


class JobQueue:
    """Queues job bodies and executes them sequentially in submission order."""

    PATCHABLE_FIELDS = ("progress", "items_done", "total_items", "message")

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._pending: Deque[str] = deque()
        self._done_events: Dict[str, threading.Event] = {}
        self._running_job: Optional[str] = None
        self._is_shut_down = False

        # A single worker: the external engines saturate the machine on their own
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="job-worker")

        # Lock for thread safety
        self._lock = threading.Lock()

    def submit(self, runnable: JobRunnable) -> str:
        """
        Queue a job body for execution.

        Args:
            runnable: Callable receiving the update handle and returning a JobResult

        Returns:
            Job identifier; execution happens in the background
        """
        job_id = uuid.uuid4().hex
        with self._lock:
            if self._is_shut_down:
                raise RuntimeError("Cannot submit job: job queue is shut down")
            self._jobs[job_id] = Job(id=job_id, runnable=runnable)
            self._done_events[job_id] = threading.Event()
            self._pending.append(job_id)

        logger.info(f"Job {job_id} queued")
        self._drain()
        return job_id

    def submit_and_wait(self, runnable: JobRunnable, timeout: Optional[float] = None) -> JobSnapshot:
        """
        Queue a job body and block until it reaches a terminal state.

        Raises:
            TimeoutError: If the job is not done within ``timeout`` seconds
        """
        job_id = self.submit(runnable)
        if not self.wait(job_id, timeout):
            raise TimeoutError(f"Job {job_id} did not complete within {timeout} seconds")
        return self.get_job(job_id)

    def wait(self, job_id: str, timeout: Optional[float] = None) -> bool:
        """Block until ``job_id`` is finished or failed; False on timeout."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise KeyError(job_id)
            if job.state.is_terminal:
                return True
            event = self._done_events[job_id]
        return event.wait(timeout)

    def get_job(self, job_id: str) -> Optional[JobSnapshot]:
        """Snapshot of a job, or None for unknown identifiers."""
        with self._lock:
            job = self._jobs.get(job_id)
            return job.snapshot() if job else None

    def get_queue_status(self) -> Dict[str, Any]:
        """Get status information about the job queue."""
        with self._lock:
            return {
                "is_running": not self._is_shut_down,
                "running_job": self._running_job,
                "queue_size": len(self._pending),
                "total_jobs": len(self._jobs),
            }

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs and fail every job that has not started yet."""
        with self._lock:
            if self._is_shut_down:
                return
            self._is_shut_down = True

            events = []
            now = datetime.now()
            while self._pending:
                job = self._jobs.get(self._pending.popleft())
                if job is None or job.state.is_terminal:
                    continue
                job.state = JobState.FAILED
                job.error = "Job queue shut down before the job started"
                job.updated_at = now
                job.finished_at = now
                event = self._done_events.pop(job.id, None)
                if event is not None:
                    events.append(event)

        for event in events:
            event.set()
        if events:
            logger.warning(f"{len(events)} queued jobs failed at shutdown")
        logger.info("Stopping job queue...")
        self.executor.shutdown(wait=wait)
        logger.info("Job queue stopped")

    def _drain(self) -> None:
        """Start the next queued job unless one is already running."""
        with self._lock:
            if self._running_job is not None or self._is_shut_down:
                return

            job = None
            while self._pending and job is None:
                job_id = self._pending.popleft()
                job = self._jobs.get(job_id)
                if job is None:
                    logger.warning(f"Queued job {job_id} has no record, skipping")
            if job is None:
                return

            now = datetime.now()
            job.state = JobState.PROCESSING
            job.started_at = now
            job.updated_at = now
            self._running_job = job.id
            future = self.executor.submit(self._run_job, job.id, job.runnable)

        logger.info(f"Starting processing for job {job.id}")
        future.add_done_callback(lambda f, jid=job.id: self._job_completed(jid, f))

    def _run_job(self, job_id: str, runnable: JobRunnable) -> JobResult:
        return runnable(partial(self._update, job_id))

    def _update(self, job_id: str, **patch: Any) -> None:
        """
        Merge a progress patch into a running job.

        Progress is rounded, clamped to [0, 100] and never lowered; items_done
        never exceeds total_items. Patches for jobs that are not processing are
        ignored.
        """
        unknown = set(patch) - set(self.PATCHABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported job fields in update: {', '.join(sorted(unknown))}")

        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.state != JobState.PROCESSING:
                return

            if patch.get("total_items") is not None:
                job.total_items = max(0, int(patch["total_items"]))
            if patch.get("items_done") is not None:
                job.items_done = max(0, int(patch["items_done"]))
            job.items_done = min(job.items_done, job.total_items)

            if patch.get("progress") is not None:
                progress = int(math.floor(float(patch["progress"]) + 0.5))
                job.progress = max(job.progress, min(100, max(0, progress)))

            if "message" in patch:
                job.message = str(patch["message"] or "")
            job.updated_at = datetime.now()

    def _job_completed(self, job_id: str, future: Future) -> None:
        """Callback called when a job body returns or raises."""
        if future.cancelled():
            error: Optional[BaseException] = RuntimeError("Job cancelled")
        else:
            error = future.exception()

        with self._lock:
            job = self._jobs.get(job_id)
            if job is not None and not job.state.is_terminal:
                now = datetime.now()
                if error is None:
                    job.state = JobState.FINISHED
                    job.progress = 100
                    job.result = future.result()
                else:
                    job.state = JobState.FAILED
                    job.error = str(error) or type(error).__name__
                job.updated_at = now
                job.finished_at = now
            self._running_job = None
            event = self._done_events.pop(job_id, None)

        if error is None:
            logger.info(f"Job {job_id} completed successfully")
        else:
            logger.error(f"Job {job_id} failed with error: {error}")

        if event is not None:
            event.set()
        self._drain()
