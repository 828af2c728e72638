"""In-process run history for scheduled jobs, with retry and backoff."""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import datetime

from pydantic import BaseModel

from src.domain.common import utc_now


logger = logging.getLogger(__name__)

DEAD_LETTER_THRESHOLD = 3


class JobStatus(BaseModel):
    """Run history of one scheduled job."""

    job_name: str
    last_success: datetime | None = None
    last_failure: datetime | None = None
    last_error: str | None = None
    consecutive_failures: int = 0
    success_count: int = 0
    failure_count: int = 0
    current_run_started: datetime | None = None

    @property
    def currently_running(self) -> bool:
        return self.current_run_started is not None


class DeadLetter(BaseModel):
    job_name: str
    error: str
    context: str
    recorded_at: datetime


class JobTracker:
    """Track job execution history and health status."""

    def __init__(self) -> None:
        self._jobs: dict[str, JobStatus] = {}
        self._dead_letters: deque[DeadLetter] = deque(maxlen=100)

    def _status(self, job_name: str) -> JobStatus:
        return self._jobs.setdefault(job_name, JobStatus(job_name=job_name))

    def record_job_start(self, job_name: str) -> None:
        self._status(job_name).current_run_started = utc_now()

    def record_job_success(self, job_name: str) -> None:
        status = self._status(job_name)
        status.last_success = utc_now()
        status.consecutive_failures = 0
        status.success_count += 1
        status.current_run_started = None

    def record_job_failure(self, job_name: str, error: str) -> int:
        """Record a failed run and return the consecutive failure count."""
        status = self._status(job_name)
        status.last_failure = utc_now()
        status.last_error = error[:500]
        status.consecutive_failures += 1
        status.failure_count += 1
        status.current_run_started = None
        return status.consecutive_failures

    def get_job_status(self, job_name: str) -> JobStatus:
        return self._status(job_name).model_copy()

    def add_to_dead_letter_queue(self, job_name: str, error: str, context: str) -> None:
        letter = DeadLetter(job_name=job_name, error=error, context=context, recorded_at=utc_now())
        self._dead_letters.append(letter)
        logger.error("Job added to dead letter queue", extra=letter.model_dump(mode="json"))

    def get_dead_letter_queue(self) -> list[DeadLetter]:
        return list(self._dead_letters)

    def reset(self) -> None:
        self._jobs.clear()
        self._dead_letters.clear()


# Global job tracker instance
job_tracker = JobTracker()


async def retry_job_with_backoff(
    job_func: Callable[[], Awaitable[object]],
    job_name: str,
    max_retries: int = 3,
    base_delay: float = 2.0,
) -> None:
    """Execute a job, retrying with exponential backoff.

    A job that exhausts its retries is recorded as failed; after
    ``DEAD_LETTER_THRESHOLD`` consecutive failed runs it is also put on the
    dead letter queue.
    """
    job_tracker.record_job_start(job_name)

    last_error = None
    for attempt in range(max_retries):
        try:
            logger.info("Executing %s (attempt %d/%d)", job_name, attempt + 1, max_retries)
            await job_func()
        except Exception as e:
            last_error = str(e)
            logger.error("%s failed on attempt %d/%d: %s", job_name, attempt + 1, max_retries, last_error)
            if attempt < max_retries - 1:
                delay = base_delay**attempt
                logger.info("Retrying %s in %ss", job_name, delay)
                await asyncio.sleep(delay)
        else:
            job_tracker.record_job_success(job_name)
            logger.info("%s completed successfully", job_name)
            return

    error_msg = f"Failed after {max_retries} attempts: {last_error}"
    consecutive_failures = job_tracker.record_job_failure(job_name, error_msg)
    logger.error(
        "%s failed after all retry attempts",
        job_name,
        extra={"error": error_msg, "consecutive_failures": consecutive_failures},
    )

    if consecutive_failures >= DEAD_LETTER_THRESHOLD:
        job_tracker.add_to_dead_letter_queue(
            job_name=job_name,
            error=last_error or "Unknown error",
            context=f"Failed {consecutive_failures} consecutive times",
        )
