"""Submit-then-poll driver shared by every long-running provider job."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Protocol

import requests

from .errors import JobTimeout, ProviderFailure, TransientPollError
from .types import Job, JobKind, JobResult, JobState, JobStatus

logger = logging.getLogger(__name__)


class JobBackend(Protocol):
    """Anything that accepts a job request and answers status polls."""

    def submit(self, request: Any) -> str:
        ...

    def poll(self, job_id: str) -> JobStatus:
        ...


class PollingJobClient:
    """Drives one backend through ``submitted -> polling -> terminal``.

    The loop sleeps one interval before every poll and stops after
    ``max_attempts`` polls at the latest, so a backend that never reports a
    terminal state produces :class:`JobTimeout` rather than an endless wait.
    A transport error on a single poll uses up that attempt and the loop goes on.
    """

    def __init__(
        self,
        backend: JobBackend,
        kind: JobKind,
        *,
        poll_interval: float = 5.0,
        max_attempts: int = 60,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if poll_interval < 0:
            raise ValueError("poll_interval must not be negative")
        self._backend = backend
        self._kind = kind
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._sleep = sleep
        self._clock = clock

    @property
    def kind(self) -> JobKind:
        return self._kind

    def submit(self, request: Any) -> Job:
        """Hand the request to the backend and return a fresh job handle."""
        job_id = self._backend.submit(request)
        if not job_id:
            raise ProviderFailure("backend returned no job id")
        logger.info("Submitted %s job %s", self._kind.value, job_id)
        return Job(job_id=job_id, kind=self._kind)

    def await_completion(
        self,
        job: Job,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        deadline: Optional[float] = None,
    ) -> JobResult:
        """Poll ``job`` until it completes, fails, or the budget is spent."""
        interval = self._poll_interval if poll_interval is None else poll_interval
        attempts = self._max_attempts if max_attempts is None else max_attempts
        job.state = JobState.POLLING

        for attempt in range(1, attempts + 1):
            if deadline is not None and self._clock() + interval > deadline:
                job.notes.append(f"run budget exhausted before poll {attempt}")
                break
            self._sleep(interval)
            job.attempts = attempt
            try:
                status = self._backend.poll(job.job_id)
            except (requests.RequestException, TransientPollError) as exc:
                job.notes.append(f"poll {attempt}: transport error {exc}")
                logger.warning("Poll %s/%s for %s job %s failed: %s", attempt, attempts, self._kind.value, job.job_id, exc)
                continue

            job.notes.append(f"poll {attempt}: {status.state.value}")
            logger.debug("%s job %s state %s (%s/%s)", self._kind.value, job.job_id, status.state.value, attempt, attempts)

            if status.state is JobState.COMPLETED:
                if not status.url:
                    job.state = JobState.FAILED
                    raise ProviderFailure("completed without a media URL", job_id=job.job_id)
                job.state = JobState.COMPLETED
                job.result = JobResult(url=status.url, thumbnail_url=status.thumbnail_url)
                logger.info("%s job %s completed: %s", self._kind.value, job.job_id, status.url)
                return job.result
            if status.state is JobState.FAILED:
                job.state = JobState.FAILED
                raise ProviderFailure(status.failure_reason or "unknown", job_id=job.job_id)

        job.state = JobState.TIMED_OUT
        raise JobTimeout(job.job_id, job.attempts)

    def run(self, request: Any, **kwargs: Any) -> JobResult:
        """Submit ``request`` and wait for its result."""
        job = self.submit(request)
        return self.await_completion(job, **kwargs)
