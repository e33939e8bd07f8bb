"""Error taxonomy shared by the chaining pipeline and its service clients."""

from __future__ import annotations

from typing import List, Tuple


class CVGenError(Exception):
    """Root of every error raised by the package."""


class ProviderFailure(CVGenError, RuntimeError):
    """A backend reported a terminal failure state for a job."""

    def __init__(self, reason: str, *, job_id: str | None = None) -> None:
        self.reason = reason
        self.job_id = job_id
        label = f"job {job_id}" if job_id else "job"
        super().__init__(f"{label} failed: {reason}")


class JobTimeout(CVGenError, TimeoutError):
    """A job never reached a terminal state within its poll budget."""

    def __init__(self, job_id: str, attempts: int) -> None:
        self.job_id = job_id
        self.attempts = attempts
        super().__init__(f"job {job_id} not finished after {attempts} polls")


class TransientPollError(CVGenError):
    """A single poll could not be answered; the next tick may succeed."""


class SynthesisFailed(CVGenError, RuntimeError):
    """An image or video could not be synthesized."""

    def __init__(self, message: str, *, timed_out: bool = False) -> None:
        self.timed_out = timed_out
        super().__init__(message)


class UnsupportedDuration(CVGenError, ValueError):
    """A segment length outside the provider's two discrete values."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"unsupported segment duration: {value!r} (expected 5s or 9s)")


class HostingError(CVGenError):
    """One hosting strategy could not produce a usable URL."""


class FallbackExhausted(CVGenError):
    """Every strategy of a first-success chain failed."""

    def __init__(self, failures: List[Tuple[str, BaseException]]) -> None:
        self.failures = failures
        detail = "; ".join(f"{name}: {error}" for name, error in failures) or "no strategies"
        super().__init__(f"all strategies failed ({detail})")


class HostingExhausted(FallbackExhausted):
    """No hosting strategy could make an image reachable by the video backend."""


class PredictionDegraded(CVGenError):
    """Vision analysis failed and a generic motion description was substituted."""
