"""Behaviour of the shared submit-then-poll driver."""

from __future__ import annotations

import unittest

import requests

from cvgen.errors import JobTimeout, ProviderFailure, TransientPollError
from cvgen.polling import PollingJobClient
from cvgen.types import JobKind, JobState, JobStatus

from fakes import ScriptedBackend


class RecordingSleep:
    def __init__(self) -> None:
        self.calls = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class PollingJobClientTest(unittest.TestCase):
    def _client(self, backend, **kwargs) -> PollingJobClient:
        kwargs.setdefault("sleep", RecordingSleep())
        return PollingJobClient(backend, JobKind.VIDEO, poll_interval=2.0, max_attempts=4, **kwargs)

    def test_returns_result_once_completed(self) -> None:
        backend = ScriptedBackend(
            [
                JobStatus(state=JobState.POLLING),
                JobStatus(state=JobState.COMPLETED, url="https://x.test/v.mp4", thumbnail_url="https://x.test/t.png"),
            ]
        )
        sleep = RecordingSleep()
        client = self._client(backend, sleep=sleep)
        job = client.submit({"prompt": "waves"})

        result = client.await_completion(job)

        self.assertEqual(result.url, "https://x.test/v.mp4")
        self.assertEqual(result.thumbnail_url, "https://x.test/t.png")
        self.assertIs(job.state, JobState.COMPLETED)
        self.assertEqual(job.attempts, 2)
        self.assertEqual(sleep.calls, [2.0, 2.0])

    def test_never_terminal_backend_times_out_after_max_attempts(self) -> None:
        backend = ScriptedBackend([JobStatus(state=JobState.POLLING)])
        client = self._client(backend)
        job = client.submit("request")

        with self.assertRaises(JobTimeout) as ctx:
            client.await_completion(job)

        self.assertEqual(backend.polls, 4)
        self.assertEqual(ctx.exception.attempts, 4)
        self.assertIs(job.state, JobState.TIMED_OUT)

    def test_timeout_is_distinct_from_provider_failure(self) -> None:
        self.assertFalse(issubclass(JobTimeout, ProviderFailure))
        self.assertFalse(issubclass(ProviderFailure, JobTimeout))

    def test_provider_failure_carries_reason(self) -> None:
        backend = ScriptedBackend([JobStatus(state=JobState.FAILED, failure_reason="nsfw filter")])
        client = self._client(backend)
        job = client.submit("request")

        with self.assertRaises(ProviderFailure) as ctx:
            client.await_completion(job)

        self.assertEqual(ctx.exception.reason, "nsfw filter")
        self.assertEqual(ctx.exception.job_id, "job-1")
        self.assertIs(job.state, JobState.FAILED)
        self.assertEqual(backend.polls, 1)

    def test_completed_without_url_is_a_failure(self) -> None:
        backend = ScriptedBackend([JobStatus(state=JobState.COMPLETED)])
        client = self._client(backend)

        with self.assertRaises(ProviderFailure):
            client.run("request")

    def test_transient_errors_consume_attempts_but_do_not_abort(self) -> None:
        backend = ScriptedBackend(
            [
                requests.ConnectionError("reset"),
                TransientPollError("502"),
                JobStatus(state=JobState.COMPLETED, url="https://x.test/i.png"),
            ]
        )
        client = self._client(backend)
        job = client.submit("request")

        result = client.await_completion(job)

        self.assertEqual(result.url, "https://x.test/i.png")
        self.assertEqual(job.attempts, 3)
        self.assertTrue(any("transport error" in note for note in job.notes))

    def test_transient_errors_alone_still_time_out(self) -> None:
        backend = ScriptedBackend([requests.Timeout("slow")])
        client = self._client(backend)

        with self.assertRaises(JobTimeout):
            client.run("request")
        self.assertEqual(backend.polls, 4)

    def test_deadline_stops_polling_early(self) -> None:
        backend = ScriptedBackend([JobStatus(state=JobState.POLLING)])
        now = [100.0]

        def sleep(seconds: float) -> None:
            now[0] += seconds

        client = self._client(backend, sleep=sleep, clock=lambda: now[0])
        job = client.submit("request")

        with self.assertRaises(JobTimeout):
            client.await_completion(job, deadline=105.0)

        self.assertEqual(backend.polls, 2)
        self.assertIn("run budget exhausted before poll 3", job.notes)

    def test_missing_job_id_is_rejected(self) -> None:
        client = self._client(ScriptedBackend([JobStatus(state=JobState.POLLING)], job_id=""))
        with self.assertRaises(ProviderFailure):
            client.submit("request")

    def test_invalid_budget_is_rejected(self) -> None:
        backend = ScriptedBackend([JobStatus(state=JobState.POLLING)])
        with self.assertRaises(ValueError):
            PollingJobClient(backend, JobKind.IMAGE, max_attempts=0)
        with self.assertRaises(ValueError):
            PollingJobClient(backend, JobKind.IMAGE, poll_interval=-1)


if __name__ == "__main__":
    unittest.main()
