"""Tests for the Pod lifecycle watcher — scripted phases, errors and cancellation."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from k8scc.core.watcher import CancelToken, PodWatcher
from k8scc.errors import ClusterAPIError, WatchCancelledError
from k8scc.models.pods import PodPhase


def scripted(*steps: PodPhase | Exception) -> Callable[[], PodPhase]:
    """fetch_phase returning/raising each step in turn."""
    pending = list(steps)

    def fetch() -> PodPhase:
        step = pending.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    return fetch


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestCancelToken:
    def test_not_cancelled_initially(self):
        assert CancelToken().cancelled is False

    def test_cancel(self):
        token = CancelToken()
        token.cancel()
        assert token.cancelled is True

    def test_deadline(self):
        clock = FakeClock()
        token = CancelToken(5.0, clock=clock)
        assert token.remaining() == 5.0
        clock.now = 5.0
        assert token.cancelled is True
        assert token.remaining() == 0.0

    def test_no_deadline(self):
        assert CancelToken().remaining() is None

    def test_wait_returns_immediately_when_cancelled(self):
        token = CancelToken()
        token.cancel()
        token.wait(60.0)
        assert token.cancelled


class TestPodWatcher:
    def _watcher(self, fetch, sleeps: list[float] | None = None, **kwargs) -> PodWatcher:
        record = sleeps if sleeps is not None else []
        return PodWatcher(
            "peer0-cc-test",
            fetch,
            poll_interval=1.0,
            max_backoff=8.0,
            sleep=record.append,
            **kwargs,
        )

    def test_succeeded(self):
        fetch = scripted(PodPhase.PENDING, PodPhase.RUNNING, PodPhase.SUCCEEDED)
        assert self._watcher(fetch).watch_until_terminal() is True

    def test_failed(self):
        fetch = scripted(PodPhase.PENDING, PodPhase.FAILED)
        assert self._watcher(fetch).watch_until_terminal() is False

    def test_unknown_is_transient(self):
        fetch = scripted(PodPhase.UNKNOWN, PodPhase.RUNNING, PodPhase.SUCCEEDED)
        assert self._watcher(fetch).watch_until_terminal() is True

    def test_polls_between_observations(self):
        sleeps: list[float] = []
        fetch = scripted(PodPhase.PENDING, PodPhase.RUNNING, PodPhase.SUCCEEDED)
        self._watcher(fetch, sleeps).watch_until_terminal()
        assert sleeps == [1.0, 1.0]

    def test_transient_error_retried_with_backoff(self):
        sleeps: list[float] = []
        fetch = scripted(
            ClusterAPIError("get pod", 503, "Service Unavailable"),
            ClusterAPIError("get pod", None, "connection reset"),
            ClusterAPIError("get pod", 429, "Too Many Requests"),
            ClusterAPIError("get pod", 500, "Internal"),
            PodPhase.SUCCEEDED,
        )
        assert self._watcher(fetch, sleeps).watch_until_terminal() is True
        assert sleeps == [2.0, 4.0, 8.0, 8.0]

    def test_backoff_resets_after_success(self):
        sleeps: list[float] = []
        fetch = scripted(
            ClusterAPIError("get pod", 503),
            PodPhase.RUNNING,
            ClusterAPIError("get pod", 503),
            PodPhase.SUCCEEDED,
        )
        self._watcher(fetch, sleeps).watch_until_terminal()
        assert sleeps == [2.0, 1.0, 2.0]

    def test_not_found_before_first_observation_retried(self):
        fetch = scripted(ClusterAPIError("get pod", 404, "Not Found"), PodPhase.SUCCEEDED)
        assert self._watcher(fetch).watch_until_terminal() is True

    def test_not_found_after_observation_is_definitive(self):
        fetch = scripted(PodPhase.RUNNING, ClusterAPIError("get pod", 404, "Not Found"))
        with pytest.raises(ClusterAPIError) as info:
            self._watcher(fetch).watch_until_terminal()
        assert info.value.not_found

    def test_forbidden_is_definitive(self):
        fetch = scripted(ClusterAPIError("get pod", 403, "Forbidden"))
        with pytest.raises(ClusterAPIError):
            self._watcher(fetch).watch_until_terminal()

    def test_cancelled_before_start(self):
        token = CancelToken()
        token.cancel()
        fetch = scripted(PodPhase.SUCCEEDED)
        with pytest.raises(WatchCancelledError):
            self._watcher(fetch, cancel=token).watch_until_terminal()

    def test_cancelled_while_running(self):
        token = CancelToken()
        calls = {"n": 0}

        def fetch() -> PodPhase:
            calls["n"] += 1
            if calls["n"] == 3:
                token.cancel()
            return PodPhase.RUNNING

        with pytest.raises(WatchCancelledError, match="peer0-cc-test"):
            self._watcher(fetch, cancel=token).watch_until_terminal()
        assert calls["n"] == 3

    def test_deadline_expires(self):
        clock = FakeClock()
        token = CancelToken(10.0, clock=clock)

        def advance(seconds: float) -> None:
            clock.now += seconds

        watcher = PodWatcher(
            "peer0-ccbuild-x",
            lambda: PodPhase.PENDING,
            cancel=token,
            poll_interval=3.0,
            sleep=advance,
        )
        with pytest.raises(WatchCancelledError):
            watcher.watch_until_terminal()
        assert clock.now >= 10.0
