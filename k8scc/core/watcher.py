"""Pod lifecycle watcher.

Polls a Pod's phase until it is terminal::

    Pending -> Running -> {Succeeded, Failed}

``Unknown`` is treated as a transient observation. The loop has three
external effects, all injected so it can be driven by a scripted sequence of
phases and errors:

1. ``fetch_phase()`` — read the current phase (may raise ``ClusterAPIError``)
2. ``sleep(seconds)`` — wait between polls / back off after an error
3. ``cancel.cancelled`` — check the caller's cancellation and deadline
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from k8scc.errors import ClusterAPIError, WatchCancelledError
from k8scc.models.pods import TERMINAL_PHASES, PodPhase

logger = logging.getLogger(__name__)


class CancelToken:
    """Cancellation signal with an optional deadline.

    Parameters
    ----------
    timeout:
        Seconds from construction after which the token reports cancelled.
        ``None`` means no deadline.
    clock:
        Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        timeout: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._event = threading.Event()
        self._clock = clock
        self._deadline = clock() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and self._clock() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def wait(self, seconds: float) -> None:
        """Sleep up to *seconds*, returning early on cancel or deadline."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(seconds)


class PodWatcher:
    """Blocks until a Pod reaches a terminal phase.

    Parameters
    ----------
    pod_name:
        Name used in log lines and errors.
    fetch_phase:
        Returns the Pod's current phase.
    cancel:
        Cancellation token; a fresh, never-cancelled one if omitted.
    poll_interval:
        Seconds between successful polls.
    max_backoff:
        Upper bound for the exponential back-off after transient errors.
    sleep:
        Wait function; defaults to ``cancel.wait``.
    """

    def __init__(
        self,
        pod_name: str,
        fetch_phase: Callable[[], PodPhase],
        *,
        cancel: CancelToken | None = None,
        poll_interval: float = 2.0,
        max_backoff: float = 30.0,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._pod_name = pod_name
        self._fetch_phase = fetch_phase
        self._cancel = cancel or CancelToken()
        self._poll_interval = poll_interval
        self._max_backoff = max_backoff
        self._sleep = sleep or self._cancel.wait

    def _backoff(self, failures: int) -> float:
        return min(self._poll_interval * (2 ** failures), self._max_backoff)

    def watch_until_terminal(self) -> bool:
        """Return True on Succeeded, False on Failed.

        Raises
        ------
        WatchCancelledError
            If cancelled or past the deadline before a terminal phase.
        ClusterAPIError
            On a definitive API error, including the Pod vanishing after it
            has been observed.
        """
        observed = False
        failures = 0
        last_phase: PodPhase | None = None

        while True:
            if self._cancel.cancelled:
                raise WatchCancelledError(self._pod_name)

            try:
                phase = self._fetch_phase()
            except ClusterAPIError as exc:
                # Not-found right after creation is an eventual-consistency blip.
                retryable = exc.transient or (exc.not_found and not observed)
                if not retryable:
                    raise
                failures += 1
                delay = self._backoff(failures)
                logger.warning(
                    "Pod %s: transient API error (%s), retrying in %.1fs",
                    self._pod_name,
                    exc,
                    delay,
                )
                self._sleep(delay)
                continue

            observed = True
            failures = 0
            if phase != last_phase:
                logger.info("Pod %s phase=%s", self._pod_name, phase.value)
                last_phase = phase

            if phase in TERMINAL_PHASES:
                return phase == PodPhase.SUCCEEDED

            self._sleep(self._poll_interval)
