"""Bounded readiness polling with a fixed backoff schedule.

Cloud state transitions complete after the request that triggered them
returns, so every workflow waits through this module. A predicate reports
whether the caller is still waiting; it is re-evaluated after each backoff
step (2s, 5s, 10s, 15s, then 15s forever) until it is satisfied or the hard
deadline passes. The final sleep is truncated to the remaining budget so a
wait never overruns its deadline by more than one predicate evaluation.

Predicates raise ``ConductorFatalStateError`` to abort immediately; that
error is never retried.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from core.constants import TIMEOUT_BACKOFF_SECONDS
from core.errors import ConductorTimeoutError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)

StillWaiting = Callable[[], bool]


@dataclass(frozen=True)
class BackoffPoller:
    """Deadline-bounded poller.

    Attributes:
        backoff_seconds: Sleep schedule; the last value repeats.
        sleep: Blocking sleep function.
        clock: Monotonic clock in seconds.
    """

    backoff_seconds: tuple[float, ...] = TIMEOUT_BACKOFF_SECONDS
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic

    def wait_until_satisfied(
        self,
        still_waiting: StillWaiting,
        timeout_seconds: float,
        on_timeout: str,
    ) -> int:
        """Block until ``still_waiting`` returns False.

        Args:
            still_waiting: Predicate returning True while the condition is unmet.
            timeout_seconds: Hard deadline measured from this call.
            on_timeout: Message carried by the timeout error.

        Returns:
            Number of sleeps performed.

        Raises:
            ConductorTimeoutError: If the deadline elapses first.
            ConductorFatalStateError: Propagated unchanged from the predicate.
        """
        deadline = self.clock() + timeout_seconds
        sleeps = 0
        while still_waiting():
            remaining = deadline - self.clock()
            if remaining <= 0:
                raise ConductorTimeoutError(on_timeout)
            delay = min(self.delay_for(sleeps), remaining)
            _LOGGER.debug("poll_waiting", attempt=sleeps + 1, delay_seconds=delay)
            self.sleep(delay)
            sleeps += 1
            if self.clock() >= deadline:
                raise ConductorTimeoutError(on_timeout)
        return sleeps

    def delay_for(self, attempt: int) -> float:
        """Return the backoff delay for a zero-based attempt index."""
        if attempt < len(self.backoff_seconds):
            return self.backoff_seconds[attempt]
        return self.backoff_seconds[-1]


def wait_until_satisfied(
    still_waiting: StillWaiting,
    timeout_seconds: float,
    on_timeout: str,
) -> int:
    """Wait using the default backoff schedule and real clock."""
    return BackoffPoller().wait_until_satisfied(still_waiting, timeout_seconds, on_timeout)
