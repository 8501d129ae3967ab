"""Backoff policy and retry wrapper for upstream fetches."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from f1ledger.exceptions import (
    FetchInterruptedError,
    RateLimitedError,
    TransientUpstreamError,
    UpstreamFatalError,
)

logger = logging.getLogger(__name__)


class Sleeper(Protocol):
    def __call__(self, seconds: float) -> None: ...


def blocking_sleep(seconds: float) -> None:
    time.sleep(seconds)


class EventSleeper:
    """Sleeper that aborts as soon as ``stop_event`` is set.

    A wait cut short raises FetchInterruptedError so the caller abandons the
    fetch instead of retrying it against a worker that is shutting down.
    """

    def __init__(self, stop_event: threading.Event) -> None:
        self._stop_event = stop_event

    def __call__(self, seconds: float) -> None:
        if self._stop_event.wait(seconds):
            raise FetchInterruptedError("Backoff wait interrupted by shutdown")


@dataclass(frozen=True)
class BackoffPolicy:
    """How long and how often a failed upstream call is reattempted.

    Usage:
        policy = BackoffPolicy(base_delay=60.0)
        policy.next_delay(60.0, rate_limited=True)   # 120.0
        policy.next_delay(60.0, rate_limited=False)  # 90.0
    """

    base_delay: float
    max_retries: int = 5
    rate_limit_multiplier: float = 2.0
    transient_multiplier: float = 1.5

    def next_delay(self, current: float, rate_limited: bool) -> float:
        factor = self.rate_limit_multiplier if rate_limited else self.transient_multiplier
        return current * factor


def retry_call[T](
    fn: Callable[[], T],
    policy: BackoffPolicy,
    sleep: Sleeper = blocking_sleep,
    context: str = "upstream call",
) -> T:
    """Call ``fn`` until it succeeds or the policy gives up.

    RateLimitedError and TransientUpstreamError are retried; anything else
    (including UpstreamFatalError and FetchInterruptedError) propagates
    immediately.

    Raises:
        UpstreamFatalError: once ``policy.max_retries`` retries have failed.
    """
    delay = policy.base_delay
    retries = 0
    while True:
        try:
            return fn()
        except (RateLimitedError, TransientUpstreamError) as exc:
            if retries >= policy.max_retries:
                logger.error(
                    "Giving up on %s after %d retries: %s", context, retries, exc,
                )
                raise UpstreamFatalError(
                    f"{context} failed after {retries} retries: {exc}"
                ) from exc
            retries += 1
            rate_limited = isinstance(exc, RateLimitedError)
            logger.warning(
                "%s for %s. Retry %d/%d in %.1fs",
                "Rate limited" if rate_limited else f"Transient error ({exc})",
                context, retries, policy.max_retries, delay,
            )
            sleep(delay)
            delay = policy.next_delay(delay, rate_limited)
