"""
Request pacing and retry/backoff policies.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, Protocol

from rtm_client.exceptions import RateLimitedError, RequestTimeoutError, TransportError

logger = logging.getLogger(__name__)

MIN_REQUEST_INTERVAL = 1.0
DEFAULT_TIMEOUT = 180.0
MAX_RETRIES = 3
TIMELINE_TIMEOUT = 10.0
TIMELINE_ATTEMPTS = 3


class SleepStrategy(Protocol):
    """Strategy responsible for sleeping/backing off."""

    def __call__(self, seconds: float) -> None:
        raise NotImplementedError


class Clock(Protocol):
    def __call__(self) -> float:
        raise NotImplementedError


@dataclass(slots=True)
class RetryPolicy:
    """
    Declarative retry rule used by the HTTP client.

    Attributes:
        max_attempts: Total number of attempts, including the first one
        backoff: Seconds to wait after failed attempt ``n`` (counted from 0)
        retry_on: Exception types that trigger another attempt
        timeout: Per-attempt timeout in seconds
    """

    max_attempts: int
    backoff: Callable[[int], float]
    retry_on: tuple[type[Exception], ...]
    timeout: float = DEFAULT_TIMEOUT

    def calculate_delay(self, attempt: int) -> float:
        return max(float(self.backoff(attempt)), 0.0)

    def should_retry(self, exc: Exception, attempt: int) -> bool:
        return attempt + 1 < self.max_attempts and isinstance(exc, self.retry_on)


def default_policy(timeout: float = DEFAULT_TIMEOUT) -> RetryPolicy:
    """Retry only on HTTP 503, waiting 2s, 3s, 4s between attempts."""

    return RetryPolicy(
        max_attempts=MAX_RETRIES + 1,
        backoff=lambda attempt: attempt + 2,
        retry_on=(RateLimitedError,),
        timeout=timeout,
    )


def timeline_policy(timeout: float = TIMELINE_TIMEOUT) -> RetryPolicy:
    """Short-timeout policy for timeline creation, waiting 1s then 2s."""

    return RetryPolicy(
        max_attempts=TIMELINE_ATTEMPTS,
        backoff=lambda attempt: attempt + 1,
        retry_on=(RateLimitedError, RequestTimeoutError, TransportError),
        timeout=timeout,
    )


@dataclass(slots=True)
class RequestThrottle:
    """
    Enforces a minimum spacing between requests issued by one client.

    ``wait`` claims the request slot and blocks until ``min_interval`` seconds
    have passed since the previous request finished. The slot stays claimed
    until ``mark_complete``, so concurrent callers take turns instead of
    overlapping.
    """

    min_interval: float = MIN_REQUEST_INTERVAL
    clock: Clock = field(default=time.monotonic)
    sleep: SleepStrategy = field(default=time.sleep)
    _last_request: float | None = field(default=None, init=False)
    _slot: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def wait(self) -> None:
        self._slot.acquire()
        try:
            if self._last_request is not None:
                remaining = self._last_request + self.min_interval - self.clock()
                if remaining > 0:
                    logger.debug("Throttling request for %.3fs", remaining)
                    self.sleep(remaining)
            self._last_request = self.clock()
        except BaseException:
            self._slot.release()
            raise

    def mark_complete(self) -> None:
        self._last_request = self.clock()
        if self._slot.locked():
            self._slot.release()

    @contextmanager
    def request_slot(self) -> Iterator[None]:
        """Hold the request slot for the duration of one network call."""

        self.wait()
        try:
            yield
        finally:
            self.mark_complete()
