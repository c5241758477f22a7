"""
Resilient execution of backend calls.

Wraps a single backend call with retry classification and exponential
backoff. Backoff waits go through a CancellationToken so an external cancel
(or deadline) preempts a pending retry instead of sleeping it out.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional, TypeVar

from llmtrans.core.exceptions import CancellationRequestedError, RetryExhaustedError
from llmtrans.core.models import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_MARKERS = (
    "rate limit",
    "429",
    "timeout",
    "connection",
    "503",
    "502",
    "500",
)


def is_retryable_error(error: BaseException) -> bool:
    """Classify an error by its message: transient (retry) or fatal."""
    if isinstance(error, CancellationRequestedError):
        return False
    message = str(error).lower()
    return any(marker in message for marker in RETRYABLE_MARKERS)


class CancellationToken:
    """Cooperative cancellation signal shared by one translation call."""

    def __init__(self, deadline: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = deadline

    @classmethod
    def with_timeout(cls, seconds: float) -> CancellationToken:
        """Token that reports cancellation once ``seconds`` have elapsed."""
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationRequestedError()
        if self.cancelled:
            raise CancellationRequestedError("translation timeout: deadline exceeded")

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True if cancelled meanwhile."""
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(remaining)
            return True
        return self._event.wait(seconds)


class ResilientExecutor:
    """
    Runs a backend call with bounded, classified retries.

    Attempt 0 runs immediately. A retryable failure is followed by up to
    ``policy.retries`` more attempts, the k-th one preceded by a wait of
    ``base_delay * 2 ** (k - 1)`` seconds. Fatal failures are re-raised
    unchanged; exhausting the budget raises RetryExhaustedError chained to the
    last failure.

    Cancellation is checked before each attempt and during backoff waits; a
    call already in progress is not interrupted. HTTP calls made through the
    pipeline's client are bounded by the token's deadline instead (see
    ``network.transport.deadline_hook``). CLI backends keep their own
    subprocess timeout.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleeper: Optional[Callable[[float, CancellationToken], bool]] = None
    ):
        """
        Args:
            policy: Retry budget and backoff schedule
            sleeper: Replacement for the interruptible wait, called with
                (seconds, token) and returning True when cancelled. Tests
                use it to record delays without sleeping.
        """
        self.policy = policy or RetryPolicy()
        self._sleeper = sleeper or (lambda seconds, token: token.wait(seconds))

    def delays(self) -> List[float]:
        """Planned backoff delays before retry 1..N."""
        return self.policy.delays()

    def execute(self, fn: Callable[[], T], cancel_token: Optional[CancellationToken] = None) -> T:
        token = cancel_token or CancellationToken()
        last_error: Optional[Exception] = None

        for attempt in range(self.policy.retries + 1):
            if attempt > 0:
                delay = self.policy.delay_for(attempt)
                logger.info(f"Retrying after {delay:.1f}s (attempt {attempt}/{self.policy.retries})...")
                if self._sleeper(delay, token):
                    token.raise_if_cancelled()
                    raise CancellationRequestedError()

            token.raise_if_cancelled()

            try:
                return fn()
            except CancellationRequestedError:
                raise
            except Exception as e:
                if token.cancelled:
                    raise CancellationRequestedError() from e
                if not is_retryable_error(e):
                    raise
                last_error = e
                logger.warning(f"Request failed: {e}")

        raise RetryExhaustedError(self.policy.retries, last_error) from last_error
