"""Tests for retry classification, backoff and cancellation."""

import threading
import time

import pytest

from llmtrans.core.exceptions import BackendError, CancellationRequestedError, RetryExhaustedError
from llmtrans.core.models import RetryPolicy
from llmtrans.translation.executor import CancellationToken, ResilientExecutor, is_retryable_error


class Flaky:
    """Callable failing with the given errors before returning 'ok'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


class TestClassification:
    """Test transient vs fatal classification."""

    @pytest.mark.parametrize("message", [
        "rate limit exceeded",
        "Rate Limit reached for requests",
        "HTTP 429 Too Many Requests",
        "request timeout: read timed out",
        "connection refused",
        "unexpected status code: 503",
        "502 Bad Gateway",
        "API error (status 500): internal",
    ])
    def test_transient(self, message):
        assert is_retryable_error(Exception(message))

    @pytest.mark.parametrize("message", [
        "API error (status 401): invalid api key",
        "API error (status 400): model not found",
        "no choices in response",
    ])
    def test_fatal(self, message):
        assert not is_retryable_error(Exception(message))

    def test_cancellation_is_never_retried(self):
        assert not is_retryable_error(CancellationRequestedError("translation timeout: deadline exceeded"))


class TestRetryPolicy:
    """Test the backoff schedule."""

    def test_doubling_schedule(self):
        assert RetryPolicy(retries=4, base_delay=1.0).delays() == [1.0, 2.0, 4.0, 8.0]

    def test_custom_base(self):
        assert RetryPolicy(retries=3, base_delay=0.5).delays() == [0.5, 1.0, 2.0]

    def test_executor_exposes_schedule(self):
        assert ResilientExecutor(RetryPolicy(retries=2, base_delay=3.0)).delays() == [3.0, 6.0]


class TestResilientExecutor:
    """Test the retry loop."""

    def test_success_first_try(self, recorded_delays):
        fn = Flaky()
        executor = ResilientExecutor(RetryPolicy(retries=3), sleeper=recorded_delays)

        assert executor.execute(fn) == "ok"
        assert fn.calls == 1
        assert recorded_delays.delays == []

    def test_transient_failure_then_success(self, recorded_delays, transient_error):
        fn = Flaky(transient_error)
        executor = ResilientExecutor(RetryPolicy(retries=3, base_delay=1.0), sleeper=recorded_delays)

        assert executor.execute(fn) == "ok"
        assert fn.calls == 2
        assert recorded_delays.delays == [1.0]

    def test_exhaustion_after_all_retries(self, recorded_delays, transient_error):
        fn = Flaky(*[transient_error] * 10)
        executor = ResilientExecutor(RetryPolicy(retries=3, base_delay=1.0), sleeper=recorded_delays)

        with pytest.raises(RetryExhaustedError) as exc_info:
            executor.execute(fn)

        assert fn.calls == 4
        assert recorded_delays.delays == [1.0, 2.0, 4.0]
        assert exc_info.value.retries == 3
        assert exc_info.value.__cause__ is transient_error
        assert "failed after 3 retries" in str(exc_info.value)
        assert "503" in str(exc_info.value)

    def test_fatal_error_is_not_retried(self, recorded_delays, fatal_error):
        fn = Flaky(fatal_error)
        executor = ResilientExecutor(RetryPolicy(retries=3), sleeper=recorded_delays)

        with pytest.raises(BackendError) as exc_info:
            executor.execute(fn)

        assert exc_info.value is fatal_error
        assert fn.calls == 1
        assert recorded_delays.delays == []

    def test_zero_retries_fails_on_first_transient_error(self, recorded_delays, transient_error):
        fn = Flaky(transient_error)
        executor = ResilientExecutor(RetryPolicy(retries=0), sleeper=recorded_delays)

        with pytest.raises(RetryExhaustedError):
            executor.execute(fn)
        assert fn.calls == 1

    def test_cancelled_before_start(self):
        token = CancellationToken()
        token.cancel()
        fn = Flaky()

        with pytest.raises(CancellationRequestedError):
            ResilientExecutor().execute(fn, token)
        assert fn.calls == 0

    def test_cancel_during_backoff(self, transient_error):
        token = CancellationToken()

        def sleeper(seconds, tok):
            tok.cancel()
            return True

        fn = Flaky(transient_error, transient_error)
        executor = ResilientExecutor(RetryPolicy(retries=3), sleeper=sleeper)

        with pytest.raises(CancellationRequestedError):
            executor.execute(fn, token)
        assert fn.calls == 1

    def test_default_wait_is_interruptible(self, transient_error):
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)
        fn = Flaky(transient_error)

        start = time.monotonic()
        timer.start()
        try:
            with pytest.raises(CancellationRequestedError):
                ResilientExecutor(RetryPolicy(retries=1, base_delay=100.0)).execute(fn, token)
        finally:
            timer.cancel()

        assert fn.calls == 1
        assert time.monotonic() - start < 5


class TestCancellationToken:
    """Test the cancellation signal."""

    def test_cancel(self):
        token = CancellationToken()
        assert not token.cancelled
        token.cancel()
        assert token.cancelled
        assert token.wait(10) is True

    def test_wait_without_cancel_returns_false(self):
        assert CancellationToken().wait(0.01) is False

    def test_deadline(self):
        token = CancellationToken.with_timeout(0)
        assert token.cancelled
        with pytest.raises(CancellationRequestedError, match="deadline"):
            token.raise_if_cancelled()

    def test_wait_stops_at_deadline(self):
        token = CancellationToken.with_timeout(0.05)
        start = time.monotonic()
        assert token.wait(10) is True
        assert time.monotonic() - start < 5
