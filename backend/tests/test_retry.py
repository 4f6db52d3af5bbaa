"""
Tests for retry with exponential backoff.
"""

from types import SimpleNamespace

import pytest

from utils.error_handlers import (
    ExternalServiceError,
    InvalidResponseError,
    ProcessingError,
    ValidationError,
)
from utils.retry import (
    RetryOptions,
    calculate_backoff_delay,
    get_status_code,
    is_rate_limit_or_server_error,
    is_retryable_error,
    with_retry,
)


def fast_options(**kwargs) -> RetryOptions:
    kwargs.setdefault("initial_delay", 0.001)
    kwargs.setdefault("max_delay", 0.005)
    return RetryOptions(**kwargs)


class FlakyOperation:
    """Fails with the given errors in turn, then returns 'ok'"""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


class TestBackoff:

    def test_delays_double_and_cap(self):
        options = RetryOptions(initial_delay=1.0, max_delay=8.0, backoff_multiplier=2.0)
        delays = [calculate_backoff_delay(attempt, options) for attempt in range(1, 6)]
        assert delays == [1.0, 2.0, 4.0, 8.0, 8.0]

    def test_custom_multiplier(self):
        options = RetryOptions(initial_delay=0.5, max_delay=100.0, backoff_multiplier=3.0)
        assert calculate_backoff_delay(3, options) == pytest.approx(4.5)


class TestStatusClassification:

    def test_upstream_status_wins(self):
        error = ExternalServiceError("bad gateway", upstream_status=503)
        assert get_status_code(error) == 503

    def test_app_error_http_status_is_ignored(self):
        # 500 is how we'd render it, not what the upstream said
        assert get_status_code(ProcessingError("boom")) is None

    def test_foreign_status_attributes(self):
        assert get_status_code(SimpleNamespace(status_code=429)) == 429
        assert get_status_code(SimpleNamespace(status=502)) == 502
        assert get_status_code(SimpleNamespace(response=SimpleNamespace(status_code=500))) == 500
        assert get_status_code(ValueError("no status")) is None

    def test_default_predicate(self):
        assert is_retryable_error(ExternalServiceError("x", upstream_status=429))
        assert is_retryable_error(ExternalServiceError("x", upstream_status=500))
        assert not is_retryable_error(ExternalServiceError("x", upstream_status=400))
        assert not is_retryable_error(ExternalServiceError("x", upstream_status=404))
        # No status: follow the error's own flag, unknown errors retry
        assert is_retryable_error(ExternalServiceError("network down"))
        assert not is_retryable_error(InvalidResponseError("not json"))
        assert not is_retryable_error(ValidationError("bad input"))
        assert is_retryable_error(ConnectionResetError())

    def test_rate_limit_or_server_predicate(self):
        assert is_rate_limit_or_server_error(ExternalServiceError("x", upstream_status=429))
        assert is_rate_limit_or_server_error(ExternalServiceError("x", upstream_status=599))
        assert not is_rate_limit_or_server_error(ExternalServiceError("x", upstream_status=401))
        assert not is_rate_limit_or_server_error(ExternalServiceError("network down"))
        assert not is_rate_limit_or_server_error(ValueError("boom"))


class TestWithRetry:

    @pytest.mark.asyncio
    async def test_first_attempt_success(self):
        operation = FlakyOperation()
        assert await with_retry(operation, fast_options()) == "ok"
        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self):
        operation = FlakyOperation(
            ExternalServiceError("unavailable", upstream_status=503),
            ExternalServiceError("rate limited", upstream_status=429),
        )
        assert await with_retry(operation, fast_options(max_attempts=3)) == "ok"
        assert operation.calls == 3

    @pytest.mark.asyncio
    async def test_exhausted_attempts_reraise_last_error_unchanged(self):
        first = ExternalServiceError("first", upstream_status=503)
        last = ExternalServiceError("last", upstream_status=503)
        operation = FlakyOperation(first, last, ExternalServiceError("unused", upstream_status=503))

        with pytest.raises(ExternalServiceError) as exc_info:
            await with_retry(operation, fast_options(max_attempts=2))

        assert exc_info.value is last
        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_non_retryable_error_fails_immediately(self):
        error = ExternalServiceError("unauthorized", upstream_status=401)
        operation = FlakyOperation(error)

        with pytest.raises(ExternalServiceError) as exc_info:
            await with_retry(operation, fast_options(max_attempts=5))

        assert exc_info.value is error
        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_custom_predicate(self):
        operation = FlakyOperation(ValueError("network"), ValueError("network"))

        with pytest.raises(ValueError):
            await with_retry(
                operation,
                fast_options(max_attempts=3, retry_predicate=is_rate_limit_or_server_error)
            )
        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_single_attempt_never_retries(self):
        operation = FlakyOperation(ExternalServiceError("x", upstream_status=503))
        with pytest.raises(ExternalServiceError):
            await with_retry(operation, fast_options(max_attempts=1))
        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_invalid_attempt_count(self):
        with pytest.raises(ValueError):
            await with_retry(FlakyOperation(), RetryOptions(max_attempts=0))
