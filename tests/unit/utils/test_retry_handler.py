"""Tests unitarios para la política de reintentos."""

import pytest

from orderflow.core.config import Settings
from orderflow.utils.error_handler import DecodeException, StoreUnavailableException, ValidationException
from orderflow.utils.retry_handler import RetryPolicy, create_consumer_retry_policy


class TestCalculateDelay:
    """Backoff exponencial con tope."""

    def test_delay_doubles_until_cap(self):
        policy = RetryPolicy(max_attempts=15, base_delay=1.0, max_delay=15.0)

        delays = [policy.calculate_delay(attempt) for attempt in range(1, 8)]

        assert delays == [1.0, 2.0, 4.0, 8.0, 15.0, 15.0, 15.0]

    def test_delays_are_non_decreasing_and_capped(self):
        policy = RetryPolicy(max_attempts=30, base_delay=0.5, max_delay=7.0)

        delays = [policy.calculate_delay(attempt) for attempt in range(1, 30)]

        assert delays == sorted(delays)
        assert max(delays) == 7.0

    def test_jitter_never_exceeds_max_delay(self):
        policy = RetryPolicy(base_delay=10.0, max_delay=10.0, jitter=True)

        assert all(0 <= policy.calculate_delay(attempt) <= 10.0 for attempt in range(1, 20))


class TestShouldRetry:
    """Decisión de reintento."""

    def test_retries_until_max_attempts(self):
        policy = RetryPolicy(max_attempts=3)
        error = StoreUnavailableException("db down")

        assert policy.should_retry(error, 1) is True
        assert policy.should_retry(error, 2) is True
        assert policy.should_retry(error, 3) is False

    def test_stop_on_exceptions_are_not_retried(self):
        policy = RetryPolicy(max_attempts=5, stop_on=[ValidationException])

        assert policy.should_retry(ValidationException("bad", field="x"), 1) is False

    def test_single_attempt_policy_never_retries(self):
        policy = RetryPolicy(max_attempts=1)

        assert policy.should_retry(RuntimeError("boom"), 1) is False

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestConsumerRetryPolicy:
    """Política construida desde settings."""

    def test_uses_settings(self):
        settings = Settings(
            _env_file=None,
            CONSUMER_RETRY_MAX_ATTEMPTS=4,
            CONSUMER_RETRY_BASE_DELAY_SECONDS=0.5,
            CONSUMER_RETRY_MAX_DELAY_SECONDS=2.0,
        )

        policy = create_consumer_retry_policy(settings)

        assert policy.max_attempts == 4
        assert [policy.calculate_delay(a) for a in range(1, 5)] == [0.5, 1.0, 2.0, 2.0]

    def test_poison_errors_stop_immediately(self):
        policy = create_consumer_retry_policy(Settings(_env_file=None))

        assert policy.should_retry(DecodeException("bad json"), 1) is False
        assert policy.should_retry(RuntimeError("transient"), 1) is True
