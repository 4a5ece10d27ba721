"""Tests for retry utilities."""

from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from hotel_curator.utils.retry import (
    RetryableStatusError,
    RetryConfig,
    execute_with_retry,
    is_retryable_exception,
)


def _response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("GET", "https://vendor.test/x"))


class TestRetryConfig:
    """Test suite for RetryConfig model."""

    def test_retry_config_defaults(self):
        config = RetryConfig()

        assert config.enabled is False
        assert config.max_attempts == 3
        assert config.min_retry_status == 500

    def test_for_call_disables_unsafe_calls(self):
        """Non-idempotent calls never retry regardless of the retry count."""
        config = RetryConfig.for_call(safe=False, retries=3)

        assert config.enabled is False
        assert config.max_attempts == 4

    def test_for_call_enables_safe_calls(self):
        config = RetryConfig.for_call(safe=True, retries=2, backoff_factor=0, jitter=0)

        assert config.enabled is True
        assert config.max_attempts == 3
        assert config.backoff_factor == 0

    def test_for_call_with_zero_retries_is_single_attempt(self):
        config = RetryConfig.for_call(safe=True, retries=0)

        assert config.enabled is False
        assert config.max_attempts == 1

    def test_retry_config_validation(self):
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)
        with pytest.raises(ValueError):
            RetryConfig(jitter=-0.5)
        with pytest.raises(ValueError):
            RetryConfig(min_retry_status=399)

    def test_should_retry_response_only_for_server_errors(self):
        config = RetryConfig()

        assert config.should_retry_response(_response(503)) is True
        assert config.should_retry_response(_response(404)) is False
        assert config.should_retry_response(_response(200)) is False


class TestRetryableExceptions:
    def test_status_error_is_retryable(self):
        mock_response = Mock(spec=httpx.Response)
        mock_response.status_code = 502

        error = RetryableStatusError(mock_response)

        assert "Retryable HTTP status 502" in str(error)
        assert is_retryable_exception(error) is True

    def test_client_timeouts_are_not_retried(self):
        assert is_retryable_exception(httpx.ReadTimeout("slow")) is False

    def test_connection_errors_are_retried(self):
        assert is_retryable_exception(httpx.ConnectError("refused")) is True

    def test_unrelated_errors_are_not_retried(self):
        assert is_retryable_exception(ValueError("nope")) is False


class TestExecuteWithRetry:
    @pytest.mark.asyncio
    async def test_disabled_config_calls_once(self):
        send = AsyncMock(return_value=_response(503))

        response = await execute_with_retry(send, retry_config=RetryConfig(enabled=False))

        assert response.status_code == 503
        send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_retries_server_errors_until_success(self):
        send = AsyncMock(side_effect=[_response(502), _response(503), _response(200)])
        on_retry = Mock()
        config = RetryConfig(enabled=True, max_attempts=3, backoff_factor=0, jitter=0)

        response = await execute_with_retry(send, retry_config=config, on_retry=on_retry)

        assert response.status_code == 200
        assert send.await_count == 3
        assert on_retry.call_count == 2

    @pytest.mark.asyncio
    async def test_returns_last_server_error_when_attempts_exhausted(self):
        send = AsyncMock(return_value=_response(500))
        config = RetryConfig(enabled=True, max_attempts=2, backoff_factor=0, jitter=0)

        response = await execute_with_retry(send, retry_config=config)

        assert response.status_code == 500
        assert send.await_count == 2

    @pytest.mark.asyncio
    async def test_client_errors_are_returned_without_retry(self):
        send = AsyncMock(return_value=_response(400))
        config = RetryConfig(enabled=True, max_attempts=3, backoff_factor=0, jitter=0)

        response = await execute_with_retry(send, retry_config=config)

        assert response.status_code == 400
        send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_timeouts_propagate_after_one_attempt(self):
        send = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        config = RetryConfig(enabled=True, max_attempts=3, backoff_factor=0, jitter=0)

        with pytest.raises(httpx.ReadTimeout):
            await execute_with_retry(send, retry_config=config)

        send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_transport_errors_reraise_after_exhaustion(self):
        send = AsyncMock(side_effect=httpx.ConnectError("refused"))
        config = RetryConfig(enabled=True, max_attempts=2, backoff_factor=0, jitter=0)

        with pytest.raises(httpx.ConnectError):
            await execute_with_retry(send, retry_config=config)

        assert send.await_count == 2
