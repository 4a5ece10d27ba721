"""Async retry utilities for idempotent vendor calls."""

from __future__ import annotations

import logging
import random
from collections.abc import Awaitable, Callable
from typing import cast

import httpx
from pydantic import BaseModel, ConfigDict, Field
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
)

logger = logging.getLogger(__name__)


class RetryableStatusError(Exception):
    """Internal exception used to signal retryable HTTP status codes."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"Retryable HTTP status {response.status_code}")
        self.response = response


class RetryConfig(BaseModel):
    """Configuration object describing HTTP retry behaviour."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    max_attempts: int = Field(default=3, ge=1)
    backoff_factor: float = Field(default=0.2, ge=0)
    max_backoff: float | None = Field(default=5.0, gt=0)
    jitter: float = Field(default=0.05, ge=0)
    min_retry_status: int = Field(default=500, ge=400, le=599)

    @classmethod
    def for_call(
        cls,
        *,
        safe: bool,
        retries: int,
        backoff_factor: float = 0.2,
        jitter: float = 0.05,
    ) -> RetryConfig:
        """Build the policy for one vendor call; unsafe calls never retry."""

        return cls(
            enabled=safe and retries > 0,
            max_attempts=max(retries, 0) + 1,
            backoff_factor=backoff_factor,
            jitter=jitter,
        )

    def should_retry_response(self, response: httpx.Response) -> bool:
        """Return True when the HTTP response warrants a retry."""

        return response.status_code >= self.min_retry_status


def is_retryable_exception(exc: BaseException) -> bool:
    """Retry 5xx responses and transport failures that produced no status.

    Client-side timeouts are surfaced immediately as timeouts.
    """

    if isinstance(exc, RetryableStatusError):
        return True
    if isinstance(exc, httpx.TimeoutException):
        return False
    return isinstance(exc, httpx.TransportError)


def _wait_strategy(config: RetryConfig) -> Callable[[RetryCallState], float]:
    def _wait(retry_state: RetryCallState) -> float:
        attempt_number = max(retry_state.attempt_number, 1)
        delay = config.backoff_factor * (2 ** (attempt_number - 1))
        if config.max_backoff is not None:
            delay = min(delay, config.max_backoff)
        if config.jitter > 0:
            delay += random.uniform(0, config.jitter)
        return max(delay, 0.0)

    return _wait


def _retry_error_callback(retry_state: RetryCallState) -> httpx.Response:
    outcome = retry_state.outcome
    if outcome is None:  # pragma: no cover - defensive
        raise RuntimeError("Retry attempt completed without outcome")
    if outcome.failed:
        exception = outcome.exception()
        if isinstance(exception, RetryableStatusError):
            return exception.response
        if exception is None:  # pragma: no cover - defensive
            raise RuntimeError("Retry attempt raised an unknown exception")
        raise exception
    return cast(httpx.Response, outcome.result())


async def execute_with_retry(
    send: Callable[[], Awaitable[httpx.Response]],
    *,
    retry_config: RetryConfig,
    log: logging.Logger | logging.LoggerAdapter | None = None,
    on_retry: Callable[[RetryCallState], None] | None = None,
) -> httpx.Response:
    """Execute an HTTP request with retries according to the provided configuration.

    The final 5xx response is returned (not raised) once attempts are exhausted
    so callers can classify it; transport errors are re-raised.
    """

    if not retry_config.enabled or retry_config.max_attempts <= 1:
        return await send()

    logger_to_use = log or logger
    if isinstance(logger_to_use, logging.LoggerAdapter):
        sleep_logger = cast(logging.Logger, logger_to_use.logger)
    else:
        sleep_logger = logger_to_use
    log_before_sleep = before_sleep_log(sleep_logger, logging.WARNING)

    def _before_sleep(retry_state: RetryCallState) -> None:
        log_before_sleep(retry_state)
        if on_retry is not None:
            on_retry(retry_state)

    response: httpx.Response | None = None
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(retry_config.max_attempts),
        wait=_wait_strategy(retry_config),
        retry=retry_if_exception(is_retryable_exception),
        before_sleep=_before_sleep,
        reraise=False,
        retry_error_callback=_retry_error_callback,
    ):
        with attempt:
            response = await send()
            if retry_config.should_retry_response(response):
                raise RetryableStatusError(response)

    if response is None:  # pragma: no cover - defensive
        raise RuntimeError("Retry loop exited without producing a response")

    return response
