"""Retry middleware with exponential backoff."""

import asyncio
import logging

import litellm
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ..types import (
    CompletionError,
    CompletionRequest,
    CompletionResponse,
    RetryConfig,
)
from .base import CompletionHandler, Middleware

logger = logging.getLogger(__name__)


_TRANSIENT_ERRORS = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
    litellm.exceptions.APIConnectionError,
    litellm.exceptions.Timeout,
)


def should_retry(
    exception: BaseException,
    retry_on_status: tuple[int, ...] = RetryConfig.retry_on_status,
) -> bool:
    """Determine if an exception should trigger a retry."""
    if isinstance(exception, CompletionError):
        if isinstance(exception.__cause__, _TRANSIENT_ERRORS):
            return True
        return exception.status_code in retry_on_status
    return isinstance(exception, _TRANSIENT_ERRORS)


class RetryMiddleware(Middleware):
    """
    Middleware that retries failed provider calls with exponential backoff.

    Uses tenacity with exponential backoff and jitter. Only transient
    failures (429, 5xx, connection errors) are retried; everything else
    propagates on the first attempt.
    """

    def __init__(self, config: RetryConfig | None = None):
        self.config = config or RetryConfig()

    def _should_retry(self, exception: BaseException) -> bool:
        return should_retry(exception, self.config.retry_on_status)

    async def __call__(
        self,
        request: CompletionRequest,
        next_handler: CompletionHandler,
    ) -> CompletionResponse:
        """Execute with retry logic."""
        try:
            async for attempt_state in AsyncRetrying(
                stop=stop_after_attempt(self.config.max_attempts),
                wait=wait_exponential_jitter(
                    initial=self.config.initial_delay,
                    max=self.config.max_delay,
                    exp_base=self.config.exponential_base,
                    jitter=self.config.initial_delay if self.config.jitter else 0,
                ),
                retry=retry_if_exception(self._should_retry),
                reraise=True,
            ):
                with attempt_state:
                    attempt = attempt_state.retry_state.attempt_number
                    if attempt > 1:
                        logger.info(
                            "Retry attempt %d/%d for model=%s",
                            attempt,
                            self.config.max_attempts,
                            request.model,
                        )
                    return await next_handler(request)

        except RetryError as e:
            if e.last_attempt.failed:
                exc = e.last_attempt.exception()
                if exc is not None:
                    raise exc from e
            raise CompletionError("Retry attempts exhausted") from e

        raise CompletionError("Retry logic failed unexpectedly")
