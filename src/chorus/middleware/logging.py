"""Logging middleware for provider calls."""

import logging
import time
import uuid

from ..types import CompletionRequest, CompletionResponse
from .base import CompletionHandler, Middleware

logger = logging.getLogger(__name__)


class LoggingMiddleware(Middleware):
    """
    Middleware that logs provider requests and responses.

    Each call gets a short request id so the start, completion and error
    lines of one call can be matched up in the log.
    """

    def __init__(self, log_level: str = "DEBUG", label: str | None = None):
        """
        Args:
            log_level: Level for the start/completion lines (errors always use ERROR)
            label: Participant label included in every line
        """
        self._log_level = getattr(logging, log_level.upper())
        self._label = label

    async def __call__(
        self,
        request: CompletionRequest,
        next_handler: CompletionHandler,
    ) -> CompletionResponse:
        request_id = uuid.uuid4().hex[:8]
        label = self._label or request.model
        start_time = time.perf_counter()

        logger.log(
            self._log_level,
            "[%s] %s: sending %d messages (model=%s)",
            request_id,
            label,
            len(request.messages),
            request.model,
        )

        try:
            response = await next_handler(request)
        except Exception as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.error("[%s] %s: error after %.1fms: %s", request_id, label, latency_ms, e)
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.log(
            self._log_level,
            "[%s] %s: completed in %.1fms, tokens=%s",
            request_id,
            label,
            latency_ms,
            response.usage.total_tokens if response.usage else "N/A",
        )
        return response
