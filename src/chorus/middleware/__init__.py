"""Middleware for provider request processing."""

from .base import CompletionHandler, Middleware, MiddlewareChain, wrap
from .logging import LoggingMiddleware
from .retry import RetryMiddleware, should_retry

__all__ = [
    "CompletionHandler",
    "Middleware",
    "MiddlewareChain",
    "LoggingMiddleware",
    "RetryMiddleware",
    "should_retry",
    "wrap",
]
