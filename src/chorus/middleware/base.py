"""Adapter middleware: wrappers around the provider call."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from functools import partial

from ..types import CompletionRequest, CompletionResponse

CompletionHandler = Callable[[CompletionRequest], Awaitable[CompletionResponse]]


class Middleware(ABC):
    """
    One layer around an adapter's provider call.

    A layer sees the request on the way in and the response, or the
    exception, on the way out. It continues the call with ``next_handler``.
    """

    @abstractmethod
    async def __call__(
        self,
        request: CompletionRequest,
        next_handler: CompletionHandler,
    ) -> CompletionResponse: ...


def wrap(middleware: Sequence[Middleware], handler: CompletionHandler) -> CompletionHandler:
    """Compose ``middleware`` around ``handler``; the first layer runs outermost."""
    for layer in reversed(middleware):
        handler = partial(layer, next_handler=handler)
    return handler


class MiddlewareChain:
    """
    The middleware stack of one adapter.

    The layers are composed once, when the adapter is built, so each turn
    is a single call into the outermost layer.
    """

    def __init__(self, middleware: Sequence[Middleware], final_handler: CompletionHandler):
        self.middleware = tuple(middleware)
        self._handler = wrap(self.middleware, final_handler)

    async def __call__(self, request: CompletionRequest) -> CompletionResponse:
        return await self._handler(request)
