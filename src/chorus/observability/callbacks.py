"""Callback system for conversation lifecycle events."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..conversation.log import Turn
    from ..conversation.state import RunResult

logger = logging.getLogger(__name__)

# Callback type definitions
OnMessageCallback = Callable[["Turn"], Awaitable[None] | None]
OnErrorCallback = Callable[[Exception, str | None], Awaitable[None] | None]
OnStopCallback = Callable[["RunResult"], Awaitable[None] | None]


@dataclass
class CallbackManager:
    """
    Manages callbacks for conversation events.

    Callbacks may be plain functions or coroutines. A failing callback is
    logged and skipped; it never affects the run that emitted the event.

    Example:
        callbacks = CallbackManager()

        @callbacks.on_message
        async def show(turn):
            print(f"[{turn.author_name}]: {turn.content}")

        @callbacks.on_stop
        def done(result):
            print(result.describe())
    """

    _on_message: list[OnMessageCallback] = field(default_factory=list)
    _on_error: list[OnErrorCallback] = field(default_factory=list)
    _on_stop: list[OnStopCallback] = field(default_factory=list)

    def add_on_message(self, callback: OnMessageCallback) -> None:
        """Add a callback called after each turn is appended."""
        self._on_message.append(callback)

    def add_on_error(self, callback: OnErrorCallback) -> None:
        """Add a callback called when a participant's adapter fails."""
        self._on_error.append(callback)

    def add_on_stop(self, callback: OnStopCallback) -> None:
        """Add a callback called when a run ends."""
        self._on_stop.append(callback)

    def on_message(self, callback: OnMessageCallback) -> OnMessageCallback:
        """Decorator to register a message callback."""
        self.add_on_message(callback)
        return callback

    def on_error(self, callback: OnErrorCallback) -> OnErrorCallback:
        """Decorator to register an error callback."""
        self.add_on_error(callback)
        return callback

    def on_stop(self, callback: OnStopCallback) -> OnStopCallback:
        """Decorator to register a stop callback."""
        self.add_on_stop(callback)
        return callback

    async def _emit(self, callbacks: list[Callable[..., Any]], *args: Any) -> None:
        for callback in callbacks:
            try:
                result = callback(*args)
                if isinstance(result, Awaitable):
                    await result
            except Exception as e:
                logger.debug("Callback %r failed: %s", callback, e)

    async def emit_message(self, turn: "Turn") -> None:
        """Emit a message event to all registered callbacks."""
        await self._emit(self._on_message, turn)

    async def emit_error(self, error: Exception, participant_name: str | None = None) -> None:
        """Emit an error event to all registered callbacks."""
        await self._emit(self._on_error, error, participant_name)

    async def emit_stop(self, result: "RunResult") -> None:
        """Emit a stop event to all registered callbacks."""
        await self._emit(self._on_stop, result)


def create_logging_callbacks(
    logger: logging.Logger,
    level: str = "INFO",
) -> CallbackManager:
    """
    Create a CallbackManager that mirrors events to a standard logger.

    Args:
        logger: A logging.Logger instance
        level: Log level for message and stop events

    Returns:
        A configured CallbackManager
    """
    log_level = getattr(logging, level.upper())
    callbacks = CallbackManager()

    @callbacks.on_message
    def log_message(turn: "Turn") -> None:
        logger.log(log_level, "[%s] %s", turn.author_name, turn.content)

    @callbacks.on_error
    def log_error(error: Exception, participant_name: str | None) -> None:
        logger.error("%s failed: %s", participant_name or "participant", error)

    @callbacks.on_stop
    def log_stop(result: "RunResult") -> None:
        logger.log(log_level, result.describe())

    return callbacks
