"""Console playback for conversation runs.

Turns are written to stdout word by word so a headless run reads like a
live chat. While a participant is thinking, a spinner is drawn on stderr
when, and only when, stderr is an interactive terminal.
"""

import asyncio
import contextlib
import itertools
import sys
import time
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from .conversation.log import Turn

_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
_FRAME_SECONDS = 0.08
_CLEAR_LINE = "\r\033[K"


class Spinner:
    """Shows ``<frame> <message> (elapsed)`` while a participant is thinking.

    Nothing is drawn unless ``stream`` is a terminal, and nothing at all for
    calls that finish within ``delay`` seconds. A run makes one provider call
    at a time, so at most one spinner is ever live.
    """

    def __init__(
        self,
        message: str = "Thinking...",
        *,
        delay: float = 0.3,
        stream: TextIO | None = None,
    ) -> None:
        self.message = message
        self.delay = delay
        self.stream = stream or sys.stderr
        self._task: asyncio.Task[None] | None = None

    async def _draw(self) -> None:
        await asyncio.sleep(self.delay)
        started = time.monotonic() - self.delay
        for frame in itertools.cycle(_FRAMES):
            elapsed = time.monotonic() - started
            self.stream.write(
                f"{_CLEAR_LINE}\033[36m{frame}\033[0m {self.message} "
                f"\033[2m({elapsed:.1f}s)\033[0m"
            )
            self.stream.flush()
            await asyncio.sleep(_FRAME_SECONDS)

    async def __aenter__(self) -> "Spinner":
        if self.stream.isatty():
            self._task = asyncio.create_task(self._draw())
        return self

    async def __aexit__(self, *_: object) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self.stream.write(_CLEAR_LINE)
        self.stream.flush()


async def stream_text(
    text: str,
    prefix: str = "",
    delay_ms: float = 0,
    out: TextIO | None = None,
) -> None:
    """Write ``prefix`` then ``text`` one word at a time, ending with a blank line."""
    out = out or sys.stdout
    out.write(prefix)
    words = text.split(" ")
    for i, word in enumerate(words):
        out.write(word if i == len(words) - 1 else word + " ")
        out.flush()
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)
    out.write("\n\n")
    out.flush()


class ConsolePlayback:
    """Prints each appended turn to the console as it happens.

    Register :meth:`on_message` with a ``CallbackManager`` to mirror a run
    on stdout.
    """

    def __init__(self, delay_ms: float = 0, out: TextIO | None = None):
        self.delay_ms = delay_ms
        self.out = out

    async def on_message(self, turn: "Turn") -> None:
        await stream_text(turn.content, f"[{turn.author_name}]: ", self.delay_ms, self.out)
