"""Pytest configuration and fixtures."""

import os
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

# Use litellm's bundled model cost map: its remote fetch retries in a
# background thread that can deadlock the import when offline.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

from chorus.config import ConversationConfig
from chorus.conversation import ConversationOrchestrator
from chorus.types import Messages


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clean environment variables before each test."""
    for key in list(os.environ.keys()):
        if key.startswith("CHORUS_"):
            monkeypatch.delenv(key, raising=False)


class FakeAdapter:
    """
    Scripted adapter.

    Replies are taken from ``replies`` in order (cycling when exhausted). A
    reply that is an exception instance is raised instead of returned.
    Every message list received is kept in ``calls``.
    """

    def __init__(
        self,
        name: str,
        model: str,
        replies: Sequence[str | Exception] | None = None,
        on_call: Callable[[Messages], None] | None = None,
    ):
        self.name = name
        self.model = model
        self.replies = list(replies) if replies is not None else None
        self.on_call = on_call
        self.calls: list[Messages] = []

    def get_name(self) -> str:
        return self.name

    def get_model(self) -> str:
        return self.model

    async def generate_response(self, messages: Messages) -> str:
        self.calls.append(list(messages))
        if self.on_call is not None:
            self.on_call(messages)
        if not self.replies:
            return f"{self.name} reply {len(self.calls)}"
        reply = self.replies[(len(self.calls) - 1) % len(self.replies)]
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_orchestrator(clock: FakeClock):
    """Build an orchestrator with fake OpenAI and Anthropic participants."""

    def _make(
        max_turns: int = 4,
        replies: Sequence[Sequence[str | Exception] | None] = (None, None),
        **kwargs,
    ) -> tuple[ConversationOrchestrator, list[FakeAdapter]]:
        names = [("OpenAI", "gpt-x"), ("Anthropic", "claude-y"), ("Gemini", "gem-z")]
        kwargs.setdefault("clock", clock)
        orchestrator = ConversationOrchestrator(
            ConversationConfig.create(max_turns=max_turns), **kwargs
        )
        adapters = []
        for (name, model), scripted in zip(names, replies):
            adapter = FakeAdapter(name, model, scripted)
            orchestrator.add_adapter(adapter)
            adapters.append(adapter)
        return orchestrator, adapters

    return _make


@pytest.fixture
def temp_template_dir(tmp_path: Path) -> Path:
    """A directory overriding the conversation system prompt."""
    (tmp_path / "conversation_system.jinja").write_text(
        "Custom prompt for {{ participant_name }} about {{ topic }}."
    )
    return tmp_path


@pytest.fixture
def mock_env_file(tmp_path: Path) -> Path:
    """Create a temporary .env file."""
    env_file = tmp_path / ".env"
    env_file.write_text(
        """
OPENAI_API_KEY=sk-test-key
CHORUS_MAX_TURNS=6
CHORUS_LOG_LEVEL=DEBUG
"""
    )
    return env_file
