"""Tests for provider adapters and the litellm completion call."""

import litellm
import pytest
from conftest import FakeAdapter

from chorus.core import complete, reply_text, to_completion_error, user_message
from chorus.providers import (
    ADAPTER_FACTORIES,
    AIAdapter,
    LiteLLMAdapter,
    create_adapter,
    parse_participant,
    register_adapter_factory,
    resolve_participant,
)
from chorus.types import CompletionError, CompletionRequest, ConfigError, RetryConfig

OPENAI = resolve_participant(parse_participant("openai"))


class TestLiteLLMAdapter:
    """Tests for LiteLLMAdapter."""

    def test_identity(self) -> None:
        adapter = LiteLLMAdapter(OPENAI)
        assert adapter.get_name() == "OpenAI"
        assert adapter.get_model() == "gpt-4o"
        assert isinstance(adapter, AIAdapter)

    def test_build_request(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        adapter = LiteLLMAdapter(OPENAI)

        request = adapter.build_request([user_message("Hello")])

        assert request.model == "openai/gpt-4o"
        assert request.api_key == "sk-test"
        assert request.temperature == 0.7
        assert request.max_tokens == 4096
        assert request.messages == [{"role": "user", "content": "Hello"}]

    def test_missing_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        adapter = LiteLLMAdapter(OPENAI)

        with pytest.raises(ConfigError, match="OPENAI_API_KEY"):
            adapter.build_request([user_message("Hello")])

    async def test_generate_response_with_mock(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        adapter = LiteLLMAdapter(OPENAI, completion_kwargs={"mock_response": "Meow."})

        reply = await adapter.generate_response([user_message("Discuss cats")])

        assert reply == "Meow."

    async def test_errors_propagate(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def failing(**kwargs):
            raise ValueError("bad request")

        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setattr(litellm, "acompletion", failing)
        adapter = LiteLLMAdapter(OPENAI, retry=RetryConfig(max_attempts=1))

        with pytest.raises(CompletionError, match="bad request"):
            await adapter.generate_response([user_message("Hello")])


class TestComplete:
    """Tests for the litellm call."""

    async def test_mock_response(self) -> None:
        response = await complete(
            CompletionRequest(
                model="openai/gpt-4o",
                messages=[user_message("Hello")],
                extra_kwargs={"mock_response": "Hi there"},
            )
        )
        assert response.content == "Hi there"

    async def test_unexpected_error_wrapped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def failing(**kwargs):
            raise RuntimeError("socket closed")

        monkeypatch.setattr(litellm, "acompletion", failing)

        with pytest.raises(CompletionError, match="Completion failed: socket closed") as exc:
            await complete(CompletionRequest(model="openai/gpt-4o", messages=[]))
        assert exc.value.status_code is None

    async def test_whitespace_reply_is_empty(self) -> None:
        response = await complete(
            CompletionRequest(
                model="openai/gpt-4o",
                messages=[user_message("Hello")],
                extra_kwargs={"mock_response": "  \n "},
            )
        )
        assert response.content == ""

    async def test_rejected_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def failing(**kwargs):
            raise litellm.exceptions.AuthenticationError(
                message="invalid key", llm_provider="openai", model="gpt-4o"
            )

        monkeypatch.setattr(litellm, "acompletion", failing)

        with pytest.raises(CompletionError, match="API key rejected") as exc:
            await complete(CompletionRequest(model="openai/gpt-4o", messages=[]))
        assert exc.value.status_code == 401
        assert isinstance(exc.value.__cause__, litellm.exceptions.AuthenticationError)

    def test_request_kwargs(self) -> None:
        request = CompletionRequest(
            model="m",
            messages=[user_message("hi")],
            temperature=0.5,
            extra_kwargs={"mock_response": "x"},
        )
        kwargs = request.to_litellm_kwargs()
        assert kwargs["temperature"] == 0.5
        assert kwargs["mock_response"] == "x"
        assert "api_key" not in kwargs
        assert "max_tokens" not in kwargs


class TestAdapterFactories:
    """Tests for choosing an adapter per provider."""

    def test_default_is_litellm(self) -> None:
        assert isinstance(create_adapter(OPENAI), LiteLLMAdapter)

    def test_register_factory(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setitem(ADAPTER_FACTORIES, "OPENAI", LiteLLMAdapter)

        register_adapter_factory(
            "openai", lambda config: FakeAdapter(config.provider.name, config.model.id)
        )
        adapter = create_adapter(OPENAI)

        assert isinstance(adapter, FakeAdapter)
        assert adapter.get_model() == "gpt-4o"
        # Other providers are unaffected
        claude = resolve_participant(parse_participant("claude"))
        assert isinstance(create_adapter(claude), LiteLLMAdapter)


class TestReplyText:
    """Tests for normalizing provider message content."""

    def test_none(self) -> None:
        assert reply_text(None) == ""

    def test_strips_whitespace(self) -> None:
        assert reply_text("  Meow.\n") == "Meow."
        assert reply_text(" \t\n") == ""

    def test_content_parts(self) -> None:
        parts = [{"type": "text", "text": "Hello "}, {"type": "text", "text": "there"}]
        assert reply_text(parts) == "Hello there"

    def test_part_without_text(self) -> None:
        assert reply_text([{"type": "image_url"}, {"type": "text", "text": "hi"}]) == "hi"


class TestToCompletionError:
    """Tests for labelling provider exceptions."""

    def test_rate_limit(self) -> None:
        error = to_completion_error(
            litellm.exceptions.RateLimitError(
                message="slow down", llm_provider="openai", model="gpt-4o"
            )
        )
        assert error.status_code == 429
        assert str(error).startswith("Rate limit exceeded")

    def test_unknown_error(self) -> None:
        error = to_completion_error(KeyError("choices"))
        assert error.status_code is None
        assert str(error).startswith("Completion failed")
