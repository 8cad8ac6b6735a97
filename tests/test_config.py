"""Tests for configuration management."""

import os
from pathlib import Path

import pytest

from chorus.config import (
    DEFAULT_MAX_TURNS,
    DEFAULT_TIMEOUT_MS,
    ChorusConfig,
    ConversationConfig,
    load_env_files,
    validate_api_keys,
)
from chorus.providers import PROVIDERS
from chorus.types import ConfigError, ProviderError


class TestConversationConfig:
    """Tests for the turn and time budget."""

    def test_defaults(self) -> None:
        config = ConversationConfig.create()
        assert config.max_turns == DEFAULT_MAX_TURNS
        assert config.timeout_ms == DEFAULT_TIMEOUT_MS
        assert config.max_response_chars == 1000

    def test_valid_values_kept(self) -> None:
        config = ConversationConfig.create(max_turns=4, timeout_ms=5000)
        assert config.max_turns == 4
        assert config.timeout_ms == 5000

    def test_numeric_strings_accepted(self) -> None:
        config = ConversationConfig.create(max_turns="6")
        assert config.max_turns == 6

    @pytest.mark.parametrize("bad", [0, -3, "abc", float("nan"), float("inf"), [], object()])
    def test_invalid_max_turns_falls_back(self, bad: object) -> None:
        assert ConversationConfig.create(max_turns=bad).max_turns == DEFAULT_MAX_TURNS

    @pytest.mark.parametrize("bad", [0, -1, "soon", float("inf")])
    def test_invalid_timeout_falls_back(self, bad: object) -> None:
        assert ConversationConfig.create(timeout_ms=bad).timeout_ms == DEFAULT_TIMEOUT_MS

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), 0, -5])
    def test_constructor_sanitizes_timeout(self, bad: float) -> None:
        assert ConversationConfig(timeout_ms=bad).timeout_ms == DEFAULT_TIMEOUT_MS

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), 0])
    def test_constructor_sanitizes_max_turns(self, bad: float) -> None:
        assert ConversationConfig(max_turns=bad).max_turns == DEFAULT_MAX_TURNS

    def test_truncation_can_be_disabled(self) -> None:
        assert ConversationConfig.create(max_response_chars=None).max_response_chars is None

    def test_with_overrides_sanitizes(self) -> None:
        config = ConversationConfig.create(max_turns=4, timeout_ms=2000)
        assert config.with_overrides(max_turns=8).max_turns == 8
        assert config.with_overrides(max_turns=8).timeout_ms == 2000
        assert config.with_overrides(max_turns=-1).max_turns == DEFAULT_MAX_TURNS

    def test_invalid_value_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        ConversationConfig.create(max_turns=-2)
        assert any("Invalid max_turns" in record.message for record in caplog.records)


class TestChorusConfig:
    """Tests for ChorusConfig."""

    def test_default_values(self) -> None:
        config = ChorusConfig()
        assert config.conversation.max_turns == DEFAULT_MAX_TURNS
        assert config.log_level == "INFO"
        assert config.conversations_dir == Path("conversations")
        assert config.template_dir is None
        assert config.event_log is None
        assert config.knowledge_dir is None
        assert config.helper_participant == "openai"

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHORUS_MAX_TURNS", "6")
        monkeypatch.setenv("CHORUS_TIMEOUT_MS", "60000")
        monkeypatch.setenv("CHORUS_LOG_LEVEL", "debug")
        monkeypatch.setenv("CHORUS_STREAM_DELAY_MS", "0")
        monkeypatch.setenv("CHORUS_CONVERSATIONS_DIR", "/tmp/chats")
        monkeypatch.setenv("CHORUS_TEMPLATE_DIR", "/tmp/prompts")
        monkeypatch.setenv("CHORUS_EVENT_LOG", "/tmp/events.jsonl")
        monkeypatch.setenv("CHORUS_KNOWLEDGE_DIR", "/tmp/docs")
        monkeypatch.setenv("CHORUS_HELPER_PARTICIPANT", "claude:HAIKU")

        config = ChorusConfig.from_env()

        assert config.conversation.max_turns == 6
        assert config.conversation.timeout_ms == 60000
        assert config.log_level == "DEBUG"
        assert config.stream_delay_ms == 0
        assert config.conversations_dir == Path("/tmp/chats")
        assert config.template_dir == Path("/tmp/prompts")
        assert config.event_log == Path("/tmp/events.jsonl")
        assert config.knowledge_dir == Path("/tmp/docs")
        assert config.helper_participant == "claude:HAIKU"

    def test_unparsable_max_turns_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHORUS_MAX_TURNS", "many")
        with pytest.raises(ConfigError, match="CHORUS_MAX_TURNS"):
            ChorusConfig.from_env()

    def test_unparsable_timeout_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHORUS_TIMEOUT_MS", "later")
        with pytest.raises(ConfigError, match="CHORUS_TIMEOUT_MS"):
            ChorusConfig.from_env()

    def test_out_of_range_env_values_use_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHORUS_MAX_TURNS", "0")
        config = ChorusConfig.from_env()
        assert config.conversation.max_turns == DEFAULT_MAX_TURNS


class TestLoadEnvFiles:
    """Tests for loading .env files."""

    def test_load_single_file(self, mock_env_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "unset")
        monkeypatch.delenv("OPENAI_API_KEY")

        load_env_files(env_file=mock_env_file)

        assert os.getenv("OPENAI_API_KEY") == "sk-test-key"
        assert os.getenv("CHORUS_MAX_TURNS") == "6"
        assert ChorusConfig.from_env().conversation.max_turns == 6

    def test_load_multiple_files_override(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        env1 = tmp_path / ".env"
        env1.write_text("VAR_A=from_env1\nVAR_B=from_env1")

        env2 = tmp_path / ".env.local"
        env2.write_text("VAR_B=from_env2_override")

        for var in ("VAR_A", "VAR_B"):
            monkeypatch.setenv(var, "unset")
            monkeypatch.delenv(var)

        load_env_files(env_files=[env1, env2])

        assert os.getenv("VAR_A") == "from_env1"
        assert os.getenv("VAR_B") == "from_env2_override"

    def test_missing_file_is_ignored(self) -> None:
        load_env_files(env_file=Path("/nonexistent/.env"))


class TestValidateApiKeys:
    """Tests for API key validation."""

    @pytest.fixture(autouse=True)
    def no_keys(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for provider in PROVIDERS.values():
            monkeypatch.delenv(provider.api_key_env_var, raising=False)

    def test_returns_status_dict(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        result = validate_api_keys()

        assert result["openai"] is True
        assert result["anthropic"] is False
        assert set(result) == {key.lower() for key in PROVIDERS}

    def test_raises_on_missing_required(self) -> None:
        with pytest.raises(ConfigError, match="ANTHROPIC_API_KEY"):
            validate_api_keys(required_providers=["openai", "claude"])

    def test_passes_when_required_present(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GOOGLE_AI_API_KEY", "key")

        result = validate_api_keys(required_providers=["google"])
        assert result["gemini"] is True

    def test_unknown_provider(self) -> None:
        with pytest.raises(ProviderError, match="Unsupported provider"):
            validate_api_keys(required_providers=["nope"])
