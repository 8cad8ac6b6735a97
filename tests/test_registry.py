"""Tests for the provider registry."""

import random

import pytest

from chorus.providers import (
    PROVIDERS,
    ParticipantRef,
    find_model,
    is_participant_token,
    parse_participant,
    participants_from_metadata,
    random_participant_config,
    resolve_participant,
    resolve_provider_key,
)
from chorus.types import ProviderError


class TestParseParticipant:
    """Tests for parsing provider[:MODEL] tokens."""

    def test_bare_provider(self) -> None:
        assert parse_participant("openai") == ParticipantRef("openai")

    def test_alias(self) -> None:
        assert parse_participant("claude") == ParticipantRef("anthropic")
        assert parse_participant("Google") == ParticipantRef("gemini")
        assert parse_participant("xai") == ParticipantRef("grok")

    def test_provider_and_model(self) -> None:
        assert parse_participant("openai:gpt4o") == ParticipantRef("openai", "GPT4O")
        assert parse_participant("mistral:MISTRAL_SMALL") == ParticipantRef(
            "mistral", "MISTRAL_SMALL"
        )

    def test_bare_model_key_selects_provider(self) -> None:
        assert parse_participant("deepseek_coder") == ParticipantRef("deepseek", "DEEPSEEK_CODER")

    def test_str(self) -> None:
        assert str(ParticipantRef("openai", "GPT4O")) == "openai:GPT4O"
        assert str(ParticipantRef("openai")) == "openai"


class TestResolveParticipant:
    """Tests for resolving references against the registry."""

    def test_default_model(self) -> None:
        config = resolve_participant(parse_participant("claude"))

        assert config.provider.name == "Anthropic"
        assert config.model.id == "claude-sonnet-4-5"
        assert config.display_name == "Anthropic (claude-sonnet-4-5)"
        assert config.litellm_model == "anthropic/claude-sonnet-4-5"

    def test_explicit_model(self) -> None:
        config = resolve_participant(parse_participant("openai:o3_mini"))
        assert config.model.id == "o3-mini"

    def test_unknown_provider(self) -> None:
        with pytest.raises(ProviderError, match="Unsupported provider"):
            resolve_participant(ParticipantRef("acme"))

    def test_unknown_model(self) -> None:
        with pytest.raises(ProviderError, match="not found"):
            resolve_participant(ParticipantRef("openai", "GPT9000"))

    def test_every_provider_has_its_default_model(self) -> None:
        for key, provider in PROVIDERS.items():
            assert resolve_provider_key(key.lower()) == key
            assert provider.get_model().key == provider.default_model


class TestParticipantTokens:
    """Tests for telling participants apart from topic words."""

    @pytest.mark.parametrize("token", ["openai", "Claude", "gemeni", "grok:GROK_3", "GPT4O"])
    def test_participant_tokens(self, token: str) -> None:
        assert is_participant_token(token)

    @pytest.mark.parametrize("token", ["Discuss", "cats", "6", "hello"])
    def test_topic_tokens(self, token: str) -> None:
        assert not is_participant_token(token)

    def test_find_model(self) -> None:
        found = find_model("sonar_pro")
        assert found is not None
        assert found[0] == "PERPLEXITY"
        assert find_model("nothing") is None


class TestMetadata:
    """Tests for participant metadata in saved conversations."""

    def test_round_trip(self) -> None:
        configs = [
            resolve_participant(parse_participant("openai")),
            resolve_participant(parse_participant("gemini:GEMINI_FLASH")),
        ]
        entries = [config.to_metadata() for config in configs]

        refs = participants_from_metadata(entries)

        assert refs == [ParticipantRef("openai", "GPT4O"), ParticipantRef("gemini", "GEMINI_FLASH")]
        assert [resolve_participant(ref) for ref in refs] == configs

    def test_incomplete_entries_skipped(self) -> None:
        refs = participants_from_metadata([{"providerKey": "OPENAI"}, {"modelKey": "GPT4O"}])
        assert refs == []
        assert participants_from_metadata(None) == []

    def test_metadata_fields(self) -> None:
        metadata = resolve_participant(parse_participant("kimi")).to_metadata()
        assert metadata == {
            "providerKey": "KIMI",
            "providerAlias": "kimi",
            "providerName": "Kimi",
            "modelKey": "KIMI_32K",
            "modelId": "moonshot-v1-32k",
        }


class TestRandomParticipant:
    """Tests for random participant selection."""

    def test_uses_default_model(self) -> None:
        config = random_participant_config(random.Random(7))
        assert config.provider.key in PROVIDERS
        assert config.model.key == config.provider.default_model

    def test_seeded_is_reproducible(self) -> None:
        first = random_participant_config(random.Random(3))
        second = random_participant_config(random.Random(3))
        assert first == second
