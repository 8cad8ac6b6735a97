"""
Conversation Example
====================

This example shows how to drive chorus from Python instead of the CLI.

Features demonstrated:
- Two participants taking turns on a topic
- A three-way group chat with the @Chat helper answering questions
- Saving a transcript and continuing it later

To run this example:
    python examples/conversation_example.py

Note: Requires OPENAI_API_KEY and ANTHROPIC_API_KEY (and GOOGLE_AI_API_KEY
for the group chat) in the environment or a .env file.
"""

import asyncio
import logging
from pathlib import Path

from chorus import (
    ChatAssistant,
    ChorusConfig,
    ConversationConfig,
    ConversationMode,
    ConversationOrchestrator,
    KnowledgeBase,
    LiteLLMAdapter,
    load_env_files,
    load_conversation,
    parse_participant,
    resolve_participant,
    save_conversation,
)
from chorus.observability import create_logging_callbacks

# ============================================================================
# Examples
# ============================================================================


async def two_way_conversation() -> Path:
    """OpenAI and Claude discuss a topic, then the transcript is saved."""
    print("\n" + "=" * 60)
    print("Example 1: Two-way conversation")
    print("=" * 60)

    orchestrator = ConversationOrchestrator(ConversationConfig.create(max_turns=4))
    participants = [resolve_participant(parse_participant(p)) for p in ("openai", "claude")]
    for participant in participants:
        orchestrator.add_participant(participant)

    result = await orchestrator.start_conversation("Is a hot dog a sandwich?")

    for entry in orchestrator.get_conversation_history():
        print(f"[{entry['from']}]: {entry['content']}\n")
    print(result.describe())

    return save_conversation(
        orchestrator.get_conversation_history(),
        "Is a hot dog a sandwich?",
        {
            "mode": orchestrator.mode.value,
            "participants": [p.to_metadata() for p in participants],
            "maxTurns": orchestrator.config.max_turns,
        },
    )


async def group_chat_with_helper() -> None:
    """Three models in a group chat; @Chat answers questions about the app."""
    print("\n" + "=" * 60)
    print("Example 2: Group chat with @Chat")
    print("=" * 60)

    knowledge = KnowledgeBase.from_texts(
        {
            "README.md": "chorus saves every conversation as JSON in the conversations "
            "folder.\n\nSaved conversations can be continued with 'chorus continue'.",
        }
    )
    helper_config = resolve_participant(parse_participant("openai:GPT4O"))
    helper = ChatAssistant(LiteLLMAdapter(helper_config), knowledge)

    orchestrator = ConversationOrchestrator(
        ConversationConfig.create(max_turns=6),
        mode=ConversationMode.GROUP_CHAT,
        responders=[helper],
        callbacks=create_logging_callbacks(logging.getLogger("chorus.example")),
    )
    for name in ("openai", "claude", "gemini"):
        orchestrator.add_participant(resolve_participant(parse_participant(name)))

    result = await orchestrator.start_conversation(
        "What would you change about how this chat app stores conversations?"
    )
    print(result.describe())


async def continue_saved(path: Path) -> None:
    """Pick up a saved conversation for two more turns."""
    print("\n" + "=" * 60)
    print("Example 3: Continuing a saved conversation")
    print("=" * 60)

    record = load_conversation(path)
    orchestrator = ConversationOrchestrator(ChorusConfig.from_env().conversation)
    for name in ("openai", "claude"):
        orchestrator.add_participant(resolve_participant(parse_participant(name)))

    result = await orchestrator.resume(record.entries(), additional_turns=2, topic=record.topic)

    for entry in orchestrator.get_conversation_history()[len(record.messages):]:
        print(f"[{entry['from']}]: {entry['content']}\n")
    print(result.describe())


async def main():
    load_env_files()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    saved = await two_way_conversation()
    await group_chat_with_helper()
    await continue_saved(saved)


if __name__ == "__main__":
    asyncio.run(main())
