"""Command-line entry point.

Usage::

    chorus [provider[:MODEL] ...] [topic words ...] [maxTurns]
    chorus --participant openai --participant claude --topic "Cats" --max-turns 6
    chorus continue <file> [provider[:MODEL] ...] [additionalTurns]
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path

from . import __version__
from .config import ChorusConfig, load_env_files
from .providers import (
    PROVIDERS,
    ParticipantRef,
    is_participant_token,
    parse_participant,
)
from .runner import (
    API_KEY_HINT,
    DEFAULT_ADDITIONAL_TURNS,
    DEFAULT_TOPIC,
    RunOutcome,
    continue_from_file,
    is_api_key_error,
    run_group_chat,
    start_conversation_run,
)
from .types import ChorusError

logger = logging.getLogger(__name__)

DEFAULT_PARTICIPANTS = ("openai", "anthropic")
CONTINUE_COMMAND = "continue"


@dataclass
class CliRequest:
    """A parsed command line."""

    command: str = "run"
    participants: list[ParticipantRef] = field(default_factory=list)
    topic: str = DEFAULT_TOPIC
    max_turns: int | None = None
    single_prompt: bool = False
    file: str | None = None
    additional_turns: int = DEFAULT_ADDITIONAL_TURNS


def _is_int(token: str) -> bool:
    try:
        int(token)
    except ValueError:
        return False
    return True


def split_positionals(tokens: list[str]) -> tuple[list[str], list[str], int | None]:
    """
    Split positional tokens into participants, topic words and a turn count.

    Leading participant tokens are participants, a trailing integer is the
    turn count, and everything between is the topic.
    """
    index = 0
    while index < len(tokens) and is_participant_token(tokens[index]):
        index += 1
    participants = tokens[:index]
    rest = tokens[index:]
    count: int | None = None
    if rest and _is_int(rest[-1]):
        count = int(rest[-1])
        rest = rest[:-1]
    return participants, rest, count


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chorus",
        description="Let several AI models talk to each other.",
        epilog=(
            "Two participants hold a turn-by-turn conversation; one or three or "
            "more join a group chat. Use 'chorus continue <file>' to resume a "
            "saved conversation."
        ),
    )
    parser.add_argument(
        "args",
        nargs="*",
        metavar="ARG",
        help="[provider[:MODEL] ...] [topic words ...] [maxTurns], or: continue <file> ...",
    )
    parser.add_argument(
        "-p",
        "--participant",
        action="append",
        default=[],
        help="Participant as provider[:MODEL] (repeatable)",
    )
    parser.add_argument("-t", "--topic", help="Conversation topic")
    parser.add_argument("-n", "--max-turns", type=int, help="Maximum assistant turns")
    parser.add_argument(
        "--single-prompt",
        action="store_true",
        help="Run a group chat even with two participants",
    )
    parser.add_argument("--timeout-ms", type=float, help="Time budget for the run")
    parser.add_argument(
        "--no-stream", action="store_true", help="Print turns without word streaming"
    )
    parser.add_argument("--no-save", action="store_true", help="Do not save the conversation")
    parser.add_argument("--log-level", help="Logging level (default: CHORUS_LOG_LEVEL or INFO)")
    parser.add_argument(
        "--knowledge-dir",
        help="Documents the @Chat helper answers from (default: CHORUS_KNOWLEDGE_DIR)",
    )
    parser.add_argument("--env-file", help="Load environment variables from this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_request(args: argparse.Namespace) -> CliRequest | None:
    """Interpret parsed arguments. Returns None when there is nothing to run."""
    tokens: list[str] = list(args.args)
    if not tokens and not args.participant and not args.topic:
        return None

    if tokens and tokens[0] == CONTINUE_COMMAND:
        if len(tokens) < 2:
            raise ChorusError("continue requires a conversation file")
        participant_tokens, extra, count = split_positionals(tokens[2:])
        if extra:
            raise ChorusError(f"Unrecognized participants: {' '.join(extra)}")
        return CliRequest(
            command=CONTINUE_COMMAND,
            participants=[parse_participant(t) for t in args.participant + participant_tokens],
            file=tokens[1],
            additional_turns=count if count is not None else DEFAULT_ADDITIONAL_TURNS,
        )

    participant_tokens, topic_words, count = split_positionals(tokens)
    participant_tokens = args.participant + participant_tokens
    topic = args.topic or " ".join(topic_words) or DEFAULT_TOPIC
    max_turns = args.max_turns if args.max_turns is not None else count
    return CliRequest(
        participants=[parse_participant(t) for t in participant_tokens or DEFAULT_PARTICIPANTS],
        topic=topic,
        max_turns=max_turns,
        single_prompt=args.single_prompt,
    )


def usage_text() -> str:
    """Usage, supported providers and models, and required API key variables."""
    lines = [
        "Usage:",
        "  chorus [provider[:MODEL] ...] [topic words ...] [maxTurns]",
        "  chorus --participant P [--participant P ...] --topic TOPIC --max-turns N",
        "  chorus continue <file> [provider[:MODEL] ...] [additionalTurns]",
        "",
        "Examples:",
        '  chorus openai claude "Is a hot dog a sandwich?" 6',
        "  chorus gemini mistral:MISTRAL_SMALL deepseek Debate tabs versus spaces",
        "  chorus continue 2025-01-01T12-00-00-000Z-cats.json 4",
        "",
        "Providers and models (* marks the default):",
    ]
    for key, provider in PROVIDERS.items():
        lines.append(f"  {key.lower()} ({provider.name}), API key: {provider.api_key_env_var}")
        for model_key, model in provider.models.items():
            marker = "*" if model_key == provider.default_model else " "
            lines.append(f"    {marker} {model_key}: {model.id}")
    return "\n".join(lines)


async def run_request(
    request: CliRequest,
    config: ChorusConfig,
    stream: bool,
    save: bool,
    timeout_ms: float | None,
) -> RunOutcome:
    if request.command == CONTINUE_COMMAND:
        if not request.file:
            raise ChorusError("continue requires a conversation file")
        return await continue_from_file(
            request.file,
            request.participants,
            request.additional_turns,
            config=config,
            timeout_ms=timeout_ms,
            stream=stream,
            save=save,
        )
    if request.single_prompt or len(request.participants) != 2:
        return await run_group_chat(
            request.participants,
            request.topic,
            request.max_turns,
            config=config,
            timeout_ms=timeout_ms,
            stream=stream,
            save=save,
        )
    return await start_conversation_run(
        request.participants,
        request.topic,
        request.max_turns,
        config=config,
        timeout_ms=timeout_ms,
        stream=stream,
        save=save,
    )


def main(argv: list[str] | None = None) -> int:
    """Run the command line. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    load_env_files(args.env_file)
    try:
        config = ChorusConfig.from_env()
    except ChorusError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.knowledge_dir:
        config.knowledge_dir = Path(args.knowledge_dir)

    logging.basicConfig(
        level=(args.log_level or config.log_level).upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        request = parse_request(args)
        if request is None:
            print(usage_text())
            return 0
        outcome = asyncio.run(
            run_request(
                request,
                config,
                stream=not args.no_stream,
                save=not args.no_save,
                timeout_ms=args.timeout_ms,
            )
        )
    except ChorusError as e:
        print(f"Error: {e}", file=sys.stderr)
        if is_api_key_error(e):
            print(API_KEY_HINT, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130

    return 0 if outcome.result.succeeded else 1


def run() -> None:
    """Console script entry point."""
    sys.exit(main())
