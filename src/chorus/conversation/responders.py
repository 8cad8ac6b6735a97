"""Internal responders: side assistants that react to appended turns.

A responder is offered every turn the orchestrator appends (the opening
message and each participant reply). When it chooses to handle one, its
reply is appended as an extra turn that belongs to no participant and
takes no scheduling slot.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..core.messages import system_message, user_message
from ..types import Message, Role
from .log import Turn

if TYPE_CHECKING:
    from ..providers.adapter import AIAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResponderReply:
    """A turn a responder wants appended."""

    content: str
    role: Role = "assistant"
    author_name: str | None = None


@runtime_checkable
class InternalResponder(Protocol):
    name: str

    def should_handle(self, turn: Turn, log: Sequence[Turn]) -> bool: ...

    async def handle_message(self, turn: Turn, log: Sequence[Turn]) -> ResponderReply | None: ...


class MentionResponder(ABC):
    """
    Base class for responders addressed as ``@<name>``.

    Matching is case-insensitive and respects word boundaries, so ``@Chat``
    matches ``"@chat, what is..."`` but not ``"@Chatter"``.
    """

    def __init__(self, name: str):
        self.name = name
        self._mention = re.compile(rf"@{re.escape(name)}\b", re.IGNORECASE)

    def is_mentioned(self, content: str | None) -> bool:
        return bool(content and self._mention.search(content))

    def extract_question(self, content: str | None) -> str | None:
        """Text following the first mention, without leading separators."""
        if not content:
            return None
        match = self._mention.search(content)
        if not match:
            return None
        question = re.sub(r"^[\s,:-]+", "", content[match.end():]).strip()
        return question or None

    def should_handle(self, turn: Turn, log: Sequence[Turn]) -> bool:
        return self.is_mentioned(turn.content)

    @abstractmethod
    async def handle_message(self, turn: Turn, log: Sequence[Turn]) -> ResponderReply | None:
        """Answer a turn that mentions this responder; None appends nothing."""


@dataclass(frozen=True)
class Passage:
    """A chunk of a knowledge-base document."""

    source: str
    text: str


_TOKEN = re.compile(r"[a-z0-9]+")
_STOPWORDS = frozenset(
    "a an and are as at be by can do does for from how i in is it of on or "
    "the this to what when where which who why with you your".split()
)


def _terms(text: str) -> set[str]:
    return {t for t in _TOKEN.findall(text.lower()) if t not in _STOPWORDS and len(t) > 1}


class KnowledgeBase:
    """
    Small in-memory document index ranked by term overlap.

    Documents are split into paragraphs; a query scores each paragraph by
    how many of its distinct terms it shares.
    """

    def __init__(self, passages: Iterable[Passage] = ()):
        self.passages = list(passages)

    @classmethod
    def from_texts(cls, documents: dict[str, str]) -> "KnowledgeBase":
        passages = [
            Passage(source=source, text=chunk.strip())
            for source, text in documents.items()
            for chunk in re.split(r"\n\s*\n", text)
            if chunk.strip()
        ]
        return cls(passages)

    @classmethod
    def from_directory(
        cls,
        directory: str | Path,
        suffixes: tuple[str, ...] = (".md", ".txt"),
    ) -> "KnowledgeBase":
        """Index every ``.md``/``.txt`` file under ``directory``."""
        root = Path(directory)
        documents = {
            str(path.relative_to(root)): path.read_text(encoding="utf-8")
            for path in sorted(root.rglob("*"))
            if path.is_file() and path.suffix in suffixes
        }
        logger.debug("Indexed %d documents from %s", len(documents), root)
        return cls.from_texts(documents)

    def search(self, query: str, limit: int = 3) -> list[Passage]:
        query_terms = _terms(query)
        if not query_terms:
            return []
        scored = [
            (len(query_terms & _terms(passage.text)), index, passage)
            for index, passage in enumerate(self.passages)
        ]
        scored = [item for item in scored if item[0] > 0]
        scored.sort(key=lambda item: (-item[0], item[1]))
        return [passage for _, _, passage in scored[:limit]]


ASSISTANT_INSTRUCTIONS = (
    "You are {name}, an internal assistant that answers questions about this "
    "application for the participants of a chat. Answer in at most three "
    "sentences using only the context below. If the context does not cover "
    "the question, say so briefly."
)


class ChatAssistant(MentionResponder):
    """
    The ``@Chat`` helper.

    Answers a question that follows the mention by retrieving the most
    relevant knowledge-base passages and asking an LLM to answer from them.
    Any failure, including running past ``timeout_s``, produces an apology
    turn instead of an exception.

    Args:
        adapter: Backend used to phrase the answer
        knowledge_base: Documents to answer from
        name: Mention name
        timeout_s: Upper bound on answering one question
        max_passages: Passages included as context
    """

    def __init__(
        self,
        adapter: "AIAdapter",
        knowledge_base: KnowledgeBase | None = None,
        name: str = "Chat",
        timeout_s: float = 15.0,
        max_passages: int = 3,
    ):
        super().__init__(name)
        self.adapter = adapter
        self.knowledge_base = knowledge_base or KnowledgeBase()
        self.timeout_s = timeout_s
        self.max_passages = max_passages

    def build_messages(self, question: str) -> list[Message]:
        passages = self.knowledge_base.search(question, self.max_passages)
        if passages:
            context = "\n\n".join(f"[{p.source}]\n{p.text}" for p in passages)
        else:
            context = "(no matching documents)"
        return [
            system_message(
                ASSISTANT_INSTRUCTIONS.format(name=self.name) + "\n\nContext:\n" + context
            ),
            user_message(question),
        ]

    async def answer(self, question: str) -> str:
        return await asyncio.wait_for(
            self.adapter.generate_response(self.build_messages(question)),
            timeout=self.timeout_s,
        )

    async def handle_message(self, turn: Turn, log: Sequence[Turn]) -> ResponderReply | None:
        question = self.extract_question(turn.content)
        if not question:
            return None
        try:
            answer = await self.answer(question)
        except Exception as e:
            logger.warning("@%s could not answer %r: %s", self.name, question, e)
            reason = str(e) or type(e).__name__
            return ResponderReply(
                content=f"@{self.name}: I could not retrieve code details right now ({reason}).",
                author_name=self.name,
            )
        if not answer or not answer.strip():
            return None
        return ResponderReply(content=answer.strip(), author_name=self.name)
