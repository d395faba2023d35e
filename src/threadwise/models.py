"""Data models for conversations, facts and memory chunks."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

ROLES = ("user", "assistant")


@dataclass(frozen=True)
class Turn:
    """One message in a conversation.

    Attributes:
        role: 'user' or 'assistant'.
        content: The message text.
        index: Sequence index within the conversation, starting at 1.
        timestamp: Unix time when the turn was created.
    """

    role: str
    content: str
    index: int
    timestamp: float = field(default_factory=time.time)

    def to_message(self) -> dict[str, Any]:
        """Chat-completions message for this turn."""
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class Fact:
    """A durable key/value fact about the conversation.

    Attributes:
        key: Unique name of the fact within a conversation.
        value: The fact content.
        updated_at: Unix time of the last upsert.
    """

    key: str
    value: str
    updated_at: float = field(default_factory=time.time)

    def render(self) -> str:
        return f"{self.key}: {self.value}"


@dataclass(frozen=True)
class MemoryChunk:
    """A compressed summary of a contiguous, inclusive range of turns.

    Attributes:
        summary: The summary text.
        start: Index of the first summarized turn.
        end: Index of the last summarized turn.
        embedding: Embedding vector of the summary.
        created_at: Unix time when the chunk was created.
    """

    summary: str
    start: int
    end: int
    embedding: tuple[float, ...]
    created_at: float = field(default_factory=time.time)

    def overlaps(self, other: MemoryChunk) -> bool:
        return self.start <= other.end and other.start <= self.end

    def contains(self, other: MemoryChunk) -> bool:
        return self.start <= other.start and other.end <= self.end

    @property
    def turn_count(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class ScoredChunk:
    """A memory chunk with its similarity to a query."""

    chunk: MemoryChunk
    score: float


@dataclass(frozen=True)
class AssembledContext:
    """Bounded context produced by one assembly pass.

    Attributes:
        facts: Facts to inject, in insertion order.
        memories: Retrieved chunks, most similar first.
        recent: Verbatim recent turns, oldest first; the last one is the
            current query turn.
        estimated_tokens: Estimated size of the three sections together.
        token_budget: The budget this context was assembled against.
        memory_unavailable: True if the memory backend raised NotReady.
        over_budget: True if facts and the query turn alone exceed the budget.
    """

    facts: tuple[Fact, ...]
    memories: tuple[ScoredChunk, ...]
    recent: tuple[Turn, ...]
    estimated_tokens: int
    token_budget: int
    memory_unavailable: bool = False
    over_budget: bool = False

    @property
    def query(self) -> Turn:
        """The current query turn."""
        return self.recent[-1]

    def format_system_block(self) -> str:
        """Format facts and memories as a block for the system prompt.

        Returns:
            The block, or an empty string if there is nothing to inject.
        """
        parts = []
        if self.facts:
            lines = "\n".join(f"- {fact.render()}" for fact in self.facts)
            parts.append(f"<facts>\n{lines}\n</facts>")
        if self.memories:
            lines = "\n".join(
                f"- [turns {m.chunk.start}-{m.chunk.end}] {m.chunk.summary}"
                for m in self.memories
            )
            parts.append(f"<memory>\n{lines}\n</memory>")
        return "\n\n".join(parts)

    def to_messages(self, system_prompt: str = "") -> list[dict[str, Any]]:
        """Render the context as a chat-completions message list."""
        system = "\n\n".join(p for p in (system_prompt, self.format_system_block()) if p)
        messages: list[dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.extend(turn.to_message() for turn in self.recent)
        return messages
