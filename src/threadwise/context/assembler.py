"""Context assembly: facts, retrieved memory and recent turns under a budget."""

from __future__ import annotations

import logging
from typing import Sequence

from ..config import ContextConfig
from ..errors import InvalidArgument, NotReady
from ..facts import FactStore, SQLiteFactStore
from ..memory import MemorySnapshot, MemoryStore
from ..models import AssembledContext, Fact, ScoredChunk, Turn
from .tokens import CharTokenEstimator, TokenEstimator

logger = logging.getLogger(__name__)


def split_window(turns: Sequence[Turn], window: int) -> tuple[list[Turn], list[Turn]]:
    """Split turns into (older, recent), recent being the last `window` turns."""
    cut = max(0, len(turns) - window)
    return list(turns[:cut]), list(turns[cut:])


def assemble_context(
    facts: Sequence[Fact],
    memories: Sequence[ScoredChunk],
    turns: Sequence[Turn],
    config: ContextConfig,
    estimate: TokenEstimator,
    memory_unavailable: bool = False,
    reserved_tokens: int = 0,
) -> AssembledContext:
    """Compose a bounded context from immutable snapshots.

    Sections are facts, then memories, then recent turns. While the
    estimated total exceeds the budget, memories are dropped lowest
    similarity first, then recent turns oldest first. Facts and the
    current query turn (the last of `turns`) are never dropped, so a
    budget smaller than those two yields a context flagged `over_budget`.

    Args:
        facts: Fact snapshot in insertion order.
        memories: Retrieved chunks, best first.
        turns: The full turn log; the last turn is the current query.
        config: Window and budget settings.
        estimate: Token estimator applied to each item.
        memory_unavailable: Recorded on the result as-is.
        reserved_tokens: Tokens spent outside the three sections (system
            prompt, section framing). Counted in the estimate so the
            sections are fitted into what is left of the budget.

    Raises:
        InvalidArgument: If `turns` is empty.
    """
    if not turns:
        raise InvalidArgument("Cannot assemble context without a query turn")

    _, recent = split_window(turns, config.window)
    first_recent = recent[0].index
    kept_memories = sorted(
        (m for m in memories if m.chunk.end < first_recent),
        key=lambda m: (m.score, m.chunk.created_at, m.chunk.start),
        reverse=True,
    )

    fact_tokens = sum(estimate(fact.render()) for fact in facts)
    memory_tokens = [estimate(m.chunk.summary) for m in kept_memories]
    turn_tokens = [estimate(turn.content) for turn in recent]
    total = reserved_tokens + fact_tokens + sum(memory_tokens) + sum(turn_tokens)
    budget = config.token_budget

    while total > budget and kept_memories:
        kept_memories.pop()
        total -= memory_tokens.pop()

    while total > budget and len(recent) > 1:
        recent.pop(0)
        total -= turn_tokens.pop(0)

    return AssembledContext(
        facts=tuple(facts),
        memories=tuple(kept_memories),
        recent=tuple(recent),
        estimated_tokens=total,
        token_budget=budget,
        memory_unavailable=memory_unavailable,
        over_budget=total > budget,
    )


class ContextAssembler:
    """Builds the bounded context for each new query turn.

    Reads a snapshot of the fact and memory stores before doing anything
    that can yield to the event loop, so background maintenance can never
    leave an assembly half-updated. Never mutates either store.
    """

    def __init__(
        self,
        facts: FactStore | SQLiteFactStore,
        memory: MemoryStore,
        config: ContextConfig | None = None,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self.facts = facts
        self.memory = memory
        self.config = config or ContextConfig()
        self.estimator = estimator or CharTokenEstimator(self.config.chars_per_token)

    async def assemble(
        self, turns: Sequence[Turn], reserved_tokens: int = 0
    ) -> AssembledContext:
        """Assemble context for the last turn in `turns`.

        Unavailable memory degrades the result instead of failing it.
        `reserved_tokens` is held back from the budget for text sent
        alongside the context, such as a system prompt.

        Raises:
            InvalidArgument: If `turns` is empty.
        """
        turns = tuple(turns)
        if not turns:
            raise InvalidArgument("Cannot assemble context without a query turn")

        facts = tuple(self.facts.facts())
        snapshot = self.memory.snapshot()

        older, _ = split_window(turns, self.config.window)
        memories: list[ScoredChunk] = []
        unavailable = False
        if older:
            memories, unavailable = await self._retrieve(snapshot, turns[-1].content)

        return assemble_context(
            facts,
            memories,
            turns,
            self.config,
            self.estimator,
            memory_unavailable=unavailable,
            reserved_tokens=reserved_tokens,
        )

    async def _retrieve(
        self, snapshot: MemorySnapshot, text: str
    ) -> tuple[list[ScoredChunk], bool]:
        """Query the memory snapshot, returning (chunks, unavailable)."""
        try:
            chunks = await snapshot.query(
                text, self.config.memory_k, self.config.min_similarity
            )
        except NotReady as e:
            logger.warning("Memory unavailable, assembling without it: %s", e)
            return [], True
        return chunks, False
