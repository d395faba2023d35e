"""Conversations: turn log, stores, assembly and maintenance."""

from __future__ import annotations

import time
import uuid
from typing import Callable

from .config import ContextConfig
from .context import ContextAssembler, MaintenanceWorker, TokenEstimator
from .errors import InvalidArgument, ThreadwiseError
from .facts import FactExtractor, FactStore, SQLiteFactStore
from .logging import JSONLLogger
from .memory import Embedder, HashingEmbedder, MemoryStore, Summarizer
from .models import ROLES, AssembledContext, Turn


class Conversation:
    """One conversation and the stores it owns.

    Turns are appended in order. Each append schedules background
    maintenance; `assemble` never waits on it.
    """

    def __init__(
        self,
        conversation_id: str | None = None,
        config: ContextConfig | None = None,
        embedder: Embedder | None = None,
        summarizer: Summarizer | None = None,
        extractor: FactExtractor | None = None,
        fact_store: FactStore | SQLiteFactStore | None = None,
        estimator: TokenEstimator | None = None,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        self.id = conversation_id or f"conv-{uuid.uuid4().hex[:8]}"
        self.config = config or ContextConfig()
        self.facts = fact_store if fact_store is not None else FactStore()
        self.memory = MemoryStore(embedder or HashingEmbedder())
        self.event_logger = event_logger
        self.assembler = ContextAssembler(self.facts, self.memory, self.config, estimator)
        self.maintenance = MaintenanceWorker(
            self.facts,
            self.memory,
            summarizer=summarizer,
            extractor=extractor,
            config=self.config,
            event_logger=event_logger,
            conversation_id=self.id,
        )
        self._turns: list[Turn] = []
        self._closed = False

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def closed(self) -> bool:
        return self._closed

    def append(self, role: str, content: str) -> Turn:
        """Append a turn and schedule maintenance for it.

        Maintenance is only scheduled when called from a running event loop.

        Raises:
            InvalidArgument: If the role is unknown or content is not a string.
            ThreadwiseError: If the conversation is closed.
        """
        if self._closed:
            raise ThreadwiseError(f"Conversation {self.id} is closed")
        if role not in ROLES:
            raise InvalidArgument(f"Unknown role {role!r}, expected one of {ROLES}")
        if not isinstance(content, str):
            raise InvalidArgument("Turn content must be a string")

        index = self._turns[-1].index + 1 if self._turns else 1
        turn = Turn(role=role, content=content, index=index)
        self._turns.append(turn)

        self.maintenance.on_turn(turn, self.turns)
        return turn

    async def assemble(self, reserved_tokens: int = 0) -> AssembledContext:
        """Assemble bounded context for the latest turn.

        Args:
            reserved_tokens: Budget held back for a system prompt or other
                text sent with the context.

        Raises:
            InvalidArgument: If no turn has been appended yet.
        """
        started = time.perf_counter()
        context = await self.assembler.assemble(self._turns, reserved_tokens=reserved_tokens)
        if self.event_logger:
            self.event_logger.log_assembly(
                self.id,
                facts=len(context.facts),
                memories=len(context.memories),
                recent=len(context.recent),
                estimated_tokens=context.estimated_tokens,
                token_budget=context.token_budget,
                memory_unavailable=context.memory_unavailable,
                over_budget=context.over_budget,
                duration_ms=(time.perf_counter() - started) * 1000,
            )
        return context

    def summarization_candidates(self) -> list[Turn]:
        """Older turns not yet covered by a memory chunk."""
        return self.maintenance.summarization_candidates(self._turns)

    async def drain(self) -> None:
        """Wait for in-flight maintenance to finish."""
        await self.maintenance.drain()

    def close(self, keep_facts: bool = False) -> None:
        """Tear down the conversation, dropping its facts and memory.

        Background results that complete afterwards are discarded.

        Args:
            keep_facts: Leave the fact store untouched, for persistent
                stores that outlive the process.
        """
        if self._closed:
            return
        self._closed = True
        self.maintenance.close()
        if not keep_facts:
            self.facts.clear()
        self.memory.clear()
        if self.event_logger:
            self.event_logger.log(
                "conversation_closed", conversation_id=self.id, turns=len(self._turns)
            )


ConversationFactory = Callable[[str], Conversation]


class ConversationRegistry:
    """Keeps independent conversations by id.

    Each conversation gets its own fact and memory stores; nothing is
    shared across conversations.
    """

    def __init__(self, factory: ConversationFactory | None = None) -> None:
        self._factory = factory or (lambda conversation_id: Conversation(conversation_id))
        self._conversations: dict[str, Conversation] = {}

    def get(self, conversation_id: str) -> Conversation:
        """Get or create the conversation for an id."""
        if conversation_id not in self._conversations:
            self._conversations[conversation_id] = self._factory(conversation_id)
        return self._conversations[conversation_id]

    def close(self, conversation_id: str) -> bool:
        """Tear down a conversation.

        Returns:
            True if a conversation was closed, False if none existed.
        """
        conversation = self._conversations.pop(conversation_id, None)
        if conversation is None:
            return False
        conversation.close()
        return True

    def close_all(self) -> int:
        """Tear down every conversation. Returns how many were closed."""
        ids = list(self._conversations)
        for conversation_id in ids:
            self.close(conversation_id)
        return len(ids)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations

    def __len__(self) -> int:
        return len(self._conversations)
