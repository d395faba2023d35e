"""Background summarization and fact extraction."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Mapping, Sequence

from ..config import ContextConfig
from ..errors import InvalidArgument
from ..facts import FactExtractor, FactStore, SQLiteFactStore
from ..logging import JSONLLogger
from ..memory import MemoryStore, Summarizer
from ..models import MemoryChunk, Turn
from .assembler import split_window

logger = logging.getLogger(__name__)


class MaintenanceWorker:
    """Runs summarization and fact extraction as fire-and-forget tasks.

    Results are applied to the stores in a single synchronous step once a
    task finishes, so an assembly that has already taken its snapshot never
    sees a partial update. Failures are logged and left for the next
    trigger. After `close`, results of in-flight tasks are discarded.
    """

    def __init__(
        self,
        facts: FactStore | SQLiteFactStore,
        memory: MemoryStore,
        summarizer: Summarizer | None = None,
        extractor: FactExtractor | None = None,
        config: ContextConfig | None = None,
        event_logger: JSONLLogger | None = None,
        conversation_id: str | None = None,
    ) -> None:
        self.facts = facts
        self.memory = memory
        self.summarizer = summarizer
        self.extractor = extractor
        self.config = config or ContextConfig()
        self.event_logger = event_logger
        self.conversation_id = conversation_id
        self._tasks: set[asyncio.Task[Any]] = set()
        self._summarizing = False
        self._closed = False
        # Turn index that last set each fact key; stale extractions lose.
        self._fact_sources: dict[str, int] = {}

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of in-flight maintenance tasks."""
        return len(self._tasks)

    def summarization_candidates(self, turns: Sequence[Turn]) -> list[Turn]:
        """Turns older than the window that no memory chunk covers yet."""
        older, _ = split_window(turns, self.config.window)
        return [turn for turn in older if not self.memory.is_covered(turn.index)]

    def next_summary_range(self, turns: Sequence[Turn]) -> list[Turn] | None:
        """The oldest contiguous unsummarized range, if summarization is due.

        Summarization is due once at least `summarize_every` older turns are
        unsummarized. The range is capped at `summarize_every` turns.
        """
        candidates = self.summarization_candidates(turns)
        if len(candidates) < self.config.summarize_every:
            return None

        run = [candidates[0]]
        for turn in candidates[1:]:
            if turn.index != run[-1].index + 1 or len(run) >= self.config.summarize_every:
                break
            run.append(turn)
        return run

    def on_turn(self, turn: Turn, turns: Sequence[Turn]) -> None:
        """Schedule maintenance for a newly appended turn.

        Must be called from a running event loop; the caller never waits on
        the scheduled work.
        """
        if self._closed:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; skipping maintenance for turn %d", turn.index)
            return

        if self.extractor is not None and self.config.extract_facts:
            self._spawn(self._extract(turn))

        if self.summarizer is not None and not self._summarizing:
            segment = self.next_summary_range(turns)
            if segment:
                self._summarizing = True
                self._spawn(self._summarize(segment))

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for all in-flight maintenance tasks to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def close(self) -> None:
        """Stop scheduling work and discard results still in flight."""
        self._closed = True
        self._fact_sources.clear()

    async def _summarize(self, segment: list[Turn]) -> None:
        turn_range = (segment[0].index, segment[-1].index)
        started = time.perf_counter()
        try:
            summary = await self.summarizer.summarize(segment)
            vector = await self.memory.embedder.embed(summary)
        except Exception as e:
            self._report_failure("summarization", e, turn_range)
            return
        finally:
            self._summarizing = False

        if self._closed:
            logger.debug("Discarding summary of turns %d..%d after close", *turn_range)
            return

        chunk = MemoryChunk(
            summary=summary,
            start=turn_range[0],
            end=turn_range[1],
            embedding=tuple(vector),
        )
        try:
            self.memory.add_chunk(chunk)
        except InvalidArgument as e:
            self._report_failure("summarization", e, turn_range)
            return

        self._log_event(
            "log_summarization",
            self.conversation_id,
            turn_range,
            duration_ms=(time.perf_counter() - started) * 1000,
        )

    async def _extract(self, turn: Turn) -> None:
        try:
            result = await self.extractor.extract_facts(turn)
        except Exception as e:
            self._report_failure("extraction", e, (turn.index, turn.index))
            return

        if self._closed:
            return
        if not isinstance(result, Mapping) or not result:
            return

        applied = self._apply_facts(result, turn.index)
        if applied:
            self._log_event(
                "log_facts_extracted", self.conversation_id, applied, turn_index=turn.index
            )

    def _apply_facts(self, result: Mapping[Any, Any], turn_index: int) -> list[str]:
        applied = []
        for key, value in result.items():
            if value is None:
                continue
            if isinstance(key, str) and self._fact_sources.get(key.strip(), 0) > turn_index:
                continue
            try:
                fact = self.facts.upsert(key, value)
            except InvalidArgument as e:
                logger.debug("Skipping extracted fact: %s", e)
                continue
            self._fact_sources[fact.key] = turn_index
            applied.append(fact.key)
        return applied

    def _report_failure(
        self, task: str, error: Exception, turn_range: tuple[int, int]
    ) -> None:
        logger.warning(
            "Maintenance %s failed for turns %d..%d: %s", task, *turn_range, error
        )
        self._log_event(
            "log_maintenance_failure",
            self.conversation_id,
            task,
            str(error),
            turn_range=turn_range,
        )

    def _log_event(self, method: str, *args: Any, **kwargs: Any) -> None:
        """Write an event record, warning if the log file cannot be written."""
        if not self.event_logger:
            return
        try:
            getattr(self.event_logger, method)(*args, **kwargs)
        except OSError as e:
            logger.warning("Could not write %s event: %s", method, e)
