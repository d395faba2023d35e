"""In-memory index of conversation summaries, retrievable by similarity."""

from __future__ import annotations

import logging
from typing import Sequence

from ..errors import InvalidArgument, NotReady
from ..models import MemoryChunk, ScoredChunk
from .embedding import Embedder, cosine_similarity

logger = logging.getLogger(__name__)


def rank_chunks(
    chunks: Sequence[MemoryChunk],
    query_vector: Sequence[float],
    k: int,
    min_similarity: float | None = None,
) -> list[ScoredChunk]:
    """Rank chunks by cosine similarity to a query vector.

    Results are sorted by descending score; ties go to the most recently
    created chunk, then to the later turn range.

    Raises:
        NotReady: If a stored embedding does not match the query dimensions.
    """
    if k <= 0:
        return []

    scored = []
    for chunk in chunks:
        try:
            score = cosine_similarity(query_vector, chunk.embedding)
        except ValueError as e:
            raise NotReady(f"Embedding backend changed dimensions: {e}") from e
        if min_similarity is not None and score < min_similarity:
            continue
        scored.append(ScoredChunk(chunk=chunk, score=score))

    scored.sort(key=lambda s: (s.score, s.chunk.created_at, s.chunk.start), reverse=True)
    return scored[:k]


class MemorySnapshot:
    """Immutable view of a MemoryStore taken at one point in time.

    Queries against a snapshot are unaffected by chunks added to the store
    afterwards.
    """

    def __init__(self, chunks: Sequence[MemoryChunk], embedder: Embedder) -> None:
        self.chunks: tuple[MemoryChunk, ...] = tuple(chunks)
        self._embedder = embedder

    def __len__(self) -> int:
        return len(self.chunks)

    async def query(
        self, text: str, k: int, min_similarity: float | None = None
    ) -> list[ScoredChunk]:
        """Return the k chunks most similar to `text`.

        Raises:
            NotReady: If the embedding backend is unavailable.
        """
        if k <= 0 or not self.chunks:
            return []
        try:
            vector = await self._embedder.embed(text)
        except NotReady:
            raise
        except Exception as e:
            raise NotReady(f"Embedding backend failed: {e}") from e
        return rank_chunks(self.chunks, vector, k, min_similarity)


class MemoryStore:
    """Stores summaries of older conversation segments for one conversation.

    Chunk ranges never overlap. A segment that gets re-summarized is
    replaced through `supersede`, never edited in place.
    """

    def __init__(self, embedder: Embedder) -> None:
        """Initialize the store.

        Args:
            embedder: Backend used to embed queries.
        """
        self.embedder = embedder
        self._chunks: list[MemoryChunk] = []

    def _validate(self, chunk: MemoryChunk) -> None:
        if chunk.start < 1 or chunk.end < chunk.start:
            raise InvalidArgument(f"Invalid turn range {chunk.start}..{chunk.end}")
        if not chunk.embedding:
            raise InvalidArgument("Chunk has no embedding")

    def add_chunk(self, chunk: MemoryChunk) -> None:
        """Store a chunk and index its embedding.

        Raises:
            InvalidArgument: If the chunk is malformed or overlaps a stored chunk.
        """
        self._validate(chunk)
        for existing in self._chunks:
            if existing.overlaps(chunk):
                raise InvalidArgument(
                    f"Chunk {chunk.start}..{chunk.end} overlaps "
                    f"{existing.start}..{existing.end}"
                )
        self._chunks.append(chunk)
        self._chunks.sort(key=lambda c: c.start)

    def supersede(self, chunk: MemoryChunk) -> list[MemoryChunk]:
        """Replace every chunk inside the new chunk's range with it.

        Returns:
            The chunks that were replaced.

        Raises:
            InvalidArgument: If the chunk partially overlaps a stored chunk.
        """
        self._validate(chunk)
        replaced = []
        kept = []
        for existing in self._chunks:
            if chunk.contains(existing):
                replaced.append(existing)
            elif existing.overlaps(chunk):
                raise InvalidArgument(
                    f"Chunk {chunk.start}..{chunk.end} partially overlaps "
                    f"{existing.start}..{existing.end}"
                )
            else:
                kept.append(existing)
        kept.append(chunk)
        kept.sort(key=lambda c: c.start)
        self._chunks = kept
        logger.debug("Superseded %d chunk(s) with %d..%d", len(replaced), chunk.start, chunk.end)
        return replaced

    def snapshot(self) -> MemorySnapshot:
        """Take an immutable, queryable copy of the current chunks."""
        return MemorySnapshot(self._chunks, self.embedder)

    async def query(
        self, text: str, k: int, min_similarity: float | None = None
    ) -> list[ScoredChunk]:
        """Return the k chunks most similar to `text`, best first.

        Raises:
            NotReady: If the embedding backend is unavailable.
        """
        return await self.snapshot().query(text, k, min_similarity)

    def chunks(self) -> list[MemoryChunk]:
        """Stored chunks ordered by turn range."""
        return list(self._chunks)

    def covered_ranges(self) -> list[tuple[int, int]]:
        return [(c.start, c.end) for c in self._chunks]

    def is_covered(self, index: int) -> bool:
        return any(c.start <= index <= c.end for c in self._chunks)

    def clear(self) -> None:
        self._chunks = []

    def __len__(self) -> int:
        return len(self._chunks)
