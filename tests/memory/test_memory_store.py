"""Tests for MemoryStore."""

import pytest

from threadwise.errors import InvalidArgument, NotReady
from threadwise.memory import MemoryStore
from threadwise.models import MemoryChunk


class StaticEmbedder:
    """Returns a fixed vector per text, [1, 0] for unknown text."""

    def __init__(self, vectors: dict[str, list[float]] | None = None) -> None:
        self.vectors = vectors or {}
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return self.vectors.get(text, [1.0, 0.0])


class UnavailableEmbedder:
    async def embed(self, text: str) -> list[float]:
        raise NotReady("backend down")


class BrokenEmbedder:
    async def embed(self, text: str) -> list[float]:
        raise RuntimeError("connection reset")


def chunk(start: int, end: int, embedding=(1.0, 0.0), created_at: float = 0.0, summary=None):
    return MemoryChunk(
        summary=summary or f"turns {start}-{end}",
        start=start,
        end=end,
        embedding=tuple(embedding),
        created_at=created_at,
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(StaticEmbedder())


class TestMemoryStoreAdd:
    def test_add_chunk(self, store: MemoryStore):
        store.add_chunk(chunk(1, 10))
        assert len(store) == 1
        assert store.covered_ranges() == [(1, 10)]

    def test_chunks_ordered_by_range(self, store: MemoryStore):
        store.add_chunk(chunk(11, 20))
        store.add_chunk(chunk(1, 10))
        assert store.covered_ranges() == [(1, 10), (11, 20)]

    @pytest.mark.parametrize("start,end", [(5, 15), (10, 10), (1, 1), (0, 30)])
    def test_overlap_rejected(self, store: MemoryStore, start, end):
        store.add_chunk(chunk(1, 10))
        with pytest.raises(InvalidArgument):
            store.add_chunk(chunk(start, end))
        assert store.covered_ranges() == [(1, 10)]

    def test_adjacent_ranges_allowed(self, store: MemoryStore):
        store.add_chunk(chunk(1, 10))
        store.add_chunk(chunk(11, 11))
        assert len(store) == 2

    @pytest.mark.parametrize("start,end", [(0, 3), (5, 4)])
    def test_invalid_range_rejected(self, store: MemoryStore, start, end):
        with pytest.raises(InvalidArgument):
            store.add_chunk(chunk(start, end))

    def test_empty_embedding_rejected(self, store: MemoryStore):
        with pytest.raises(InvalidArgument):
            store.add_chunk(chunk(1, 2, embedding=()))

    def test_is_covered(self, store: MemoryStore):
        store.add_chunk(chunk(3, 5))
        assert not store.is_covered(2)
        assert store.is_covered(3)
        assert store.is_covered(5)
        assert not store.is_covered(6)


class TestMemoryStoreSupersede:
    def test_supersede_replaces_contained_chunks(self, store: MemoryStore):
        old_a = chunk(1, 5)
        old_b = chunk(6, 10)
        store.add_chunk(old_a)
        store.add_chunk(old_b)
        store.add_chunk(chunk(11, 15))

        replaced = store.supersede(chunk(1, 10, summary="merged"))

        assert replaced == [old_a, old_b]
        assert store.covered_ranges() == [(1, 10), (11, 15)]
        assert store.chunks()[0].summary == "merged"

    def test_supersede_partial_overlap_rejected(self, store: MemoryStore):
        store.add_chunk(chunk(1, 10))
        with pytest.raises(InvalidArgument):
            store.supersede(chunk(5, 15))
        assert store.covered_ranges() == [(1, 10)]


class TestMemoryStoreQuery:
    @pytest.mark.asyncio
    async def test_ranked_by_descending_similarity(self):
        embedder = StaticEmbedder({"query": [1.0, 0.0]})
        store = MemoryStore(embedder)
        store.add_chunk(chunk(1, 2, embedding=(0.0, 1.0)))
        store.add_chunk(chunk(3, 4, embedding=(1.0, 0.0)))
        store.add_chunk(chunk(5, 6, embedding=(1.0, 1.0)))

        results = await store.query("query", k=3)

        assert [r.chunk.start for r in results] == [3, 5, 1]
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert results[0].score == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_ties_broken_by_newest_first(self, store: MemoryStore):
        store.add_chunk(chunk(1, 2, created_at=100.0))
        store.add_chunk(chunk(3, 4, created_at=300.0))
        store.add_chunk(chunk(5, 6, created_at=200.0))

        results = await store.query("anything", k=3)

        assert [r.chunk.created_at for r in results] == [300.0, 200.0, 100.0]

    @pytest.mark.asyncio
    async def test_k_limits_results(self, store: MemoryStore):
        for i in range(5):
            store.add_chunk(chunk(i * 2 + 1, i * 2 + 2))
        assert len(await store.query("q", k=2)) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("k", [0, -1])
    async def test_non_positive_k_returns_empty(self, store: MemoryStore, k):
        store.add_chunk(chunk(1, 2))
        assert await store.query("q", k=k) == []

    @pytest.mark.asyncio
    async def test_empty_store_skips_embedding(self):
        embedder = StaticEmbedder()
        store = MemoryStore(embedder)
        assert await store.query("q", k=3) == []
        assert embedder.calls == []

    @pytest.mark.asyncio
    async def test_min_similarity_filters(self):
        store = MemoryStore(StaticEmbedder({"q": [1.0, 0.0]}))
        store.add_chunk(chunk(1, 2, embedding=(0.0, 1.0)))
        store.add_chunk(chunk(3, 4, embedding=(1.0, 0.0)))

        results = await store.query("q", k=3, min_similarity=0.5)

        assert [r.chunk.start for r in results] == [3]

    @pytest.mark.asyncio
    async def test_query_does_not_mutate(self, store: MemoryStore):
        store.add_chunk(chunk(1, 2))
        before = store.chunks()
        await store.query("q", k=3)
        assert store.chunks() == before

    @pytest.mark.asyncio
    async def test_unavailable_backend_raises_not_ready(self):
        store = MemoryStore(UnavailableEmbedder())
        store.add_chunk(chunk(1, 2))
        with pytest.raises(NotReady):
            await store.query("q", k=1)

    @pytest.mark.asyncio
    async def test_backend_errors_surface_as_not_ready(self):
        store = MemoryStore(BrokenEmbedder())
        store.add_chunk(chunk(1, 2))
        with pytest.raises(NotReady, match="connection reset"):
            await store.query("q", k=1)

    @pytest.mark.asyncio
    async def test_dimension_mismatch_raises_not_ready(self):
        store = MemoryStore(StaticEmbedder({"q": [1.0, 0.0, 0.0]}))
        store.add_chunk(chunk(1, 2))
        with pytest.raises(NotReady):
            await store.query("q", k=1)


class TestMemorySnapshot:
    @pytest.mark.asyncio
    async def test_snapshot_ignores_later_chunks(self, store: MemoryStore):
        store.add_chunk(chunk(1, 2))
        snapshot = store.snapshot()
        store.add_chunk(chunk(3, 4))

        results = await snapshot.query("q", k=5)

        assert len(snapshot) == 1
        assert [r.chunk.start for r in results] == [1]

    def test_clear(self, store: MemoryStore):
        store.add_chunk(chunk(1, 2))
        snapshot = store.snapshot()
        store.clear()
        assert len(store) == 0
        assert len(snapshot) == 1
