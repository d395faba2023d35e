"""Memory of older conversation segments."""

from .embedding import Embedder, HashingEmbedder, HttpEmbedder, cosine_similarity
from .store import MemorySnapshot, MemoryStore, rank_chunks
from .summarizer import GroqSummarizer, Summarizer, format_transcript

__all__ = [
    "Embedder",
    "GroqSummarizer",
    "HashingEmbedder",
    "HttpEmbedder",
    "MemorySnapshot",
    "MemoryStore",
    "Summarizer",
    "cosine_similarity",
    "format_transcript",
    "rank_chunks",
]
