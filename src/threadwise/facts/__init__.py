"""Fact storage and extraction."""

from .extractor import FactExtractor, GroqFactExtractor
from .store import FactStore, SQLiteFactStore

__all__ = [
    "FactExtractor",
    "FactStore",
    "GroqFactExtractor",
    "SQLiteFactStore",
]
