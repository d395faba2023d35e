"""Bounded conversational context assembly for LLM assistants."""

from .config import ContextConfig, ModelConfig, config_from_env, load_config, save_config
from .context import CharTokenEstimator, ContextAssembler, MaintenanceWorker, assemble_context
from .conversation import Conversation, ConversationRegistry
from .errors import InvalidArgument, MaintenanceFailure, NotReady, ThreadwiseError
from .facts import FactStore, GroqFactExtractor, SQLiteFactStore
from .memory import GroqSummarizer, HashingEmbedder, HttpEmbedder, MemoryStore
from .models import AssembledContext, Fact, MemoryChunk, ScoredChunk, Turn

__version__ = "0.1.0"

__all__ = [
    "AssembledContext",
    "CharTokenEstimator",
    "ContextAssembler",
    "ContextConfig",
    "Conversation",
    "ConversationRegistry",
    "Fact",
    "FactStore",
    "GroqFactExtractor",
    "GroqSummarizer",
    "HashingEmbedder",
    "HttpEmbedder",
    "InvalidArgument",
    "MaintenanceFailure",
    "MaintenanceWorker",
    "MemoryChunk",
    "MemoryStore",
    "ModelConfig",
    "NotReady",
    "SQLiteFactStore",
    "ScoredChunk",
    "ThreadwiseError",
    "Turn",
    "assemble_context",
    "config_from_env",
    "load_config",
    "save_config",
]
