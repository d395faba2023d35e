"""Configuration for context assembly and maintenance.

Loads settings from ~/.threadwise/config.json and from THREADWISE_*
environment variables.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from .llm import DEFAULT_MODEL

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".threadwise" / "config.json"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class ContextConfig:
    """Knobs for context assembly.

    Attributes:
        window: Number of most recent turns kept verbatim (8 = 4 exchanges).
        memory_k: Number of memory chunks retrieved per assembly.
        token_budget: Upper bound on the estimated size of a context.
        summarize_every: Unsummarized turns beyond the window that trigger a
            summarization, and the maximum size of one summarized range.
        chars_per_token: Ratio used by the default token estimator.
        min_similarity: Chunks scoring below this are never retrieved.
        extract_facts: Whether new turns are sent to the fact extractor.
    """

    window: int = 8
    memory_k: int = 3
    token_budget: int = 4000
    summarize_every: int = 10
    chars_per_token: float = 4.0
    min_similarity: float | None = None
    extract_facts: bool = True

    def __post_init__(self) -> None:
        """Validate config values."""
        for name in ("window", "memory_k", "token_budget", "summarize_every"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        if not _is_number(self.chars_per_token):
            raise ValueError(f"chars_per_token must be a number, got {self.chars_per_token!r}")
        if self.min_similarity is not None and not _is_number(self.min_similarity):
            raise ValueError(f"min_similarity must be a number, got {self.min_similarity!r}")
        if not isinstance(self.extract_facts, bool):
            raise ValueError(f"extract_facts must be a boolean, got {self.extract_facts!r}")
        if self.window < 1:
            raise ValueError("window must be at least 1")
        if self.memory_k < 0:
            raise ValueError("memory_k must not be negative")
        if self.token_budget < 1:
            raise ValueError("token_budget must be at least 1")
        if self.summarize_every < 1:
            raise ValueError("summarize_every must be at least 1")
        if self.chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")


@dataclass
class ModelConfig:
    """LLM and embedding backends used by the CLI."""

    model: str = DEFAULT_MODEL
    api_key: str | None = None
    embeddings_url: str | None = None
    embeddings_model: str = "text-embedding-3-small"
    embeddings_api_key: str | None = None


def load_config(config_path: Path | None = None) -> ContextConfig:
    """Load ContextConfig from a JSON file.

    The config file should have this structure:
    ```json
    {
      "context": {
        "window": 8,
        "memory_k": 3,
        "token_budget": 4000,
        "summarize_every": 10
      }
    }
    ```

    Unknown keys are ignored. Missing or unreadable files yield defaults.

    Args:
        config_path: Path to config file. Uses DEFAULT_CONFIG_PATH if None.

    Returns:
        ContextConfig instance with loaded values.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return ContextConfig()

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in %s: %s. Using defaults.", path, e)
        return ContextConfig()
    except OSError as e:
        logger.warning("Cannot read %s: %s. Using defaults.", path, e)
        return ContextConfig()

    return _parse_config(data)


def _parse_config(data: Any) -> ContextConfig:
    """Parse config dictionary into ContextConfig, defaults on invalid values."""
    section = data.get("context", {}) if isinstance(data, dict) else {}
    if not isinstance(section, dict):
        return ContextConfig()

    known = {f.name for f in fields(ContextConfig)}
    values = {k: v for k, v in section.items() if k in known}
    try:
        return ContextConfig(**values)
    except (TypeError, ValueError) as e:
        logger.warning("Invalid context config %s: %s. Using defaults.", values, e)
        return ContextConfig()


def save_config(config: ContextConfig, config_path: Path | None = None) -> None:
    """Save ContextConfig to a JSON file, writing only non-default values.

    Args:
        config: The config to save.
        config_path: Path to write to. Uses DEFAULT_CONFIG_PATH if None.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    defaults = asdict(ContextConfig())
    section = {k: v for k, v in asdict(config).items() if defaults[k] != v}
    data: dict[str, Any] = {"context": section} if section else {}

    try:
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        raise


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default


def config_from_env(base: ContextConfig | None = None) -> tuple[ContextConfig, ModelConfig]:
    """Load configuration from environment variables on top of `base`."""
    base = base or ContextConfig()
    context_config = ContextConfig(
        window=_env_int("THREADWISE_WINDOW", base.window),
        memory_k=_env_int("THREADWISE_MEMORY_K", base.memory_k),
        token_budget=_env_int("THREADWISE_TOKEN_BUDGET", base.token_budget),
        summarize_every=_env_int("THREADWISE_SUMMARIZE_EVERY", base.summarize_every),
        chars_per_token=base.chars_per_token,
        min_similarity=base.min_similarity,
        extract_facts=os.getenv("THREADWISE_EXTRACT_FACTS", "1").lower()
        not in ("0", "false", "no")
        and base.extract_facts,
    )

    model_config = ModelConfig(
        model=os.getenv("GROQ_MODEL", DEFAULT_MODEL),
        api_key=os.getenv("GROQ_API_KEY"),
        embeddings_url=os.getenv("THREADWISE_EMBEDDINGS_URL"),
        embeddings_model=os.getenv("THREADWISE_EMBEDDINGS_MODEL", "text-embedding-3-small"),
        embeddings_api_key=os.getenv("THREADWISE_EMBEDDINGS_API_KEY"),
    )

    return context_config, model_config
