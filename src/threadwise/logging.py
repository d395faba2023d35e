"""JSONL event logging for context assembly and maintenance."""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class LogEntry:
    """A single log entry."""

    timestamp: str
    event: str
    conversation_id: str | None = None
    duration_ms: float | None = None
    turn_range: list[int] | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {} and v != []}


class JSONLLogger:
    """Logger that writes structured logs in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "events.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".threadwise" / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)

    @property
    def log_path(self) -> Path:
        """Current log file path."""
        return self.log_dir / self.filename

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size."""
        if not self.log_path.exists():
            return

        if self.log_path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
            rotated_name = f"{self.log_path.stem}_{timestamp}.jsonl"
            self.log_path.rename(self.log_dir / rotated_name)

    def _write(self, entry: LogEntry) -> None:
        """Write a log entry to the file."""
        self._rotate_if_needed()

        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")

    def log(
        self,
        event: str,
        *,
        conversation_id: str | None = None,
        duration_ms: float | None = None,
        turn_range: tuple[int, int] | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            conversation_id=conversation_id,
            duration_ms=duration_ms,
            turn_range=list(turn_range) if turn_range else None,
            error=error,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_assembly(
        self,
        conversation_id: str | None,
        *,
        facts: int,
        memories: int,
        recent: int,
        estimated_tokens: int,
        token_budget: int,
        memory_unavailable: bool = False,
        over_budget: bool = False,
        duration_ms: float | None = None,
    ) -> None:
        """Log the outcome of one assembly pass."""
        self.log(
            "assembly",
            conversation_id=conversation_id,
            duration_ms=duration_ms,
            facts=facts,
            memories=memories,
            recent=recent,
            estimated_tokens=estimated_tokens,
            token_budget=token_budget,
            memory_unavailable=memory_unavailable,
            over_budget=over_budget,
        )

    def log_summarization(
        self,
        conversation_id: str | None,
        turn_range: tuple[int, int],
        *,
        duration_ms: float | None = None,
    ) -> None:
        """Log a successful summarization."""
        self.log(
            "summarization",
            conversation_id=conversation_id,
            turn_range=turn_range,
            duration_ms=duration_ms,
        )

    def log_facts_extracted(
        self,
        conversation_id: str | None,
        keys: list[str],
        *,
        turn_index: int | None = None,
    ) -> None:
        """Log facts upserted from a turn."""
        self.log(
            "facts_extracted",
            conversation_id=conversation_id,
            keys=keys,
            turn_index=turn_index,
        )

    def log_maintenance_failure(
        self,
        conversation_id: str | None,
        task: str,
        error: str,
        *,
        turn_range: tuple[int, int] | None = None,
    ) -> None:
        """Log a failed summarization or extraction."""
        self.log(
            "maintenance_failure",
            conversation_id=conversation_id,
            turn_range=turn_range,
            error=error,
            task=task,
        )


# Global logger instance
_logger: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = JSONLLogger()
    return _logger


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Configure and return the global logger."""
    global _logger
    _logger = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _logger
