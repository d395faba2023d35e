"""Tests for JSONL event logging."""

import json
from pathlib import Path

import pytest

from threadwise.logging import JSONLLogger, LogEntry, configure_logger, get_logger


@pytest.fixture
def logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path)


def read_entries(logger: JSONLLogger) -> list[dict]:
    with open(logger.log_path) as f:
        return [json.loads(line) for line in f]


def test_log_entry_to_dict():
    """LogEntry excludes None and empty values."""
    data = LogEntry(timestamp="2024-01-01T00:00:00Z", event="test").to_dict()

    assert data == {"timestamp": "2024-01-01T00:00:00Z", "event": "test"}


def test_log_writes_jsonl(logger: JSONLLogger):
    logger.log("event1", conversation_id="c1")
    logger.log("event2", conversation_id="c2", detail="x")

    entries = read_entries(logger)

    assert [e["event"] for e in entries] == ["event1", "event2"]
    assert entries[0]["conversation_id"] == "c1"
    assert entries[1]["extra"] == {"detail": "x"}


def test_log_assembly(logger: JSONLLogger):
    logger.log_assembly(
        "c1",
        facts=2,
        memories=1,
        recent=8,
        estimated_tokens=300,
        token_budget=4000,
        duration_ms=1.5,
    )

    [entry] = read_entries(logger)
    assert entry["event"] == "assembly"
    assert entry["duration_ms"] == 1.5
    assert entry["extra"]["recent"] == 8
    assert entry["extra"]["over_budget"] is False


def test_log_summarization(logger: JSONLLogger):
    logger.log_summarization("c1", (1, 10), duration_ms=20.0)

    [entry] = read_entries(logger)
    assert entry["event"] == "summarization"
    assert entry["turn_range"] == [1, 10]


def test_log_maintenance_failure(logger: JSONLLogger):
    logger.log_maintenance_failure("c1", "extraction", "timeout", turn_range=(3, 3))

    [entry] = read_entries(logger)
    assert entry["event"] == "maintenance_failure"
    assert entry["error"] == "timeout"
    assert entry["extra"]["task"] == "extraction"


def test_log_facts_extracted(logger: JSONLLogger):
    logger.log_facts_extracted("c1", ["name", "project"], turn_index=4)

    [entry] = read_entries(logger)
    assert entry["extra"] == {"keys": ["name", "project"], "turn_index": 4}


def test_rotation(tmp_path: Path):
    logger = JSONLLogger(log_dir=tmp_path, max_size_mb=0.0001)  # ~100 bytes

    for i in range(10):
        logger.log("event", conversation_id="c1", payload="x" * 50)

    assert len(list(tmp_path.glob("events_*.jsonl"))) > 0


def test_configure_logger_replaces_global(tmp_path: Path):
    configured = configure_logger(log_dir=tmp_path)
    assert get_logger() is configured
    assert configured.log_dir == tmp_path
