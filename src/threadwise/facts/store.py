"""Storage for durable conversation facts."""

from __future__ import annotations

import sqlite3
import time
from pathlib import Path

from ..errors import InvalidArgument
from ..models import Fact


def _validate_key(key: str) -> str:
    if not isinstance(key, str) or not key.strip():
        raise InvalidArgument(f"Fact key must be a non-empty string, got {key!r}")
    return key.strip()


class FactStore:
    """In-memory fact storage for a single conversation.

    Keys are unique. Upserting an existing key overwrites its value and
    timestamp but keeps its original position, so `get_all` reflects the
    order in which keys were first seen.
    """

    def __init__(self) -> None:
        self._facts: dict[str, Fact] = {}

    def upsert(self, key: str, value: str) -> Fact:
        """Insert or overwrite a fact.

        Args:
            key: The fact key. Surrounding whitespace is stripped.
            value: The fact value.

        Returns:
            The stored fact.

        Raises:
            InvalidArgument: If the key is empty.
        """
        key = _validate_key(key)
        fact = Fact(key=key, value=str(value), updated_at=time.time())
        self._facts[key] = fact
        return fact

    def get(self, key: str) -> Fact | None:
        return self._facts.get(key)

    def get_all(self) -> dict[str, str]:
        """Return a copy of the current key -> value mapping in insertion order."""
        return {key: fact.value for key, fact in self._facts.items()}

    def facts(self) -> list[Fact]:
        """Return a snapshot of the stored facts in insertion order."""
        return list(self._facts.values())

    def clear(self) -> None:
        self._facts.clear()

    def __len__(self) -> int:
        return len(self._facts)


class SQLiteFactStore:
    """Fact storage persisted in a SQLite database.

    Same contract as FactStore, with one row per key so that facts survive
    process restarts. Insertion order is the row id order.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the store with a database path.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def init_db(self) -> None:
        """Create the facts table if it doesn't exist."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS facts (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                key         TEXT NOT NULL UNIQUE,
                value       TEXT NOT NULL,
                updated_at  REAL NOT NULL
            )
        """)
        conn.commit()

    def upsert(self, key: str, value: str) -> Fact:
        """Insert or overwrite a fact, keeping the row of an existing key.

        Raises:
            InvalidArgument: If the key is empty.
        """
        key = _validate_key(key)
        fact = Fact(key=key, value=str(value), updated_at=time.time())
        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO facts (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (fact.key, fact.value, fact.updated_at),
        )
        conn.commit()
        return fact

    def get(self, key: str) -> Fact | None:
        conn = self._get_connection()
        row = conn.execute(
            "SELECT key, value, updated_at FROM facts WHERE key = ?", (key,)
        ).fetchone()
        return self._row_to_fact(row) if row is not None else None

    def get_all(self) -> dict[str, str]:
        return {fact.key: fact.value for fact in self.facts()}

    def facts(self) -> list[Fact]:
        conn = self._get_connection()
        cursor = conn.execute("SELECT key, value, updated_at FROM facts ORDER BY id")
        return [self._row_to_fact(row) for row in cursor.fetchall()]

    def clear(self) -> None:
        conn = self._get_connection()
        conn.execute("DELETE FROM facts")
        conn.commit()

    def __len__(self) -> int:
        conn = self._get_connection()
        return conn.execute("SELECT COUNT(*) FROM facts").fetchone()[0]

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _row_to_fact(self, row: sqlite3.Row) -> Fact:
        return Fact(key=row["key"], value=row["value"], updated_at=row["updated_at"])
