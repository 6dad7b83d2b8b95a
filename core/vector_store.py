"""SQLite-backed local storage for prompt embedding vectors.

Updates:
  v0.2.0 - 2026-09-21 - Persist the producing model identifier alongside each vector.
  v0.1.1 - 2026-09-16 - Add count and prompt id helpers for sync reconciliation.
  v0.1.0 - 2026-09-14 - Introduce embedding store with upsert/get/delete/clear.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from models.embedding_model import EmbeddingRecord, coerce_vector

from .exceptions import VectorStoreError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

logger = logging.getLogger("prompt_paster.vector_store")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS embeddings (
    prompt_id TEXT PRIMARY KEY,
    embedding TEXT NOT NULL,
    dimension INTEGER NOT NULL,
    model_id TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_embeddings_created_at ON embeddings(created_at);
"""


def connect(db_path: Path) -> sqlite3.Connection:
    """Return a configured SQLite connection."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL;")
    conn.execute("PRAGMA synchronous = NORMAL;")
    return conn


class EmbeddingStore:
    """Persist ``prompt_id -> embedding`` records in a single local database.

    Every operation runs in its own transaction. Writes to the same prompt id
    replace the previous record; writes to different ids are independent.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Remember the database location; the schema is created on first use."""
        self._db_path = Path(db_path)
        self._initialised = False

    @property
    def db_path(self) -> Path:
        """Filesystem location of the SQLite database."""
        return self._db_path

    def initialize(self) -> None:
        """Create the database directory and schema if they do not exist yet."""
        if self._initialised:
            return
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = connect(self._db_path)
            try:
                conn.executescript(_SCHEMA)
                conn.commit()
            finally:
                conn.close()
        except (OSError, sqlite3.Error) as exc:
            raise VectorStoreError(f"Failed to open embedding database at {self._db_path}") from exc
        self._initialised = True
        logger.debug("Embedding database ready", extra={"db_path": str(self._db_path)})

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        self.initialize()
        try:
            conn = connect(self._db_path)
        except sqlite3.Error as exc:
            raise VectorStoreError(f"Failed to {action}") from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise VectorStoreError(f"Failed to {action}") from exc
        finally:
            conn.close()

    # Writes ----------------------------------------------------------- #

    def put(self, record: EmbeddingRecord) -> None:
        """Insert or replace *record* keyed by its prompt id."""
        row = record.to_row()
        with self._transaction("store embedding") as conn:
            conn.execute(
                """
                INSERT INTO embeddings (prompt_id, embedding, dimension, model_id, created_at)
                VALUES (:prompt_id, :embedding, :dimension, :model_id, :created_at)
                ON CONFLICT(prompt_id) DO UPDATE SET
                    embedding = excluded.embedding,
                    dimension = excluded.dimension,
                    model_id = excluded.model_id,
                    created_at = excluded.created_at;
                """,
                row,
            )

    def put_embedding(
        self,
        prompt_id: str,
        embedding: Sequence[float],
        *,
        model_id: str | None = None,
    ) -> EmbeddingRecord:
        """Store *embedding* for *prompt_id* with a fresh timestamp and return the record."""
        record = EmbeddingRecord(
            prompt_id=str(prompt_id),
            embedding=coerce_vector(embedding),
            created_at=datetime.now(UTC),
            model_id=model_id,
        )
        self.put(record)
        return record

    def delete(self, prompt_id: str) -> None:
        """Remove the record for *prompt_id*; absent ids are ignored."""
        with self._transaction("delete embedding") as conn:
            conn.execute("DELETE FROM embeddings WHERE prompt_id = ?;", (str(prompt_id),))

    def clear(self) -> None:
        """Remove every stored embedding."""
        with self._transaction("clear embeddings") as conn:
            conn.execute("DELETE FROM embeddings;")
        logger.info("Cleared embedding store", extra={"db_path": str(self._db_path)})

    # Reads ------------------------------------------------------------ #

    def get_record(self, prompt_id: str) -> EmbeddingRecord | None:
        """Return the full record for *prompt_id* or ``None`` when absent."""
        with self._transaction("retrieve embedding") as conn:
            row = conn.execute(
                "SELECT * FROM embeddings WHERE prompt_id = ?;",
                (str(prompt_id),),
            ).fetchone()
        return EmbeddingRecord.from_row(row) if row is not None else None

    def get(self, prompt_id: str) -> list[float] | None:
        """Return the vector stored for *prompt_id* or ``None`` when absent."""
        record = self.get_record(prompt_id)
        return record.embedding if record is not None else None

    def get_all(self) -> list[EmbeddingRecord]:
        """Return every stored record ordered by prompt id."""
        with self._transaction("retrieve embeddings") as conn:
            rows = conn.execute("SELECT * FROM embeddings ORDER BY prompt_id;").fetchall()
        return [EmbeddingRecord.from_row(row) for row in rows]

    def prompt_ids(self) -> set[str]:
        """Return the ids of every prompt that already has an embedding."""
        with self._transaction("list embedded prompts") as conn:
            rows = conn.execute("SELECT prompt_id FROM embeddings;").fetchall()
        return {str(row["prompt_id"]) for row in rows}

    def count(self) -> int:
        """Return the number of stored embeddings."""
        with self._transaction("count embeddings") as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM embeddings;").fetchone()
        return int(row["total"])

    def close(self) -> None:
        """Forget schema state so the next operation re-validates the database."""
        self._initialised = False


__all__ = ["EmbeddingStore", "connect"]
