"""Embedding record and sync progress dataclasses.

Updates: v0.2.0 - 2026-09-21 - Stamp records with the producing model identifier.
Updates: v0.1.1 - 2026-09-16 - Track per-item sync failures alongside counts.
Updates: v0.1.0 - 2026-09-14 - Initial embedding record, progress, and match schemas.
"""
from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


def _utc_now() -> datetime:
    """Return an aware UTC timestamp."""
    return datetime.now(UTC)


def _ensure_datetime(value: Any) -> datetime:
    """Parse stored timestamps (isoformat strings or datetime) into aware datetimes."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if value is None:
        return _utc_now()
    parsed = datetime.fromisoformat(str(value))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def coerce_vector(values: Sequence[Any]) -> list[float]:
    """Return *values* as a list of floats, rejecting non-numeric entries."""
    if isinstance(values, (str, bytes)):
        raise TypeError("embedding must be a sequence of numbers")
    return [float(value) for value in values]


@dataclass(slots=True)
class EmbeddingRecord:
    """Stored embedding vector for a single prompt."""

    prompt_id: str
    embedding: list[float]
    created_at: datetime = field(default_factory=_utc_now)
    model_id: str | None = None

    @property
    def dimension(self) -> int:
        """Length of the stored vector."""
        return len(self.embedding)

    def to_row(self) -> dict[str, Any]:
        """Return a mapping suitable for SQLite persistence."""
        return {
            "prompt_id": self.prompt_id,
            "embedding": json.dumps(self.embedding),
            "dimension": len(self.embedding),
            "model_id": self.model_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> EmbeddingRecord:
        """Hydrate a record from a SQLite row mapping."""
        raw_embedding = row["embedding"]
        if isinstance(raw_embedding, (bytes, str)):
            raw_embedding = json.loads(raw_embedding)
        return cls(
            prompt_id=str(row["prompt_id"]),
            embedding=coerce_vector(raw_embedding),
            created_at=_ensure_datetime(row["created_at"]),
            model_id=row["model_id"] if row["model_id"] else None,
        )


@dataclass(slots=True, frozen=True)
class SimilarityMatch:
    """Prompt identifier paired with its cosine similarity to a query."""

    prompt_id: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase payload consumed by the UI layer."""
        return {"promptId": self.prompt_id, "score": self.score}


@dataclass(slots=True, frozen=True)
class SyncProgress:
    """Snapshot emitted before each item of an embedding sync run and once at the end."""

    total: int
    completed: int
    failed: int
    current_prompt_id: str | None = None

    @property
    def processed(self) -> int:
        """Number of items that finished, successfully or not."""
        return self.completed + self.failed

    def to_dict(self) -> dict[str, Any]:
        """Return a serialisable representation of the snapshot."""
        payload: dict[str, Any] = {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
        }
        if self.current_prompt_id is not None:
            payload["currentPromptId"] = self.current_prompt_id
        return payload


@dataclass(slots=True, frozen=True)
class SyncFailure:
    """Prompt that could not be embedded during a sync run."""

    prompt_id: str
    reason: str


@dataclass(slots=True)
class SyncResult:
    """Outcome of a sync or regeneration run."""

    success: int = 0
    failed: int = 0
    failures: list[SyncFailure] = field(default_factory=list)
    cancelled: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return a serialisable representation of the result."""
        return {
            "success": self.success,
            "failed": self.failed,
            "failures": [
                {"promptId": failure.prompt_id, "reason": failure.reason}
                for failure in self.failures
            ],
            "cancelled": self.cancelled,
        }


@dataclass(slots=True, frozen=True)
class ModelLoadProgress:
    """Fractional model load progress with a human readable stage message."""

    progress: float
    message: str


__all__ = [
    "EmbeddingRecord",
    "ModelLoadProgress",
    "SimilarityMatch",
    "SyncFailure",
    "SyncProgress",
    "SyncResult",
    "coerce_vector",
]
