"""Dataclasses returned by the content analysis workflows.

Updates: v0.1.0 - 2026-09-21 - Add analysis result and refinement suggestion schemas.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True, frozen=True)
class AnalysisResult:
    """Title, tags, and folder suggested for freshly pasted content."""

    title: str
    tags: list[str] = field(default_factory=list)
    folder_path: str = "/"

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase payload consumed by the UI layer."""
        return {"title": self.title, "tags": list(self.tags), "folderPath": self.folder_path}


@dataclass(slots=True, frozen=True)
class RefinementSuggestion:
    """Alternative prompt wording produced by the refinement workflow."""

    content: str
    explanation: str
    changes: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: object) -> RefinementSuggestion | None:
        """Return a suggestion when *payload* carries the expected fields, else ``None``."""
        if not isinstance(payload, Mapping):
            return None
        content = payload.get("content")
        explanation = payload.get("explanation")
        changes = payload.get("changes")
        if not isinstance(content, str) or not isinstance(explanation, str):
            return None
        if not isinstance(changes, list) or not all(isinstance(item, str) for item in changes):
            return None
        return cls(content=content, explanation=explanation, changes=list(changes))

    def to_dict(self) -> dict[str, Any]:
        """Return a serialisable representation of the suggestion."""
        return {
            "content": self.content,
            "explanation": self.explanation,
            "changes": list(self.changes),
        }


__all__ = ["AnalysisResult", "RefinementSuggestion"]
