"""Title, tag, folder, and refinement suggestions generated by the local model.

Updates:
  v0.2.0 - 2026-09-21 - Parse fenced JSON refinement suggestions.
  v0.1.0 - 2026-09-18 - Introduce content analysis on top of the AI service.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from models.analysis_model import AnalysisResult, RefinementSuggestion
from prompt_templates import (
    GENERATE_TAGS,
    GENERATE_TITLE,
    REFINE_PROMPT,
    SUGGEST_FOLDER,
    format_prompt,
)

from .exceptions import RefinementError

if TYPE_CHECKING:
    from .ai_service import AIService

logger = logging.getLogger("prompt_paster.analysis")

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?")


def parse_tags(text: str, max_tags: int) -> list[str]:
    """Split a comma-separated model reply into at most *max_tags* lowercase tags."""
    tags = [tag.strip().lower() for tag in text.split(",")]
    return [tag for tag in tags if tag][:max_tags]


def normalize_folder_path(text: str) -> str:
    """Return *text* as an absolute folder path ending in a slash."""
    path = text.strip().strip("\"'`").strip()
    if not path.startswith("/"):
        path = f"/{path}"
    if not path.endswith("/"):
        path = f"{path}/"
    return path


def parse_refinement_suggestions(text: str) -> list[RefinementSuggestion]:
    """Parse a refinement reply into suggestions.

    Raises:
      RefinementError: Invalid JSON, a missing ``suggestions`` array, or no valid entries.
    """
    payload_text = text.strip()
    if payload_text.startswith("```"):
        payload_text = _FENCE_PATTERN.sub("", payload_text).strip()
    try:
        parsed = json.loads(payload_text)
    except json.JSONDecodeError as exc:
        raise RefinementError("Failed to parse refinement suggestions: Invalid JSON") from exc
    raw_suggestions = parsed.get("suggestions") if isinstance(parsed, Mapping) else None
    if not isinstance(raw_suggestions, list):
        raise RefinementError("Invalid response format: missing suggestions array")
    suggestions = [
        suggestion
        for suggestion in map(RefinementSuggestion.from_payload, raw_suggestions)
        if suggestion is not None
    ]
    if not suggestions:
        raise RefinementError("No valid suggestions in response")
    return suggestions


class ContentAnalyzer:
    """Ask the model for metadata and improvements for pasted prompt content."""

    def __init__(
        self,
        ai_service: AIService,
        *,
        max_tags: int = 5,
        refinement_timeout_seconds: float = 60.0,
    ) -> None:
        """Bind the analyzer to an initialised :class:`AIService`."""
        self._ai_service = ai_service
        self._max_tags = max_tags
        self._refinement_timeout = refinement_timeout_seconds

    def _truncate(self, content: str) -> str:
        return content[: self._ai_service.max_content_length]

    async def generate_title(self, content: str) -> str:
        """Return a short descriptive title for *content*."""
        prompt = format_prompt(GENERATE_TITLE, {"content": self._truncate(content)})
        title = await self._ai_service.generate(prompt, temperature=0.3, max_tokens=50)
        return title.strip().strip("\"'").strip()

    async def generate_tags(self, content: str) -> list[str]:
        """Return lowercase tags describing *content*."""
        prompt = format_prompt(GENERATE_TAGS, {"content": self._truncate(content)})
        reply = await self._ai_service.generate(prompt, temperature=0.5, max_tokens=50)
        return parse_tags(reply, self._max_tags)

    async def suggest_folder(self, content: str, existing_folders: Sequence[str] = ()) -> str:
        """Return a folder path such as ``/Category/Subcategory/`` for *content*."""
        folders_text = "\n".join(existing_folders) if existing_folders else "No existing folders"
        prompt = format_prompt(
            SUGGEST_FOLDER,
            {"content": self._truncate(content), "existingFolders": folders_text},
        )
        reply = await self._ai_service.generate(prompt, temperature=0.3, max_tokens=30)
        return normalize_folder_path(reply)

    async def analyze_content(
        self,
        content: str,
        existing_folders: Sequence[str] = (),
    ) -> AnalysisResult:
        """Generate title, tags, and folder concurrently."""
        title, tags, folder_path = await asyncio.gather(
            self.generate_title(content),
            self.generate_tags(content),
            self.suggest_folder(content, existing_folders),
        )
        return AnalysisResult(title=title, tags=tags, folder_path=folder_path)

    async def refine_prompt(self, content: str) -> list[RefinementSuggestion]:
        """Return improved variants of *content* with explanations."""
        prompt = format_prompt(REFINE_PROMPT, {"content": self._truncate(content)})
        reply = await self._ai_service.generate(
            prompt,
            temperature=0.7,
            max_tokens=2000,
            timeout=self._refinement_timeout,
        )
        suggestions = parse_refinement_suggestions(reply)
        logger.debug("Parsed refinement suggestions", extra={"count": len(suggestions)})
        return suggestions


__all__ = [
    "ContentAnalyzer",
    "normalize_folder_path",
    "parse_refinement_suggestions",
    "parse_tags",
]
