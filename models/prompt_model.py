"""Prompt data model definitions.

Updates: v0.2.1 - 2026-10-19 - Drop the unused drive serializer; prompts are read-only here.
Updates: v0.2.0 - 2026-09-28 - Parse drive prompt files and apply library validation rules.
Updates: v0.1.0 - 2026-09-14 - Initial Prompt schema with parsing helpers.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 50_000
MAX_TAGS = 10


def _utc_now() -> datetime:
    """Return an aware UTC timestamp."""
    return datetime.now(UTC)


def _ensure_datetime(value: Any) -> datetime:
    """Parse incoming datetime values (isoformat strings or datetime)."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if value is None:
        return _utc_now()
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _optional_datetime(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    return _ensure_datetime(value)


def _serialize_list(items: Iterable[Any] | None) -> list[str]:
    """Normalize iterable inputs into lists of strings."""
    if items is None:
        return []
    if isinstance(items, str):
        return [items]
    return [str(item) for item in items]


@dataclass(slots=True)
class Prompt:
    """Prompt stored in the user's library.

    Only :attr:`id` and :attr:`content` are required by the embedding core; the
    remaining fields mirror the JSON documents written to drive storage.
    """

    id: str
    content: str
    title: str = ""
    tags: list[str] = field(default_factory=list)
    folder_path: str = "/"
    created_at: datetime = field(default_factory=_utc_now)
    modified_at: datetime = field(default_factory=_utc_now)
    source_url: str | None = None
    is_template: bool = False
    variables: list[str] = field(default_factory=list)
    view_count: int = 0
    last_used_at: datetime | None = None
    version: int = 1

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Prompt:
        """Build a prompt from a drive JSON document (camelCase or snake_case keys)."""

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        prompt_id = pick("id")
        if prompt_id in (None, ""):
            raise ValueError("prompt payload is missing an id")
        return cls(
            id=str(prompt_id),
            content=str(pick("content", default="")),
            title=str(pick("title", default="")),
            tags=_serialize_list(pick("tags")),
            folder_path=str(pick("folderPath", "folder_path", default="/")),
            created_at=_ensure_datetime(pick("createdAt", "created_at")),
            modified_at=_ensure_datetime(pick("modifiedAt", "modified_at")),
            source_url=pick("sourceUrl", "source_url"),
            is_template=bool(pick("isTemplate", "is_template", default=False)),
            variables=_serialize_list(pick("variables")),
            view_count=int(pick("viewCount", "view_count", default=0)),
            last_used_at=_optional_datetime(pick("lastUsedAt", "last_used_at")),
            version=int(pick("version", default=1)),
        )


def validate_prompt(prompt: Prompt) -> list[str]:
    """Return validation messages for *prompt*; an empty list means valid."""
    errors: list[str] = []
    title = prompt.title or ""
    if not title.strip():
        errors.append("Title is required")
    elif len(title) > MAX_TITLE_LENGTH:
        errors.append(f"Title must be {MAX_TITLE_LENGTH} characters or less")

    content = prompt.content or ""
    if not content.strip():
        errors.append("Content is required")
    elif len(content) > MAX_CONTENT_LENGTH:
        errors.append(f"Content must be {MAX_CONTENT_LENGTH} characters or less")

    folder_path = prompt.folder_path or ""
    if not folder_path.strip():
        errors.append("Folder path is required")
    elif not folder_path.startswith("/"):
        errors.append("Folder path must start with /")

    if len(prompt.tags) > MAX_TAGS:
        errors.append(f"Maximum {MAX_TAGS} tags allowed")
    return errors


__all__ = ["MAX_CONTENT_LENGTH", "MAX_TAGS", "MAX_TITLE_LENGTH", "Prompt", "validate_prompt"]
