"""Tests for prompt parsing and validation rules.

Updates:
  v0.2.1 - 2026-10-19 - Cover optional drive fields in place of serializer round trips.
  v0.2.0 - 2026-09-28 - Cover library validation rules.
  v0.1.0 - 2026-09-14 - Cover drive document round trips.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from models.prompt_model import MAX_TAGS, MAX_TITLE_LENGTH, Prompt, validate_prompt


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": "prompt-1",
        "title": "Summarise",
        "content": "Summarise {text} in three bullet points.",
        "tags": ["writing", "summary"],
        "folderPath": "/Writing/",
        "createdAt": "2026-09-01T10:00:00Z",
        "modifiedAt": "2026-09-02T11:30:00+00:00",
        "isTemplate": True,
        "variables": ["text"],
        "viewCount": 4,
        "version": 2,
    }
    payload.update(overrides)
    return payload


def test_from_dict_parses_drive_document() -> None:
    prompt = Prompt.from_dict(_payload())

    assert prompt.id == "prompt-1"
    assert prompt.folder_path == "/Writing/"
    assert prompt.created_at == datetime(2026, 9, 1, 10, 0, tzinfo=UTC)
    assert prompt.is_template is True
    assert prompt.variables == ["text"]
    assert prompt.view_count == 4
    assert prompt.last_used_at is None


def test_from_dict_reads_optional_drive_fields() -> None:
    prompt = Prompt.from_dict(
        _payload(sourceUrl="https://example.com/post", lastUsedAt="2026-09-03T08:00:00Z")
    )

    assert prompt.source_url == "https://example.com/post"
    assert prompt.last_used_at == datetime(2026, 9, 3, 8, 0, tzinfo=UTC)
    assert prompt.version == 2


def test_from_dict_accepts_snake_case_keys() -> None:
    prompt = Prompt.from_dict(
        {"id": 7, "content": "Body", "folder_path": "/Misc/", "last_used_at": "2026-09-03"}
    )

    assert prompt.id == "7"
    assert prompt.folder_path == "/Misc/"
    assert prompt.last_used_at == datetime(2026, 9, 3, tzinfo=UTC)


def test_from_dict_requires_id() -> None:
    with pytest.raises(ValueError, match="missing an id"):
        Prompt.from_dict({"content": "orphan"})


def test_valid_prompt_has_no_errors() -> None:
    assert validate_prompt(Prompt.from_dict(_payload())) == []


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"title": "  "}, "Title is required"),
        ({"title": "x" * (MAX_TITLE_LENGTH + 1)}, "Title must be"),
        ({"content": ""}, "Content is required"),
        ({"folderPath": "Writing/"}, "Folder path must start with /"),
        ({"tags": [f"t{index}" for index in range(MAX_TAGS + 1)]}, "Maximum 10 tags allowed"),
    ],
)
def test_validation_messages(overrides: dict[str, object], message: str) -> None:
    errors = validate_prompt(Prompt.from_dict(_payload(**overrides)))

    assert any(error.startswith(message) for error in errors)
