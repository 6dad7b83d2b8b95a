"""Load prompt documents from disk for embedding synchronisation.

Two layouts are accepted: a directory holding one ``<id>.json`` document per
prompt (the drive layout), or a single JSON file containing an array of prompt
documents (an export).

Updates:
  v0.2.0 - 2026-09-28 - Validate prompts on request and collect per-file errors.
  v0.1.0 - 2026-09-18 - Read drive folders and JSON exports.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from models.prompt_model import Prompt, validate_prompt

from .exceptions import PromptSourceError, PromptValidationError

logger = logging.getLogger("prompt_paster.prompt_source")


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise PromptSourceError(f"Unable to read prompt source {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise PromptSourceError(f"Invalid JSON in {path}: {exc}") from exc


def _to_prompt(payload: Any, origin: str, *, validate: bool) -> Prompt:
    if not isinstance(payload, dict):
        raise PromptSourceError(f"{origin} does not contain a prompt object")
    try:
        prompt = Prompt.from_dict(payload)
    except (TypeError, ValueError) as exc:
        raise PromptSourceError(f"{origin}: {exc}") from exc
    if validate:
        errors = validate_prompt(prompt)
        if errors:
            raise PromptValidationError(errors)
    return prompt


def _load_directory(directory: Path, *, validate: bool, strict: bool) -> list[Prompt]:
    prompts: list[Prompt] = []
    for path in sorted(directory.glob("*.json")):
        try:
            prompts.append(_to_prompt(_read_json(path), path.name, validate=validate))
        except (PromptSourceError, PromptValidationError) as exc:
            if strict:
                raise
            logger.warning("Skipping prompt file %s: %s", path.name, exc)
    return prompts


def _load_export(path: Path, *, validate: bool, strict: bool) -> list[Prompt]:
    payload = _read_json(path)
    if isinstance(payload, dict) and isinstance(payload.get("prompts"), list):
        payload = payload["prompts"]
    if not isinstance(payload, list):
        raise PromptSourceError(f"{path} must contain a JSON array of prompts")
    prompts: list[Prompt] = []
    for index, entry in enumerate(payload):
        try:
            prompts.append(_to_prompt(entry, f"{path.name}[{index}]", validate=validate))
        except (PromptSourceError, PromptValidationError) as exc:
            if strict:
                raise
            logger.warning("Skipping prompt entry %s[%d]: %s", path.name, index, exc)
    return prompts


def load_prompts(
    source: Path | str,
    *,
    validate: bool = False,
    strict: bool = False,
) -> list[Prompt]:
    """Return the prompts stored at *source*.

    Args:
      source: A directory of ``<id>.json`` documents or a JSON export file.
      validate: Apply the library validation rules to each prompt.
      strict: Raise on the first invalid entry instead of skipping it.

    Raises:
      PromptSourceError: *source* is missing, unreadable, or malformed.
      PromptValidationError: ``strict`` and ``validate`` are set and a prompt is invalid.
    """
    path = Path(source).expanduser()
    if path.is_dir():
        prompts = _load_directory(path, validate=validate, strict=strict)
    elif path.is_file():
        prompts = _load_export(path, validate=validate, strict=strict)
    else:
        raise PromptSourceError(f"Prompt source not found: {path}")
    logger.debug("Loaded prompts", extra={"source": str(path), "count": len(prompts)})
    return prompts


def list_folders(prompts: list[Prompt]) -> list[str]:
    """Return the distinct folder paths used by *prompts*, sorted."""
    return sorted({prompt.folder_path for prompt in prompts if prompt.folder_path})


__all__ = ["list_folders", "load_prompts"]
