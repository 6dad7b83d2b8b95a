"""Shared CLI utility functions for Prompt Paster commands.

Updates:
  v0.1.1 - 2026-10-19 - Add a JSON printer for machine-readable command output.
  v0.1.0 - 2026-09-18 - Stdout logging, masking, path, and score helpers.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from logging import Logger


def print_and_log(logger: Logger, level: int, message: str) -> None:
    """Log *message* at *level* and mirror it to stdout."""
    logger.log(level, message)
    print(message)


def mask_secret(value: str | None) -> str:
    """Return an obfuscated representation of secret configuration values."""
    if not value:
        return "not set"
    secret = value.strip()
    if len(secret) <= 6:
        return "set (****)"
    return f"set ({secret[:4]}...{secret[-4:]})"


def describe_path(
    path_value: object,
    *,
    expect_directory: bool | None,
    allow_missing: bool = False,
) -> str:
    """Return a human-friendly description of *path_value* suitability.

    ``expect_directory=None`` accepts either a file or a directory.
    """
    if path_value is None:
        return "not set"
    resolved = Path(str(path_value)).expanduser()
    if resolved.exists():
        if expect_directory is True and not resolved.is_dir():
            return f"{resolved} (exists but is not a directory)"
        if expect_directory is False and resolved.is_dir():
            return f"{resolved} (exists but is a directory)"
        return f"{resolved} (exists)"
    if allow_missing:
        return f"{resolved} (missing - created on demand)"
    return f"{resolved} (missing)"


def format_score(score: float) -> str:
    """Return a cosine similarity formatted for listings."""
    return f"{score:.3f}"


def print_json(payload: Any) -> None:
    """Write *payload* to stdout as indented JSON."""
    print(json.dumps(payload, indent=2, ensure_ascii=False))
