"""Shared LiteLLM adapters for Prompt Paster.

Updates:
  v0.2.0 - 2026-09-18 - Add completion text extraction helper for worker generation.
  v0.1.0 - 2026-09-14 - Provide lazy completion/embedding import helpers.
"""

from __future__ import annotations

import importlib
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, cast

if TYPE_CHECKING:
    from collections.abc import Callable


class LiteLLMNotInstalledError(RuntimeError):
    """Raised when LiteLLM is not available in the current environment."""


_completion: Callable[..., object] | None = None
_embedding: Callable[..., object] | None = None
_LiteLLMException: type[Exception] = Exception


def _ensure_loaded() -> None:
    """Import LiteLLM lazily so offline backends never pay its import cost."""
    global _completion, _embedding, _LiteLLMException
    if _completion is not None:
        return
    try:  # pragma: no cover - runtime import path
        litellm = importlib.import_module("litellm")
    except ImportError as exc:
        raise LiteLLMNotInstalledError(
            "LiteLLM integration requires the optional dependency 'litellm'. "
            "Install it with `pip install litellm` or `pip install .[llm]`."
        ) from exc

    completion = getattr(litellm, "completion", None)
    if completion is None:
        raise RuntimeError("litellm completion API is unavailable in the installed version.")
    embedding = getattr(litellm, "embedding", None)

    exceptions_module = importlib.import_module("litellm.exceptions")
    _completion = completion
    _embedding = embedding
    _LiteLLMException = getattr(exceptions_module, "LiteLLMException", Exception)


def get_completion() -> tuple[Callable[..., object], type[Exception]]:
    """Return the LiteLLM completion callable and exception type."""
    _ensure_loaded()
    assert _completion is not None
    return _completion, _LiteLLMException


def get_embedding() -> tuple[Callable[..., object], type[Exception]]:
    """Return the LiteLLM embedding callable and exception type."""
    _ensure_loaded()
    if _embedding is None:
        raise RuntimeError(
            "litellm embedding API is unavailable. Install a version that exposes "
            "`litellm.embedding` or configure a different embedding backend."
        )
    return _embedding, _LiteLLMException


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return cast("Mapping[str, Any]", item).get(name)
    return getattr(item, name, None)


def extract_completion_text(response: object) -> str:
    """Return the first choice's message content from a LiteLLM completion response."""
    payload: Any = response
    if not isinstance(payload, Mapping) and hasattr(payload, "model_dump"):
        payload = payload.model_dump()
    choices = _field(payload, "choices")
    if not choices:
        return ""
    message = _field(choices[0], "message")
    if message is None:
        return ""
    return str(_field(message, "content") or "")


__all__ = [
    "LiteLLMNotInstalledError",
    "extract_completion_text",
    "get_completion",
    "get_embedding",
]
