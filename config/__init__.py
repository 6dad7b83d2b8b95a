"""Configuration helpers for Prompt Paster.

Updates: v0.2.0 - 2026-09-21 - Export search and timeout defaults.
Updates: v0.1.0 - 2026-09-14 - Expose settings loader and configuration error types.
"""

from .settings import (
    DEFAULT_EMBEDDING_BACKEND,
    DEFAULT_GENERATION_TIMEOUT_SECONDS,
    DEFAULT_INIT_TIMEOUT_SECONDS,
    DEFAULT_MAX_CONTENT_LENGTH,
    DEFAULT_REFINEMENT_TIMEOUT_SECONDS,
    DEFAULT_SEARCH_THRESHOLD,
    DEFAULT_SEARCH_TOP_K,
    EMBEDDING_BACKENDS,
    PromptPasterSettings,
    SettingsError,
    load_settings,
)

__all__ = [
    "DEFAULT_EMBEDDING_BACKEND",
    "DEFAULT_GENERATION_TIMEOUT_SECONDS",
    "DEFAULT_INIT_TIMEOUT_SECONDS",
    "DEFAULT_MAX_CONTENT_LENGTH",
    "DEFAULT_REFINEMENT_TIMEOUT_SECONDS",
    "DEFAULT_SEARCH_THRESHOLD",
    "DEFAULT_SEARCH_TOP_K",
    "EMBEDDING_BACKENDS",
    "PromptPasterSettings",
    "SettingsError",
    "load_settings",
]
