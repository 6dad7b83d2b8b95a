"""Printable summaries for Prompt Paster configuration.

Updates:
  v0.1.0 - 2026-09-18 - Render embedding, LiteLLM, and search configuration.
"""

from __future__ import annotations

from config import DEFAULT_EMBEDDING_BACKEND, PromptPasterSettings

from .utils import describe_path, mask_secret


def render_settings_summary(settings: PromptPasterSettings) -> str:
    """Return a readable summary of the resolved configuration."""
    lines = [
        "Prompt Paster configuration summary",
        "-----------------------------------",
        "Embeddings database: "
        + describe_path(settings.embeddings_db_path, expect_directory=False, allow_missing=True),
        f"Prompts source: {describe_path(settings.prompts_path, expect_directory=None)}",
        "",
        "Embedding configuration",
        "-----------------------",
        f"Backend: {settings.embedding_backend or DEFAULT_EMBEDDING_BACKEND}",
        f"Model: {settings.embedding_model or 'n/a'}",
        f"Model identifier: {settings.model_identifier}",
        f"Device: {settings.embedding_device or 'auto'}",
        f"Dimension: {settings.embedding_dimension}",
        f"Embedding prefix: {settings.embedding_prefix or 'none'}",
        "",
        "LiteLLM configuration",
        "---------------------",
        f"Completion model: {settings.completion_model or 'not set'}",
        f"LiteLLM API key: {mask_secret(settings.litellm_api_key)}",
        f"LiteLLM API base: {settings.litellm_api_base or 'not set'}",
        f"LiteLLM logging: {'enabled' if settings.litellm_logging_enabled else 'disabled'}",
        "",
        "Timeouts and limits",
        "-------------------",
        f"Model initialisation: {settings.init_timeout_seconds:g}s",
        f"Generation: {settings.generation_timeout_seconds:g}s",
        f"Refinement: {settings.refinement_timeout_seconds:g}s",
        f"Max content length: {settings.max_content_length} characters",
        f"Search threshold: {settings.search_threshold:g}",
        f"Search results: {settings.search_top_k}",
        f"Max tags: {settings.max_tags}",
    ]
    return "\n".join(lines)


def print_settings_summary(settings: PromptPasterSettings) -> None:
    """Emit a readable summary of core configuration and health checks."""
    print(render_settings_summary(settings))
