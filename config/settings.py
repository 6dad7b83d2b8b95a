"""Settings management utilities for Prompt Paster configuration.

Updates:
  v0.3.0 - 2026-09-28 - Add prompt directory path and LiteLLM logging toggle.
  v0.2.1 - 2026-09-21 - Validate search threshold bounds and top-K positivity.
  v0.2.0 - 2026-09-18 - Add completion model and refinement timeout settings.
  v0.1.0 - 2026-09-14 - Introduce embedding, timeout, and search configuration.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

_DOTENV_FALLBACK_PATH = ".env"

DEFAULT_EMBEDDING_BACKEND = "deterministic"
DEFAULT_LITELLM_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_INIT_TIMEOUT_SECONDS = 30.0
DEFAULT_GENERATION_TIMEOUT_SECONDS = 30.0
DEFAULT_REFINEMENT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_CONTENT_LENGTH = 10_000
DEFAULT_EMBEDDING_DIMENSION = 768
DEFAULT_SEARCH_THRESHOLD = 0.6
DEFAULT_SEARCH_TOP_K = 5
DEFAULT_MAX_TAGS = 5

EMBEDDING_BACKENDS: tuple[str, ...] = ("deterministic", "litellm", "sentence-transformers")

# Field name -> environment keys read with the PROMPT_PASTER_ prefix; LITELLM_* also unprefixed.
_ENV_ALIASES: dict[str, list[str]] = {
    "embeddings_db_path": ["EMBEDDINGS_DB_PATH", "embeddings_db_path"],
    "prompts_path": ["PROMPTS_PATH", "prompts_path"],
    "embedding_backend": ["EMBEDDING_BACKEND", "embedding_backend"],
    "embedding_model": ["EMBEDDING_MODEL", "embedding_model"],
    "embedding_device": ["EMBEDDING_DEVICE", "embedding_device"],
    "embedding_dimension": ["EMBEDDING_DIMENSION", "embedding_dimension"],
    "embedding_prefix": ["EMBEDDING_PREFIX", "embedding_prefix"],
    "completion_model": ["COMPLETION_MODEL", "completion_model", "LITELLM_MODEL"],
    "litellm_api_key": ["LITELLM_API_KEY", "litellm_api_key"],
    "litellm_api_base": ["LITELLM_API_BASE", "litellm_api_base"],
    "litellm_logging_enabled": ["LITELLM_LOGGING_ENABLED", "litellm_logging_enabled"],
    "init_timeout_seconds": ["INIT_TIMEOUT_SECONDS", "init_timeout_seconds"],
    "generation_timeout_seconds": [
        "GENERATION_TIMEOUT_SECONDS",
        "generation_timeout_seconds",
    ],
    "refinement_timeout_seconds": [
        "REFINEMENT_TIMEOUT_SECONDS",
        "refinement_timeout_seconds",
    ],
    "max_content_length": ["MAX_CONTENT_LENGTH", "max_content_length"],
    "search_threshold": ["SEARCH_THRESHOLD", "search_threshold"],
    "search_top_k": ["SEARCH_TOP_K", "search_top_k"],
    "max_tags": ["MAX_TAGS", "max_tags"],
}

_JSON_CONFIG_KEYS: tuple[str, ...] = tuple(
    key for key in _ENV_ALIASES if key != "litellm_api_key"
)
_DISALLOWED_SECRET_KEYS = {"litellm_api_key", "LITELLM_API_KEY"}


def _read_dotenv_values() -> dict[str, str]:
    """Load ``.env`` entries into a mapping without mutating ``os.environ``."""
    env_file_override = os.getenv("PROMPT_PASTER_ENV_FILE")
    if env_file_override is not None:
        candidate = env_file_override.strip()
        if not candidate:
            return {}
        path = Path(candidate).expanduser()
    else:
        path = Path(_DOTENV_FALLBACK_PATH).expanduser()
    if not path.is_file():
        return {}
    raw_values = dotenv_values(str(path))
    return {str(key): str(value) for key, value in raw_values.items() if value is not None}


class SettingsError(Exception):
    """Raised when Prompt Paster configuration cannot be loaded or validated."""


class PromptPasterSettings(BaseSettings):
    """Application configuration sourced from environment variables or JSON files."""

    embeddings_db_path: Path = Field(default=Path("data") / "embeddings.db")
    prompts_path: Path | None = Field(
        default=None,
        description="Directory of <id>.json prompt files or a JSON export used by the CLI.",
    )
    embedding_backend: str = Field(
        default=DEFAULT_EMBEDDING_BACKEND,
        description="Embedding backend to use (deterministic, LiteLLM, sentence-transformers).",
    )
    embedding_model: str | None = Field(
        default=None,
        description=(
            "Model name for the embedding backend (required for LiteLLM and sentence-transformers)."
        ),
    )
    embedding_device: str | None = Field(
        default=None,
        description="Preferred accelerator for local embedding backends (cpu, cuda, mps).",
    )
    embedding_dimension: int = Field(
        default=DEFAULT_EMBEDDING_DIMENSION,
        description="Expected embedding dimension, reported in diagnostics.",
    )
    embedding_prefix: str = Field(
        default="",
        description="Instruction text prepended to content before it is embedded.",
    )
    completion_model: str | None = Field(
        default=None,
        description="LiteLLM model used for titles, tags, folders, and refinement.",
    )
    litellm_api_key: str | None = Field(default=None, description="LiteLLM API key.", repr=False)
    litellm_api_base: str | None = Field(
        default=None,
        description="Optional LiteLLM API base URL override.",
    )
    litellm_logging_enabled: bool = Field(
        default=False,
        description="Emit LiteLLM's own library logs.",
    )
    init_timeout_seconds: float = Field(default=DEFAULT_INIT_TIMEOUT_SECONDS)
    generation_timeout_seconds: float = Field(default=DEFAULT_GENERATION_TIMEOUT_SECONDS)
    refinement_timeout_seconds: float = Field(default=DEFAULT_REFINEMENT_TIMEOUT_SECONDS)
    max_content_length: int = Field(
        default=DEFAULT_MAX_CONTENT_LENGTH,
        description="Characters of prompt content submitted to the model.",
    )
    search_threshold: float = Field(
        default=DEFAULT_SEARCH_THRESHOLD,
        description="Minimum cosine similarity returned by semantic search.",
    )
    search_top_k: int = Field(
        default=DEFAULT_SEARCH_TOP_K,
        description="Maximum number of semantic search results.",
    )
    max_tags: int = Field(default=DEFAULT_MAX_TAGS, description="Tags kept from AI suggestions.")

    model_config = cast(
        "SettingsConfigDict",
        {
            "env_prefix": "PROMPT_PASTER_",
            "case_sensitive": False,
            "populate_by_name": True,
        },
    )

    @field_validator("embeddings_db_path", mode="before")
    def _normalise_path(cls, value: Any) -> Path:
        """Expand user-relative paths and coerce values to Path instances."""
        if value is None or str(value).strip() == "":
            raise ValueError("a filesystem path is required")
        return Path(str(value)).expanduser().resolve()

    @field_validator("prompts_path", mode="before")
    def _normalise_optional_path(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(str(value)).expanduser().resolve()

    @field_validator(
        "embedding_model",
        "embedding_device",
        "completion_model",
        "litellm_api_key",
        "litellm_api_base",
        mode="before",
    )
    def _strip_strings(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = str(value).strip()
        return stripped or None

    @field_validator("embedding_backend", mode="before")
    def _normalise_embedding_backend(cls, value: str | None) -> str:
        if value is None:
            return DEFAULT_EMBEDDING_BACKEND
        backend = str(value).strip().lower()
        if backend in {"", "default", "deterministic"}:
            return "deterministic"
        if backend in {"litellm", "openai"}:
            return "litellm"
        if backend in {"sentence-transformers", "sentence_transformers", "st"}:
            return "sentence-transformers"
        raise ValueError(f"Unsupported embedding backend '{value}'")

    @field_validator("embedding_device", mode="after")
    def _normalise_device(cls, value: str | None) -> str | None:
        if value is None:
            return None
        device = value.lower()
        if device.split(":", 1)[0] not in {"cpu", "cuda", "mps"}:
            raise ValueError("embedding_device must be cpu, cuda, cuda:<index>, or mps")
        return device

    @field_validator(
        "init_timeout_seconds",
        "generation_timeout_seconds",
        "refinement_timeout_seconds",
    )
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be greater than zero")
        return value

    @field_validator("max_content_length", "search_top_k", "max_tags", "embedding_dimension")
    def _validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("search_threshold")
    def _validate_threshold(cls, value: float) -> float:
        if not -1.0 <= value <= 1.0:
            raise ValueError("search_threshold must be between -1 and 1")
        return value

    @model_validator(mode="after")
    def _validate_embedding_configuration(self) -> PromptPasterSettings:
        backend = self.embedding_backend
        model = self.embedding_model

        if backend == "litellm" and not model:
            object.__setattr__(self, "embedding_model", DEFAULT_LITELLM_EMBEDDING_MODEL)
            return self

        if backend == "deterministic" and model:
            object.__setattr__(self, "embedding_model", None)
            return self

        if backend == "sentence-transformers" and not model:
            raise ValueError(
                "embedding_model must be provided when embedding_backend is 'sentence-transformers'"
            )
        return self

    @property
    def model_identifier(self) -> str:
        """Identifier stamped on stored embeddings (backend plus model name)."""
        if self.embedding_model:
            return f"{self.embedding_backend}:{self.embedding_model}"
        return self.embedding_backend

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
    ]:
        """Define configuration source precedence.

        Order (highest → lowest):
            1. Explicit keyword arguments (e.g. load_settings(search_top_k=10)).
            2. JSON configuration file.
            3. Environment variables / ``.env`` values and aliases.
            4. File secrets.
        """

        def env_with_aliases(_: BaseSettings | None = None) -> dict[str, Any]:
            data: dict[str, Any] = {}
            config_dict = cast("dict[str, Any]", cls.model_config)
            prefix = str(config_dict.get("env_prefix", ""))
            dotenv_entries = _read_dotenv_values()

            def _lookup(candidate: str) -> str | None:
                value = os.getenv(candidate)
                if value is None:
                    value = dotenv_entries.get(candidate)
                if value is None:
                    return None
                stripped_value = str(value).strip()
                return stripped_value or None

            for field_name, keys in _ENV_ALIASES.items():
                for key in keys:
                    candidates = [f"{prefix}{key}", f"{prefix}{key.upper()}"]
                    if key.isupper() and key.startswith("LITELLM_"):
                        candidates.append(key)
                    value = next(
                        (found for found in map(_lookup, candidates) if found is not None),
                        None,
                    )
                    if value is not None:
                        data[field_name] = value
                        break
            return data

        return (
            init_settings,
            cls._json_config_settings_source(settings_cls),
            cast("PydanticBaseSettingsSource", env_with_aliases),
            file_secret_settings,
        )

    @classmethod
    def _json_config_settings_source(
        cls,
        _: type[BaseSettings],
    ) -> PydanticBaseSettingsSource:
        """Return settings extracted from an optional JSON config file."""

        def _loader(_: BaseSettings | None = None) -> dict[str, Any]:
            explicit_path = os.getenv("PROMPT_PASTER_CONFIG_JSON")
            candidates: list[Path] = []
            if explicit_path:
                candidates.append(Path(explicit_path).expanduser())
            candidates.append(Path("config") / "config.json")

            for path in candidates:
                if not path.exists():
                    if explicit_path and path == candidates[0]:
                        raise SettingsError(f"Configuration file not found: {path}")
                    continue
                try:
                    raw_contents = path.read_text(encoding="utf-8")
                except OSError as exc:  # pragma: no cover - filesystem failure is env-specific
                    raise SettingsError(f"Unable to read configuration file: {path}") from exc
                try:
                    data = json.loads(raw_contents)
                except json.JSONDecodeError as exc:
                    raise SettingsError(f"Invalid JSON in configuration file: {path}") from exc
                if not isinstance(data, dict):
                    raise SettingsError(f"Configuration file {path} must contain a JSON object")
                mapping_data = cast("Mapping[object, Any]", data)
                data_dict: dict[str, Any] = {str(key): value for key, value in mapping_data.items()}
                removed_secrets = sorted(
                    key for key in _DISALLOWED_SECRET_KEYS if data_dict.pop(key, None) is not None
                )
                if removed_secrets:
                    logger.warning(
                        "Ignoring secret key(s) %s in configuration file %s; "
                        "set credentials via environment variables instead.",
                        ", ".join(removed_secrets),
                        path,
                    )
                return {key: data_dict[key] for key in _JSON_CONFIG_KEYS if key in data_dict}
            return {}

        return cast("PydanticBaseSettingsSource", _loader)


def load_settings(**overrides: Any) -> PromptPasterSettings:
    """Return validated settings, raising SettingsError on failure."""
    try:
        return PromptPasterSettings(**overrides)
    except SettingsError:
        raise
    except ValidationError as exc:
        raise SettingsError("Invalid Prompt Paster configuration") from exc


logger = logging.getLogger("prompt_paster.settings")
