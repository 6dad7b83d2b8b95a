"""Tests for configuration loading and validation logic.

Updates:
  v0.2.0 - 2026-09-28 - Cover prompt source paths and the LiteLLM logging toggle.
  v0.1.1 - 2026-09-21 - Warn and ignore LiteLLM API secrets supplied via JSON configuration.
  v0.1.0 - 2026-09-14 - Cover JSON/env precedence and validation errors.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from pytest import LogCaptureFixture, MonkeyPatch

from config import PromptPasterSettings, SettingsError, load_settings
from config.settings import (
    DEFAULT_EMBEDDING_BACKEND,
    DEFAULT_LITELLM_EMBEDDING_MODEL,
    DEFAULT_SEARCH_THRESHOLD,
    DEFAULT_SEARCH_TOP_K,
)


def _write_config(path: Path, payload: dict[str, object]) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_defaults_without_configuration(isolated_env: Path) -> None:
    """Defaults apply when neither JSON nor environment values are present."""
    settings = load_settings()

    assert isinstance(settings, PromptPasterSettings)
    assert settings.embedding_backend == DEFAULT_EMBEDDING_BACKEND
    assert settings.embedding_model is None
    assert settings.model_identifier == "deterministic"
    assert settings.search_threshold == DEFAULT_SEARCH_THRESHOLD
    assert settings.search_top_k == DEFAULT_SEARCH_TOP_K
    assert settings.embedding_prefix == ""
    assert settings.prompts_path is None
    assert settings.embeddings_db_path == (isolated_env / "data" / "embeddings.db").resolve()


def test_load_settings_reads_json_and_env(isolated_env: Path, monkeypatch: MonkeyPatch) -> None:
    """JSON configuration wins over environment values for overlapping keys."""
    config_path = _write_config(
        isolated_env / "settings.json",
        {"search_top_k": 9, "embeddings_db_path": str(isolated_env / "from_json.db")},
    )
    monkeypatch.setenv("PROMPT_PASTER_CONFIG_JSON", str(config_path))
    monkeypatch.setenv("PROMPT_PASTER_SEARCH_TOP_K", "3")
    monkeypatch.setenv("PROMPT_PASTER_SEARCH_THRESHOLD", "0.75")

    settings = load_settings()

    assert settings.search_top_k == 9
    assert settings.search_threshold == 0.75
    assert settings.embeddings_db_path == (isolated_env / "from_json.db").resolve()


def test_default_config_json_location(isolated_env: Path) -> None:
    """config/config.json in the working directory is read without an explicit path."""
    (isolated_env / "config").mkdir()
    _write_config(isolated_env / "config" / "config.json", {"max_tags": 3})

    assert load_settings().max_tags == 3


def test_explicit_overrides_take_precedence(isolated_env: Path, monkeypatch: MonkeyPatch) -> None:
    """Keyword overrides beat both JSON and environment sources."""
    monkeypatch.setenv("PROMPT_PASTER_MAX_CONTENT_LENGTH", "500")

    assert load_settings(max_content_length=42).max_content_length == 42


def test_missing_explicit_config_raises(isolated_env: Path, monkeypatch: MonkeyPatch) -> None:
    """A configured JSON path that does not exist is reported."""
    monkeypatch.setenv("PROMPT_PASTER_CONFIG_JSON", str(isolated_env / "absent.json"))

    with pytest.raises(SettingsError, match="Configuration file not found"):
        load_settings()


@pytest.mark.parametrize("contents", ["{not json", "[1, 2, 3]"])
def test_malformed_config_raises(
    isolated_env: Path, monkeypatch: MonkeyPatch, contents: str
) -> None:
    """Invalid JSON and non-object payloads raise SettingsError."""
    config_path = isolated_env / "broken.json"
    config_path.write_text(contents, encoding="utf-8")
    monkeypatch.setenv("PROMPT_PASTER_CONFIG_JSON", str(config_path))

    with pytest.raises(SettingsError):
        load_settings()


def test_json_api_key_is_ignored_with_warning(
    isolated_env: Path, monkeypatch: MonkeyPatch, caplog: LogCaptureFixture
) -> None:
    """Secrets in JSON are dropped and a warning explains where to put them."""
    config_path = _write_config(
        isolated_env / "settings.json",
        {"litellm_api_key": "sk-from-json", "embedding_backend": "litellm"},
    )
    monkeypatch.setenv("PROMPT_PASTER_CONFIG_JSON", str(config_path))

    with caplog.at_level(logging.WARNING, logger="prompt_paster.settings"):
        settings = load_settings()

    assert settings.litellm_api_key is None
    assert "Ignoring secret key" in caplog.text
    assert settings.embedding_backend == "litellm"


def test_litellm_env_aliases(isolated_env: Path, monkeypatch: MonkeyPatch) -> None:
    """Unprefixed LITELLM_* variables populate the LiteLLM fields."""
    monkeypatch.setenv("LITELLM_API_KEY", "  sk-alias  ")
    monkeypatch.setenv("LITELLM_API_BASE", "https://example.invalid/v1")
    monkeypatch.setenv("LITELLM_MODEL", "gpt-4o-mini")

    settings = load_settings()

    assert settings.litellm_api_key == "sk-alias"
    assert settings.litellm_api_base == "https://example.invalid/v1"
    assert settings.completion_model == "gpt-4o-mini"


def test_prefixed_env_wins_over_unprefixed_alias(
    isolated_env: Path, monkeypatch: MonkeyPatch
) -> None:
    """PROMPT_PASTER_LITELLM_API_KEY is checked before LITELLM_API_KEY."""
    monkeypatch.setenv("PROMPT_PASTER_LITELLM_API_KEY", "sk-prefixed")
    monkeypatch.setenv("LITELLM_API_KEY", "sk-plain")

    assert load_settings().litellm_api_key == "sk-prefixed"


def test_dotenv_file_is_read(isolated_env: Path, monkeypatch: MonkeyPatch) -> None:
    """Values in the configured .env file fill fields missing from the environment."""
    env_file = isolated_env / "custom.env"
    env_file.write_text("PROMPT_PASTER_SEARCH_TOP_K=11\n", encoding="utf-8")
    monkeypatch.setenv("PROMPT_PASTER_ENV_FILE", str(env_file))

    assert load_settings().search_top_k == 11


@pytest.mark.parametrize(
    ("backend", "model", "expected_backend", "expected_model"),
    [
        ("openai", None, "litellm", DEFAULT_LITELLM_EMBEDDING_MODEL),
        ("LiteLLM", "text-embedding-3-large", "litellm", "text-embedding-3-large"),
        ("st", "all-MiniLM-L6-v2", "sentence-transformers", "all-MiniLM-L6-v2"),
        ("default", "ignored", "deterministic", None),
    ],
)
def test_embedding_backend_normalisation(
    isolated_env: Path,
    backend: str,
    model: str | None,
    expected_backend: str,
    expected_model: str | None,
) -> None:
    """Backend aliases resolve to canonical names and default models."""
    settings = load_settings(embedding_backend=backend, embedding_model=model)

    assert settings.embedding_backend == expected_backend
    assert settings.embedding_model == expected_model


def test_model_identifier_includes_model_name(isolated_env: Path) -> None:
    """Stored embeddings are stamped with backend and model."""
    settings = load_settings(embedding_backend="litellm", embedding_model="text-embedding-3-small")

    assert settings.model_identifier == "litellm:text-embedding-3-small"


def test_sentence_transformers_requires_model(isolated_env: Path) -> None:
    """The local backend cannot guess a model name."""
    with pytest.raises(SettingsError):
        load_settings(embedding_backend="sentence-transformers")


@pytest.mark.parametrize(
    "overrides",
    [
        {"embedding_backend": "word2vec"},
        {"search_threshold": 1.5},
        {"search_threshold": -1.01},
        {"search_top_k": 0},
        {"init_timeout_seconds": 0},
        {"generation_timeout_seconds": -5},
        {"max_content_length": 0},
        {"embedding_device": "tpu"},
        {"embeddings_db_path": "  "},
    ],
)
def test_invalid_values_raise_settings_error(
    isolated_env: Path, overrides: dict[str, object]
) -> None:
    """Validation failures surface as SettingsError with the pydantic cause attached."""
    with pytest.raises(SettingsError) as excinfo:
        load_settings(**overrides)

    assert excinfo.value.__cause__ is not None


def test_threshold_bounds_are_inclusive(isolated_env: Path) -> None:
    """Thresholds of exactly -1 and 1 are accepted."""
    assert load_settings(search_threshold=1.0).search_threshold == 1.0
    assert load_settings(search_threshold=-1.0).search_threshold == -1.0


def test_device_and_paths_are_normalised(isolated_env: Path, monkeypatch: MonkeyPatch) -> None:
    """Device names are lower-cased and prompt paths resolved."""
    monkeypatch.setenv("PROMPT_PASTER_EMBEDDING_DEVICE", "CUDA:1")
    monkeypatch.setenv("PROMPT_PASTER_PROMPTS_PATH", "prompts")

    settings = load_settings()

    assert settings.embedding_device == "cuda:1"
    assert settings.prompts_path == (isolated_env / "prompts").resolve()


def test_litellm_logging_flag_from_env(isolated_env: Path, monkeypatch: MonkeyPatch) -> None:
    """Boolean flags accept common truthy strings."""
    monkeypatch.setenv("PROMPT_PASTER_LITELLM_LOGGING_ENABLED", "true")

    assert load_settings().litellm_logging_enabled is True
