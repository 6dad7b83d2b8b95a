"""Pytest configuration for shared test fixtures and environment hooks.

Updates:
  v0.2.0 - 2026-09-21 - Add fake model loaders and an isolated settings environment.
  v0.1.0 - 2026-09-14 - Provide temporary embedding stores.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from pytest import MonkeyPatch

from core.embedding import LoadedModel, ModelLoader, ProgressReporter
from core.vector_store import EmbeddingStore


@pytest.fixture()
def store(tmp_path: Path) -> EmbeddingStore:
    """Return an initialised embedding store in a temporary directory."""
    embedding_store = EmbeddingStore(tmp_path / "data" / "embeddings.db")
    embedding_store.initialize()
    return embedding_store


@pytest.fixture()
def isolated_env(monkeypatch: MonkeyPatch, tmp_path: Path) -> Path:
    """Run in an empty directory with no Prompt Paster or LiteLLM environment."""
    for key in list(os.environ):
        if key.startswith(("PROMPT_PASTER_", "LITELLM_")):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PROMPT_PASTER_ENV_FILE", "")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def letter_vector(text: str) -> list[float]:
    """Embed *text* as counts of the letters a-d plus one so vectors are never zero."""
    lowered = text.lower()
    return [float(lowered.count(letter)) for letter in "abcd"] + [1.0]


class FakeModel:
    """Records every request and answers from plain callables."""

    def __init__(
        self,
        embed: Callable[[str], list[float]] = letter_vector,
        complete: Callable[[str], str] | None = None,
    ) -> None:
        self.embedded: list[str] = []
        self.prompts: list[str] = []
        self._embed = embed
        self._complete = complete

    @property
    def can_complete(self) -> bool:
        return self._complete is not None

    def embed(self, texts: list[str]) -> list[list[float]]:
        self.embedded.extend(texts)
        return [self._embed(text) for text in texts]

    def complete(self, prompt: str, temperature: float, max_tokens: int) -> str:
        del temperature, max_tokens
        self.prompts.append(prompt)
        assert self._complete is not None
        return self._complete(prompt)


class FakeLoader:
    """Model loader that counts calls and can block until released."""

    def __init__(
        self,
        model: FakeModel | None = None,
        *,
        steps: tuple[tuple[float, str], ...] = ((0.5, "halfway"),),
        error: Exception | None = None,
        release: threading.Event | None = None,
    ) -> None:
        self.model = model or FakeModel()
        self.calls = 0
        self._steps = steps
        self._error = error
        self._release = release

    def __call__(self, report: ProgressReporter) -> LoadedModel:
        self.calls += 1
        if self._release is not None:
            self._release.wait(timeout=5)
        for progress, message in self._steps:
            report(progress, message)
        if self._error is not None:
            raise self._error
        completion = self.model.complete if self.model.can_complete else None
        return LoadedModel(
            embed_function=self.model.embed,
            completion_function=completion,
            model_id="fake:model",
        )


@pytest.fixture()
def fake_model() -> FakeModel:
    """Return a fake model embedding letters a-d."""
    return FakeModel()


@pytest.fixture()
def fake_loader(fake_model: FakeModel) -> ModelLoader:
    """Return a loader handing out :func:`fake_model`."""
    return FakeLoader(fake_model)


@pytest.fixture()
def make_model() -> type[FakeModel]:
    """Return the fake model class for tests that need custom behaviour."""
    return FakeModel


@pytest.fixture()
def make_loader() -> type[FakeLoader]:
    """Return the fake loader class for tests that need custom behaviour."""
    return FakeLoader


@pytest.fixture()
def release_event() -> Iterator[threading.Event]:
    """Event that unblocks fake models; always set on teardown so threads exit."""
    event = threading.Event()
    yield event
    event.set()
