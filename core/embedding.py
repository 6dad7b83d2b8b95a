"""Embedding and completion backends hosted by the model worker.

Updates:
  v0.3.0 - 2026-09-28 - Bundle backends into a loadable model with progress reporting.
  v0.2.1 - 2026-09-21 - Probe accelerator availability before loading local models.
  v0.2.0 - 2026-09-18 - Add LiteLLM completion backend for analysis workflows.
  v0.1.1 - 2026-09-16 - Hash tokens into buckets so deterministic vectors share vocabulary.
  v0.1.0 - 2026-09-14 - Introduce deterministic, LiteLLM, and sentence-transformer backends.
"""

from __future__ import annotations

import hashlib
import importlib
import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, cast

from .exceptions import (
    CapabilityError,
    EmbeddingGenerationError,
    GenerationUnavailableError,
    ModelLoadError,
)
from .litellm_adapter import extract_completion_text, get_completion, get_embedding

if TYPE_CHECKING:  # pragma: no cover - typing only
    from config import PromptPasterSettings

EmbeddingFunction = Callable[[Sequence[str]], Sequence[Sequence[float]]]
CompletionFunction = Callable[[str, float, int], str]
ProgressReporter = Callable[[float, str], None]

logger = logging.getLogger("prompt_paster.embedding")

_TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)


class DeterministicEmbeddingFunction:
    """Offline embedding backend built from hashed word counts.

    Each lower-cased token is hashed into one of ``dimension`` buckets with a
    hash-derived sign, so texts sharing vocabulary produce similar vectors.
    Identical inputs always yield identical vectors.
    """

    def __init__(self, dimension: int = 768) -> None:
        """Store the output vector length."""
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self._dimension = dimension

    @property
    def name(self) -> str:
        """Identifier surfaced in diagnostics."""
        return f"deterministic:{self._dimension}"

    def __call__(self, input: Sequence[str]) -> list[list[float]]:
        """Return one vector per input string."""
        return [self._embed_one(text) for text in input]

    def _embed_one(self, text: str) -> list[float]:
        vector = [0.0] * self._dimension
        for token in _TOKEN_PATTERN.findall(text.lower()):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            bucket = int.from_bytes(digest[:4], "big") % self._dimension
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign
        return vector


class LiteLLMEmbeddingFunction:
    """Call the LiteLLM embedding endpoint for semantic vectors."""

    def __init__(
        self,
        *,
        model: str,
        api_key: str | None,
        api_base: str | None,
    ) -> None:
        """Store LiteLLM credentials and request options for embedding calls."""
        if not model:
            raise ValueError("LiteLLM embedding backend requires a model name.")
        self._model = model
        self._api_key = api_key
        self._api_base = api_base

    @property
    def name(self) -> str:
        """Identifier surfaced in diagnostics."""
        return f"litellm:{self._model}"

    def __call__(self, input: Sequence[str]) -> list[list[float]]:
        """Return embedding vectors by invoking the configured LiteLLM backend."""
        embedding_fn, LiteLLMException = get_embedding()
        inputs = list(input)
        if not inputs:
            return []
        request: dict[str, Any] = {"model": self._model, "input": inputs}
        if self._api_key:
            request["api_key"] = self._api_key
        if self._api_base:
            request["api_base"] = self._api_base
        try:
            response = embedding_fn(**request)
        except LiteLLMException as exc:  # type: ignore[misc]
            raise EmbeddingGenerationError(f"LiteLLM embedding request failed: {exc}") from exc
        data = self._extract_data_array(self._extract_payload(response))
        vectors: list[list[float]] = []
        for index, item in enumerate(data):
            raw_vector = self._extract_embedding_vector(item, index)
            try:
                vectors.append([float(value) for value in raw_vector])
            except (TypeError, ValueError) as exc:
                raise EmbeddingGenerationError(
                    "LiteLLM embedding payload contains non-numeric values"
                ) from exc
        if len(vectors) != len(inputs):
            raise EmbeddingGenerationError("LiteLLM embedding response length mismatch.")
        return vectors

    @staticmethod
    def _extract_payload(response: Any) -> Any:
        """Return a JSON-like payload from LiteLLM responses."""
        if isinstance(response, Mapping):
            return response
        model_dump = getattr(response, "model_dump", None)
        if callable(model_dump):
            return model_dump()
        return response

    @staticmethod
    def _extract_data_array(payload: Any) -> Sequence[Any]:
        """Extract the embedding data array from LiteLLM responses."""
        if isinstance(payload, Mapping):
            data_obj = cast("Mapping[str, Any]", payload).get("data")
        else:
            data_obj = getattr(payload, "data", None)
        if not isinstance(data_obj, Sequence) or isinstance(data_obj, (str, bytes)):
            raise EmbeddingGenerationError("LiteLLM embedding response missing data array.")
        return cast("Sequence[Any]", data_obj)

    @staticmethod
    def _extract_embedding_vector(item: Any, index: int) -> Sequence[Any]:
        """Return the embedding vector sequence from a data entry."""
        if isinstance(item, Mapping):
            candidate = cast("Mapping[str, Any]", item).get("embedding")
        else:
            candidate = getattr(item, "embedding", None)
        if candidate is None:
            raise EmbeddingGenerationError(f"LiteLLM response missing embedding at index {index}")
        if not isinstance(candidate, Sequence) or isinstance(candidate, (str, bytes)):
            raise EmbeddingGenerationError("LiteLLM embedding payload is not a vector.")
        return cast("Sequence[Any]", candidate)


class SentenceTransformersEmbeddingFunction:
    """Use sentence-transformers models for local embeddings."""

    def __init__(self, model: str, *, device: str | None = None) -> None:
        """Load a sentence-transformers model for local embedding generation."""
        if not model:
            raise ValueError("sentence-transformers backend requires a model name.")
        self._model_name = model
        self._device = device
        self._model: Any = self._load_model()

    @property
    def name(self) -> str:
        """Identifier surfaced in diagnostics."""
        return f"sentence-transformers:{self._model_name}"

    def _load_model(self) -> Any:
        try:  # pragma: no cover - runtime dependency
            module = importlib.import_module("sentence_transformers")
        except ImportError as exc:
            raise ModelLoadError(
                "sentence-transformers is not installed; install it with `pip install .[local]`."
            ) from exc
        sentence_transformer = cast("Any", module.SentenceTransformer)
        return sentence_transformer(self._model_name, device=self._device)

    def __call__(self, input: Sequence[str]) -> list[list[float]]:
        """Return embeddings for the supplied text batch using the loaded model."""
        inputs = list(input)
        if not inputs:
            return []
        embeddings: Any = self._model.encode(
            inputs,
            convert_to_numpy=True,
            normalize_embeddings=False,
        )
        if hasattr(embeddings, "tolist"):
            embeddings = embeddings.tolist()
        if not isinstance(embeddings, Sequence):
            raise EmbeddingGenerationError("sentence-transformers returned invalid embeddings")
        embedding_rows = cast("Sequence[Sequence[Any]]", embeddings)
        return [[float(value) for value in vector] for vector in embedding_rows]


class LiteLLMCompletionFunction:
    """Single-turn text completion through LiteLLM."""

    def __init__(self, *, model: str, api_key: str | None, api_base: str | None) -> None:
        """Store the model name and credentials used for completion requests."""
        if not model:
            raise ValueError("LiteLLM completion backend requires a model name.")
        self._model = model
        self._api_key = api_key
        self._api_base = api_base

    def __call__(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """Return the model's reply to *prompt*."""
        completion_fn, LiteLLMException = get_completion()
        request: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if self._api_key:
            request["api_key"] = self._api_key
        if self._api_base:
            request["api_base"] = self._api_base
        try:
            response = completion_fn(**request)
        except LiteLLMException as exc:  # type: ignore[misc]
            raise EmbeddingGenerationError(f"LiteLLM completion request failed: {exc}") from exc
        return extract_completion_text(response)


def ensure_device_available(device: str | None) -> None:
    """Raise :class:`CapabilityError` when the requested accelerator is missing."""
    if device is None or device == "cpu":
        return
    kind = device.split(":", 1)[0]
    try:
        torch = importlib.import_module("torch")
    except ImportError as exc:
        raise CapabilityError(
            f"Device '{device}' requires PyTorch; install the local extras or use the cpu device."
        ) from exc
    if kind == "cuda" and not torch.cuda.is_available():
        raise CapabilityError(
            "CUDA acceleration is not available on this machine. "
            "Set PROMPT_PASTER_EMBEDDING_DEVICE=cpu or use a GPU-enabled environment."
        )
    if kind == "mps" and not torch.backends.mps.is_available():
        raise CapabilityError(
            "Apple MPS acceleration is not available on this machine. "
            "Set PROMPT_PASTER_EMBEDDING_DEVICE=cpu to run on the CPU."
        )


def create_embedding_function(
    backend: str,
    *,
    model: str | None,
    api_key: str | None,
    api_base: str | None,
    device: str | None = None,
    dimension: int = 768,
) -> EmbeddingFunction:
    """Return an embedding function for the configured backend."""
    backend_normalised = (backend or "deterministic").strip().lower()
    if backend_normalised in {"", "deterministic", "default"}:
        return DeterministicEmbeddingFunction(dimension)
    if backend_normalised in {"litellm", "openai"}:
        return LiteLLMEmbeddingFunction(model=model or "", api_key=api_key, api_base=api_base)
    if backend_normalised in {"sentence-transformers", "sentence_transformers", "st"}:
        return SentenceTransformersEmbeddingFunction(model or "", device=device)
    raise ValueError(f"Unsupported embedding backend: {backend}")


@dataclass(slots=True)
class LoadedModel:
    """Embedding and completion callables owned by a running model worker."""

    embed_function: EmbeddingFunction
    completion_function: CompletionFunction | None = None
    model_id: str | None = None

    def embed(self, text: str) -> list[float]:
        """Return a single embedding vector for *text*."""
        vectors = self.embed_function([text])
        if not vectors or not isinstance(vectors[0], (list, tuple)):
            raise EmbeddingGenerationError("Embedding function returned invalid payload")
        vector = [float(value) for value in vectors[0]]
        if not vector:
            raise EmbeddingGenerationError("Embedding function returned an empty vector")
        return vector

    def complete(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """Return generated text for *prompt*."""
        if self.completion_function is None:
            raise GenerationUnavailableError(
                "Text generation requires PROMPT_PASTER_COMPLETION_MODEL to be configured."
            )
        return self.completion_function(prompt, temperature, max_tokens)


ModelLoader = Callable[[ProgressReporter], LoadedModel]


def build_model_loader(settings: PromptPasterSettings) -> ModelLoader:
    """Return a loader that builds the configured backends inside the worker thread."""

    def _load(report: ProgressReporter) -> LoadedModel:
        report(0.0, f"Checking runtime support for {settings.embedding_backend} embeddings")
        if settings.embedding_backend == "sentence-transformers":
            ensure_device_available(settings.embedding_device)
        report(0.2, f"Loading embedding model {settings.model_identifier}")
        try:
            embed_function = create_embedding_function(
                settings.embedding_backend,
                model=settings.embedding_model,
                api_key=settings.litellm_api_key,
                api_base=settings.litellm_api_base,
                device=settings.embedding_device,
                dimension=settings.embedding_dimension,
            )
        except (CapabilityError, ModelLoadError):
            raise
        except Exception as exc:
            raise ModelLoadError(f"Failed to load embedding model: {exc}") from exc
        completion_function: CompletionFunction | None = None
        if settings.completion_model:
            report(0.8, f"Configuring completion model {settings.completion_model}")
            completion_function = LiteLLMCompletionFunction(
                model=settings.completion_model,
                api_key=settings.litellm_api_key,
                api_base=settings.litellm_api_base,
            )
        report(1.0, "Model initialized successfully")
        return LoadedModel(
            embed_function=embed_function,
            completion_function=completion_function,
            model_id=settings.model_identifier,
        )

    return _load


__all__ = [
    "CompletionFunction",
    "DeterministicEmbeddingFunction",
    "EmbeddingFunction",
    "LiteLLMCompletionFunction",
    "LiteLLMEmbeddingFunction",
    "LoadedModel",
    "ModelLoader",
    "ProgressReporter",
    "SentenceTransformersEmbeddingFunction",
    "build_model_loader",
    "create_embedding_function",
    "ensure_device_available",
]
