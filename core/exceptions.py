"""Common exception classes for the core package.

All exceptions ultimately inherit from :class:`PromptPasterError`, allowing
callers to catch a single base class for any core failure while still
distinguishing individual error categories when needed.

Updates:
  v0.3.0 - 2026-09-28 - Add prompt source and validation errors.
  v0.2.0 - 2026-09-21 - Add refinement and model mismatch errors.
  v0.1.0 - 2026-09-14 - Created module with embedding, sync, and storage errors.
"""

from __future__ import annotations


class PromptPasterError(Exception):
    """Base exception for Prompt Paster failures."""


# ---------------------------------------------------------------------------
# Model lifecycle
# ---------------------------------------------------------------------------


class CapabilityError(PromptPasterError):
    """Raised when the runtime cannot host the configured model (missing accelerator)."""


class ModelLoadError(PromptPasterError):
    """Raised when the model fails to download, load, or compile."""


class InitializationTimeoutError(ModelLoadError):
    """Raised when model initialisation does not complete within the configured timeout."""


class NotInitializedError(PromptPasterError):
    """Raised when a model operation is requested before initialisation completed."""


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class EmbeddingGenerationError(PromptPasterError):
    """Raised when the worker fails to produce an embedding or completion."""


class GenerationTimeoutError(EmbeddingGenerationError):
    """Raised when a worker request receives no response before its timeout."""


class GenerationUnavailableError(EmbeddingGenerationError):
    """Raised when text completion is requested without a completion model configured."""


class RefinementError(PromptPasterError):
    """Raised when prompt refinement output cannot be parsed into suggestions."""


# ---------------------------------------------------------------------------
# Vectors and storage
# ---------------------------------------------------------------------------


class DimensionMismatchError(PromptPasterError, ValueError):
    """Raised when comparing vectors of unequal length."""


class ModelMismatchError(PromptPasterError):
    """Raised when stored embeddings were produced by a different embedding model."""


class VectorStoreError(PromptPasterError):
    """Raised when the local embedding database cannot be read or written."""


class SyncBusyError(PromptPasterError):
    """Raised when an embedding sync is requested while another one is running."""


# ---------------------------------------------------------------------------
# Prompt inputs
# ---------------------------------------------------------------------------


class PromptSourceError(PromptPasterError):
    """Raised when prompt files cannot be read or decoded."""


class PromptValidationError(PromptPasterError):
    """Raised when a prompt payload violates the library's validation rules."""

    def __init__(self, errors: list[str]) -> None:
        """Store the individual validation messages alongside a combined summary."""
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid prompt")


__all__ = [
    "CapabilityError",
    "DimensionMismatchError",
    "EmbeddingGenerationError",
    "GenerationTimeoutError",
    "GenerationUnavailableError",
    "InitializationTimeoutError",
    "ModelLoadError",
    "ModelMismatchError",
    "NotInitializedError",
    "PromptPasterError",
    "PromptSourceError",
    "PromptValidationError",
    "RefinementError",
    "SyncBusyError",
    "VectorStoreError",
]
