"""Semantic core for Prompt Paster.

Updates:
  v0.3.0 - 2026-09-28 - Export prompt loading and content analysis helpers.
  v0.2.0 - 2026-09-21 - Export the embedding sync service and exception hierarchy.
  v0.1.0 - 2026-09-14 - Surface the vector store, similarity engine, and AI service.
"""

from .ai_service import AIService
from .analysis import ContentAnalyzer
from .embedding import LoadedModel, build_model_loader, create_embedding_function
from .embedding_sync import EmbeddingSyncService
from .exceptions import (
    CapabilityError,
    DimensionMismatchError,
    EmbeddingGenerationError,
    GenerationTimeoutError,
    GenerationUnavailableError,
    InitializationTimeoutError,
    ModelLoadError,
    ModelMismatchError,
    NotInitializedError,
    PromptPasterError,
    PromptSourceError,
    PromptValidationError,
    RefinementError,
    SyncBusyError,
    VectorStoreError,
)
from .factory import CoreServices, build_services
from .notifications import NotificationCenter, notification_center
from .prompt_source import list_folders, load_prompts
from .similarity import cosine_similarity, rank_records, search_similar
from .vector_store import EmbeddingStore

__all__ = [
    "AIService",
    "CapabilityError",
    "ContentAnalyzer",
    "CoreServices",
    "DimensionMismatchError",
    "EmbeddingGenerationError",
    "EmbeddingStore",
    "EmbeddingSyncService",
    "GenerationTimeoutError",
    "GenerationUnavailableError",
    "InitializationTimeoutError",
    "LoadedModel",
    "ModelLoadError",
    "ModelMismatchError",
    "NotInitializedError",
    "NotificationCenter",
    "PromptPasterError",
    "PromptSourceError",
    "PromptValidationError",
    "RefinementError",
    "SyncBusyError",
    "VectorStoreError",
    "build_model_loader",
    "build_services",
    "cosine_similarity",
    "create_embedding_function",
    "list_folders",
    "load_prompts",
    "notification_center",
    "rank_records",
    "search_similar",
]
