"""Factories for wiring the semantic core from validated settings.

Updates:
  v0.2.0 - 2026-09-28 - Build the content analyzer alongside the sync service.
  v0.1.0 - 2026-09-14 - Introduce build_services for the CLI entry point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .ai_service import AIService
from .analysis import ContentAnalyzer
from .embedding_sync import EmbeddingSyncService
from .notifications import NotificationCenter, notification_center as default_notification_center
from .vector_store import EmbeddingStore

if TYPE_CHECKING:  # pragma: no cover - typing only
    from config import PromptPasterSettings

    from .embedding import ModelLoader

factory_logger = logging.getLogger("prompt_paster.factory")


@dataclass(slots=True)
class CoreServices:
    """Bundle of collaborating services sharing one store and one model worker."""

    store: EmbeddingStore
    ai_service: AIService
    sync_service: EmbeddingSyncService
    analyzer: ContentAnalyzer

    def close(self) -> None:
        """Stop the model worker and release the store."""
        self.ai_service.shutdown()
        self.store.close()


def build_services(
    settings: PromptPasterSettings,
    *,
    store: EmbeddingStore | None = None,
    loader: ModelLoader | None = None,
    notification_center: NotificationCenter | None = None,
) -> CoreServices:
    """Return the store, AI service, sync service, and analyzer for *settings*.

    The store schema is created eagerly; the model is loaded lazily on the
    first :meth:`AIService.initialize` call.
    """
    center = notification_center or default_notification_center
    resolved_store = store or EmbeddingStore(settings.embeddings_db_path)
    resolved_store.initialize()

    if loader is None:
        ai_service = AIService.from_settings(
            settings,
            store=resolved_store,
            notification_center=center,
        )
    else:
        ai_service = AIService(
            loader,
            store=resolved_store,
            model_id=settings.model_identifier,
            init_timeout_seconds=settings.init_timeout_seconds,
            generation_timeout_seconds=settings.generation_timeout_seconds,
            max_content_length=settings.max_content_length,
            embedding_prefix=settings.embedding_prefix,
            search_threshold=settings.search_threshold,
            search_top_k=settings.search_top_k,
            notification_center=center,
        )
    factory_logger.debug(
        "Built semantic core",
        extra={
            "db_path": str(resolved_store.db_path),
            "model_id": settings.model_identifier,
        },
    )
    return CoreServices(
        store=resolved_store,
        ai_service=ai_service,
        sync_service=EmbeddingSyncService(
            ai_service,
            resolved_store,
            notification_center=center,
        ),
        analyzer=ContentAnalyzer(
            ai_service,
            max_tags=settings.max_tags,
            refinement_timeout_seconds=settings.refinement_timeout_seconds,
        ),
    )


__all__ = ["CoreServices", "build_services"]
