"""Reconcile stored prompt embeddings with the current prompt library.

Updates:
  v0.3.0 - 2026-09-28 - Accept an asyncio cancellation event between items.
  v0.2.0 - 2026-09-21 - Record per-prompt failure reasons and publish sync notifications.
  v0.1.0 - 2026-09-14 - Introduce single-flight sync and full regeneration.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

from models.embedding_model import SyncFailure, SyncProgress, SyncResult

from .exceptions import NotInitializedError, SyncBusyError
from .notifications import NotificationCenter, notification_center as default_notification_center

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable, Iterable, Sequence

    from .ai_service import AIService
    from .vector_store import EmbeddingStore

    SyncProgressCallback = Callable[[SyncProgress], None]


class PromptLike(Protocol):
    """Minimal prompt surface needed to build an embedding."""

    @property
    def id(self) -> str: ...

    @property
    def content(self) -> str: ...


def prompt_fields(prompt: PromptLike | Mapping[str, Any]) -> tuple[str, str]:
    """Return ``(id, content)`` from a prompt object or a JSON-style mapping."""
    if isinstance(prompt, Mapping):
        return str(prompt["id"]), str(prompt.get("content") or "")
    return str(prompt.id), str(prompt.content or "")


class EmbeddingSyncService:
    """Generate embeddings for prompts that do not have one yet.

    Only one sync or regeneration runs at a time per service instance; a
    second request while one is active raises :class:`SyncBusyError`.
    Prompts are processed sequentially because the model worker handles one
    inference at a time.
    """

    def __init__(
        self,
        ai_service: AIService,
        store: EmbeddingStore | None = None,
        *,
        notification_center: NotificationCenter | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Bind the service to the embedding producer and the vector store."""
        self._ai_service = ai_service
        self._store = store if store is not None else ai_service.store
        self._notification_center = notification_center or default_notification_center
        self._logger = logger or logging.getLogger("prompt_paster.embedding_sync")
        self._syncing = False

    def is_sync_in_progress(self) -> bool:
        """Return ``True`` while a sync or regeneration run is active."""
        return self._syncing

    async def sync_embeddings(
        self,
        prompts: Iterable[PromptLike | Mapping[str, Any]],
        on_progress: SyncProgressCallback | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> SyncResult:
        """Embed every prompt whose id is not in the store yet."""
        self._acquire()
        try:
            with self._notification_center.track_task(
                title="Embedding synchronisation",
                start_message="Checking prompts for missing embeddings…",
                success_message="Embedding synchronisation finished.",
                failure_message="Embedding synchronisation failed",
            ) as task:
                covered = {record.prompt_id for record in self._store.get_all()}
                gap = [
                    (prompt_id, content)
                    for prompt_id, content in self._unique(prompts)
                    if prompt_id not in covered
                ]
                self._logger.info(
                    "Starting embedding sync",
                    extra={"pending": len(gap), "existing": len(covered)},
                )
                result = await self._process(gap, on_progress, cancel_event)
                task.update(self._summary(result), **result.to_dict())
                return result
        finally:
            self._syncing = False

    async def regenerate_all_embeddings(
        self,
        prompts: Iterable[PromptLike | Mapping[str, Any]],
        on_progress: SyncProgressCallback | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> SyncResult:
        """Clear the store and embed every supplied prompt from scratch."""
        self._acquire()
        try:
            with self._notification_center.track_task(
                title="Embedding regeneration",
                start_message="Regenerating all prompt embeddings…",
                success_message="Embedding regeneration finished.",
                failure_message="Embedding regeneration failed",
            ) as task:
                items = list(self._unique(prompts))
                self._store.clear()
                self._logger.info("Regenerating embeddings", extra={"pending": len(items)})
                result = await self._process(items, on_progress, cancel_event)
                task.update(self._summary(result), **result.to_dict())
                return result
        finally:
            self._syncing = False

    def remove_embedding(self, prompt_id: str) -> None:
        """Drop the stored embedding of a deleted prompt."""
        self._store.delete(prompt_id)

    # Helpers ---------------------------------------------------------- #

    def _acquire(self) -> None:
        if self._syncing:
            raise SyncBusyError("Sync already in progress")
        if not self._ai_service.is_initialized():
            raise NotInitializedError("AI service not initialized")
        self._syncing = True

    @staticmethod
    def _unique(
        prompts: Iterable[PromptLike | Mapping[str, Any]],
    ) -> Iterable[tuple[str, str]]:
        seen: set[str] = set()
        for prompt in prompts:
            prompt_id, content = prompt_fields(prompt)
            if prompt_id in seen:
                continue
            seen.add(prompt_id)
            yield prompt_id, content

    async def _process(
        self,
        items: Sequence[tuple[str, str]],
        on_progress: SyncProgressCallback | None,
        cancel_event: asyncio.Event | None,
    ) -> SyncResult:
        result = SyncResult()
        total = len(items)
        for prompt_id, content in items:
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                self._logger.info(
                    "Embedding sync cancelled",
                    extra={"completed": result.success, "failed": result.failed},
                )
                break
            self._emit(on_progress, SyncProgress(total, result.success, result.failed, prompt_id))
            try:
                embedding = await self._ai_service.generate_embedding(content)
                self._store.put_embedding(
                    prompt_id,
                    embedding,
                    model_id=self._ai_service.model_id,
                )
            except Exception as exc:  # noqa: BLE001 - per-item failures never abort the batch
                result.failed += 1
                result.failures.append(SyncFailure(prompt_id=prompt_id, reason=str(exc)))
                self._logger.warning(
                    "Failed to generate embedding for prompt",
                    exc_info=exc,
                    extra={"prompt_id": prompt_id},
                )
            else:
                result.success += 1
        self._emit(on_progress, SyncProgress(total, result.success, result.failed))
        return result

    def _emit(self, on_progress: SyncProgressCallback | None, progress: SyncProgress) -> None:
        if on_progress is None:
            return
        try:
            on_progress(progress)
        except Exception:  # noqa: BLE001 - listener errors are logged
            self._logger.exception("Sync progress callback raised an exception")

    @staticmethod
    def _summary(result: SyncResult) -> str:
        summary = f"{result.success} embedded, {result.failed} failed"
        return f"{summary} (cancelled)" if result.cancelled else summary


__all__ = ["EmbeddingSyncService", "PromptLike", "prompt_fields"]
