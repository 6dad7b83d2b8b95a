"""Asyncio facade over the model worker: initialisation, embeddings, and generation.

Every request sent to the worker is tracked by a freshly generated identifier
mapped to its own future and timeout, so concurrent requests of the same kind
never share a pending slot.

Updates:
  v0.3.1 - 2026-10-19 - Answer each request on its own loop; skip the worker join on failed loads.
  v0.3.0 - 2026-09-28 - Add prompt-to-prompt similarity lookups.
  v0.2.1 - 2026-09-22 - Reset state and fail pending requests on shutdown.
  v0.2.0 - 2026-09-21 - Replace per-kind request slots with per-request identifiers.
  v0.1.0 - 2026-09-14 - Introduce AI service with initialise/generate/embed/search.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Any

from models.embedding_model import ModelLoadProgress, coerce_vector

from .embedding import build_model_loader
from .exceptions import (
    EmbeddingGenerationError,
    GenerationTimeoutError,
    InitializationTimeoutError,
    NotInitializedError,
    PromptPasterError,
)
from .model_worker import ModelWorker, RequestKind, ResponseKind, WorkerRequest, WorkerResponse
from .notifications import NotificationCenter, notification_center as default_notification_center
from .similarity import search_similar as rank_store

if TYPE_CHECKING:
    from collections.abc import Callable

    from config import PromptPasterSettings
    from models.embedding_model import SimilarityMatch

    from .embedding import ModelLoader
    from .vector_store import EmbeddingStore

    ModelProgressCallback = Callable[[ModelLoadProgress], None]
    WorkerFactory = Callable[[ModelLoader, Callable[[WorkerResponse], None]], ModelWorker]

logger = logging.getLogger("prompt_paster.ai_service")

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 100


class AIService:
    """Own the model worker and expose awaitable embedding/generation calls."""

    def __init__(
        self,
        loader: ModelLoader,
        *,
        store: EmbeddingStore | None = None,
        model_id: str | None = None,
        init_timeout_seconds: float = 30.0,
        generation_timeout_seconds: float = 30.0,
        max_content_length: int = 10_000,
        embedding_prefix: str = "",
        search_threshold: float = 0.6,
        search_top_k: int = 5,
        worker_factory: WorkerFactory | None = None,
        notification_center: NotificationCenter | None = None,
    ) -> None:
        """Store configuration; the worker is created lazily by :meth:`initialize`."""
        self._loader = loader
        self._store = store
        self._model_id = model_id
        self._init_timeout = init_timeout_seconds
        self._generation_timeout = generation_timeout_seconds
        self._max_content_length = max_content_length
        self._embedding_prefix = embedding_prefix
        self._search_threshold = search_threshold
        self._search_top_k = search_top_k
        self._worker_factory: WorkerFactory = worker_factory or ModelWorker
        self._notification_center = notification_center or default_notification_center

        self._loop: asyncio.AbstractEventLoop | None = None
        self._worker: ModelWorker | None = None
        self._initialized = False
        self._init_task: asyncio.Task[None] | None = None
        self._init_request_id: str | None = None
        self._progress_callbacks: list[ModelProgressCallback] = []
        self._pending: dict[str, asyncio.Future[Any]] = {}

    @classmethod
    def from_settings(
        cls,
        settings: PromptPasterSettings,
        *,
        store: EmbeddingStore | None = None,
        notification_center: NotificationCenter | None = None,
    ) -> AIService:
        """Build a service wired to the backends described by *settings*."""
        return cls(
            build_model_loader(settings),
            store=store,
            model_id=settings.model_identifier,
            init_timeout_seconds=settings.init_timeout_seconds,
            generation_timeout_seconds=settings.generation_timeout_seconds,
            max_content_length=settings.max_content_length,
            embedding_prefix=settings.embedding_prefix,
            search_threshold=settings.search_threshold,
            search_top_k=settings.search_top_k,
            notification_center=notification_center,
        )

    # Properties ------------------------------------------------------- #

    @property
    def store(self) -> EmbeddingStore:
        """Vector store used for persistence and similarity search."""
        if self._store is None:
            raise PromptPasterError("AI service was created without an embedding store")
        return self._store

    @property
    def model_id(self) -> str | None:
        """Identifier stamped on embeddings produced by this service."""
        return self._model_id

    @property
    def max_content_length(self) -> int:
        """Characters of content submitted to the model per request."""
        return self._max_content_length

    @property
    def pending_requests(self) -> int:
        """Number of worker requests still awaiting a response."""
        return len(self._pending)

    def is_initialized(self) -> bool:
        """Return ``True`` once the model finished loading."""
        return self._initialized

    # Lifecycle -------------------------------------------------------- #

    async def initialize(self, on_progress: ModelProgressCallback | None = None) -> None:
        """Load the model, sharing one in-flight load between concurrent callers.

        Raises:
          CapabilityError: The runtime lacks the configured accelerator.
          ModelLoadError: Loading failed.
          InitializationTimeoutError: No completion signal arrived in time.
        """
        if self._initialized:
            return
        if on_progress is not None:
            self._progress_callbacks.append(on_progress)
        if self._init_task is None:
            self._init_task = asyncio.create_task(self._initialize())
        await asyncio.shield(self._init_task)

    async def _initialize(self) -> None:
        loop = asyncio.get_running_loop()
        self._loop = loop
        worker = self._worker_factory(self._loader, self._emit_threadsafe)
        self._worker = worker
        request_id = uuid.uuid4().hex
        self._init_request_id = request_id
        future: asyncio.Future[Any] = loop.create_future()
        self._pending[request_id] = future
        task = self._init_task
        try:
            with self._notification_center.track_task(
                title="Model initialisation",
                start_message=f"Loading model {self._model_id or ''}".strip(),
                success_message="Model initialized successfully",
                failure_message="Model initialisation failed",
                metadata={"model_id": self._model_id},
            ):
                worker.start()
                worker.post(WorkerRequest(RequestKind.INITIALIZE, request_id))
                try:
                    await asyncio.wait_for(future, timeout=self._init_timeout)
                except TimeoutError:
                    raise InitializationTimeoutError(
                        f"Model did not finish loading within {self._init_timeout:g} seconds"
                    ) from None
        except BaseException:
            if self._worker is worker:
                self._teardown_worker(wait=False)
            raise
        else:
            if self._worker is worker:
                self._initialized = True
                logger.info("Model initialized", extra={"model_id": self._model_id})
        finally:
            self._pending.pop(request_id, None)
            if self._init_request_id == request_id:
                self._init_request_id = None
                self._progress_callbacks = []
            if self._init_task is task:
                self._init_task = None

    def shutdown(self) -> None:
        """Terminate the worker and reset every piece of request state."""
        self._teardown_worker()
        self._init_task = None
        self._init_request_id = None
        self._progress_callbacks = []

    def _teardown_worker(self, *, wait: bool = True) -> None:
        worker = self._worker
        self._worker = None
        self._initialized = False
        if worker is not None:
            worker.terminate(wait=wait)
        pending = list(self._pending.values())
        self._pending.clear()
        for future in pending:
            if not future.done():
                future.set_exception(NotInitializedError("AI service was shut down"))

    # Worker plumbing -------------------------------------------------- #

    def _emit_threadsafe(self, response: WorkerResponse) -> None:
        """Hand a worker response to the event loop that awaits its request."""
        future = self._pending.get(response.request_id)
        loop = future.get_loop() if future is not None else self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self._handle_worker_message, response)
        except RuntimeError:  # loop closed between the check and the call
            logger.debug("Dropped worker response after event loop closed")

    def _handle_worker_message(self, response: WorkerResponse) -> None:
        if response.kind is ResponseKind.PROGRESS:
            if response.request_id == self._init_request_id:
                self._notify_progress(
                    ModelLoadProgress(
                        progress=float(response.payload.get("progress", 0.0)),
                        message=str(response.payload.get("message", "")),
                    )
                )
            return

        future = self._pending.get(response.request_id)
        if future is None or future.done():
            logger.debug(
                "Ignoring worker response without pending request",
                extra={"request_id": response.request_id, "kind": response.kind.value},
            )
            return
        if response.kind is ResponseKind.ERROR:
            error = response.error or EmbeddingGenerationError(
                str(response.payload.get("error") or "Unknown error")
            )
            future.set_exception(error)
        elif response.kind is ResponseKind.EMBEDDED:
            future.set_result(response.payload.get("embedding"))
        elif response.kind is ResponseKind.GENERATED:
            future.set_result(response.payload.get("text", ""))
        else:
            future.set_result(response.payload)

    def _notify_progress(self, progress: ModelLoadProgress) -> None:
        for callback in list(self._progress_callbacks):
            try:
                callback(progress)
            except Exception:  # pragma: no cover - keep loading when a listener fails
                logger.exception("Model progress callback raised an exception")

    def _require_initialized(self) -> ModelWorker:
        if not self._initialized or self._worker is None:
            raise NotInitializedError("AI service not initialized")
        return self._worker

    async def _submit(
        self,
        kind: RequestKind,
        payload: dict[str, Any],
        *,
        timeout: float,
        timeout_message: str,
    ) -> Any:
        worker = self._require_initialized()
        loop = asyncio.get_running_loop()
        request_id = uuid.uuid4().hex
        future: asyncio.Future[Any] = loop.create_future()
        self._pending[request_id] = future
        try:
            worker.post(WorkerRequest(kind, request_id, payload))
            return await asyncio.wait_for(future, timeout=timeout)
        except TimeoutError:
            raise GenerationTimeoutError(timeout_message) from None
        finally:
            self._pending.pop(request_id, None)

    # Operations ------------------------------------------------------- #

    async def generate_embedding(self, text: str) -> list[float]:
        """Return the embedding vector for *text* (truncated to the content limit)."""
        self._require_initialized()
        truncated = text[: self._max_content_length]
        result = await self._submit(
            RequestKind.EMBED,
            {"text": f"{self._embedding_prefix}{truncated}"},
            timeout=self._generation_timeout,
            timeout_message="Failed to generate search embedding: request timed out.",
        )
        if not isinstance(result, list) or not result:
            raise EmbeddingGenerationError("Worker returned an empty embedding")
        return coerce_vector(result)

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float | None = None,
    ) -> str:
        """Return generated text for *prompt* from the configured completion model."""
        result = await self._submit(
            RequestKind.GENERATE,
            {"prompt": prompt, "temperature": temperature, "max_tokens": max_tokens},
            timeout=timeout if timeout is not None else self._generation_timeout,
            timeout_message="AI analysis timed out. Please try again or save manually.",
        )
        return str(result)

    async def store_embedding(self, prompt_id: str, content: str) -> None:
        """Generate and persist the embedding for a prompt."""
        embedding = await self.generate_embedding(content)
        self.store.put_embedding(prompt_id, embedding, model_id=self._model_id)

    async def search_similar(
        self,
        query: str,
        threshold: float | None = None,
        top_k: int | None = None,
    ) -> list[SimilarityMatch]:
        """Embed *query* and rank stored prompts against it."""
        query_embedding = await self.generate_embedding(query)
        return rank_store(
            self.store,
            query_embedding,
            self._search_threshold if threshold is None else threshold,
            self._search_top_k if top_k is None else top_k,
            model_id=self._model_id,
        )

    def find_similar_prompts(
        self,
        prompt_id: str,
        threshold: float | None = None,
        top_k: int | None = None,
    ) -> list[SimilarityMatch]:
        """Rank stored prompts against the stored embedding of *prompt_id*.

        Returns an empty list when *prompt_id* has no embedding yet.
        """
        embedding = self.store.get(prompt_id)
        if embedding is None:
            return []
        return rank_store(
            self.store,
            embedding,
            self._search_threshold if threshold is None else threshold,
            self._search_top_k if top_k is None else top_k,
            model_id=self._model_id,
            exclude=(prompt_id,),
        )


__all__ = ["AIService"]
