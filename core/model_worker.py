"""Dedicated worker thread hosting the embedding and completion model.

The worker owns the loaded model for its whole lifetime and talks to the
asyncio side exclusively through messages: requests arrive on a thread-safe
queue and every response is handed to the ``emit`` callback together with the
identifier of the request that produced it.

Updates:
  v0.2.1 - 2026-10-19 - Allow terminating without joining the worker thread.
  v0.2.0 - 2026-09-21 - Correlate every response with a per-request identifier.
  v0.1.0 - 2026-09-14 - Introduce worker thread with initialise/embed/generate/shutdown messages.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .exceptions import EmbeddingGenerationError, ModelLoadError, PromptPasterError

if TYPE_CHECKING:
    from collections.abc import Callable

    from .embedding import LoadedModel, ModelLoader

logger = logging.getLogger("prompt_paster.model_worker")


class RequestKind(str, Enum):
    """Messages accepted by the worker."""

    INITIALIZE = "initialize"
    EMBED = "embed"
    GENERATE = "generate"
    SHUTDOWN = "shutdown"


class ResponseKind(str, Enum):
    """Messages emitted by the worker."""

    INITIALIZED = "initialized"
    PROGRESS = "progress"
    EMBEDDED = "embedded"
    GENERATED = "generated"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class WorkerRequest:
    """Request posted to the worker queue."""

    kind: RequestKind
    request_id: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class WorkerResponse:
    """Response emitted by the worker for a specific request."""

    kind: ResponseKind
    request_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    error: BaseException | None = None


class ModelWorker:
    """Run model loading and inference on a background thread."""

    def __init__(
        self,
        loader: ModelLoader,
        emit: Callable[[WorkerResponse], None],
        *,
        name: str = "prompt-paster-model",
    ) -> None:
        """Prepare the request queue; the thread starts on :meth:`start`."""
        self._loader = loader
        self._emit = emit
        self._queue: queue.Queue[WorkerRequest] = queue.Queue()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._model: LoadedModel | None = None
        self._stopped = threading.Event()

    @property
    def is_alive(self) -> bool:
        """Return ``True`` while the worker thread is running."""
        return self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread."""
        self._thread.start()

    def post(self, request: WorkerRequest) -> None:
        """Queue *request* for the worker."""
        if self._stopped.is_set():
            raise RuntimeError("Model worker has been terminated")
        self._queue.put(request)

    def terminate(self, timeout: float = 2.0, *, wait: bool = True) -> None:
        """Ask the worker to release its model and stop.

        With *wait* the caller joins the thread for up to *timeout* seconds;
        otherwise the daemon thread exits on its own once its current request ends.
        """
        if self._stopped.is_set():
            return
        self._stopped.set()
        self._queue.put(WorkerRequest(RequestKind.SHUTDOWN, request_id="shutdown"))
        if not wait:
            return
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning(
                    "Model worker did not stop within timeout; abandoning daemon thread",
                    extra={"timeout_seconds": timeout},
                )

    def _run(self) -> None:
        while True:
            request = self._queue.get()
            try:
                if request.kind is RequestKind.SHUTDOWN:
                    self._model = None
                    return
                if self._stopped.is_set():
                    continue
                self._handle(request)
            finally:
                self._queue.task_done()

    def _handle(self, request: WorkerRequest) -> None:
        if request.kind is RequestKind.INITIALIZE:
            self._initialize(request)
            return
        if self._model is None:
            self._send_error(request, EmbeddingGenerationError("Engine not initialized"))
            return
        try:
            if request.kind is RequestKind.EMBED:
                vector = self._model.embed(str(request.payload.get("text", "")))
                self._send(request, ResponseKind.EMBEDDED, {"embedding": vector})
            elif request.kind is RequestKind.GENERATE:
                text = self._model.complete(
                    str(request.payload.get("prompt", "")),
                    float(request.payload.get("temperature", 0.7)),
                    int(request.payload.get("max_tokens", 100)),
                )
                self._send(request, ResponseKind.GENERATED, {"text": text})
            else:
                self._send_error(
                    request,
                    EmbeddingGenerationError(f"Unknown message type: {request.kind}"),
                )
        except PromptPasterError as exc:
            self._send_error(request, exc)
        except Exception as exc:  # noqa: BLE001 - surfaced to the awaiting caller
            wrapped = EmbeddingGenerationError(
                f"Model request '{request.kind.value}' failed: {exc}"
            )
            wrapped.__cause__ = exc
            self._send_error(request, wrapped)

    def _initialize(self, request: WorkerRequest) -> None:
        def _report(progress: float, message: str) -> None:
            self._send(
                request,
                ResponseKind.PROGRESS,
                {"progress": max(0.0, min(1.0, float(progress))), "message": message},
            )

        try:
            self._model = self._loader(_report)
        except PromptPasterError as exc:
            self._send_error(request, exc)
            return
        except Exception as exc:  # noqa: BLE001 - surfaced to the awaiting caller
            wrapped = ModelLoadError(f"Failed to initialize model: {exc}")
            wrapped.__cause__ = exc
            self._send_error(request, wrapped)
            return
        self._send(
            request,
            ResponseKind.INITIALIZED,
            {"message": "Model initialized successfully", "model_id": self._model.model_id},
        )

    def _send(self, request: WorkerRequest, kind: ResponseKind, payload: dict[str, Any]) -> None:
        self._emit(WorkerResponse(kind=kind, request_id=request.request_id, payload=payload))

    def _send_error(self, request: WorkerRequest, error: BaseException) -> None:
        logger.debug(
            "Model worker request failed",
            extra={"request_id": request.request_id, "kind": request.kind.value},
        )
        self._emit(
            WorkerResponse(
                kind=ResponseKind.ERROR,
                request_id=request.request_id,
                payload={"error": str(error)},
                error=error,
            )
        )


__all__ = ["ModelWorker", "RequestKind", "ResponseKind", "WorkerRequest", "WorkerResponse"]
