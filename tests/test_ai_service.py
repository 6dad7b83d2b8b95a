"""Tests for the asyncio AI service and its model worker thread.

Updates:
  v0.3.1 - 2026-10-19 - Cover requests issued from a later event loop.
  v0.3.0 - 2026-09-28 - Cover prompt-to-prompt similarity lookups.
  v0.2.0 - 2026-09-21 - Cover per-request identifiers, timeouts, and shutdown.
  v0.1.0 - 2026-09-14 - Cover initialisation and embedding generation.
"""

from __future__ import annotations

import asyncio
import threading
import time

import pytest

from core.ai_service import AIService
from core.exceptions import (
    CapabilityError,
    EmbeddingGenerationError,
    GenerationTimeoutError,
    GenerationUnavailableError,
    InitializationTimeoutError,
    ModelLoadError,
    NotInitializedError,
)
from core.notifications import NotificationCenter, NotificationStatus
from core.vector_store import EmbeddingStore
from models.embedding_model import ModelLoadProgress


def _service(loader, store: EmbeddingStore | None = None, **kwargs) -> AIService:
    kwargs.setdefault("notification_center", NotificationCenter())
    return AIService(loader, store=store, model_id="fake:model", **kwargs)


@pytest.mark.asyncio()
async def test_initialize_reports_progress_and_marks_ready(fake_loader) -> None:
    service = _service(fake_loader)
    progress: list[ModelLoadProgress] = []
    try:
        await service.initialize(progress.append)
        assert service.is_initialized()
        assert [(item.progress, item.message) for item in progress] == [(0.5, "halfway")]
    finally:
        service.shutdown()


@pytest.mark.asyncio()
async def test_initialize_is_idempotent(fake_loader) -> None:
    service = _service(fake_loader)
    try:
        await service.initialize()
        await service.initialize()
        assert fake_loader.calls == 1
    finally:
        service.shutdown()


@pytest.mark.asyncio()
async def test_concurrent_initialize_loads_model_once(make_loader, fake_model) -> None:
    release = threading.Event()
    loader = make_loader(fake_model, release=release)
    service = _service(loader)
    first_progress: list[ModelLoadProgress] = []
    second_progress: list[ModelLoadProgress] = []
    try:
        tasks = [
            asyncio.create_task(service.initialize(first_progress.append)),
            asyncio.create_task(service.initialize(second_progress.append)),
        ]
        await asyncio.sleep(0.05)
        release.set()
        await asyncio.gather(*tasks)
        assert loader.calls == 1
        assert service.is_initialized()
        assert len(first_progress) == len(second_progress) == 1
    finally:
        release.set()
        service.shutdown()


@pytest.mark.asyncio()
async def test_initialize_surfaces_capability_error(make_loader) -> None:
    loader = make_loader(error=CapabilityError("CUDA acceleration is not available"))
    service = _service(loader)
    with pytest.raises(CapabilityError, match="CUDA"):
        await service.initialize()
    assert not service.is_initialized()
    with pytest.raises(NotInitializedError):
        await service.generate_embedding("text")


@pytest.mark.asyncio()
async def test_initialize_wraps_unexpected_loader_errors(make_loader) -> None:
    loader = make_loader(error=RuntimeError("weights missing"))
    service = _service(loader)
    with pytest.raises(ModelLoadError, match="weights missing"):
        await service.initialize()
    assert not service.is_initialized()


@pytest.mark.asyncio()
async def test_initialize_can_retry_after_failure(fake_loader) -> None:
    attempts = {"count": 0}

    def _flaky_loader(report):
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise ModelLoadError("first attempt")
        return fake_loader(report)

    service = _service(_flaky_loader)
    with pytest.raises(ModelLoadError, match="first attempt"):
        await service.initialize()
    try:
        await service.initialize()
        assert service.is_initialized()
        assert attempts["count"] == 2
    finally:
        service.shutdown()


@pytest.mark.asyncio()
async def test_initialize_times_out_without_blocking_the_loop(make_loader, release_event) -> None:
    loader = make_loader(release=release_event)
    service = _service(loader, init_timeout_seconds=0.05)
    started = time.perf_counter()
    with pytest.raises(InitializationTimeoutError):
        await service.initialize()
    assert time.perf_counter() - started < 1.0
    assert not release_event.is_set()
    assert not service.is_initialized()
    assert service.pending_requests == 0

    release_event.set()
    try:
        await service.initialize()
        assert service.is_initialized()
        assert loader.calls == 2
    finally:
        service.shutdown()


def test_requests_answer_on_the_calling_event_loop(fake_loader) -> None:
    service = _service(fake_loader, generation_timeout_seconds=2.0)
    try:
        asyncio.run(service.initialize())
        first = asyncio.run(service.generate_embedding("abc"))
        second = asyncio.run(service.generate_embedding("aab"))
        assert service.is_initialized()
    finally:
        service.shutdown()

    assert first == [1.0, 1.0, 1.0, 0.0, 1.0]
    assert second == [2.0, 1.0, 0.0, 0.0, 1.0]
    assert fake_loader.calls == 1


@pytest.mark.asyncio()
async def test_initialize_publishes_notifications(fake_loader) -> None:
    center = NotificationCenter()
    events = []
    center.subscribe(events.append)
    service = _service(fake_loader, notification_center=center)
    try:
        await service.initialize()
    finally:
        service.shutdown()
    assert [event.status for event in events] == [
        NotificationStatus.STARTED,
        NotificationStatus.SUCCEEDED,
    ]
    assert events[-1].message == "Model initialized successfully"


@pytest.mark.asyncio()
async def test_generate_embedding_requires_initialisation(fake_loader) -> None:
    service = _service(fake_loader)
    with pytest.raises(NotInitializedError):
        await service.generate_embedding("hello")
    with pytest.raises(NotInitializedError):
        await service.generate("hello")


@pytest.mark.asyncio()
async def test_generate_embedding_truncates_and_prefixes(fake_loader, fake_model) -> None:
    service = _service(fake_loader, max_content_length=10, embedding_prefix="doc: ")
    try:
        await service.initialize()
        vector = await service.generate_embedding("abcdefghijKLMNOPQRSTUVWXYZ")
    finally:
        service.shutdown()
    assert fake_model.embedded == ["doc: abcdefghij"]
    assert vector == [1.0, 1.0, 2.0, 2.0, 1.0]


@pytest.mark.asyncio()
async def test_generate_embedding_of_empty_text(fake_loader, fake_model) -> None:
    service = _service(fake_loader)
    try:
        await service.initialize()
        vector = await service.generate_embedding("")
    finally:
        service.shutdown()
    assert fake_model.embedded == [""]
    assert vector == [0.0, 0.0, 0.0, 0.0, 1.0]


@pytest.mark.asyncio()
async def test_concurrent_requests_resolve_to_their_own_results(fake_loader) -> None:
    service = _service(fake_loader)
    texts = ["a", "bb", "ccc", "dddd", "abcd"]
    try:
        await service.initialize()
        vectors = await asyncio.gather(*(service.generate_embedding(text) for text in texts))
        assert service.pending_requests == 0
    finally:
        service.shutdown()
    assert vectors == [
        [1.0, 0.0, 0.0, 0.0, 1.0],
        [0.0, 2.0, 0.0, 0.0, 1.0],
        [0.0, 0.0, 3.0, 0.0, 1.0],
        [0.0, 0.0, 0.0, 4.0, 1.0],
        [1.0, 1.0, 1.0, 1.0, 1.0],
    ]


@pytest.mark.asyncio()
async def test_generate_embedding_times_out(make_loader, make_model, release_event) -> None:
    def _blocking_embed(text: str) -> list[float]:
        release_event.wait(timeout=5)
        return [1.0]

    service = _service(
        make_loader(make_model(embed=_blocking_embed)),
        generation_timeout_seconds=0.05,
    )
    try:
        await service.initialize()
        with pytest.raises(GenerationTimeoutError):
            await service.generate_embedding("slow")
        assert service.pending_requests == 0
    finally:
        release_event.set()
        service.shutdown()


@pytest.mark.asyncio()
async def test_late_response_after_timeout_is_ignored(
    make_loader, make_model, release_event
) -> None:
    calls: list[str] = []

    def _embed(text: str) -> list[float]:
        calls.append(text)
        if text == "slow":
            release_event.wait(timeout=5)
        return [float(len(text)), 1.0]

    service = _service(make_loader(make_model(embed=_embed)), generation_timeout_seconds=0.05)
    try:
        await service.initialize()
        with pytest.raises(GenerationTimeoutError):
            await service.generate_embedding("slow")
        release_event.set()
        service._generation_timeout = 2.0
        assert await service.generate_embedding("fast!") == [5.0, 1.0]
    finally:
        service.shutdown()
    assert calls == ["slow", "fast!"]


@pytest.mark.asyncio()
async def test_worker_errors_propagate(make_loader, make_model) -> None:
    def _broken(text: str) -> list[float]:
        raise RuntimeError("tokenizer exploded")

    service = _service(make_loader(make_model(embed=_broken)))
    try:
        await service.initialize()
        with pytest.raises(EmbeddingGenerationError, match="tokenizer exploded"):
            await service.generate_embedding("boom")
    finally:
        service.shutdown()


@pytest.mark.asyncio()
async def test_generate_without_completion_model(fake_loader) -> None:
    service = _service(fake_loader)
    try:
        await service.initialize()
        with pytest.raises(GenerationUnavailableError):
            await service.generate("title please")
    finally:
        service.shutdown()


@pytest.mark.asyncio()
async def test_generate_returns_completion(make_loader, make_model) -> None:
    model = make_model(complete=lambda prompt: f"echo:{prompt}")
    service = _service(make_loader(model))
    try:
        await service.initialize()
        reply = await service.generate("hi", temperature=0.1, max_tokens=5)
    finally:
        service.shutdown()
    assert reply == "echo:hi"
    assert model.prompts == ["hi"]


@pytest.mark.asyncio()
async def test_shutdown_fails_pending_requests(make_loader, make_model, release_event) -> None:
    def _blocking_embed(text: str) -> list[float]:
        release_event.wait(timeout=5)
        return [1.0]

    service = _service(make_loader(make_model(embed=_blocking_embed)))
    await service.initialize()
    pending = asyncio.create_task(service.generate_embedding("waiting"))
    await asyncio.sleep(0.05)

    release_event.set()
    service.shutdown()

    with pytest.raises(NotInitializedError):
        await pending
    assert not service.is_initialized()
    assert service.pending_requests == 0


@pytest.mark.asyncio()
async def test_shutdown_is_safe_to_repeat_and_allows_restart(fake_loader) -> None:
    service = _service(fake_loader)
    service.shutdown()
    await service.initialize()
    service.shutdown()
    service.shutdown()
    assert not service.is_initialized()

    try:
        await service.initialize()
        assert await service.generate_embedding("a") == [1.0, 0.0, 0.0, 0.0, 1.0]
    finally:
        service.shutdown()
    assert fake_loader.calls == 2


@pytest.mark.asyncio()
async def test_search_similar_ranks_stored_prompts(fake_loader, store: EmbeddingStore) -> None:
    service = _service(fake_loader, store, search_threshold=0.5, search_top_k=2)
    try:
        await service.initialize()
        await service.store_embedding("apples", "aaaa")
        await service.store_embedding("bananas", "bbbb")
        await service.store_embedding("mixed", "aaab")
        matches = await service.search_similar("aaaa")
    finally:
        service.shutdown()

    assert [match.prompt_id for match in matches] == ["apples", "mixed"]
    assert matches[0].score == pytest.approx(1.0)
    record = store.get_record("apples")
    assert record is not None and record.model_id == "fake:model"


@pytest.mark.asyncio()
async def test_search_similar_overrides(fake_loader, store: EmbeddingStore) -> None:
    service = _service(fake_loader, store)
    try:
        await service.initialize()
        await service.store_embedding("apples", "aaaa")
        await service.store_embedding("bananas", "bbbb")
        matches = await service.search_similar("aaaa", threshold=-1.0, top_k=1)
    finally:
        service.shutdown()
    assert [match.prompt_id for match in matches] == ["apples"]


def test_find_similar_prompts_excludes_reference(store: EmbeddingStore) -> None:
    service = _service(lambda report: None, store, search_threshold=0.0)
    store.put_embedding("ref", [1.0, 0.0], model_id="fake:model")
    store.put_embedding("close", [0.9, 0.1], model_id="fake:model")
    store.put_embedding("opposite", [-1.0, 0.0], model_id="fake:model")

    matches = service.find_similar_prompts("ref")

    assert [match.prompt_id for match in matches] == ["close"]
    assert service.find_similar_prompts("unknown") == []


def test_store_property_requires_configuration() -> None:
    service = _service(lambda report: None)
    with pytest.raises(Exception, match="without an embedding store"):
        _ = service.store
