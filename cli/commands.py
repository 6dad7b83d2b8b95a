"""CLI command handlers for Prompt Paster.

Every handler receives the wired :class:`CoreServices`, the parsed arguments,
and the CLI logger, and returns a process exit code.

Updates:
  v0.2.1 - 2026-10-19 - Add --json output; attach progress snapshots to sync log records.
  v0.2.0 - 2026-09-28 - Add analyze, refine, and similar commands.
  v0.1.1 - 2026-09-21 - Stop a running sync cleanly on Ctrl+C.
  v0.1.0 - 2026-09-18 - Introduce sync, reembed, search, forget, and stats commands.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from core import PromptPasterError, list_folders, load_prompts

from .utils import format_score, print_and_log, print_json

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from core import CoreServices
    from models import ModelLoadProgress, Prompt, SimilarityMatch, SyncProgress, SyncResult

CommandHandler = Callable[["CoreServices", argparse.Namespace, logging.Logger], int]

T = TypeVar("T")

EXIT_INPUT_ERROR = 5
EXIT_OPERATION_FAILED = 6
EXIT_PARTIAL_FAILURE = 7


@dataclass(frozen=True)
class CommandSpec:
    """Metadata for dispatching CLI command handlers."""

    handler: CommandHandler
    uses_prompt_library: bool = False


def _run_with_model(
    services: CoreServices,
    logger: logging.Logger,
    operation: Callable[[], Awaitable[T]],
) -> T:
    """Load the model, then await *operation* on a fresh event loop."""

    def _report(progress: ModelLoadProgress) -> None:
        logger.info("Model load %3.0f%%: %s", progress.progress * 100, progress.message)

    async def _runner() -> T:
        await services.ai_service.initialize(_report)
        return await operation()

    return asyncio.run(_runner())


def _load_library(args: argparse.Namespace, logger: logging.Logger) -> list[Prompt] | None:
    source = getattr(args, "prompts", None)
    if source is None:
        logger.error("No prompt source configured; pass --prompts or set prompts_path.")
        return None
    try:
        return load_prompts(source)
    except PromptPasterError as exc:
        logger.error("Unable to load prompts: %s", exc)
        return None


def _read_content(args: argparse.Namespace, logger: logging.Logger) -> str | None:
    content_file: Path | None = getattr(args, "content_file", None)
    text: str | None = getattr(args, "text", None)
    if content_file is not None:
        try:
            text = content_file.expanduser().read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("Unable to read content file: %s", exc)
            return None
    if not text or not text.strip():
        logger.error("Prompt content must be supplied as an argument or via --file.")
        return None
    return text


def _log_sync_progress(logger: logging.Logger) -> Callable[[SyncProgress], None]:
    def _report(progress: SyncProgress) -> None:
        if progress.current_prompt_id is None:
            return
        logger.info(
            "[%d/%d] Embedding prompt %s",
            progress.processed + 1,
            progress.total,
            progress.current_prompt_id,
            extra=progress.to_dict(),
        )

    return _report


async def _sync_with_interrupt(
    run: Callable[[asyncio.Event], Awaitable[SyncResult]],
) -> SyncResult:
    """Run a sync, setting its cancellation event on SIGINT where supported."""
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    installed = False
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
        installed = True
    try:
        return await run(cancel_event)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def _report_sync_result(result: SyncResult, verb: str, logger: logging.Logger) -> int:
    for failure in result.failures:
        logger.warning("Prompt %s failed: %s", failure.prompt_id, failure.reason)
    summary = f"{verb} embeddings for {result.success} prompt(s); {result.failed} failed."
    if result.cancelled:
        summary += " Stopped early on request."
    level = logging.ERROR if result.failed else logging.INFO
    print_and_log(logger, level, summary)
    return EXIT_PARTIAL_FAILURE if result.failed else 0


def run_sync(services: CoreServices, args: argparse.Namespace, logger: logging.Logger) -> int:
    prompts = _load_library(args, logger)
    if prompts is None:
        return EXIT_INPUT_ERROR
    on_progress = _log_sync_progress(logger)
    try:
        result = _run_with_model(
            services,
            logger,
            lambda: _sync_with_interrupt(
                lambda cancel: services.sync_service.sync_embeddings(
                    prompts, on_progress, cancel_event=cancel
                )
            ),
        )
    except PromptPasterError as exc:
        print_and_log(logger, logging.ERROR, f"Embedding sync failed: {exc}")
        return EXIT_OPERATION_FAILED
    return _report_sync_result(result, "Generated", logger)


def run_reembed(services: CoreServices, args: argparse.Namespace, logger: logging.Logger) -> int:
    prompts = _load_library(args, logger)
    if prompts is None:
        return EXIT_INPUT_ERROR
    on_progress = _log_sync_progress(logger)
    try:
        result = _run_with_model(
            services,
            logger,
            lambda: _sync_with_interrupt(
                lambda cancel: services.sync_service.regenerate_all_embeddings(
                    prompts, on_progress, cancel_event=cancel
                )
            ),
        )
    except PromptPasterError as exc:
        print_and_log(logger, logging.ERROR, f"Failed to rebuild embeddings: {exc}")
        return EXIT_OPERATION_FAILED
    return _report_sync_result(result, "Rebuilt", logger)


def _print_matches(
    matches: list[SimilarityMatch], args: argparse.Namespace, empty_message: str
) -> int:
    if getattr(args, "as_json", False):
        print_json([match.to_dict() for match in matches])
        return 0
    if not matches:
        print(empty_message)
        return 0
    for match in matches:
        print(f"{format_score(match.score)}  {match.prompt_id}")
    return 0


def run_search(services: CoreServices, args: argparse.Namespace, logger: logging.Logger) -> int:
    query = getattr(args, "query", "") or ""
    if not query.strip():
        logger.error("Search query must be provided.")
        return EXIT_INPUT_ERROR
    try:
        matches = _run_with_model(
            services,
            logger,
            lambda: services.ai_service.search_similar(
                query,
                threshold=getattr(args, "threshold", None),
                top_k=getattr(args, "top_k", None),
            ),
        )
    except PromptPasterError as exc:
        print_and_log(logger, logging.ERROR, f"Search failed: {exc}")
        return EXIT_OPERATION_FAILED
    return _print_matches(matches, args, "No similar prompts found.")


def run_similar(services: CoreServices, args: argparse.Namespace, logger: logging.Logger) -> int:
    prompt_id = str(args.prompt_id)
    try:
        if services.store.get(prompt_id) is None:
            logger.error("Prompt %s has no stored embedding; run sync first.", prompt_id)
            return EXIT_INPUT_ERROR
        matches = services.ai_service.find_similar_prompts(
            prompt_id,
            threshold=getattr(args, "threshold", None),
            top_k=getattr(args, "top_k", None),
        )
    except PromptPasterError as exc:
        print_and_log(logger, logging.ERROR, f"Similarity lookup failed: {exc}")
        return EXIT_OPERATION_FAILED
    return _print_matches(matches, args, f"No prompts similar to {prompt_id}.")


def run_analyze(services: CoreServices, args: argparse.Namespace, logger: logging.Logger) -> int:
    content = _read_content(args, logger)
    if content is None:
        return EXIT_INPUT_ERROR
    folders: list[str] = []
    if getattr(args, "prompts", None) is not None:
        prompts = _load_library(args, logger)
        if prompts is None:
            return EXIT_INPUT_ERROR
        folders = list_folders(prompts)
    try:
        analysis = _run_with_model(
            services,
            logger,
            lambda: services.analyzer.analyze_content(content, folders),
        )
    except PromptPasterError as exc:
        print_and_log(logger, logging.ERROR, f"AI analysis failed: {exc}")
        return EXIT_OPERATION_FAILED
    if getattr(args, "as_json", False):
        print_json(analysis.to_dict())
        return 0
    print(f"Title: {analysis.title}")
    print(f"Tags: {', '.join(analysis.tags) if analysis.tags else '(none)'}")
    print(f"Folder: {analysis.folder_path}")
    return 0


def run_refine(services: CoreServices, args: argparse.Namespace, logger: logging.Logger) -> int:
    content = _read_content(args, logger)
    if content is None:
        return EXIT_INPUT_ERROR
    try:
        suggestions = _run_with_model(
            services,
            logger,
            lambda: services.analyzer.refine_prompt(content),
        )
    except PromptPasterError as exc:
        print_and_log(logger, logging.ERROR, f"Prompt refinement failed: {exc}")
        return EXIT_OPERATION_FAILED
    if getattr(args, "as_json", False):
        print_json([suggestion.to_dict() for suggestion in suggestions])
        return 0
    for index, suggestion in enumerate(suggestions, start=1):
        print(f"\nSuggestion {index}\n------------")
        print(suggestion.content)
        print(f"\nWhy: {suggestion.explanation}")
        for change in suggestion.changes:
            print(f" - {change}")
    return 0


def run_forget(services: CoreServices, args: argparse.Namespace, logger: logging.Logger) -> int:
    prompt_id = str(args.prompt_id)
    try:
        services.sync_service.remove_embedding(prompt_id)
    except PromptPasterError as exc:
        print_and_log(logger, logging.ERROR, f"Failed to remove embedding: {exc}")
        return EXIT_OPERATION_FAILED
    print_and_log(logger, logging.INFO, f"Removed embedding for {prompt_id} (if present).")
    return 0


def run_stats(services: CoreServices, args: argparse.Namespace, logger: logging.Logger) -> int:
    try:
        records = services.store.get_all()
    except PromptPasterError as exc:
        print_and_log(logger, logging.ERROR, f"Unable to read the vector store: {exc}")
        return EXIT_OPERATION_FAILED
    dimensions = sorted({record.dimension for record in records})
    models = sorted({record.model_id or "unknown" for record in records})
    print(f"Embeddings stored: {len(records)}")
    print(f"Dimensions: {', '.join(map(str, dimensions)) if dimensions else 'n/a'}")
    print(f"Models: {', '.join(models) if models else 'n/a'}")
    stale = [
        record.prompt_id
        for record in records
        if record.model_id is not None and record.model_id != services.ai_service.model_id
    ]
    if stale:
        print(f"Embeddings from other models: {len(stale)} (run reembed to refresh)")

    if getattr(args, "prompts", None) is None:
        return 0
    prompts = _load_library(args, logger)
    if prompts is None:
        return EXIT_INPUT_ERROR
    stored_ids = {record.prompt_id for record in records}
    library_ids = {prompt.id for prompt in prompts}
    missing = sorted(library_ids - stored_ids)
    orphaned = sorted(stored_ids - library_ids)
    print(f"Prompts in library: {len(library_ids)}")
    print(f"Prompts missing embeddings: {len(missing)}")
    for prompt_id in missing[:10]:
        print(f" - {prompt_id}")
    if len(missing) > 10:
        print(f"   ... {len(missing) - 10} more")
    print(f"Embeddings without a prompt: {len(orphaned)}")
    return 0


COMMAND_SPECS: dict[str, CommandSpec] = {
    "sync": CommandSpec(run_sync, uses_prompt_library=True),
    "reembed": CommandSpec(run_reembed, uses_prompt_library=True),
    "search": CommandSpec(run_search),
    "similar": CommandSpec(run_similar),
    "analyze": CommandSpec(run_analyze, uses_prompt_library=True),
    "refine": CommandSpec(run_refine),
    "forget": CommandSpec(run_forget),
    "stats": CommandSpec(run_stats, uses_prompt_library=True),
}


__all__ = ["COMMAND_SPECS", "CommandSpec"]
