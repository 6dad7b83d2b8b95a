"""Argument parser for the Prompt Paster CLI.

Updates:
  v0.2.1 - 2026-10-19 - Add --json output to search, similar, analyze, and refine.
  v0.2.0 - 2026-09-28 - Add analyze, refine, and similar subcommands.
  v0.1.0 - 2026-09-18 - Introduce sync, reembed, search, forget, and stats subcommands.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path


def _add_prompts_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--prompts",
        type=Path,
        default=None,
        help=(
            "Directory of <id>.json prompt files or a JSON export "
            "(defaults to the configured prompts_path)."
        ),
    )


def _add_content_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "text",
        type=str,
        nargs="?",
        default=None,
        help="Prompt content to analyse (omit to use --file).",
    )
    parser.add_argument(
        "--file",
        dest="content_file",
        type=Path,
        default=None,
        help="Path to a UTF-8 text file whose contents are analysed.",
    )


def _add_json_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Print results as JSON instead of text.",
    )


def build_parser() -> argparse.ArgumentParser:
    """Return the configured argument parser."""
    parser = argparse.ArgumentParser(description="Prompt Paster semantic tools")
    parser.add_argument(
        "--logging-config",
        type=Path,
        default=None,
        help="Path to logging configuration file (INI format)",
    )
    parser.add_argument(
        "--print-settings",
        action="store_true",
        help="Print resolved settings and exit",
    )

    subparsers = parser.add_subparsers(dest="command")

    sync_parser = subparsers.add_parser(
        "sync",
        help="Generate embeddings for prompts that do not have one yet.",
    )
    _add_prompts_option(sync_parser)

    reembed_parser = subparsers.add_parser(
        "reembed",
        help="Clear the vector store and regenerate embeddings for all prompts.",
    )
    _add_prompts_option(reembed_parser)

    search_parser = subparsers.add_parser(
        "search",
        help="Rank stored prompts by semantic similarity to a query.",
    )
    search_parser.add_argument("query", type=str, help="Freeform query text.")
    search_parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Minimum cosine similarity (defaults to the configured search_threshold).",
    )
    search_parser.add_argument(
        "--limit",
        dest="top_k",
        type=int,
        default=None,
        help="Maximum number of results (defaults to the configured search_top_k).",
    )
    _add_json_option(search_parser)

    similar_parser = subparsers.add_parser(
        "similar",
        help="List stored prompts similar to an existing prompt.",
    )
    similar_parser.add_argument("prompt_id", type=str, help="Identifier of the reference prompt.")
    similar_parser.add_argument("--threshold", type=float, default=None)
    similar_parser.add_argument("--limit", dest="top_k", type=int, default=None)
    _add_json_option(similar_parser)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Suggest a title, tags, and folder for prompt content.",
    )
    _add_content_options(analyze_parser)
    _add_prompts_option(analyze_parser)
    _add_json_option(analyze_parser)

    refine_parser = subparsers.add_parser(
        "refine",
        help="Suggest improved versions of prompt content.",
    )
    _add_content_options(refine_parser)
    _add_json_option(refine_parser)

    forget_parser = subparsers.add_parser(
        "forget",
        help="Remove the stored embedding of a deleted prompt.",
    )
    forget_parser.add_argument("prompt_id", type=str, help="Identifier of the deleted prompt.")

    stats_parser = subparsers.add_parser(
        "stats",
        help="Summarise the vector store and its coverage of the prompt library.",
    )
    _add_prompts_option(stats_parser)

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Return parsed CLI arguments for the Prompt Paster launcher."""
    return build_parser().parse_args(argv)
