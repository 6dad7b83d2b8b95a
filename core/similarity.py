"""Cosine similarity ranking over stored prompt embeddings.

Updates:
  v0.3.0 - 2026-10-19 - Scale by vector norms first; default search limits from settings.
  v0.2.0 - 2026-09-21 - Refuse to rank embeddings produced by a different model.
  v0.1.0 - 2026-09-14 - Introduce cosine similarity and threshold/top-K search.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from config.settings import DEFAULT_SEARCH_THRESHOLD, DEFAULT_SEARCH_TOP_K
from models.embedding_model import SimilarityMatch

from .exceptions import DimensionMismatchError, ModelMismatchError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from models.embedding_model import EmbeddingRecord

    from .vector_store import EmbeddingStore

logger = logging.getLogger("prompt_paster.similarity")


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Return the cosine similarity of two equal-length vectors.

    Zero vectors score ``0.0`` against everything instead of raising.

    Raises:
      DimensionMismatchError: If the vectors differ in length.
    """
    if len(vec_a) != len(vec_b):
        raise DimensionMismatchError(
            f"Vector dimensions must match: {len(vec_a)} != {len(vec_b)}"
        )

    norm_a = math.hypot(*vec_a)
    norm_b = math.hypot(*vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    # Normalised terms keep every product within [-1, 1].
    score = math.fsum((a / norm_a) * (b / norm_b) for a, b in zip(vec_a, vec_b, strict=True))
    return max(-1.0, min(1.0, score))


def rank_records(
    query_embedding: Sequence[float],
    records: Iterable[EmbeddingRecord],
    *,
    threshold: float,
    top_k: int,
    model_id: str | None = None,
    exclude: Iterable[str] = (),
) -> list[SimilarityMatch]:
    """Score *records* against the query and return the best ``top_k`` matches.

    Matches scoring below *threshold* are dropped. Ordering is by descending
    score; the sort is stable, so equal scores keep the order of *records*.
    """
    if top_k <= 0:
        return []
    excluded = set(exclude)
    scored: list[SimilarityMatch] = []
    for record in records:
        if record.prompt_id in excluded:
            continue
        if model_id is not None and record.model_id is not None and record.model_id != model_id:
            raise ModelMismatchError(
                f"Embedding for prompt {record.prompt_id} was produced by "
                f"'{record.model_id}', expected '{model_id}'. Regenerate all embeddings."
            )
        score = cosine_similarity(query_embedding, record.embedding)
        if score >= threshold:
            scored.append(SimilarityMatch(prompt_id=record.prompt_id, score=score))
    scored.sort(key=lambda match: match.score, reverse=True)
    return scored[:top_k]


def search_similar(
    store: EmbeddingStore,
    query_embedding: Sequence[float],
    threshold: float | None = None,
    top_k: int | None = None,
    *,
    model_id: str | None = None,
    exclude: Iterable[str] = (),
) -> list[SimilarityMatch]:
    """Rank every stored embedding against *query_embedding*.

    This is a linear scan over :meth:`EmbeddingStore.get_all`, which returns
    records ordered by prompt id; ties therefore resolve by ascending id.
    Omitted limits fall back to the configured search defaults.
    """
    if threshold is None:
        threshold = DEFAULT_SEARCH_THRESHOLD
    if top_k is None:
        top_k = DEFAULT_SEARCH_TOP_K
    records = store.get_all()
    matches = rank_records(
        query_embedding,
        records,
        threshold=threshold,
        top_k=top_k,
        model_id=model_id,
        exclude=exclude,
    )
    logger.debug(
        "Semantic search ranked embeddings",
        extra={"candidates": len(records), "matches": len(matches), "threshold": threshold},
    )
    return matches


__all__ = ["cosine_similarity", "rank_records", "search_similar"]
