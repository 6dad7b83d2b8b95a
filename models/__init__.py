"""Data models for Prompt Paster.

Updates: v0.2.0 - 2026-09-21 - Export analysis and refinement dataclasses.
Updates: v0.1.0 - 2026-09-14 - Export Prompt and embedding dataclasses.
"""

from .analysis_model import AnalysisResult, RefinementSuggestion
from .embedding_model import (
    EmbeddingRecord,
    ModelLoadProgress,
    SimilarityMatch,
    SyncFailure,
    SyncProgress,
    SyncResult,
)
from .prompt_model import Prompt, validate_prompt

__all__ = [
    "AnalysisResult",
    "EmbeddingRecord",
    "ModelLoadProgress",
    "Prompt",
    "RefinementSuggestion",
    "SimilarityMatch",
    "SyncFailure",
    "SyncProgress",
    "SyncResult",
    "validate_prompt",
]
