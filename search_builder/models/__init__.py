"""Pydantic models for search-builder.

This module re-exports all models. Import from submodules directly for
cleaner imports:

    from search_builder.models.enums import SearchMode
    from search_builder.models.rubric import Rubric, RubricIndex
"""

# ============ ENUMS ============
from .enums import (
    FeedbackRating,
    GenerationJobState,
    IndexJobStatus,
    ScoringMethod,
    SearchMode,
)

# ============ FEEDBACK MODELS ============
from .feedback import (
    FeedbackExample,
    GenerationJobStatus,
    GenerationStatusMessage,
    RubricExample,
)

# ============ RESULT MODELS ============
from .results import SearchResult

# ============ RUBRIC MODELS ============
from .rubric import DocumentScore, Rubric, RubricCriterion, RubricIndex

# ============ TRACE MODELS ============
from .trace import (
    HybridTrace,
    KeywordTrace,
    RubricScoringTrace,
    RubricTraceEntry,
    SearchTrace,
    SemanticTrace,
    TraceEntry,
)

__all__ = [
    # Enums
    "FeedbackRating",
    "GenerationJobState",
    "IndexJobStatus",
    "ScoringMethod",
    "SearchMode",
    # Feedback
    "FeedbackExample",
    "GenerationJobStatus",
    "GenerationStatusMessage",
    "RubricExample",
    # Results
    "SearchResult",
    # Rubric
    "DocumentScore",
    "Rubric",
    "RubricCriterion",
    "RubricIndex",
    # Trace
    "HybridTrace",
    "KeywordTrace",
    "RubricScoringTrace",
    "RubricTraceEntry",
    "SearchTrace",
    "SemanticTrace",
    "TraceEntry",
]
