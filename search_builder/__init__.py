"""search-builder: retrieval and rubric reranking core.

Keyword (BM25), semantic (TF-IDF) and hybrid (RRF) retrieval over in-memory
corpora, score normalization and rubric blending, and concurrent rubric batch
indexing against an external scoring oracle.

Usage:
    from search_builder import Corpus, Document, EngineRegistry, search

    registry = EngineRegistry()
    handles = registry.build(corpus)
    hits, trace = search("hybrid", "cats", 10, corpus, handles)
"""

import logging

__version__ = "0.1.0"

from .config import Settings, settings
from .engine import (
    Corpus,
    Document,
    EngineHandles,
    EngineRegistry,
    RankedHit,
    build_search_results,
    get_strategy,
    rerank_with_rubric,
    search,
    search_with_rubric,
)
from .engine.scoring import (
    build_lexical_index,
    build_vector_model,
    combine_scores,
    normalize_score,
    rrf_fusion,
)
from .errors import (
    CorpusError,
    IndexingCancelledError,
    InvalidWeightError,
    ScoringError,
    SearchError,
    SearchErrorCode,
)
from .models import (
    DocumentScore,
    FeedbackExample,
    GenerationJobStatus,
    IndexJobStatus,
    Rubric,
    RubricCriterion,
    RubricIndex,
    SearchMode,
    SearchResult,
    SearchTrace,
)
from .services import (
    FeedbackRubricGenerator,
    PiScoringClient,
    RubricIndexingJob,
    RubricIndexStore,
    ScoreResult,
    build_rubric_index,
    index_rubric,
    retry_with_backoff,
)


def configure_logging(level: str | None = None) -> None:
    """Basic console logging for scripts; libraries embedding us configure their own."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = [
    "__version__",
    "configure_logging",
    # Config
    "Settings",
    "settings",
    # Engine
    "Corpus",
    "Document",
    "EngineHandles",
    "EngineRegistry",
    "RankedHit",
    "build_lexical_index",
    "build_search_results",
    "build_vector_model",
    "combine_scores",
    "get_strategy",
    "normalize_score",
    "rerank_with_rubric",
    "rrf_fusion",
    "search",
    "search_with_rubric",
    # Errors
    "CorpusError",
    "IndexingCancelledError",
    "InvalidWeightError",
    "ScoringError",
    "SearchError",
    "SearchErrorCode",
    # Models
    "DocumentScore",
    "FeedbackExample",
    "GenerationJobStatus",
    "IndexJobStatus",
    "Rubric",
    "RubricCriterion",
    "RubricIndex",
    "SearchMode",
    "SearchResult",
    "SearchTrace",
    # Services
    "FeedbackRubricGenerator",
    "PiScoringClient",
    "RubricIndexStore",
    "RubricIndexingJob",
    "ScoreResult",
    "build_rubric_index",
    "index_rubric",
    "retry_with_backoff",
]
