"""Retrieval engine: document structures, scoring engines, strategy dispatch
and rubric reranking."""

from .core import Corpus, Document, RankedHit
from .registry import EngineHandles, EngineRegistry
from .reranking import rerank_with_rubric, search_with_rubric
from .strategies import (
    HybridSearchStrategy,
    KeywordSearchStrategy,
    SearchStrategy,
    SemanticSearchStrategy,
    build_search_results,
    get_strategy,
    search,
)

__all__ = [
    "Corpus",
    "Document",
    "EngineHandles",
    "EngineRegistry",
    "HybridSearchStrategy",
    "KeywordSearchStrategy",
    "RankedHit",
    "SearchStrategy",
    "SemanticSearchStrategy",
    "build_search_results",
    "get_strategy",
    "rerank_with_rubric",
    "search",
    "search_with_rubric",
]
