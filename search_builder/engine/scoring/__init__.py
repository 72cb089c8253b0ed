"""Scoring engines for search-builder.

This package provides the retrieval and scoring algorithms:
- Shared text preparation (tokenize, stop words, stemming)
- Keyword ranking with BM25 over title + body
- Semantic ranking with a TF-IDF vector space model
- Reciprocal Rank Fusion (RRF) for hybrid search
- Per-mode score normalization and rubric score combination

Usage:
    from search_builder.engine.scoring import (
        build_lexical_index,
        build_vector_model,
        rrf_fusion,
        normalize_score,
        combine_scores,
    )
"""

from .constants import (
    BM25_B,
    BM25_K1,
    BODY_WEIGHT,
    RRF_K,
    RUBRIC_TRACE_TOP_N,
    STOP_WORDS,
    TITLE_WEIGHT,
    TRACE_TOP_N,
)
from .lexical_index import LexicalIndex, build_lexical_index
from .normalization import (
    combine_scores,
    normalize_hybrid_score,
    normalize_keyword_score,
    normalize_rubric_score,
    normalize_score,
    normalize_semantic_score,
    validate_weight,
)
from .rrf_fusion import rrf_fusion, rrf_fusion_many
from .stemmer import stem_token
from .text import prepare_text, remove_stop_words, tokenize
from .vector_model import SparseVector, TfidfModel, VectorIndex, build_vector_model, similarity

__all__ = [
    # Constants
    "BM25_B",
    "BM25_K1",
    "BODY_WEIGHT",
    "RRF_K",
    "RUBRIC_TRACE_TOP_N",
    "STOP_WORDS",
    "TITLE_WEIGHT",
    "TRACE_TOP_N",
    # Text preparation
    "prepare_text",
    "remove_stop_words",
    "stem_token",
    "tokenize",
    # Lexical index
    "LexicalIndex",
    "build_lexical_index",
    # Vector model
    "SparseVector",
    "TfidfModel",
    "VectorIndex",
    "build_vector_model",
    "similarity",
    # RRF fusion
    "rrf_fusion",
    "rrf_fusion_many",
    # Normalization
    "combine_scores",
    "normalize_hybrid_score",
    "normalize_keyword_score",
    "normalize_rubric_score",
    "normalize_score",
    "normalize_semantic_score",
    "validate_weight",
]
