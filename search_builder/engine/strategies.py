"""Search strategy dispatch.

Exactly three strategies exist, one per ``SearchMode``. Each turns a query
into a raw ranked hit list plus a ``SearchTrace`` of its intermediate
rankings. Strategies hold no state; the engines they query come in through
``EngineHandles``.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from ..config import settings
from ..errors import SearchError, SearchErrorCode
from ..models.enums import SearchMode
from ..models.results import SearchResult
from ..models.trace import HybridTrace, KeywordTrace, SearchTrace, SemanticTrace, TraceEntry
from .core.document import Corpus, RankedHit
from .registry import EngineHandles
from .scoring.constants import TRACE_TOP_N
from .scoring.lexical_index import LexicalIndex
from .scoring.rrf_fusion import rrf_fusion
from .scoring.vector_model import VectorIndex

logger = logging.getLogger(__name__)


def trace_entries(hits: Sequence[RankedHit], top_n: int = TRACE_TOP_N) -> list[TraceEntry]:
    """Top ``top_n`` hits as 1-ranked trace rows."""
    return [
        TraceEntry(id=hit.document_id, score=hit.score, rank=rank)
        for rank, hit in enumerate(hits[:top_n], start=1)
    ]


def _check_corpus(corpus: Corpus | None, handles: EngineHandles | None) -> EngineHandles:
    if corpus is None:
        raise SearchError("No corpus selected", SearchErrorCode.NO_CORPUS)
    if handles is None:
        raise SearchError(
            f"Search engines for corpus '{corpus.id}' have not been built",
            SearchErrorCode.NOT_READY,
        )
    if handles.corpus_id != corpus.id:
        raise SearchError(
            f"Engines were built for corpus '{handles.corpus_id}', not '{corpus.id}'",
            SearchErrorCode.NOT_READY,
        )
    return handles


def _require_lexical(corpus: Corpus, handles: EngineHandles) -> LexicalIndex:
    if handles.lexical is None:
        raise SearchError(
            f"Keyword index for corpus '{corpus.id}' is not ready",
            SearchErrorCode.NOT_READY,
        )
    return handles.lexical


def _require_vector(corpus: Corpus, handles: EngineHandles) -> VectorIndex:
    if handles.vector is None:
        raise SearchError(
            f"Vector model for corpus '{corpus.id}' is not ready",
            SearchErrorCode.NOT_READY,
        )
    return handles.vector


class SearchStrategy(ABC):
    """One retrieval strategy."""

    mode: SearchMode

    @abstractmethod
    def execute(
        self,
        query: str,
        limit: int,
        corpus: Corpus | None,
        handles: EngineHandles | None,
    ) -> tuple[list[RankedHit], SearchTrace]:
        """Run the query.

        Raises:
            SearchError: ``NO_CORPUS`` without a corpus, ``NOT_READY`` when an
                engine this strategy needs is missing.
        """


class KeywordSearchStrategy(SearchStrategy):
    mode = SearchMode.KEYWORD

    def execute(self, query, limit, corpus, handles):
        handles = _check_corpus(corpus, handles)
        results = _require_lexical(corpus, handles).search(query, limit)
        return results, KeywordTrace(keyword_results=trace_entries(results))


class SemanticSearchStrategy(SearchStrategy):
    mode = SearchMode.SEMANTIC

    def execute(self, query, limit, corpus, handles):
        handles = _check_corpus(corpus, handles)
        results = _require_vector(corpus, handles).search(query, limit)
        return results, SemanticTrace(semantic_results=trace_entries(results))


class HybridSearchStrategy(SearchStrategy):
    """Keyword and semantic at the same limit, fused with RRF."""

    mode = SearchMode.HYBRID

    def __init__(self, rrf_k: int | None = None):
        self.rrf_k = rrf_k

    def execute(self, query, limit, corpus, handles):
        handles = _check_corpus(corpus, handles)
        # Both engines are checked before either runs
        lexical = _require_lexical(corpus, handles)
        vector = _require_vector(corpus, handles)
        k = self.rrf_k if self.rrf_k is not None else settings.rrf_k

        keyword_results = lexical.search(query, limit)
        semantic_results = vector.search(query, limit)
        fused = rrf_fusion(keyword_results, semantic_results, k=k)[:limit]

        logger.debug(
            f"Hybrid search '{query}': {len(keyword_results)} keyword, "
            f"{len(semantic_results)} semantic, {len(fused)} fused (k={k})"
        )
        trace = HybridTrace(
            keyword_results=trace_entries(keyword_results),
            semantic_results=trace_entries(semantic_results),
            hybrid_results=trace_entries(fused),
            rrf_k=k,
        )
        return fused, trace


_STRATEGIES: dict[SearchMode, type[SearchStrategy]] = {
    SearchMode.KEYWORD: KeywordSearchStrategy,
    SearchMode.SEMANTIC: SemanticSearchStrategy,
    SearchMode.HYBRID: HybridSearchStrategy,
}


def get_strategy(mode: SearchMode | str) -> SearchStrategy:
    """Return the strategy for ``mode``.

    Raises:
        ValueError: If ``mode`` is not a known search mode.
    """
    return _STRATEGIES[SearchMode(mode)]()


def search(
    mode: SearchMode | str,
    query: str,
    limit: int,
    corpus: Corpus | None,
    handles: EngineHandles | None,
) -> tuple[list[RankedHit], SearchTrace]:
    """Run ``query`` against ``corpus`` with the strategy for ``mode``.

    Returns:
        Tuple of (raw ranked hits, trace).
    """
    return get_strategy(mode).execute(query, limit, corpus, handles)


def build_search_results(
    hits: Sequence[RankedHit],
    corpus: Corpus,
    limit: int | None = None,
) -> list[SearchResult]:
    """Resolve hits to documents.

    Raises:
        SearchError: ``SEARCH_FAILED`` if a hit does not belong to ``corpus``.
    """
    selected = hits if limit is None else hits[:limit]
    results: list[SearchResult] = []
    for hit in selected:
        doc = corpus.get(hit.document_id)
        if doc is None:
            raise SearchError(
                f"Hit '{hit.document_id}' does not resolve to a document in corpus '{corpus.id}'",
                SearchErrorCode.SEARCH_FAILED,
                details={"document_id": hit.document_id},
            )
        results.append(
            SearchResult(id=doc.id, text=doc.text, title=doc.title, url=doc.url, score=hit.score)
        )
    return results
