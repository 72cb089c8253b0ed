"""Rubric reranking of retrieval results.

Each retrieval candidate gets a rubric score (from a precomputed
``RubricIndex`` when one covers it, otherwise from a live oracle call), which
is blended with its normalized retrieval score::

    combined = (1 - weight) * normalize(raw, mode) + weight * rubric

Candidates are then re-sorted by the combined score.
"""

import asyncio
import logging
from collections.abc import Sequence

from ..config import settings
from ..errors import SearchError, SearchErrorCode
from ..models.enums import ScoringMethod, SearchMode
from ..models.results import SearchResult
from ..models.rubric import DocumentScore, Rubric, RubricIndex
from ..models.trace import RubricScoringTrace, RubricTraceEntry, SearchTrace
from ..services.retry import retry_with_backoff
from ..services.scoring_client import ScoringClient
from .core.document import Corpus, Document, RankedHit
from .registry import EngineHandles
from .scoring.constants import RUBRIC_TRACE_TOP_N
from .scoring.normalization import (
    combine_scores,
    normalize_rubric_score,
    normalize_score,
    validate_weight,
)
from .strategies import build_search_results, search

logger = logging.getLogger(__name__)


async def _live_score(
    scorer: ScoringClient,
    query: str,
    doc: Document,
    rubric: Rubric,
    max_retries: int,
    initial_delay: float,
    timeout: float | None,
) -> DocumentScore | None:
    try:
        result = await retry_with_backoff(
            lambda: scorer.score(query, doc.text, rubric.criteria),
            max_retries=max_retries,
            initial_delay=initial_delay,
            timeout=timeout,
            description=f"Live rubric scoring of document {doc.id}",
        )
    except Exception as e:
        logger.warning(f"Live rubric scoring failed for document {doc.id}: {e!r}")
        return None
    return DocumentScore(
        total_score=normalize_rubric_score(result.total_score),
        per_criterion_scores={
            label: normalize_rubric_score(score)
            for label, score in result.per_criterion_scores.items()
        },
    )


async def _resolve_rubric_scores(
    docs: Sequence[Document],
    rubric: Rubric,
    query: str,
    rubric_index: RubricIndex | None,
    scorer: ScoringClient | None,
    max_retries: int,
    initial_delay: float,
    timeout: float | None,
) -> list[DocumentScore | None]:
    """Index lookups first; live calls (concurrent, retried) for everything else."""
    scores: list[DocumentScore | None] = [
        rubric_index.get(doc.id) if rubric_index is not None else None for doc in docs
    ]
    missing = [i for i, score in enumerate(scores) if score is None]
    if missing and scorer is not None:
        live = await asyncio.gather(
            *(
                _live_score(scorer, query, docs[i], rubric, max_retries, initial_delay, timeout)
                for i in missing
            )
        )
        for i, score in zip(missing, live):
            scores[i] = score
    elif missing:
        logger.warning(
            f"{len(missing)} candidates have no rubric score and no live scorer is configured"
        )
    return scores


async def rerank_with_rubric(
    hits: Sequence[RankedHit],
    corpus: Corpus,
    mode: SearchMode | str,
    rubric: Rubric,
    query: str = "",
    weight: float | None = None,
    limit: int | None = None,
    rubric_index: RubricIndex | None = None,
    scorer: ScoringClient | None = None,
    max_retries: int | None = None,
    initial_delay: float | None = None,
    timeout: float | None = None,
) -> tuple[list[SearchResult], RubricScoringTrace]:
    """Blend retrieval scores with rubric scores and re-sort.

    A candidate whose rubric score cannot be obtained keeps its normalized
    retrieval score as its combined score and gets a rubric score of 0.

    Args:
        hits: Raw hits from the strategy that ran ``mode``.
        corpus: Corpus the hits come from.
        mode: Search mode that produced ``hits`` (selects normalization).
        rubric: Active rubric.
        query: Query sent to the oracle for live scoring.
        weight: Rubric weight in [0, 1] (default from settings).
        limit: Results to keep after reranking (default: all).
        rubric_index: Precomputed scores for ``(rubric, corpus)``, if any.
        scorer: Live oracle for candidates not in ``rubric_index``.
        max_retries: Retries per live call (default from settings).
        initial_delay: Backoff before the first retry, in seconds.
        timeout: Per-attempt live call timeout (default from settings).

    Returns:
        Tuple of (reranked results, rubric scoring trace).

    Raises:
        InvalidWeightError: ``weight`` outside [0, 1]; raised before scoring.
        SearchError: A hit does not resolve to a document in ``corpus``.
    """
    weight = validate_weight(weight if weight is not None else settings.default_rubric_weight)
    mode = SearchMode(mode)
    if rubric_index is not None and (
        rubric_index.rubric_id != rubric.id or rubric_index.corpus_id != corpus.id
    ):
        raise SearchError(
            f"Rubric index ({rubric_index.rubric_id}, {rubric_index.corpus_id}) does not match "
            f"rubric {rubric.id} on corpus {corpus.id}",
            SearchErrorCode.SEARCH_FAILED,
        )

    candidates = build_search_results(hits, corpus)
    docs = [corpus.get(candidate.id) for candidate in candidates]
    rubric_scores = await _resolve_rubric_scores(
        docs,
        rubric,
        query,
        rubric_index,
        scorer,
        max_retries if max_retries is not None else settings.rubric_index_max_retries,
        (
            initial_delay
            if initial_delay is not None
            else settings.rubric_index_initial_delay_seconds
        ),
        timeout if timeout is not None else settings.scoring_timeout_seconds,
    )

    reranked: list[SearchResult] = []
    for original_rank, (candidate, doc_score) in enumerate(
        zip(candidates, rubric_scores), start=1
    ):
        retrieval_score = normalize_score(candidate.score, mode)
        if doc_score is None:
            rubric_score = 0.0
            combined = retrieval_score
            question_scores = None
        else:
            rubric_score = doc_score.total_score
            combined = combine_scores(retrieval_score, rubric_score, weight)
            question_scores = dict(doc_score.per_criterion_scores)
        reranked.append(
            candidate.model_copy(
                update={
                    "score": combined,
                    "retrieval_score": retrieval_score,
                    "rubric_score": rubric_score,
                    "question_scores": question_scores,
                    "original_rank": original_rank,
                }
            )
        )

    # Stable: equal combined scores keep retrieval order
    reranked.sort(key=lambda result: result.score, reverse=True)
    if limit is not None:
        reranked = reranked[:limit]

    trace = RubricScoringTrace(
        rubric_id=rubric.id,
        rubric_name=rubric.name,
        criteria_count=len(rubric.criteria),
        scoring_method=ScoringMethod.AVERAGE,
        results_scored=len(reranked),
        weight=weight,
        top_results=[
            RubricTraceEntry(
                id=result.id,
                rank=rank,
                retrieval_score=result.retrieval_score,
                rubric_score=result.rubric_score,
                combined_score=result.score,
                question_scores=result.question_scores,
            )
            for rank, result in enumerate(reranked[:RUBRIC_TRACE_TOP_N], start=1)
        ],
    )
    logger.debug(
        f"Reranked {len(candidates)} candidates with rubric '{rubric.name}' (weight={weight})"
    )
    return reranked, trace


async def search_with_rubric(
    mode: SearchMode | str,
    query: str,
    limit: int,
    corpus: Corpus | None,
    handles: EngineHandles | None,
    rubric: Rubric,
    weight: float | None = None,
    rubric_index: RubricIndex | None = None,
    scorer: ScoringClient | None = None,
    candidate_multiplier: int | None = None,
    max_retries: int | None = None,
    initial_delay: float | None = None,
    timeout: float | None = None,
) -> tuple[list[SearchResult], SearchTrace]:
    """Search, then rerank the candidates with ``rubric``.

    Retrieves ``limit * candidate_multiplier`` candidates so that documents
    just below the cut can be promoted by a good rubric score.

    Returns:
        Tuple of (top ``limit`` reranked results, trace with
        ``rubric_scoring`` filled in).
    """
    # Fail on a bad weight before running any engine
    weight = validate_weight(weight if weight is not None else settings.default_rubric_weight)
    multiplier = (
        candidate_multiplier
        if candidate_multiplier is not None
        else settings.rerank_candidate_multiplier
    )
    hits, trace = search(mode, query, limit * multiplier, corpus, handles)
    results, rubric_trace = await rerank_with_rubric(
        hits,
        corpus,
        mode,
        rubric,
        query=query,
        weight=weight,
        limit=limit,
        rubric_index=rubric_index,
        scorer=scorer,
        max_retries=max_retries,
        initial_delay=initial_delay,
        timeout=timeout,
    )
    return results, trace.model_copy(update={"rubric_scoring": rubric_trace})
