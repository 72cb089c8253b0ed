"""Reciprocal Rank Fusion for hybrid search.

This module merges ranked hit lists by rank, not by score, so engines with
incompatible score scales (BM25 magnitudes vs cosine similarities) can be
combined without calibration.
"""

from collections.abc import Sequence

from ..core.document import RankedHit
from .constants import RRF_K


def rrf_fusion_many(
    rankings: Sequence[Sequence[RankedHit]],
    k: int = RRF_K,
) -> list[RankedHit]:
    """Reciprocal Rank Fusion of any number of rankings.

    RRF score for document *d*::

        rrf(d) = Σ_lists 1 / (k + rank_list(d))

    with 1-based ranks. A document missing from a list gets no contribution
    from it. Ties keep first-appearance order across the input lists.

    Args:
        rankings: Ranked hit lists, best first. Only positions are used.
        k: RRF constant (default 60). Must be non-negative.

    Returns:
        Fused hits sorted descending by RRF score.
    """
    if k < 0:
        raise ValueError(f"RRF constant must be non-negative, got {k}")

    # dict preserves insertion order, which is the tie-break order
    fused: dict[str, float] = {}
    for ranking in rankings:
        for rank, hit in enumerate(ranking, start=1):
            fused[hit.document_id] = fused.get(hit.document_id, 0.0) + 1.0 / (k + rank)

    # sorted() is stable, so equal scores keep insertion order
    ordered = sorted(fused.items(), key=lambda item: item[1], reverse=True)
    return [RankedHit(document_id=doc_id, score=score) for doc_id, score in ordered]


def rrf_fusion(
    list_a: Sequence[RankedHit],
    list_b: Sequence[RankedHit],
    k: int = RRF_K,
) -> list[RankedHit]:
    """Fuse two rankings (typically keyword and semantic) with RRF.

    Args:
        list_a: First ranking, best first.
        list_b: Second ranking, best first.
        k: RRF constant (default 60).

    Returns:
        Fused hits sorted descending by summed reciprocal rank.
    """
    return rrf_fusion_many([list_a, list_b], k=k)
