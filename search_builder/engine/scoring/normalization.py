"""Score normalization and rubric score combination.

Raw retrieval scores live on engine-specific scales. Before they can be blended
with a rubric score they are mapped to [0, 1] per search mode:

- keyword: ``min(raw / ceiling, 1)``; BM25 scores rarely exceed ~10
- semantic: ``clamp(raw, 0, 1)``; already a cosine similarity
- hybrid: ``min(raw * scale, 1)``; RRF sums are small decimals

The ceiling and scale are calibration constants for the engines in this
package (see ``Settings.keyword_score_ceiling`` / ``hybrid_score_scale``).
"""

import math

from ...config import settings
from ...errors import InvalidWeightError
from ...models.enums import SearchMode


def _clamp(value: float) -> float:
    return max(0.0, min(value, 1.0))


def _is_missing(score: float | None) -> bool:
    return score is None or math.isnan(score)


def normalize_keyword_score(score: float | None, ceiling: float | None = None) -> float:
    if _is_missing(score):
        return 0.0
    ceiling = ceiling if ceiling is not None else settings.keyword_score_ceiling
    return _clamp(score / ceiling)


def normalize_semantic_score(score: float | None) -> float:
    if _is_missing(score):
        return 0.0
    return _clamp(score)


def normalize_hybrid_score(score: float | None, scale: float | None = None) -> float:
    if _is_missing(score):
        return 0.0
    scale = scale if scale is not None else settings.hybrid_score_scale
    return _clamp(score * scale)


def normalize_score(score: float | None, mode: SearchMode | str) -> float:
    """Map a raw retrieval score to [0, 1] for the mode that produced it.

    ``None`` and NaN map to 0; the result never propagates NaN.
    """
    mode = SearchMode(mode)
    if mode is SearchMode.KEYWORD:
        return normalize_keyword_score(score)
    if mode is SearchMode.SEMANTIC:
        return normalize_semantic_score(score)
    return normalize_hybrid_score(score)


def normalize_rubric_score(score: float | None) -> float:
    """Rubric scores already arrive in [0, 1]; clamp and drop NaN."""
    if _is_missing(score):
        return 0.0
    return _clamp(score)


def validate_weight(weight: float) -> float:
    """Return ``weight`` or raise ``InvalidWeightError`` if outside [0, 1]."""
    if weight is None or math.isnan(weight) or weight < 0 or weight > 1:
        raise InvalidWeightError(f"Weight must be between 0 and 1, got {weight}")
    return weight


def combine_scores(retrieval_score: float, rubric_score: float, weight: float) -> float:
    """Convex combination of a normalized retrieval score and a rubric score.

    Args:
        retrieval_score: Normalized retrieval score (0-1).
        rubric_score: Rubric score (0-1).
        weight: Rubric weight; 0 = all retrieval, 1 = all rubric.

    Returns:
        ``(1 - weight) * retrieval_score + weight * rubric_score``.

    Raises:
        InvalidWeightError: If ``weight`` is outside [0, 1].
    """
    validate_weight(weight)
    return _clamp((1 - weight) * retrieval_score + weight * rubric_score)
