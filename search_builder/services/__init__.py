"""Services around the external scoring oracle: client, retries, rubric batch
indexing, rubric generation from feedback and the rubric index store."""

from .index_store import RubricIndexStore
from .retry import retry_with_backoff
from .rubric_generation import FeedbackRubricGenerator
from .rubric_indexer import RubricIndexingJob, build_rubric_index, index_rubric
from .scoring_client import PiScoringClient, ScoreFunc, ScoreResult, ScoringClient

__all__ = [
    "FeedbackRubricGenerator",
    "PiScoringClient",
    "RubricIndexStore",
    "RubricIndexingJob",
    "ScoreFunc",
    "ScoreResult",
    "ScoringClient",
    "build_rubric_index",
    "index_rubric",
    "retry_with_backoff",
]
