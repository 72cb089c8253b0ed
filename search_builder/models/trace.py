"""Search trace models.

A trace records the intermediate rankings behind a result list so a debugging
view can show how keyword, semantic and fused rankings compared. Traces never
influence ranking. Serialize with ``model_dump(by_alias=True)`` for the
camelCase keys the UI expects (``keywordResults``, ``rrfK``, ...).
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import ScoringMethod


class _TraceModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TraceEntry(_TraceModel):
    """One row of an intermediate ranking."""

    id: str = Field(..., description="Document ID")
    score: float = Field(..., description="Raw score on the engine's own scale")
    rank: int = Field(..., ge=1, description="1-based rank")


class RubricTraceEntry(_TraceModel):
    """Scores behind one reranked result."""

    id: str
    rank: int = Field(..., ge=1)
    retrieval_score: float = Field(..., description="Normalized retrieval score")
    rubric_score: float
    combined_score: float
    question_scores: dict[str, float] | None = None


class RubricScoringTrace(_TraceModel):
    """How rubric reranking was applied to a search."""

    rubric_id: str
    rubric_name: str
    criteria_count: int = Field(..., ge=0)
    scoring_method: ScoringMethod = ScoringMethod.AVERAGE
    results_scored: int = Field(..., ge=0)
    weight: float = Field(..., ge=0, le=1)
    top_results: list[RubricTraceEntry] = Field(default_factory=list)


class KeywordTrace(_TraceModel):
    mode: Literal["keyword"] = "keyword"
    keyword_results: list[TraceEntry] = Field(default_factory=list)
    rubric_scoring: RubricScoringTrace | None = None


class SemanticTrace(_TraceModel):
    mode: Literal["semantic"] = "semantic"
    semantic_results: list[TraceEntry] = Field(default_factory=list)
    rubric_scoring: RubricScoringTrace | None = None


class HybridTrace(_TraceModel):
    mode: Literal["hybrid"] = "hybrid"
    keyword_results: list[TraceEntry] = Field(default_factory=list)
    semantic_results: list[TraceEntry] = Field(default_factory=list)
    hybrid_results: list[TraceEntry] = Field(default_factory=list)
    rrf_k: int = Field(..., description="RRF constant used for fusion")
    rubric_scoring: RubricScoringTrace | None = None


SearchTrace = Annotated[
    KeywordTrace | SemanticTrace | HybridTrace,
    Field(discriminator="mode"),
]
